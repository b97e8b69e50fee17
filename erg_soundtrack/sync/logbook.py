"""Concept2 logbook discovery: find new commented workouts and download their TCX exports.

A workout is picked up when its logbook comment names the album played,
as "Artist - Album" (also en/em dash or "Artist: Album").
"""

from __future__ import annotations

import logging
import time
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Set, Tuple

import pandas as pd
import requests

from ..config import DOWNLOAD_PAUSE_S, HTTP_TIMEOUT_S, LOGBOOK_BASE_URL
from ..models.types import MusicReference, WorkoutEntry

logger = logging.getLogger(__name__)

COMMENT_SEPARATORS = (" - ", " – ", " — ", ": ")


def parse_comment(comment: Optional[str]) -> Optional[Tuple[str, str]]:
    """Split a logbook comment into (artist, album), or None if it has no usable separator."""
    if not comment:
        return None
    for sep in COMMENT_SEPARATORS:
        if sep in comment:
            artist, album = comment.split(sep, 1)
            if artist.strip() and album.strip():
                return artist.strip(), album.strip()
    return None


def generate_workout_id(date: str, existing_ids: Set[str]) -> str:
    """``YYYY-MM-DD-row``, suffixed ``-2``, ``-3``... when the day already has one."""
    day = pd.Timestamp(date).strftime("%Y-%m-%d")
    workout_id = f"{day}-row"
    suffix = 2
    while workout_id in existing_ids:
        workout_id = f"{day}-row-{suffix}"
        suffix += 1
    return workout_id


def export_filename(result_id: int) -> str:
    return f"concept2-workout-{result_id}.tcx"


class LogbookClient:
    """Concept2 logbook API. The bearer token is passed through as given."""

    def __init__(
        self,
        token: str,
        base_url: str = LOGBOOK_BASE_URL,
        timeout: float = HTTP_TIMEOUT_S,
        download_pause_s: float = DOWNLOAD_PAUSE_S,
        session: Optional[requests.Session] = None,
        sleep=time.sleep,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.download_pause_s = download_pause_s
        self._sleep = sleep
        self._session = session or requests.Session()
        self._session.headers.update({"Authorization": f"Bearer {token}"})

    def fetch_results(self, page: int) -> Dict:
        response = self._session.get(
            f"{self.base_url}/users/me/results", params={"page": page}, timeout=self.timeout
        )
        response.raise_for_status()
        return response.json()

    def iter_results(self, since: Optional[datetime] = None) -> Iterator[Dict]:
        """Yield results newest first, stopping at the first one older than ``since``."""
        page = 1
        total_pages = 1
        since_ts = pd.Timestamp(since) if since is not None else None
        while page <= total_pages:
            payload = self.fetch_results(page)
            total_pages = ((payload.get("meta") or {}).get("pagination") or {}).get("total_pages") or 1
            for result in payload.get("data") or []:
                if since_ts is not None and _naive(pd.Timestamp(result["date"])) < _naive(since_ts):
                    return
                yield result
            page += 1

    def download_tcx(self, result_id: int, output_path: Path) -> None:
        """Stream one TCX export to disk, then pause to respect the API rate limit."""
        url = f"{self.base_url}/users/me/results/{result_id}/export/tcx"
        with self._session.get(url, timeout=self.timeout, stream=True) as response:
            response.raise_for_status()
            with open(output_path, "wb") as f:
                for chunk in response.iter_content(8192):
                    f.write(chunk)
        self._sleep(self.download_pause_s)


def _naive(ts: pd.Timestamp) -> pd.Timestamp:
    # Logbook dates are local wall-clock strings; compare without zones
    return ts.tz_localize(None) if ts.tzinfo is not None else ts


def discover_workouts(
    client: LogbookClient,
    registry: List[WorkoutEntry],
    raw_dir: Path,
    since: Optional[datetime] = None,
) -> List[WorkoutEntry]:
    """Download new commented workouts and append registry rows for them.

    Returns the rows added. A failed download skips that workout only; an API
    error while paging stops discovery and keeps what was added so far.
    """
    raw_dir = Path(raw_dir)
    raw_dir.mkdir(parents=True, exist_ok=True)
    known_files = {e.source_file for e in registry}
    known_ids = {e.workout_id for e in registry}
    added: List[WorkoutEntry] = []

    try:
        for result in client.iter_results(since):
            comment = (result.get("comments") or "").strip()
            if not comment:
                continue
            filename = export_filename(result["id"])
            if filename in known_files:
                continue
            music = parse_comment(comment)
            if music is None:
                logger.info(f"Skipping {result['id']}: comment \"{comment}\" doesn't match \"Artist - Album\" format")
                continue

            path = raw_dir / filename
            if not path.exists():
                logger.info(f"Downloading {result['id']} ({music[0]} - {music[1]})...")
                try:
                    client.download_tcx(result["id"], path)
                except (requests.RequestException, OSError) as e:
                    logger.error(f"Failed to download {result['id']}: {e}")
                    if path.exists():
                        path.unlink()
                    continue

            entry = WorkoutEntry(
                workout_id=generate_workout_id(result["date"], known_ids),
                source_file=filename,
                music=MusicReference(artist=music[0], album=music[1]),
            )
            known_ids.add(entry.workout_id)
            known_files.add(filename)
            registry.append(entry)
            added.append(entry)
            logger.info(f"Added: {entry.workout_id}")
    except (requests.RequestException, ValueError) as e:
        logger.error(f"Logbook API error: {e}")

    logger.info(f"Fetched {len(added)} new workout(s)")
    return added
