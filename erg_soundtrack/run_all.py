"""Batch enrichment over the workout registry.

Entries are processed one at a time: the disambiguation prompt is
interactive and every resolution may write the shared catalog cache.
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional

from .aggregation.timeline import synthesize
from .catalog.client import ITunesClient
from .catalog.disambiguation import Disambiguator, NonInteractiveDisambiguator, TerminalDisambiguator
from .catalog.resolver import CatalogResolver
from .config import PipelineConfig
from .errors import MalformedInputError, ResolutionError
from .io import load_workout
from .metrics.compute import format_split
from .models.types import BatchResult, WorkoutEntry, WorkoutRecord
from .storage.cache import CatalogCache
from .storage.export import export_summaries_csv, write_workouts_json
from .storage.registry import load_registry, save_registry
from .sync.logbook import LogbookClient, discover_workouts

logger = logging.getLogger(__name__)

WorkoutLoader = Callable[[str], WorkoutRecord]


def enrich_entries(
    entries: List[WorkoutEntry],
    resolver: CatalogResolver,
    raw_dir: Path,
    loader: WorkoutLoader = load_workout,
) -> BatchResult:
    """Parse, resolve and synthesize each entry; failures skip the entry, never the batch."""
    result = BatchResult()
    raw_dir = Path(raw_dir)
    total = len(entries)

    for i, entry in enumerate(entries, 1):
        logger.info(f"[{i}/{total}] Processing: {entry.workout_id}")
        path = raw_dir / entry.source_file
        if not path.exists():
            _skip(result, entry, f"workout file not found: {path}")
            continue

        try:
            workout = loader(str(path))
        except MalformedInputError as e:
            _skip(result, entry, f"unparseable workout: {e}")
            continue
        logger.info(f"  Parsed: {workout.total_distance_m:.0f}m in {workout.total_duration_s:.1f}s")

        music = entry.music
        try:
            album = resolver.resolve(music.artist, music.album, music.collection_id)
        except ResolutionError as e:
            _skip(result, entry, f"album lookup failed: {e}")
            continue
        if album is None:
            _skip(result, entry, f"no album data for {music.artist} - {music.album}")
            continue

        enriched = synthesize(workout, album, workout_id=entry.workout_id)
        result.workouts.append(enriched)
        logger.info(
            f"  OK: {enriched.summary.avg_watts}W avg, {format_split(enriched.summary.avg_pace)}/500m, "
            f"{len(album.tracks)} tracks from {album.artist} - {album.title}"
        )

    logger.info(f"Batch complete: {result.succeeded} succeeded, {result.failed} skipped")
    return result


def _skip(result: BatchResult, entry: WorkoutEntry, reason: str) -> None:
    logger.warning(f"  {entry.workout_id}: {reason}, skipping")
    result.skipped.append((entry.workout_id, reason))


def resolve_registry(entries: List[WorkoutEntry], resolver: CatalogResolver) -> bool:
    """Fill in missing collection ids so later runs look albums up directly.

    Returns True when any entry changed.
    """
    updated = False
    for entry in entries:
        music = entry.music
        if music.collection_id:
            logger.debug(f"{entry.workout_id}: using saved collection ID {music.collection_id}")
            continue
        logger.info(f"{entry.workout_id}: searching for \"{music.artist} - {music.album}\"")
        try:
            album = resolver.resolve(music.artist, music.album)
        except ResolutionError as e:
            logger.warning(f"{entry.workout_id}: could not resolve album: {e}")
            continue
        if album is not None and album.collection_id:
            music.collection_id = album.collection_id
            updated = True
            logger.info(f"{entry.workout_id}: saved collection ID {album.collection_id}")
        else:
            logger.warning(f"{entry.workout_id}: could not resolve album")
    return updated


def run_batch(
    config: PipelineConfig,
    since: Optional[datetime] = None,
    skip_fetch: bool = False,
    summary_csv: Optional[Path] = None,
    client: Optional[ITunesClient] = None,
    disambiguator: Optional[Disambiguator] = None,
    logbook: Optional[LogbookClient] = None,
) -> BatchResult:
    """Full sync: discover new workouts, resolve albums, write the generated artifact.

    Raises FileNotFoundError when there is no registry to work from.
    """
    config.ensure_directories()
    entries = load_registry(config.registry_path)
    registry_updated = False

    if not skip_fetch:
        if logbook is None and config.logbook_token:
            logbook = LogbookClient(config.logbook_token)
        if logbook is not None:
            added = discover_workouts(logbook, entries, config.raw_dir, since)
            registry_updated = bool(added)
        else:
            logger.info("Skipping fetch (no CONCEPT2_ACCESS_TOKEN set)")

    if not entries:
        raise FileNotFoundError(f"No workouts registered in {config.registry_path}")

    if disambiguator is None:
        disambiguator = TerminalDisambiguator() if config.interactive else NonInteractiveDisambiguator()
    cache = CatalogCache(config.cache_path).load()
    resolver = CatalogResolver(client or ITunesClient(), cache, disambiguator)

    registry_updated = resolve_registry(entries, resolver) or registry_updated
    if registry_updated:
        save_registry(config.registry_path, entries)
        logger.info(f"Updated {config.registry_path}")

    result = enrich_entries(entries, resolver, config.raw_dir)
    write_workouts_json(result.workouts, config.output_path)
    logger.info(f"Generated data for {result.succeeded} workout(s) -> {config.output_path}")
    if summary_csv is not None:
        export_summaries_csv(result.workouts, summary_csv)
    return result
