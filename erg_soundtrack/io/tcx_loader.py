"""TCX (Training Center XML) parsing for rowing ergometer exports.

Only the first Activity / Lap / Track is read. Element lookups go by local
name so the Garmin default namespace and any prefix used for the TPX
extension block (``ns3``, ``ax``, ...) are all accepted.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Iterator, List, Optional, Union

import pandas as pd
from lxml import etree

from ..errors import MalformedInputError
from ..models.types import Sample, WorkoutRecord

logger = logging.getLogger(__name__)

TcxSource = Union[str, Path, bytes]

_PARSER = etree.XMLParser(resolve_entities=False, no_network=True, huge_tree=True)

# Date and time, optional fraction and zone
_ISO_INSTANT = re.compile(
    r"^\d{4}-\d{2}-\d{2}[T ]\d{2}:\d{2}(:\d{2}(\.\d+)?)?(Z|[+-]\d{2}(:?\d{2})?)?$"
)


def _local(el) -> Optional[str]:
    if not isinstance(el.tag, str):  # comments, processing instructions
        return None
    return etree.QName(el).localname


def _children(el, name: str) -> Iterator:
    for child in el:
        if _local(child) == name:
            yield child


def _child(el, name: str):
    return next(_children(el, name), None)


def _path(el, *names: str):
    for name in names:
        if el is None:
            return None
        el = _child(el, name)
    return el


def _text(el) -> Optional[str]:
    if el is None or el.text is None:
        return None
    text = el.text.strip()
    return text or None


def _to_float(text: Optional[str], default: float = 0.0) -> float:
    if text is None:
        return default
    try:
        return float(text)
    except ValueError:
        return default


def _to_int(text: Optional[str]) -> int:
    return int(round(_to_float(text)))


def parse_timestamp(text: str) -> datetime:
    """Parse an ISO-8601 instant into an aware UTC datetime.

    Accepts 'Z' or numeric offsets and fractional seconds; naive values are
    taken as UTC. Anything that is not an ISO-8601 date-time raises ValueError.
    """
    if not _ISO_INSTANT.match(text.strip()):
        raise ValueError(f"not an ISO-8601 timestamp: {text!r}")
    ts = pd.Timestamp(text.strip())
    if pd.isna(ts):
        raise ValueError(f"not a timestamp: {text!r}")
    if ts.tzinfo is None:
        ts = ts.tz_localize("UTC")
    else:
        ts = ts.tz_convert("UTC")
    return ts.to_pydatetime()


def _read_root(source: TcxSource, label: Optional[str]):
    if isinstance(source, bytes):
        data = source
    elif isinstance(source, str) and source.lstrip().startswith("<"):
        data = source.encode("utf-8")
    else:
        path = Path(source)
        try:
            data = path.read_bytes()
        except OSError as e:
            raise MalformedInputError(f"Cannot read TCX file: {e}", label) from e
    # Some exports carry whitespace ahead of the XML declaration
    data = data.lstrip()
    if not data:
        raise MalformedInputError("Empty TCX document", label)
    try:
        return etree.fromstring(data, parser=_PARSER)
    except etree.XMLSyntaxError as e:
        raise MalformedInputError(f"Invalid TCX XML: {e}", label) from e


def _parse_trackpoint(tp, start: datetime) -> Optional[Sample]:
    time_text = _text(_child(tp, "Time"))
    if time_text is None:
        return None
    try:
        ts = parse_timestamp(time_text)
    except ValueError:
        logger.debug(f"Skipping trackpoint with invalid time: {time_text}")
        return None

    watts = _text(_path(tp, "Extensions", "TPX", "Watts"))
    return Sample(
        timestamp=ts,
        offset_s=max(0.0, (ts - start).total_seconds()),
        distance_m=max(0.0, _to_float(_text(_child(tp, "DistanceMeters")))),
        heart_rate_bpm=max(0, _to_int(_text(_path(tp, "HeartRateBpm", "Value")))),
        power_w=max(0, _to_int(watts)),
        cadence_spm=max(0, _to_int(_text(_child(tp, "Cadence")))),
    )


def parse_tcx(source: TcxSource) -> WorkoutRecord:
    """Parse a TCX document (path, bytes or XML text) into a WorkoutRecord.

    Raises MalformedInputError when the activity Id, the lap totals or every
    trackpoint is missing.
    """
    label = None if isinstance(source, bytes) or (isinstance(source, str) and source.lstrip().startswith("<")) else str(source)
    root = _read_root(source, label)

    activity = _path(root, "Activities", "Activity")
    if activity is None:
        raise MalformedInputError("TCX file missing Activity element", label)

    activity_id = _text(_child(activity, "Id"))
    if activity_id is None:
        raise MalformedInputError("TCX file missing activity Id", label)
    try:
        start = parse_timestamp(activity_id)
    except ValueError as e:
        raise MalformedInputError(f"TCX activity Id is not a timestamp: {activity_id}", label) from e

    laps = list(_children(activity, "Lap"))
    if not laps:
        raise MalformedInputError("TCX file missing Lap element", label)
    if len(laps) > 1:
        logger.info(f"{len(laps)} laps found, reading only the first ({label or activity_id})")
    lap = laps[0]

    total_time_text = _text(_child(lap, "TotalTimeSeconds"))
    distance_text = _text(_child(lap, "DistanceMeters"))
    if total_time_text is None or distance_text is None:
        raise MalformedInputError("TCX lap missing TotalTimeSeconds or DistanceMeters", label)
    try:
        total_time_s = float(total_time_text)
        total_distance_m = float(distance_text)
    except ValueError as e:
        raise MalformedInputError(f"TCX lap totals are not numeric: {e}", label) from e

    track = _child(lap, "Track")
    samples: List[Sample] = []
    if track is not None:
        for tp in _children(track, "Trackpoint"):
            sample = _parse_trackpoint(tp, start)
            if sample is not None:
                samples.append(sample)
    if not samples:
        raise MalformedInputError("TCX file has no trackpoints", label)

    # Stable sort keeps document order for equal offsets
    samples.sort(key=lambda s: s.offset_s)

    return WorkoutRecord(
        workout_id=activity_id,
        start_time=start,
        total_duration_s=total_time_s,
        total_distance_m=total_distance_m,
        samples=tuple(samples),
        source_path=label,
    )


def load_tcx_to_dataframe(file_path: str) -> pd.DataFrame:
    """Load a TCX file into a per-sample pandas DataFrame.

    Columns: timestamp, offset_s, distance (m), heart_rate (bpm), power (W), cadence (spm)
    """
    return parse_tcx(file_path).to_dataframe()
