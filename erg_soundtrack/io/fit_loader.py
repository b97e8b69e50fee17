from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional

from fitparse import FitFile

from ..errors import MalformedInputError
from ..models.types import Sample, WorkoutRecord

logger = logging.getLogger(__name__)


def _normalize_ts(dt_val) -> Optional[datetime]:
    """FIT timestamps are UTC; return them timezone-aware."""
    if not isinstance(dt_val, datetime):
        return None
    if dt_val.tzinfo is None:
        return dt_val.replace(tzinfo=timezone.utc)
    return dt_val.astimezone(timezone.utc)


def _as_int(value) -> int:
    if value is None:
        return 0
    try:
        return max(0, int(round(float(value))))
    except (TypeError, ValueError):
        return 0


def _extract_record_fields(record) -> Dict[str, object]:
    data: Dict[str, object] = {"timestamp": None, "power": None, "heart_rate": None, "cadence": None, "distance": None}
    for field in record:
        if field.name == "timestamp":
            data["timestamp"] = _normalize_ts(field.value)
        elif field.name in data:
            data[field.name] = field.value
    return data


def _extract_totals(message) -> Dict[str, object]:
    values = {field.name: field.value for field in message}
    elapsed = values.get("total_elapsed_time")
    if elapsed is None:
        elapsed = values.get("total_timer_time")
    return {
        "start_time": _normalize_ts(values.get("start_time")),
        "total_time": elapsed,
        "total_distance": values.get("total_distance"),
    }


def parse_fit(file_path: str) -> WorkoutRecord:
    """Parse a Concept2 FIT export into the same WorkoutRecord shape as a TCX file.

    Totals come from the first lap message, falling back to the session.
    The workout id is the lap start instant rendered as ISO-8601 UTC.
    """
    try:
        fit = FitFile(file_path)
    except Exception as e:  # fitparse raises its own FitParseError plus OSError
        raise MalformedInputError(f"Cannot open FIT file: {e}", file_path) from e

    records: List[Dict[str, object]] = []
    totals: Optional[Dict[str, object]] = None
    session_totals: Optional[Dict[str, object]] = None
    try:
        for message in fit.get_messages(["record", "lap", "session"]):
            if message.name == "record":
                row = _extract_record_fields(message)
                if row["timestamp"] is not None:
                    records.append(row)
            elif message.name == "lap" and totals is None:
                totals = _extract_totals(message)
            elif message.name == "session" and session_totals is None:
                session_totals = _extract_totals(message)
    except Exception as e:
        raise MalformedInputError(f"Failed to parse FIT messages: {e}", file_path) from e

    totals = totals or session_totals
    if totals is None or totals["total_time"] is None or totals["total_distance"] is None:
        raise MalformedInputError("FIT file missing lap totals", file_path)
    if not records:
        raise MalformedInputError("FIT file has no records", file_path)

    records.sort(key=lambda r: r["timestamp"])
    start = totals["start_time"] or records[0]["timestamp"]
    samples = [
        Sample(
            timestamp=r["timestamp"],
            offset_s=max(0.0, (r["timestamp"] - start).total_seconds()),
            distance_m=max(0.0, float(r["distance"] or 0.0)),
            heart_rate_bpm=_as_int(r["heart_rate"]),
            power_w=_as_int(r["power"]),
            cadence_spm=_as_int(r["cadence"]),
        )
        for r in records
    ]

    logger.debug(f"Parsed {len(samples)} FIT records from {file_path}")
    workout_id = start.strftime("%Y-%m-%dT%H:%M:%SZ")
    return WorkoutRecord(
        workout_id=workout_id,
        start_time=start,
        total_duration_s=float(totals["total_time"]),
        total_distance_m=float(totals["total_distance"]),
        samples=tuple(samples),
        source_path=file_path,
    )
