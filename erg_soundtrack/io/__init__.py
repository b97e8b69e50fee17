"""Workout export readers: TCX and FIT files to WorkoutRecord."""

from __future__ import annotations

from pathlib import Path

from ..errors import MalformedInputError
from ..models.types import WorkoutRecord
from .fit_loader import parse_fit
from .tcx_loader import load_tcx_to_dataframe, parse_tcx, parse_timestamp

SUPPORTED_SUFFIXES = (".tcx", ".fit")


def load_workout(file_path: str) -> WorkoutRecord:
    """Parse a workout export, choosing the reader by file suffix."""
    suffix = Path(file_path).suffix.lower()
    if suffix == ".fit":
        return parse_fit(str(file_path))
    if suffix == ".tcx":
        return parse_tcx(str(file_path))
    raise MalformedInputError(f"Unsupported workout file type '{suffix}'", str(file_path))


__all__ = [
    "SUPPORTED_SUFFIXES",
    "load_workout",
    "load_tcx_to_dataframe",
    "parse_fit",
    "parse_tcx",
    "parse_timestamp",
]
