"""Workout registry: the JSON list of downloaded exports and their albums."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import List, Union

from ..models.types import WorkoutEntry

logger = logging.getLogger(__name__)


def load_registry(path: Union[str, Path]) -> List[WorkoutEntry]:
    """Load registry rows. A missing file is an empty registry; a corrupt one raises ValueError."""
    path = Path(path)
    if not path.exists():
        return []
    with open(path, "r", encoding="utf-8") as f:
        raw = json.load(f)
    if not isinstance(raw, list):
        raise ValueError(f"Registry {path} must be a JSON list")
    entries = []
    for row in raw:
        try:
            entries.append(WorkoutEntry.from_dict(row))
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Ignoring malformed registry row {row!r}: {e}")
    logger.info(f"Loaded workout registry: {len(entries)} entries")
    return entries


def save_registry(path: Union[str, Path], entries: List[WorkoutEntry]) -> None:
    """Save newest first (ids start with the workout date)."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    ordered = sorted(entries, key=lambda e: e.workout_id, reverse=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump([e.to_dict() for e in ordered], f, indent=2)
