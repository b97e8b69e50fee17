from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import List, Union

import pandas as pd

from ..models.types import EnrichedWorkout


def workouts_to_json(workouts: List[EnrichedWorkout]) -> str:
    return json.dumps([w.to_dict() for w in workouts], indent=2)


def write_workouts_json(workouts: List[EnrichedWorkout], path: Union[str, Path]) -> Path:
    """Write the generated workouts artifact in one atomic replace."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = workouts_to_json(workouts)
    fd, tmp_name = tempfile.mkstemp(prefix=".workouts-", suffix=".json", dir=str(path.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(payload)
        os.replace(tmp_name, path)
    except OSError:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise
    return path


def export_summaries_csv(workouts: List[EnrichedWorkout], path: Union[str, Path]) -> None:
    """One row per workout: summary card values plus the album played."""
    rows = []
    for w in workouts:
        s = w.summary
        rows.append(
            {
                "id": w.workout_id,
                "date": s.date,
                "total_distance_m": s.total_distance,
                "total_time_s": s.total_time,
                "avg_watts": s.avg_watts,
                "avg_pace_s_500m": s.avg_pace,
                "avg_heart_rate_bpm": s.avg_heart_rate,
                "artist": w.album.artist,
                "album": w.album.title,
                "album_duration_s": w.album.total_duration_s,
                "num_tracks": len(w.album.tracks),
            }
        )
    df = pd.DataFrame(rows)
    df.to_csv(path, index=False)
