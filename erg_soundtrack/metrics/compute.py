from __future__ import annotations

from typing import Iterable, Union

import numpy as np
import pandas as pd

from ..config import PACE_CONSTANT, PACE_DISTANCE_M
from ..models.types import WorkoutRecord, WorkoutSummary

Numeric = Union[Iterable[float], np.ndarray, pd.Series]


def pace_from_watts(watts: float) -> float:
    """Seconds per 500 m from ergometer power.

    Inverse of the Concept2 curve watts = 2.80 / (pace / 500) ** 3.
    Zero or negative power has no pace and returns 0.
    """
    if watts is None or watts <= 0:
        return 0.0
    return float((PACE_CONSTANT / watts) ** (1.0 / 3.0) * PACE_DISTANCE_M)


def pace_series(watts: Numeric) -> np.ndarray:
    """Vectorized pace_from_watts; non-positive power maps to 0."""
    w = np.asarray(list(watts) if not isinstance(watts, (np.ndarray, pd.Series)) else watts, dtype=float)
    pace = np.zeros_like(w)
    valid = w > 0
    pace[valid] = np.cbrt(PACE_CONSTANT / w[valid]) * PACE_DISTANCE_M
    return pace


def average_positive(values: Numeric) -> float:
    """Mean over strictly positive values only; 0 when none qualify.

    Zero samples are dropouts (no stroke, strap lost), not real readings.
    """
    arr = np.asarray(list(values) if not isinstance(values, (np.ndarray, pd.Series)) else values, dtype=float)
    valid = arr[arr > 0]
    if valid.size == 0:
        return 0.0
    return float(valid.mean())


def _round_half_up(value: float, digits: int = 0) -> float:
    # Python's round() is banker's rounding; averages are rounded half away from zero
    factor = 10 ** digits
    return float(np.floor(value * factor + 0.5) / factor)


def compute_summary(workout: WorkoutRecord) -> WorkoutSummary:
    """Summary card values: lap totals plus averages over valid samples."""
    df = workout.to_dataframe()
    pace = pace_series(df["power"])
    return WorkoutSummary(
        date=workout.workout_id,
        total_distance=workout.total_distance_m,
        total_time=workout.total_duration_s,
        avg_watts=int(_round_half_up(average_positive(df["power"]))),
        avg_pace=_round_half_up(average_positive(pace), 1),
        avg_heart_rate=int(_round_half_up(average_positive(df["heart_rate"]))),
    )


def format_split(seconds: float) -> str:
    """Render seconds as m:ss.t (e.g. 118.4 -> '1:58.4'); 0 renders as '-'."""
    if not seconds or seconds <= 0:
        return "-"
    tenths = int(round(_round_half_up(seconds, 1) * 10))
    minutes, rem = divmod(tenths, 600)
    return f"{minutes}:{rem // 10:02d}.{rem % 10}"
