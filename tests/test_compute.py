from datetime import datetime, timedelta, timezone

import numpy as np
import pytest

from erg_soundtrack.io import parse_tcx
from erg_soundtrack.metrics import average_positive, compute_summary, format_split, pace_from_watts, pace_series
from erg_soundtrack.models.types import Sample, WorkoutRecord


def _workout(watts, hr=None):
    start = datetime(2025, 1, 5, 10, 0, tzinfo=timezone.utc)
    hr = hr or [0] * len(watts)
    samples = tuple(
        Sample(timestamp=start + timedelta(seconds=i), offset_s=float(i), power_w=w, heart_rate_bpm=h)
        for i, (w, h) in enumerate(zip(watts, hr))
    )
    return WorkoutRecord("2025-01-05-row", start, float(len(watts)), 100.0, samples)


def test_pace_from_watts_reference_points():
    assert pace_from_watts(2.8) == pytest.approx(500.0)
    # 2:00/500m is roughly 202.5 W
    assert pace_from_watts(202.5) == pytest.approx(120.0, abs=0.05)
    assert pace_from_watts(0) == 0.0
    assert pace_from_watts(-10) == 0.0


def test_pace_decreases_as_power_rises():
    paces = pace_series([100, 200, 300, 400])
    assert all(a > b for a, b in zip(paces, paces[1:]))


def test_pace_series_matches_scalar():
    watts = [0, 150, 275]
    assert list(pace_series(watts)) == pytest.approx([pace_from_watts(w) for w in watts])
    assert pace_series(np.array([0.0]))[0] == 0.0


def test_average_positive_ignores_zero_dropouts():
    assert average_positive([0, 200, 0, 300]) == 250.0
    assert average_positive([0, 0]) == 0.0
    assert average_positive([]) == 0.0


def test_summary_from_parsed_workout(tcx_factory, rowing_points):
    summary = compute_summary(parse_tcx(tcx_factory(rowing_points)))

    assert summary.date == "2025-01-05T10:00:00Z"
    assert summary.total_distance == 5000.0
    assert summary.total_time == 1200.0
    assert summary.avg_watts == 250
    assert summary.avg_heart_rate == 125
    expected_pace = (pace_from_watts(200) + pace_from_watts(300)) / 2
    assert summary.avg_pace == pytest.approx(expected_pace, abs=0.05)
    assert summary.avg_pace == round(summary.avg_pace, 1)


def test_summary_rounds_half_up():
    summary = compute_summary(_workout([2, 3], hr=[120, 121]))
    assert summary.avg_watts == 3
    assert summary.avg_heart_rate == 121


def test_summary_without_power_or_heart_rate():
    summary = compute_summary(_workout([0, 0, 0]))
    assert summary.avg_watts == 0
    assert summary.avg_pace == 0.0
    assert summary.avg_heart_rate == 0


def test_format_split():
    assert format_split(118.4) == "1:58.4"
    assert format_split(105.0) == "1:45.0"
    assert format_split(59.96) == "1:00.0"
    assert format_split(0) == "-"
