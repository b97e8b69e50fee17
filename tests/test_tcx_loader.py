from datetime import timezone

import pytest

from erg_soundtrack.errors import MalformedInputError
from erg_soundtrack.io import load_workout, parse_tcx
from erg_soundtrack.io.tcx_loader import load_tcx_to_dataframe, parse_timestamp


def test_parse_tcx_offsets_start_at_zero_and_are_monotonic(tcx_factory, rowing_points):
    workout = parse_tcx(tcx_factory(rowing_points))
    offsets = [s.offset_s for s in workout.samples]
    assert offsets[0] == 0.0
    assert offsets == sorted(offsets)
    assert offsets[1] == pytest.approx(1.5)
    assert offsets[-1] == pytest.approx(5.0)


def test_parse_tcx_id_doubles_as_start_time(tcx_factory, rowing_points):
    workout = parse_tcx(tcx_factory(rowing_points))
    assert workout.workout_id == "2025-01-05T10:00:00Z"
    assert workout.start_time.tzinfo is not None
    assert workout.start_time.hour == 10


def test_parse_tcx_totals_come_from_lap_summary(tcx_factory, rowing_points):
    workout = parse_tcx(tcx_factory(rowing_points, total_time="1200.4", distance="5000"))
    # Lap summary wins over the last trackpoint (5 s / 20.4 m)
    assert workout.total_duration_s == pytest.approx(1200.4)
    assert workout.total_distance_m == pytest.approx(5000.0)


def test_parse_tcx_missing_extensions_default_to_zero(tcx_factory):
    points = [
        {"time": "2025-01-05T10:00:00Z"},
        {"time": "2025-01-05T10:00:01Z", "distance": 4.5},
    ]
    workout = parse_tcx(tcx_factory(points))
    for s in workout.samples:
        assert s.power_w == 0
        assert s.heart_rate_bpm == 0
        assert s.cadence_spm == 0
    assert workout.samples[0].distance_m == 0.0
    assert workout.samples[1].distance_m == 4.5


def test_parse_tcx_reads_nested_fields(tcx_factory, rowing_points):
    sample = parse_tcx(tcx_factory(rowing_points)).samples[1]
    assert sample.power_w == 200
    assert sample.heart_rate_bpm == 120
    assert sample.cadence_spm == 24
    assert sample.distance_m == pytest.approx(6.2)


def test_parse_tcx_compares_instants_across_timezones(tcx_factory):
    points = [
        {"time": "2025-01-05T11:00:00+01:00"},  # same instant as the Id
        {"time": "2025-01-05T10:00:02.250Z"},
    ]
    workout = parse_tcx(tcx_factory(points))
    assert [s.offset_s for s in workout.samples] == [0.0, pytest.approx(2.25)]


def test_parse_tcx_sorts_out_of_order_points(tcx_factory):
    points = [
        {"time": "2025-01-05T10:00:02Z", "watts": 2},
        {"time": "2025-01-05T10:00:01Z", "watts": 1},
    ]
    workout = parse_tcx(tcx_factory(points))
    assert [s.power_w for s in workout.samples] == [1, 2]


def test_parse_tcx_reads_only_first_lap(tcx_factory, rowing_points):
    workout = parse_tcx(tcx_factory(rowing_points, extra_laps=2))
    assert len(workout.samples) == len(rowing_points)
    assert workout.total_distance_m == 5000.0


@pytest.mark.parametrize(
    "kwargs",
    [
        {"activity_id": None},
        {"total_time": None},
        {"distance": None},
        {"total_time": "abc"},
        {"activity_id": "not-a-date"},
        {"activity_id": "now"},
        {"activity_id": "today"},
    ],
)
def test_parse_tcx_missing_required_elements(tcx_factory, rowing_points, kwargs):
    with pytest.raises(MalformedInputError):
        parse_tcx(tcx_factory(rowing_points, **kwargs))


def test_parse_tcx_requires_a_trackpoint(tcx_factory):
    with pytest.raises(MalformedInputError):
        parse_tcx(tcx_factory([]))


def test_parse_tcx_rejects_invalid_xml():
    with pytest.raises(MalformedInputError):
        parse_tcx(b"<TrainingCenterDatabase><Activities>")


def test_parse_tcx_from_file_with_leading_whitespace(tmp_path, tcx_factory, rowing_points):
    path = tmp_path / "workout.tcx"
    path.write_text("\n   " + tcx_factory(rowing_points), encoding="utf-8")
    workout = load_workout(str(path))
    assert workout.source_path == str(path)
    assert len(workout.samples) == 4


def test_missing_file_is_malformed_input(tmp_path):
    with pytest.raises(MalformedInputError):
        parse_tcx(str(tmp_path / "nope.tcx"))


def test_load_workout_rejects_unknown_suffix(tmp_path):
    with pytest.raises(MalformedInputError):
        load_workout(str(tmp_path / "workout.gpx"))


def test_load_tcx_to_dataframe_columns(tmp_path, tcx_factory, rowing_points):
    path = tmp_path / "w.tcx"
    path.write_text(tcx_factory(rowing_points), encoding="utf-8")
    df = load_tcx_to_dataframe(str(path))
    assert list(df.columns) == ["timestamp", "offset_s", "distance", "heart_rate", "power", "cadence"]
    assert len(df) == 4
    assert df["power"].tolist() == [0, 200, 0, 300]


def test_parse_timestamp_normalizes_to_utc():
    ts = parse_timestamp("2025-01-05T12:30:00.125+02:00")
    assert ts.tzinfo is not None
    assert ts.utcoffset().total_seconds() == 0
    assert (ts.hour, ts.minute, ts.microsecond) == (10, 30, 125000)
    naive = parse_timestamp("2025-01-05T10:00:00")
    assert naive.astimezone(timezone.utc).hour == 10


@pytest.mark.parametrize("text", ["now", "today", "yesterday", "2025-01-05", "Jan 5 2025 10:00"])
def test_parse_timestamp_accepts_only_iso_instants(text):
    with pytest.raises(ValueError):
        parse_timestamp(text)


def test_relative_trackpoint_time_is_skipped(tcx_factory, rowing_points):
    points = rowing_points + [{"time": "now", "watts": 500}]
    workout = parse_tcx(tcx_factory(points))
    assert len(workout.samples) == 4
    assert max(s.power_w for s in workout.samples) == 300
