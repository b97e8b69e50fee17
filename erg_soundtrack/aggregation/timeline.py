"""Combine a parsed workout with a resolved album into the output record.

Track offsets are stored in album time (cumulative track durations). Mapping
them onto the workout is the consumer's job:

    scaled = raw * (workout_total_s / album_end_s)

``scale_offset`` / ``scale_tracks`` implement that mapping for consumers.
"""

from __future__ import annotations

from dataclasses import replace
from typing import List, Optional

from ..metrics.compute import compute_summary, pace_series
from ..models.types import CatalogAlbum, CatalogTrack, EnrichedWorkout, WorkoutCharts, WorkoutRecord


def assign_offsets(tracks: List[CatalogTrack]) -> List[CatalogTrack]:
    """Give each track start/end offsets (seconds) as running sums of durations, in track-number order."""
    ordered = sorted(tracks, key=lambda t: t.track_number)
    out: List[CatalogTrack] = []
    offset = 0.0
    for track in ordered:
        end = offset + track.duration_s
        out.append(replace(track, start_offset_s=offset, end_offset_s=end))
        offset = end
    return out


def build_charts(workout: WorkoutRecord) -> WorkoutCharts:
    """Project every sample into parallel time / watts / heart-rate / pace series."""
    samples = workout.samples
    watts = [s.power_w for s in samples]
    return WorkoutCharts(
        time=[s.offset_s for s in samples],
        watts=watts,
        heart_rate=[s.heart_rate_bpm for s in samples],
        pace=[float(p) for p in pace_series(watts)],
    )


def synthesize(workout: WorkoutRecord, album: CatalogAlbum, workout_id: Optional[str] = None) -> EnrichedWorkout:
    """Build the enriched record. ``workout_id`` overrides the activity Id (registry ids)."""
    timed_album = replace(album, tracks=tuple(assign_offsets(list(album.tracks))))
    return EnrichedWorkout(
        workout_id=workout_id or workout.workout_id,
        summary=compute_summary(workout),
        charts=build_charts(workout),
        album=timed_album,
    )


def scale_offset(raw_offset_s: float, workout_total_s: float, album_end_s: float) -> float:
    if album_end_s <= 0:
        return 0.0
    return raw_offset_s * (workout_total_s / album_end_s)


def scale_tracks(album: CatalogAlbum, workout_total_s: float) -> List[CatalogTrack]:
    """Copies of the album's tracks with offsets stretched onto the workout's duration."""
    tracks = assign_offsets(list(album.tracks))
    album_end = tracks[-1].end_offset_s if tracks else 0.0
    return [
        replace(
            t,
            start_offset_s=scale_offset(t.start_offset_s, workout_total_s, album_end),
            end_offset_s=scale_offset(t.end_offset_s, workout_total_s, album_end),
        )
        for t in tracks
    ]
