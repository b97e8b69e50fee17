from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd


SAMPLE_COLUMNS = ["timestamp", "offset_s", "distance", "heart_rate", "power", "cadence"]


@dataclass(frozen=True)
class Sample:
    timestamp: datetime  # timezone-aware, UTC
    offset_s: float
    distance_m: float = 0.0
    heart_rate_bpm: int = 0
    power_w: int = 0
    cadence_spm: int = 0


@dataclass(frozen=True)
class WorkoutRecord:
    workout_id: str  # raw activity Id text
    start_time: datetime
    total_duration_s: float
    total_distance_m: float
    samples: Tuple[Sample, ...]
    source_path: Optional[str] = None

    def to_dataframe(self) -> pd.DataFrame:
        """One row per sample. Columns: timestamp, offset_s, distance (m), heart_rate (bpm), power (W), cadence (spm)."""
        if not self.samples:
            return pd.DataFrame(columns=SAMPLE_COLUMNS)
        rows = [
            {
                "timestamp": s.timestamp,
                "offset_s": s.offset_s,
                "distance": s.distance_m,
                "heart_rate": s.heart_rate_bpm,
                "power": s.power_w,
                "cadence": s.cadence_spm,
            }
            for s in self.samples
        ]
        return pd.DataFrame.from_records(rows, columns=SAMPLE_COLUMNS)


@dataclass(frozen=True)
class CatalogTrack:
    title: str
    duration_ms: int
    track_number: int
    track_id: Optional[int] = None
    preview_url: Optional[str] = None
    start_offset_s: float = 0.0  # set by the timeline synthesizer
    end_offset_s: float = 0.0

    @property
    def duration_s(self) -> float:
        return self.duration_ms / 1000.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "durationMs": self.duration_ms,
            "trackNumber": self.track_number,
            "trackId": self.track_id,
            "previewUrl": self.preview_url,
            "startTime": self.start_offset_s,
            "endTime": self.end_offset_s,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CatalogTrack":
        return cls(
            title=data["title"],
            duration_ms=int(data.get("durationMs") or 0),
            track_number=int(data["trackNumber"]),
            track_id=data.get("trackId"),
            preview_url=data.get("previewUrl"),
            start_offset_s=float(data.get("startTime") or 0.0),
            end_offset_s=float(data.get("endTime") or 0.0),
        )


@dataclass(frozen=True)
class CatalogAlbum:
    title: str
    artist: str
    cover_url: str
    collection_id: Optional[int] = None
    collection_view_url: Optional[str] = None
    tracks: Tuple[CatalogTrack, ...] = ()

    @property
    def total_duration_s(self) -> float:
        return sum(t.duration_s for t in self.tracks)

    def to_dict(self) -> Dict[str, Any]:
        meta: Dict[str, Any] = {
            "title": self.title,
            "artist": self.artist,
            "coverUrl": self.cover_url,
        }
        if self.collection_id is not None:
            meta["collectionId"] = self.collection_id
        if self.collection_view_url is not None:
            meta["collectionViewUrl"] = self.collection_view_url
        return {"meta": meta, "tracks": [t.to_dict() for t in self.tracks]}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CatalogAlbum":
        meta = data["meta"]
        tracks = sorted(
            (CatalogTrack.from_dict(t) for t in data.get("tracks", [])),
            key=lambda t: t.track_number,
        )
        return cls(
            title=meta["title"],
            artist=meta["artist"],
            cover_url=meta.get("coverUrl", ""),
            collection_id=meta.get("collectionId"),
            collection_view_url=meta.get("collectionViewUrl"),
            tracks=tuple(tracks),
        )


@dataclass(frozen=True)
class CacheEntry:
    key: str
    timestamp_ms: int
    value: Optional[CatalogAlbum] = None  # None marks a failed resolution

    @property
    def is_absent(self) -> bool:
        return self.value is None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp_ms,
            "data": self.value.to_dict() if self.value is not None else None,
        }

    @classmethod
    def from_dict(cls, key: str, data: Dict[str, Any]) -> "CacheEntry":
        raw = data.get("data")
        return cls(
            key=key,
            timestamp_ms=int(data["timestamp"]),
            value=CatalogAlbum.from_dict(raw) if raw else None,
        )


@dataclass(frozen=True)
class WorkoutSummary:
    date: str
    total_distance: float
    total_time: float
    avg_watts: int
    avg_pace: float  # seconds per 500 m
    avg_heart_rate: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date,
            "totalDistance": self.total_distance,
            "totalTime": self.total_time,
            "avgWatts": self.avg_watts,
            "avgPace": self.avg_pace,
            "avgHeartRate": self.avg_heart_rate,
        }


@dataclass(frozen=True)
class WorkoutCharts:
    time: List[float]
    watts: List[int]
    heart_rate: List[int]
    pace: List[float]

    def __len__(self) -> int:
        return len(self.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "time": list(self.time),
            "watts": list(self.watts),
            "heartRate": list(self.heart_rate),
            "pace": list(self.pace),
        }


@dataclass(frozen=True)
class EnrichedWorkout:
    workout_id: str
    summary: WorkoutSummary
    charts: WorkoutCharts
    album: CatalogAlbum

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.workout_id,
            "summary": self.summary.to_dict(),
            "charts": self.charts.to_dict(),
            "album": self.album.to_dict(),
        }


@dataclass
class MusicReference:
    artist: str
    album: str
    collection_id: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"artist": self.artist, "album": self.album}
        if self.collection_id:
            data["itunesCollectionId"] = self.collection_id
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MusicReference":
        cid = data.get("itunesCollectionId")
        return cls(artist=data["artist"], album=data["album"], collection_id=int(cid) if cid else None)


@dataclass
class WorkoutEntry:
    """Registry row: one downloaded export and the album played during it."""
    workout_id: str
    source_file: str
    music: MusicReference

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.workout_id, "tcxFile": self.source_file, "music": self.music.to_dict()}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WorkoutEntry":
        return cls(
            workout_id=data["id"],
            source_file=data["tcxFile"],
            music=MusicReference.from_dict(data["music"]),
        )


@dataclass
class BatchResult:
    workouts: List[EnrichedWorkout] = field(default_factory=list)
    skipped: List[Tuple[str, str]] = field(default_factory=list)  # (entry id, reason)

    @property
    def succeeded(self) -> int:
        return len(self.workouts)

    @property
    def failed(self) -> int:
        return len(self.skipped)
