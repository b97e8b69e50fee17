from typing import Dict, List, Optional

import pytest

import erg_soundtrack.config as erg_config
from erg_soundtrack.storage.cache import CatalogCache

TCX_NS = "http://www.garmin.com/xmlschemas/TrainingCenterDatabase/v2"
TPX_NS = "http://www.garmin.com/xmlschemas/ActivityExtension/v2"


def _trackpoint(point: Dict) -> str:
    parts = [f"<Time>{point['time']}</Time>"]
    if point.get("distance") is not None:
        parts.append(f"<DistanceMeters>{point['distance']}</DistanceMeters>")
    if point.get("hr") is not None:
        parts.append(f"<HeartRateBpm><Value>{point['hr']}</Value></HeartRateBpm>")
    if point.get("cadence") is not None:
        parts.append(f"<Cadence>{point['cadence']}</Cadence>")
    if point.get("watts") is not None:
        parts.append(f"<Extensions><ns3:TPX><ns3:Watts>{point['watts']}</ns3:Watts></ns3:TPX></Extensions>")
    return "<Trackpoint>" + "".join(parts) + "</Trackpoint>"


def make_tcx(
    points: List[Dict],
    activity_id: Optional[str] = "2025-01-05T10:00:00Z",
    total_time: Optional[str] = "1200.0",
    distance: Optional[str] = "5000.0",
    extra_laps: int = 0,
) -> str:
    id_el = f"<Id>{activity_id}</Id>" if activity_id is not None else ""
    totals = ""
    if total_time is not None:
        totals += f"<TotalTimeSeconds>{total_time}</TotalTimeSeconds>"
    if distance is not None:
        totals += f"<DistanceMeters>{distance}</DistanceMeters>"
    track = "<Track>" + "".join(_trackpoint(p) for p in points) + "</Track>"
    lap = f'<Lap StartTime="{activity_id}">{totals}{track}</Lap>'
    lap += "".join(
        f"<Lap><TotalTimeSeconds>60</TotalTimeSeconds><DistanceMeters>250</DistanceMeters>{track}</Lap>"
        for _ in range(extra_laps)
    )
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        f'<TrainingCenterDatabase xmlns="{TCX_NS}" xmlns:ns3="{TPX_NS}">'
        f'<Activities><Activity Sport="Other">{id_el}{lap}</Activity></Activities>'
        "</TrainingCenterDatabase>"
    )


@pytest.fixture
def tcx_factory():
    return make_tcx


@pytest.fixture
def rowing_points():
    return [
        {"time": "2025-01-05T10:00:00Z", "distance": 0.0, "hr": 0, "watts": 0, "cadence": 0},
        {"time": "2025-01-05T10:00:01.500Z", "distance": 6.2, "hr": 120, "watts": 200, "cadence": 24},
        {"time": "2025-01-05T10:00:03Z", "distance": 12.9, "hr": 0, "watts": 0, "cadence": 0},
        {"time": "2025-01-05T10:00:05Z", "distance": 20.4, "hr": 130, "watts": 300, "cadence": 26},
    ]


class FakeClock:
    def __init__(self, now_ms: int = 1_700_000_000_000):
        self.now_ms = now_ms

    def __call__(self) -> int:
        return self.now_ms

    def advance(self, ms: int) -> None:
        self.now_ms += ms


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(tmp_path, clock):
    return CatalogCache(tmp_path / "cache" / "itunes-cache.json", clock=clock).load()


def album_result(collection_id: int, artist: str, title: str) -> Dict:
    return {
        "wrapperType": "collection",
        "collectionId": collection_id,
        "artistName": artist,
        "collectionName": title,
        "artworkUrl100": f"https://is1-ssl.mzstatic.com/image/{collection_id}/100x100bb.jpg",
        "collectionViewUrl": f"https://music.apple.com/us/album/x/{collection_id}?uo=4",
    }


def track_result(number: int, title: str, millis: int, disc: int = 1) -> Dict:
    return {
        "wrapperType": "track",
        "kind": "song",
        "trackId": 1000 + disc * 100 + number,
        "trackName": title,
        "trackTimeMillis": millis,
        "trackNumber": number,
        "discNumber": disc,
        "previewUrl": f"https://audio/{number}.m4a",
    }


class FakeCatalogClient:
    """In-memory stand-in for ITunesClient."""

    def __init__(self, searches=None, albums=None, tracks=None, error=None):
        self.searches: Dict[str, List[Dict]] = searches or {}
        self.albums: Dict[int, Dict] = albums or {}
        self.tracks: Dict[int, List[Dict]] = tracks or {}
        self.error = error
        self.calls: List[tuple] = []

    def search(self, term: str, limit: int = 20) -> List[Dict]:
        self.calls.append(("search", term, limit))
        if self.error:
            raise self.error
        return list(self.searches.get(term, []))

    def lookup(self, collection_id: int, entity: Optional[str] = None) -> List[Dict]:
        self.calls.append(("lookup", collection_id, entity))
        if self.error:
            raise self.error
        summary = self.albums.get(collection_id)
        if summary is None:
            return []
        if entity == "song":
            return [summary] + list(self.tracks.get(collection_id, []))
        return [summary]


@pytest.fixture
def three_track_album():
    """One album, three tracks: 200 s, 180 s, 220 s."""
    cid = 1440833098
    return cid, album_result(cid, "Pink Floyd", "The Dark Side of the Moon"), [
        track_result(1, "Speak to Me / Breathe", 200000),
        track_result(2, "On the Run", 180000),
        track_result(3, "Time", 220000),
    ]


@pytest.fixture(autouse=True)
def _reset_global_config(monkeypatch):
    monkeypatch.setattr(erg_config, "config", None)
    yield
