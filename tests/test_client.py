import pytest
import requests

from erg_soundtrack.catalog import ITunesClient
from erg_soundtrack.errors import ResolutionError


class FakeResponse:
    def __init__(self, payload=None, status=200, bad_json=False):
        self.payload = payload
        self.status_code = status
        self.bad_json = bad_json

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error")

    def json(self):
        if self.bad_json:
            raise ValueError("Expecting value: line 1 column 1")
        return self.payload


class FakeSession:
    def __init__(self, response):
        self.response = response
        self.headers = {}
        self.requests = []

    def get(self, url, params=None, timeout=None):
        self.requests.append((url, params, timeout))
        if isinstance(self.response, Exception):
            raise self.response
        return self.response


def test_search_sends_album_entity_and_limit():
    session = FakeSession(FakeResponse({"resultCount": 1, "results": [{"collectionId": 1}]}))
    client = ITunesClient(base_url="https://itunes.test/", timeout=3, session=session)

    assert client.search("pink floyd animals", limit=7) == [{"collectionId": 1}]
    url, params, timeout = session.requests[0]
    assert url == "https://itunes.test/search"
    assert params == {"term": "pink floyd animals", "entity": "album", "limit": 7}
    assert timeout == 3
    assert "User-Agent" in session.headers


def test_lookup_with_entity_and_country():
    session = FakeSession(FakeResponse({"results": []}))
    client = ITunesClient(country="gb", session=session)

    assert client.lookup(42, entity="song") == []
    _, params, _ = session.requests[0]
    assert params == {"id": 42, "entity": "song", "country": "gb"}


def test_missing_results_is_empty():
    client = ITunesClient(session=FakeSession(FakeResponse({"resultCount": 0})))
    assert client.lookup(1) == []


@pytest.mark.parametrize(
    "response",
    [
        FakeResponse(status=503),
        FakeResponse(bad_json=True),
        FakeResponse(payload=["not", "an", "object"]),
        FakeResponse(payload={"results": "nope"}),
        requests.ConnectionError("connection refused"),
    ],
)
def test_failures_raise_resolution_error(response):
    client = ITunesClient(session=FakeSession(response))
    with pytest.raises(ResolutionError):
        client.search("anything")
