"""iTunes Search API client used by the catalog resolver."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional

import requests

from ..config import HTTP_TIMEOUT_S, ITUNES_BASE_URL, SEARCH_LIMIT
from ..errors import ResolutionError

logger = logging.getLogger(__name__)

USER_AGENT = "erg-soundtrack/1.0"


class ITunesClient:
    """Thin wrapper over the ``/search`` and ``/lookup`` endpoints.

    Both calls return the raw ``results`` list. Any transport error, non-2xx
    status or undecodable body raises ResolutionError.
    """

    def __init__(
        self,
        base_url: str = ITUNES_BASE_URL,
        timeout: float = HTTP_TIMEOUT_S,
        country: Optional[str] = None,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.country = country
        self._session = session or requests.Session()
        self._session.headers.update({
            "User-Agent": USER_AGENT,
            "Accept": "application/json",
        })

    def _get(self, endpoint: str, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        if self.country:
            params = {**params, "country": self.country}
        url = f"{self.base_url}/{endpoint}"
        try:
            resp = self._session.get(url, params=params, timeout=self.timeout)
            resp.raise_for_status()
            data = resp.json()
        except requests.RequestException as e:
            raise ResolutionError(f"iTunes {endpoint} request failed: {e}") from e
        except (json.JSONDecodeError, ValueError) as e:
            raise ResolutionError(f"iTunes {endpoint} returned invalid JSON: {e}") from e

        if not isinstance(data, dict):
            raise ResolutionError(f"iTunes {endpoint} returned unexpected payload")
        results = data.get("results") or []
        if not isinstance(results, list):
            raise ResolutionError(f"iTunes {endpoint} results is not a list")
        logger.debug(f"iTunes {endpoint} {params}: {len(results)} result(s)")
        return results

    def search(self, term: str, limit: int = SEARCH_LIMIT) -> List[Dict[str, Any]]:
        """Album search. Results carry collectionId, artistName, collectionName, artworkUrl100, collectionViewUrl."""
        return self._get("search", {"term": term, "entity": "album", "limit": limit})

    def lookup(self, collection_id: int, entity: Optional[str] = None) -> List[Dict[str, Any]]:
        """Lookup by collection id. With entity="song" the collection summary is followed by its tracks."""
        params: Dict[str, Any] = {"id": collection_id}
        if entity:
            params["entity"] = entity
        return self._get("lookup", params)

    def close(self) -> None:
        self._session.close()
