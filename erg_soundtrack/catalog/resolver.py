"""Resolve a free-text "artist / album" reference to a catalog album with tracks.

Resolution order:

1. cache hit on the original input (``id:<n>`` or ``search:<artist>:<album>``)
2. explicit collection id -> direct lookup
3. album search on "<artist> <album>", filtered to candidates whose artist
   matches after normalization
4. an exact (normalized) album-title match wins outright
5. anything else is an AmbiguousMatch and goes to the Disambiguator, which
   may select, search again, supply a collection id, or abort. A miss (no
   artist match at all) is offered with no candidates; revised search terms
   go back through steps 3 and 4
6. the settled collection's track list is fetched and the album cached

Failures are never cached so the next run can retry.
"""

from __future__ import annotations

import logging
import re
from collections import Counter
from typing import Any, Dict, List, Optional

from ..config import COVER_ART_SIZE, SEARCH_AGAIN_LIMIT, SEARCH_LIMIT
from ..errors import AmbiguousMatch, ResolutionError
from ..models.types import CatalogAlbum, CatalogTrack
from ..storage.cache import CatalogCache, cache_key
from .client import ITunesClient
from .disambiguation import (
    Abort,
    Choice,
    Disambiguator,
    ManualId,
    NonInteractiveDisambiguator,
    SearchAgain,
    Selection,
    describe_candidate,
)

logger = logging.getLogger(__name__)

_NON_ALNUM = re.compile(r"[^a-z0-9]")
_STOREFRONT = re.compile(r"music\.apple\.com/[a-z]{2}/")


def normalize(text: str) -> str:
    """Lower-case and drop everything outside [a-z0-9]."""
    return _NON_ALNUM.sub("", (text or "").lower())


def artist_matches(query_artist: str, candidate_artist: str) -> bool:
    a = normalize(query_artist)
    b = normalize(candidate_artist)
    if a == b:
        return True
    # Containment either way ("Beatles" vs "The Beatles"). An empty side matches nothing.
    return bool(a) and bool(b) and (a in b or b in a)


def select_candidate(artist: str, album: str, results: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Return the search result that is unambiguously ``album`` by ``artist``.

    Raises AmbiguousMatch carrying the artist-matching candidates (possibly
    none) when no exact title match exists.
    """
    query = f"{artist} - {album}"
    matching = [r for r in results if artist_matches(artist, r.get("artistName", ""))]
    if not matching:
        raise AmbiguousMatch(query, [])
    wanted = normalize(album)
    for candidate in matching:
        if normalize(candidate.get("collectionName", "")) == wanted:
            return candidate
    raise AmbiguousMatch(query, matching)


def _cover_url(artwork_url: Optional[str]) -> str:
    return (artwork_url or "").replace("100x100bb", COVER_ART_SIZE)


def _view_url(url: Optional[str]) -> Optional[str]:
    if not url:
        return None
    return _STOREFRONT.sub("music.apple.com/", url).split("?")[0]


def _build_tracks(items: List[Dict[str, Any]]) -> List[CatalogTrack]:
    rows = [item for item in items if item.get("wrapperType") == "track"]
    rows.sort(key=lambda r: (int(r.get("discNumber") or 1), int(r.get("trackNumber") or 0)))

    numbers = [int(r.get("trackNumber") or 0) for r in rows]
    # Multi-disc albums restart numbering per disc; renumber so numbers stay unique
    renumber = any(n < 1 for n in numbers) or any(c > 1 for c in Counter(numbers).values())

    tracks: List[CatalogTrack] = []
    for position, row in enumerate(rows, start=1):
        tracks.append(
            CatalogTrack(
                title=row.get("trackName", ""),
                duration_ms=max(0, int(row.get("trackTimeMillis") or 0)),
                track_number=position if renumber else int(row["trackNumber"]),
                track_id=row.get("trackId"),
                preview_url=row.get("previewUrl") or None,
            )
        )
    return tracks


class CatalogResolver:
    def __init__(
        self,
        client: ITunesClient,
        cache: CatalogCache,
        disambiguator: Optional[Disambiguator] = None,
        search_limit: int = SEARCH_LIMIT,
        search_again_limit: int = SEARCH_AGAIN_LIMIT,
    ):
        self.client = client
        self.cache = cache
        self.disambiguator = disambiguator or NonInteractiveDisambiguator()
        self.search_limit = search_limit
        self.search_again_limit = search_again_limit

    def resolve(self, artist: str, album: str, collection_id: Optional[int] = None) -> Optional[CatalogAlbum]:
        """Resolve to a CatalogAlbum, or None when nothing usable was found.

        Raises ResolutionError on network or payload failures. Only a
        successful result is written to the cache, under the key of the
        original input.
        """
        key = cache_key(artist, album, collection_id)
        cached = self.cache.get(key)
        if cached is not None:
            logger.info(f"Using cached data for: {artist} - {album}")
            return cached.value

        result = self._fetch(artist, album, collection_id)
        if result is not None:
            self.cache.put(key, result)
        return result

    def _fetch(self, artist: str, album: str, collection_id: Optional[int]) -> Optional[CatalogAlbum]:
        query = f"{artist} - {album}"
        target_id = collection_id
        terms = f"{artist} {album}"
        limit = self.search_limit
        revised = False
        while True:
            if target_id:
                if target_id != collection_id:
                    cached = self.cache.get(cache_key(artist, album, target_id))
                    if cached is not None:
                        return cached.value
                logger.info(f"Using direct collection ID: {target_id}")
                selected = self._lookup_collection(target_id)
                if selected is None:
                    logger.error(f"Collection ID not found: {target_id}")
                    return None
                break

            results = self.client.search(terms, limit=limit)
            try:
                selected = select_candidate(artist, album, results)
                logger.info(f"Found exact match: {describe_candidate(selected)}")
                break
            except AmbiguousMatch as ambiguity:
                if ambiguity.is_miss and results and revised:
                    # Revised terms found albums under another artist spelling
                    ambiguity = AmbiguousMatch(query, results)
                if not ambiguity.is_miss:
                    logger.info(f"No exact match for album \"{album}\". Found {len(ambiguity.candidates)} album(s)")
                    selected = self._choose(ambiguity)
                    if selected is None:
                        return None
                    break

                self._log_miss(artist, album, results)
                choice = self._ask_after_miss(query)
                if choice is None:
                    return None
                if isinstance(choice, ManualId):
                    target_id = choice.collection_id
                else:
                    logger.info(f"Searching iTunes for: \"{choice.terms}\"")
                    terms = choice.terms
                    limit = self.search_again_limit
                    revised = True

        return self._build_album(selected)

    def _ask_after_miss(self, query: str) -> Optional[Choice]:
        """Offer an empty candidate list until the answer is a new search, an id, or Abort (None)."""
        while True:
            choice = self.disambiguator.present_choices([], query)
            if isinstance(choice, Abort):
                logger.info(f"Album lookup abandoned for \"{query}\"")
                return None
            if isinstance(choice, (SearchAgain, ManualId)):
                return choice
            if isinstance(choice, Selection):
                logger.warning(f"Selection {choice.index} out of range, no candidates to pick from")
                continue
            raise TypeError(f"Unknown disambiguation choice: {choice!r}")

    def _log_miss(self, artist: str, album: str, results: List[Dict[str, Any]]) -> None:
        if not results:
            logger.info(f"No albums found for: {artist} - {album}")
            return
        returned = ", ".join(f"{r.get('artistName')} - {r.get('collectionName')}" for r in results[:5])
        logger.info(f"No matching artist found for: {artist}. iTunes returned: {returned}")

    def _choose(self, ambiguity: AmbiguousMatch) -> Optional[Dict[str, Any]]:
        """Ask the disambiguator until it selects a candidate or aborts."""
        pool = list(ambiguity.candidates)
        while True:
            choice = self.disambiguator.present_choices(pool, ambiguity.query)
            if isinstance(choice, Abort):
                logger.info(f"Album selection aborted for \"{ambiguity.query}\"")
                return None
            if isinstance(choice, Selection):
                if 0 <= choice.index < len(pool):
                    selected = pool[choice.index]
                    logger.info(f"Selected: {describe_candidate(selected)}")
                    return selected
                logger.warning(f"Selection {choice.index} out of range for {len(pool)} candidate(s)")
            elif isinstance(choice, SearchAgain):
                logger.info(f"Searching iTunes for: \"{choice.terms}\"")
                pool = self.client.search(choice.terms, limit=self.search_again_limit)
                if not pool:
                    logger.info("No results found. Try different search terms or enter ID manually.")
            elif isinstance(choice, ManualId):
                logger.info(f"Looking up collection ID {choice.collection_id}")
                found = self._lookup_collection(choice.collection_id)
                if found is None:
                    logger.info(f"Collection ID {choice.collection_id} not found. Try again.")
                else:
                    pool = [found]
            else:
                raise TypeError(f"Unknown disambiguation choice: {choice!r}")

    def _lookup_collection(self, collection_id: int) -> Optional[Dict[str, Any]]:
        results = self.client.lookup(collection_id)
        if not results:
            return None
        result = dict(results[0])
        result.setdefault("collectionId", collection_id)
        return result

    def _build_album(self, candidate: Dict[str, Any]) -> Optional[CatalogAlbum]:
        try:
            collection_id = int(candidate["collectionId"])
            items = self.client.lookup(collection_id, entity="song")
            tracks = _build_tracks(items)
            album = CatalogAlbum(
                title=candidate["collectionName"],
                artist=candidate["artistName"],
                cover_url=_cover_url(candidate.get("artworkUrl100")),
                collection_id=collection_id,
                collection_view_url=_view_url(candidate.get("collectionViewUrl")),
                tracks=tuple(tracks),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ResolutionError(f"Malformed iTunes album payload: {e}") from e

        if not album.tracks:
            logger.warning(f"No tracks listed for collection {collection_id}")
            return None
        return album
