"""Exception types raised by the enrichment pipeline."""

from __future__ import annotations

from typing import List, Optional


class EnrichmentError(Exception):
    """Base class for every pipeline failure."""


class MalformedInputError(EnrichmentError):
    """Telemetry document is missing a required element or cannot be parsed."""

    def __init__(self, message: str, source: Optional[str] = None):
        self.source = source
        if source:
            message = f"{message} ({source})"
        super().__init__(message)


class ResolutionError(EnrichmentError):
    """Catalog search or lookup failed (network, HTTP status, bad payload)."""


class CacheIOError(EnrichmentError):
    """Catalog cache could not be read or written."""


class AmbiguousMatch(EnrichmentError):
    """Search produced candidates but none is clearly the requested album.

    Not a hard failure: the resolver hands it to the disambiguation callback.
    An empty candidate list means nothing matched the artist at all.
    """

    def __init__(self, query: str, candidates: Optional[List[dict]] = None):
        self.query = query
        self.candidates = list(candidates or [])
        if self.candidates:
            message = f"{len(self.candidates)} candidate album(s) for '{query}', no exact title match"
        else:
            message = f"No matching album for '{query}'"
        super().__init__(message)

    @property
    def is_miss(self) -> bool:
        return not self.candidates
