"""Music catalog lookup: iTunes client, album resolution and disambiguation."""

from .client import ITunesClient
from .disambiguation import (
    Abort,
    Disambiguator,
    ManualId,
    NonInteractiveDisambiguator,
    ScriptedDisambiguator,
    SearchAgain,
    Selection,
    TerminalDisambiguator,
)
from .resolver import CatalogResolver, artist_matches, normalize, select_candidate

__all__ = [
    "ITunesClient",
    "CatalogResolver",
    "normalize",
    "artist_matches",
    "select_candidate",
    "Disambiguator",
    "TerminalDisambiguator",
    "ScriptedDisambiguator",
    "NonInteractiveDisambiguator",
    "Selection",
    "SearchAgain",
    "ManualId",
    "Abort",
]
