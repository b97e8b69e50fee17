"""Disambiguation callback contract for the catalog resolver.

When a search is ambiguous, or finds nothing for the artist, the resolver asks
a Disambiguator what to do. The candidate list is empty after a miss. The
answer is one of four variants:

- Selection(index): pick ``candidates[index]``
- SearchAgain(terms): replace the candidate pool with a fresh search
- ManualId(collection_id): look the id up and offer it as the only candidate
- Abort(): give up on this album

Implementations here: a terminal prompt, a non-interactive one that always
aborts (unattended runs), and a scripted replay of queued answers for tests.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Union

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Selection:
    index: int


@dataclass(frozen=True)
class SearchAgain:
    terms: str


@dataclass(frozen=True)
class ManualId:
    collection_id: int


@dataclass(frozen=True)
class Abort:
    pass


Choice = Union[Selection, SearchAgain, ManualId, Abort]


def describe_candidate(candidate: dict) -> str:
    return f"{candidate.get('artistName', '?')} - {candidate.get('collectionName', '?')} (ID: {candidate.get('collectionId')})"


class Disambiguator(ABC):
    @abstractmethod
    def present_choices(self, candidates: List[dict], query: str) -> Choice:
        """Pick among ``candidates``. Empty after a miss or a fruitless re-search."""


class NonInteractiveDisambiguator(Disambiguator):
    def present_choices(self, candidates: List[dict], query: str) -> Choice:
        logger.warning(f"Ambiguous album for '{query}' ({len(candidates)} candidates), skipping")
        return Abort()


class ScriptedDisambiguator(Disambiguator):
    """Replays queued answers in order; an exhausted queue aborts.

    Every prompt is recorded in ``calls`` as ``(query, candidates)``.
    """

    def __init__(self, choices: Iterable[Choice] = ()):
        self._choices = deque(choices)
        self.calls: List[tuple] = []

    def present_choices(self, candidates: List[dict], query: str) -> Choice:
        self.calls.append((query, list(candidates)))
        return self._choices.popleft() if self._choices else Abort()


class TerminalDisambiguator(Disambiguator):
    def __init__(self, input_fn: Callable[[str], str] = input, output_fn: Callable[[str], None] = print):
        self._input = input_fn
        self._print = output_fn

    def present_choices(self, candidates: List[dict], query: str) -> Choice:
        if candidates:
            self._print(f"\nSelect the correct album for \"{query}\":")
        else:
            self._print(f"\nNo albums found for \"{query}\".")
        for i, candidate in enumerate(candidates, start=1):
            self._print(f"  [{i}] {describe_candidate(candidate)}")
        self._print("  [s] Search with different terms")
        self._print("  [i] Enter iTunes collection ID manually")
        self._print("  [q] Skip this album")

        prompt = "\nSelect 's', 'i' or 'q': "
        if candidates:
            prompt = f"\nSelect (1-{len(candidates)}), 's', 'i' or 'q': "

        while True:
            answer = self._input(prompt).strip().lower()
            if answer == "q":
                return Abort()
            if answer == "s":
                terms = self._input("\nEnter search terms: ").strip()
                if terms:
                    return SearchAgain(terms)
                continue
            if answer == "i":
                collection_id = self.request_manual_id()
                if collection_id is not None:
                    return ManualId(collection_id)
                continue
            if answer.isdigit() and 1 <= int(answer) <= len(candidates):
                return Selection(int(answer) - 1)
            self._print("Invalid selection, try again.")

    def request_manual_id(self) -> Optional[int]:
        self._print("\nYou can find the iTunes collection ID by:")
        self._print("  1. Search for the album on https://music.apple.com")
        self._print("  2. The ID is in the URL: https://music.apple.com/.../album/.../<ID>")
        answer = self._input("\nEnter iTunes collection ID (blank to skip): ").strip()
        if not answer:
            return None
        if not answer.isdigit():
            self._print("Invalid ID, must be a number.")
            return None
        return int(answer)
