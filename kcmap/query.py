"""
Read side: filter and search the canonical place collection.

The query path does not trust the stored dataset to be clean; every result
goes through the same quality gate (real name, two finite coordinates) no
matter what ingestion already dropped.
"""

from __future__ import annotations

import logging
import math
import threading
from pathlib import Path
from typing import Iterable, Sequence

from kcmap.categories import DEFAULT_VOCABULARY, Vocabulary
from kcmap.place import MalformedRecord, Place
from kcmap.storage import read_places

log = logging.getLogger(__name__)

PLACEHOLDER_NAMES = frozenset({"Unknown"})


def _valid_coordinate(value: object) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
        and value != 0
    )


def is_displayable(place: Place) -> bool:
    name = (place.name or "").strip()
    if not name or name in PLACEHOLDER_NAMES:
        return False
    coords = place.coordinates
    if not isinstance(coords, (list, tuple)) or len(coords) != 2:
        return False
    return all(_valid_coordinate(c) for c in coords)


def filter_by_types(places: Iterable[Place], types: Iterable[str]) -> list[Place]:
    wanted = set(types)
    return [p for p in places if p.type in wanted and is_displayable(p)]


def _matches(place: Place, needle: str) -> bool:
    return any(
        needle in (field or "").lower()
        for field in (place.name, place.description, place.address)
    )


def search(places: Iterable[Place], query: str, types: Iterable[str]) -> list[Place]:
    """Case-insensitive substring match on name, description or address.

    A blank query returns exactly filter_by_types(places, types).  Results
    keep collection order; there is no ranking.
    """
    base = filter_by_types(places, types)
    if not (query or "").strip():
        return base
    # whitespace around a non-blank query is part of the match
    needle = query.lower()
    return [p for p in base if _matches(p, needle)]


class PlaceStore:
    """Lazily loaded, read-only view of places.json.

    The first call to load() reads the file; every later call (from any
    thread) returns the same tuple.
    """

    def __init__(self, path: Path, vocabulary: Vocabulary = DEFAULT_VOCABULARY) -> None:
        self.path = Path(path)
        self.vocabulary = vocabulary
        self._places: tuple[Place, ...] | None = None
        self._lock = threading.Lock()

    @property
    def loaded(self) -> bool:
        return self._places is not None

    def load(self) -> tuple[Place, ...]:
        places = self._places
        if places is not None:
            return places
        with self._lock:
            if self._places is None:
                self._places = self._read()
            return self._places

    def _read(self) -> tuple[Place, ...]:
        try:
            records = read_places(self.path)
        except (OSError, ValueError) as exc:
            log.error("Could not load places from %s: %s", self.path, exc)
            return ()

        places: list[Place] = []
        bad = 0
        for record in records:
            try:
                places.append(Place.from_dict(record))
            except MalformedRecord as exc:
                bad += 1
                log.debug("Skipping malformed place record: %s", exc)
        if bad:
            log.warning("Skipped %d malformed place records in %s", bad, self.path)
        log.info("Loaded %d places from %s", len(places), self.path)
        return tuple(places)

    def filter_by_types(self, types: Sequence[str]) -> list[Place]:
        return filter_by_types(self.load(), types)

    def search(self, query: str, types: Sequence[str] | None = None) -> list[Place]:
        if types is None:
            types = self.vocabulary.types
        return search(self.load(), query, types)
