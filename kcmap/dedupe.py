"""
Collapse places that are the same real-world spot.

Overlapping category queries (a water park is also a swimming pool, a park
relation and its playground node share a name) return the same place more
than once.  Two places are duplicates when they have the identical name, or
when both their latitude and longitude differ by less than ``epsilon``
degrees.  The first one seen is kept as-is; nothing is merged from the other.

The epsilon is a flat degree box, not a distance: ~100 m of latitude and
~85 m of longitude around Kansas City.
"""

from __future__ import annotations

import logging
from typing import Iterable

from kcmap.place import Place

log = logging.getLogger(__name__)

PROXIMITY_EPSILON = 0.001


def is_duplicate(a: Place, b: Place, epsilon: float = PROXIMITY_EPSILON) -> bool:
    if a.name == b.name:
        return True
    return (
        abs(a.coordinates[0] - b.coordinates[0]) < epsilon
        and abs(a.coordinates[1] - b.coordinates[1]) < epsilon
    )


def dedupe(places: Iterable[Place], epsilon: float = PROXIMITY_EPSILON) -> list[Place]:
    """Greedy single pass; each candidate is checked against those already kept."""
    accepted: list[Place] = []
    seen = 0
    for place in places:
        seen += 1
        dup_of = next((p for p in accepted if is_duplicate(p, place, epsilon)), None)
        if dup_of is not None:
            log.debug("Dedup: %s %r duplicates %s %r", place.id, place.name, dup_of.id, dup_of.name)
            continue
        accepted.append(place)

    if seen != len(accepted):
        log.info("Dedup: %d → %d places (%d duplicates)", seen, len(accepted), seen - len(accepted))
    return accepted
