"""
Turn raw OpenStreetMap features into canonical Place records.

A feature is rejected (normalize() returns None) when:
  - its category isn't in the vocabulary
  - it has no usable name tag
  - none of the category's tag predicates match
  - the category needs confirmation and the feature doesn't provide it
  - neither the point nor the area center gives two finite coordinates
"""

from __future__ import annotations

import logging
import math
from typing import Any, Mapping

from kcmap.categories import DEFAULT_VOCABULARY, Vocabulary
from kcmap.config import Region
from kcmap.place import Place
from kcmap.source_base import RawFeature

log = logging.getLogger(__name__)

DESCRIPTION_SEPARATOR = " • "

# (tag, format) in the order they appear in the description
_DESCRIPTION_TAGS: tuple[tuple[str, str], ...] = (
    ("leisure", "{}"),
    ("tourism", "{}"),
    ("amenity", "{}"),
    ("sport", "Sports: {}"),
    ("playground", "Playground type: {}"),
)


def _coordinate(value: Any) -> float | None:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    # 0.0 is what a missing coordinate turns into upstream
    if not math.isfinite(number) or number == 0:
        return None
    return number


def feature_coordinates(feature: RawFeature) -> tuple[float, float] | None:
    """Point coordinates if usable, else the area center, else None."""
    for lat, lon in ((feature.lat, feature.lon), (feature.center_lat, feature.center_lon)):
        lat, lon = _coordinate(lat), _coordinate(lon)
        if lat is not None and lon is not None:
            return lat, lon
    return None


def describe(tags: Mapping[str, str]) -> str:
    parts = []
    for key, fmt in _DESCRIPTION_TAGS:
        value = (tags.get(key) or "").strip()
        if value:
            parts.append(fmt.format(value.replace("_", " ")))
    return DESCRIPTION_SEPARATOR.join(parts)


def format_address(tags: Mapping[str, str], region: Region) -> str:
    """Street line (if any), city, state, postcode (if any)."""
    parts: list[str] = []
    number = (tags.get("addr:housenumber") or "").strip()
    street = (tags.get("addr:street") or "").strip()
    if number and street:
        parts.append(f"{number} {street}")
    elif street:
        parts.append(street)

    parts.append((tags.get("addr:city") or "").strip() or region.default_city)
    parts.append((tags.get("addr:state") or "").strip() or region.default_state)

    postcode = (tags.get("addr:postcode") or "").strip()
    if postcode:
        parts.append(postcode)
    return ", ".join(p for p in parts if p)


class Normalizer:
    """Feature → Place for one vocabulary and deployment region."""

    def __init__(
        self,
        vocabulary: Vocabulary = DEFAULT_VOCABULARY,
        region: Region | None = None,
    ) -> None:
        self.vocabulary = vocabulary
        self.region = region or Region()

    def normalize(self, feature: RawFeature, category: str) -> Place | None:
        rule = self.vocabulary.rules_for(category)
        if rule is None:
            return None

        tags = feature.tags
        name = (tags.get("name") or "").strip()
        if not name:
            return None

        if not rule.matches(tags):
            log.debug("%s: %r (%s) matches none of %s", category, name, feature.id,
                      ", ".join(str(p) for p in rule.predicates + rule.area_predicates))
            return None

        if not rule.confirms(tags):
            log.debug("%s: %r (%s) not confirmed, skipping", category, name, feature.id)
            return None

        coords = feature_coordinates(feature)
        if coords is None:
            log.debug("%s: %r (%s) has no usable coordinates", category, name, feature.id)
            return None

        return Place(
            id=f"{category}-{feature.id}",
            name=name,
            type=rule.place_type,
            coordinates=coords,
            description=describe(tags),
            address=format_address(tags, self.region),
        )
