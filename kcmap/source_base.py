"""
Base class for KC Map feature sources.

To add a new feature source:
  1. Create a new .py file in kcmap/sources/
  2. Subclass FeatureSource
  3. Implement fetch() to return a list of RawFeature for one category rule
  4. Pass an instance to the Ingestor (build.py wires up OverpassSource)

A RawFeature is the untouched output of the geodata provider:
  - id: int | str     (provider-scoped identifier)
  - tags: dict[str, str]
  - lat / lon: float  (point features)
  - center_lat / center_lon: float  (area features answered with a center)

Sources should raise SourceUnavailable when the provider can't be reached or
answers with something that isn't a feature list.  The Ingestor catches it and
carries on with the next category.
"""

from __future__ import annotations

import abc
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from kcmap.categories import CategoryRule
    from kcmap.config import BoundingBox


class SourceUnavailable(Exception):
    """The external source failed, timed out, or returned a malformed payload."""


def _opt_float(value: Any) -> float | None:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


@dataclass(frozen=True)
class RawFeature:
    """A single tagged geographic record as returned by the source."""

    id: int | str
    tags: dict[str, str] = field(default_factory=dict)
    lat: float | None = None
    lon: float | None = None
    center_lat: float | None = None
    center_lon: float | None = None
    kind: str = "node"  # node / way / relation

    @classmethod
    def from_element(cls, element: dict[str, Any]) -> RawFeature:
        """Build a feature from one Overpass JSON element.

        Raises ValueError if the element has no id.  Coordinates that don't
        parse are kept as None; the normalizer decides what to do with them.
        """
        if not isinstance(element, dict) or element.get("id") is None:
            raise ValueError(f"element without id: {element!r}")
        raw_tags = element.get("tags") or {}
        tags = {str(k): str(v) for k, v in raw_tags.items()} if isinstance(raw_tags, dict) else {}
        center = element.get("center") or {}
        if not isinstance(center, dict):
            center = {}
        return cls(
            id=element["id"],
            tags=tags,
            lat=_opt_float(element.get("lat")),
            lon=_opt_float(element.get("lon")),
            center_lat=_opt_float(center.get("lat")),
            center_lon=_opt_float(center.get("lon")),
            kind=str(element.get("type") or "node"),
        )

    def to_dict(self) -> dict[str, Any]:
        """Inverse of from_element, used by the raw fetch cache."""
        d: dict[str, Any] = {"type": self.kind, "id": self.id, "tags": dict(self.tags)}
        if self.lat is not None:
            d["lat"] = self.lat
        if self.lon is not None:
            d["lon"] = self.lon
        if self.center_lat is not None or self.center_lon is not None:
            d["center"] = {"lat": self.center_lat, "lon": self.center_lon}
        return d


class FeatureSource(abc.ABC):
    """Abstract base class for a geodata source."""

    @property
    @abc.abstractmethod
    def name(self) -> str:
        """Short identifier for this source, e.g. 'overpass'."""
        ...

    @property
    @abc.abstractmethod
    def description(self) -> str:
        """Human-readable description for build logs."""
        ...

    @property
    def url(self) -> str:
        """Public URL for this source (for attribution / info display).

        Override in subclasses to point to the provider landing page.
        Returns empty string by default.
        """
        return ""

    @abc.abstractmethod
    def fetch(self, rule: CategoryRule, bbox: BoundingBox) -> list[RawFeature]:
        """Fetch every feature matching the rule's tag predicates inside bbox.

        Return features in provider order; no filtering or deduplication
        needed here.
        """
        ...
