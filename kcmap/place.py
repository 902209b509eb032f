"""
The canonical Place record and its persisted (JSON) form.

Each persisted place is an object with every field present:

  - id: str            "{category}-{source id}"
  - name: str
  - type: str          canonical place type, e.g. "museum"
  - coordinates: [lat, lng]
  - description: str   may be empty
  - address: str
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

REQUIRED_FIELDS = ("id", "name", "type", "coordinates", "description", "address")


class MalformedRecord(ValueError):
    """A persisted place is missing fields or has unusable coordinates."""


@dataclass(frozen=True)
class Place:
    """A single normalized, deduplicated place."""

    id: str
    name: str
    type: str
    coordinates: tuple[float, float]
    description: str
    address: str

    @property
    def lat(self) -> float:
        return self.coordinates[0]

    @property
    def lng(self) -> float:
        return self.coordinates[1]

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "coordinates": [self.coordinates[0], self.coordinates[1]],
            "description": self.description,
            "address": self.address,
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Place:
        if not isinstance(d, dict):
            raise MalformedRecord(f"expected an object, got {type(d).__name__}")
        missing = [f for f in REQUIRED_FIELDS if d.get(f) is None]
        if missing:
            raise MalformedRecord(f"missing {', '.join(missing)}")
        coords = d["coordinates"]
        if not isinstance(coords, (list, tuple)) or len(coords) != 2:
            raise MalformedRecord(f"coordinates must be [lat, lng], got {coords!r}")
        try:
            lat, lng = float(coords[0]), float(coords[1])
        except (TypeError, ValueError) as exc:
            raise MalformedRecord(f"non-numeric coordinates {coords!r}") from exc
        return cls(
            id=str(d["id"]),
            name=str(d["name"]),
            type=str(d["type"]),
            coordinates=(lat, lng),
            description=str(d["description"]),
            address=str(d["address"]),
        )
