import sys
from pathlib import Path

import pytest

# Ensure the repo root is on sys.path for direct pytest runs
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from kcmap.place import Place  # noqa: E402
from kcmap.source_base import FeatureSource, RawFeature  # noqa: E402


def make_place(name, type_="park", lat=39.1, lng=-94.5, description="", address="Kansas City, MO", id_=None):
    return Place(
        id=id_ or f"{type_}s-{name.lower().replace(' ', '-')}",
        name=name,
        type=type_,
        coordinates=(lat, lng),
        description=description,
        address=address,
    )


class FakeSource(FeatureSource):
    """Returns canned features per category; raises if told to."""

    def __init__(self, features=None, errors=None):
        self.features = features or {}
        self.errors = errors or {}
        self.calls = []

    @property
    def name(self):
        return "fake"

    @property
    def description(self):
        return "Canned features"

    def fetch(self, rule, bbox):
        self.calls.append(rule.category)
        if rule.category in self.errors:
            raise self.errors[rule.category]
        return list(self.features.get(rule.category, []))


@pytest.fixture
def scenario_features():
    """Two near-duplicate parks and a museum."""
    return [
        RawFeature(id=1, tags={"name": "Oak Park", "leisure": "park"}, lat=39.1, lon=-94.5),
        RawFeature(id=2, tags={"name": "Oak Park", "leisure": "park"}, lat=39.1002, lon=-94.5001),
        RawFeature(id=3, tags={"name": "City Museum", "tourism": "museum"}, lat=39.05, lon=-94.55),
    ]
