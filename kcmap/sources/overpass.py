"""
OpenStreetMap features via the Overpass API.

Source: https://overpass-api.de/
One POST per category: a node clause for every tag predicate plus way and
relation clauses for area predicates (parks, playgrounds), all clipped to the
region bounding box.  ``out center tags`` makes Overpass answer areas with a
center point so every element carries a coordinate pair.

The public instance asks for no more than a couple of requests per second
per client; pacing is the Ingestor's job, not this module's.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import requests
from jinja2 import Environment, FileSystemLoader, StrictUndefined

from kcmap.categories import CategoryRule
from kcmap.config import DEFAULT_OVERPASS_URL, DEFAULT_USER_AGENT, BoundingBox
from kcmap.source_base import FeatureSource, RawFeature, SourceUnavailable

log = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates"
QUERY_TEMPLATE = "overpass.ql.j2"

_env = Environment(
    loader=FileSystemLoader(str(TEMPLATE_DIR)),
    undefined=StrictUndefined,
    keep_trailing_newline=True,
)


def build_query(rule: CategoryRule, bbox: BoundingBox, timeout: int = 25) -> str:
    """Render the Overpass QL query for one category."""
    return _env.get_template(QUERY_TEMPLATE).render(rule=rule, bbox=bbox, timeout=timeout)


def parse_elements(payload: Any) -> list[RawFeature]:
    """Pull features out of an Overpass JSON response.

    Raises SourceUnavailable if the payload isn't ``{"elements": [...]}``;
    individual elements that can't be read are skipped.
    """
    if not isinstance(payload, dict) or not isinstance(payload.get("elements"), list):
        raise SourceUnavailable("Overpass response has no 'elements' list")
    features: list[RawFeature] = []
    skipped = 0
    for element in payload["elements"]:
        try:
            features.append(RawFeature.from_element(element))
        except ValueError:
            skipped += 1
    if skipped:
        log.debug("Overpass: skipped %d unreadable elements", skipped)
    return features


class OverpassSource(FeatureSource):
    def __init__(
        self,
        endpoint: str = DEFAULT_OVERPASS_URL,
        timeout: int = 25,
        user_agent: str = DEFAULT_USER_AGENT,
        session: requests.Session | None = None,
    ) -> None:
        self.endpoint = endpoint
        self.timeout = timeout
        self.user_agent = user_agent
        self.session = session or requests.Session()

    @property
    def name(self) -> str:
        return "overpass"

    @property
    def description(self) -> str:
        return "OpenStreetMap via the Overpass API"

    @property
    def url(self) -> str:
        return "https://wiki.openstreetmap.org/wiki/Overpass_API"

    def fetch(self, rule: CategoryRule, bbox: BoundingBox) -> list[RawFeature]:
        query = build_query(rule, bbox, timeout=self.timeout)
        log.debug("Overpass query for %s:\n%s", rule.category, query)
        try:
            # Client timeout a bit above the server-side one
            resp = self.session.post(
                self.endpoint,
                data=query.encode("utf-8"),
                headers={"Content-Type": "text/plain", "User-Agent": self.user_agent},
                timeout=self.timeout + 5,
            )
            resp.raise_for_status()
            payload = resp.json()
        except requests.RequestException as exc:
            raise SourceUnavailable(f"Overpass request for {rule.category} failed: {exc}") from exc
        except ValueError as exc:
            raise SourceUnavailable(f"Overpass returned non-JSON for {rule.category}") from exc

        features = parse_elements(payload)
        log.info("Overpass: %d elements for %s", len(features), rule.category)
        return features
