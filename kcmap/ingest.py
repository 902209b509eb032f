"""
Fetch every category from the feature source, one at a time.

The Overpass API is a shared public service, so categories are never fetched
in parallel: the scheduler waits until ``request_delay`` seconds have passed
since the previous request before issuing the next one.

Each category moves through PENDING → IN_FLIGHT → DONE | FAILED.  A failure
(source down, timeout, junk payload) only fails that category; the build
carries on with whatever the other categories return.
"""

from __future__ import annotations

import enum
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable

from kcmap.categories import CategoryRule, Vocabulary
from kcmap.config import KC_BBOX, BoundingBox
from kcmap.normalize import Normalizer
from kcmap.place import Place
from kcmap.source_base import FeatureSource, RawFeature, SourceUnavailable
from kcmap.storage import load_cached, save_cache

log = logging.getLogger(__name__)

MAX_RESULTS_PER_CATEGORY = 50
REQUEST_DELAY_SECONDS = 1.0


class CategoryState(enum.Enum):
    PENDING = "pending"
    IN_FLIGHT = "in_flight"
    DONE = "done"
    FAILED = "failed"


@dataclass
class CategoryRun:
    """Progress and counts for one category."""

    category: str
    state: CategoryState = CategoryState.PENDING
    places: list[Place] = field(default_factory=list)
    raw_count: int = 0
    rejected: int = 0
    capped: int = 0
    from_cache: bool = False
    error: str = ""


class Ingestor:
    def __init__(
        self,
        source: FeatureSource,
        normalizer: Normalizer,
        bbox: BoundingBox = KC_BBOX,
        *,
        max_results: int = MAX_RESULTS_PER_CATEGORY,
        request_delay: float = REQUEST_DELAY_SECONDS,
        cache_dir: Path | None = None,
        use_cache: bool = False,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.source = source
        self.normalizer = normalizer
        self.bbox = bbox
        self.max_results = max_results
        self.request_delay = request_delay
        self.cache_dir = cache_dir
        self.use_cache = use_cache and cache_dir is not None
        self._clock = clock
        self._sleep = sleep
        self._last_request: float | None = None
        self.runs: list[CategoryRun] = []

    @property
    def vocabulary(self) -> Vocabulary:
        return self.normalizer.vocabulary

    def ingest(self, categories: Iterable[str]) -> list[Place]:
        """Places for every category, concatenated in category order.

        Never raises for source failures; failed categories contribute
        nothing.  Per-category details are left in ``self.runs``.
        """
        self.runs = [CategoryRun(c) for c in categories]
        for run in self.runs:
            self._step(run)

        places = [p for run in self.runs for p in run.places]
        failed = [r.category for r in self.runs if r.state is CategoryState.FAILED]
        log.info("Ingested %d places from %d categories", len(places), len(self.runs))
        if failed:
            log.warning("Failed categories: %s", ", ".join(failed))
        return places

    # ------------------------------------------------------------------
    # Scheduler
    # ------------------------------------------------------------------
    def _wait_for_slot(self) -> None:
        if self._last_request is None:
            return
        remaining = self.request_delay - (self._clock() - self._last_request)
        if remaining > 0:
            log.debug("Waiting %.2fs before next request", remaining)
            self._sleep(remaining)

    def _step(self, run: CategoryRun) -> None:
        rule = self.vocabulary.rules_for(run.category)
        if rule is None:
            log.warning("No category rule for %r, skipping", run.category)
            run.state = CategoryState.DONE
            return

        features = self._cached_features(run) if self.use_cache else None
        if features is None:
            run.state = CategoryState.IN_FLIGHT
            features = self._fetch(run, rule)
            if features is None:
                run.state = CategoryState.FAILED
                return

        self._collect(run, features)
        run.state = CategoryState.DONE

    def _fetch(self, run: CategoryRun, rule: CategoryRule) -> list[RawFeature] | None:
        self._wait_for_slot()
        log.info("=== Fetching: %s (%s) ===", run.category,
                 ", ".join(str(p) for p in rule.predicates))
        try:
            features = self.source.fetch(rule, self.bbox)
        except SourceUnavailable as exc:
            log.warning("%s: source unavailable: %s", run.category, exc)
            run.error = str(exc)
        except Exception as exc:
            log.exception("Failed to fetch %s from %s", run.category, self.source.name)
            run.error = repr(exc)
        else:
            self._save(run, features)
            return features
        finally:
            self._last_request = self._clock()

        stale = self._cached_features(run, max_age=None)
        if stale is not None:
            log.warning("Using stale cache for %s as fallback", run.category)
            return stale
        return None

    def _save(self, run: CategoryRun, features: list[RawFeature]) -> None:
        if self.cache_dir is None:
            return
        try:
            save_cache(self.cache_dir, run.category, [f.to_dict() for f in features])
        except OSError as exc:
            log.warning("Could not cache %s: %s", run.category, exc)

    def _cached_features(self, run: CategoryRun, **kwargs) -> list[RawFeature] | None:
        if self.cache_dir is None:
            return None
        cached = load_cached(self.cache_dir, run.category, **kwargs)
        if cached is None:
            return None
        features = []
        for element in cached:
            try:
                features.append(RawFeature.from_element(element))
            except ValueError:
                continue
        run.from_cache = True
        return features

    def _collect(self, run: CategoryRun, features: list[RawFeature]) -> None:
        run.raw_count = len(features)
        places: list[Place] = []
        for feature in features:
            place = self.normalizer.normalize(feature, run.category)
            if place is None:
                run.rejected += 1
            else:
                places.append(place)

        if len(places) > self.max_results:
            run.capped = len(places) - self.max_results
            places = places[: self.max_results]
        run.places = places
        log.info(
            "%s: %d places (from %d features, %d rejected, %d over cap)",
            run.category, len(places), run.raw_count, run.rejected, run.capped,
        )
