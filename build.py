#!/usr/bin/env python3
"""
build.py: KC Map places dataset builder.

Builds the canonical places.json for one or more apps from the apps/
directory.  Each app has its own app.yaml (region, categories, limits).
Shared code lives in kcmap/.

Pipeline per app:
    Overpass (one request per category, paced) → normalize → cap
    → dedupe → places.json → data-quality report

Usage:
    python build.py kc                      # build the kc app
    python build.py kc --cache              # reuse raw fetches if < 24h old
    python build.py kc --categories parks,museums
    python build.py --all                   # build every app in apps/
    python build.py kc --verbose            # debug logging
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path

from kcmap.categories import Vocabulary
from kcmap.config import AppConfig, list_apps, load_app_config
from kcmap.dedupe import dedupe
from kcmap.ingest import CategoryState, Ingestor
from kcmap.normalize import Normalizer
from kcmap.query import PlaceStore
from kcmap.source_base import FeatureSource
from kcmap.sources.overpass import OverpassSource
from kcmap.storage import write_places

log = logging.getLogger("build")


# ---------------------------------------------------------------------------
# Data-quality report
# ---------------------------------------------------------------------------
def validate_output(path: Path, vocabulary: Vocabulary, categories: list[str]) -> list[str]:
    """Reload the written dataset through the query path and flag empty types.

    Returns a list of warnings (empty when every category has places).
    """
    store = PlaceStore(path, vocabulary)
    warnings: list[str] = []
    for category in categories:
        place_type = vocabulary.type_for(category)
        if place_type is None:
            warnings.append(f"category '{category}' has no rule")
            continue
        count = len(store.filter_by_types([place_type]))
        log.info("  %-14s %-16s %4d", category, place_type, count)
        if not count:
            warnings.append(f"type '{place_type}' ({category}) has no places")
    return warnings


# ---------------------------------------------------------------------------
# App builder
# ---------------------------------------------------------------------------
def build_app(
    app_id: str,
    use_cache: bool = False,
    selected_categories: set[str] | None = None,
    output: Path | None = None,
    source: FeatureSource | None = None,
    config: AppConfig | None = None,
) -> Path:
    """Build a single app. Returns the places.json path."""
    config = config or load_app_config(app_id)
    output = output or config.output

    log.info("=" * 60)
    log.info("Building app: %s (%s)", config.title, app_id)
    log.info("=" * 60)

    vocabulary = Vocabulary.from_config(config.categories_extra)
    categories = list(config.categories)
    if selected_categories:
        categories = [c for c in categories if c in selected_categories]
    if not categories:
        log.error("No categories selected for app %s!", app_id)
        return output
    log.info("Active categories: %s", ", ".join(categories))

    if source is None:
        source = OverpassSource(
            endpoint=config.overpass_url,
            timeout=config.overpass_timeout,
            user_agent=config.user_agent,
        )
    log.info("Source: %s (%s)", source.description, source.url or source.name)

    ingestor = Ingestor(
        source,
        Normalizer(vocabulary, config.region),
        config.region.bbox,
        max_results=config.max_results_per_category,
        request_delay=config.request_delay_seconds,
        cache_dir=config.cache_dir,
        use_cache=use_cache,
    )
    places = ingestor.ingest(categories)
    log.info("Total places (pre-dedup): %d", len(places))

    places = dedupe(places, epsilon=config.epsilon_degrees)
    log.info("Total places (post-dedup): %d", len(places))

    write_places(output, places)

    # Pipeline summary
    for run in ingestor.runs:
        note = " (cache)" if run.from_cache else ""
        if run.state is CategoryState.FAILED:
            note += f" FAILED: {run.error}"
        log.info("  %-14s %-7s raw=%-4d rejected=%-4d capped=%-4d kept=%d%s",
                 run.category, run.state.value, run.raw_count, run.rejected,
                 run.capped, len(run.places), note)

    log.info("Validating %s …", output)
    warnings = validate_output(output, vocabulary, categories)
    if warnings:
        log.warning("DATA QUALITY: %d empty categories in %s:", len(warnings), app_id)
        for w in warnings:
            log.warning("  ⚠ %s", w)
    else:
        log.info("Validation OK, all %d categories have places", len(categories))

    log.info("Build complete for %s → %s (%d places)", app_id, output, len(places))
    return output


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------
def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="KC Map: build places dataset(s)")
    parser.add_argument("apps", nargs="*", help="App IDs to build (default: all)")
    parser.add_argument("--all", action="store_true", help="Build all apps")
    parser.add_argument("--cache", action="store_true", help="Use cached fetches if < 24h old")
    parser.add_argument("--categories", type=str, default=None, help="Comma-separated category filter")
    parser.add_argument("--output", type=Path, default=None, help="Override output path (single app only)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    # Determine which apps to build
    if args.all:
        app_ids = list_apps()
    elif args.apps:
        app_ids = args.apps
    else:
        available = list_apps()
        if len(available) == 1:
            app_ids = available
        else:
            parser.error(f"Specify app(s) to build or use --all. Available: {', '.join(available)}")

    if args.output and len(app_ids) > 1:
        parser.error("--output only makes sense for a single app")

    selected = set(args.categories.split(",")) if args.categories else None

    for app_id in app_ids:
        build_app(app_id, use_cache=args.cache, selected_categories=selected, output=args.output)


if __name__ == "__main__":
    main()
