"""
Disk I/O: the canonical places.json and the per-category raw fetch cache.
"""

from __future__ import annotations

import json
import logging
import time
from pathlib import Path
from typing import Any, Iterable

from kcmap.place import Place

log = logging.getLogger(__name__)

CACHE_MAX_AGE_SECONDS = 24 * 60 * 60  # 24 hours


# ---------------------------------------------------------------------------
# Canonical dataset
# ---------------------------------------------------------------------------
def write_places(path: Path, places: Iterable[Place]) -> int:
    """Write places as a JSON array, preserving order. Returns count written."""
    records = [p.to_dict() for p in places]
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(json.dumps(records, indent=2, ensure_ascii=False) + "\n")
    tmp.replace(path)
    log.info("Wrote %d places to %s", len(records), path)
    return len(records)


def read_places(path: Path) -> list[Any]:
    """Read the raw JSON array back. Record validation is the caller's job.

    Raises OSError / ValueError if the file is missing or not a JSON array.
    """
    data = json.loads(path.read_text())
    if not isinstance(data, list):
        raise ValueError(f"{path} does not hold a JSON array")
    return data


# ---------------------------------------------------------------------------
# Raw fetch cache
# ---------------------------------------------------------------------------
def load_cached(
    cache_dir: Path, name: str, max_age: float | None = CACHE_MAX_AGE_SECONDS,
) -> list[dict] | None:
    """Cached records for name, or None if absent / older than max_age.

    max_age=None accepts any age (stale fallback after a failed fetch).
    """
    cache_file = cache_dir / f"{name}.json"
    if not cache_file.exists():
        return None
    try:
        age = time.time() - cache_file.stat().st_mtime
        if max_age is not None and age > max_age:
            log.info("Cache for %s is stale (%.0fh old), refetching", name, age / 3600)
            return None
        data = json.loads(cache_file.read_text())
    except (OSError, ValueError) as exc:
        log.warning("Cache for %s is unreadable, ignoring: %s", name, exc)
        return None
    if not isinstance(data, list):
        return None
    log.info("Using cached data for %s (%.0fh old)", name, age / 3600)
    return data


def save_cache(cache_dir: Path, name: str, records: list[dict]) -> None:
    cache_dir.mkdir(parents=True, exist_ok=True)
    cache_file = cache_dir / f"{name}.json"
    cache_file.write_text(json.dumps(records))
    log.info("Cached %d records for %s", len(records), name)
