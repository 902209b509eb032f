"""
App configuration, read from apps/<app_id>/app.yaml.

Everything but the title has a default matching the Kansas City deployment,
so a minimal app.yaml only needs:

    app:
      title: KC Kids Explore
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

log = logging.getLogger(__name__)

ROOT = Path(__file__).resolve().parent.parent
APPS_DIR = ROOT / "apps"

DEFAULT_OVERPASS_URL = "https://overpass-api.de/api/interpreter"
DEFAULT_USER_AGENT = "kcmap/0.1 (places build)"


@dataclass(frozen=True)
class BoundingBox:
    south: float
    west: float
    north: float
    east: float

    def __post_init__(self) -> None:
        if not (self.south < self.north and self.west < self.east):
            raise ValueError(f"degenerate bounding box: {self}")

    def __str__(self) -> str:
        # Overpass order: south,west,north,east
        return f"{self.south},{self.west},{self.north},{self.east}"


# Kansas City metro, tighter than the city limits
KC_BBOX = BoundingBox(south=39.0, west=-94.7, north=39.2, east=-94.4)


@dataclass(frozen=True)
class Region:
    bbox: BoundingBox = KC_BBOX
    default_city: str = "Kansas City"
    default_state: str = "MO"


@dataclass(frozen=True)
class AppConfig:
    app_id: str
    title: str
    region: Region = field(default_factory=Region)
    categories: tuple[str, ...] = (
        "playgrounds", "parks", "museums", "galleries", "science", "planetariums",
    )
    categories_extra: dict[str, dict[str, Any]] = field(default_factory=dict)
    max_results_per_category: int = 50
    request_delay_seconds: float = 1.0
    epsilon_degrees: float = 0.001
    overpass_url: str = DEFAULT_OVERPASS_URL
    overpass_timeout: int = 25
    user_agent: str = DEFAULT_USER_AGENT
    output: Path = ROOT / "dist" / "places.json"
    app_dir: Path | None = None

    @property
    def cache_dir(self) -> Path:
        return (self.app_dir or APPS_DIR / self.app_id) / ".cache"

    @classmethod
    def from_dict(
        cls, app_id: str, data: dict[str, Any], app_dir: Path | None = None,
    ) -> AppConfig:
        app_conf = data.get("app") if isinstance(data, dict) else None
        if not isinstance(app_conf, dict) or not app_conf.get("title"):
            raise ValueError(f"app.yaml for {app_id!r} needs an 'app.title'")

        region_conf = app_conf.get("region") or {}
        bbox_conf = region_conf.get("bbox")
        region = Region(
            bbox=BoundingBox(**{k: float(v) for k, v in bbox_conf.items()}) if bbox_conf else KC_BBOX,
            default_city=region_conf.get("default_city", Region.default_city),
            default_state=region_conf.get("default_state", Region.default_state),
        )
        ingest_conf = app_conf.get("ingest") or {}
        dedupe_conf = app_conf.get("dedupe") or {}
        overpass_conf = app_conf.get("overpass") or {}

        kwargs: dict[str, Any] = {}
        if app_conf.get("categories"):
            kwargs["categories"] = tuple(app_conf["categories"])
        if app_conf.get("output"):
            out = Path(app_conf["output"])
            kwargs["output"] = out if out.is_absolute() else ROOT / out

        return cls(
            app_id=app_id,
            app_dir=app_dir,
            title=app_conf["title"],
            region=region,
            categories_extra=dict(app_conf.get("categories_extra") or {}),
            max_results_per_category=int(ingest_conf.get("max_results_per_category", 50)),
            request_delay_seconds=float(ingest_conf.get("request_delay_seconds", 1.0)),
            epsilon_degrees=float(dedupe_conf.get("epsilon_degrees", 0.001)),
            overpass_url=os.environ.get("OVERPASS_URL")
            or overpass_conf.get("url", DEFAULT_OVERPASS_URL),
            overpass_timeout=int(overpass_conf.get("timeout", 25)),
            user_agent=overpass_conf.get("user_agent", DEFAULT_USER_AGENT),
            **kwargs,
        )


def load_app_config(app_id: str, apps_dir: Path = APPS_DIR) -> AppConfig:
    """Load and return app.yaml for the given app ID."""
    config_file = apps_dir / app_id / "app.yaml"
    if not config_file.exists():
        raise FileNotFoundError(f"App config not found: {config_file}")
    data = yaml.safe_load(config_file.read_text()) or {}
    log.debug("Loaded %s", config_file)
    return AppConfig.from_dict(app_id, data, app_dir=config_file.parent)


def list_apps(apps_dir: Path = APPS_DIR) -> list[str]:
    """Return list of app IDs found in apps/."""
    if not apps_dir.is_dir():
        return []
    return sorted(
        d.name for d in apps_dir.iterdir()
        if d.is_dir() and (d / "app.yaml").exists()
    )
