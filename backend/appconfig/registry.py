from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml

from appconfig.types import AppConfig, BaseMapConfig, LocationConfig


def _repo_root() -> Path:
    # .../layerview/backend/appconfig/registry.py -> repo root is 2 levels up
    return Path(__file__).resolve().parents[2]


def config_root() -> Path:
    return _repo_root() / "config"


def _load_yaml(path: Path) -> Any:
    raw = path.read_text(encoding="utf-8")
    return yaml.safe_load(raw)


def _load_yaml_list(path: Path, key: str) -> list[dict]:
    data = _load_yaml(path) or {}
    if not isinstance(data, dict) or not isinstance(data.get(key), list):
        raise ValueError(f"Invalid {path.name}: expected a top-level `{key}` list")
    return data[key]


def app_config_path() -> Path:
    return config_root() / "config.json"


@lru_cache(maxsize=1)
def bundled_app_config_document() -> dict[str, Any]:
    """
    Raw bundled `config.json` (served as-is by the HTTP service).
    """
    data = json.loads(app_config_path().read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"Invalid config root: {app_config_path()}")
    # Validate eagerly so a broken bundled file fails at startup, not on first fetch.
    AppConfig.model_validate(data)
    return data


@lru_cache(maxsize=1)
def get_locations() -> tuple[LocationConfig, ...]:
    rows = _load_yaml_list(config_root() / "locations.yaml", "locations")
    out = tuple(LocationConfig.model_validate(r) for r in rows)
    ids = [loc.id for loc in out]
    if len(set(ids)) != len(ids):
        raise ValueError("Duplicate location ids in locations.yaml")
    return out


@lru_cache(maxsize=1)
def get_base_maps() -> dict[str, BaseMapConfig]:
    rows = _load_yaml_list(config_root() / "basemaps.yaml", "baseMaps")
    out: dict[str, BaseMapConfig] = {}
    for r in rows:
        cfg = BaseMapConfig.model_validate(r)
        out[cfg.id] = cfg
    missing = {"street", "satellite", "terrain"} - set(out)
    if missing:
        raise ValueError(f"basemaps.yaml is missing: {sorted(missing)}")
    return out


def find_location(location_id: str | None) -> LocationConfig | None:
    lid = (location_id or "").strip()
    if not lid:
        return None
    for loc in get_locations():
        if loc.id == lid:
            return loc
    return None


def clear_registry_cache() -> None:
    """
    Clear cached static data.

    Useful during development: YAML edits are otherwise not picked up until the process
    restarts.
    """
    bundled_app_config_document.cache_clear()
    get_locations.cache_clear()
    get_base_maps.cache_clear()
