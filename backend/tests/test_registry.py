from __future__ import annotations

import pytest

from appconfig import registry
from appconfig.types import AppConfig


@pytest.fixture
def config_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(registry, "config_root", lambda: tmp_path)
    registry.clear_registry_cache()
    yield tmp_path
    registry.clear_registry_cache()


def test_bundled_config_is_valid():
    cfg = AppConfig.model_validate(registry.bundled_app_config_document())
    assert cfg.schemaPrefix == "gunnison"
    assert cfg.tipgUrl is None
    assert cfg.hidden_set() == frozenset({"sections"})
    assert set(cfg.defaultEnabledLayers) <= set(cfg.layers)


def test_bundled_base_maps_are_raster():
    base_maps = registry.get_base_maps()
    assert base_maps["street"].layerId == "osm"
    for cfg in base_maps.values():
        spec = cfg.source.to_spec()
        assert spec["type"] == "raster"
        assert spec["tileSize"] == 256


def test_duplicate_location_ids_are_rejected(config_dir):
    (config_dir / "locations.yaml").write_text(
        "locations:\n"
        "  - {id: a, label: A, center: [0, 0], zoom: 13}\n"
        "  - {id: a, label: B, center: [1, 1], zoom: 13}\n",
        encoding="utf-8",
    )
    with pytest.raises(ValueError, match="Duplicate"):
        registry.get_locations()


def test_missing_base_map_is_rejected(config_dir):
    (config_dir / "basemaps.yaml").write_text(
        "baseMaps:\n"
        "  - id: street\n"
        "    name: Street\n"
        "    sourceId: osm\n"
        "    layerId: osm\n"
        "    source: {type: raster, tiles: ['https://t/{z}/{x}/{y}.png']}\n",
        encoding="utf-8",
    )
    with pytest.raises(ValueError, match="missing"):
        registry.get_base_maps()


def test_malformed_yaml_root(config_dir):
    (config_dir / "locations.yaml").write_text("- just a list\n", encoding="utf-8")
    with pytest.raises(ValueError, match="locations"):
        registry.get_locations()
