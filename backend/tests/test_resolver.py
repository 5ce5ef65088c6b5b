from __future__ import annotations

import logging

from appconfig.types import AppConfig, RemoteCollection
from layers.resolver import collection_names, resolve, split_schema, strip_schema


def _config(**overrides) -> AppConfig:
    data = {
        "tipgUrl": None,
        "schemaPrefix": "gunnison",
        "defaultEnabledLayers": [],
        "hiddenCollections": [],
        "layers": {},
    }
    data.update(overrides)
    return AppConfig.model_validate(data)


def test_config_only_resolution_excludes_hidden_collections():
    cfg = _config(
        defaultEnabledLayers=["road"],
        hiddenCollections=["sections"],
        layers={
            "road": {"geometryType": "LineString", "color": "#ff6600"},
            "sections": {"geometryType": "Polygon"},
        },
    )
    layers = resolve(cfg, None)
    assert [layer.id for layer in layers] == ["road"]
    road = layers[0]
    assert road.geometry_type == "LineString"
    assert road.color == "#ff6600"
    assert road.name == "road"
    assert road.order == 999


def test_remote_catalog_requires_override_with_geometry_type():
    cfg = _config(layers={"road": {"name": "Roads", "geometryType": "LineString"}})
    names = collection_names(["gunnison.address", "gunnison.road"])
    assert names == ["address", "road"]

    layers = resolve(cfg, names)
    assert [layer.id for layer in layers] == ["road"]
    assert layers[0].name == "Roads"


def test_override_without_geometry_type_is_not_renderable():
    cfg = _config(
        layers={
            "towns": {"name": "Towns", "color": "#377eb8", "order": 1},
            "road": {"geometryType": "LineString"},
        }
    )
    assert [layer.id for layer in resolve(cfg, None)] == ["road"]
    assert [layer.id for layer in resolve(cfg, ["towns", "road"])] == ["road"]


def test_remote_catalog_takes_precedence_over_config_keys():
    cfg = _config(
        layers={
            "road": {"geometryType": "LineString"},
            "address": {"geometryType": "Point"},
        }
    )
    # Configured but not published by tipg -> not offered.
    assert [layer.id for layer in resolve(cfg, ["road"])] == ["road"]


def test_empty_remote_catalog_falls_back_to_config():
    cfg = _config(layers={"road": {"geometryType": "LineString"}})
    assert [layer.id for layer in resolve(cfg, [])] == ["road"]
    assert [layer.id for layer in resolve(cfg, set())] == ["road"]


def test_empty_sources_yield_empty_list():
    assert resolve(_config(), None) == ()
    assert resolve(_config(), []) == ()


def test_sorted_by_order_with_stable_ties():
    cfg = _config(
        layers={
            "c": {"geometryType": "Polygon", "order": 5},
            "a": {"geometryType": "Point"},
            "b": {"geometryType": "LineString", "order": 5},
            "z": {"geometryType": "Polygon", "order": 0},
            "d": {"geometryType": "Point"},
        }
    )
    layers = resolve(cfg, None)
    assert [layer.id for layer in layers] == ["z", "c", "b", "a", "d"]
    orders = [layer.order for layer in layers]
    assert orders == sorted(orders)

    # Same input, same output.
    assert resolve(cfg, None) == layers


def test_defaults_fill_missing_override_fields():
    cfg = _config(layers={"parcels": {"geometryType": "Polygon"}})
    (layer,) = resolve(cfg, None)
    assert layer.name == "parcels"
    assert layer.color == "#3388ff"
    assert layer.order == 999


def test_resolved_ids_are_unique_visible_and_typed():
    cfg = _config(
        hiddenCollections=["sections", "address"],
        layers={
            "address": {"geometryType": "Point"},
            "road": {"geometryType": "LineString"},
            "sections": {"geometryType": "Polygon"},
            "towns": {"name": "Towns"},
        },
    )
    remote = ["road", "road", "address", "towns", "sections", "unknown"]
    layers = resolve(cfg, remote)
    ids = [layer.id for layer in layers]
    assert ids == ["road"]
    assert len(ids) == len(set(ids))
    assert all(layer.geometry_type is not None for layer in layers)
    assert not set(ids) & set(cfg.hiddenCollections)


def test_schema_prefix_is_stripped():
    assert split_schema("gunnison.road") == ("gunnison", "road")
    assert split_schema("road") == (None, "road")
    assert strip_schema("gunnison.road") == "road"
    assert strip_schema("road") == "road"


def test_schema_collision_keeps_first_catalog_occurrence(caplog):
    collections = [
        RemoteCollection(id="public.road"),
        RemoteCollection(id="gunnison.address"),
        RemoteCollection(id="gunnison.road"),
    ]
    with caplog.at_level(logging.WARNING, logger="layers.resolver"):
        names = collection_names(collections, schema_prefix="gunnison")
    assert names == ["road", "address"]
    assert any("exposed by schemas" in r.getMessage() for r in caplog.records)


def test_same_schema_duplicates_are_silent(caplog):
    with caplog.at_level(logging.WARNING, logger="layers.resolver"):
        names = collection_names(["gunnison.road", "gunnison.road"])
    assert names == ["road"]
    assert not caplog.records
