from __future__ import annotations

from engine.in_memory import InMemoryMapSurface
from layers.types import LayerConfig
from mapview.styles import base_layer_id, sublayer_ids, tile_url
from mapview.sync import LayerSyncEngine

ROAD = LayerConfig(id="road", name="Roads", geometry_type="LineString", color="#ff6600")
ADDRESS = LayerConfig(id="address", name="Addresses", geometry_type="Point", color="#e41a1c")
PARCELS = LayerConfig(id="taxparcelassessor", name="Tax Parcels", geometry_type="Polygon", color="#3388ff")
JURISDICTIONS = LayerConfig(id="jurisdictions", name="Jurisdictions", geometry_type="Polygon", color="#ff7f00")
ALL = (ADDRESS, ROAD, PARCELS, JURISDICTIONS)


def _ready_surface() -> InMemoryMapSurface:
    surface = InMemoryMapSurface()
    surface.fire_load()
    return surface


def _engine() -> LayerSyncEngine:
    return LayerSyncEngine(tipg_url="http://tipg.test", schema_prefix="gunnison")


def test_enable_line_layer_adds_source_and_one_sublayer():
    surface = _ready_surface()
    report = _engine().reconcile(surface, {"road"}, (ROAD,))
    assert report.added == ["road"]

    src = surface.get_source("road")
    assert src == {
        "type": "vector",
        "tiles": [
            "http://tipg.test/collections/gunnison.road/tiles/WebMercatorQuad/{z}/{x}/{y}"
        ],
    }
    line = surface.get_layer("road-line")
    assert line["type"] == "line"
    assert line["source"] == "road"
    assert line["source-layer"] == "default"
    assert line["paint"] == {"line-color": "#ff6600", "line-width": 2}
    assert [lid for lid in surface.layer_ids() if lid.startswith("road")] == ["road-line"]


def test_disable_removes_sublayers_then_source():
    surface = _ready_surface()
    engine = _engine()
    engine.reconcile(surface, {"road"}, (ROAD,))
    report = engine.reconcile(surface, set(), (ROAD,))
    assert report.removed == ["road"]
    assert surface.get_source("road") is None
    assert surface.get_layer("road-line") is None


def test_point_layer_gets_circle_sublayer():
    surface = _ready_surface()
    _engine().reconcile(surface, {"address"}, ALL)
    circle = surface.get_layer("address-circle")
    assert circle["type"] == "circle"
    assert circle["paint"] == {
        "circle-color": "#e41a1c",
        "circle-radius": 6,
        "circle-stroke-color": "#fff",
        "circle-stroke-width": 1,
    }


def test_polygon_layer_gets_fill_and_outline():
    surface = _ready_surface()
    _engine().reconcile(surface, {"taxparcelassessor"}, ALL)
    fill = surface.get_layer("taxparcelassessor-fill")
    outline = surface.get_layer("taxparcelassessor-outline")
    assert fill["type"] == "fill"
    assert fill["paint"] == {"fill-color": "#3388ff", "fill-opacity": 0.3}
    assert outline["type"] == "line"
    assert outline["paint"] == {"line-color": "#3388ff", "line-width": 1}
    # Outline draws above the fill.
    ids = surface.layer_ids()
    assert ids.index("taxparcelassessor-fill") < ids.index("taxparcelassessor-outline")


def test_jurisdictions_ignores_configured_color():
    surface = _ready_surface()
    _engine().reconcile(surface, {"jurisdictions"}, ALL)
    fill = surface.get_layer("jurisdictions-fill")["paint"]
    outline = surface.get_layer("jurisdictions-outline")["paint"]
    assert fill == {"fill-color": "#9b59b6", "fill-opacity": 0.15}
    assert outline["line-color"] == "#8e44ad"
    assert outline["line-opacity"] == 0.8
    assert outline["line-width"] == 2


def test_reconcile_is_idempotent():
    surface = _ready_surface()
    engine = _engine()
    desired = {"road", "taxparcelassessor", "address"}
    engine.reconcile(surface, desired, ALL)
    before = surface.snapshot()
    report = engine.reconcile(surface, desired, ALL)
    assert not report.changed
    assert surface.snapshot() == before


def test_disable_then_enable_restores_paint():
    surface = _ready_surface()
    engine = _engine()
    engine.reconcile(surface, {"jurisdictions"}, ALL)
    first = surface.snapshot()
    engine.reconcile(surface, set(), ALL)
    assert surface.get_source("jurisdictions") is None
    engine.reconcile(surface, {"jurisdictions"}, ALL)
    assert surface.snapshot() == first


def test_enabled_id_without_config_is_ignored():
    surface = _ready_surface()
    report = _engine().reconcile(surface, {"not-configured"}, ALL)
    assert report.added == [] and report.failed == []
    assert surface.get_source("not-configured") is None


def test_source_exists_iff_enabled_and_resolved():
    surface = _ready_surface()
    engine = _engine()
    for desired in [{"road"}, {"road", "address"}, {"address", "ghost"}, set(), {"jurisdictions"}]:
        engine.reconcile(surface, desired, ALL)
        synced = {layer.id for layer in ALL if surface.get_source(layer.id) is not None}
        assert synced == desired & {layer.id for layer in ALL}


def test_failed_add_does_not_block_other_layers():
    surface = _ready_surface()
    # A sublayer id collision makes adding `road` fail inside the engine.
    surface.add_source("blocker", {"type": "vector", "tiles": ["http://x/{z}/{x}/{y}"]})
    surface.add_layer({"id": "road-line", "type": "line", "source": "blocker"})

    report = _engine().reconcile(surface, {"road", "address"}, (ROAD, ADDRESS))
    assert report.failed == ["road"]
    assert report.added == ["address"]
    # The half-added source is rolled back; nothing dangles.
    assert surface.get_source("road") is None
    assert surface.get_layer("address-circle") is not None


def test_failed_layer_is_retried_on_next_pass():
    surface = _ready_surface()
    surface.add_source("blocker", {"type": "vector", "tiles": ["http://x/{z}/{x}/{y}"]})
    surface.add_layer({"id": "road-line", "type": "line", "source": "blocker"})
    engine = _engine()
    assert engine.reconcile(surface, {"road"}, (ROAD,)).failed == ["road"]

    surface.remove_layer("road-line")
    assert engine.reconcile(surface, {"road"}, (ROAD,)).added == ["road"]
    assert surface.get_layer("road-line")["source"] == "road"


def test_remove_tolerates_missing_sublayers():
    surface = _ready_surface()
    engine = _engine()
    engine.reconcile(surface, {"taxparcelassessor"}, ALL)
    # Someone already dropped the outline.
    surface.remove_layer("taxparcelassessor-outline")
    report = engine.reconcile(surface, set(), ALL)
    assert report.removed == ["taxparcelassessor"]
    assert surface.get_source("taxparcelassessor") is None
    assert surface.get_layer("taxparcelassessor-fill") is None


def test_style_helpers():
    assert sublayer_ids(ROAD) == ["road-line"]
    assert sublayer_ids(ADDRESS) == ["address-circle"]
    assert sublayer_ids(PARCELS) == ["taxparcelassessor-fill", "taxparcelassessor-outline"]
    assert base_layer_id("taxparcelassessor-outline") == "taxparcelassessor"
    assert base_layer_id("road-line") == "road"
    assert base_layer_id("osm") == "osm"
    assert (
        tile_url("http://tipg.test/", "gunnison", "road")
        == "http://tipg.test/collections/gunnison.road/tiles/WebMercatorQuad/{z}/{x}/{y}"
    )


def test_layer_dropped_from_resolved_list_is_removed():
    surface = _ready_surface()
    engine = _engine()
    engine.reconcile(surface, {"road", "address"}, (ADDRESS, ROAD))

    # A reload resolves only `road`; `address` stays enabled but is no longer known.
    report = engine.reconcile(surface, {"road", "address"}, (ROAD,))
    assert report.removed == ["address"]
    assert surface.get_source("address") is None
    assert surface.get_layer("address-circle") is None
    assert surface.get_source("road") is not None


def test_geometry_type_change_removes_old_sublayers():
    surface = _ready_surface()
    engine = _engine()
    as_polygon = LayerConfig(id="x", name="X", geometry_type="Polygon")
    as_line = LayerConfig(id="x", name="X", geometry_type="LineString")
    engine.reconcile(surface, {"x"}, (as_polygon,))
    assert surface.get_layer("x-fill") is not None

    report = engine.reconcile(surface, set(), (as_line,))
    assert report.removed == ["x"]
    assert surface.get_source("x") is None
    assert surface.get_layer("x-fill") is None
    assert surface.get_layer("x-outline") is None


def test_geometry_type_change_while_enabled_rebuilds_sublayers():
    surface = _ready_surface()
    engine = _engine()
    engine.reconcile(surface, {"x"}, (LayerConfig(id="x", name="X", geometry_type="Polygon"),))

    report = engine.reconcile(surface, {"x"}, (LayerConfig(id="x", name="X", geometry_type="LineString"),))
    assert report.removed == ["x"] and report.added == ["x"]
    assert surface.get_layer("x-fill") is None
    assert surface.get_layer("x-line")["source"] == "x"


def test_tipg_url_change_rebuilds_sources():
    surface = _ready_surface()
    engine = _engine()
    engine.reconcile(surface, {"road"}, (ROAD,))

    engine.tipg_url = "http://viewer.test/api"
    report = engine.reconcile(surface, {"road"}, (ROAD,))
    assert report.added == ["road"]
    assert surface.get_source("road")["tiles"][0].startswith("http://viewer.test/api/collections/")
