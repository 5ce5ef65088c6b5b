from __future__ import annotations

from typing import Any

from layers.types import LayerConfig


# tipg vector tiles carry a single source-layer regardless of the collection.
SOURCE_LAYER = "default"

SUBLAYER_SUFFIXES: tuple[str, ...] = ("-circle", "-line", "-fill", "-outline")

JURISDICTIONS_LAYER_ID = "jurisdictions"
JURISDICTIONS_FILL = {"fill-color": "#9b59b6", "fill-opacity": 0.15}
JURISDICTIONS_OUTLINE = {"line-color": "#8e44ad", "line-width": 2, "line-opacity": 0.8}

POLYGON_FILL_OPACITY = 0.3
CIRCLE_RADIUS = 6
LINE_WIDTH = 2


def tile_url(tipg_url: str, schema_prefix: str, layer_id: str) -> str:
    base = (tipg_url or "").rstrip("/")
    return (
        f"{base}/collections/{schema_prefix}.{layer_id}"
        "/tiles/WebMercatorQuad/{z}/{x}/{y}"
    )


def vector_source(tipg_url: str, schema_prefix: str, layer_id: str) -> dict[str, Any]:
    return {"type": "vector", "tiles": [tile_url(tipg_url, schema_prefix, layer_id)]}


def sublayer_ids(layer: LayerConfig) -> list[str]:
    """
    Render units for a layer, bottom to top.
    """
    if layer.geometry_type == "Point":
        return [f"{layer.id}-circle"]
    if layer.geometry_type == "LineString":
        return [f"{layer.id}-line"]
    return [f"{layer.id}-fill", f"{layer.id}-outline"]


def base_layer_id(sublayer_id: str) -> str:
    """
    "road-line" -> "road"; ids without a known suffix are returned unchanged.
    """
    for suffix in SUBLAYER_SUFFIXES:
        if sublayer_id.endswith(suffix) and len(sublayer_id) > len(suffix):
            return sublayer_id[: -len(suffix)]
    return sublayer_id


def _sublayer(layer: LayerConfig, sublayer_id: str, kind: str, paint: dict) -> dict:
    return {
        "id": sublayer_id,
        "type": kind,
        "source": layer.id,
        "source-layer": SOURCE_LAYER,
        "paint": dict(paint),
    }


def build_sublayers(layer: LayerConfig) -> list[dict[str, Any]]:
    """
    Style-spec layers for `layer`, in the same order as `sublayer_ids`.
    """
    if layer.geometry_type == "Point":
        return [
            _sublayer(
                layer,
                f"{layer.id}-circle",
                "circle",
                {
                    "circle-color": layer.color,
                    "circle-radius": CIRCLE_RADIUS,
                    "circle-stroke-color": "#fff",
                    "circle-stroke-width": 1,
                },
            )
        ]
    if layer.geometry_type == "LineString":
        return [
            _sublayer(
                layer,
                f"{layer.id}-line",
                "line",
                {"line-color": layer.color, "line-width": LINE_WIDTH},
            )
        ]

    if layer.id == JURISDICTIONS_LAYER_ID:
        fill, outline = JURISDICTIONS_FILL, JURISDICTIONS_OUTLINE
    else:
        fill = {"fill-color": layer.color, "fill-opacity": POLYGON_FILL_OPACITY}
        outline = {"line-color": layer.color, "line-width": 1}
    return [
        _sublayer(layer, f"{layer.id}-fill", "fill", fill),
        _sublayer(layer, f"{layer.id}-outline", "line", outline),
    ]
