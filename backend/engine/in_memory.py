from __future__ import annotations

import copy
import re
from typing import Any

from engine.types import (
    CameraState,
    FlyTo,
    LngLat,
    MapEventHandler,
    MapEventType,
    PointerEvent,
    RenderedFeature,
    ScreenPoint,
    SurfaceSnapshot,
)
from geo.index import FeatureIndex, build_feature_index, geometry_type_of
from geo.viewport import Viewport, meters_per_pixel
from layers.types import LayerFeature


_COLLECTION_RE = re.compile(r"/collections/([^/]+)/tiles/")

DEFAULT_CENTER: LngLat = (-106.9, 38.6)
DEFAULT_ZOOM = 9.0

_SOURCE_TYPES = {"vector", "raster", "geojson"}
_LAYER_TYPES = {"circle", "line", "fill", "raster"}


def default_style() -> tuple[dict[str, dict[str, Any]], list[dict[str, Any]]]:
    """
    The style every surface starts with: a single OpenStreetMap raster layer `osm`.
    """
    sources = {
        "osm": {
            "type": "raster",
            "tiles": ["https://tile.openstreetmap.org/{z}/{x}/{y}.png"],
            "tileSize": 256,
            "attribution": "&copy; OpenStreetMap contributors",
        }
    }
    layers = [{"id": "osm", "type": "raster", "source": "osm", "layout": {}}]
    return sources, layers


def collection_of(source: dict[str, Any]) -> str | None:
    """
    Collection id encoded in a tipg vector tile URL, e.g. "gunnison.road".
    """
    for url in source.get("tiles") or []:
        m = _COLLECTION_RE.search(str(url))
        if m:
            return m.group(1)
    return None


class InMemoryMapSurface:
    """
    Headless `MapSurface`.

    Keeps the style (sources + ordered layers) in memory and serves vector sources from
    GeoJSON-derived datasets keyed by tipg collection id. Feature queries hit-test the
    dataset geometry in Web Mercator, using paint widths/radii as pixel tolerances.

    Errors mirror MapLibre: adding before `load`, duplicate ids, missing sources and
    removing a source that still has layers all raise.
    """

    def __init__(
        self,
        *,
        datasets: dict[str, list[LayerFeature]] | None = None,
        center: LngLat = DEFAULT_CENTER,
        zoom: float = DEFAULT_ZOOM,
        width: int = 900,
        height: int = 600,
    ) -> None:
        self._sources, self._layers = default_style()
        self._datasets: dict[str, list[LayerFeature]] = dict(datasets or {})
        self._indexes: dict[str, FeatureIndex] = {}
        self._handlers: dict[str, list[MapEventHandler]] = {}
        self._viewport = Viewport(
            center_lon=center[0], center_lat=center[1], zoom=zoom, width=width, height=height
        )
        self._loaded = False
        self._removed = False
        self.cursor = ""
        self.camera_moves: list[FlyTo] = []
        self.query_count = 0

    # --- lifecycle / events

    @property
    def removed(self) -> bool:
        return self._removed

    def on(self, event: MapEventType, handler: MapEventHandler) -> None:
        self._handlers.setdefault(event, []).append(handler)

    def off(self, event: MapEventType, handler: MapEventHandler) -> None:
        handlers = self._handlers.get(event) or []
        if handler in handlers:
            handlers.remove(handler)

    def handler_count(self, event: MapEventType | None = None) -> int:
        if event is None:
            return sum(len(h) for h in self._handlers.values())
        return len(self._handlers.get(event) or [])

    def _emit(self, event: MapEventType, *args: Any) -> None:
        for handler in list(self._handlers.get(event) or []):
            handler(*args)

    def fire_load(self) -> None:
        """
        Finish "loading the style" and emit `load` (once).
        """
        self._ensure_alive()
        if self._loaded:
            return
        self._loaded = True
        self._emit("load")

    def click(self, x: float, y: float) -> None:
        self._emit("click", self._pointer(x, y))

    def move_pointer(self, x: float, y: float) -> None:
        self._emit("mousemove", self._pointer(x, y))

    def _pointer(self, x: float, y: float) -> PointerEvent:
        point = (float(x), float(y))
        return PointerEvent(point=point, lng_lat=self.unproject(point))

    def remove(self) -> None:
        if self._removed:
            return
        self._removed = True
        self._handlers.clear()
        self._sources.clear()
        self._layers.clear()
        self._indexes.clear()

    def _ensure_alive(self) -> None:
        if self._removed:
            raise RuntimeError("Map has been removed")

    def _ensure_loaded(self) -> None:
        self._ensure_alive()
        if not self._loaded:
            raise RuntimeError("Style is not done loading")

    # --- datasets

    def set_dataset(self, collection_id: str, features: list[LayerFeature]) -> None:
        self._datasets[collection_id] = list(features)
        self._indexes.pop(collection_id, None)

    def _index_for(self, collection_id: str) -> FeatureIndex | None:
        cached = self._indexes.get(collection_id)
        if cached is not None:
            return cached
        feats = self._datasets.get(collection_id)
        if feats is None:
            return None
        idx = build_feature_index(feats)
        self._indexes[collection_id] = idx
        return idx

    # --- sources

    def get_source(self, source_id: str) -> dict[str, Any] | None:
        return self._sources.get(source_id)

    def add_source(self, source_id: str, spec: dict[str, Any]) -> None:
        self._ensure_loaded()
        if source_id in self._sources:
            raise ValueError(f"There is already a source with ID {source_id!r}")
        stype = (spec or {}).get("type")
        if stype not in _SOURCE_TYPES:
            raise ValueError(f"Source {source_id!r} has unsupported type {stype!r}")
        if stype in {"vector", "raster"} and not spec.get("tiles"):
            raise ValueError(f"Source {source_id!r} needs a non-empty `tiles` list")
        self._sources[source_id] = copy.deepcopy(spec)

    def remove_source(self, source_id: str) -> None:
        self._ensure_alive()
        if source_id not in self._sources:
            raise ValueError(f"There is no source with ID {source_id!r}")
        users = [layer["id"] for layer in self._layers if layer.get("source") == source_id]
        if users:
            raise ValueError(
                f"Source {source_id!r} cannot be removed while layers use it: {users}"
            )
        del self._sources[source_id]

    # --- layers

    def get_layer(self, layer_id: str) -> dict[str, Any] | None:
        for layer in self._layers:
            if layer["id"] == layer_id:
                return layer
        return None

    def add_layer(self, spec: dict[str, Any]) -> None:
        self._ensure_loaded()
        layer_id = (spec or {}).get("id")
        if not layer_id:
            raise ValueError("Layer spec is missing `id`")
        if self.get_layer(layer_id) is not None:
            raise ValueError(f"Layer with id {layer_id!r} already exists on this map")
        if spec.get("type") not in _LAYER_TYPES:
            raise ValueError(f"Layer {layer_id!r} has unsupported type {spec.get('type')!r}")
        if spec.get("source") not in self._sources:
            raise ValueError(f"Source {spec.get('source')!r} for layer {layer_id!r} does not exist")
        layer = copy.deepcopy(spec)
        layer.setdefault("layout", {})
        layer.setdefault("paint", {})
        self._layers.append(layer)

    def remove_layer(self, layer_id: str) -> None:
        self._ensure_alive()
        layer = self.get_layer(layer_id)
        if layer is None:
            raise ValueError(f"The layer {layer_id!r} does not exist in the map's style")
        self._layers.remove(layer)

    def layer_ids(self) -> list[str]:
        return [layer["id"] for layer in self._layers]

    def set_layout_property(self, layer_id: str, name: str, value: Any) -> None:
        self._ensure_alive()
        layer = self.get_layer(layer_id)
        if layer is None:
            raise ValueError(f"The layer {layer_id!r} does not exist in the map's style")
        layer.setdefault("layout", {})[name] = value

    def get_layout_property(self, layer_id: str, name: str) -> Any:
        layer = self.get_layer(layer_id)
        if layer is None:
            return None
        return (layer.get("layout") or {}).get(name)

    def snapshot(self) -> SurfaceSnapshot:
        return SurfaceSnapshot(
            sources=copy.deepcopy(self._sources), layers=copy.deepcopy(self._layers)
        )

    # --- queries

    def query_rendered_features(
        self, point: ScreenPoint, *, layers: list[str]
    ) -> list[RenderedFeature]:
        self._ensure_loaded()
        self.query_count += 1
        wanted = set(layers)
        missing = [lid for lid in wanted if self.get_layer(lid) is None]
        if missing:
            raise ValueError(f"The layers {sorted(missing)} do not exist in the map's style")

        mx, my = self._viewport.screen_to_3857(point[0], point[1])
        res = meters_per_pixel(self._viewport.zoom)

        out: list[RenderedFeature] = []
        # Topmost first: the last added layer draws on top.
        for layer in reversed(self._layers):
            if layer["id"] not in wanted:
                continue
            if (layer.get("layout") or {}).get("visibility") == "none":
                continue
            source = self._sources.get(layer.get("source") or "") or {}
            collection = collection_of(source)
            if collection is None:
                continue
            idx = self._index_for(collection)
            if idx is None:
                continue
            for feat in _layer_hits(layer, idx, mx, my, res):
                out.append(
                    RenderedFeature(
                        id=feat.id,
                        properties=dict(feat.props or {}),
                        layer_id=layer["id"],
                        source_id=layer["source"],
                        geometry_type=geometry_type_of(feat),
                    )
                )
        return out

    # --- camera

    def fly_to(
        self, *, center: LngLat, zoom: float, duration: int, essential: bool
    ) -> None:
        self._ensure_alive()
        move = FlyTo(
            center=(float(center[0]), float(center[1])),
            zoom=float(zoom),
            duration_ms=int(duration),
            essential=bool(essential),
        )
        self.camera_moves.append(move)
        # No animation frames: land on the target immediately.
        self._viewport = Viewport(
            center_lon=move.center[0],
            center_lat=move.center[1],
            zoom=move.zoom,
            width=self._viewport.width,
            height=self._viewport.height,
        )

    def unproject(self, point: ScreenPoint) -> LngLat:
        return self._viewport.screen_to_lnglat(point[0], point[1])

    def get_camera(self) -> CameraState:
        return CameraState(
            center=(self._viewport.center_lon, self._viewport.center_lat),
            zoom=self._viewport.zoom,
            width_px=self._viewport.width,
            bounds=self._viewport.bounds(),
        )

    def set_cursor(self, cursor: str) -> None:
        self.cursor = cursor


def _layer_hits(
    layer: dict[str, Any], idx: FeatureIndex, mx: float, my: float, res: float
) -> list[LayerFeature]:
    paint = layer.get("paint") or {}
    ltype = layer.get("type")
    if ltype == "circle":
        radius_px = float(paint.get("circle-radius", 5)) + float(
            paint.get("circle-stroke-width", 0)
        )
        hits = idx.hits(mx, my, tolerance_m=radius_px * res, mode="distance")
        return [f for f in hits if geometry_type_of(f) == "Point"]
    if ltype == "line":
        tol = max(float(paint.get("line-width", 1)) / 2.0, 1.0) * res
        lines = [
            f
            for f in idx.hits(mx, my, tolerance_m=tol, mode="distance")
            if geometry_type_of(f) == "LineString"
        ]
        outlines = idx.hits(mx, my, tolerance_m=tol, mode="boundary")
        seen = {f.id for f in lines}
        return lines + [f for f in outlines if f.id not in seen]
    if ltype == "fill":
        return idx.hits(mx, my, tolerance_m=0.0, mode="area")
    return []
