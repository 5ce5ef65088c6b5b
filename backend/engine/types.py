from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Literal, Protocol, TypeAlias

from geo.viewport import Bounds


ScreenPoint: TypeAlias = tuple[float, float]  # (x, y) pixels from the top-left corner
LngLat: TypeAlias = tuple[float, float]

MapEventType = Literal["load", "click", "mousemove"]

Visibility = Literal["visible", "none"]


@dataclass(frozen=True)
class PointerEvent:
    """
    Payload of `click` / `mousemove` events.
    """

    point: ScreenPoint
    lng_lat: LngLat


@dataclass(frozen=True)
class RenderedFeature:
    """
    A feature returned by `query_rendered_features`, tagged with the sublayer that drew it.
    """

    id: str
    properties: dict[str, Any]
    layer_id: str
    source_id: str
    geometry_type: str


@dataclass(frozen=True)
class CameraState:
    center: LngLat
    zoom: float
    width_px: int
    bounds: Bounds


@dataclass(frozen=True)
class FlyTo:
    center: LngLat
    zoom: float
    duration_ms: int
    essential: bool


MapEventHandler: TypeAlias = Callable[..., None]


class MapSurface(Protocol):
    """
    The rendering-engine handle the map session drives.

    Method names follow MapLibre GL's map API. Sources and layers are plain style-spec
    dicts. `load` fires once when the style is ready; nothing may be added before it.

    - InMemoryMapSurface: headless engine, hit-tests GeoJSON datasets per source
    """

    def get_source(self, source_id: str) -> dict[str, Any] | None: ...

    def add_source(self, source_id: str, spec: dict[str, Any]) -> None: ...

    def remove_source(self, source_id: str) -> None: ...

    def get_layer(self, layer_id: str) -> dict[str, Any] | None: ...

    def add_layer(self, spec: dict[str, Any]) -> None: ...

    def remove_layer(self, layer_id: str) -> None: ...

    def set_layout_property(self, layer_id: str, name: str, value: Any) -> None: ...

    def get_layout_property(self, layer_id: str, name: str) -> Any: ...

    def query_rendered_features(
        self, point: ScreenPoint, *, layers: list[str]
    ) -> list[RenderedFeature]: ...

    def unproject(self, point: ScreenPoint) -> LngLat: ...

    def fly_to(
        self, *, center: LngLat, zoom: float, duration: int, essential: bool
    ) -> None: ...

    def get_camera(self) -> CameraState: ...

    def set_cursor(self, cursor: str) -> None: ...

    def on(self, event: MapEventType, handler: MapEventHandler) -> None: ...

    def off(self, event: MapEventType, handler: MapEventHandler) -> None: ...

    def remove(self) -> None: ...


@dataclass
class SurfaceSnapshot:
    """
    Comparable view of what a surface currently renders (used for idempotence checks).
    """

    sources: dict[str, dict[str, Any]] = field(default_factory=dict)
    layers: list[dict[str, Any]] = field(default_factory=list)
