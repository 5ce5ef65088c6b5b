from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal, TypeAlias, Union


GeometryType = Literal["Point", "LineString", "Polygon"]

DEFAULT_LAYER_COLOR = "#3388ff"
DEFAULT_LAYER_ORDER = 999


@dataclass(frozen=True)
class PointFeature:
    id: str
    lon: float
    lat: float
    props: dict[str, Any]


@dataclass(frozen=True)
class LineFeature:
    id: str
    coords: list[tuple[float, float]]  # [(lon, lat), ...]
    props: dict[str, Any]


@dataclass(frozen=True)
class PolygonFeature:
    id: str
    rings: list[
        list[tuple[float, float]]
    ]  # [outer_ring, ...]; each ring is [(lon, lat), ...]
    props: dict[str, Any]


LayerFeature: TypeAlias = Union[PointFeature, LineFeature, PolygonFeature]


@dataclass(frozen=True)
class LayerConfig:
    """
    A renderable layer: one tipg collection plus the styling needed to draw it.

    `id` is the bare collection name (no schema prefix) and doubles as the map source id.
    `order` only defines relative position in the layer menu; it is not unique.
    """

    id: str
    name: str
    geometry_type: GeometryType
    color: str = DEFAULT_LAYER_COLOR
    order: int = DEFAULT_LAYER_ORDER

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "geometryType": self.geometry_type,
            "color": self.color,
            "order": self.order,
        }


ResolvedLayerList: TypeAlias = tuple[LayerConfig, ...]
