from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


GeometryTypeName = Literal["Point", "LineString", "Polygon"]
BaseMapType = Literal["street", "satellite", "terrain"]

BASE_MAP_TYPES: tuple[str, ...] = ("street", "satellite", "terrain")


class LayerOverride(BaseModel):
    """
    Local per-layer settings keyed by collection name in `AppConfig.layers`.

    A missing `geometryType` means the collection is not renderable.
    """

    model_config = ConfigDict(extra="ignore")

    name: str | None = None
    geometryType: GeometryTypeName | None = None
    color: str | None = None
    order: int | None = None


class AppConfig(BaseModel):
    """
    The static `config.json` document.
    """

    model_config = ConfigDict(extra="ignore")

    tipgUrl: str | None = None
    schemaPrefix: str
    defaultEnabledLayers: list[str] = Field(default_factory=list)
    hiddenCollections: list[str] = Field(default_factory=list)
    layers: dict[str, LayerOverride] = Field(default_factory=dict)

    def hidden_set(self) -> frozenset[str]:
        return frozenset(self.hiddenCollections)


class RemoteCollection(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    title: str | None = None
    itemType: str | None = None


class CollectionsResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    collections: list[RemoteCollection] = Field(default_factory=list)


class LocationConfig(BaseModel):
    id: str
    label: str
    center: tuple[float, float]  # (lng, lat)
    zoom: float = Field(ge=0.0, le=24.0)


class RasterSource(BaseModel):
    type: Literal["raster"] = "raster"
    tiles: list[str]
    tileSize: int = 256
    attribution: str | None = None

    def to_spec(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


class BaseMapConfig(BaseModel):
    id: BaseMapType
    name: str
    # Street reuses the surface's default `osm` source/layer ids.
    sourceId: str
    layerId: str
    source: RasterSource
