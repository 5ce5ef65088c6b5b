from __future__ import annotations

from dataclasses import dataclass
from typing import AbstractSet, Any

from engine.types import LngLat, MapSurface, ScreenPoint
from layers.types import ResolvedLayerList
from mapview.styles import base_layer_id, sublayer_ids


@dataclass(frozen=True)
class SelectedFeature:
    """
    What the popup shows for a clicked feature.
    """

    properties: dict[str, Any]
    lng_lat: LngLat | None
    layer_id: str  # owning sublayer, e.g. "road-line"

    @property
    def base_layer_id(self) -> str:
        return base_layer_id(self.layer_id)

    def display_properties(self) -> dict[str, Any]:
        return {
            k: v for k, v in self.properties.items() if v is not None and v != ""
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "properties": dict(self.properties),
            "lngLat": list(self.lng_lat) if self.lng_lat is not None else None,
            "layerId": self.layer_id,
            "baseLayerId": self.base_layer_id,
        }


class FeaturePicker:
    """
    Resolves pointer positions to features of the currently synced layers.
    """

    def pickable_sublayers(
        self,
        surface: MapSurface,
        desired: AbstractSet[str],
        all_layers: ResolvedLayerList,
    ) -> list[str]:
        ids = [
            sid
            for layer in all_layers
            if layer.id in desired
            for sid in sublayer_ids(layer)
        ]
        return [sid for sid in ids if surface.get_layer(sid) is not None]

    def pick_click(
        self,
        surface: MapSurface,
        point: ScreenPoint,
        desired: AbstractSet[str],
        all_layers: ResolvedLayerList,
        *,
        lng_lat: LngLat | None = None,
    ) -> SelectedFeature | None:
        layer_ids = self.pickable_sublayers(surface, desired, all_layers)
        if not layer_ids:
            return None
        features = surface.query_rendered_features(point, layers=layer_ids)
        if not features:
            return None
        top = features[0]
        return SelectedFeature(
            properties=dict(top.properties), lng_lat=lng_lat, layer_id=top.layer_id
        )

    def pick_hover(
        self,
        surface: MapSurface,
        point: ScreenPoint,
        desired: AbstractSet[str],
        all_layers: ResolvedLayerList,
    ) -> bool:
        layer_ids = self.pickable_sublayers(surface, desired, all_layers)
        if not layer_ids:
            surface.set_cursor("")
            return False
        hit = bool(surface.query_rendered_features(point, layers=layer_ids))
        surface.set_cursor("pointer" if hit else "")
        return hit
