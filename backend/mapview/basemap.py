from __future__ import annotations

import logging

from appconfig.types import BASE_MAP_TYPES, BaseMapConfig
from engine.types import MapSurface

logger = logging.getLogger(__name__)


def normalize_base_map_type(raw: str | None) -> str:
    key = (raw or "").strip().lower()
    if key not in BASE_MAP_TYPES:
        raise ValueError(
            f"Unknown base map type {raw!r}; expected one of {list(BASE_MAP_TYPES)}"
        )
    return key


class BaseMapController:
    """
    Exactly one of street/satellite/terrain is visible.

    Street reuses the surface's default `osm` layer, so switching works for it even
    before the other two are installed; missing layers are skipped.
    """

    def __init__(self, base_maps: dict[str, BaseMapConfig]) -> None:
        self._base_maps = base_maps
        self.active = "street"

    def install(self, surface: MapSurface) -> None:
        """
        Add the non-default base maps, hidden. Runs on `load`.
        """
        for type_ in BASE_MAP_TYPES:
            cfg = self._base_maps[type_]
            if surface.get_source(cfg.sourceId) is not None:
                continue
            surface.add_source(cfg.sourceId, cfg.source.to_spec())
            surface.add_layer(
                {
                    "id": cfg.layerId,
                    "type": "raster",
                    "source": cfg.sourceId,
                    "layout": {"visibility": "none"},
                }
            )
        self.apply(surface)

    def switch_to(self, surface: MapSurface | None, type_: str) -> None:
        self.active = normalize_base_map_type(type_)
        if surface is not None:
            self.apply(surface)

    def apply(self, surface: MapSurface) -> None:
        for type_ in BASE_MAP_TYPES:
            layer_id = self._base_maps[type_].layerId
            if surface.get_layer(layer_id) is None:
                continue
            visibility = "visible" if type_ == self.active else "none"
            surface.set_layout_property(layer_id, "visibility", visibility)
        logger.debug("base map -> %s", self.active)

    def visible_layers(self, surface: MapSurface) -> list[str]:
        out: list[str] = []
        for type_ in BASE_MAP_TYPES:
            layer_id = self._base_maps[type_].layerId
            if surface.get_layer(layer_id) is None:
                continue
            if surface.get_layout_property(layer_id, "visibility") != "none":
                out.append(type_)
        return out
