from __future__ import annotations

import logging
from typing import Any, Callable

from appconfig.registry import get_base_maps, get_locations
from appconfig.types import BaseMapConfig, LocationConfig
from engine.types import (
    CameraState,
    LngLat,
    MapEventHandler,
    MapEventType,
    MapSurface,
    PointerEvent,
    ScreenPoint,
)
from geo.viewport import ground_meters_per_pixel, scale_label
from layers.catalog import CatalogLoader, ConfigLoadError
from mapview.basemap import BaseMapController
from mapview.navigator import LocationNavigator
from mapview.picker import FeaturePicker, SelectedFeature
from mapview.store import LayerStateStore, StoreState
from mapview.sync import LayerSyncEngine, SyncReport

logger = logging.getLogger(__name__)


class MapSession:
    """
    One map surface plus the state that drives it.

    - store changes (layers, enabled set, ready flag) re-run layer sync once per batch
    - `load` from the surface installs base maps and flips the ready flag
    - `click` / `mousemove` from the surface go to the feature picker

    Nothing touches the surface's layers before `load`. `close()` releases every
    subscription and the surface; use the session as a context manager to make that
    happen on every exit path.
    """

    def __init__(
        self,
        surface: MapSurface,
        loader: CatalogLoader,
        *,
        store: LayerStateStore | None = None,
        base_maps: dict[str, BaseMapConfig] | None = None,
        locations: tuple[LocationConfig, ...] | None = None,
    ) -> None:
        self.surface = surface
        self.loader = loader
        self.store = store or LayerStateStore()
        self.sync = LayerSyncEngine(tipg_url="", schema_prefix="")
        self.picker = FeaturePicker()
        self.base_map = BaseMapController(base_maps or get_base_maps())
        self.navigator = LocationNavigator(locations or get_locations())
        self.selected: SelectedFeature | None = None
        self.last_report: SyncReport | None = None
        self._closed = False
        self._unsubscribers: list[Callable[[], None]] = []

        self._listen("load", self._on_load)
        self._listen("click", self._on_click)
        self._listen("mousemove", self._on_mousemove)
        self._unsubscribers.append(self.store.subscribe(self._on_state))

    def _listen(self, event: MapEventType, handler: MapEventHandler) -> None:
        self.surface.on(event, handler)
        self._unsubscribers.append(lambda: self.surface.off(event, handler))

    # --- lifecycle

    @property
    def ready(self) -> bool:
        return self.store.state.ready and not self._closed

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        for unsubscribe in reversed(self._unsubscribers):
            unsubscribe()
        self._unsubscribers.clear()
        self.surface.remove()
        logger.info("map session closed")

    def __enter__(self) -> "MapSession":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    async def load(self) -> bool:
        """
        Fetch config + catalog and publish the result.

        Returns False when the config failed (state becomes `error`) or when a newer
        load superseded this one.
        """
        self.store.set_load_state("loading")
        try:
            result = await self.loader.load()
        except ConfigLoadError as e:
            logger.error("config load failed: %s", e)
            if not self._closed:
                self.store.set_load_state("error", str(e))
            return False
        if result is None or self._closed:
            return False
        self.store.apply_catalog(result)
        logger.info(
            "catalog loaded: %d layers, %d enabled by default (catalog=%s)",
            len(result.layers),
            len(result.default_enabled),
            "tipg" if result.catalog_available else "config-only",
        )
        return True

    async def retry(self) -> bool:
        return await self.load()

    # --- commands

    def toggle_layer(self, layer_id: str) -> frozenset[str]:
        return self.store.toggle(layer_id)

    def switch_base_map(self, type_: str) -> None:
        self.base_map.switch_to(self.surface if self.ready else None, type_)

    def go_to(self, location_id: str | None) -> bool:
        return self.navigator.go_to(self.surface if self.ready else None, location_id)

    def click_at(
        self, point: ScreenPoint, *, lng_lat: LngLat | None = None
    ) -> SelectedFeature | None:
        if not self.ready:
            return None
        state = self.store.state
        self.selected = self.picker.pick_click(
            self.surface,
            point,
            state.enabled,
            state.layers,
            lng_lat=lng_lat or self.surface.unproject(point),
        )
        return self.selected

    def hover_at(self, point: ScreenPoint) -> bool:
        if not self.ready:
            return False
        state = self.store.state
        return self.picker.pick_hover(self.surface, point, state.enabled, state.layers)

    def clear_selection(self) -> None:
        self.selected = None

    def reconcile(self) -> SyncReport | None:
        if not self.ready:
            return None
        state = self.store.state
        self.sync.tipg_url = state.tipg_url
        self.sync.schema_prefix = state.schema_prefix
        self.last_report = self.sync.reconcile(self.surface, state.enabled, state.layers)
        return self.last_report

    # --- event handlers

    def _on_load(self, *_args: Any) -> None:
        self.base_map.install(self.surface)
        self.store.mark_ready()
        logger.info("map ready")

    def _on_state(self, _state: StoreState) -> None:
        self.reconcile()

    def _on_click(self, event: PointerEvent) -> None:
        self.click_at(event.point, lng_lat=event.lng_lat)

    def _on_mousemove(self, event: PointerEvent) -> None:
        self.hover_at(event.point)

    # --- views

    def describe(self) -> dict[str, Any]:
        state = self.store.state
        camera = self.surface.get_camera() if not self._closed else None
        return {
            "loadState": state.load_state,
            "error": state.error,
            "ready": self.ready,
            "tipgUrl": state.tipg_url,
            "schemaPrefix": state.schema_prefix,
            "layers": [layer.to_dict() for layer in state.layers],
            "enabledLayers": sorted(state.enabled),
            "syncedLayers": [
                layer.id
                for layer in state.layers
                if not self._closed and self.surface.get_source(layer.id) is not None
            ],
            "baseMap": self.base_map.active,
            "camera": (
                {
                    "center": list(camera.center),
                    "zoom": camera.zoom,
                    "bounds": camera.bounds.to_dict(),
                }
                if camera is not None
                else None
            ),
            "scale": _scale(camera) if camera is not None else None,
            "selected": self.selected.to_dict() if self.selected is not None else None,
        }


def _scale(camera: CameraState) -> dict[str, str]:
    """
    Scale-bar text for the full canvas width at the camera's latitude.
    """
    meters = ground_meters_per_pixel(camera.center[1], camera.zoom) * camera.width_px
    return {"imperial": scale_label(meters, "imperial"), "metric": scale_label(meters, "metric")}
