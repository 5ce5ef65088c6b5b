from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import AbstractSet

from engine.types import MapSurface
from layers.types import LayerConfig, ResolvedLayerList
from mapview.styles import build_sublayers, sublayer_ids, vector_source

logger = logging.getLogger(__name__)


@dataclass
class SyncReport:
    added: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.added or self.removed)


class LayerSyncEngine:
    """
    Converges a surface's layer sources onto the enabled-layer set.

    Desired state vs actual state: a source for layer X exists iff X is enabled and
    resolved. Every step checks existence first, so a pass can run any number of times.
    Call only after the surface fired `load`.

    The engine remembers the `LayerConfig` each source was added with. A reload can
    drop a layer from the resolved list, change its geometry type or move tipg; the
    remembered config is what gets torn down in that case.
    """

    def __init__(self, *, tipg_url: str, schema_prefix: str) -> None:
        self.tipg_url = tipg_url
        self.schema_prefix = schema_prefix
        self._synced: dict[str, LayerConfig] = {}

    def reconcile(
        self,
        surface: MapSurface,
        desired: AbstractSet[str],
        all_layers: ResolvedLayerList,
    ) -> SyncReport:
        report = SyncReport()
        wanted = {layer.id: layer for layer in all_layers if layer.id in desired}

        # Sources added under a config (or tile URL) that is no longer wanted as-is.
        for layer_id, synced in list(self._synced.items()):
            source = vector_source(self.tipg_url, self.schema_prefix, layer_id)
            if wanted.get(layer_id) != synced or surface.get_source(layer_id) != source:
                self._remove(surface, synced)
                report.removed.append(layer_id)

        for layer in all_layers:
            enabled = layer.id in wanted
            has_source = surface.get_source(layer.id) is not None
            if enabled and not has_source:
                if self._add(surface, layer):
                    report.added.append(layer.id)
                else:
                    report.failed.append(layer.id)
            elif not enabled and has_source:
                self._remove(surface, layer)
                report.removed.append(layer.id)

        if report.changed or report.failed:
            logger.info(
                "layer sync: added=%s removed=%s failed=%s",
                report.added,
                report.removed,
                report.failed,
            )
        return report

    def _add(self, surface: MapSurface, layer: LayerConfig) -> bool:
        try:
            surface.add_source(
                layer.id, vector_source(self.tipg_url, self.schema_prefix, layer.id)
            )
            for spec in build_sublayers(layer):
                surface.add_layer(spec)
        except Exception:
            logger.exception("failed to add layer %r", layer.id)
            # Drop whatever made it onto the map so the next pass retries from scratch.
            self._remove(surface, layer)
            return False
        self._synced[layer.id] = layer
        return True

    def _remove(self, surface: MapSurface, layer: LayerConfig) -> None:
        candidates = list(sublayer_ids(layer))
        tracked = self._synced.pop(layer.id, None)
        if tracked is not None:
            candidates += [sid for sid in sublayer_ids(tracked) if sid not in candidates]
        for sublayer_id in candidates:
            existing = surface.get_layer(sublayer_id)
            # Only our own sublayers: an id clash with another source is not ours to drop.
            if existing is not None and existing.get("source") == layer.id:
                surface.remove_layer(sublayer_id)
        if surface.get_source(layer.id) is not None:
            surface.remove_source(layer.id)
