from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, replace
from typing import Callable, Iterator, Literal

from layers.catalog import CatalogResult
from layers.types import ResolvedLayerList

LoadState = Literal["idle", "loading", "ready", "error"]


@dataclass(frozen=True)
class StoreState:
    layers: ResolvedLayerList = ()
    enabled: frozenset[str] = frozenset()
    ready: bool = False
    tipg_url: str = ""
    schema_prefix: str = ""
    load_state: LoadState = "idle"
    error: str | None = None


Listener = Callable[[StoreState], None]


class LayerStateStore:
    """
    Observable holder of the layer list, the enabled set and the map-ready flag.

    State is an immutable `StoreState` replaced on every write. Listeners get one
    notification per write, or one per outermost `batch()` however many writes it wraps.
    Writes that leave the state equal do not notify.
    """

    def __init__(self) -> None:
        self._state = StoreState()
        self._listeners: list[Listener] = []
        self._batch_depth = 0
        self._dirty = False

    @property
    def state(self) -> StoreState:
        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    @contextmanager
    def batch(self) -> Iterator[None]:
        self._batch_depth += 1
        try:
            yield
        finally:
            self._batch_depth -= 1
            if self._batch_depth == 0 and self._dirty:
                self._dirty = False
                self._notify()

    def _set(self, **changes) -> None:
        new_state = replace(self._state, **changes)
        if new_state == self._state:
            return
        self._state = new_state
        if self._batch_depth:
            self._dirty = True
        else:
            self._notify()

    def _notify(self) -> None:
        state = self._state
        for listener in list(self._listeners):
            listener(state)

    # --- writes

    def set_layers(
        self, layers: ResolvedLayerList, *, tipg_url: str, schema_prefix: str
    ) -> None:
        self._set(layers=tuple(layers), tipg_url=tipg_url, schema_prefix=schema_prefix)

    def set_enabled(self, enabled) -> None:
        self._set(enabled=frozenset(enabled))

    def toggle(self, layer_id: str) -> frozenset[str]:
        current = self._state.enabled
        if layer_id in current:
            nxt = current - {layer_id}
        else:
            nxt = current | {layer_id}
        self._set(enabled=nxt)
        return nxt

    def apply_catalog(self, result: CatalogResult) -> None:
        """
        Publish a freshly loaded catalog; the enabled set restarts from the defaults.
        """
        with self.batch():
            self.set_layers(
                result.layers,
                tipg_url=result.tipg_url,
                schema_prefix=result.schema_prefix,
            )
            self.set_enabled(result.default_enabled)
            self.set_load_state("ready")

    def mark_ready(self) -> None:
        self._set(ready=True)

    def set_load_state(self, load_state: LoadState, error: str | None = None) -> None:
        self._set(load_state=load_state, error=error)
