from __future__ import annotations

import logging
from typing import Iterable

from appconfig.types import AppConfig, RemoteCollection
from layers.types import (
    DEFAULT_LAYER_COLOR,
    DEFAULT_LAYER_ORDER,
    LayerConfig,
    ResolvedLayerList,
)

logger = logging.getLogger(__name__)


def split_schema(collection_id: str) -> tuple[str | None, str]:
    """
    "gunnison.road" -> ("gunnison", "road"); "road" -> (None, "road").
    """
    cid = (collection_id or "").strip()
    if "." not in cid:
        return None, cid
    schema, name = cid.split(".", 1)
    return (schema or None), name


def strip_schema(collection_id: str) -> str:
    return split_schema(collection_id)[1]


def collection_names(
    collections: Iterable[RemoteCollection | str], *, schema_prefix: str | None = None
) -> list[str]:
    """
    Bare collection names, once each, in catalog order.

    Several schemas may expose the same bare name. The first occurrence fixes the
    position; tiles are always requested from `schema_prefix`, so which schema
    "survives" has no other effect. Collisions are logged.
    """
    seen: dict[str, str | None] = {}
    for c in collections:
        cid = c.id if isinstance(c, RemoteCollection) else str(c)
        schema, name = split_schema(cid)
        if not name:
            continue
        if name in seen:
            if seen[name] != schema:
                logger.warning(
                    "collection %r is exposed by schemas %r and %r; tiles come from %r",
                    name,
                    seen[name],
                    schema,
                    schema_prefix,
                )
            continue
        seen[name] = schema
    return list(seen.keys())


def resolve(
    config: AppConfig, remote_collections: Iterable[str] | None
) -> ResolvedLayerList:
    """
    Merge discovered collections with local overrides into the ordered layer list.

    Candidates come from `remote_collections` (bare names) when it is non-empty, else
    from the keys of `config.layers`. A candidate is kept only if it is not hidden and
    its override declares a `geometryType`. Never raises.
    """
    remote = list(remote_collections or [])
    candidates = remote if remote else list(config.layers.keys())
    hidden = config.hidden_set()

    out: list[LayerConfig] = []
    seen: set[str] = set()
    for layer_id in candidates:
        if layer_id in seen or layer_id in hidden:
            continue
        seen.add(layer_id)
        override = config.layers.get(layer_id)
        if override is None or override.geometryType is None:
            continue
        out.append(
            LayerConfig(
                id=layer_id,
                name=override.name if override.name is not None else layer_id,
                geometry_type=override.geometryType,
                color=override.color if override.color is not None else DEFAULT_LAYER_COLOR,
                order=override.order if override.order is not None else DEFAULT_LAYER_ORDER,
            )
        )

    # sorted() is stable: equal orders keep candidate order.
    layers = tuple(sorted(out, key=lambda layer: layer.order))
    logger.info(
        "resolved %d layers from %d candidates (source=%s)",
        len(layers),
        len(candidates),
        "catalog" if remote else "config",
    )
    return layers
