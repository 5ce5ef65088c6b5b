from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from layers.types import LayerFeature, LineFeature, PointFeature, PolygonFeature


def load_geojson(path: Path) -> list[LayerFeature]:
    data = json.loads(path.read_text(encoding="utf-8"))
    return features_from_geojson(data)


def load_datasets(directory: Path) -> dict[str, list[LayerFeature]]:
    """
    `{collection}.geojson` files keyed by collection id, e.g. `gunnison.road.geojson`.
    """
    if not directory.is_dir():
        raise FileNotFoundError(f"Dataset directory not found: {directory}")
    out: dict[str, list[LayerFeature]] = {}
    for p in sorted(directory.glob("*.geojson"), key=lambda x: x.name):
        out[p.stem] = load_geojson(p)
    return out


def features_from_geojson(data: dict[str, Any]) -> list[LayerFeature]:
    """
    Flatten a GeoJSON FeatureCollection into point/line/polygon features.

    Multi-geometries are exploded into one feature per part (`{id}-{j}`); parts share
    the parent's properties. Features with empty or unsupported geometry are skipped.
    """
    features = (data or {}).get("features") or []

    out: list[LayerFeature] = []
    for i, feature in enumerate(features):
        geom = (feature or {}).get("geometry") or {}
        props = (feature or {}).get("properties") or {}
        gtype = geom.get("type")
        coords = geom.get("coordinates")
        if not coords:
            continue

        fid = str((feature or {}).get("id") or props.get("id") or f"feature-{i}")

        if gtype == "Point":
            pt = _to_position(coords)
            if pt is not None:
                out.append(PointFeature(id=fid, lon=pt[0], lat=pt[1], props=props))
        elif gtype == "MultiPoint":
            for j, p in enumerate(coords):
                pt = _to_position(p)
                if pt is not None:
                    out.append(
                        PointFeature(id=f"{fid}-{j}", lon=pt[0], lat=pt[1], props=props)
                    )
        elif gtype == "LineString":
            line = _to_ring(coords)
            if len(line) >= 2:
                out.append(LineFeature(id=fid, coords=line, props=props))
        elif gtype == "MultiLineString":
            for j, part in enumerate(coords):
                line = _to_ring(part)
                if len(line) >= 2:
                    out.append(LineFeature(id=f"{fid}-{j}", coords=line, props=props))
        elif gtype == "Polygon":
            rings = [_to_ring(r) for r in coords]
            if rings:
                out.append(PolygonFeature(id=fid, rings=rings, props=props))
        elif gtype == "MultiPolygon":
            for j, poly in enumerate(coords):
                rings = [_to_ring(r) for r in poly]
                if rings:
                    out.append(
                        PolygonFeature(id=f"{fid}-{j}", rings=rings, props=props)
                    )

    return out


def _to_position(p: Any) -> tuple[float, float] | None:
    if not p or len(p) < 2:
        return None
    return float(p[0]), float(p[1])


def _to_ring(ring: Any) -> list[tuple[float, float]]:
    out: list[tuple[float, float]] = []
    for p in ring or []:
        pt = _to_position(p)
        if pt is not None:
            out.append(pt)
    return out
