from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

from shapely.geometry import LineString, Point, Polygon
from shapely.ops import transform as shapely_transform
from shapely.strtree import STRtree

from geo.viewport import transformer_4326_to_3857
from layers.types import LayerFeature, LineFeature, PointFeature, PolygonFeature


HitMode = Literal["area", "distance", "boundary"]


@dataclass
class FeatureIndex:
    """
    Hit-testing index over one dataset (the features behind one map source).

    Geometries are projected to EPSG:3857 once so screen-pixel tolerances convert to
    a single meters-per-pixel factor.
    """

    features: list[LayerFeature]

    _geoms: list[Any] = field(default_factory=list, repr=False)
    _feats: list[LayerFeature] = field(default_factory=list, repr=False)
    _tree: STRtree | None = field(default=None, repr=False)

    def hits(
        self, x: float, y: float, *, tolerance_m: float, mode: HitMode
    ) -> list[LayerFeature]:
        """
        Features under the projected point (x, y), topmost (last drawn) first.

        - area: polygon covers the point
        - distance: geometry within `tolerance_m` of the point
        - boundary: polygon outline within `tolerance_m` of the point
        """
        if self._tree is None or not self._geoms:
            return []
        q = Point(float(x), float(y))
        idxs = _to_int_list(self._tree.query(q.buffer(max(tolerance_m, 1e-9))))

        out: list[tuple[int, LayerFeature]] = []
        for i in idxs:
            g = self._geoms[i]
            if mode == "area":
                hit = isinstance(g, Polygon) and g.covers(q)
            elif mode == "boundary":
                hit = isinstance(g, Polygon) and g.exterior.distance(q) <= tolerance_m
            else:
                hit = g.distance(q) <= tolerance_m
            if hit:
                out.append((i, self._feats[i]))
        out.sort(key=lambda t: t[0], reverse=True)
        return [f for _, f in out]


def build_feature_index(features: list[LayerFeature]) -> FeatureIndex:
    idx = FeatureIndex(features=features)
    project = transformer_4326_to_3857().transform
    for f in features:
        geom = _to_shapely(f)
        if geom is None:
            continue
        idx._geoms.append(shapely_transform(project, geom))
        idx._feats.append(f)
    idx._tree = STRtree(idx._geoms) if idx._geoms else None
    return idx


def _to_shapely(f: LayerFeature) -> Any:
    if isinstance(f, PointFeature):
        return Point(float(f.lon), float(f.lat))
    if isinstance(f, LineFeature):
        if len(f.coords) < 2:
            return None
        return LineString([(float(lon), float(lat)) for lon, lat in f.coords])
    if isinstance(f, PolygonFeature):
        if not f.rings or len(f.rings[0]) < 3:
            return None
        shell = [(float(lon), float(lat)) for lon, lat in f.rings[0]]
        holes = [
            [(float(lon), float(lat)) for lon, lat in ring]
            for ring in f.rings[1:]
            if len(ring) >= 3
        ]
        return Polygon(shell, holes)
    return None


def geometry_type_of(f: LayerFeature) -> str:
    if isinstance(f, PointFeature):
        return "Point"
    if isinstance(f, LineFeature):
        return "LineString"
    return "Polygon"


def _to_int_list(idxs: Any) -> list[int]:
    if idxs is None:
        return []
    return [int(i) for i in idxs]
