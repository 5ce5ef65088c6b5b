from __future__ import annotations

import math
from dataclasses import dataclass
from functools import lru_cache
from typing import Literal

from pyproj import Transformer


_MAX_MERCATOR_LAT = 85.05112878
# Circumference of the EPSG:3857 world in meters.
_WORLD_M = 2.0 * math.pi * 6378137.0
# MapLibre renders zoom 0 as a single 512px tile.
TILE_SIZE_PX = 512


@lru_cache(maxsize=1)
def transformer_4326_to_3857() -> Transformer:
    return Transformer.from_crs("EPSG:4326", "EPSG:3857", always_xy=True)


@lru_cache(maxsize=1)
def transformer_3857_to_4326() -> Transformer:
    return Transformer.from_crs("EPSG:3857", "EPSG:4326", always_xy=True)


def meters_per_pixel(zoom: float) -> float:
    """
    Web Mercator ground resolution at `zoom` (projected meters, not true meters).
    """
    return _WORLD_M / (TILE_SIZE_PX * (2.0 ** float(zoom)))


def clamp_lat(lat: float) -> float:
    return max(-_MAX_MERCATOR_LAT, min(_MAX_MERCATOR_LAT, float(lat)))


@dataclass(frozen=True)
class Bounds:
    """
    WGS84 lon/lat bounds of a viewport: minLon, minLat, maxLon, maxLat.
    """

    min_lon: float
    min_lat: float
    max_lon: float
    max_lat: float

    def to_dict(self) -> dict[str, float]:
        return {
            "minLon": self.min_lon,
            "minLat": self.min_lat,
            "maxLon": self.max_lon,
            "maxLat": self.max_lat,
        }


@dataclass(frozen=True)
class Viewport:
    """
    A north-up camera over a `width` x `height` pixel canvas.

    Screen points are pixels from the top-left corner; y grows downwards.
    """

    center_lon: float
    center_lat: float
    zoom: float
    width: int = 900
    height: int = 600

    def center_3857(self) -> tuple[float, float]:
        x, y = transformer_4326_to_3857().transform(
            self.center_lon, clamp_lat(self.center_lat)
        )
        return float(x), float(y)

    def screen_to_3857(self, x: float, y: float) -> tuple[float, float]:
        cx, cy = self.center_3857()
        res = meters_per_pixel(self.zoom)
        return (
            cx + (float(x) - self.width / 2.0) * res,
            cy - (float(y) - self.height / 2.0) * res,
        )

    def screen_to_lnglat(self, x: float, y: float) -> tuple[float, float]:
        mx, my = self.screen_to_3857(x, y)
        lon, lat = transformer_3857_to_4326().transform(mx, my)
        return float(lon), float(lat)

    def lnglat_to_screen(self, lon: float, lat: float) -> tuple[float, float]:
        mx, my = transformer_4326_to_3857().transform(float(lon), clamp_lat(lat))
        cx, cy = self.center_3857()
        res = meters_per_pixel(self.zoom)
        return (
            self.width / 2.0 + (float(mx) - cx) / res,
            self.height / 2.0 - (float(my) - cy) / res,
        )

    def bounds(self) -> Bounds:
        west, north = self.screen_to_lnglat(0, 0)
        east, south = self.screen_to_lnglat(self.width, self.height)
        return Bounds(min_lon=west, min_lat=south, max_lon=east, max_lat=north)


METERS_PER_MILE = 1609.34
FEET_PER_METER = 3.28084

ScaleUnit = Literal["imperial", "metric"]


def ground_meters_per_pixel(lat: float, zoom: float) -> float:
    """
    True ground distance of one screen pixel at `lat` (shrinks with cos(lat)).
    """
    return meters_per_pixel(zoom) * math.cos(math.radians(clamp_lat(lat)))


def scale_label(meters: float, unit: ScaleUnit = "imperial") -> str:
    """
    Human text for a ground distance: "2.4 mi" / "850 ft" or "3.1 km" / "420 m".
    """
    if unit == "imperial":
        miles = meters / METERS_PER_MILE
        if miles >= 1:
            return f"{miles:.1f} mi"
        return f"{_round_half_up(meters * FEET_PER_METER)} ft"
    km = meters / 1000.0
    if km >= 1:
        return f"{km:.1f} km"
    return f"{_round_half_up(meters)} m"


def _round_half_up(v: float) -> int:
    return int(math.floor(v + 0.5))
