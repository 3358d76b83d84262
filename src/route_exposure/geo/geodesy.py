"""Distance, area and buffer helpers for lon/lat (WGS-84) geometry."""
from __future__ import annotations

from math import asin, atan2, cos, degrees, radians, sin, sqrt
from typing import Sequence

from pyproj import Geod
from shapely.geometry import GeometryCollection, MultiPolygon, Polygon
from shapely.geometry.base import BaseGeometry
from shapely.geometry.polygon import orient

EARTH_RADIUS_M = 6_371_000.0
METERS_PER_DEGREE = 111_320.0  # at the equator; used only to size precision grids

# Number of segments in a buffer circle
BUFFER_RESOLUTION = 32

_GEOD = Geod(ellps="WGS84")


def haversine_m(lon1: float, lat1: float, lon2: float, lat2: float) -> float:
    """Great-circle distance in metres between two WGS-84 points."""
    lat1r, lon1r, lat2r, lon2r = map(radians, [lat1, lon1, lat2, lon2])
    dlat = lat2r - lat1r
    dlon = lon2r - lon1r
    a = sin(dlat / 2) ** 2 + cos(lat1r) * cos(lat2r) * sin(dlon / 2) ** 2
    return EARTH_RADIUS_M * 2 * atan2(sqrt(a), sqrt(1 - a))


def interpolate(
    lon1: float, lat1: float, lon2: float, lat2: float, frac: float
) -> tuple[float, float]:
    """Linear interpolation between two geographic points (frac in [0,1])."""
    return lon1 + frac * (lon2 - lon1), lat1 + frac * (lat2 - lat1)


def destination_point(lon: float, lat: float, bearing_deg: float, distance_m: float) -> tuple[float, float]:
    """Point reached travelling ``distance_m`` from (lon, lat) on a great circle."""
    delta = distance_m / EARTH_RADIUS_M
    theta = radians(bearing_deg)
    lat1 = radians(lat)
    lon1 = radians(lon)
    lat2 = asin(sin(lat1) * cos(delta) + cos(lat1) * sin(delta) * cos(theta))
    lon2 = lon1 + atan2(
        sin(theta) * sin(delta) * cos(lat1),
        cos(delta) - sin(lat1) * sin(lat2),
    )
    return (degrees(lon2) + 540.0) % 360.0 - 180.0, degrees(lat2)


def geodesic_circle(lon: float, lat: float, radius_m: float, segments: int = BUFFER_RESOLUTION) -> Polygon:
    """Polygon approximating a circle of ``radius_m`` metres around (lon, lat)."""
    step = 360.0 / segments
    ring = [destination_point(lon, lat, i * step, radius_m) for i in range(segments)]
    return Polygon(ring)


def cumulative_distances_m(coords: Sequence[Sequence[float]]) -> list[float]:
    """Running great-circle distance at each vertex of a lon/lat polyline."""
    cum = [0.0]
    for i in range(1, len(coords)):
        lon1, lat1 = coords[i - 1][0], coords[i - 1][1]
        lon2, lat2 = coords[i][0], coords[i][1]
        cum.append(cum[-1] + haversine_m(lon1, lat1, lon2, lat2))
    return cum


def _oriented(geometry: BaseGeometry) -> BaseGeometry:
    """Shells counter-clockwise, holes clockwise, for every polygonal part."""
    if geometry.geom_type == "Polygon":
        return orient(geometry, sign=1.0)
    if geometry.geom_type == "MultiPolygon":
        return MultiPolygon([orient(p, sign=1.0) for p in geometry.geoms])
    if geometry.geom_type == "GeometryCollection":
        return GeometryCollection([_oriented(g) for g in geometry.geoms])
    return geometry


def geodesic_area_m2(geometry: BaseGeometry) -> float:
    """Area of a lon/lat geometry on the WGS-84 ellipsoid, in square metres."""
    if geometry.is_empty:
        return 0.0
    # pyproj signs each ring by its winding, so holes must wind against the shell
    area, _perimeter = _GEOD.geometry_area_perimeter(_oriented(geometry))
    return abs(area)
