"""Route discretization: cut a polyline into points at fixed arc-length spacing."""
from __future__ import annotations

import hashlib
import json
import logging
from math import floor
from typing import Sequence, Union

from shapely.geometry.base import BaseGeometry

from route_exposure.contracts.route_contract import DiscretizedRoute, SamplePoint
from route_exposure.core.errors import EmptyGeometry, InvalidInterval
from route_exposure.geo.geodesy import cumulative_distances_m, interpolate

log = logging.getLogger(__name__)

LineLike = Union[BaseGeometry, Sequence[Sequence[float]]]


def _coords(line: LineLike) -> list[tuple[float, float]]:
    raw = line.coords if hasattr(line, "coords") else line
    return [(float(c[0]), float(c[1])) for c in raw]


def route_length_m(line: LineLike) -> float:
    """Great-circle length of a lon/lat polyline in metres."""
    coords = _coords(line)
    return cumulative_distances_m(coords)[-1] if coords else 0.0


def sample_distances(total_m: float, interval_m: float, tolerance_m: float = 1.0) -> list[float]:
    """
    Distances 0, interval, 2*interval, ... up to the largest multiple <= total.

    A multiple that overshoots ``total_m`` by no more than ``tolerance_m`` is
    still included, so a 2999.9996 m line sampled every 1000 m gets its 3000 m
    point. The endpoint itself is not appended when the length is not a
    multiple of the interval.
    """
    if interval_m <= 0:
        raise InvalidInterval(f"Sampling interval must be > 0, got {interval_m}")
    if total_m <= 0:
        return [0.0]
    steps = int(floor((total_m + tolerance_m) / interval_m))
    return [k * interval_m for k in range(steps + 1)]


def discretize_route(
    line: LineLike,
    interval_m: float,
    tolerance_m: float = 1.0,
    route_id: str = "auto",
) -> DiscretizedRoute:
    """
    Convert a route into sample points at fixed arc-length spacing.

    Parameters
    ----------
    line : LineString or sequence of (lon, lat)
        The route, vertices in travel order.
    interval_m : float
        Spacing between consecutive sample points (metres). Must be > 0.
    tolerance_m : float
        Slack allowed when comparing a candidate distance with the route length.
    route_id : str
        An identifier for the route.

    Returns
    -------
    DiscretizedRoute
    """
    if interval_m <= 0:
        raise InvalidInterval(f"Sampling interval must be > 0, got {interval_m}")

    coords = _coords(line)
    if not coords:
        raise EmptyGeometry("Cannot discretize a route without vertices")

    raw_hash = hashlib.md5(json.dumps(coords).encode()).hexdigest()[:12]

    cum = cumulative_distances_m(coords)
    total_dist = cum[-1]

    if total_dist == 0:
        lon, lat = coords[0]
        return DiscretizedRoute(
            route_id=route_id,
            interval_m=interval_m,
            total_distance_m=0.0,
            points=(SamplePoint(index=0, lon=lon, lat=lat, distance_m=0.0),),
            source_raw_hash=raw_hash,
        )

    target_dists = sample_distances(total_dist, interval_m, tolerance_m)

    # Walk raw segments and interpolate new points
    points: list[SamplePoint] = []
    seg_idx = 0  # current raw segment (seg_idx -> seg_idx+1)

    for idx, target_d in enumerate(target_dists):
        cut_d = min(target_d, total_dist)
        # Advance segment index until cut_d falls within [cum[seg_idx], cum[seg_idx+1]]
        while seg_idx < len(coords) - 2 and cum[seg_idx + 1] < cut_d:
            seg_idx += 1

        seg_len = cum[seg_idx + 1] - cum[seg_idx]
        frac = (cut_d - cum[seg_idx]) / seg_len if seg_len > 0 else 0.0
        frac = max(0.0, min(1.0, frac))

        a = coords[seg_idx]
        b = coords[seg_idx + 1]
        lon, lat = interpolate(a[0], a[1], b[0], b[1], frac)
        points.append(SamplePoint(index=idx, lon=lon, lat=lat, distance_m=target_d))

    log.debug(
        "Route %s: %.1f km, %d sample points every %.0f m",
        route_id, total_dist / 1000.0, len(points), interval_m,
    )

    return DiscretizedRoute(
        route_id=route_id,
        interval_m=interval_m,
        total_distance_m=total_dist,
        points=tuple(points),
        source_raw_hash=raw_hash,
    )
