"""Adaptive scale: coarser resolution for larger regions to bound query cost."""
from __future__ import annotations

import logging
from math import sqrt

from shapely.geometry.base import BaseGeometry

from route_exposure.geo.geodesy import geodesic_area_m2

log = logging.getLogger(__name__)

MIN_SCALE_M = 30.0
MAX_SCALE_M = 500.0


def scale_for_area(area_m2: float) -> float:
    """sqrt(area)/1000 metres, clamped to [30, 500]."""
    scale = sqrt(max(0.0, area_m2)) / 1000.0
    return max(MIN_SCALE_M, min(scale, MAX_SCALE_M))


def adaptive_scale(geometry: BaseGeometry) -> float:
    return scale_for_area(geodesic_area_m2(geometry))


def region_area_km2(geometry: BaseGeometry) -> float:
    """Processing area in km², logged before large jobs."""
    area = geodesic_area_m2(geometry) / 1e6
    log.info("Processing area (km²): %.1f", area)
    return area
