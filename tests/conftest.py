"""Shared fixtures: fast settings and scriptable fake raster services."""

import threading
from math import degrees
from typing import Callable, Dict, List, Optional, Tuple

import pytest
from shapely.geometry.base import BaseGeometry

from route_exposure.config import Settings
from route_exposure.core.models import RasterLayer
from route_exposure.geo.geodesy import EARTH_RADIUS_M
from route_exposure.providers.base import RasterService


def meridian_line(length_m: float, lon: float = 0.0, lat0: float = 0.0) -> List[Tuple[float, float]]:
    """Two-vertex route heading due north with the given great-circle length."""
    return [(lon, lat0), (lon, lat0 + degrees(length_m / EARTH_RADIUS_M))]


class RecordingService(RasterService):
    """
    Fake service answering from ``value_fn(layer, region, scale)``.

    Every call is recorded as (layer name, centroid (lon, lat), scale).
    """

    def __init__(self, value_fn: Optional[Callable[[RasterLayer, BaseGeometry, float], Optional[float]]] = None):
        self.value_fn = value_fn or (lambda layer, region, scale: 1.0)
        self.calls: List[Tuple[str, Tuple[float, float], float]] = []
        self._lock = threading.Lock()

    def evaluate_region_mean(self, layer, region, scale_m, timeout_s):
        c = region.centroid
        with self._lock:
            self.calls.append((layer.name, (round(c.x, 9), round(c.y, 9)), scale_m))
        return self.value_fn(layer, region, scale_m)

    def calls_for(self, layer_name: str):
        return [c for c in self.calls if c[0] == layer_name]


@pytest.fixture
def fast_settings() -> Settings:
    """Settings with no backoff sleeps and a small thread pool."""
    return Settings(
        backoff_s=0.0,
        max_workers=4,
        max_retries=2,
        sampling_interval_m=1000.0,
        sampling_scale_m=30.0,
        buffer_radius_m=25.0,
        cell_size_deg=0.05,
        intersection_tolerance_m=0.0,
        redis_url="",
    )


@pytest.fixture
def two_layers() -> Dict[str, RasterLayer]:
    return {
        "NDVI": RasterLayer(name="NDVI", asset_id="test/ndvi"),
        "Temperature": RasterLayer(name="Temperature", asset_id="test/lst"),
    }
