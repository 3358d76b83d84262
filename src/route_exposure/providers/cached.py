from __future__ import annotations

from typing import Optional

from shapely.geometry.base import BaseGeometry

from route_exposure.cache.keys import region_mean
from route_exposure.cache.redis_client import get_region_mean, set_region_mean
from route_exposure.config import settings
from route_exposure.core.models import RasterLayer
from route_exposure.providers.base import RasterService


class CachedRasterService(RasterService):
    """
    Wraps another service with the Redis region-mean cache.

    A cached NoData is a hit, not a miss. Errors from the inner service are
    never cached.
    """

    def __init__(self, inner: RasterService, ttl: Optional[int] = None):
        self.inner = inner
        self.ttl = ttl if ttl is not None else settings.ttl_region_mean

    def evaluate_region_mean(
        self,
        layer: RasterLayer,
        region: BaseGeometry,
        scale_m: float,
        timeout_s: float,
    ) -> Optional[float]:
        key = region_mean(
            layer.asset_id or layer.name, layer.band, region, scale_m, layer.start_date, layer.end_date
        )
        hit, value = get_region_mean(key)
        if hit:
            return value

        value = self.inner.evaluate_region_mean(layer, region, scale_m, timeout_s)
        set_region_mean(key, value, self.ttl)
        return value
