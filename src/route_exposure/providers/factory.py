from __future__ import annotations

from typing import Optional

from route_exposure.config import Settings, settings as default_settings
from route_exposure.providers.base import RasterService


def build_service(service_str: str, settings: Optional[Settings] = None) -> RasterService:
    """
    Build a raster service from a CLI/API string like:
      "mock"
      "http"
      "http+cache"
    """
    s = settings or default_settings
    tokens = [t.strip().lower() for t in service_str.split("+") if t.strip()]
    if not tokens:
        tokens = ["mock"]

    # Local imports to avoid circular imports
    from route_exposure.providers.cached import CachedRasterService
    from route_exposure.providers.http import HttpRasterService
    from route_exposure.providers.mock import MockRasterService

    base, *wrappers = tokens
    if base == "mock":
        service: RasterService = MockRasterService()
    elif base == "http":
        service = HttpRasterService(settings=s)
    else:
        raise ValueError(f"Unknown raster service: '{base}' (supported: mock, http)")

    for t in wrappers:
        if t == "cache":
            service = CachedRasterService(service, ttl=s.ttl_region_mean)
        else:
            raise ValueError(f"Unknown service wrapper: '{t}' (supported: cache)")

    return service
