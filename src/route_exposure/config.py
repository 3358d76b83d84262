"""Centralized settings for the route-exposure engine."""
from __future__ import annotations

from datetime import date

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = {"env_prefix": "ROUTE_EXPOSURE_"}

    # Region partitioning
    cell_size_deg: float = Field(default=0.05, gt=0)          # ~5.5 km cells at mid latitudes
    intersection_tolerance_m: float = Field(default=1.0, ge=0)
    max_subdivision_depth: int = Field(default=2, ge=0)

    # Route sampling
    sampling_interval_m: float = Field(default=1000.0, gt=0)
    length_tolerance_m: float = Field(default=1.0, ge=0)

    # Buffer/scale pair for point sampling. Two pairs were in use for the same
    # operation (25 m @ 30 m and 25 m @ 250 m); 250 m is the default here and
    # layers may override it with RasterLayer.sampling_scale_m.
    buffer_radius_m: float = Field(default=25.0, gt=0)
    sampling_scale_m: float = Field(default=250.0, gt=0)

    # Composite window for layers that do not set their own
    start_date: date = date(2023, 5, 1)
    end_date: date = date(2023, 6, 30)

    # Remote raster service
    raster_service_url: str = ""
    query_timeout_s: float = Field(default=30.0, gt=0)
    max_retries: int = Field(default=3, ge=0)
    backoff_s: float = Field(default=0.5, ge=0)
    coarsen_factor: float = Field(default=2.0, gt=1)
    max_workers: int = Field(default=8, ge=1)
    http_tries: int = Field(default=2, ge=1)

    # Redis; empty string disables the cache
    redis_url: str = ""
    ttl_region_mean: int = 604800     # 7 d, composites are static per date range


settings = Settings()
