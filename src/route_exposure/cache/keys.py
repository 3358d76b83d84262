"""Redis key naming conventions for the route-exposure cache layer."""
from __future__ import annotations

import hashlib
from datetime import date
from typing import Optional

from shapely import wkt
from shapely.geometry.base import BaseGeometry

_PREFIX = "rx"


def region_mean(
    asset_id: str,
    band: Optional[str],
    region: BaseGeometry,
    scale_m: float,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> str:
    """Key for one areal-mean evaluation (raw value, before the layer transform)."""
    # 6 decimals is ~0.1 m, so rebuilt buffers around the same point hash identically
    geom = wkt.dumps(region, rounding_precision=6)
    window = f"{start_date}/{end_date}"
    h = hashlib.sha256(f"{asset_id}:{band}:{window}:{scale_m:.3f}:{geom}".encode()).hexdigest()[:24]
    return f"{_PREFIX}:mean:{h}"
