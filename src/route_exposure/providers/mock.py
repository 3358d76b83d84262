from __future__ import annotations

import math
from typing import Dict, Optional, Tuple

from shapely.geometry.base import BaseGeometry

from route_exposure.core.models import RasterLayer
from route_exposure.providers.base import RasterService

# layer name -> (base, amplitude) of the raw pixel value
_SURFACES: Dict[str, Tuple[float, float]] = {
    "NDVI": (0.5, 0.25),
    "NO2": (6e-5, 4e-5),
    "Temperature": (14_600.0, 250.0),  # raw MODIS DN, ~19 °C +/- 5
    "PM2.5": (8.0, 4.0),
}


class MockRasterService(RasterService):
    """
    Deterministic fake raster service so the pipeline runs end-to-end without APIs.
    Values vary smoothly with the region centroid; regions inside ``nodata_mask``
    have no valid pixels.
    """

    def __init__(
        self,
        surfaces: Optional[Dict[str, Tuple[float, float]]] = None,
        nodata_mask: Optional[BaseGeometry] = None,
    ):
        self.surfaces = dict(_SURFACES if surfaces is None else surfaces)
        self.nodata_mask = nodata_mask

    def evaluate_region_mean(
        self,
        layer: RasterLayer,
        region: BaseGeometry,
        scale_m: float,
        timeout_s: float,
    ) -> Optional[float]:
        c = region.centroid
        if self.nodata_mask is not None and self.nodata_mask.contains(c):
            return None

        base, amp = self.surfaces.get(layer.name, (1.0, 0.5))
        # Route-driven variation
        geo = math.sin((c.x + c.y) * 10)
        return float(round(base + amp * geo, 8))
