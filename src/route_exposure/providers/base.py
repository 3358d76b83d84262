from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from shapely.geometry.base import BaseGeometry

from route_exposure.core.models import RasterLayer


class RasterService(ABC):
    """Evaluate areal statistics of a raster layer on a remote service."""

    @abstractmethod
    def evaluate_region_mean(
        self,
        layer: RasterLayer,
        region: BaseGeometry,
        scale_m: float,
        timeout_s: float,
    ) -> Optional[float]:
        """
        Mean of the layer's raw pixel values inside ``region`` at ``scale_m``.

        Returns None when the region holds no valid pixels. Raises
        RasterTimeout or PixelBudgetExceeded when the service gives up.
        """
        raise NotImplementedError
