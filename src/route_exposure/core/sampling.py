"""Point sampling: areal mean of a raster layer inside a buffer around a point."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from shapely.geometry.base import BaseGeometry

from route_exposure.contracts.route_contract import SamplePoint
from route_exposure.core.models import RasterLayer
from route_exposure.geo.geodesy import geodesic_circle
from route_exposure.providers.base import RasterService


@dataclass(frozen=True)
class SampleQuery:
    """One (point, layer) remote query, built before anything is dispatched."""

    index: int
    layer_key: str
    layer: RasterLayer
    point: SamplePoint
    region: BaseGeometry
    scale_m: float


def build_sample_region(point: SamplePoint, buffer_radius_m: float) -> BaseGeometry:
    return geodesic_circle(point.lon, point.lat, buffer_radius_m)


def layer_scale(layer: RasterLayer, default_scale_m: float) -> float:
    return layer.sampling_scale_m if layer.sampling_scale_m is not None else default_scale_m


def evaluate_region(
    region: BaseGeometry,
    layer: RasterLayer,
    service: RasterService,
    scale_m: float,
    timeout_s: float,
) -> Optional[float]:
    """Areal mean in the layer's output units; None when no valid pixels."""
    raw = service.evaluate_region_mean(layer, region, scale_m, timeout_s)
    return layer.apply(raw)


def sample_point(
    point: SamplePoint,
    layer: RasterLayer,
    service: RasterService,
    buffer_radius_m: float,
    scale_m: float,
    timeout_s: float,
) -> Optional[float]:
    """
    Mean of ``layer`` within ``buffer_radius_m`` of ``point`` at ``scale_m``.

    Serves both the per-trip pipeline and one-off sampling of a single layer,
    so the buffer radius and scale always come from the caller.
    """
    region = build_sample_region(point, buffer_radius_m)
    return evaluate_region(region, layer, service, scale_m, timeout_s)


def plan_point_queries(
    points: Sequence[SamplePoint],
    layers: Dict[str, RasterLayer],
    buffer_radius_m: float,
    default_scale_m: float,
) -> List[SampleQuery]:
    """
    Describe every (layer, point) query, layer-major.

    Buffer regions are built once per point and shared across layers.
    """
    regions = [build_sample_region(p, buffer_radius_m) for p in points]
    queries: list[SampleQuery] = []
    for key, layer in layers.items():
        scale = layer_scale(layer, default_scale_m)
        for point, region in zip(points, regions):
            queries.append(
                SampleQuery(
                    index=len(queries),
                    layer_key=key,
                    layer=layer,
                    point=point,
                    region=region,
                    scale_m=scale,
                )
            )
    return queries
