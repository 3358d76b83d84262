"""Large-region statistics: partition, pick a scale per cell, evaluate cells.

Cells whose query keeps hitting a resource limit after scale coarsening are
split on a finer grid and their children evaluated instead, down to
``max_subdivision_depth``. Whatever still fails is reported in
``RegionExposure.failed_cells``; the remaining cells still count.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

from shapely.geometry.base import BaseGeometry

from route_exposure.config import Settings, settings as default_settings
from route_exposure.contracts.grid_contract import GridCell
from route_exposure.core.executor import CancelToken, QueryExecutor
from route_exposure.core.grid import partition_geometry, subdivide_cell
from route_exposure.core.models import CellResult, RasterLayer, RegionExposure
from route_exposure.core.sampling import evaluate_region
from route_exposure.core.scale import adaptive_scale, region_area_km2
from route_exposure.providers.base import RasterService

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class CellQuery:
    cell: GridCell
    scale_m: float


def plan_region_cells(polygon: BaseGeometry, cell_size_deg: float, tolerance_m: float = 0.0) -> List[CellQuery]:
    cells = partition_geometry(polygon, cell_size_deg, tolerance_m)
    return [CellQuery(cell=c, scale_m=adaptive_scale(c.geometry)) for c in cells]


def _evaluate_cell(
    cell: GridCell,
    scale_m: float,
    depth: int,
    layer: RasterLayer,
    service: RasterService,
    executor: QueryExecutor,
    s: Settings,
) -> List[CellResult]:
    outcome = executor.run_one(
        lambda scale, timeout: evaluate_region(cell.geometry, layer, service, scale, timeout),
        scale_m,
        label=f"{layer.name}/cell {cell.key}",
    )

    if outcome.failed and outcome.retryable and depth < s.max_subdivision_depth:
        children = subdivide_cell(cell, 2, s.intersection_tolerance_m)
        log.info("Cell %s: splitting into %d sub-cells (depth %d)", cell.key, len(children), depth + 1)
        results: list[CellResult] = []
        for child in children:
            # Same scale on a quarter of the area: fewer pixels per query.
            results.extend(_evaluate_cell(child, scale_m, depth + 1, layer, service, executor, s))
        return results

    return [
        CellResult(
            key=cell.key,
            grid_x=cell.grid_x,
            grid_y=cell.grid_y,
            area_m2=cell.area_m2,
            scale_m=outcome.scale_m,
            value=outcome.value,
            error=outcome.error,
            depth=depth,
        )
    ]


def summarize_region(
    polygon: BaseGeometry,
    layer: RasterLayer,
    service: RasterService,
    settings: Optional[Settings] = None,
    cancel: Optional[CancelToken] = None,
) -> RegionExposure:
    """Area-weighted mean and min/max of cell means of ``layer`` over ``polygon``."""
    s = settings or default_settings
    region_area_km2(polygon)
    layer = layer.with_window(s.start_date, s.end_date)

    plan = plan_region_cells(polygon, s.cell_size_deg, s.intersection_tolerance_m)
    log.info("Region %s: %d cells at %.3f deg", layer.name, len(plan), s.cell_size_deg)

    executor = QueryExecutor.from_settings(s, cancel)
    nested = executor.map(
        lambda q: _evaluate_cell(q.cell, q.scale_m, 0, layer, service, executor, s), plan
    )
    cells = [c for group in nested for c in group]

    valid = [c for c in cells if c.error is None and c.value is not None]
    weight = sum(c.area_m2 for c in valid)
    mean = sum(c.value * c.area_m2 for c in valid) / weight if weight > 0 else None
    failed = [c.key for c in cells if c.error is not None]
    if failed:
        log.warning("Region %s: %d cell(s) failed: %s", layer.name, len(failed), ", ".join(failed))

    return RegionExposure(
        layer_name=layer.name,
        cell_size_deg=s.cell_size_deg,
        total_area_m2=sum(c.area_m2 for c in cells),
        cells=cells,
        mean=mean,
        min=min((c.value for c in valid), default=None),
        max=max((c.value for c in valid), default=None),
        failed_cells=failed,
    )
