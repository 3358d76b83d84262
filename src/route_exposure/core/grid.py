"""Split large polygons into grid cells clipped to the polygon."""
from __future__ import annotations

import logging
from dataclasses import replace
from math import ceil
from typing import List, Optional

import shapely
from shapely.geometry import MultiPolygon, Polygon, box
from shapely.geometry.base import BaseGeometry

from route_exposure.contracts.grid_contract import GridCell
from route_exposure.core.errors import EmptyGeometry, InvalidCellSize
from route_exposure.geo.geodesy import METERS_PER_DEGREE, geodesic_area_m2

log = logging.getLogger(__name__)


def _polygonal_part(geom: BaseGeometry) -> BaseGeometry:
    """Drop points/lines that an intersection can leave along shared edges."""
    if geom.is_empty or geom.geom_type in ("Polygon", "MultiPolygon"):
        return geom
    polys: list[Polygon] = []
    for g in getattr(geom, "geoms", []):
        if g.geom_type == "Polygon":
            polys.append(g)
        elif g.geom_type == "MultiPolygon":
            polys.extend(g.geoms)
    if len(polys) == 1:
        return polys[0]
    return MultiPolygon(polys)


def _grid_size(tolerance_m: float) -> Optional[float]:
    if tolerance_m <= 0:
        return None
    return tolerance_m / METERS_PER_DEGREE


def partition_geometry(
    polygon: BaseGeometry,
    cell_size_deg: float,
    tolerance_m: float = 0.0,
) -> List[GridCell]:
    """
    Cover ``polygon`` with square cells of ``cell_size_deg`` clipped to it.

    Cells are anchored on the polygon's bounding box minimum and indexed by
    (grid_x, grid_y). Cells whose clipped area is zero are discarded, so the
    retained cells tile the polygon without interior overlap.

    ``tolerance_m`` > 0 snaps the intersection to a precision grid of about
    that many metres.
    """
    if not cell_size_deg > 0:
        raise InvalidCellSize(f"Cell size must be > 0 degrees, got {cell_size_deg}")
    if polygon.is_empty or polygon.area == 0:
        raise EmptyGeometry("Cannot partition a geometry with zero area")

    x_min, y_min, x_max, y_max = polygon.bounds
    x_steps = int(ceil((x_max - x_min) / cell_size_deg))
    y_steps = int(ceil((y_max - y_min) / cell_size_deg))
    grid_size = _grid_size(tolerance_m)

    cells: list[GridCell] = []
    for x in range(x_steps):
        # Neighbouring cells derive shared edges from the same index so they
        # meet exactly.
        x0 = x_min + x * cell_size_deg
        x1 = x_min + (x + 1) * cell_size_deg
        for y in range(y_steps):
            y0 = y_min + y * cell_size_deg
            y1 = y_min + (y + 1) * cell_size_deg
            clipped = _polygonal_part(
                shapely.intersection(box(x0, y0, x1, y1), polygon, grid_size=grid_size)
            )
            area = clipped.area
            if area == 0:
                continue
            cells.append(
                GridCell(
                    grid_x=x,
                    grid_y=y,
                    geometry=clipped,
                    area=area,
                    area_m2=geodesic_area_m2(clipped),
                    cell_size_deg=cell_size_deg,
                )
            )

    log.debug(
        "Partitioned %dx%d grid at %.4f deg: kept %d of %d cells",
        x_steps, y_steps, cell_size_deg, len(cells), x_steps * y_steps,
    )
    return cells


def subdivide_cell(cell: GridCell, factor: int = 2, tolerance_m: float = 0.0) -> List[GridCell]:
    """Re-partition one cell on a grid ``factor`` times finer."""
    children = partition_geometry(cell.geometry, cell.cell_size_deg / factor, tolerance_m)
    return [replace(child, parent=cell.key) for child in children]
