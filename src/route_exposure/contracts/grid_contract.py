# path: route-exposure/src/route_exposure/contracts/grid_contract.py

from __future__ import annotations
from dataclasses import dataclass
from typing import Optional

from shapely.geometry.base import BaseGeometry


@dataclass(frozen=True)
class GridCell:
    grid_x: int
    grid_y: int
    geometry: BaseGeometry  # cell rectangle clipped to the source polygon
    area: float             # planar, square degrees
    area_m2: float          # geodesic
    cell_size_deg: float
    parent: Optional[str] = None  # key of the cell this one was subdivided from

    @property
    def key(self) -> str:
        if self.parent is None:
            return f"{self.grid_x},{self.grid_y}"
        return f"{self.parent}/{self.grid_x},{self.grid_y}"
