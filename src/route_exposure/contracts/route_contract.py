# path: route-exposure/src/route_exposure/contracts/route_contract.py

from __future__ import annotations
from dataclasses import dataclass
from typing import Optional, Tuple


@dataclass(frozen=True)
class SamplePoint:
    index: int
    lon: float
    lat: float
    distance_m: float  # arc length from the first vertex


@dataclass(frozen=True)
class DiscretizedRoute:
    route_id: str
    interval_m: float
    total_distance_m: float
    points: Tuple[SamplePoint, ...]
    source_raw_hash: Optional[str] = None

    @property
    def point_count(self) -> int:
        return len(self.points)

    @property
    def distances_m(self) -> list[float]:
        return [p.distance_m for p in self.points]
