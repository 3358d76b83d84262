from __future__ import annotations

from datetime import date
from typing import Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, Field, model_validator
from shapely.geometry import LineString, Point

from route_exposure.contracts.route_contract import SamplePoint

# Missing raster values are carried as None end to end, never as 0.0.
StatKind = Literal["Min", "Mean", "Max"]


class Trip(BaseModel):
    model_config = {"frozen": True}

    trip_id: str = "trip"
    # [lon, lat] pairs in WGS-84 degrees, in travel order
    route: List[Tuple[float, float]] = Field(..., min_length=1)

    @property
    def geometry(self):
        if len(self.route) == 1:
            return Point(self.route[0])
        return LineString(self.route)


class RasterLayer(BaseModel):
    """
    Named handle on a raster surface served by the remote evaluation service.

    The service reduces a composite of the asset over ``[start_date, end_date)``.
    Layers without their own window take the configured one at plan time
    (see ``with_window``).
    """

    model_config = {"frozen": True}

    name: str
    asset_id: str = ""
    band: Optional[str] = None
    native_scale_m: float = 30.0  # informational; queries pass an explicit scale
    sampling_scale_m: Optional[float] = Field(default=None, gt=0)
    scale_factor: float = 1.0
    offset: float = 0.0
    units: str = ""
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    @model_validator(mode="after")
    def _check_window(self) -> "RasterLayer":
        if self.start_date and self.end_date and self.end_date <= self.start_date:
            raise ValueError(f"{self.name}: end_date {self.end_date} is not after start_date {self.start_date}")
        return self

    def with_window(self, start_date: date, end_date: date) -> "RasterLayer":
        """Copy with any missing end of the time window filled in."""
        if self.start_date is not None and self.end_date is not None:
            return self
        return self.model_validate(
            {
                **self.model_dump(),
                "start_date": self.start_date or start_date,
                "end_date": self.end_date or end_date,
            }
        )

    def apply(self, raw: Optional[float]) -> Optional[float]:
        if raw is None:
            return None
        return raw * self.scale_factor + self.offset


class LayerSampleResult(BaseModel):
    model_config = {"frozen": True}

    point: SamplePoint
    layer_name: str
    value: Optional[float] = None
    scale_m: Optional[float] = None  # scale of the attempt that produced value
    error: Optional[str] = None      # set when every attempt failed

    @property
    def failed(self) -> bool:
        return self.error is not None


class ExposureSummary(BaseModel):
    model_config = {"frozen": True}

    layer_name: str
    mean: Optional[float] = None
    min: Optional[float] = None
    max: Optional[float] = None
    sample_count: int = 0  # valid samples only
    nodata_count: int = 0
    failed_distances_m: List[float] = Field(default_factory=list)
    # every sampled point in distance order, NoData and failures included
    samples: List[LayerSampleResult] = Field(default_factory=list)

    @property
    def is_complete(self) -> bool:
        return not self.failed_distances_m


class TripExposureRecord(BaseModel):
    model_config = {"frozen": True}

    trip_id: str
    coordinates: List[Tuple[float, float]]
    total_distance_m: float
    sample_distances_m: List[float]
    # sanitized layer key -> summary, in input layer order
    per_layer: Dict[str, ExposureSummary]

    @property
    def is_complete(self) -> bool:
        return all(s.is_complete for s in self.per_layer.values())


class StatRow(BaseModel):
    model_config = {"frozen": True}

    trip_id: str
    layer: str
    stat: StatKind
    value: Optional[float] = None


class BatchResult(BaseModel):
    model_config = {"frozen": True}

    records: List[TripExposureRecord] = Field(default_factory=list)
    failures: Dict[str, str] = Field(default_factory=dict)  # trip_id -> error
    cancelled: bool = False  # records hold only the trips finished before cancellation


class CellResult(BaseModel):
    model_config = {"frozen": True}

    key: str
    grid_x: int
    grid_y: int
    area_m2: float
    scale_m: Optional[float] = None
    value: Optional[float] = None
    error: Optional[str] = None
    depth: int = 0  # subdivision depth that produced this result


class RegionExposure(BaseModel):
    model_config = {"frozen": True}

    layer_name: str
    cell_size_deg: float
    total_area_m2: float
    cells: List[CellResult]
    mean: Optional[float] = None  # area-weighted over cells with data
    min: Optional[float] = None
    max: Optional[float] = None
    failed_cells: List[str] = Field(default_factory=list)

    @property
    def is_complete(self) -> bool:
        return not self.failed_cells
