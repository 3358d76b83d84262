"""FastAPI REST backend for the route-exposure engine."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field
from shapely.geometry import Polygon

from route_exposure.cache.redis_client import redis_healthy
from route_exposure.config import settings
from route_exposure.core.engine import run_trip_exposure
from route_exposure.core.errors import (
    DuplicateLayerKey,
    EmptyGeometry,
    ExposureError,
    InvalidCellSize,
    InvalidInterval,
    PipelineCancelled,
)
from route_exposure.core.executor import CancelToken
from route_exposure.core.layers import resolve_layers
from route_exposure.core.models import RegionExposure, StatRow, Trip, TripExposureRecord
from route_exposure.core.regions import summarize_region
from route_exposure.core.stats import build_stats_table
from route_exposure.providers.factory import build_service

log = logging.getLogger(__name__)

app = FastAPI(title="Route Exposure", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Module-level service singletons (connection pools persist across requests)
# ---------------------------------------------------------------------------
_service_cache: Dict[str, Any] = {}


def _get_service(service_str: str):
    if service_str not in _service_cache:
        _service_cache[service_str] = build_service(service_str)
    return _service_cache[service_str]


# ---------------------------------------------------------------------------
# Request / Response models
# ---------------------------------------------------------------------------

class ExposureRequest(BaseModel):
    trip_id: str = "api"
    route: List[Tuple[float, float]] = Field(..., min_length=1, description="[lon, lat] pairs")
    layers: Optional[List[str]] = None
    sampling_interval_m: Optional[float] = None
    deadline_s: Optional[float] = None
    service: str = "mock"


class ExposureResponse(BaseModel):
    record: TripExposureRecord
    stats: List[StatRow]
    complete: bool


class RegionRequest(BaseModel):
    polygon: List[Tuple[float, float]] = Field(..., min_length=3, description="[lon, lat] ring")
    layer: str
    deadline_s: Optional[float] = None
    service: str = "mock"


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@app.get("/health")
def health():
    return {"status": "ok", "redis": redis_healthy()}


def _resolve(names: Optional[List[str]]):
    try:
        return resolve_layers(names)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))


@app.post("/exposure", response_model=ExposureResponse)
def exposure(req: ExposureRequest):
    layers = _resolve(req.layers)
    trip = Trip(trip_id=req.trip_id, route=req.route)
    try:
        record = run_trip_exposure(
            trip,
            layers,
            _get_service(req.service),
            settings=settings,
            interval_m=req.sampling_interval_m,
            cancel=CancelToken(deadline_s=req.deadline_s),
        )
    except DuplicateLayerKey as e:
        raise HTTPException(status_code=409, detail=str(e))
    except InvalidInterval as e:
        raise HTTPException(status_code=422, detail=str(e))
    except PipelineCancelled as e:
        raise HTTPException(status_code=504, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except ExposureError as e:
        log.exception("Exposure run for trip %s failed", req.trip_id)
        raise HTTPException(status_code=500, detail=str(e))

    return ExposureResponse(record=record, stats=build_stats_table(record), complete=record.is_complete)


@app.post("/region", response_model=RegionExposure)
def region(req: RegionRequest):
    layers = _resolve([req.layer])
    layer = next(iter(layers.values()))
    try:
        return summarize_region(
            Polygon(req.polygon),
            layer,
            _get_service(req.service),
            settings=settings,
            cancel=CancelToken(deadline_s=req.deadline_s),
        )
    except (EmptyGeometry, InvalidCellSize) as e:
        raise HTTPException(status_code=422, detail=str(e))
    except PipelineCancelled as e:
        raise HTTPException(status_code=504, detail=str(e))
