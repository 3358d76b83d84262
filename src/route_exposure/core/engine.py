from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Tuple

from route_exposure.config import Settings, settings as default_settings
from route_exposure.contracts.route_contract import DiscretizedRoute
from route_exposure.core.aggregate import aggregate_samples
from route_exposure.core.errors import DuplicateLayerKey, EmptyGeometry, PipelineCancelled
from route_exposure.core.executor import CancelToken, QueryExecutor
from route_exposure.core.models import (
    BatchResult,
    LayerSampleResult,
    RasterLayer,
    Trip,
    TripExposureRecord,
)
from route_exposure.core.route import discretize_route
from route_exposure.core.sampling import SampleQuery, evaluate_region, plan_point_queries
from route_exposure.providers.base import RasterService

log = logging.getLogger(__name__)

# Property keys may not contain dots; every other character is kept.
_DISALLOWED_KEY_CHARS = re.compile(r"\.")


def sanitize_layer_key(name: str) -> str:
    """Drop dots, which cannot appear in a property key (``PM2.5`` -> ``PM25``)."""
    key = _DISALLOWED_KEY_CHARS.sub("", name)
    if not key.strip():
        raise ValueError(f"Layer name '{name}' has no characters usable as a key")
    return key


def layer_keys(layers: Dict[str, RasterLayer]) -> Dict[str, str]:
    """Map sanitized key -> input name, in input order; reject collisions."""
    keys: Dict[str, str] = {}
    for name in layers:
        key = sanitize_layer_key(name)
        if key in keys:
            raise DuplicateLayerKey(key, [keys[key], name])
        keys[key] = name
    return keys


@dataclass(frozen=True)
class ExposurePlan:
    """Everything a trip run will ask the raster service, before asking it."""

    trip: Trip
    route: DiscretizedRoute
    layer_names: Dict[str, str]  # sanitized key -> input name
    queries: Tuple[SampleQuery, ...]


def plan_trip_exposure(
    trip: Trip,
    layers: Dict[str, RasterLayer],
    settings: Optional[Settings] = None,
    interval_m: Optional[float] = None,
) -> ExposurePlan:
    """Discretize the route once and describe every (layer, point) query."""
    s = settings or default_settings
    keys = layer_keys(layers)
    interval = interval_m if interval_m is not None else s.sampling_interval_m

    route = discretize_route(
        trip.geometry, interval, tolerance_m=s.length_tolerance_m, route_id=trip.trip_id
    )
    keyed_layers = {key: layers[name].with_window(s.start_date, s.end_date) for key, name in keys.items()}
    queries = plan_point_queries(route.points, keyed_layers, s.buffer_radius_m, s.sampling_scale_m)

    log.info(
        "Trip %s: %.2f km, %d points x %d layers = %d queries",
        trip.trip_id, route.total_distance_m / 1000.0, route.point_count, len(keys), len(queries),
    )
    return ExposurePlan(trip=trip, route=route, layer_names=keys, queries=tuple(queries))


def execute_plan(plan: ExposurePlan, service: RasterService, executor: QueryExecutor) -> TripExposureRecord:
    def _run(q: SampleQuery) -> LayerSampleResult:
        outcome = executor.run_one(
            lambda scale, timeout: evaluate_region(q.region, q.layer, service, scale, timeout),
            q.scale_m,
            label=f"{plan.trip.trip_id}/{q.layer_key}@{q.point.distance_m:.0f}m",
        )
        return LayerSampleResult(
            point=q.point,
            layer_name=q.layer_key,
            value=outcome.value,
            scale_m=outcome.scale_m,
            error=outcome.error,
        )

    samples = executor.map(_run, plan.queries)

    by_layer: Dict[str, list[LayerSampleResult]] = {key: [] for key in plan.layer_names}
    for sample in samples:
        by_layer[sample.layer_name].append(sample)

    per_layer = {
        key: aggregate_samples(key, sorted(rows, key=lambda r: r.point.distance_m))
        for key, rows in by_layer.items()
    }

    return TripExposureRecord(
        trip_id=plan.trip.trip_id,
        coordinates=list(plan.trip.route),
        total_distance_m=plan.route.total_distance_m,
        sample_distances_m=plan.route.distances_m,
        per_layer=per_layer,
    )


def run_trip_exposure(
    trip: Trip,
    layers: Dict[str, RasterLayer],
    service: RasterService,
    settings: Optional[Settings] = None,
    interval_m: Optional[float] = None,
    cancel: Optional[CancelToken] = None,
) -> TripExposureRecord:
    """
    Sample every layer at the same points along the trip and summarize.

    Raises DuplicateLayerKey before any remote call when two layer names
    sanitize to the same key.
    """
    s = settings or default_settings
    plan = plan_trip_exposure(trip, layers, s, interval_m)
    record = execute_plan(plan, service, QueryExecutor.from_settings(s, cancel))
    if not record.is_complete:
        log.warning(
            "Trip %s: partial result, failed samples per layer: %s",
            trip.trip_id,
            {k: len(v.failed_distances_m) for k, v in record.per_layer.items() if v.failed_distances_m},
        )
    return record


def run_batch(
    trips: Iterable[Trip],
    layers: Dict[str, RasterLayer],
    service: RasterService,
    settings: Optional[Settings] = None,
    interval_m: Optional[float] = None,
    cancel: Optional[CancelToken] = None,
) -> BatchResult:
    """
    Run several trips; a trip-level failure is reported, not raised.

    On cancellation the trips finished so far are returned with
    ``cancelled=True``; the trip in flight and the rest are not run.
    """
    records: list[TripExposureRecord] = []
    failures: Dict[str, str] = {}
    for trip in trips:
        try:
            records.append(run_trip_exposure(trip, layers, service, settings, interval_m, cancel))
        except (DuplicateLayerKey, EmptyGeometry) as e:
            log.error("Trip %s aborted: %s", trip.trip_id, e)
            failures[trip.trip_id] = f"{type(e).__name__}: {e}"
        except PipelineCancelled:
            log.warning("Batch cancelled during trip %s after %d finished trip(s)", trip.trip_id, len(records))
            return BatchResult(records=records, failures=failures, cancelled=True)
    return BatchResult(records=records, failures=failures)
