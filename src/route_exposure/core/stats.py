"""Long-format (layer, stat, value) tables for reporting."""
from __future__ import annotations

from typing import Any, Dict, Iterable, List

from route_exposure.core.models import StatRow, TripExposureRecord


def build_stats_table(record: TripExposureRecord) -> List[StatRow]:
    """Min, Mean, Max per layer, in the record's layer order."""
    rows: list[StatRow] = []
    for layer, summary in record.per_layer.items():
        rows.append(StatRow(trip_id=record.trip_id, layer=layer, stat="Min", value=summary.min))
        rows.append(StatRow(trip_id=record.trip_id, layer=layer, stat="Mean", value=summary.mean))
        rows.append(StatRow(trip_id=record.trip_id, layer=layer, stat="Max", value=summary.max))
    return rows


def build_stats_table_batch(records: Iterable[TripExposureRecord]) -> List[StatRow]:
    rows: list[StatRow] = []
    for record in records:
        rows.extend(build_stats_table(record))
    return rows


def stats_table_as_dicts(rows: Iterable[StatRow]) -> List[Dict[str, Any]]:
    """Columns trip_id, layer, stat, value; NoData stays None (empty CSV cell)."""
    return [row.model_dump() for row in rows]
