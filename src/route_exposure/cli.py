from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import List, Tuple

from rich.console import Console
from rich.table import Table
from shapely.geometry import Polygon

from route_exposure.config import settings
from route_exposure.core.engine import run_batch
from route_exposure.core.executor import CancelToken
from route_exposure.core.layers import resolve_layers
from route_exposure.core.models import Trip, TripExposureRecord
from route_exposure.core.regions import summarize_region
from route_exposure.core.stats import build_stats_table, build_stats_table_batch, stats_table_as_dicts
from route_exposure.providers.factory import build_service


def _read_trips(path: Path) -> List[Trip]:
    data = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(data, list):
        return [Trip(**d) for d in data]
    return [Trip(**data)]


def _read_polygon(path: Path) -> Polygon:
    data = json.loads(path.read_text(encoding="utf-8"))
    return Polygon(data["polygon"])


def _save_json(path: Path, obj) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(obj, indent=2), encoding="utf-8")


def _fmt(v) -> str:
    return "NoData" if v is None else f"{v:.6g}"


def _trip_rows(records: List[TripExposureRecord]) -> List[Tuple[str, str, str, str, str]]:
    """(trip, layer, stat, value, samples) rows, each summary read from its own record."""
    out = []
    for record in records:
        for row in build_stats_table(record):
            summary = record.per_layer[row.layer]
            samples = f"{summary.sample_count}"
            if summary.failed_distances_m:
                samples += f" ({len(summary.failed_distances_m)} failed)"
            out.append((row.trip_id, row.layer, row.stat, _fmt(row.value), samples))
    return out


def _run_region(args, console: Console, service, cancel: CancelToken) -> None:
    polygon = _read_polygon(Path(args.region))
    layers = resolve_layers(args.layers.split(",") if args.layers else None)

    table = Table(title=f"Region statistics: {args.region}")
    table.add_column("Layer")
    table.add_column("Cells")
    table.add_column("Area km²")
    table.add_column("Min")
    table.add_column("Mean")
    table.add_column("Max")
    table.add_column("Failed cells")

    out = []
    for layer in layers.values():
        res = summarize_region(polygon, layer, service, settings=settings, cancel=cancel)
        table.add_row(
            layer.name,
            str(len(res.cells)),
            f"{res.total_area_m2 / 1e6:.1f}",
            _fmt(res.min),
            _fmt(res.mean),
            _fmt(res.max),
            ", ".join(res.failed_cells)[:80],
        )
        out.append(res.model_dump())

    console.print(table)
    out_path = Path(args.out_dir) / "last_run_region.json"
    _save_json(out_path, out)
    console.print(f"Saved: {out_path.resolve()}")


def main() -> None:
    ap = argparse.ArgumentParser(description="Environmental exposure along trips")
    ap.add_argument("--service", default="mock", help="e.g. mock, http, http+cache")
    ap.add_argument("--trip", default="trips/sample_trip.json", help="Path to a trip JSON file (object or list)")
    ap.add_argument("--region", default=None, help="Path to a polygon JSON file; switches to region mode")
    ap.add_argument("--layers", default=None, help="Comma-separated layer names (default: all)")
    ap.add_argument("--interval", type=float, default=None, help="Sampling interval in metres")
    ap.add_argument("--deadline", type=float, default=None, help="Abort the run after this many seconds")
    ap.add_argument("--out-dir", default="trips")
    ap.add_argument("--debug", action="store_true")
    args = ap.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(asctime)s [%(name)s] %(levelname)s %(message)s",
    )

    console = Console()
    service = build_service(args.service)
    cancel = CancelToken(deadline_s=args.deadline)

    if args.region:
        _run_region(args, console, service, cancel)
        return

    trips = _read_trips(Path(args.trip))
    layers = resolve_layers(args.layers.split(",") if args.layers else None)

    batch = run_batch(trips, layers, service, settings=settings, interval_m=args.interval, cancel=cancel)
    rows = build_stats_table_batch(batch.records)

    table = Table(title="Trip exposure (layer, stat, value)")
    table.add_column("Trip")
    table.add_column("Layer")
    table.add_column("Stat")
    table.add_column("Value")
    table.add_column("Samples")

    for cells in _trip_rows(batch.records):
        table.add_row(*cells)

    console.print(table)
    for trip_id, err in batch.failures.items():
        console.print(f"[red]Trip {trip_id} failed:[/red] {err}")
    if batch.cancelled:
        console.print(f"[yellow]Cancelled after {len(batch.records)} of {len(trips)} trip(s)[/yellow]")

    out_dir = Path(args.out_dir)
    _save_json(out_dir / "last_run_exposure.json", [r.model_dump() for r in batch.records])
    _save_json(out_dir / "last_run_stats.json", stats_table_as_dicts(rows))
    console.print(f"Saved: {(out_dir / 'last_run_exposure.json').resolve()}")
    console.print(f"Saved: {(out_dir / 'last_run_stats.json').resolve()}")


if __name__ == "__main__":
    main()
