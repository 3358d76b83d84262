"""Tests for the command-line table rendering (route_exposure.cli)."""

from route_exposure.cli import _trip_rows
from route_exposure.core.models import ExposureSummary, TripExposureRecord


def _record(trip_id, mean, count, failed=()):
    summary = ExposureSummary(
        layer_name="NDVI",
        mean=mean,
        min=mean,
        max=mean,
        sample_count=count,
        failed_distances_m=list(failed),
    )
    return TripExposureRecord(
        trip_id=trip_id,
        coordinates=[(0.0, 0.0), (0.0, 0.01)],
        total_distance_m=1112.0,
        sample_distances_m=[0.0, 1000.0],
        per_layer={"NDVI": summary},
    )


class TestTripRows:
    def test_repeated_trip_ids_keep_their_own_summary(self):
        rows = _trip_rows([_record("commute", 0.25, 2), _record("commute", 0.75, 1, failed=[1000.0])])
        assert len(rows) == 6
        assert [r[3] for r in rows] == ["0.25"] * 3 + ["0.75"] * 3
        assert [r[4] for r in rows] == ["2"] * 3 + ["1 (1 failed)"] * 3

    def test_nodata_cells(self):
        rows = _trip_rows([_record("t", None, 0)])
        assert [r[2] for r in rows] == ["Min", "Mean", "Max"]
        assert all(r[3] == "NoData" for r in rows)
