"""Tests for route discretization (route_exposure.core.route)."""

from math import degrees

import pytest
from shapely.geometry import LineString

from route_exposure.core.errors import EmptyGeometry, InvalidInterval
from route_exposure.core.models import Trip
from route_exposure.core.route import discretize_route, route_length_m, sample_distances
from route_exposure.geo.geodesy import EARTH_RADIUS_M, haversine_m

from conftest import meridian_line


class TestSampleDistances:
    def test_exact_multiple_includes_endpoint(self):
        route = discretize_route(LineString(meridian_line(3000.0)), 1000.0)
        assert route.distances_m == [0.0, 1000.0, 2000.0, 3000.0]
        assert route.point_count == 4

    def test_remainder_is_not_appended(self):
        route = discretize_route(LineString(meridian_line(3500.0)), 1000.0)
        assert route.distances_m == [0.0, 1000.0, 2000.0, 3000.0]
        assert route.total_distance_m == pytest.approx(3500.0)

    def test_interval_longer_than_route(self):
        route = discretize_route(LineString(meridian_line(800.0)), 1000.0)
        assert route.distances_m == [0.0]
        assert (route.points[0].lon, route.points[0].lat) == (0.0, 0.0)

    def test_tolerance_absorbs_rounding_shortfall(self):
        assert sample_distances(2999.9996, 1000.0, tolerance_m=1.0)[-1] == 3000.0
        assert sample_distances(2999.9996, 1000.0, tolerance_m=0.0)[-1] == 2000.0

    @pytest.mark.parametrize("interval", [0.0, -10.0])
    def test_invalid_interval(self, interval):
        with pytest.raises(InvalidInterval):
            discretize_route(LineString(meridian_line(3000.0)), interval)

    def test_strictly_ascending(self):
        route = discretize_route(LineString(meridian_line(10_250.0)), 700.0)
        d = route.distances_m
        assert all(b > a for a, b in zip(d, d[1:]))
        assert [p.index for p in route.points] == list(range(len(d)))


class TestCutPositions:
    def test_points_lie_at_their_distance(self):
        route = discretize_route(LineString(meridian_line(3000.0)), 1000.0)
        for p in route.points:
            assert p.lon == 0.0
            assert haversine_m(0.0, 0.0, p.lon, p.lat) == pytest.approx(p.distance_m, abs=1e-3)

    def test_cut_crosses_vertices(self):
        # 500 m north, then east along the parallel
        d500 = degrees(500.0 / EARTH_RADIUS_M)
        coords = [(0.0, 0.0), (0.0, d500), (0.02, d500)]
        route = discretize_route(coords, 1000.0)
        p = route.points[1]
        assert p.lat == pytest.approx(d500)
        assert haversine_m(0.0, d500, p.lon, p.lat) == pytest.approx(500.0, abs=0.5)

    def test_endpoint_at_exact_multiple_is_last_vertex(self):
        coords = meridian_line(2000.0)
        route = discretize_route(coords, 1000.0)
        last = route.points[-1]
        assert last.lat == pytest.approx(coords[-1][1], abs=1e-9)


class TestDegenerateRoutes:
    def test_single_vertex_trip(self):
        trip = Trip(trip_id="parked", route=[(-117.18, 46.73)])
        route = discretize_route(trip.geometry, 1000.0)
        assert route.distances_m == [0.0]
        assert route.total_distance_m == 0.0

    def test_repeated_vertices(self):
        route = discretize_route([(1.0, 1.0), (1.0, 1.0)], 1000.0)
        assert route.point_count == 1

    def test_route_length(self):
        assert route_length_m(meridian_line(4321.0)) == pytest.approx(4321.0)

    def test_hash_is_stable(self):
        a = discretize_route(meridian_line(3000.0), 1000.0)
        b = discretize_route(meridian_line(3000.0), 500.0)
        assert a.source_raw_hash == b.source_raw_hash

    def test_no_vertices(self):
        with pytest.raises(EmptyGeometry):
            discretize_route([], 1000.0)
        with pytest.raises(EmptyGeometry):
            discretize_route(LineString(), 1000.0)
