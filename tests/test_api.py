"""Tests for the REST backend (route_exposure.api)."""

import pytest
from fastapi.testclient import TestClient

from route_exposure.api import app

from conftest import meridian_line

# 0.0625 deg square (binary-exact edges): a 2x2 grid at the default 0.05 deg cells
PULLMAN_BOX = [[-117.25, 46.75], [-117.1875, 46.75], [-117.1875, 46.8125], [-117.25, 46.8125], [-117.25, 46.75]]


@pytest.fixture
def client():
    return TestClient(app)


class TestHealth:
    def test_ok_without_redis(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"


class TestExposure:
    def test_all_layers(self, client):
        route = meridian_line(2000.0, lon=-117.18, lat0=46.73)
        resp = client.post("/exposure", json={"trip_id": "t", "route": route})
        assert resp.status_code == 200
        body = resp.json()
        assert body["complete"] is True
        assert body["record"]["sample_distances_m"] == [0.0, 1000.0, 2000.0]
        assert list(body["record"]["per_layer"]) == ["NDVI", "NO2", "Temperature", "PM25"]
        assert [s["point"]["distance_m"] for s in body["record"]["per_layer"]["NDVI"]["samples"]] == [0.0, 1000.0, 2000.0]
        assert len(body["stats"]) == 12
        assert body["stats"][0] == {
            "trip_id": "t",
            "layer": "NDVI",
            "stat": "Min",
            "value": body["record"]["per_layer"]["NDVI"]["min"],
        }

    def test_layer_subset(self, client):
        route = meridian_line(500.0, lon=-117.18, lat0=46.73)
        resp = client.post("/exposure", json={"route": route, "layers": ["NO2"]})
        assert resp.status_code == 200
        assert [r["layer"] for r in resp.json()["stats"]] == ["NO2"] * 3

    def test_unknown_layer(self, client):
        resp = client.post("/exposure", json={"route": [[0, 0], [0, 0.01]], "layers": ["ozone"]})
        assert resp.status_code == 422

    def test_invalid_interval(self, client):
        resp = client.post("/exposure", json={"route": [[0, 0], [0, 0.01]], "sampling_interval_m": 0})
        assert resp.status_code == 422

    def test_empty_route_rejected(self, client):
        resp = client.post("/exposure", json={"route": []})
        assert resp.status_code == 422


class TestRegion:
    def test_region_summary(self, client):
        resp = client.post("/region", json={"polygon": PULLMAN_BOX, "layer": "no2"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["layer_name"] == "NO2"
        assert len(body["cells"]) == 4
        assert body["mean"] is not None
        assert body["failed_cells"] == []

    def test_unknown_layer(self, client):
        resp = client.post("/region", json={"polygon": PULLMAN_BOX, "layer": "ozone"})
        assert resp.status_code == 422
