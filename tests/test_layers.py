"""Tests for the default layer catalog (route_exposure.core.layers)."""

from datetime import date

import pytest
from pydantic import ValidationError

from route_exposure.core.engine import layer_keys
from route_exposure.core.layers import DEFAULT_LAYERS, TEMPERATURE, resolve_layers
from route_exposure.core.models import RasterLayer


class TestResolveLayers:
    def test_all_by_default(self):
        assert list(resolve_layers()) == ["NDVI", "NO2", "Temperature", "PM2.5"]

    def test_requested_order_and_case(self):
        assert list(resolve_layers(["temperature", " ndvi "])) == ["Temperature", "NDVI"]

    def test_unknown(self):
        with pytest.raises(ValueError, match="Unknown layer"):
            resolve_layers(["ozone"])


class TestCatalog:
    def test_keys_are_distinct(self):
        assert list(layer_keys(DEFAULT_LAYERS)) == ["NDVI", "NO2", "Temperature", "PM25"]

    def test_temperature_to_celsius(self):
        assert TEMPERATURE.apply(15000.0) == pytest.approx(26.85)
        assert TEMPERATURE.apply(None) is None

    def test_ndvi_samples_finer_than_default(self):
        assert DEFAULT_LAYERS["NDVI"].sampling_scale_m == 30.0
        assert DEFAULT_LAYERS["NO2"].sampling_scale_m is None


class TestTimeWindow:
    def test_missing_ends_are_filled(self):
        filled = TEMPERATURE.with_window(date(2023, 5, 1), date(2023, 6, 30))
        assert (filled.start_date, filled.end_date) == (date(2023, 5, 1), date(2023, 6, 30))
        assert filled.asset_id == TEMPERATURE.asset_id

    def test_own_window_wins(self):
        layer = RasterLayer(name="NO2", start_date=date(2022, 1, 1), end_date=date(2022, 2, 1))
        assert layer.with_window(date(2023, 5, 1), date(2023, 6, 30)) is layer

    def test_partial_window(self):
        layer = RasterLayer(name="NO2", start_date=date(2023, 6, 1))
        filled = layer.with_window(date(2023, 5, 1), date(2023, 6, 30))
        assert (filled.start_date, filled.end_date) == (date(2023, 6, 1), date(2023, 6, 30))

    @pytest.mark.parametrize("end", [date(2023, 5, 1), date(2023, 4, 30)])
    def test_end_must_follow_start(self, end):
        with pytest.raises(ValidationError):
            RasterLayer(name="NO2", start_date=date(2023, 5, 1), end_date=end)
