"""Environmental layers sampled along trips by default."""
from __future__ import annotations

from typing import Dict, Iterable, Optional

from route_exposure.core.models import RasterLayer

NDVI = RasterLayer(
    name="NDVI",
    asset_id="COPERNICUS/S2_SR_HARMONIZED",
    band="NDVI",  # normalized difference of B8/B4 on a cloud-filtered median
    native_scale_m=10.0,
    sampling_scale_m=30.0,
)

NO2 = RasterLayer(
    name="NO2",
    asset_id="COPERNICUS/S5P/OFFL/L3_NO2",
    band="tropospheric_NO2_column_number_density",
    native_scale_m=1000.0,
    units="mol/m²",
)

TEMPERATURE = RasterLayer(
    name="Temperature",
    asset_id="MODIS/061/MOD11A2",
    band="LST_Day_1km",
    native_scale_m=1000.0,
    scale_factor=0.02,  # raw DN -> Kelvin
    offset=-273.15,     # Kelvin -> °C
    units="°C",
)

PM25 = RasterLayer(
    name="PM2.5",
    asset_id="NASA/GEOS-CF/v1/rpl/tavg1hr",
    band="PM25_RH35_GCC",
    native_scale_m=25000.0,
    sampling_scale_m=250.0,
    units="μg/m³",
)

DEFAULT_LAYERS: Dict[str, RasterLayer] = {
    layer.name: layer for layer in (NDVI, NO2, TEMPERATURE, PM25)
}


def resolve_layers(
    names: Optional[Iterable[str]] = None,
    catalog: Optional[Dict[str, RasterLayer]] = None,
) -> Dict[str, RasterLayer]:
    """Pick layers by name (case-insensitive), keeping the order asked for."""
    catalog = catalog if catalog is not None else DEFAULT_LAYERS
    if names is None:
        return dict(catalog)

    by_lower = {k.lower(): k for k in catalog}
    out: Dict[str, RasterLayer] = {}
    for n in names:
        key = by_lower.get(n.strip().lower())
        if key is None:
            raise ValueError(f"Unknown layer: '{n}' (available: {', '.join(catalog)})")
        out[key] = catalog[key]
    return out
