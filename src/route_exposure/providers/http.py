from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests
from requests.exceptions import ConnectionError, HTTPError, ReadTimeout
from shapely.geometry import mapping
from shapely.geometry.base import BaseGeometry

from route_exposure.config import Settings, settings as default_settings
from route_exposure.core.errors import PixelBudgetExceeded, RasterServiceError, RasterTimeout
from route_exposure.core.models import RasterLayer
from route_exposure.providers.base import RasterService

log = logging.getLogger(__name__)


@dataclass
class HTTPClient:
    user_agent: str
    timeout_s: float = 25
    tries: int = 4
    backoff_s: float = 0.8

    def __post_init__(self) -> None:
        self.s = requests.Session()
        self.s.headers.update(
            {
                "User-Agent": self.user_agent,
                "Accept": "application/json, text/plain;q=0.9, */*;q=0.8",
            }
        )

    def post_json(self, url: str, payload: Dict[str, Any], timeout_s: Optional[float] = None) -> Dict[str, Any]:
        """POST a JSON body, retrying dropped connections with exponential backoff."""
        timeout = timeout_s if timeout_s is not None else self.timeout_s
        last_err: Optional[Exception] = None
        for attempt in range(self.tries):
            try:
                r = self.s.post(url, json=payload, timeout=timeout)
                r.raise_for_status()
                return r.json()
            except ConnectionError as e:
                last_err = e
                time.sleep(self.backoff_s * (2**attempt))
        raise last_err if last_err else RuntimeError("HTTP post_json failed")


# Status codes the evaluation service uses for resource limits
_TIMEOUT_STATUS = (408, 504)
_PIXEL_BUDGET_STATUS = 413


class HttpRasterService(RasterService):
    """
    Client for a remote raster evaluation endpoint.

    Request body::

        {"asset_id": ..., "band": ..., "reducer": "mean",
         "scale": <metres>, "start_date": "YYYY-MM-DD", "end_date": "YYYY-MM-DD",
         "region": <GeoJSON geometry>}

    Response body: ``{"value": <float or null>}``; null means no valid pixels.
    """

    def __init__(
        self,
        url: Optional[str] = None,
        settings: Optional[Settings] = None,
        client: Optional[HTTPClient] = None,
    ):
        s = settings or default_settings
        self.url = (url or s.raster_service_url).rstrip("/")
        if not self.url:
            raise ValueError("No raster service URL (set ROUTE_EXPOSURE_RASTER_SERVICE_URL)")
        self.client = client or HTTPClient(
            user_agent="RouteExposure/0.1.0",
            timeout_s=s.query_timeout_s,
            tries=s.http_tries,
        )

    def evaluate_region_mean(
        self,
        layer: RasterLayer,
        region: BaseGeometry,
        scale_m: float,
        timeout_s: float,
    ) -> Optional[float]:
        payload = {
            "asset_id": layer.asset_id,
            "band": layer.band,
            "reducer": "mean",
            "scale": scale_m,
            "start_date": layer.start_date.isoformat() if layer.start_date else None,
            "end_date": layer.end_date.isoformat() if layer.end_date else None,
            "region": mapping(region),
        }
        try:
            data = self.client.post_json(f"{self.url}/reduce-region", payload, timeout_s=timeout_s)
        except ReadTimeout as e:
            raise RasterTimeout(f"{layer.name}: no answer within {timeout_s:.0f}s") from e
        except HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            if status in _TIMEOUT_STATUS:
                raise RasterTimeout(f"{layer.name}: service timed out (HTTP {status})") from e
            if status == _PIXEL_BUDGET_STATUS:
                raise PixelBudgetExceeded(f"{layer.name}: too many pixels at {scale_m:.0f} m") from e
            raise RasterServiceError(f"{layer.name}: HTTP {status}") from e
        except (requests.RequestException, ValueError) as e:
            # dropped connections, bad URLs, truncated bodies, invalid JSON
            raise RasterServiceError(f"{layer.name}: {type(e).__name__}: {e}") from e

        value = data.get("value") if isinstance(data, dict) else None
        if value is None:
            return None
        try:
            return float(value)
        except (TypeError, ValueError) as e:
            raise RasterServiceError(f"{layer.name}: unexpected value {value!r}") from e
