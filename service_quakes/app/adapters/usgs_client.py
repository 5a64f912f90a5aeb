"""
Async client for the USGS FDSN event web service.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple, TYPE_CHECKING

import httpx

from shared.errors import ExternalServiceError
from shared.logging import get_logger

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from service_quakes.app.earthquakes.models import EarthquakeQuery


USGS_API_BASE_URL = "https://earthquake.usgs.gov/fdsnws/event/1/"
SERVICE_NAME = "usgs"


class UsgsClient:
    """Thin wrapper around the USGS ``query`` endpoint.

    A single attempt is made per call; failures surface as
    ``ExternalServiceError`` and are never retried here.
    """

    def __init__(
        self,
        base_url: str = USGS_API_BASE_URL,
        *,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/") + "/"
        self.logger = get_logger("quakes.usgs_client")
        self._client = httpx.AsyncClient(base_url=self.base_url, timeout=timeout, transport=transport)

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def query_events(self, query: EarthquakeQuery) -> Dict[str, Any]:
        """Fetch the GeoJSON feature collection matching ``query``.

        The upstream answers an empty match with an empty collection, so any
        non-success status is a failure.
        """
        params = [("format", "geojson")] + query.defined_params()
        response = await self._get(params)

        if response.status_code != 200:
            raise self._status_error(response, params)

        payload = self._decode(response, params)
        if not isinstance(payload, dict) or not isinstance(payload.get("features"), list):
            self.logger.error("Malformed event collection", params=params)
            raise ExternalServiceError(
                service=SERVICE_NAME,
                message="Malformed event collection",
                details={"params": dict(params)}
            )

        self.logger.debug("Event collection retrieved", params=params, count=len(payload["features"]))
        return payload

    async def get_event(self, event_id: str) -> Optional[Dict[str, Any]]:
        """Fetch a single event feature, or None when the upstream does not know it."""
        params = [("format", "geojson"), ("eventid", event_id)]
        response = await self._get(params)

        if response.status_code == 404:
            self.logger.info("Event not found upstream", event_id=event_id)
            return None

        if response.status_code != 200:
            raise self._status_error(response, params)

        payload = self._decode(response, params)
        if not isinstance(payload, dict):
            self.logger.error("Malformed event payload", event_id=event_id)
            raise ExternalServiceError(
                service=SERVICE_NAME,
                message="Malformed event payload",
                details={"event_id": event_id}
            )

        # Some deployments answer eventid lookups with a one-feature collection
        features = payload.get("features")
        if isinstance(features, list):
            if not features:
                self.logger.info("Event not found upstream", event_id=event_id)
                return None
            return features[0]

        return payload

    async def ping(self) -> bool:
        """Return True when the upstream ``version`` endpoint responds."""
        try:
            response = await self._client.get("version")
        except httpx.HTTPError as exc:
            self.logger.error("USGS health check failed", error=str(exc))
            return False
        return response.status_code == 200

    async def _get(self, params: List[Tuple[str, str]]) -> httpx.Response:
        try:
            return await self._client.get("query", params=params)
        except httpx.HTTPError as exc:
            self.logger.error("USGS request failed", params=params, error=str(exc))
            raise ExternalServiceError(
                service=SERVICE_NAME,
                message=str(exc) or exc.__class__.__name__,
                details={"params": dict(params)}
            ) from exc

    def _decode(self, response: httpx.Response, params: List[Tuple[str, str]]) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            self.logger.error("USGS response is not valid JSON", params=params)
            raise ExternalServiceError(
                service=SERVICE_NAME,
                message="Invalid JSON in response",
                details={"params": dict(params)}
            ) from exc

    def _status_error(self, response: httpx.Response, params: List[Tuple[str, str]]) -> ExternalServiceError:
        self.logger.error(
            "USGS request returned an error status",
            params=params,
            status_code=response.status_code,
            response=response.text[:500]
        )
        return ExternalServiceError(
            service=SERVICE_NAME,
            message=f"Unexpected status {response.status_code}",
            details={"status_code": response.status_code}
        )
