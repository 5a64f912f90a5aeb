"""
Quake Proxy service: rate-limited, cached access to the USGS event catalogue.
"""

from typing import Any, Dict, Optional

from fastapi import Query, Request, Response

from shared.base_service import BaseService
from shared.config import ServiceConfig, get_config
from shared.errors import ExternalServiceError, RateLimitError, ServiceError, ValidationError
from shared.logging import set_client_context

from service_quakes.app.adapters import UsgsClient
from service_quakes.app.caching import KeyValueStore, RedisKeyValueStore
from service_quakes.app.earthquakes import EarthquakeQuery, EarthquakeService
from service_quakes.app.earthquakes.models import ORDER_BY_VALUES
from service_quakes.app.ratelimit import FixedWindowRateLimiter, RateLimitDecision, get_client_id


SERVICE_NAME = "quakes"
SERVICE_PORT = 8000


class QuakeProxyService(BaseService):
    """Earthquake proxy service implementation."""

    def __init__(
        self,
        config: Optional[ServiceConfig] = None,
        *,
        store: Optional[KeyValueStore] = None,
        usgs_client: Optional[UsgsClient] = None,
    ):
        super().__init__(SERVICE_NAME, SERVICE_PORT, config=config)

        self.store = store or RedisKeyValueStore(
            self.config.redis_url,
            timeout=self.config.cache_store_timeout_seconds,
        )
        self.usgs_client = usgs_client or UsgsClient(
            self.config.usgs_base_url,
            timeout=self.config.upstream_timeout_seconds,
        )
        self.rate_limiter = FixedWindowRateLimiter(
            self.store,
            limit=self.config.rate_limit_requests,
            window_seconds=self.config.rate_limit_window_seconds,
            metrics=self.metrics,
        )
        self.earthquake_service = EarthquakeService(
            self.store,
            self.usgs_client,
            event_ttl_seconds=self.config.event_cache_ttl_seconds,
            query_ttl_seconds=self.config.query_cache_ttl_seconds,
            metrics=self.metrics,
        )

        @self.app.on_event("shutdown")
        async def _shutdown():
            await self.usgs_client.close()
            close = getattr(self.store, "close", None)
            if close is not None:
                await close()

        self._setup_earthquake_routes()

        # Expose service instance via app state for introspection/testing
        self.app.state.quake_service = self

    async def _enforce_rate_limit(self, request: Request, response: Response) -> RateLimitDecision:
        """Check the fixed-window limiter for the caller."""
        client_id = get_client_id(request)
        set_client_context(client_id)
        decision = await self.rate_limiter.admit(client_id)

        if not decision.allowed:
            error = RateLimitError(
                details={"limit": decision.limit, "remaining": 0, "window_seconds": decision.window_seconds}
            )
            error.headers = decision.headers()
            error.headers["Retry-After"] = str(decision.window_seconds)
            raise error

        response.headers.update(decision.headers())
        return decision

    def _setup_earthquake_routes(self):
        """Set up earthquake routes."""

        @self.app.get("/api/earthquakes")
        async def list_earthquakes(
            request: Request,
            response: Response,
            starttime: Optional[str] = Query(None, description="Start of the time range (ISO-8601 date or timestamp)"),
            endtime: Optional[str] = Query(None, description="End of the time range (ISO-8601 date or timestamp)"),
            minmagnitude: Optional[str] = Query(None, description="Minimum magnitude"),
            maxmagnitude: Optional[str] = Query(None, description="Maximum magnitude"),
            limit: Optional[str] = Query(None, description="Maximum number of events (positive integer)"),
            orderby: Optional[str] = Query(None, description="One of " + ", ".join(ORDER_BY_VALUES)),
        ) -> Dict[str, Any]:
            """Return events matching the filter, from cache when fresh."""
            await self._enforce_rate_limit(request, response)

            try:
                query = EarthquakeQuery.from_mapping(
                    {
                        "starttime": starttime,
                        "endtime": endtime,
                        "minmagnitude": minmagnitude,
                        "maxmagnitude": maxmagnitude,
                        "limit": limit,
                        "orderby": orderby,
                    },
                    default_limit=self.config.default_query_limit,
                )
            except ValueError as exc:
                raise ValidationError(str(exc)) from exc

            try:
                data, source = await self.earthquake_service.get_earthquakes(query)
            except ExternalServiceError as exc:
                raise ServiceError("Failed to fetch earthquake data", details={"upstream": exc.service}) from exc

            return {"data": data, "source": source}

        @self.app.get("/api/earthquakes/{event_id}")
        async def get_earthquake(request: Request, response: Response, event_id: str) -> Dict[str, Any]:
            """Return a single event by identifier, from cache when fresh."""
            await self._enforce_rate_limit(request, response)

            try:
                data, source = await self.earthquake_service.get_earthquake(event_id)
            except ExternalServiceError as exc:
                raise ServiceError("Failed to fetch earthquake data", details={"upstream": exc.service}) from exc

            return {"data": data, "source": source}

    async def _check_dependencies(self) -> Dict[str, str]:
        """Report store and upstream reachability."""
        dependencies: Dict[str, str] = {}
        try:
            dependencies["redis"] = "ok" if await self.store.ping() else "error"
        except Exception as exc:
            self.logger.error("Redis health check failed", error=str(exc))
            dependencies["redis"] = "error"
        dependencies["usgs"] = "ok" if await self.usgs_client.ping() else "error"
        return dependencies


def create_app(config: Optional[ServiceConfig] = None, **kwargs):
    """Create FastAPI application."""
    service = QuakeProxyService(config, **kwargs)
    return service.app


if __name__ == "__main__":
    service = QuakeProxyService(get_config(SERVICE_NAME, SERVICE_PORT))
    service.run()
