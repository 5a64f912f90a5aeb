"""
Read-through cache in front of the USGS event source.
"""

from __future__ import annotations

import json
import time
from typing import Any, Dict, Optional, Tuple, TYPE_CHECKING, Union

from shared.errors import NotFoundError
from shared.logging import get_logger
from shared.metrics import MetricsCollector

from service_quakes.app.caching.keys import event_cache_key, query_cache_key
from service_quakes.app.caching.store import KeyValueStore
from service_quakes.app.earthquakes.models import EarthquakeQuery, RequestKind

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from service_quakes.app.adapters.usgs_client import UsgsClient


SOURCE_CACHE = "cache"
SOURCE_API = "api"

DEFAULT_EVENT_TTL = 600
DEFAULT_QUERY_TTL = 300


class EarthquakeService:
    """Coordinates cache reads, USGS fetches and cache population."""

    def __init__(
        self,
        store: KeyValueStore,
        usgs_client: UsgsClient,
        *,
        event_ttl_seconds: int = DEFAULT_EVENT_TTL,
        query_ttl_seconds: int = DEFAULT_QUERY_TTL,
        metrics: Optional[MetricsCollector] = None,
    ) -> None:
        self.store = store
        self.usgs = usgs_client
        self.metrics = metrics
        self.logger = get_logger("quakes.earthquakes")
        self._ttls = {
            RequestKind.BY_ID_LOOKUP: event_ttl_seconds,
            RequestKind.COLLECTION_QUERY: query_ttl_seconds,
        }

    async def get_earthquakes(self, query: EarthquakeQuery) -> Tuple[Dict[str, Any], str]:
        """Resolve a collection query."""
        return await self.resolve(RequestKind.COLLECTION_QUERY, query)

    async def get_earthquake(self, event_id: str) -> Tuple[Dict[str, Any], str]:
        """Resolve a single-event lookup."""
        return await self.resolve(RequestKind.BY_ID_LOOKUP, event_id)

    async def resolve(
        self,
        kind: RequestKind,
        params: Union[EarthquakeQuery, str],
    ) -> Tuple[Dict[str, Any], str]:
        """
        Return the payload for a request together with its provenance.

        The provenance is "cache" when the store satisfied the request and
        "api" when the USGS source did. Lookups for unknown events raise
        NotFoundError; upstream failures raise ExternalServiceError. Store
        failures never propagate.
        """
        kind = RequestKind(kind)
        cache_key = self.cache_key(kind, params)

        cached = await self._read_cache(cache_key)
        if cached is not None:
            self._record_lookup(kind, "hit")
            return cached, SOURCE_CACHE
        self._record_lookup(kind, "miss")

        payload = await self._fetch(kind, params)
        await self._write_cache(cache_key, payload, self._ttls[kind])
        return payload, SOURCE_API

    def cache_key(self, kind: RequestKind, params: Union[EarthquakeQuery, str]) -> str:
        """Derive the canonical cache key for a request."""
        kind = RequestKind(kind)
        if kind is RequestKind.BY_ID_LOOKUP:
            if not isinstance(params, str):
                raise TypeError("by-id lookups take an event identifier")
            return event_cache_key(params)
        if not isinstance(params, EarthquakeQuery):
            raise TypeError("collection queries take an EarthquakeQuery")
        return query_cache_key(params)

    async def _fetch(self, kind: RequestKind, params: Union[EarthquakeQuery, str]) -> Dict[str, Any]:
        """Fetch from the USGS source, recording outcome and latency."""
        start = time.perf_counter()
        outcome = "error"
        try:
            if kind is RequestKind.BY_ID_LOOKUP:
                payload = await self.usgs.get_event(params)  # type: ignore[arg-type]
                if payload is None:
                    outcome = "not_found"
                    raise NotFoundError("Earthquake not found", details={"id": params})
            else:
                payload = await self.usgs.query_events(params)  # type: ignore[arg-type]
            outcome = "ok"
            return payload
        finally:
            if self.metrics:
                self.metrics.increment_counter("upstream_requests_total", kind=kind.value, outcome=outcome)
                self.metrics.observe_histogram(
                    "upstream_request_duration_seconds",
                    time.perf_counter() - start,
                    kind=kind.value,
                )

    async def _read_cache(self, key: str) -> Optional[Dict[str, Any]]:
        """Read a cached payload; any failure reads as a miss."""
        try:
            value = await self.store.get(key)
        except Exception as exc:
            self.logger.error("Cache read failed", key=key, error=str(exc))
            self._record_store_error("get")
            return None

        if not value:
            return None

        try:
            payload = json.loads(value)
        except json.JSONDecodeError:
            self.logger.warning("Discarding malformed cache payload", key=key)
            return None

        if not isinstance(payload, dict):
            self.logger.warning("Discarding unexpected cache payload", key=key)
            return None
        return payload

    async def _write_cache(self, key: str, payload: Dict[str, Any], ttl: int) -> None:
        """Persist a payload; failures are logged and ignored."""
        try:
            await self.store.set(key, json.dumps(payload), ttl)
        except Exception as exc:
            self.logger.error("Cache write failed", key=key, error=str(exc))
            self._record_store_error("set")
            return
        self.logger.debug("Cached payload", key=key, ttl=ttl)

    def _record_lookup(self, kind: RequestKind, result: str) -> None:
        if self.metrics:
            self.metrics.increment_counter("cache_lookups_total", kind=kind.value, result=result)

    def _record_store_error(self, operation: str) -> None:
        if self.metrics:
            self.metrics.increment_counter("store_errors_total", operation=operation)
