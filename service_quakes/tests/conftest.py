"""
Shared fixtures for Quake Proxy tests.
"""

from typing import Dict, List, Optional, Tuple

import httpx
import pytest

from shared.errors import CacheStoreError


class FakeStore:
    """In-memory key-value store with a manual clock and failure injection."""

    def __init__(self):
        self.now = 0.0
        self.data: Dict[str, Tuple[str, Optional[float]]] = {}
        self.calls: List[Tuple[str, str]] = []
        self.fail_operations: set = set()

    def fail(self, *operations: str) -> None:
        """Make the named operations raise; with no arguments every operation fails."""
        self.fail_operations = set(operations or ("get", "set", "set_if_absent", "incr", "ping"))

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def ttl(self, key: str) -> Optional[float]:
        entry = self._live(key)
        if entry is None or entry[1] is None:
            return None
        return entry[1] - self.now

    def _check(self, operation: str, key: str) -> None:
        self.calls.append((operation, key))
        if operation in self.fail_operations:
            raise CacheStoreError(operation, "store unavailable")

    def _live(self, key: str) -> Optional[Tuple[str, Optional[float]]]:
        entry = self.data.get(key)
        if entry is None:
            return None
        if entry[1] is not None and entry[1] <= self.now:
            del self.data[key]
            return None
        return entry

    async def get(self, key: str) -> Optional[str]:
        self._check("get", key)
        entry = self._live(key)
        return entry[0] if entry else None

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        self._check("set", key)
        self.data[key] = (value, self.now + ttl_seconds)

    async def set_if_absent(self, key: str, value: str, ttl_seconds: int) -> bool:
        self._check("set_if_absent", key)
        if self._live(key) is not None:
            return False
        self.data[key] = (value, self.now + ttl_seconds)
        return True

    async def incr(self, key: str, ttl_seconds: int) -> int:
        self._check("incr", key)
        entry = self._live(key)
        if entry is None:
            self.data[key] = ("1", self.now + ttl_seconds)
            return 1
        count = int(entry[0]) + 1
        expires_at = entry[1] if entry[1] is not None else self.now + ttl_seconds
        self.data[key] = (str(count), expires_at)
        return count

    async def ping(self) -> bool:
        self._check("ping", "")
        return True


def feature(event_id: str = "us7000abcd", mag: float = 5.2) -> dict:
    """Minimal GeoJSON feature as returned by USGS."""
    return {
        "type": "Feature",
        "id": event_id,
        "properties": {"mag": mag, "place": "Somewhere", "time": 1700000000000, "title": f"M {mag} - Somewhere"},
        "geometry": {"type": "Point", "coordinates": [120.1, 23.5, 10.0]},
    }


def collection(*features: dict) -> dict:
    """GeoJSON feature collection envelope."""
    return {
        "type": "FeatureCollection",
        "metadata": {"generated": 1700000000000, "status": 200, "count": len(features), "title": "USGS Earthquakes"},
        "features": list(features),
    }


class UpstreamRecorder:
    """httpx handler serving canned USGS responses and recording requests."""

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.events: Dict[str, dict] = {}
        self.collection = collection(feature())
        self.status_code: Optional[int] = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.status_code is not None:
            return httpx.Response(self.status_code, text="upstream failure")

        if request.url.path.endswith("/version"):
            return httpx.Response(200, text="1.14.1")

        event_id = request.url.params.get("eventid")
        if event_id is not None:
            event = self.events.get(event_id)
            if event is None:
                return httpx.Response(404, text=f"Error 404: No data found for eventid {event_id}")
            return httpx.Response(200, json=event)

        return httpx.Response(200, json=self.collection)


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def upstream():
    return UpstreamRecorder()
