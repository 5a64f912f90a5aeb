"""
Mock USGS FDSN event service for local development and end-to-end tests.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from dataclasses import dataclass, field

from fastapi import FastAPI, Query
from fastapi.responses import JSONResponse, PlainTextResponse

from shared.logging import get_logger


@dataclass
class MockEvent:
    """Mock earthquake event."""
    id: str
    mag: float
    place: str
    time: int  # epoch milliseconds
    longitude: float
    latitude: float
    depth: float
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_feature(self) -> Dict[str, Any]:
        """Render the event as a GeoJSON feature."""
        properties = {
            "mag": self.mag,
            "place": self.place,
            "time": self.time,
            "updated": self.time,
            "url": f"https://earthquake.usgs.gov/earthquakes/eventpage/{self.id}",
            "status": "reviewed",
            "tsunami": 0,
            "net": self.id[:2],
            "code": self.id[2:],
            "magType": "mww",
            "type": "earthquake",
            "title": f"M {self.mag} - {self.place}",
        }
        properties.update(self.extra)
        return {
            "type": "Feature",
            "id": self.id,
            "properties": properties,
            "geometry": {
                "type": "Point",
                "coordinates": [self.longitude, self.latitude, self.depth],
            },
        }


class MockUsgsServer:
    """Mock USGS event service implementation."""

    def __init__(self, port: int = 8090):
        self.port = port
        self.logger = get_logger("mock.usgs")
        self.app = FastAPI(title="Mock USGS", version="1.0.0")

        # In-memory catalogue
        self.events: Dict[str, MockEvent] = {}
        self.request_count = 0
        self.fail_with: Optional[int] = None

        self._create_default_events()

        self._setup_routes()

    def _create_default_events(self):
        """Create a small catalogue of sample events."""
        samples = [
            MockEvent("us7000n7n8", 7.4, "18 km SSW of Hualien City, Taiwan", 1712102029000, 121.56, 23.82, 34.8),
            MockEvent("us6000m0xl", 6.8, "58 km SW of Oukaimedene, Morocco", 1694207583000, -8.39, 31.06, 19.0),
            MockEvent("ci40610416", 4.1, "9 km NE of Ojai, CA", 1707760800000, -119.18, 34.51, 12.2),
            MockEvent("nc73827571", 5.4, "15 km W of Petrolia, CA", 1672300000000, -124.44, 40.33, 17.9),
            MockEvent("ak0241g2z5t6", 3.2, "62 km NW of Talkeetna, Alaska", 1715800000000, -150.92, 62.72, 80.1),
        ]
        for event in samples:
            self.add_event(event)

    def add_event(self, event: MockEvent) -> None:
        """Add or replace an event in the catalogue."""
        self.events[event.id] = event

    def _setup_routes(self):
        """Set up mock USGS routes."""

        @self.app.get("/version")
        async def version():
            """Service version."""
            return PlainTextResponse("1.14.1")

        @self.app.get("/query")
        async def query(
            format: str = Query("quakeml"),
            eventid: Optional[str] = Query(None),
            starttime: Optional[str] = Query(None),
            endtime: Optional[str] = Query(None),
            minmagnitude: Optional[float] = Query(None),
            maxmagnitude: Optional[float] = Query(None),
            limit: Optional[int] = Query(None),
            orderby: str = Query("time"),
        ):
            """Query the catalogue."""
            self.request_count += 1

            if self.fail_with is not None:
                return PlainTextResponse("Service unavailable", status_code=self.fail_with)

            if format != "geojson":
                return PlainTextResponse("Only geojson is supported by the mock", status_code=400)

            if eventid is not None:
                event = self.events.get(eventid)
                if event is None:
                    return PlainTextResponse(f"Error 404: No data found for eventid {eventid}", status_code=404)
                return JSONResponse(event.to_feature())

            events = self._filter(starttime, endtime, minmagnitude, maxmagnitude)
            events = self._order(events, orderby)
            if limit is not None:
                events = events[:limit]

            features = [event.to_feature() for event in events]
            return {
                "type": "FeatureCollection",
                "metadata": {
                    "generated": int(datetime.now(timezone.utc).timestamp() * 1000),
                    "url": "http://mock-usgs/query",
                    "title": "Mock USGS Earthquakes",
                    "status": 200,
                    "api": "1.14.1",
                    "count": len(features),
                },
                "features": features,
            }

    def _filter(
        self,
        starttime: Optional[str],
        endtime: Optional[str],
        minmagnitude: Optional[float],
        maxmagnitude: Optional[float],
    ) -> List[MockEvent]:
        """Apply the filter fields to the catalogue."""
        start_ms = self._to_epoch_ms(starttime)
        end_ms = self._to_epoch_ms(endtime)

        selected = []
        for event in self.events.values():
            if start_ms is not None and event.time < start_ms:
                continue
            if end_ms is not None and event.time > end_ms:
                continue
            if minmagnitude is not None and event.mag < minmagnitude:
                continue
            if maxmagnitude is not None and event.mag > maxmagnitude:
                continue
            selected.append(event)
        return selected

    def _order(self, events: List[MockEvent], orderby: str) -> List[MockEvent]:
        """Sort events the way the real service does."""
        if orderby == "time-asc":
            return sorted(events, key=lambda e: e.time)
        if orderby == "magnitude":
            return sorted(events, key=lambda e: e.mag, reverse=True)
        if orderby == "magnitude-asc":
            return sorted(events, key=lambda e: e.mag)
        return sorted(events, key=lambda e: e.time, reverse=True)

    @staticmethod
    def _to_epoch_ms(value: Optional[str]) -> Optional[int]:
        """Parse ISO dates or timestamps; naive values are UTC."""
        if not value:
            return None
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return int(parsed.timestamp() * 1000)


def create_app():
    """Create mock USGS application."""
    server = MockUsgsServer()
    return server.app


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(create_app(), host="0.0.0.0", port=8090)
