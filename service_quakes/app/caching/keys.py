"""
Canonical cache keys for earthquake requests.
"""

from __future__ import annotations

from typing import TYPE_CHECKING
from urllib.parse import urlencode

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from service_quakes.app.earthquakes.models import EarthquakeQuery


EVENT_KEY_PREFIX = "earthquake"
QUERY_KEY_PREFIX = "earthquakes"
RATE_LIMIT_KEY_PREFIX = "rate-limit"


def event_cache_key(event_id: str) -> str:
    """Key for a single-event lookup; the identifier is used verbatim."""
    return f"{EVENT_KEY_PREFIX}:{event_id}"


def query_cache_key(query: EarthquakeQuery) -> str:
    """Key for a collection query.

    Only defined fields take part, rendered in the query's declared field
    order and form-encoded, so equivalent queries always share a key no
    matter how their parameters were presented.
    """
    return f"{QUERY_KEY_PREFIX}:{urlencode(query.defined_params())}"


def rate_limit_key(client_id: str) -> str:
    """Key for a client's fixed-window request counter."""
    return f"{RATE_LIMIT_KEY_PREFIX}:{client_id}"
