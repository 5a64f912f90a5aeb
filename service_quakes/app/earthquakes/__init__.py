"""
Earthquake service layer for the Quake Proxy.
"""

from .models import EarthquakeQuery, RequestKind
from .service import EarthquakeService, SOURCE_API, SOURCE_CACHE

__all__ = ["EarthquakeQuery", "EarthquakeService", "RequestKind", "SOURCE_API", "SOURCE_CACHE"]
