"""
Adapters package for the Quake Proxy.

Contains HTTP client wrappers for upstream dependencies. Adapters map
transport failures to shared errors and make a single attempt per call.
"""

from .usgs_client import UsgsClient, USGS_API_BASE_URL

__all__ = ["UsgsClient", "USGS_API_BASE_URL"]
