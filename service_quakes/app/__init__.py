"""
Quake Proxy service package.

The service fronts the USGS earthquake catalogue, enforcing:
- Rate limiting: fixed-window counters per client identity
- Caching: read-through cache with per-kind TTLs, tagged with provenance

Structure:
- app.main: FastAPI app, routes, and service wiring.
- app.adapters: HTTP client for the USGS event source.
- app.caching: Store adapter and canonical cache keys.
- app.ratelimit: Fixed-window limiter and client identification.
- app.earthquakes: Query model and the read-through service.
"""
