"""
Rate limiting package for the Quake Proxy.

Holds the fixed-window limiter that enforces per-identity request budgets
in the shared store, failing open when the store is unavailable.
"""

from .fixed_window import FixedWindowRateLimiter, RateLimitDecision, get_client_id

__all__ = ["FixedWindowRateLimiter", "RateLimitDecision", "get_client_id"]
