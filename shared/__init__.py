"""
Shared utilities for the Quake Proxy.

This package aggregates common building blocks consumed by the services:

- config: Service configuration via pydantic-settings
- logging: Structured logging with request correlation
- metrics: Prometheus metrics helpers
- errors: Canonical error types and responses
- base_service: FastAPI application shell (middleware, health, metrics)

Any cross-service logic should live here to avoid import cycles across
service packages. Do not import from service_* packages into shared/.
"""
