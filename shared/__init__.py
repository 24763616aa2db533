"""
Shared utilities for observable services.

This package aggregates common building blocks consumed by every service:

- config: Service and metrics options via pydantic-settings
- logging: Structured logging with request and trace correlation
- metrics: The metrics façade (registration, update dispatch, exposition)
- collectors: Labelled registry and default runtime collectors
- exposition: Text and JSON rendering of a registry
- routes: Route table introspection
- errors: Canonical error types and responses
- base_service: FastAPI service skeleton with lifespan and error handlers

Do not import from service packages into shared/.
"""
