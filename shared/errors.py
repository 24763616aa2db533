"""
Shared error handling for observable services.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel

from opentelemetry import trace


class ErrorResponse(BaseModel):
    """Standard error response format."""

    trace_id: Optional[str] = None
    code: str
    message: str
    details: Dict[str, Any] = {}


class ObservabilityError(Exception):
    """Base exception for observable services."""

    status_code = 400

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        trace_id = None
        current_span = trace.get_current_span()
        if current_span and current_span.is_recording():
            span_context = current_span.get_span_context()
            if span_context.trace_id != 0:
                trace_id = f"{span_context.trace_id:032x}"

        return ErrorResponse(
            trace_id=trace_id,
            code=self.code,
            message=self.message,
            details=self.details
        )


class MetricAlreadyRegisteredError(ObservabilityError):
    """A metric with the same short name is already in the index."""

    status_code = 409

    def __init__(self, name: str, kind: str):
        super().__init__(
            "METRIC_ALREADY_REGISTERED",
            f"metric '{name}' is already registered as a {kind}",
            {"name": name, "kind": kind},
        )


class MetricNotRegisteredError(ObservabilityError):
    """Strict lookup of a metric name that was never registered."""

    status_code = 404

    def __init__(self, name: str):
        super().__init__(
            "METRIC_NOT_REGISTERED",
            f"metric '{name}' is not registered",
            {"name": name},
        )
