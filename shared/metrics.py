"""
Metrics façade for observable services.

The façade owns a Prometheus registry, the index of custom metrics and the
service logger. Handlers register metrics once and update them by name::

    metrics = configure_metrics(app, prefix="my_app_", log_level="debug")
    metrics.register_counter("hello_counter", "/hello example counter metric")
    metrics.update_metric("hello_counter", 1)

Updating a name that was never registered logs a warning and does nothing,
so instrumentation can never fail a request.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Union

from fastapi import APIRouter, FastAPI, Request, Response
from fastapi.responses import JSONResponse
from prometheus_client import Counter, Gauge, Histogram

from shared.collectors import LabelledRegistry, RuntimeMetricsCollector
from shared.config import MetricsOptions
from shared.errors import MetricAlreadyRegisteredError, MetricNotRegisteredError
from shared.exposition import render_json, render_text
from shared.logging import clear_context, configure_logging, get_logger, set_request_id
from shared.routes import log_routes

Number = Union[int, float]


class MetricKind(str, Enum):
    """Metric variants the façade can register."""
    COUNTER = "counter"
    GAUGE = "gauge"
    HISTOGRAM = "histogram"


@dataclass
class RegisteredMetric:
    """An entry of the metric name index."""
    name: str
    public_name: str
    help_text: str
    kind: MetricKind
    metric: Any
    buckets: Optional[List[float]] = None


class MetricsFacade:
    """Registration and update API over a Prometheus registry."""

    def __init__(self, app: FastAPI, options: MetricsOptions, service_name: str = "metrics"):
        self.app = app
        self.options = options
        self.prefix = options.prefix

        configure_logging(service_name, options.log_level, options.log_format)
        self.logger = get_logger(f"{service_name}.metrics")

        self.registry = LabelledRegistry()
        self.registry.set_default_labels(options.default_metrics_labels)
        self.runtime = RuntimeMetricsCollector(
            self.registry,
            prefix=self.prefix,
            interval_seconds=options.collect_interval_seconds,
        )

        self._metrics: Dict[str, RegisteredMetric] = {}

        self.router = self._create_router()
        app.middleware("http")(self._log_request)
        app.include_router(self.router)

    def _create_router(self) -> APIRouter:
        router = APIRouter(tags=["metrics"])

        @router.get("/metrics", include_in_schema=False)
        async def metrics_endpoint() -> Response:
            """Prometheus metrics endpoint."""
            payload, content_type = self.render_text()
            return Response(content=payload, media_type=content_type)

        @router.get("/jsonmetrics", include_in_schema=False)
        async def json_metrics_endpoint() -> JSONResponse:
            """The same metric set as a JSON array."""
            return JSONResponse(content=self.render_json())

        return router

    async def _log_request(self, request: Request, call_next):
        request_id = set_request_id(request.headers.get("x-request-id"))
        self.logger.info(f"[{request.method}] {request.url.path}")
        try:
            response = await call_next(request)
        finally:
            clear_context()
        response.headers["X-Request-ID"] = request_id
        return response

    def register_counter(self, name: str, help_text: str) -> None:
        """Register a monotonically increasing counter."""
        self._register(MetricKind.COUNTER, name, help_text)

    def register_gauge(self, name: str, help_text: str) -> None:
        """Register a gauge that can be set to any value."""
        self._register(MetricKind.GAUGE, name, help_text)

    def register_histogram(self, name: str, help_text: str, buckets: Optional[Sequence[Number]] = None) -> None:
        """Register a histogram.

        ``buckets`` are strictly increasing upper bounds; ``+Inf`` is added by
        the client library. Without buckets the library defaults apply.
        """
        bounds = None
        if buckets is not None:
            bounds = [float(bound) for bound in buckets]
            if any(lower >= upper for lower, upper in zip(bounds, bounds[1:])):
                raise ValueError(f"histogram buckets must be strictly increasing: {list(buckets)}")
        self._register(MetricKind.HISTOGRAM, name, help_text, bounds)

    def _register(self, kind: MetricKind, name: str, help_text: str, buckets: Optional[List[float]] = None) -> None:
        existing = self._metrics.get(name)
        if existing is not None:
            raise MetricAlreadyRegisteredError(name, existing.kind.value)

        public_name = f"{self.prefix}{name}"
        if kind is MetricKind.COUNTER:
            metric = Counter(public_name, help_text, registry=self.registry)
        elif kind is MetricKind.GAUGE:
            metric = Gauge(public_name, help_text, registry=self.registry)
        elif buckets is None:
            metric = Histogram(public_name, help_text, registry=self.registry)
        else:
            metric = Histogram(public_name, help_text, registry=self.registry, buckets=buckets)

        self._metrics[name] = RegisteredMetric(
            name=name,
            public_name=public_name,
            help_text=help_text,
            kind=kind,
            metric=metric,
            buckets=buckets,
        )
        self.logger.info(f"{name} {kind.value} registered")

    def update_metric(self, name: str, value: Number) -> None:
        """Apply ``value`` to the metric registered under ``name``.

        Counters are incremented, gauges are set and histograms record one
        observation. Unknown names and values the client library rejects are
        logged as warnings.
        """
        registered = self._metrics.get(name)
        if registered is None:
            self.logger.warning(f"metric '{name}' is not registered")
            return

        try:
            if registered.kind is MetricKind.COUNTER:
                registered.metric.inc(value)
            elif registered.kind is MetricKind.GAUGE:
                registered.metric.set(value)
            elif registered.kind is MetricKind.HISTOGRAM:
                registered.metric.observe(value)
        except (TypeError, ValueError, OverflowError) as e:
            self.logger.warning(f"metric '{name}' rejected update", value=repr(value), error=str(e))

    def get(self, name: str) -> RegisteredMetric:
        """Strict lookup of a registered metric."""
        try:
            return self._metrics[name]
        except KeyError:
            raise MetricNotRegisteredError(name) from None

    def names(self) -> List[str]:
        return list(self._metrics)

    def __contains__(self, name: str) -> bool:
        return name in self._metrics

    def render_text(self):
        return render_text(self.registry)

    def render_json(self) -> List[Dict[str, Any]]:
        return render_json(self.registry)

    async def start(self):
        """Start runtime collection and log the route table."""
        if self.runtime.running:
            return
        await self.runtime.start()
        log_routes(self.app, self.logger)

    async def stop(self):
        """Stop runtime collection."""
        await self.runtime.stop()


def configure_metrics(
    app: FastAPI,
    options: Optional[MetricsOptions] = None,
    service_name: str = "metrics",
    **overrides: Any,
) -> MetricsFacade:
    """Create the metrics façade for ``app``.

    Options not given explicitly are read from ``OBSERVABLE_METRICS_*``
    environment variables.
    """
    if options is None:
        options = MetricsOptions(**overrides)
    elif overrides:
        options = MetricsOptions(**{**options.model_dump(), **overrides})
    return MetricsFacade(app, options, service_name=service_name)
