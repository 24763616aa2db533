"""
Unit tests for the Hello service.
"""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from prometheus_client import CONTENT_TYPE_LATEST
from prometheus_client.parser import text_string_to_metric_families
from structlog.testing import capture_logs

from service_hello.app.main import HelloService, create_app
from shared.config import MetricsOptions
from shared.routes import iter_routes

DEFAULT_LABELS = {
    "first": "look how observable i am",
    "second": "another lovely label",
}


class TestHelloService:
    """Test cases for HelloService."""

    @pytest.fixture
    def options(self):
        """Options of the demo deployment."""
        return MetricsOptions(
            log_level="debug",
            prefix="my_app_",
            default_metrics_labels=DEFAULT_LABELS,
        )

    @pytest.fixture
    def service(self, options):
        """Create HelloService instance."""
        return HelloService(options)

    @pytest.fixture
    def client(self, service):
        """Create test client with lifespan."""
        with TestClient(service.app) as client:
            yield client

    def sample(self, service, name, **labels):
        return service.metrics.registry.get_sample_value(name, {**DEFAULT_LABELS, **labels})

    def test_service_initialization(self, service):
        """Test service initialization."""
        assert service.service_name == "hello"
        assert service.port == 3000
        assert service.metrics.names() == ["hello_counter", "hello_gauge", "hello_duration_seconds"]

    def test_hello_endpoint(self, client):
        """Test hello endpoint response."""
        response = client.get("/hello")

        assert response.status_code == 200
        assert response.json() == {"message": "hello world"}

    def test_hello_updates_metrics(self, client, service):
        """Test hello drives the counter, gauge and histogram."""
        client.get("/hello")
        client.get("/hello")

        assert self.sample(service, "my_app_hello_counter_total") == 2.0
        assert 1 <= self.sample(service, "my_app_hello_gauge") <= 100
        assert self.sample(service, "my_app_hello_duration_seconds_count") == 2.0

    def test_hello_logs_request_and_unknown_metric(self, client):
        """Test hello logs the request line and warns about fake_metric."""
        with capture_logs() as logs:
            client.get("/hello")

        events = [(entry["log_level"], entry["event"]) for entry in logs]
        assert ("info", "[GET] /hello") in events
        assert events.count(("warning", "metric 'fake_metric' is not registered")) == 1

    def test_metrics_endpoint(self, client, service):
        """Test Prometheus text exposition."""
        client.get("/hello")

        response = client.get("/metrics")

        assert response.status_code == 200
        assert response.headers["content-type"] == CONTENT_TYPE_LATEST
        families = {family.name: family for family in text_string_to_metric_families(response.text)}
        counter = families["my_app_hello_counter"]
        total = next(s for s in counter.samples if s.name == "my_app_hello_counter_total")
        assert total.value == 1.0
        assert total.labels == DEFAULT_LABELS
        assert "my_app_eventloop_lag_seconds" in families
        assert "my_app_python_info" in families

    def test_json_metrics_endpoint(self, client, service):
        """Test JSON exposition lists custom and runtime metrics."""
        response = client.get("/jsonmetrics")

        assert response.status_code == 200
        assert response.headers["content-type"] == "application/json"
        families = response.json()
        assert isinstance(families, list)

        runtime = service.metrics.runtime
        runtime_families = sum(len(list(c.collect())) for c in runtime.collectors) + 1
        assert len(families) == len(service.metrics.names()) + runtime_families

        by_name = {family["name"]: family for family in families}
        assert by_name["my_app_hello_gauge"]["type"] == "gauge"
        assert by_name["my_app_hello_gauge"]["help"] == "/hello example gauge metric"
        assert by_name["my_app_hello_gauge"]["values"][0]["labels"] == DEFAULT_LABELS

    def test_health_endpoint(self, client):
        """Test health endpoint."""
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["service"] == "hello"
        assert data["status"] == "ok"
        assert data["version"] == "1.0.0"
        assert "hello_counter" in data["registered_metrics"]

    def test_request_id_echoed(self, client):
        """Test the request id header is returned."""
        response = client.get("/hello", headers={"X-Request-ID": "req-42"})

        assert response.headers["X-Request-ID"] == "req-42"

    def test_request_id_generated(self, client):
        """Test a request id is generated when absent."""
        response = client.get("/health")

        assert len(response.headers["X-Request-ID"]) == 36

    def test_observability_error_handler(self, service):
        """Test façade errors are mapped to JSON responses."""

        @service.app.post("/register")
        async def register_again():
            service.metrics.register_counter("hello_counter", "duplicate")

        with TestClient(service.app) as client:
            response = client.post("/register")

        assert response.status_code == 409
        data = response.json()
        assert data["code"] == "METRIC_ALREADY_REGISTERED"
        assert data["details"] == {"name": "hello_counter", "kind": "counter"}

    def test_lifespan_starts_and_stops_runtime(self, service):
        """Test the runtime collector follows the app lifespan."""
        with capture_logs() as logs:
            with TestClient(service.app):
                assert service.metrics.runtime.running is True

        assert service.metrics.runtime.running is False
        events = [entry["event"] for entry in logs]
        assert "added new routes" in events
        assert "GET -> /hello" in events
        assert "server started" in events


def test_create_app():
    """Test application factory."""
    app = create_app(MetricsOptions(prefix="factory_"))

    assert isinstance(app, FastAPI)
    paths = {path for _, path in iter_routes(app.routes)}
    assert {"/hello", "/metrics", "/jsonmetrics", "/health"} <= paths
