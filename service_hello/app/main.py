"""
Hello service: a demo host for the metrics façade.
"""

import random
import time
from typing import Optional

from shared.base_service import BaseService
from shared.config import MetricsOptions

DURATION_BUCKETS = [0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0]


class HelloService(BaseService):
    """Hello service implementation."""

    def __init__(self, options: Optional[MetricsOptions] = None):
        super().__init__("hello", options=options)

        self.metrics.register_counter("hello_counter", "/hello example counter metric")
        self.metrics.register_gauge("hello_gauge", "/hello example gauge metric")
        self.metrics.register_histogram(
            "hello_duration_seconds",
            "/hello handler duration in seconds",
            DURATION_BUCKETS,
        )

        self._setup_hello_routes()

    def _setup_hello_routes(self):
        """Set up hello-specific routes."""

        @self.app.get("/hello")
        async def hello():
            """Greet the caller and update the example metrics."""
            start_time = time.perf_counter()

            self.metrics.update_metric("hello_counter", 1)
            # never registered, logs a warning
            self.metrics.update_metric("fake_metric", 1)
            self.metrics.update_metric("hello_gauge", random.randint(1, 100))

            self.metrics.update_metric("hello_duration_seconds", time.perf_counter() - start_time)
            return {"message": "hello world"}


def create_app(options: Optional[MetricsOptions] = None):
    """Create hello service application."""
    service = HelloService(options)
    return service.app


def main():
    HelloService().run()


if __name__ == "__main__":
    main()
