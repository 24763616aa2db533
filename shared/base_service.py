"""
Base service class for observable services.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from typing import Optional
import time

from shared.config import MetricsOptions, get_config
from shared.errors import ObservabilityError
from shared.metrics import configure_metrics

VERSION = "1.0.0"


class BaseService:
    """Base service class with common functionality.

    Owns the FastAPI app and the metrics façade; subclasses register their
    metrics and routes in ``__init__`` and may extend ``start``/``stop``.
    """

    def __init__(self, service_name: str, port: Optional[int] = None, options: Optional[MetricsOptions] = None):
        self.service_name = service_name
        self.config = get_config(service_name, port)
        self.port = self.config.port
        self._start_time = time.time()

        # Create FastAPI app
        self.app = self._create_app()

        # Metrics façade, which also configures logging
        self.metrics = configure_metrics(self.app, options, service_name=service_name)
        self.logger = self.metrics.logger

        # Set up routes
        self._setup_routes()

    def _create_app(self) -> FastAPI:
        """Create FastAPI application."""
        return FastAPI(
            title=f"{self.service_name.title()} Service",
            version=VERSION,
            docs_url="/docs" if self.config.env == "local" else None,
            redoc_url="/redoc" if self.config.env == "local" else None,
            lifespan=self._lifespan,
        )

    @asynccontextmanager
    async def _lifespan(self, app: FastAPI):
        await self.start()
        try:
            yield
        finally:
            await self.stop()

    def _setup_routes(self):
        """Set up common routes."""

        @self.app.get("/health")
        async def health_check():
            """Health check endpoint."""
            return {
                "service": self.service_name,
                "status": "ok",
                "uptime_seconds": self._get_uptime(),
                "registered_metrics": self.metrics.names(),
                "version": VERSION,
            }

        # Error handlers
        @self.app.exception_handler(ObservabilityError)
        async def observability_exception_handler(request: Request, exc: ObservabilityError):
            """Handle ObservabilityError."""
            self.logger.error(
                "Observability error",
                code=exc.code,
                message=exc.message,
                details=exc.details
            )
            return JSONResponse(
                status_code=exc.status_code,
                content=exc.to_response().model_dump()
            )

        @self.app.exception_handler(Exception)
        async def general_exception_handler(request: Request, exc: Exception):
            """Handle general exceptions."""
            self.logger.error("Unhandled exception", error=str(exc), exc_info=True)
            return JSONResponse(
                status_code=500,
                content={
                    "code": "INTERNAL_ERROR",
                    "message": "Internal server error",
                    "details": {}
                }
            )

    def _get_uptime(self) -> float:
        """Get service uptime in seconds."""
        return time.time() - self._start_time

    async def start(self):
        """Start background components."""
        await self.metrics.start()
        self.logger.info("server started", port=self.port)

    async def stop(self):
        """Stop background components."""
        await self.metrics.stop()
        self.logger.info("server stopped")

    def run(self):
        """Run the service."""
        import uvicorn
        uvicorn.run(
            self.app,
            host=self.config.host,
            port=self.port,
            log_level=self.metrics.options.log_level,
        )
