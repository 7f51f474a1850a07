

"""
Health check HTTP server for container orchestration.

Provides /health endpoint for Docker healthchecks and monitoring.
"""
from typing import Any, Callable, Dict, Optional

from aiohttp import web
import structlog

logger = structlog.get_logger()

SERVICE_NAME = "steam-watch"


class HealthCheckServer:
    """Simple HTTP server for health checks."""

    def __init__(
        self,
        host: str = "0.0.0.0",
        port: int = 8080,
        status_provider: Optional[Callable[[], Dict[str, Any]]] = None,
    ):
        """
        Initialize health check server.

        Args:
            host: Host to bind to (default: 0.0.0.0)
            port: Port to bind to (default: 8080)
            status_provider: Optional callable adding fields to /health
        """
        self.host = host
        self.port = port
        self.status_provider = status_provider
        self.app = web.Application()
        self.runner: Optional[web.AppRunner] = None
        self.site: Optional[web.TCPSite] = None
        self._setup_routes()

    def _setup_routes(self) -> None:
        """Configure HTTP routes."""
        self.app.router.add_get("/health", self.health_handler)
        self.app.router.add_get("/", self.root_handler)

    def status_payload(self) -> Dict[str, Any]:
        """Base health fields merged with the status provider's output."""
        payload: Dict[str, Any] = {
            "status": "healthy",
            "service": SERVICE_NAME,
        }
        if self.status_provider is not None:
            try:
                payload.update(self.status_provider())
            except Exception as e:
                logger.warning("health_status_provider_failed", error=str(e))
        return payload

    async def health_handler(self, request: web.Request) -> web.Response:
        """
        Health check endpoint.

        Returns:
            200 OK with status info
        """
        return web.json_response(self.status_payload())

    async def root_handler(self, request: web.Request) -> web.Response:
        """Service info, including the fields /health reports."""
        return web.json_response({
            "service": SERVICE_NAME,
            "endpoints": {
                "health": "/health",
            },
            "health_fields": sorted(self.status_payload()),
        })

    async def start(self) -> None:
        """Start the health check server."""
        self.runner = web.AppRunner(self.app)
        await self.runner.setup()

        self.site = web.TCPSite(
            self.runner,
            self.host,
            self.port
        )
        await self.site.start()

        logger.info(
            "health_server_started",
            host=self.host,
            port=self.port
        )

    async def stop(self) -> None:
        """Stop the health check server."""
        if self.site is not None:
            await self.site.stop()

        if self.runner is not None:
            await self.runner.cleanup()

        logger.info("health_server_stopped")
