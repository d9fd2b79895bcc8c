"""
采集器状态HTTP服务

Endpoints:
  /health   -> service status and active workers
  /workers  -> per-worker state and counters
  /metrics  -> Prometheus exposition
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from aiohttp import web
from prometheus_client import CONTENT_TYPE_LATEST

from .logging_config import get_logger

if TYPE_CHECKING:
    from .service import OrderBookCollectorService


class StatusServer:
    """HTTP服务器类"""

    def __init__(self, service: "OrderBookCollectorService", host: str = "0.0.0.0", port: int = 8087):
        self.service = service
        self.host = host
        self.port = port
        self.logger = get_logger(__name__)
        self.app = self.create_app()
        self.runner: Optional[web.AppRunner] = None

    def create_app(self) -> web.Application:
        app = web.Application()
        app.router.add_get('/health', self.health_handler)
        app.router.add_get('/workers', self.workers_handler)
        app.router.add_get('/metrics', self.metrics_handler)
        return app

    async def start(self) -> None:
        self.runner = web.AppRunner(self.app)
        await self.runner.setup()
        site = web.TCPSite(self.runner, self.host, self.port)
        await site.start()
        self.logger.info("Status server started", host=self.host, port=self.port)

    async def stop(self) -> None:
        if self.runner:
            await self.runner.cleanup()
            self.runner = None
            self.logger.info("Status server stopped")

    async def health_handler(self, request: web.Request) -> web.Response:
        status = self.service.get_status()
        return web.json_response(status, status=200 if self.service.is_running else 503)

    async def workers_handler(self, request: web.Request) -> web.Response:
        return web.json_response(self.service.registry.get_status())

    async def metrics_handler(self, request: web.Request) -> web.Response:
        body = self.service.metrics.get_metrics_text()
        # aiohttp rejects a charset inside content_type
        return web.Response(body=body, headers={"Content-Type": CONTENT_TYPE_LATEST})
