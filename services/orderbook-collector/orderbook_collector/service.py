"""
订单簿快照采集服务

Wires configuration, exchange clients, the worker registry, the config file
watcher and the status server together.

Reconciliation requests (startup, file changes, explicit ``request_reload``)
are queued and handled by one consumer task, so registry start/stop calls
never overlap.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Dict, Optional

from .config import CollectionConfig, ServiceSettings, load_collection_config
from .exceptions import ConfigurationError
from .exchanges.base import ExchangeClient
from .exchanges.factory import ExchangeClientFactory
from .hot_reload import ConfigFileWatcher
from .http_server import StatusServer
from .logging_config import get_logger
from .metrics import MetricsCollector
from .registry import WorkerRegistry, create_logged_task


class OrderBookCollectorService:
    """订单簿快照采集服务"""

    def __init__(
        self,
        settings: ServiceSettings,
        factory: Optional[ExchangeClientFactory] = None,
        registry: Optional[WorkerRegistry] = None,
        metrics: Optional[MetricsCollector] = None,
        enable_watcher: bool = True,
    ) -> None:
        self.settings = settings
        self.metrics = metrics or MetricsCollector()
        self.factory = factory or ExchangeClientFactory(request_timeout=settings.request_timeout)
        self.registry = registry or WorkerRegistry(
            data_root=settings.data_root, depth=settings.depth, metrics=self.metrics
        )
        self.enable_watcher = enable_watcher

        self.clients: Dict[str, ExchangeClient] = {}
        self.active_config: Optional[CollectionConfig] = None
        self.watcher: Optional[ConfigFileWatcher] = None
        self.http_server: Optional[StatusServer] = None
        self.is_running = False
        self.start_time: Optional[float] = None

        self._reload_queue: "asyncio.Queue[None]" = asyncio.Queue()
        self._consumer_task: Optional[asyncio.Task] = None
        self.logger = get_logger("orderbook_collector_service")

    async def start(self) -> None:
        if self.is_running:
            return
        self.is_running = True
        self.start_time = time.time()
        self.logger.info("Order book collector starting",
                         config=str(self.settings.config_path), data_root=str(self.settings.data_root))

        await self.reconcile()
        self._consumer_task = create_logged_task(self._consume_reloads(), name="config-reconciler",
                                                 logger=self.logger)

        if self.enable_watcher:
            self.watcher = ConfigFileWatcher(
                self.settings.config_path, self.request_reload,
                loop=asyncio.get_running_loop(), debounce_delay=self.settings.reload_debounce,
            )
            self.watcher.start()

        if self.settings.http_port:
            self.http_server = StatusServer(self, port=self.settings.http_port)
            await self.http_server.start()

    async def stop(self) -> None:
        if not self.is_running:
            return
        self.logger.info("Order book collector stopping")
        self.is_running = False

        if self.watcher:
            self.watcher.stop()
            self.watcher = None

        if self._consumer_task:
            self._consumer_task.cancel()
            try:
                await self._consumer_task
            except asyncio.CancelledError:
                pass
            self._consumer_task = None

        await self.registry.stop_all()

        for client in self.clients.values():
            await client.close()
        self.clients.clear()

        if self.http_server:
            await self.http_server.stop()
            self.http_server = None
        self.logger.info("Order book collector stopped")

    def request_reload(self) -> None:
        """Queue a reconciliation; safe to call from the event loop only."""
        self._reload_queue.put_nowait(None)

    async def _consume_reloads(self) -> None:
        while True:
            await self._reload_queue.get()
            # coalesce bursts into one reconciliation
            while not self._reload_queue.empty():
                self._reload_queue.get_nowait()
            await self.reconcile()

    async def reconcile(self) -> bool:
        """Load the config document and converge the worker set on it.

        On any configuration error the running workers are left untouched.
        """
        try:
            config = load_collection_config(self.settings.config_path)
        except ConfigurationError as e:
            self.logger.error("Failed to load config", **e.to_dict())
            self.metrics.record_reconciliation("config_error")
            return False

        self.logger.info("CEX", cex=config.cex, tickers=config.tickers)
        client = self._get_client(config.cex)
        if client is None:
            self.logger.error("Unsupported CEX", cex=config.cex,
                              supported=self.factory.supported_exchanges())
            self.metrics.record_reconciliation("unsupported_exchange")
            return False

        result = await self.registry.start_multiple(config.tickers, client)
        self.active_config = config
        self.metrics.record_reconciliation("ok")
        self.logger.info("Reconciled", exchange=client.name, running=len(self.registry), **result)
        return True

    def _get_client(self, cex: str) -> Optional[ExchangeClient]:
        key = cex.strip().upper()
        client = self.clients.get(key)
        if client is None:
            client = self.factory.create(cex)
            if client is not None:
                self.clients[key] = client
        return client

    async def run_until(self, stop_event: asyncio.Event) -> None:
        """Start, block until ``stop_event`` is set, then stop."""
        await self.start()
        try:
            await stop_event.wait()
        finally:
            await self.stop()

    def get_status(self) -> Dict[str, Any]:
        return {
            "status": "healthy" if self.is_running else "stopped",
            "uptime_seconds": time.time() - self.start_time if self.start_time else 0,
            "exchange": self.active_config.cex if self.active_config else None,
            "config_path": str(self.settings.config_path),
            "active_workers": self.registry.symbols,
        }
