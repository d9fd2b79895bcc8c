from __future__ import annotations

import asyncio
import time
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Union

from .exceptions import CollectorError, FetchError, StorageError
from .exchanges.base import ExchangeClient
from .logging_config import bind_task_context, get_logger
from .metrics import MetricsCollector
from .storage import HourlyFileSink
from .ticker import Ticker


class WorkerState(str, Enum):
    """快照工作器状态"""
    CREATED = "created"
    ALIGNING = "aligning"
    POLLING = "polling"
    STOPPED = "stopped"


def _error_fields(error: CollectorError) -> Dict[str, Any]:
    # unset fields must not mask the logger's bound symbol
    return {k: v for k, v in error.to_dict().items() if v is not None}


def alignment_delay(now_ms: int, interval_ms: int) -> float:
    """Seconds until the next multiple of ``interval_ms`` after ``now_ms``."""
    remainder = now_ms % interval_ms
    if remainder == 0:
        return 0.0
    return (interval_ms - remainder) / 1000


class SnapshotWorker:
    """
    Polls one symbol and appends every snapshot to its hourly bucket file.

    Lifecycle: ALIGNING -> POLLING -> STOPPED.

    Cancellation contract:
    - ``request_stop()`` sets the worker's token; the polling loop checks it
      once, at the top of each iteration
    - a fetch or write in progress always completes
    - boundary waits return early once the token is set, so the task exits
      within one fetch plus one interval
    """

    def __init__(
        self,
        ticker: Ticker,
        client: ExchangeClient,
        data_root: Union[str, Path] = "data",
        depth: int = 10,
        metrics: Optional[MetricsCollector] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.ticker = ticker
        self.client = client
        self.depth = depth
        self.metrics = metrics
        self._clock = clock
        self._stop_event = asyncio.Event()

        self.exchange = client.name
        self.interval_ms = max(1, int(round(float(client.poll_interval) * 1000)))
        self.sink = HourlyFileSink(Path(data_root) / self.exchange / ticker.symbol)
        self.state = WorkerState.CREATED

        self.snapshots_written = 0
        self.fetch_errors = 0
        self.storage_errors = 0
        self.last_snapshot_time: Optional[int] = None

        self.logger = get_logger(f"snapshot_worker:{self.exchange}", symbol=ticker.symbol)

    @property
    def symbol(self) -> str:
        return self.ticker.symbol

    @property
    def stop_requested(self) -> bool:
        return self._stop_event.is_set()

    def request_stop(self) -> None:
        self._stop_event.set()

    async def run(self) -> None:
        # runs inside this worker's own task context
        bind_task_context(exchange=self.exchange, symbol=self.symbol)
        try:
            self.state = WorkerState.ALIGNING
            await self._wait_for_boundary()

            try:
                self.sink.ensure_directory()
                self.logger.info("Directory created or already exists", path=str(self.sink.directory))
            except StorageError as e:
                # retried on the first write
                self.logger.error("Cannot create storage directory", **_error_fields(e))

            self.state = WorkerState.POLLING
            self.logger.info("Worker started", interval_ms=self.interval_ms, depth=self.depth)
            while not self._stop_event.is_set():
                await self._poll_once()
                await self._wait_for_boundary()
        finally:
            self.state = WorkerState.STOPPED
            self.logger.info("Worker stopped", snapshots=self.snapshots_written,
                             fetch_errors=self.fetch_errors, storage_errors=self.storage_errors)

    async def _poll_once(self) -> None:
        start = time.monotonic()
        try:
            raw = await self.client.fetch_order_book(self.ticker, self.depth)
        except FetchError as e:
            self.fetch_errors += 1
            self._record_request("error", start)
            self.logger.warning("Error fetching order book", error=e.message)
            return
        except Exception as e:
            self.fetch_errors += 1
            self._record_request("exception", start)
            self.logger.error("Unexpected error fetching order book", error=str(e), exc_info=True)
            return
        self._record_request("success", start)

        timestamp = int(self._clock())
        if self.sink.rotate_if_needed(timestamp):
            self.logger.info("Rotated bucket file", path=str(self.sink.current_path))

        try:
            self.sink.append(timestamp, raw)
        except StorageError as e:
            self.storage_errors += 1
            if self.metrics:
                self.metrics.record_storage_error(self.exchange, self.symbol)
            self.logger.error("Snapshot dropped, storage error", **_error_fields(e))
            return

        self.snapshots_written += 1
        self.last_snapshot_time = timestamp
        if self.metrics:
            self.metrics.record_persisted(self.exchange, self.symbol, timestamp)

    async def _wait_for_boundary(self) -> None:
        delay = alignment_delay(int(self._clock() * 1000), self.interval_ms)
        if delay <= 0:
            # already on a boundary; still yield to the loop
            await asyncio.sleep(0)
            return
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=delay)
        except asyncio.TimeoutError:
            pass

    def _record_request(self, status: str, start: float) -> None:
        if self.metrics:
            self.metrics.record_request(self.exchange, self.symbol, status, time.monotonic() - start)

    def get_status(self) -> Dict[str, Any]:
        return {
            "symbol": self.symbol,
            "exchange": self.exchange,
            "state": self.state.value,
            "directory": str(self.sink.directory),
            "current_file": str(self.sink.current_path) if self.sink.current_path else None,
            "snapshots_written": self.snapshots_written,
            "fetch_errors": self.fetch_errors,
            "storage_errors": self.storage_errors,
            "last_snapshot_time": self.last_snapshot_time,
        }
