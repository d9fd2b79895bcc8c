"""
快照工作器注册表

``WorkerRegistry`` owns the ``symbol -> WorkerEntry`` map and reconciles it
against a desired symbol set. All mutating calls must come from one control
path (the service's reconciliation consumer); they are never interleaved.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

from .exchanges.base import ExchangeClient
from .logging_config import get_logger
from .metrics import MetricsCollector
from .ticker import Ticker
from .worker import SnapshotWorker

WorkerFactory = Callable[[Ticker, ExchangeClient], SnapshotWorker]


def _log_task_exception(task: asyncio.Task, name: str, logger) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc:
        logger.error("Background task failed", task=name, error=str(exc), exc_info=exc)


def create_logged_task(coro, name: str, logger) -> asyncio.Task:
    """创建带异常回调的任务，避免 Task exception was never retrieved"""
    t = asyncio.create_task(coro, name=name)
    t.add_done_callback(lambda task: _log_task_exception(task, name, logger))
    return t


@dataclass
class WorkerEntry:
    symbol: str
    worker: SnapshotWorker
    task: asyncio.Task


class WorkerRegistry:
    """Starts, stops and reconciles per-symbol snapshot workers."""

    def __init__(
        self,
        data_root: Union[str, Path] = "data",
        depth: int = 10,
        metrics: Optional[MetricsCollector] = None,
        worker_factory: Optional[WorkerFactory] = None,
    ) -> None:
        self.data_root = Path(data_root)
        self.depth = depth
        self.metrics = metrics
        self._worker_factory = worker_factory or self._default_worker
        self._entries: Dict[str, WorkerEntry] = {}
        self.logger = get_logger("worker_registry")

    def _default_worker(self, ticker: Ticker, client: ExchangeClient) -> SnapshotWorker:
        return SnapshotWorker(ticker, client, data_root=self.data_root, depth=self.depth, metrics=self.metrics)

    def start(self, symbol: str, client: ExchangeClient) -> bool:
        """Start a worker for ``symbol``; returns True if a new task was spawned.

        A symbol whose previous task has already exited is started again.
        """
        ticker = Ticker.parse(symbol)
        if ticker is None:
            self.logger.error("Invalid symbol format", symbol=symbol)
            return False
        existing = self._entries.get(symbol)
        if existing is not None:
            if not existing.task.done():
                return False
            self.logger.warning("Restarting exited worker", symbol=symbol, exchange=client.name)
            self._forget(existing)

        worker = self._worker_factory(ticker, client)
        task = create_logged_task(worker.run(), name=f"snapshot-worker:{symbol}", logger=self.logger)
        self._entries[symbol] = WorkerEntry(symbol=symbol, worker=worker, task=task)
        self.logger.info("Start", symbol=symbol, exchange=client.name)
        self._update_gauge()
        return True

    async def stop(self, symbol: str) -> bool:
        """Stop the worker for ``symbol`` and wait for its task to exit.

        If the caller is cancelled while waiting, the entry stays registered
        until the worker task has actually finished.
        """
        entry = self._entries.get(symbol)
        if entry is None:
            return False

        self.logger.info("Stop", symbol=symbol)
        entry.worker.request_stop()
        try:
            await asyncio.shield(entry.task)
        except asyncio.CancelledError:
            if not entry.task.done():
                entry.task.add_done_callback(lambda _: self._forget(entry))
                raise
            if not entry.task.cancelled():
                # the worker finished; the cancellation was aimed at the caller
                self._forget(entry)
                raise
        except Exception:
            # already logged by the task's done-callback
            pass
        self._forget(entry)
        return True

    async def start_multiple(self, symbols: Iterable[str], client: ExchangeClient) -> Dict[str, List[str]]:
        """Converge the running set on ``symbols``.

        Stops ``running - desired`` first, then starts ``desired - running``.
        Symbols in both sets keep their existing task; a desired symbol whose
        task has exited is started again.
        """
        desired = list(dict.fromkeys(symbols))
        desired_set = set(desired)
        to_stop = [s for s in self._entries if s not in desired_set]
        to_start = [s for s in desired if s not in self._entries or self._entries[s].task.done()]

        running_elsewhere = [
            s for s, e in self._entries.items()
            if s in desired_set and not e.task.done() and e.worker.exchange != client.name
        ]
        if running_elsewhere:
            self.logger.warning("Workers kept on previous exchange", symbols=running_elsewhere,
                                exchange=client.name)

        for symbol in to_stop:
            await self.stop(symbol)

        started = [symbol for symbol in to_start if self.start(symbol, client)]
        return {"stopped": to_stop, "started": started}

    async def stop_all(self) -> None:
        if not self._entries:
            return
        self.logger.info("Stopping all workers", count=len(self._entries))
        for entry in self._entries.values():
            entry.worker.request_stop()
        for symbol in list(self._entries):
            await self.stop(symbol)

    @property
    def symbols(self) -> List[str]:
        return list(self._entries)

    def get(self, symbol: str) -> Optional[WorkerEntry]:
        return self._entries.get(symbol)

    def __contains__(self, symbol: object) -> bool:
        return symbol in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def get_status(self) -> Dict[str, Any]:
        return {symbol: entry.worker.get_status() for symbol, entry in self._entries.items()}

    def _forget(self, entry: WorkerEntry) -> None:
        if self._entries.get(entry.symbol) is entry:
            del self._entries[entry.symbol]
            self._update_gauge()

    def _update_gauge(self) -> None:
        if self.metrics:
            self.metrics.set_active_workers(len(self._entries))
