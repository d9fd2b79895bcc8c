"""
订单簿快照采集指标

Prometheus metrics for snapshot requests, storage failures and the worker set.
Pass a private ``CollectorRegistry`` to keep instances isolated (tests create
one per collector).
"""

import time
from typing import Optional

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, REGISTRY, generate_latest


class MetricsCollector:
    """指标收集器"""

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry or REGISTRY
        self.start_time = time.time()

        self._init_metrics()

    def _init_metrics(self):
        """初始化Prometheus指标"""

        self.snapshot_requests_total = Counter(
            'orderbook_snapshot_requests_total',
            'Total number of order-book snapshot requests',
            ['exchange', 'symbol', 'status'],
            registry=self.registry
        )

        self.snapshot_request_duration_seconds = Histogram(
            'orderbook_snapshot_request_duration_seconds',
            'Duration of order-book snapshot requests',
            ['exchange', 'symbol'],
            registry=self.registry
        )

        self.storage_errors_total = Counter(
            'orderbook_snapshot_storage_errors_total',
            'Total number of snapshots dropped because of storage errors',
            ['exchange', 'symbol'],
            registry=self.registry
        )

        self.last_success_timestamp = Gauge(
            'orderbook_snapshot_last_success_timestamp',
            'Epoch seconds of the last persisted snapshot',
            ['exchange', 'symbol'],
            registry=self.registry
        )

        self.active_workers = Gauge(
            'orderbook_collector_active_workers',
            'Number of running snapshot workers',
            registry=self.registry
        )

        self.reconciliations_total = Counter(
            'orderbook_collector_reconciliations_total',
            'Total number of configuration reconciliations',
            ['result'],
            registry=self.registry
        )

    def record_request(self, exchange: str, symbol: str, status: str, duration: float) -> None:
        self.snapshot_requests_total.labels(exchange=exchange, symbol=symbol, status=status).inc()
        self.snapshot_request_duration_seconds.labels(exchange=exchange, symbol=symbol).observe(duration)

    def record_persisted(self, exchange: str, symbol: str, timestamp: float) -> None:
        self.last_success_timestamp.labels(exchange=exchange, symbol=symbol).set(timestamp)

    def record_storage_error(self, exchange: str, symbol: str) -> None:
        self.storage_errors_total.labels(exchange=exchange, symbol=symbol).inc()

    def record_reconciliation(self, result: str) -> None:
        self.reconciliations_total.labels(result=result).inc()

    def set_active_workers(self, count: int) -> None:
        self.active_workers.set(count)

    def get_metrics_text(self) -> bytes:
        """Prometheus text exposition of this registry"""
        return generate_latest(self.registry)
