"""
Order-book snapshot collector

Polls REST order-book snapshots per trading pair, aligned to wall-clock
interval boundaries, and appends them to hour-bucketed files. The set of
pairs follows a hot-reloaded config file.
"""

__version__ = "1.0.0"

from .config import CollectionConfig, ServiceSettings, load_collection_config, save_collection_config
from .exceptions import CollectorError, ConfigurationError, FetchError, StorageError, TickerFormatError
from .exchanges import BinanceClient, BitkubClient, ExchangeClient, ExchangeClientFactory
from .registry import WorkerEntry, WorkerRegistry
from .service import OrderBookCollectorService
from .ticker import Ticker
from .worker import SnapshotWorker, WorkerState

__all__ = [
    "CollectionConfig",
    "ServiceSettings",
    "load_collection_config",
    "save_collection_config",
    "CollectorError",
    "ConfigurationError",
    "FetchError",
    "StorageError",
    "TickerFormatError",
    "ExchangeClient",
    "BinanceClient",
    "BitkubClient",
    "ExchangeClientFactory",
    "WorkerEntry",
    "WorkerRegistry",
    "OrderBookCollectorService",
    "Ticker",
    "SnapshotWorker",
    "WorkerState",
]
