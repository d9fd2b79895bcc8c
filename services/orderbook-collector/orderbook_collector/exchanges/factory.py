from __future__ import annotations

from typing import Dict, List, Optional, Type

from ..logging_config import get_logger
from .base import ExchangeClient
from .binance import BinanceClient
from .bitkub import BitkubClient


class ExchangeClientFactory:
    """Factory for order-book snapshot clients, keyed by exchange name."""

    def __init__(self, request_timeout: float = 5.0) -> None:
        self.request_timeout = request_timeout
        self.logger = get_logger("exchange_client_factory")
        self._registry: Dict[str, Type[ExchangeClient]] = {}
        self.register(BinanceClient)
        self.register(BitkubClient)

    def register(self, client_cls: Type[ExchangeClient]) -> None:
        self._registry[client_cls.name.upper()] = client_cls

    def supported_exchanges(self) -> List[str]:
        return sorted(self._registry)

    def create(self, exchange: str) -> Optional[ExchangeClient]:
        client_cls = self._registry.get((exchange or "").strip().upper())
        if client_cls is None:
            self.logger.error("Unsupported exchange", exchange=exchange,
                              supported=self.supported_exchanges())
            return None
        self.logger.info("Create exchange client", exchange=client_cls.name)
        return client_cls(request_timeout=self.request_timeout)
