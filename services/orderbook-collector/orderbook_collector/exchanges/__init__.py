"""
Exchange snapshot clients.

Provides:
- ExchangeClient: abstract capability (name, poll_interval, fetch_order_book)
- Concrete clients:
  * BinanceClient
  * BitkubClient
- ExchangeClientFactory: picks a client by exchange name
"""

from .base import ExchangeClient
from .binance import BinanceClient
from .bitkub import BitkubClient
from .factory import ExchangeClientFactory

__all__ = [
    "ExchangeClient",
    "BinanceClient",
    "BitkubClient",
    "ExchangeClientFactory",
]
