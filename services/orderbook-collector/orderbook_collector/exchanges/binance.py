from __future__ import annotations

from typing import Any, Dict

from ..exceptions import FetchError
from ..ticker import Ticker
from .base import ExchangeClient


class BinanceClient(ExchangeClient):
    """
    Binance Spot REST 快照客户端（GET /api/v3/depth）。

    要点：
    - symbol 为 BASE + QUOTE 拼接, e.g. BTC_USDT -> BTCUSDT
    - 错误响应形如 {"code": -1121, "msg": "Invalid symbol."}
    - 每秒一次
    """

    name = "BINANCE"
    poll_interval = 1
    rest_base = "https://api.binance.com"

    def _depth_path(self) -> str:
        return "/api/v3/depth"

    def _depth_params(self, ticker: Ticker, depth: int) -> Dict[str, Any]:
        return {"symbol": f"{ticker.base}{ticker.quote}", "limit": depth}

    def _check_payload(self, payload: Any, ticker: Ticker) -> None:
        super()._check_payload(payload, ticker)
        code = payload.get("code")
        if isinstance(code, int) and code < 0:
            raise FetchError(f"Invalid symbol in response from Binance: {payload.get('msg')}",
                             exchange=self.name, symbol=ticker.symbol)
