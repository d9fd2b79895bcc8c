from __future__ import annotations

from typing import Any, Dict

from ..exceptions import FetchError
from ..ticker import Ticker
from .base import ExchangeClient


class BitkubClient(ExchangeClient):
    """
    Bitkub REST 快照客户端（GET /api/market/depth）。

    要点：
    - sym 为 QUOTE_BASE, e.g. BTC_THB -> THB_BTC
    - 无效交易对返回 {"error": ..., "result": null}
    - 每两秒一次
    """

    name = "BITKUB"
    poll_interval = 2
    rest_base = "https://api.bitkub.com"

    def _depth_path(self) -> str:
        return "/api/market/depth"

    def _depth_params(self, ticker: Ticker, depth: int) -> Dict[str, Any]:
        return {"sym": f"{ticker.quote}_{ticker.base}", "lmt": depth}

    def _check_payload(self, payload: Any, ticker: Ticker) -> None:
        super()._check_payload(payload, ticker)
        if "result" in payload and payload["result"] is None:
            raise FetchError("Received null result in response from Bitkub",
                             exchange=self.name, symbol=ticker.symbol)
        error = payload.get("error")
        if isinstance(error, int) and error != 0:
            raise FetchError(f"Bitkub returned error code {error}",
                             exchange=self.name, symbol=ticker.symbol)
