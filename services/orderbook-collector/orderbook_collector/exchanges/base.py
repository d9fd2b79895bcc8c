from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import aiohttp
import orjson

from ..exceptions import FetchError
from ..logging_config import get_logger
from ..ticker import Ticker


class ExchangeClient(ABC):
    """
    Order-book snapshot client base class.

    Responsibilities:
    - stable exchange identifier (``name``), used as a storage path segment
    - fixed polling cadence (``poll_interval``, seconds)
    - one REST GET per ``fetch_order_book`` call, returning the raw response body

    Notes:
    - The body is stored byte-for-byte; it is decoded only to classify errors.
    - Every failure, transport or exchange-reported, surfaces as ``FetchError``.
      Subclasses classify semantic errors in ``_check_payload``.
    - One aiohttp session per client, shared by all workers polling through it.
      It is created lazily inside the running loop.
    """

    name: str = ""
    poll_interval: float = 1
    rest_base: str = ""

    def __init__(
        self,
        request_timeout: float = 5.0,
        rest_base: Optional[str] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        self.request_timeout = float(request_timeout)
        if rest_base:
            self.rest_base = rest_base
        self.logger = get_logger(f"exchange_client:{self.name}")
        self._session: Optional[aiohttp.ClientSession] = session
        self._owns_session = session is None

    async def fetch_order_book(self, ticker: Ticker, depth: int) -> bytes:
        """Fetch one order-book snapshot for ``ticker``.

        Returns:
            The response body, unchanged.

        Raises:
            FetchError: on any transport failure or exchange-reported error.
        """
        url = f"{self.rest_base}{self._depth_path()}"
        params = self._depth_params(ticker, int(depth))
        raw = await self._get_body(url, params, symbol=ticker.symbol)
        self._check_payload(self._decode(raw, ticker), ticker)
        return raw

    @abstractmethod
    def _depth_path(self) -> str:
        raise NotImplementedError

    @abstractmethod
    def _depth_params(self, ticker: Ticker, depth: int) -> Dict[str, Any]:
        raise NotImplementedError

    def _decode(self, raw: bytes, ticker: Ticker) -> Any:
        try:
            return orjson.loads(raw)
        except orjson.JSONDecodeError as e:
            raise FetchError(f"Invalid JSON in response: {e}", exchange=self.name,
                             symbol=ticker.symbol, cause=e)

    def _check_payload(self, payload: Any, ticker: Ticker) -> None:
        """Raise ``FetchError`` if the decoded ``payload`` is an exchange-reported error."""
        if not isinstance(payload, dict):
            raise FetchError(f"Unexpected payload type {type(payload).__name__}",
                             exchange=self.name, symbol=ticker.symbol)

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            # 创建 aiohttp 会话（复用连接）
            timeout = aiohttp.ClientTimeout(total=self.request_timeout)
            self._session = aiohttp.ClientSession(timeout=timeout)
            self._owns_session = True
        return self._session

    async def _get_body(self, url: str, params: Dict[str, Any], symbol: Optional[str] = None) -> bytes:
        session = self._get_session()
        try:
            async with session.get(url, params=params) as resp:
                if resp.status != 200:
                    text = await resp.text()
                    raise FetchError(f"HTTP {resp.status}: {text[:200]}",
                                     exchange=self.name, symbol=symbol, status=resp.status)
                return await resp.read()
        except asyncio.TimeoutError as e:
            raise FetchError(f"Request timed out after {self.request_timeout}s",
                             exchange=self.name, symbol=symbol, cause=e)
        except aiohttp.ClientError as e:
            raise FetchError(f"Request failed: {e}", exchange=self.name, symbol=symbol, cause=e)

    async def close(self) -> None:
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
        self._session = None

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, poll_interval={self.poll_interval})"
