"""
测试辅助工具包: fake exchange clients and clocks for the collector tests
"""

from .fake_exchange import FakeClock, FakeExchangeClient, ScriptedExchangeClient, make_client_class

__all__ = ["FakeClock", "FakeExchangeClient", "ScriptedExchangeClient", "make_client_class"]
