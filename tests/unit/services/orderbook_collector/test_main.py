"""
启动入口测试: argument parsing and settings assembly
"""

import asyncio
import os
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

import main
from orderbook_collector.config import ENV_PREFIX, ServiceSettings


@pytest.fixture(autouse=True)
def clean_env():
    names = [f"{ENV_PREFIX}{field.upper()}" for field in ServiceSettings.model_fields]
    saved = {name: os.environ.pop(name) for name in names if name in os.environ}
    yield
    for name in names:
        os.environ.pop(name, None)
    os.environ.update(saved)


def test_parse_arguments_defaults():
    args = main.parse_arguments([])

    assert args.config is None
    assert args.data_root is None
    assert args.log_level is None
    assert args.depth is None
    assert args.http_port is None


def test_parse_arguments_short_flags():
    args = main.parse_arguments(["-c", "conf/pairs.json", "-d", "/srv/data", "-l", "DEBUG"])

    assert args.config == "conf/pairs.json"
    assert args.data_root == "/srv/data"
    assert args.log_level == "DEBUG"


def test_parse_arguments_rejects_unknown_level():
    with pytest.raises(SystemExit):
        main.parse_arguments(["--log-level", "TRACE"])


def test_build_settings_from_arguments(tmp_path):
    args = main.parse_arguments([
        "--config", str(tmp_path / "config.json"),
        "--data-root", str(tmp_path / "data"),
        "--depth", "50",
        "--http-port", "8087",
        "--env-file", str(tmp_path / "absent.env"),
    ])

    settings = main.build_settings(args)

    assert settings.config_path == tmp_path / "config.json"
    assert settings.data_root == tmp_path / "data"
    assert settings.depth == 50
    assert settings.http_port == 8087


def test_build_settings_falls_back_to_environment(monkeypatch, tmp_path):
    monkeypatch.setenv(f"{ENV_PREFIX}CONFIG_PATH", "/etc/collector/config.json")

    settings = main.build_settings(main.parse_arguments(["--env-file", str(tmp_path / "absent.env")]))

    assert settings.config_path == Path("/etc/collector/config.json")
    assert settings.depth == 10


@pytest.mark.asyncio
async def test_main_rejects_invalid_settings(tmp_path):
    code = await main.main(["--depth", "0", "--env-file", str(tmp_path / "absent.env")])

    assert code == 2


class TestMainRun:

    @pytest.fixture
    def installed_handlers(self, monkeypatch):
        handlers = {}
        monkeypatch.setattr(main.signal, "signal", lambda signum, handler: handlers.__setitem__(signum, handler))
        return handlers

    @pytest.mark.asyncio
    async def test_runs_service_until_stopped(self, installed_handlers, tmp_path):
        service = MagicMock()
        service.run_until = AsyncMock()

        with patch.object(main, "OrderBookCollectorService", return_value=service) as service_cls:
            code = await main.main(["--env-file", str(tmp_path / "absent.env"), "-d", str(tmp_path)])

        assert code == 0
        settings = service_cls.call_args.args[0]
        assert settings.data_root == tmp_path
        stop_event = service.run_until.await_args.args[0]
        assert not stop_event.is_set()
        assert set(installed_handlers) == {main.signal.SIGINT, main.signal.SIGTERM}

    @pytest.mark.asyncio
    async def test_signal_sets_stop_event(self, installed_handlers, tmp_path):
        async def run_until(stop_event):
            installed_handlers[main.signal.SIGTERM](main.signal.SIGTERM, None)
            await asyncio.wait_for(stop_event.wait(), timeout=1)

        service = MagicMock()
        service.run_until = run_until

        with patch.object(main, "OrderBookCollectorService", return_value=service):
            code = await main.main(["--env-file", str(tmp_path / "absent.env")])

        assert code == 0

    @pytest.mark.asyncio
    async def test_service_crash_returns_error_code(self, installed_handlers, tmp_path):
        service = MagicMock()
        service.run_until = AsyncMock(side_effect=RuntimeError("boom"))

        with patch.object(main, "OrderBookCollectorService", return_value=service):
            code = await main.main(["--env-file", str(tmp_path / "absent.env")])

        assert code == 1
