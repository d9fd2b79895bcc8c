"""
配置管理模块

Two layers of configuration:

- ``CollectionConfig``: the hot-reloadable document naming the exchange and
  the tickers to collect, ``{"cex": "BINANCE", "tickers": ["BTC_USDT"]}``.
- ``ServiceSettings``: process-level settings (paths, depth, timeouts,
  logging, status port) read once at startup from the environment, with
  ``.env`` support and command-line overrides.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

from .exceptions import ConfigurationError

ENV_PREFIX = "ORDERBOOK_COLLECTOR_"
DEFAULT_CONFIG_PATH = "config.json"


class CollectionConfig(BaseModel):
    """采集配置：交易所 + 交易对列表"""
    cex: str = Field(..., description="交易所名称, e.g. BINANCE / BITKUB")
    tickers: List[str] = Field(default_factory=list, description="交易对列表, BASE_QUOTE")

    @field_validator('cex')
    @classmethod
    def validate_cex(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError('cex must not be empty')
        return v

    @field_validator('tickers')
    @classmethod
    def normalize_tickers(cls, v: List[str]) -> List[str]:
        # order-preserving de-duplication; blanks dropped
        seen: Dict[str, None] = {}
        for symbol in v:
            symbol = symbol.strip()
            if symbol:
                seen.setdefault(symbol, None)
        return list(seen)


class ServiceSettings(BaseModel):
    """服务配置"""
    config_path: Path = Field(Path(DEFAULT_CONFIG_PATH), description="采集配置文件路径")
    data_root: Path = Field(Path("data"), description="快照输出根目录")
    depth: int = Field(10, gt=0, description="订单簿深度")
    request_timeout: float = Field(5.0, gt=0, description="HTTP请求超时(秒)")
    log_level: str = Field("INFO", description="日志级别")
    json_logs: bool = Field(False, description="JSON格式日志")
    http_port: int = Field(0, ge=0, description="状态服务端口, 0 表示禁用")
    reload_debounce: float = Field(0.5, ge=0, description="配置热重载防抖(秒)")

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        allowed_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in allowed_levels:
            raise ValueError(f'log_level must be one of: {allowed_levels}')
        return v.upper()

    @classmethod
    def from_env(cls, env_file: Optional[Union[str, Path]] = None, **overrides: Any) -> "ServiceSettings":
        """Build settings from ``ORDERBOOK_COLLECTOR_*`` variables.

        Explicit ``overrides`` that are not None win over the environment.
        """
        load_dotenv(env_file)

        values: Dict[str, Any] = {}
        for name in cls.model_fields:
            raw = os.getenv(f"{ENV_PREFIX}{name.upper()}")
            if raw is not None:
                values[name] = raw
        values.update({k: v for k, v in overrides.items() if v is not None})

        try:
            return cls(**values)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid service settings: {e}", config_key="settings", cause=e)


def load_collection_config(path: Union[str, Path]) -> CollectionConfig:
    """Read and validate the collection document at ``path``.

    JSON is the canonical format; YAML is accepted as a superset.

    Raises:
        ConfigurationError: missing file, unparsable content or invalid fields.
    """
    path = Path(path)
    try:
        with open(path, 'r', encoding='utf-8') as f:
            raw = yaml.safe_load(f)
    except FileNotFoundError as e:
        raise ConfigurationError(f"Config file not found: {path}", config_key=str(path), cause=e)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Failed to read config {path}: {e}", config_key=str(path), cause=e)

    if not isinstance(raw, dict):
        raise ConfigurationError(f"Config {path} must be a mapping, got {type(raw).__name__}",
                                 config_key=str(path))

    try:
        return CollectionConfig(**raw)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid config {path}: {e}", config_key=str(path), cause=e)


def save_collection_config(config: CollectionConfig, path: Union[str, Path]) -> None:
    """Write ``config`` to ``path`` as pretty-printed JSON."""
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(config.model_dump(), f, indent=2)
            f.write("\n")
    except OSError as e:
        raise ConfigurationError(f"Failed to write config {path}: {e}", config_key=str(path), cause=e)
