"""
Logging configuration for the order-book collector.

- structlog over stdlib logging; console renderer in development, JSON in production
- every event carries ``service``, ``hostname`` and ``pid`` via a processor, so
  component loggers need no extra binding
- per-task context (``exchange``, ``symbol``) is merged from contextvars; a
  worker binds it once at the top of its task and every log line emitted inside
  that task, including the exchange client's, carries it

Environment variables:
  LOG_LEVEL   -> DEBUG | INFO | WARNING | ERROR | CRITICAL (default: INFO)
  JSON_LOGS   -> true | false (default: false)
"""
from __future__ import annotations

import logging
import os
import socket
from typing import Any, Dict, Optional

import structlog

_SERVICE_CONTEXT: Dict[str, Any] = {}


def _resolve_log_level(log_level: Optional[str]) -> int:
    level = (log_level or os.getenv("LOG_LEVEL", "INFO")).upper()
    return getattr(logging, level, logging.INFO)


def _get_json_logs(default: bool = False) -> bool:
    v = os.getenv("JSON_LOGS")
    if v is None:
        return default
    return str(v).lower() == "true"


def add_service_context(logger, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """structlog processor: stamp the process-wide service fields."""
    for key, value in _SERVICE_CONTEXT.items():
        event_dict.setdefault(key, value)
    return event_dict


def configure_logging(service_name: str, log_level: Optional[str] = None, json_logs: Optional[bool] = None) -> None:
    """Configure structlog and stdlib logging for the given service.

    Call once at process start, before workers are started.
    """
    _SERVICE_CONTEXT.clear()
    _SERVICE_CONTEXT.update(service=service_name, hostname=socket.gethostname(), pid=os.getpid())

    level = _resolve_log_level(log_level)
    use_json = json_logs if json_logs is not None else _get_json_logs(False)

    logging.basicConfig(level=level, format="%(message)s")
    # basicConfig is a no-op once handlers exist
    logging.getLogger().setLevel(level)

    for noisy in ("aiohttp", "aiohttp.access", "watchdog"):
        logging.getLogger(noisy).setLevel(max(level, logging.WARNING))

    if use_json:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            add_service_context,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
        wrapper_class=structlog.stdlib.BoundLogger,
    )


def bind_task_context(**context: Any) -> None:
    """Bind ``context`` to every event logged from the current asyncio task."""
    structlog.contextvars.bind_contextvars(**context)


def get_logger(module_name: str, **context):
    """Return a structlog logger, optionally bound with ``context``.

    Example:
        logger = get_logger("snapshot_worker", symbol="BTC_USDT")
    """
    logger = structlog.get_logger(module_name)
    return logger.bind(**context) if context else logger


__all__ = ["add_service_context", "bind_task_context", "configure_logging", "get_logger"]
