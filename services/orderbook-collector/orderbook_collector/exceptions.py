#!/usr/bin/env python3
"""
订单簿快照采集器异常定义

All errors raised by the collector derive from ``CollectorError`` and carry a
category, a severity and an ``ErrorContext`` so they can be logged as a flat
dict with ``to_dict()``.
"""

import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class ErrorSeverity(Enum):
    """错误严重程度"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """错误分类"""
    NETWORK = "network"
    DATA_VALIDATION = "data_validation"
    CONFIGURATION = "configuration"
    STORAGE = "storage"
    EXTERNAL_SERVICE = "external_service"


@dataclass
class ErrorContext:
    """错误上下文信息"""
    timestamp: float
    component: str
    operation: str
    exchange: Optional[str] = None
    symbol: Optional[str] = None
    additional_data: Optional[Dict[str, Any]] = None


class CollectorError(Exception):
    """采集器基础异常类"""

    def __init__(self, message: str, category: ErrorCategory, severity: ErrorSeverity,
                 context: Optional[ErrorContext] = None, cause: Optional[Exception] = None):
        super().__init__(message)
        self.message = message
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext(
            timestamp=time.time(),
            component="unknown",
            operation="unknown"
        )
        self.cause = cause

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典格式，便于日志记录"""
        return {
            'message': self.message,
            'category': self.category.value,
            'severity': self.severity.value,
            'timestamp': self.context.timestamp,
            'component': self.context.component,
            'operation': self.context.operation,
            'exchange': self.context.exchange,
            'symbol': self.context.symbol,
            'additional_data': self.context.additional_data,
            'cause': str(self.cause) if self.cause else None
        }


class TickerFormatError(CollectorError, ValueError):
    """交易对格式异常"""

    def __init__(self, message: str, symbol: str, cause: Optional[Exception] = None):
        context = ErrorContext(
            timestamp=time.time(),
            component="ticker",
            operation="parse",
            symbol=symbol
        )
        super().__init__(message, ErrorCategory.DATA_VALIDATION, ErrorSeverity.LOW, context, cause)


class FetchError(CollectorError):
    """快照拉取异常 (transport failure or exchange-reported error)"""

    def __init__(self, message: str, exchange: str, symbol: Optional[str] = None,
                 status: Optional[int] = None, cause: Optional[Exception] = None):
        context = ErrorContext(
            timestamp=time.time(),
            component="exchange_client",
            operation="fetch_order_book",
            exchange=exchange,
            symbol=symbol,
            additional_data={'status': status} if status is not None else None
        )
        super().__init__(message, ErrorCategory.NETWORK, ErrorSeverity.MEDIUM, context, cause)
        self.status = status


class ConfigurationError(CollectorError):
    """配置异常"""

    def __init__(self, message: str, config_key: str, cause: Optional[Exception] = None):
        context = ErrorContext(
            timestamp=time.time(),
            component="configuration",
            operation="load",
            additional_data={'config_key': config_key}
        )
        super().__init__(message, ErrorCategory.CONFIGURATION, ErrorSeverity.HIGH, context, cause)


class StorageError(CollectorError):
    """存储异常 (directory creation, file open or write)"""

    def __init__(self, message: str, path: str, exchange: Optional[str] = None,
                 symbol: Optional[str] = None, cause: Optional[Exception] = None):
        context = ErrorContext(
            timestamp=time.time(),
            component="storage",
            operation="append",
            exchange=exchange,
            symbol=symbol,
            additional_data={'path': path}
        )
        super().__init__(message, ErrorCategory.STORAGE, ErrorSeverity.HIGH, context, cause)
        self.path = path
