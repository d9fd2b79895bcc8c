#!/usr/bin/env python3
"""
Order-book snapshot collector - 订单簿快照采集服务

Polls order-book snapshots for the tickers listed in the config file and
appends them to ``data/<EXCHANGE>/<BASE>_<QUOTE>/<hour_epoch>.json``.
Editing the config file starts and stops workers without a restart.

Usage:
  python main.py
  python main.py --config config.json --data-root data --log-level DEBUG
  python main.py --http-port 8087          # /health /workers /metrics

Environment:
  ORDERBOOK_COLLECTOR_CONFIG_PATH, ORDERBOOK_COLLECTOR_DATA_ROOT,
  ORDERBOOK_COLLECTOR_DEPTH, ORDERBOOK_COLLECTOR_REQUEST_TIMEOUT,
  ORDERBOOK_COLLECTOR_LOG_LEVEL, ORDERBOOK_COLLECTOR_JSON_LOGS,
  ORDERBOOK_COLLECTOR_HTTP_PORT, ORDERBOOK_COLLECTOR_RELOAD_DEBOUNCE
"""

import argparse
import asyncio
import signal
import sys

from orderbook_collector.config import ServiceSettings
from orderbook_collector.exceptions import ConfigurationError
from orderbook_collector.logging_config import configure_logging, get_logger
from orderbook_collector.service import OrderBookCollectorService


def parse_arguments(argv=None):
    """解析命令行参数"""
    parser = argparse.ArgumentParser(
        description="Order-book snapshot collector",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        '--config', '-c',
        type=str,
        help='采集配置文件路径 (默认: config.json)'
    )
    parser.add_argument(
        '--data-root', '-d',
        type=str,
        help='快照输出根目录 (默认: data)'
    )
    parser.add_argument(
        '--log-level', '-l',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help='日志级别 (默认: INFO)'
    )
    parser.add_argument(
        '--depth',
        type=int,
        help='订单簿深度 (默认: 10)'
    )
    parser.add_argument(
        '--http-port',
        type=int,
        help='状态服务端口, 0 表示禁用 (默认: 0)'
    )
    parser.add_argument(
        '--env-file',
        type=str,
        help='.env 文件路径'
    )
    return parser.parse_args(argv)


def build_settings(args) -> ServiceSettings:
    return ServiceSettings.from_env(
        env_file=args.env_file,
        config_path=args.config,
        data_root=args.data_root,
        log_level=args.log_level,
        depth=args.depth,
        http_port=args.http_port,
    )


async def main(argv=None) -> int:
    args = parse_arguments(argv)
    try:
        settings = build_settings(args)
    except ConfigurationError as e:
        print(f"Invalid settings: {e.message}", file=sys.stderr)
        return 2

    configure_logging("orderbook-collector", settings.log_level, settings.json_logs)
    logger = get_logger(__name__)

    service = OrderBookCollectorService(settings)

    # 设置优雅停止信号处理
    loop = asyncio.get_running_loop()
    stop_event = asyncio.Event()

    def signal_handler(signum, frame):
        logger.info("Received stop signal", signal=signum)
        loop.call_soon_threadsafe(stop_event.set)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        await service.run_until(stop_event)
        return 0
    except Exception as e:
        logger.error("Collector crashed", error=str(e), exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
