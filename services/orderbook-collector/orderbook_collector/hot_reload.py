"""
配置热重载

Watches the collection config file with watchdog and hands a reload request
to the asyncio loop. The observer runs on its own thread, so the callback is
only ever scheduled with ``loop.call_soon_threadsafe``; nothing else crosses
the thread boundary.
"""

from __future__ import annotations

import asyncio
import threading
from pathlib import Path
from typing import Callable, Optional, Union

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .logging_config import get_logger


class ConfigFileHandler(FileSystemEventHandler):
    """配置文件变更处理器, filtered to a single file"""

    def __init__(self, config_path: Path, on_change: Callable[[str], None]):
        super().__init__()
        self.config_path = config_path
        self.on_change = on_change

    def _matches(self, path: Union[str, bytes, None]) -> bool:
        if not path:
            return False
        if isinstance(path, bytes):
            path = path.decode()
        return Path(path).resolve() == self.config_path

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory and self._matches(event.src_path):
            self.on_change(str(event.src_path))

    def on_created(self, event: FileSystemEvent) -> None:
        self.on_modified(event)

    def on_moved(self, event: FileSystemEvent) -> None:
        # editors that save via rename
        if not event.is_directory and self._matches(getattr(event, "dest_path", None)):
            self.on_change(str(event.dest_path))


class ConfigFileWatcher:
    """配置热重载管理器

    ``callback`` runs on the event loop, at most once per ``debounce_delay``
    burst of file-system events.
    """

    def __init__(
        self,
        config_path: Union[str, Path],
        callback: Callable[[], None],
        loop: Optional[asyncio.AbstractEventLoop] = None,
        debounce_delay: float = 0.5,
    ) -> None:
        self.config_path = Path(config_path).resolve()
        self.callback = callback
        self.loop = loop
        self.debounce_delay = debounce_delay
        self.observer: Optional[Observer] = None
        self.is_running = False
        self.lock = threading.Lock()
        self._pending: Optional[asyncio.TimerHandle] = None
        self.logger = get_logger("config_file_watcher")

    def start(self) -> None:
        with self.lock:
            if self.is_running:
                self.logger.warning("Config watcher already running")
                return
            if self.loop is None:
                self.loop = asyncio.get_running_loop()

            watch_dir = self.config_path.parent
            if not watch_dir.exists():
                self.logger.error("Config directory does not exist", directory=str(watch_dir))
                return

            self.observer = Observer()
            handler = ConfigFileHandler(self.config_path, self._on_file_event)
            self.observer.schedule(handler, str(watch_dir), recursive=False)
            self.observer.start()
            self.is_running = True
            self.logger.info("Config watcher started", path=str(self.config_path))

    def stop(self) -> None:
        with self.lock:
            if not self.is_running:
                return
            if self.observer:
                self.observer.stop()
                self.observer.join()
                self.observer = None
            if self._pending is not None:
                self._pending.cancel()
                self._pending = None
            self.is_running = False
            self.logger.info("Config watcher stopped")

    def _on_file_event(self, src_path: str) -> None:
        # observer thread
        self.logger.info("Change detected", path=src_path)
        if self.loop is not None and not self.loop.is_closed():
            self.loop.call_soon_threadsafe(self._schedule_reload)

    def _schedule_reload(self) -> None:
        # event loop thread
        if self._pending is not None:
            self._pending.cancel()
        self._pending = self.loop.call_later(self.debounce_delay, self._fire)

    def _fire(self) -> None:
        self._pending = None
        self.callback()
