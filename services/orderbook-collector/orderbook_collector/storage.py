"""
小时分桶快照存储

Layout: ``{data_root}/{EXCHANGE}/{BASE}_{QUOTE}/{hour_epoch}.json``, one
``{"time":<int>,"response":<raw body>}`` object per line, append-only. The
exchange body is spliced in unchanged, so number formatting and large
integers survive exactly as received.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union

from .exceptions import StorageError

BUCKET_SECONDS = 3600


def hour_bucket(timestamp: int) -> int:
    """Start of the hour window containing ``timestamp`` (epoch seconds)."""
    return timestamp // BUCKET_SECONDS * BUCKET_SECONDS


def make_envelope(timestamp: int, raw: bytes) -> bytes:
    """Wrap a raw JSON body as ``{"time":..,"response":..}`` on a single line.

    Raises:
        TypeError: ``raw`` is not bytes-like.
        ValueError: ``raw`` is empty.
    """
    if not isinstance(raw, (bytes, bytearray)):
        raise TypeError(f"response body must be bytes, got {type(raw).__name__}")
    body = bytes(raw).strip()
    if not body:
        raise ValueError("empty response body")
    if b"\n" in body or b"\r" in body:
        # raw newlines can only be insignificant whitespace in valid JSON
        body = body.replace(b"\r", b" ").replace(b"\n", b" ")
    return b'{"time":%d,"response":%s}' % (int(timestamp), body)


class HourlyFileSink:
    """Rotation state and append-only writer for one worker.

    Not shared: each ``SnapshotWorker`` owns exactly one sink.
    """

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)
        self.current_path: Optional[Path] = None
        self.last_bucket: Optional[int] = None

    def ensure_directory(self) -> None:
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Cannot create dir {self.directory}: {e}", path=str(self.directory), cause=e)

    def rotate_if_needed(self, timestamp: int) -> bool:
        """Switch ``current_path`` when ``timestamp`` falls in a newer bucket."""
        bucket = hour_bucket(timestamp)
        if self.last_bucket is None or bucket > self.last_bucket:
            self.current_path = self.directory / f"{bucket}.json"
            self.last_bucket = bucket
            return True
        return False

    def append(self, timestamp: int, raw: bytes) -> Path:
        """Write one envelope line for the body ``raw`` captured at ``timestamp``.

        Raises:
            StorageError: the body cannot be enveloped, or the directory or
                file could not be written.
        """
        self.rotate_if_needed(timestamp)
        try:
            line = make_envelope(timestamp, raw) + b"\n"
        except (TypeError, ValueError) as e:
            raise StorageError(f"Cannot encode snapshot for {self.current_path}: {e}",
                               path=str(self.current_path), cause=e)
        try:
            if not self.directory.is_dir():
                self.ensure_directory()
            with open(self.current_path, "ab") as f:
                f.write(line)
        except OSError as e:
            raise StorageError(f"Unable to write {self.current_path}: {e}", path=str(self.current_path), cause=e)
        return self.current_path
