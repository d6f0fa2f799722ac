"""
Key-value storage for editor state.

The editor persists whole JSON documents under string keys, the way a
browser front-end uses local storage. Both backends enforce an optional
size quota; a write that would exceed it raises
``StorageQuotaExceededError`` and leaves the previous value untouched.
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_QUOTA_BYTES = 5 * 1024 * 1024


class StorageError(Exception):
    """Error reading or writing editor storage."""


class StorageQuotaExceededError(StorageError):
    """A write would exceed the storage quota."""
    def __init__(self, key: str, required: int, quota: int):
        self.key = key
        self.required = required
        self.quota = quota
        super().__init__(
            f"Storage quota exceeded writing {key!r}: {required} bytes needed, quota is {quota}"
        )


class Storage(ABC):
    """String key-value store with an optional byte quota."""

    def __init__(self, quota_bytes: int | None = None):
        self.quota_bytes = quota_bytes

    @abstractmethod
    def get_item(self, key: str) -> str | None:
        """Return the value stored under ``key``, or None."""

    @abstractmethod
    def _write(self, key: str, value: str) -> None:
        """Store a value without quota checks."""

    @abstractmethod
    def remove_item(self, key: str) -> None:
        """Delete ``key``; missing keys are ignored."""

    @abstractmethod
    def keys(self) -> list[str]:
        """Return all stored keys."""

    def set_item(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``, enforcing the quota."""
        if self.quota_bytes is not None:
            required = self.total_size() - self.size_of(key) + _encoded_size(value)
            if required > self.quota_bytes:
                logger.warning("Quota exceeded writing %s (%d > %d bytes)", key, required, self.quota_bytes)
                raise StorageQuotaExceededError(key, required, self.quota_bytes)
        self._write(key, value)

    def size_of(self, key: str) -> int:
        """Size in bytes of the value under ``key`` (0 if missing)."""
        value = self.get_item(key)
        return _encoded_size(value) if value is not None else 0

    def total_size(self) -> int:
        return sum(self.size_of(key) for key in self.keys())

    def clear(self) -> None:
        for key in self.keys():
            self.remove_item(key)


def _encoded_size(value: str) -> int:
    return len(value.encode("utf-8"))


class MemoryStorage(Storage):
    """In-process storage, used by tests and throwaway sessions."""

    def __init__(self, quota_bytes: int | None = None):
        super().__init__(quota_bytes)
        self._items: dict[str, str] = {}

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def _write(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._items)


class FileStorage(Storage):
    """
    Directory-backed storage: one ``<key>.json`` file per key.

    Keys are restricted to a filename-safe alphabet; writes go through a
    temporary file and a rename so a crash never leaves half a document.
    """

    SUFFIX = ".json"

    def __init__(self, directory: str | Path, quota_bytes: int | None = DEFAULT_QUOTA_BYTES):
        super().__init__(quota_bytes)
        self.directory = Path(directory).expanduser()
        self.directory.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        if not re.fullmatch(r"[A-Za-z0-9_.\-]+", key) or key.startswith("."):
            raise StorageError(f"Invalid storage key: {key!r}")
        return self.directory / f"{key}{self.SUFFIX}"

    def get_item(self, key: str) -> str | None:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except OSError as e:
            raise StorageError(f"Cannot read {path}: {e}") from e

    def _write(self, key: str, value: str) -> None:
        path = self._path(key)
        tmp_path = path.with_name(path.name + ".tmp")
        try:
            tmp_path.write_text(value, encoding="utf-8")
            tmp_path.replace(path)
        except OSError as e:
            raise StorageError(f"Cannot write {path}: {e}") from e

    def remove_item(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)

    def keys(self) -> list[str]:
        return sorted(p.name[: -len(self.SUFFIX)] for p in self.directory.glob(f"*{self.SUFFIX}"))

    def size_of(self, key: str) -> int:
        path = self._path(key)
        return path.stat().st_size if path.exists() else 0
