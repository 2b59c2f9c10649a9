"""Durable key-value media backing the persistence adapter."""

import os
import tempfile
from pathlib import Path
from typing import Protocol

from devedores.exceptions import QuotaExceededError


class KeyValueMedium(Protocol):
    """String key-value store that survives restarts."""

    def get_item(self, key: str) -> str | None: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...


class MemoryMedium:
    """In-process medium with an optional size quota."""

    def __init__(self, quota_bytes: int | None = None) -> None:
        """Initialize memory medium.

        Parameters
        ----------
        quota_bytes : int | None
            Maximum total size of all stored values, in UTF-8 bytes.
            None means unlimited.
        """
        self.quota_bytes = quota_bytes
        self._items: dict[str, str] = {}

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        if self.quota_bytes is not None:
            others = sum(len(v.encode("utf-8")) for k, v in self._items.items() if k != key)
            if others + len(value.encode("utf-8")) > self.quota_bytes:
                raise QuotaExceededError(f"Writing {key!r} would exceed {self.quota_bytes} bytes")
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)


class FileMedium:
    """Medium storing each key as ``<key>.json`` under a data directory.

    Writes go to a temporary file in the same directory and are then
    renamed over the target, so a crash never leaves a truncated value.
    """

    def __init__(self, root: str | Path, quota_bytes: int | None = None) -> None:
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)
        self.quota_bytes = quota_bytes

    def _path(self, key: str) -> Path:
        return self.root / f"{key}.json"

    def get_item(self, key: str) -> str | None:
        try:
            return self._path(key).read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def set_item(self, key: str, value: str) -> None:
        data = value.encode("utf-8")
        if self.quota_bytes is not None and len(data) > self.quota_bytes:
            raise QuotaExceededError(f"Writing {key!r} would exceed {self.quota_bytes} bytes")
        atomic_write(self._path(key), data)

    def remove_item(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)


def atomic_write(target: Path, data: bytes) -> None:
    """Write bytes to a sibling temp file, then rename it over ``target``."""
    fd, tmp_name = tempfile.mkstemp(prefix=f".{target.name}.", suffix=".tmp", dir=target.parent)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, target)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
