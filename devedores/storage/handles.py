"""Directory handles, the store that keeps them, and environment gating."""

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from devedores.config import EnvironmentConfig
from devedores.logging import get_logger
from devedores.models import PermissionState
from devedores.storage.medium import atomic_write

logger = get_logger(__name__)

HANDLE_KEY = "pastaHandle"
PROBE_FILENAME = ".devedores_probe"


@dataclass(frozen=True)
class DirectoryHandle:
    """Capability to read and write one user-chosen directory.

    Access can be revoked out-of-band (permissions changed, folder removed
    or unmounted), so callers check it before every use.
    """

    path: Path
    supports_query: bool = True

    @property
    def name(self) -> str:
        return self.path.name

    def query_permission(self) -> PermissionState:
        """Report current read-write access to the directory.

        Raises
        ------
        NotImplementedError
            When the handle cannot answer permission queries; use
            :func:`probe_permission` instead.
        """
        if not self.supports_query:
            raise NotImplementedError("permission query not supported for this handle")
        if not self.path.is_dir():
            return PermissionState.DENIED
        if os.access(self.path, os.R_OK | os.W_OK | os.X_OK):
            return PermissionState.GRANTED
        return PermissionState.DENIED

    def to_dict(self) -> dict[str, str | bool]:
        return {"path": str(self.path), "supportsQuery": self.supports_query}

    @classmethod
    def from_dict(cls, data: dict) -> "DirectoryHandle":
        return cls(path=Path(data["path"]), supports_query=bool(data.get("supportsQuery", True)))


def probe_permission(handle: DirectoryHandle) -> PermissionState:
    """Check write access by creating and deleting a throwaway file."""
    probe = handle.path / PROBE_FILENAME
    try:
        probe.write_text("probe", encoding="utf-8")
        probe.unlink()
    except OSError:
        return PermissionState.DENIED
    return PermissionState.GRANTED


def verify_permission(handle: DirectoryHandle) -> PermissionState:
    """Query permission, falling back to a probe when queries are unsupported."""
    try:
        return handle.query_permission()
    except NotImplementedError:
        return probe_permission(handle)


class HandleStore(Protocol):
    """Durable home for the directory handle, separate from the document."""

    def load(self) -> DirectoryHandle | None: ...

    def save(self, handle: DirectoryHandle) -> None: ...

    def clear(self) -> None: ...


class MemoryHandleStore:
    """Handle store kept in process memory."""

    def __init__(self, handle: DirectoryHandle | None = None) -> None:
        self._handle = handle

    def load(self) -> DirectoryHandle | None:
        return self._handle

    def save(self, handle: DirectoryHandle) -> None:
        self._handle = handle

    def clear(self) -> None:
        self._handle = None


class FileHandleStore:
    """Handle store persisted as a small JSON file."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def load(self) -> DirectoryHandle | None:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            entry = data.get(HANDLE_KEY)
            return DirectoryHandle.from_dict(entry) if entry else None
        except FileNotFoundError:
            return None
        except (OSError, ValueError, KeyError, AttributeError, TypeError):
            logger.exception("Failed to read stored folder handle")
            return None

    def save(self, handle: DirectoryHandle) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps({HANDLE_KEY: handle.to_dict()}, indent=2)
        atomic_write(self.path, payload.encode("utf-8"))

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)


@dataclass(frozen=True)
class Environment:
    """Where the process runs, as far as directory access is concerned."""

    directory_access: bool = True
    embedded: bool = False
    host: str = ""
    sandbox_hosts: tuple[str, ...] = ("lovable.app",)

    @classmethod
    def from_config(cls, config: EnvironmentConfig) -> "Environment":
        return cls(
            directory_access=config.directory_access,
            embedded=config.embedded,
            host=config.host,
            sandbox_hosts=tuple(config.sandbox_hosts),
        )

    @property
    def sandboxed(self) -> bool:
        """True inside an embedded frame or on a preview/sandbox host."""
        if self.embedded:
            return True
        host = self.host.lower()
        return any(host == h or host.endswith("." + h) for h in self.sandbox_hosts)

    @property
    def available(self) -> bool:
        return self.directory_access and not self.sandboxed
