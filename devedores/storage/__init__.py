"""Local persistence, directory handles and file synchronization."""

from devedores.storage.directory import DirectorySyncAdapter, ReconcileResult
from devedores.storage.handles import (
    DirectoryHandle,
    Environment,
    FileHandleStore,
    MemoryHandleStore,
)
from devedores.storage.medium import FileMedium, MemoryMedium
from devedores.storage.persistence import PersistenceAdapter

__all__ = [
    "DirectoryHandle",
    "DirectorySyncAdapter",
    "Environment",
    "FileHandleStore",
    "FileMedium",
    "MemoryHandleStore",
    "MemoryMedium",
    "PersistenceAdapter",
    "ReconcileResult",
]
