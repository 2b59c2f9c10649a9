"""Sync status exposed to the UI layer."""

from dataclasses import dataclass, replace
from datetime import datetime


@dataclass
class SyncStatus:
    """Ephemeral state of directory synchronization. Never persisted."""

    connected: bool = False
    folder_configured: bool = False
    last_sync: datetime | None = None
    error: str | None = None

    def copy(self) -> "SyncStatus":
        return replace(self)
