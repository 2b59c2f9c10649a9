"""Sync orchestration between the record store and the sync folder."""

from devedores.sync.coordinator import SyncCoordinator
from devedores.sync.timer import IntervalTimer

__all__ = ["IntervalTimer", "SyncCoordinator"]
