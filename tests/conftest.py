"""Pytest configuration and fixtures."""

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable

import pytest

from devedores.storage.directory import DirectorySyncAdapter
from devedores.storage.handles import DirectoryHandle, Environment, MemoryHandleStore
from devedores.storage.medium import MemoryMedium
from devedores.storage.persistence import PersistenceAdapter
from devedores.store.records import RecordStore

T0 = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime = T0) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class FakeTimer:
    """Timer that records its schedule and runs only when fired."""

    def __init__(self, interval: float, function: Callable[[], object]) -> None:
        self.interval = interval
        self.function = function
        self.started = False
        self.cancelled = False

    def start(self) -> None:
        self.started = True

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self) -> None:
        self.function()


class TimerRecorder:
    """Timer factory keeping every timer it built."""

    def __init__(self) -> None:
        self.timers: list[FakeTimer] = []

    def __call__(self, interval: float, function: Callable[[], object]) -> FakeTimer:
        timer = FakeTimer(interval, function)
        self.timers.append(timer)
        return timer

    def by_interval(self, interval: float) -> FakeTimer:
        return next(t for t in self.timers if t.interval == interval)


@pytest.fixture
def seed() -> int:
    """Fixed seed for reproducible tests."""
    return 42


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def medium() -> MemoryMedium:
    return MemoryMedium()


@pytest.fixture
def persistence(medium: MemoryMedium, clock: FakeClock) -> PersistenceAdapter:
    return PersistenceAdapter(medium, clock=clock)


@pytest.fixture
def store(persistence: PersistenceAdapter) -> RecordStore:
    """Create a fresh store for each test."""
    return RecordStore(persistence)


@pytest.fixture
def folder(tmp_path: Path) -> Path:
    """Directory standing in for the user-granted sync folder."""
    path = tmp_path / "sync"
    path.mkdir()
    return path


@pytest.fixture
def handles() -> MemoryHandleStore:
    return MemoryHandleStore()


@pytest.fixture
def directory(handles: MemoryHandleStore, folder: Path, clock: FakeClock) -> DirectorySyncAdapter:
    """Adapter whose picker always selects ``folder``."""
    return DirectorySyncAdapter(handles, environment=Environment(), picker=lambda: folder, clock=clock)


@pytest.fixture
def configured_directory(directory: DirectorySyncAdapter, folder: Path) -> DirectorySyncAdapter:
    directory.handles.save(DirectoryHandle(folder))
    return directory


@pytest.fixture
def timers() -> TimerRecorder:
    return TimerRecorder()


@pytest.fixture
def sample_client(store: RecordStore):
    """A client with no debts."""
    return store.create_client(name="João da Silva", tax_id="123.456.789-00", phone="(11) 98765-4321")
