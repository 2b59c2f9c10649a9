"""Glue between record mutations, local persistence and directory sync."""

import atexit
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from pathlib import Path
from typing import Callable

from devedores.exceptions import (
    FolderNotConfiguredError,
    FolderPermissionError,
    PickerCancelledError,
    SyncError,
)
from devedores.interest.sweep import sweep
from devedores.logging import get_logger
from devedores.models import ReconcileOutcome, SyncStatus
from devedores.storage.directory import DirectorySyncAdapter
from devedores.storage.handles import DirectoryHandle
from devedores.store.records import RecordStore
from devedores.sync.timer import IntervalTimer, Timer, TimerFactory
from devedores.utils import utcnow

logger = get_logger(__name__)

Dispatch = Callable[[Callable[[], object]], object]

DEFAULT_SYNC_INTERVAL = 30.0
DEFAULT_SWEEP_INTERVAL = 3600.0


class SyncCoordinator:
    """Owns the sync status and decides when reconciliation runs.

    Reconciliation is triggered after every store mutation, on a fixed
    interval, and once more at interpreter exit. It is best effort: failures
    are recorded in ``status.error`` and never raised to the code that
    mutated the store.
    """

    def __init__(
        self,
        store: RecordStore,
        directory: DirectorySyncAdapter,
        clock: Callable[[], datetime] = utcnow,
        dispatch: Dispatch | None = None,
        timer_factory: TimerFactory | None = None,
        sync_interval: float = DEFAULT_SYNC_INTERVAL,
        sweep_interval: float = DEFAULT_SWEEP_INTERVAL,
    ) -> None:
        """Initialize sync coordinator.

        Parameters
        ----------
        store : RecordStore
            Record store to mirror.
        directory : DirectorySyncAdapter
            Adapter for the user-granted folder.
        clock : Callable[[], datetime]
            Source of "now" for sync stamps and interest sweeps.
        dispatch : Dispatch | None
            Runs a callable in the background. Defaults to a single-worker
            thread pool, created by each :meth:`start`, so syncs never overlap.
        timer_factory : TimerFactory | None
            Builds a repeating timer from ``(interval, fn)``. Defaults to
            :class:`IntervalTimer`.
        sync_interval : float
            Seconds between periodic reconciliations.
        sweep_interval : float
            Seconds between interest sweeps.
        """
        self.store = store
        self.directory = directory
        self.clock = clock
        self.sync_interval = sync_interval
        self.sweep_interval = sweep_interval
        self.configuration_required = False

        self._executor: ThreadPoolExecutor | None = None
        self._injected_dispatch = dispatch
        self._dispatch: Dispatch | None = dispatch
        self._timer_factory = timer_factory or IntervalTimer
        self._timers: list[Timer] = []
        self._status = SyncStatus()
        self._status_lock = threading.Lock()
        self._sync_lock = threading.Lock()
        self._started = False

    @property
    def status(self) -> SyncStatus:
        """A copy of the current sync status."""
        with self._status_lock:
            return self._status.copy()

    @property
    def available(self) -> bool:
        return self.directory.available

    # --- Lifecycle ---

    def start(self) -> SyncStatus:
        """Load local data, probe the folder and start the background timers."""
        if self._started:
            return self.status
        self._started = True
        if self._injected_dispatch is None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="devedores-sync")
            self._dispatch = self._executor.submit

        self.store.reload()
        self.sweep_interest()

        if self.available:
            self._probe_folder()
        else:
            logger.info("Directory sync unavailable in this environment")

        if self.available:
            self._start_timer(self.sync_interval, self.tick)
        self._start_timer(self.sweep_interval, self.sweep_interest)

        atexit.register(self.shutdown)
        self.store.subscribe(self._on_mutation)
        logger.info(
            "Sync coordinator started",
            extra={"available": self.available, "configuration_required": self.configuration_required},
        )
        return self.status

    def shutdown(self) -> None:
        """Stop timers, attempt a final sync and release the worker thread."""
        if self._started:
            self._started = False
            atexit.unregister(self.shutdown)
            self.store.unsubscribe(self._on_mutation)
            for timer in self._timers:
                timer.cancel()
            self._timers.clear()

            if self.available and self.directory.has_handle():
                status = self.sync()
                if status.error:
                    logger.warning("Final sync failed", extra={"error": status.error})
            logger.info("Sync coordinator stopped")

        # Waits for a sync already dispatched by a mutation
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None
            self._dispatch = self._injected_dispatch

    # --- Operations ---

    def sync(self) -> SyncStatus:
        """Reconcile the local document with the sync file.

        Never raises; the outcome is reflected in the returned status.
        """
        if not self.available:
            return self.status

        with self._sync_lock:
            local = self.store.snapshot()
            adopted = True
            try:
                result = self.directory.reconcile(local)
                if result.outcome == ReconcileOutcome.FILE_WINS:
                    adopted = self.store.replace(result.document, expected_last_updated=local.settings.last_updated)
            except FolderNotConfiguredError as e:
                self._set_status(connected=False, folder_configured=False, error=str(e))
            except FolderPermissionError as e:
                logger.warning("Sync folder permission lost", extra={"error": str(e)})
                self._set_status(connected=False, folder_configured=False, error=str(e))
            except Exception as e:
                logger.exception("Sync failed")
                self._set_status(connected=False, folder_configured=True, error=str(e))
            else:
                if adopted:
                    self._set_status(connected=True, folder_configured=True, last_sync=self.clock(), error=None)
                    logger.info("Sync completed", extra={"outcome": result.outcome.value})
                else:
                    # Local edits landed mid-sync; the sync they dispatch pushes them.
                    self._set_status(connected=True, folder_configured=True, error=None)
                    logger.info("Sync file not adopted, local data changed during sync")
        return self.status

    def configure_folder(self) -> DirectoryHandle:
        """Prompt for a sync folder, remember it and sync immediately.

        Raises
        ------
        PickerCancelledError
            The user dismissed the prompt; the status is left unchanged.
        SyncError
            The environment is unsupported or permission was refused.
        """
        try:
            handle = self.directory.configure()
        except PickerCancelledError:
            raise
        except SyncError as e:
            self._set_status(connected=False, folder_configured=False, error=str(e))
            raise
        self.configuration_required = False
        self.sync()
        return handle

    def backup(self) -> Path:
        """Write a dated backup of the current document into the sync folder."""
        return self.directory.backup(self.store.snapshot(), self.clock())

    def tick(self) -> None:
        """Periodic sync body; does nothing until a folder is configured."""
        if self.directory.has_handle():
            self.sync()

    def sweep_interest(self) -> int:
        return sweep(self.store, self.clock())

    # --- Internals ---

    def _probe_folder(self) -> None:
        try:
            handle = self.directory.current_handle()
        except FolderPermissionError as e:
            self._set_status(connected=False, folder_configured=False, error=str(e))
            return

        if handle is not None:
            self._set_status(connected=True, folder_configured=True)
            self.sync()
        elif self.store.summary()["clients"] > 0:
            self.configuration_required = True
            logger.info("Existing data without a sync folder, configuration required")

    def _start_timer(self, interval: float, fn: Callable[[], object]) -> None:
        timer = self._timer_factory(interval, fn)
        timer.start()
        self._timers.append(timer)

    def _on_mutation(self, event: str) -> None:
        if self._dispatch is None or not (self.available and self.directory.has_handle()):
            return
        logger.debug("Scheduling sync after %s", event)
        try:
            self._dispatch(self.sync)
        except RuntimeError as e:
            # Executor already stopped; the mutation itself has been saved.
            logger.warning("Could not schedule sync", extra={"error": str(e)})
            self._set_status(error=str(e))

    def _set_status(self, **changes: object) -> None:
        with self._status_lock:
            for key, value in changes.items():
                setattr(self._status, key, value)
