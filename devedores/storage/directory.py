"""Mirror the local document to a JSON file in a user-granted directory."""

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable

from devedores.exceptions import (
    EnvironmentUnsupportedError,
    FolderNotConfiguredError,
    FolderPermissionError,
    PickerCancelledError,
    SyncError,
)
from devedores.logging import get_logger
from devedores.models import Document, PermissionState, ReconcileOutcome
from devedores.storage.handles import DirectoryHandle, Environment, HandleStore, verify_permission
from devedores.storage.medium import atomic_write
from devedores.storage.serialization import DECODE_ERRORS, dumps, loads
from devedores.utils import utcnow

logger = get_logger(__name__)

DEFAULT_SYNC_FILENAME = "devedores.json"

# Asks the user for a directory; returns None when the prompt is dismissed.
FolderPicker = Callable[[], DirectoryHandle | Path | str | None]


@dataclass
class ReconcileResult:
    """What one reconciliation pass did.

    ``document`` is the file's content when the file won, otherwise the
    local document that is now on disk.
    """

    outcome: ReconcileOutcome
    document: Document

    @property
    def local_changed(self) -> bool:
        return self.outcome == ReconcileOutcome.FILE_WINS


def unsupported_picker() -> None:
    raise EnvironmentUnsupportedError("No folder picker is available")


class DirectorySyncAdapter:
    """Bridge between the document and one JSON file in a chosen directory.

    The handle is read from the handle store and validated on every use,
    never cached as known-good.
    """

    def __init__(
        self,
        handles: HandleStore,
        environment: Environment | None = None,
        picker: FolderPicker = unsupported_picker,
        filename: str = DEFAULT_SYNC_FILENAME,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        """Initialize directory sync adapter.

        Parameters
        ----------
        handles : HandleStore
            Durable store for the directory handle.
        environment : Environment | None
            Execution context; defaults to an unsandboxed one.
        picker : FolderPicker
            Prompts for a directory. Returns None when cancelled and may
            raise PermissionError when access is refused.
        filename : str
            Name of the synced file inside the directory.
        clock : Callable[[], datetime]
            Source of "now" for backup file names.
        """
        self.handles = handles
        self.environment = environment or Environment()
        self.picker = picker
        self.filename = filename
        self.clock = clock

    @property
    def available(self) -> bool:
        """Whether directory sync can be offered at all."""
        return self.environment.available

    # --- Handle lifecycle ---

    def configure(self) -> DirectoryHandle:
        """Prompt for a directory and persist its handle.

        Raises
        ------
        EnvironmentUnsupportedError
            Directory access is unavailable or the context is sandboxed.
        PickerCancelledError
            The user dismissed the prompt. Not an error for the UI.
        FolderPermissionError
            Access to the chosen directory was refused.
        """
        if not self.environment.directory_access:
            raise EnvironmentUnsupportedError("Directory access is not supported in this environment")
        if self.environment.sandboxed:
            raise EnvironmentUnsupportedError(
                "Folder selection does not work in an embedded or preview context"
            )

        logger.info("Requesting folder selection")
        try:
            picked = self.picker()
        except PermissionError as e:
            raise FolderPermissionError(f"Permission denied for the selected folder: {e}") from e

        if picked is None:
            logger.info("Folder selection cancelled by user")
            raise PickerCancelledError("Folder selection cancelled")

        handle = picked if isinstance(picked, DirectoryHandle) else DirectoryHandle(Path(picked))
        if verify_permission(handle) != PermissionState.GRANTED:
            raise FolderPermissionError(f"No read-write access to {handle.path}")

        self.handles.save(handle)
        logger.info("Sync folder configured", extra={"folder": str(handle.path)})
        return handle

    def has_handle(self) -> bool:
        """Whether a handle is stored, without validating it."""
        return self.handles.load() is not None

    def current_handle(self) -> DirectoryHandle | None:
        """Return the stored handle if it still grants read-write access.

        Raises
        ------
        FolderPermissionError
            The stored handle lost permission; it has been purged.
        """
        handle = self.handles.load()
        if handle is None:
            return None
        if verify_permission(handle) != PermissionState.GRANTED:
            logger.warning("Access to sync folder revoked, forgetting it", extra={"folder": str(handle.path)})
            self.handles.clear()
            raise FolderPermissionError(f"Access to {handle.path} is no longer granted")
        return handle

    def require_handle(self) -> DirectoryHandle:
        handle = self.current_handle()
        if handle is None:
            raise FolderNotConfiguredError("folder not configured")
        return handle

    # --- File I/O ---

    def read_file(self, handle: DirectoryHandle, name: str) -> Document | None:
        """Read and parse a document file; None if it does not exist.

        Raises
        ------
        SyncError
            The file exists but cannot be read or parsed.
        """
        path = handle.path / name
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            raise SyncError(f"Failed to read {path}: {e}") from e
        try:
            return loads(text)
        except DECODE_ERRORS as e:
            raise SyncError(f"Failed to parse {path}: {e}") from e

    def write_file(self, handle: DirectoryHandle, name: str, document: Document) -> Path:
        """Replace a file with the pretty-printed document."""
        path = handle.path / name
        try:
            atomic_write(path, dumps(document, pretty=True).encode("utf-8"))
        except OSError as e:
            raise SyncError(f"Failed to write {path}: {e}") from e
        return path

    # --- Reconciliation ---

    def reconcile(self, local: Document) -> ReconcileResult:
        """Last-writer-wins reconciliation at whole-document granularity.

        Compares ``settings.last_updated`` on both sides. The strictly newer
        side overwrites the other; equal timestamps change nothing. When the
        file does not exist yet the local document is written.

        Raises
        ------
        FolderNotConfiguredError
            No folder has been configured.
        FolderPermissionError
            The folder lost permission (the handle is purged).
        SyncError
            Reading or writing the file failed.
        """
        handle = self.require_handle()
        remote = self.read_file(handle, self.filename)

        if remote is None:
            self.write_file(handle, self.filename, local)
            logger.info("Sync file created", extra={"folder": str(handle.path)})
            return ReconcileResult(ReconcileOutcome.FILE_CREATED, local)

        local_ts = local.settings.last_updated
        remote_ts = remote.settings.last_updated
        if remote_ts > local_ts:
            logger.info("Sync file is newer, pulling it into local data")
            return ReconcileResult(ReconcileOutcome.FILE_WINS, remote)
        if local_ts > remote_ts:
            self.write_file(handle, self.filename, local)
            logger.info("Local data is newer, sync file updated")
            return ReconcileResult(ReconcileOutcome.LOCAL_WINS, local)
        return ReconcileResult(ReconcileOutcome.IN_SYNC, local)

    def backup_name(self, now: datetime) -> str:
        stem = Path(self.filename).stem
        return f"{stem}_backup_{now:%Y%m%d}.json"

    def backup(self, local: Document, now: datetime | None = None) -> Path:
        """Write a dated snapshot next to the sync file.

        Raises
        ------
        FolderNotConfiguredError
            No folder has been configured.
        """
        handle = self.require_handle()
        path = self.write_file(handle, self.backup_name(now or self.clock()), local)
        logger.info("Backup written", extra={"backup": str(path)})
        return path
