"""Tests for DirectorySyncAdapter, handles and environment gating."""

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from devedores.config import EnvironmentConfig
from devedores.exceptions import (
    EnvironmentUnsupportedError,
    FolderNotConfiguredError,
    FolderPermissionError,
    PickerCancelledError,
    SyncError,
)
from devedores.models import Document, PermissionState, ReconcileOutcome
from devedores.storage.directory import DirectorySyncAdapter
from devedores.storage.handles import (
    HANDLE_KEY,
    PROBE_FILENAME,
    DirectoryHandle,
    Environment,
    FileHandleStore,
    MemoryHandleStore,
    probe_permission,
    verify_permission,
)
from devedores.storage.serialization import dumps, loads


def write_remote(folder: Path, document: Document) -> None:
    (folder / "devedores.json").write_text(dumps(document, pretty=True), encoding="utf-8")


def read_remote(folder: Path) -> Document:
    return loads((folder / "devedores.json").read_text(encoding="utf-8"))


class TestEnvironment:
    """Tests for environment gating."""

    def test_default_is_available(self) -> None:
        """Test an unsandboxed context with directory access."""
        assert Environment().available is True

    def test_no_directory_access(self) -> None:
        """Test missing capability disables the feature."""
        assert Environment(directory_access=False).available is False

    def test_embedded(self) -> None:
        """Test embedded contexts are sandboxed."""
        assert Environment(embedded=True).sandboxed is True

    @pytest.mark.parametrize("host", ["lovable.app", "preview-123.lovable.app", "LOVABLE.APP"])
    def test_sandbox_hosts(self, host: str) -> None:
        """Test preview hosts and their subdomains are sandboxed."""
        assert Environment(host=host).available is False

    def test_lookalike_host(self) -> None:
        """Test hosts merely ending in the same letters are not sandboxed."""
        assert Environment(host="notlovable.app").sandboxed is False

    def test_from_config(self) -> None:
        """Test building from configuration."""
        env = Environment.from_config(EnvironmentConfig(embedded=True, host="x", sandbox_hosts=("x",)))
        assert env.embedded is True
        assert env.sandbox_hosts == ("x",)


class TestPermissions:
    """Tests for permission checks."""

    def test_query_granted(self, folder: Path) -> None:
        """Test an existing writable directory is granted."""
        assert DirectoryHandle(folder).query_permission() == PermissionState.GRANTED

    def test_query_missing_directory(self, tmp_path: Path) -> None:
        """Test a vanished directory is denied."""
        assert DirectoryHandle(tmp_path / "gone").query_permission() == PermissionState.DENIED

    def test_query_unsupported(self, folder: Path) -> None:
        """Test handles without query support raise."""
        with pytest.raises(NotImplementedError):
            DirectoryHandle(folder, supports_query=False).query_permission()

    def test_probe_fallback(self, folder: Path) -> None:
        """Test the probe is used when queries are unsupported and cleans up."""
        handle = DirectoryHandle(folder, supports_query=False)

        assert verify_permission(handle) == PermissionState.GRANTED
        assert not (folder / PROBE_FILENAME).exists()

    def test_probe_denied(self, tmp_path: Path) -> None:
        """Test the probe fails for a missing directory."""
        assert probe_permission(DirectoryHandle(tmp_path / "gone")) == PermissionState.DENIED


class TestHandleStores:
    """Tests for handle stores."""

    def test_memory_store(self, folder: Path) -> None:
        """Test save/load/clear in memory."""
        handles = MemoryHandleStore()
        handles.save(DirectoryHandle(folder))
        assert handles.load() == DirectoryHandle(folder)
        handles.clear()
        assert handles.load() is None

    def test_file_store(self, tmp_path: Path, folder: Path) -> None:
        """Test the handle survives in a JSON file under its own key."""
        path = tmp_path / "state" / "handles.json"
        FileHandleStore(path).save(DirectoryHandle(folder, supports_query=False))

        assert json.loads(path.read_text(encoding="utf-8"))[HANDLE_KEY]["path"] == str(folder)
        assert FileHandleStore(path).load() == DirectoryHandle(folder, supports_query=False)
        FileHandleStore(path).clear()
        assert FileHandleStore(path).load() is None

    def test_file_store_corrupt(self, tmp_path: Path) -> None:
        """Test a corrupt handle file reads as no handle."""
        path = tmp_path / "handles.json"
        path.write_text("[1, 2", encoding="utf-8")
        assert FileHandleStore(path).load() is None


class TestConfigure:
    """Tests for folder configuration."""

    def test_configure_saves_handle(self, directory: DirectorySyncAdapter, folder: Path) -> None:
        """Test a granted folder is remembered."""
        handle = directory.configure()

        assert handle.path == folder
        assert directory.handles.load() == handle
        assert directory.has_handle() is True

    def test_cancelled_picker(self, handles: MemoryHandleStore) -> None:
        """Test cancellation is distinguishable and stores nothing."""
        directory = DirectorySyncAdapter(handles, picker=lambda: None)

        with pytest.raises(PickerCancelledError):
            directory.configure()
        assert handles.load() is None

    def test_picker_permission_error(self, handles: MemoryHandleStore) -> None:
        """Test a refused grant becomes FolderPermissionError."""

        def refuse() -> None:
            raise PermissionError("denied")

        with pytest.raises(FolderPermissionError):
            DirectorySyncAdapter(handles, picker=refuse).configure()

    def test_picked_folder_without_access(self, handles: MemoryHandleStore, tmp_path: Path) -> None:
        """Test a folder that cannot be written is rejected."""
        directory = DirectorySyncAdapter(handles, picker=lambda: tmp_path / "gone")
        with pytest.raises(FolderPermissionError):
            directory.configure()
        assert handles.load() is None

    @pytest.mark.parametrize(
        "environment", [Environment(directory_access=False), Environment(embedded=True), Environment(host="lovable.app")]
    )
    def test_unsupported_environment(self, handles: MemoryHandleStore, folder: Path, environment) -> None:
        """Test configuration is refused where the feature is unavailable."""
        directory = DirectorySyncAdapter(handles, environment=environment, picker=lambda: folder)
        with pytest.raises(EnvironmentUnsupportedError):
            directory.configure()

    def test_default_picker(self, handles: MemoryHandleStore) -> None:
        """Test the adapter has no picker unless one is given."""
        with pytest.raises(EnvironmentUnsupportedError):
            DirectorySyncAdapter(handles).configure()

    def test_cancelled_is_a_sync_error(self) -> None:
        """Test callers catching SyncError also see cancellations."""
        assert issubclass(PickerCancelledError, SyncError)


class TestHandleValidation:
    """Tests for handle validation on use."""

    def test_revoked_handle_is_purged(self, configured_directory: DirectorySyncAdapter, folder: Path) -> None:
        """Test a handle that lost access is forgotten."""
        folder.rmdir()

        with pytest.raises(FolderPermissionError):
            configured_directory.current_handle()
        assert configured_directory.handles.load() is None
        with pytest.raises(FolderNotConfiguredError, match="folder not configured"):
            configured_directory.require_handle()

    def test_no_handle(self, directory: DirectorySyncAdapter) -> None:
        """Test a missing handle is reported as None."""
        assert directory.current_handle() is None


class TestReconcile:
    """Tests for last-writer-wins reconciliation."""

    @pytest.fixture
    def local(self, clock) -> Document:
        return Document.empty(clock.now)

    def test_not_configured(self, directory: DirectorySyncAdapter, local: Document) -> None:
        """Test reconcile needs a folder."""
        with pytest.raises(FolderNotConfiguredError):
            directory.reconcile(local)

    def test_creates_file(self, configured_directory: DirectorySyncAdapter, folder: Path, local: Document) -> None:
        """Test a missing file is created from local data."""
        result = configured_directory.reconcile(local)

        assert result.outcome == ReconcileOutcome.FILE_CREATED
        assert read_remote(folder) == local
        assert (folder / "devedores.json").read_text(encoding="utf-8").startswith('{\n  "clientes"')

    def test_local_newer_overwrites_file(
        self, configured_directory: DirectorySyncAdapter, folder: Path, local: Document
    ) -> None:
        """Test the newer local document replaces the file."""
        write_remote(folder, Document.empty(local.settings.last_updated - timedelta(hours=1), owner="velho"))
        result = configured_directory.reconcile(local)

        assert result.outcome == ReconcileOutcome.LOCAL_WINS
        assert result.local_changed is False
        assert read_remote(folder) == local

    def test_file_newer_wins(self, configured_directory: DirectorySyncAdapter, folder: Path, local: Document) -> None:
        """Test the newer file is returned for adoption and left untouched."""
        remote = Document.empty(local.settings.last_updated + timedelta(hours=1), owner="outro")
        write_remote(folder, remote)
        before = (folder / "devedores.json").read_text(encoding="utf-8")
        result = configured_directory.reconcile(local)

        assert result.outcome == ReconcileOutcome.FILE_WINS
        assert result.local_changed is True
        assert result.document == remote
        assert (folder / "devedores.json").read_text(encoding="utf-8") == before

    def test_equal_timestamps_are_a_no_op(
        self, configured_directory: DirectorySyncAdapter, folder: Path, local: Document
    ) -> None:
        """Test equal stamps change nothing, even with different content."""
        write_remote(folder, Document.empty(local.settings.last_updated, owner="outro"))
        before = (folder / "devedores.json").read_text(encoding="utf-8")
        result = configured_directory.reconcile(local)

        assert result.outcome == ReconcileOutcome.IN_SYNC
        assert (folder / "devedores.json").read_text(encoding="utf-8") == before

    def test_unparseable_file(self, configured_directory: DirectorySyncAdapter, folder: Path, local: Document) -> None:
        """Test a corrupt sync file is an error, not a silent overwrite."""
        (folder / "devedores.json").write_text("{oops", encoding="utf-8")

        with pytest.raises(SyncError):
            configured_directory.reconcile(local)
        assert (folder / "devedores.json").read_text(encoding="utf-8") == "{oops"

    def test_undecodable_file(self, configured_directory: DirectorySyncAdapter, folder: Path, local: Document) -> None:
        """Test a sync file that is not UTF-8 is a sync error and stays untouched."""
        (folder / "devedores.json").write_bytes(b"\xff\xfe{garbage")

        with pytest.raises(SyncError):
            configured_directory.reconcile(local)
        assert (folder / "devedores.json").read_bytes() == b"\xff\xfe{garbage"

    def test_read_missing_file(self, folder: Path) -> None:
        """Test read_file returns None for an absent file."""
        directory = DirectorySyncAdapter(MemoryHandleStore())
        assert directory.read_file(DirectoryHandle(folder), "nada.json") is None


class TestBackup:
    """Tests for dated backups."""

    def test_backup_name(self, directory: DirectorySyncAdapter) -> None:
        """Test the backup file name format."""
        now = datetime(2024, 3, 7, 23, 59, tzinfo=timezone.utc)
        assert directory.backup_name(now) == "devedores_backup_20240307.json"

    def test_backup_writes_snapshot(self, configured_directory: DirectorySyncAdapter, folder: Path, clock) -> None:
        """Test a backup leaves the primary file alone."""
        local = Document.empty(clock.now)
        path = configured_directory.backup(local)

        assert path == folder / "devedores_backup_20240101.json"
        assert loads(path.read_text(encoding="utf-8")) == local
        assert not (folder / "devedores.json").exists()

    def test_backup_requires_folder(self, directory: DirectorySyncAdapter, clock) -> None:
        """Test backup fails without a configured folder."""
        with pytest.raises(FolderNotConfiguredError, match="folder not configured"):
            directory.backup(Document.empty(clock.now))
