"""Wire the store, persistence and sync components from configuration."""

from devedores.config import AppConfig
from devedores.storage.directory import DirectorySyncAdapter, FolderPicker, unsupported_picker
from devedores.storage.handles import Environment, FileHandleStore
from devedores.storage.medium import FileMedium
from devedores.storage.persistence import PersistenceAdapter
from devedores.store.records import RecordStore
from devedores.sync.coordinator import SyncCoordinator


def build_store(config: AppConfig) -> RecordStore:
    """Record store persisted under ``config.storage.data_dir``."""
    medium = FileMedium(config.storage.data_dir, quota_bytes=config.storage.quota_bytes)
    persistence = PersistenceAdapter(
        medium,
        key=config.storage.storage_key,
        version=config.version,
        owner=config.owner,
    )
    return RecordStore(
        persistence,
        default_monthly_rate=config.interest.default_monthly_rate,
        default_grace_months=config.interest.default_grace_months,
    )


def build_directory(config: AppConfig, picker: FolderPicker = unsupported_picker) -> DirectorySyncAdapter:
    return DirectorySyncAdapter(
        FileHandleStore(config.storage.handle_store_path),
        environment=Environment.from_config(config.environment),
        picker=picker,
        filename=config.sync.filename,
    )


def build_coordinator(
    config: AppConfig,
    picker: FolderPicker = unsupported_picker,
    store: RecordStore | None = None,
) -> SyncCoordinator:
    """Coordinator over a file-backed store and the configured sync folder."""
    return SyncCoordinator(
        store or build_store(config),
        build_directory(config, picker),
        sync_interval=config.sync.interval_seconds,
        sweep_interval=config.sync.sweep_interval_seconds,
    )
