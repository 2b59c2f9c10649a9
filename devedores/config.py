"""Configuration management for devedores."""

import os
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path

from devedores.exceptions import ConfigurationError

ENV_PREFIX = "DEVEDORES_"


def _default_data_dir() -> Path:
    return Path.home() / ".devedores"


@dataclass
class StorageConfig:
    """Local durable storage configuration."""

    data_dir: Path = field(default_factory=_default_data_dir)
    storage_key: str = "devedores_dados"
    handle_store_file: str = "handles.json"
    quota_bytes: int | None = None

    @property
    def handle_store_path(self) -> Path:
        """Path of the file holding the persisted directory handle."""
        return self.data_dir / self.handle_store_file


@dataclass
class SyncConfig:
    """Directory synchronization configuration."""

    filename: str = "devedores.json"
    interval_seconds: float = 30.0
    sweep_interval_seconds: float = 3600.0


@dataclass
class EnvironmentConfig:
    """Execution context used to gate directory access."""

    directory_access: bool = True
    embedded: bool = False
    host: str = ""
    sandbox_hosts: tuple[str, ...] = ("lovable.app",)


@dataclass
class InterestConfig:
    """Defaults applied to new debts."""

    default_monthly_rate: Decimal = Decimal("3")
    default_grace_months: int = 2


@dataclass
class AppConfig:
    """Main configuration for devedores."""

    storage: StorageConfig = field(default_factory=StorageConfig)
    sync: SyncConfig = field(default_factory=SyncConfig)
    environment: EnvironmentConfig = field(default_factory=EnvironmentConfig)
    interest: InterestConfig = field(default_factory=InterestConfig)
    owner: str = ""
    version: str = "1.0.0"
    log_level: str = "INFO"
    log_format: str = "standard"
    seed: int | None = None

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Create config from environment variables."""
        storage = StorageConfig(
            data_dir=Path(_env("DATA_DIR", str(_default_data_dir()))).expanduser(),
            storage_key=_env("STORAGE_KEY", "devedores_dados"),
            handle_store_file=_env("HANDLE_STORE_FILE", "handles.json"),
            quota_bytes=_env_int("QUOTA_BYTES"),
        )

        sync = SyncConfig(
            filename=_env("SYNC_FILENAME", "devedores.json"),
            interval_seconds=_env_float("SYNC_INTERVAL", 30.0),
            sweep_interval_seconds=_env_float("SWEEP_INTERVAL", 3600.0),
        )

        sandbox_hosts = tuple(
            host.strip()
            for host in _env("SANDBOX_HOSTS", "lovable.app").split(",")
            if host.strip()
        )
        environment = EnvironmentConfig(
            directory_access=_env_bool("DIRECTORY_ACCESS", True),
            embedded=_env_bool("EMBEDDED", False),
            host=_env("HOST", ""),
            sandbox_hosts=sandbox_hosts,
        )

        try:
            default_rate = Decimal(_env("DEFAULT_RATE", "3"))
        except InvalidOperation as e:
            raise ConfigurationError(f"{ENV_PREFIX}DEFAULT_RATE is not a number") from e
        grace_months = _env_int("DEFAULT_GRACE_MONTHS")
        interest = InterestConfig(
            default_monthly_rate=default_rate,
            default_grace_months=2 if grace_months is None else grace_months,
        )

        return cls(
            storage=storage,
            sync=sync,
            environment=environment,
            interest=interest,
            owner=_env("OWNER", ""),
            log_level=_env("LOG_LEVEL", "INFO"),
            log_format=_env("LOG_FORMAT", "standard"),
            seed=_env_int("SEED"),
        )


def _env(name: str, default: str) -> str:
    return os.getenv(ENV_PREFIX + name, default)


def _env_int(name: str) -> int | None:
    raw = os.getenv(ENV_PREFIX + name)
    if raw is None or raw == "":
        return None
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigurationError(f"{ENV_PREFIX}{name} must be an integer, got {raw!r}") from e


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(ENV_PREFIX + name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ConfigurationError(f"{ENV_PREFIX}{name} must be a number, got {raw!r}") from e


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(ENV_PREFIX + name)
    if raw is None or raw == "":
        return default
    value = raw.strip().lower()
    if value in {"1", "true", "yes", "on"}:
        return True
    if value in {"0", "false", "no", "off"}:
        return False
    raise ConfigurationError(f"{ENV_PREFIX}{name} must be a boolean, got {raw!r}")
