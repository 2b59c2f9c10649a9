"""Tests for wiring components from configuration."""

from decimal import Decimal
from pathlib import Path

from devedores.app import build_coordinator, build_directory, build_store
from devedores.config import AppConfig, EnvironmentConfig, InterestConfig, StorageConfig, SyncConfig


def make_config(tmp_path: Path, **overrides) -> AppConfig:
    return AppConfig(
        storage=StorageConfig(data_dir=tmp_path / "data"),
        sync=SyncConfig(filename="dados.json", interval_seconds=7, sweep_interval_seconds=70),
        interest=InterestConfig(default_monthly_rate=Decimal("4"), default_grace_months=1),
        owner="loja",
        **overrides,
    )


class TestBuild:
    """Tests for the build helpers."""

    def test_build_store(self, tmp_path: Path) -> None:
        """Test the store persists under the data directory with configured defaults."""
        store = build_store(make_config(tmp_path))
        client = store.create_client(name="Ana", tax_id="", phone="")
        debt = store.create_debt(client.client_id, "100", "2030-01-01")

        assert (tmp_path / "data" / "devedores_dados.json").exists()
        assert store.snapshot().settings.owner == "loja"
        assert debt.monthly_rate == Decimal("4")
        assert debt.grace_months == 1
        assert build_store(make_config(tmp_path)).get_client(client.client_id) is not None

    def test_build_directory(self, tmp_path: Path) -> None:
        """Test the adapter uses the configured file name and environment."""
        config = make_config(tmp_path, environment=EnvironmentConfig(host="app.lovable.app"))
        directory = build_directory(config)

        assert directory.filename == "dados.json"
        assert directory.available is False
        assert directory.handles.path == tmp_path / "data" / "handles.json"

    def test_build_coordinator_and_sync(self, tmp_path: Path) -> None:
        """Test a configured folder receives the synced file."""
        folder = tmp_path / "sync"
        folder.mkdir()
        coordinator = build_coordinator(make_config(tmp_path), picker=lambda: folder)
        try:
            coordinator.store.create_client(name="Ana", tax_id="", phone="")
            coordinator.configure_folder()

            assert coordinator.sync_interval == 7
            assert coordinator.sweep_interval == 70
            assert (folder / "dados.json").exists()
            assert coordinator.status.connected is True
        finally:
            coordinator.shutdown()
