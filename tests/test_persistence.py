"""Tests for PersistenceAdapter and the local media."""

from pathlib import Path

import pytest

from devedores.exceptions import QuotaExceededError, StorageWriteError
from devedores.models import Document
from devedores.storage.medium import FileMedium, MemoryMedium, atomic_write
from devedores.storage.persistence import DEFAULT_STORAGE_KEY, PersistenceAdapter
from devedores.storage.serialization import dumps, loads


class BrokenMedium(MemoryMedium):
    """Medium whose writes always fail."""

    def set_item(self, key: str, value: str) -> None:
        raise OSError("disk full")


class TestLoad:
    """Tests for PersistenceAdapter.load."""

    def test_seeds_default_document(self, medium: MemoryMedium, clock) -> None:
        """Test an empty medium gets a default document."""
        document = PersistenceAdapter(medium, clock=clock, owner="loja").load()

        assert document.clients == []
        assert document.settings.last_updated == clock.now
        assert document.settings.version == "1.0.0"
        assert document.settings.owner == "loja"
        assert loads(medium.get_item(DEFAULT_STORAGE_KEY)).settings.last_updated == clock.now

    @pytest.mark.parametrize("raw", ["{not json", "[]", '{"clientes": []}', '{"configuracoes": {}}'])
    def test_corrupt_value_falls_back(self, medium: MemoryMedium, clock, raw: str) -> None:
        """Test unreadable data is treated as no data."""
        medium.set_item(DEFAULT_STORAGE_KEY, raw)
        document = PersistenceAdapter(medium, clock=clock).load()

        assert document.clients == []
        assert document.settings.last_updated == clock.now

    def test_round_trips_saved_document(self, persistence: PersistenceAdapter, clock) -> None:
        """Test a saved document loads back unchanged."""
        document = Document.empty(clock.now)
        persistence.save(document)

        assert persistence.load() == document

    def test_seed_write_failure_is_not_raised(self, clock) -> None:
        """Test a failed default write still returns a usable document."""
        document = PersistenceAdapter(BrokenMedium(), clock=clock).load()
        assert document.clients == []

    def test_undecodable_file_falls_back(self, tmp_path: Path, clock) -> None:
        """Test a local file that is not UTF-8 is treated as no data."""
        (tmp_path / "devedores_dados.json").write_bytes(b"\xff\xfe{garbage")
        document = PersistenceAdapter(FileMedium(tmp_path), clock=clock).load()

        assert document.clients == []
        assert loads((tmp_path / "devedores_dados.json").read_text(encoding="utf-8")) == document


class TestSave:
    """Tests for PersistenceAdapter.save."""

    def test_touch_stamps_last_updated(self, persistence: PersistenceAdapter, clock) -> None:
        """Test saving stamps the current time."""
        document = Document.empty(clock.now)
        later = clock.advance(minutes=3)
        persistence.save(document)

        assert document.settings.last_updated == later

    def test_no_touch_keeps_stamp(self, persistence: PersistenceAdapter, clock) -> None:
        """Test touch=False preserves the incoming stamp."""
        document = Document.empty(clock.now)
        clock.advance(minutes=3)
        persistence.save(document, touch=False)

        assert persistence.load().settings.last_updated == document.settings.last_updated

    def test_write_failure_raises_fixed_message(self, clock) -> None:
        """Test write failures surface as StorageWriteError."""
        persistence = PersistenceAdapter(BrokenMedium(), clock=clock)
        with pytest.raises(StorageWriteError, match="^Unable to save local data$"):
            persistence.save(Document.empty(clock.now))

    def test_quota_exceeded(self, clock) -> None:
        """Test quota errors surface as StorageWriteError."""
        persistence = PersistenceAdapter(MemoryMedium(quota_bytes=10), clock=clock)
        with pytest.raises(StorageWriteError) as exc_info:
            persistence.save(Document.empty(clock.now))
        assert isinstance(exc_info.value.__cause__, QuotaExceededError)


class TestMedia:
    """Tests for the key-value media."""

    def test_memory_medium(self) -> None:
        """Test get/set/remove."""
        medium = MemoryMedium()
        assert medium.get_item("k") is None
        medium.set_item("k", "v")
        assert medium.get_item("k") == "v"
        medium.remove_item("k")
        assert medium.get_item("k") is None

    def test_memory_quota_ignores_replaced_value(self) -> None:
        """Test the quota counts the new value instead of the one it replaces."""
        medium = MemoryMedium(quota_bytes=5)
        medium.set_item("k", "12345")
        medium.set_item("k", "54321")
        with pytest.raises(QuotaExceededError):
            medium.set_item("other", "x")

    def test_file_medium(self, tmp_path: Path) -> None:
        """Test values are stored as JSON files."""
        medium = FileMedium(tmp_path / "data")
        medium.set_item("devedores_dados", "{}")

        assert (tmp_path / "data" / "devedores_dados.json").read_text(encoding="utf-8") == "{}"
        assert medium.get_item("devedores_dados") == "{}"
        medium.remove_item("devedores_dados")
        assert medium.get_item("devedores_dados") is None

    def test_file_medium_quota(self, tmp_path: Path) -> None:
        """Test the file medium enforces its quota."""
        medium = FileMedium(tmp_path, quota_bytes=2)
        with pytest.raises(QuotaExceededError):
            medium.set_item("k", "too long")
        assert not (tmp_path / "k.json").exists()

    def test_atomic_write_leaves_no_temp_files(self, tmp_path: Path, clock) -> None:
        """Test the temp file is renamed over the target."""
        target = tmp_path / "devedores.json"
        target.write_text("old", encoding="utf-8")
        atomic_write(target, dumps(Document.empty(clock.now)).encode("utf-8"))

        assert [p.name for p in tmp_path.iterdir()] == ["devedores.json"]
        assert loads(target.read_text(encoding="utf-8")).settings.last_updated == clock.now

    def test_file_backed_persistence(self, tmp_path: Path, clock) -> None:
        """Test the adapter works over a file medium."""
        persistence = PersistenceAdapter(FileMedium(tmp_path), clock=clock)
        document = persistence.load()

        assert (tmp_path / "devedores_dados.json").exists()
        assert PersistenceAdapter(FileMedium(tmp_path), clock=clock).load() == document
