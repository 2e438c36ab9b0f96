"""Tests for the MedStore record store."""
import pytest

from medfind import repository
from medfind.errors import StorageError
from medfind.models import Medicine
from medfind.repository import MedStore


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "medfind-db.json"


@pytest.fixture
def store(db_path):
    return MedStore(db_path)


def fields(med):
    return (med.name, med.compartment, med.barcode)


class TestCreate:
    """Tests for create."""

    def test_create_then_list(self, store):
        med = Medicine(id=None, name="Aspirin", compartment="A1", barcode="123")

        new_id = store.create(med)

        meds = store.list_all()
        assert len(meds) == 1
        assert meds[0].id == new_id
        assert fields(meds[0]) == fields(med)

    def test_ids_are_unique(self, store):
        first = store.create(Medicine(id=None, name="Aspirin", compartment="A1"))
        second = store.create(Medicine(id=None, name="Aspirin", compartment="A1"))

        assert first != second
        assert len(store.list_all()) == 2

    def test_id_on_input_is_ignored(self, store):
        store.create(Medicine(id=None, name="Aspirin", compartment="A1"))

        new_id = store.create(Medicine(id=1, name="Ibuprofen", compartment="B2"))

        assert new_id != 1
        assert store.get(1).name == "Aspirin"

    def test_ids_not_reused_after_delete(self, store):
        first = store.create(Medicine(id=None, name="Aspirin", compartment="A1"))
        store.delete_by_id(first)

        second = store.create(Medicine(id=None, name="Ibuprofen", compartment="B2"))

        assert second != first

    def test_write_failure_leaves_store_unchanged(self, store, monkeypatch):
        store.create(Medicine(id=None, name="Aspirin", compartment="A1"))

        def fail(*args, **kwargs):
            raise StorageError("disk full")

        monkeypatch.setattr(repository, "save_document", fail)

        with pytest.raises(StorageError):
            store.create(Medicine(id=None, name="Ibuprofen", compartment="B2"))
        assert [m.name for m in store.list_all()] == ["Aspirin"]


class TestUpdate:
    """Tests for update (upsert)."""

    def test_overwrites_existing(self, store):
        med_id = store.create(Medicine(id=None, name="Aspirin", compartment="A1"))

        store.update(Medicine(id=med_id, name="Aspirin 500", compartment="A2", barcode="42"))

        meds = store.list_all()
        assert len(meds) == 1
        assert meds[0].id == med_id
        assert fields(meds[0]) == ("Aspirin 500", "A2", "42")

    def test_inserts_when_absent(self, store):
        store.update(Medicine(id=10, name="Aspirin", compartment="A1"))

        assert store.get(10).name == "Aspirin"
        assert store.create(Medicine(id=None, name="Ibuprofen", compartment="B2")) > 10

    def test_requires_id(self, store):
        with pytest.raises(ValueError):
            store.update(Medicine(id=None, name="Aspirin", compartment="A1"))


class TestDelete:
    """Tests for delete_by_id and clear_all."""

    def test_delete_removes_record(self, store):
        keep = store.create(Medicine(id=None, name="Aspirin", compartment="A1"))
        gone = store.create(Medicine(id=None, name="Ibuprofen", compartment="B2"))

        store.delete_by_id(gone)

        assert [m.id for m in store.list_all()] == [keep]

    def test_delete_is_idempotent(self, store):
        med_id = store.create(Medicine(id=None, name="Aspirin", compartment="A1"))

        store.delete_by_id(med_id)
        store.delete_by_id(med_id)
        store.delete_by_id(999)

        assert store.list_all() == []

    def test_delete_accepts_string_id(self, store):
        med_id = store.create(Medicine(id=None, name="Aspirin", compartment="A1"))

        store.delete_by_id(str(med_id))

        assert store.get(med_id) is None

    def test_clear_all(self, store):
        for name in ("Aspirin", "Ibuprofen", "Paracetamol"):
            store.create(Medicine(id=None, name=name, compartment="A1"))

        store.clear_all()

        assert store.list_all() == []
        assert len(store) == 0


class TestReads:
    """Tests for get, list_all, find_by."""

    def test_find_by_secondary_fields(self, store):
        store.create(Medicine(id=None, name="Aspirin", compartment="A1", barcode="123"))
        store.create(Medicine(id=None, name="Aspirin", compartment="B2", barcode=""))
        store.create(Medicine(id=None, name="Ibuprofen", compartment="A1", barcode="123"))

        assert len(store.find_by("name", "Aspirin")) == 2
        assert {m.name for m in store.find_by("compartment", "A1")} == {"Aspirin", "Ibuprofen"}
        assert len(store.find_by("barcode", "123")) == 2
        assert store.find_by("name", "aspirin") == []

    def test_find_by_rejects_unknown_field(self, store):
        with pytest.raises(ValueError):
            store.find_by("id", "1")

    def test_list_all_returns_copies(self, store):
        store.create(Medicine(id=None, name="Aspirin", compartment="A1"))

        store.list_all()[0].name = "changed"

        assert store.list_all()[0].name == "Aspirin"

    def test_get_missing(self, store):
        assert store.get(1) is None


class TestPersistence:
    """Records survive reopening the store file."""

    def test_reopen(self, db_path):
        store = MedStore(db_path)
        med_id = store.create(Medicine(id=None, name="Ibuprofen, 200mg", compartment="B2", barcode='x"y'))
        store.create(Medicine(id=None, name="Aspirin", compartment="A1"))
        store.delete_by_id(med_id)

        reopened = MedStore(db_path)

        assert [m.name for m in reopened.list_all()] == ["Aspirin"]
        assert reopened.create(Medicine(id=None, name="New", compartment="C3")) == 3
