"""Tests for the JSON store document."""
import json
import sys
from pathlib import Path

import pytest

from medfind import storage
from medfind.errors import StorageError
from medfind.models import Medicine
from medfind.storage import get_data_dir, get_db_path, load_document, save_document


def test_missing_file_is_empty_store(tmp_path):
    assert load_document(tmp_path / "medfind-db.json") == (1, [])


def test_save_then_load(tmp_path):
    path = tmp_path / "medfind-db.json"
    meds = [
        Medicine(id=3, name="Aspirin", compartment="A1", barcode="123"),
        Medicine(id=5, name="Ibuprofen", compartment="B2"),
    ]

    save_document(path, 6, meds)
    next_id, loaded = load_document(path)

    assert next_id == 6
    assert loaded == meds
    assert not (tmp_path / "medfind-db.json.tmp").exists()


def test_next_id_never_below_highest_id(tmp_path):
    path = tmp_path / "medfind-db.json"
    path.write_text(json.dumps({"next_id": 1, "meds": [{"id": 7, "name": "A", "compartment": "B"}]}))

    next_id, _ = load_document(path)

    assert next_id == 8


def test_malformed_records_are_skipped(tmp_path):
    path = tmp_path / "medfind-db.json"
    path.write_text(json.dumps({
        "next_id": 4,
        "meds": [
            {"id": 1, "name": "Aspirin", "compartment": "A1"},
            {"name": "no id", "compartment": "A1"},
            {"id": "abc", "name": "bad id", "compartment": "A1"},
            "not a record",
        ],
    }))

    _, meds = load_document(path)

    assert [m.name for m in meds] == ["Aspirin"]
    assert meds[0].barcode == ""


def test_corrupt_file_raises(tmp_path):
    path = tmp_path / "medfind-db.json"
    path.write_text("{not json")

    with pytest.raises(StorageError):
        load_document(path)


def test_unexpected_layout_raises(tmp_path):
    path = tmp_path / "medfind-db.json"
    path.write_text(json.dumps([{"id": 1}]))

    with pytest.raises(StorageError):
        load_document(path)


def test_save_failure_raises(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("x")

    with pytest.raises(StorageError):
        save_document(blocker / "medfind-db.json", 1, [])


def test_db_path_uses_xdg_data_home(tmp_path, monkeypatch):
    monkeypatch.setattr(sys, "platform", "linux")
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "share"))

    path = get_db_path()

    assert path == tmp_path / "share" / "MedFind" / "medfind-db.json"
    assert path.parent.is_dir()


def test_db_path_defaults_to_local_share(tmp_path, monkeypatch):
    monkeypatch.setattr(sys, "platform", "linux")
    monkeypatch.delenv("XDG_DATA_HOME", raising=False)
    monkeypatch.setattr(Path, "home", lambda: tmp_path)

    assert get_db_path() == tmp_path / ".local" / "share" / "MedFind" / "medfind-db.json"


def test_db_path_uses_appdata_on_windows(tmp_path, monkeypatch):
    monkeypatch.setattr(sys, "platform", "win32")
    monkeypatch.setenv("APPDATA", str(tmp_path))

    assert get_data_dir() == tmp_path / "MedFind"


def test_db_path_never_inside_the_package(tmp_path, monkeypatch):
    monkeypatch.setattr(sys, "platform", "linux")
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path))
    package_dir = Path(storage.__file__).resolve().parent

    assert package_dir not in get_db_path().resolve().parents


def test_db_path_unwritable_raises(tmp_path, monkeypatch):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("", encoding="utf-8")
    monkeypatch.setattr(sys, "platform", "linux")
    monkeypatch.setenv("XDG_DATA_HOME", str(blocker))

    with pytest.raises(StorageError):
        get_db_path()
