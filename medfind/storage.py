"""
Design (storage.py)
- Purpose: Load and save the medicine store document to/from disk (JSON).
- Inputs: Path (from get_db_path(), inside the per-user data dir), next id counter
          and list of Medicine for save.
- Outputs: (next_id, list[Medicine]) on load; None on save.
- Side effects: Reads/writes file. Missing file loads as empty; any read or write
                failure raises StorageError.
- Thread-safety: Not locked; MedStore serializes calls under its own lock.
"""

import json
import logging
import os
import sys
from pathlib import Path
from typing import List, Tuple

from .config import DATA_DIR_NAME, DB_FILENAME
from .errors import StorageError
from .models import Medicine

logger = logging.getLogger(__name__)


def get_data_dir() -> Path:
    """
    Per-user directory for the store document.
    - Windows: %APPDATA%/MedFind
    - macOS: ~/Library/Application Support/MedFind
    - elsewhere: $XDG_DATA_HOME/MedFind (default ~/.local/share/MedFind)
    A frozen portable build with no %APPDATA% keeps its data next to the executable.
    """
    if sys.platform == "win32":
        appdata = os.environ.get("APPDATA")
        if appdata:
            return Path(appdata) / DATA_DIR_NAME
        if getattr(sys, "frozen", False):
            return Path(sys.executable).parent
        return Path.home() / "AppData" / "Roaming" / DATA_DIR_NAME
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / DATA_DIR_NAME
    xdg = os.environ.get("XDG_DATA_HOME")
    base = Path(xdg) if xdg else Path.home() / ".local" / "share"
    return base / DATA_DIR_NAME


def get_db_path() -> Path:
    """
    Resolve path for medfind-db.json inside get_data_dir(), creating the directory.
    Raises StorageError if the directory cannot be created.
    """
    base = get_data_dir()
    try:
        base.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise StorageError(f"Cannot create data directory {base}: {e}") from e
    return base / DB_FILENAME


def load_document(path: Path) -> Tuple[int, List[Medicine]]:
    """
    Load (next_id, meds) from the JSON file. A missing file is an empty store.
    Raises StorageError if the file cannot be read or is not a store document.
    """
    if not path.exists():
        return 1, []
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise StorageError(f"Unable to open store {path}: {e}") from e
    if not isinstance(data, dict) or not isinstance(data.get("meds"), list):
        raise StorageError(f"Unable to open store {path}: unexpected document layout")

    meds: List[Medicine] = []
    for item in data["meds"]:
        if not isinstance(item, dict) or item.get("id") is None:
            logger.warning("Skipping malformed record in %s: %r", path, item)
            continue
        try:
            meds.append(Medicine.from_dict(item))
        except (TypeError, ValueError):
            logger.warning("Skipping malformed record in %s: %r", path, item)
            continue

    highest = max((m.id for m in meds), default=0)
    try:
        next_id = int(data.get("next_id", highest + 1))
    except (TypeError, ValueError):
        next_id = highest + 1
    return max(next_id, highest + 1), meds


def save_document(path: Path, next_id: int, meds: List[Medicine]) -> None:
    """
    Save the whole store to the JSON file. Writes a sibling temp file and swaps it
    in, so a failed write leaves the previous file intact. Raises StorageError.
    """
    data = {
        "next_id": next_id,
        "meds": [m.to_dict() for m in meds],
    }
    tmp = path.with_name(path.name + ".tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
        os.replace(tmp, path)
    except OSError as e:
        raise StorageError(f"Unable to write store {path}: {e}") from e
