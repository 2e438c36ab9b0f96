"""
Design (repository.py)
- Purpose: Encapsulate the record store behind a tiny API (and a lock), so the UI and the
           scanner don't touch the on-disk document directly.
- Inputs: Medicine objects and ids.
- Outputs: Copies of stored Medicine records; assigned ids.
- Side effects: Every mutation rewrites the JSON document via storage.save_document.
- Thread-safety: All methods take the internal lock; reads return copies.
"""

import logging
import threading
from dataclasses import replace
from pathlib import Path
from typing import Dict, List

from .config import INDEXED_FIELDS
from .models import Medicine
from .storage import load_document, save_document

logger = logging.getLogger(__name__)


class MedStore:
    """
    Design (MedStore)
    - State:
        _meds: {id -> Medicine}
        _next_id: next id to hand out; never decreases, so ids are never reused
        _path: JSON document backing the store
        _lock: threading.Lock to protect all mutating/reading operations
    - Failure model: a mutation is applied to a copy, persisted, then swapped in.
      If persisting raises StorageError the in-memory state is left untouched.
    """

    def __init__(self, path: Path) -> None:
        self._lock = threading.Lock()
        self._path = Path(path)
        self._next_id, meds = load_document(self._path)
        self._meds: Dict[int, Medicine] = {m.id: m for m in meds}
        logger.info("Opened store %s (%d records)", self._path, len(self._meds))

    @property
    def path(self) -> Path:
        return self._path

    # -------- CRUD --------

    def create(self, med: Medicine) -> int:
        """
        Purpose: Persist a new record under a freshly assigned id.
        Inputs: med (any id on it is ignored)
        Outputs: The assigned id.
        Side effects: Writes the store document; raises StorageError on write failure.
        Thread-safety: Protected by _lock.
        """
        with self._lock:
            new_id = self._next_id
            meds = dict(self._meds)
            meds[new_id] = med.with_id(new_id)
            self._commit(meds, new_id + 1)
        logger.info("Created record %d (%s)", new_id, med.name)
        return new_id

    def update(self, med: Medicine) -> None:
        """
        Purpose: Overwrite the record at med.id, or insert it if absent (upsert).
        Inputs: med with id set.
        Side effects: Writes the store document; raises StorageError on write failure.
        Thread-safety: Protected by _lock.
        """
        if med.id is None:
            raise ValueError("update() requires a record with an id")
        med_id = int(med.id)
        with self._lock:
            meds = dict(self._meds)
            meds[med_id] = replace(med, id=med_id)
            self._commit(meds, max(self._next_id, med_id + 1))
        logger.info("Updated record %d (%s)", med_id, med.name)

    def delete_by_id(self, med_id) -> None:
        """
        Purpose: Remove a record. Unknown ids are not an error.
        Inputs: med_id (int or int-like string)
        Side effects: Writes the store document when something was removed.
        Thread-safety: Protected by _lock.
        """
        med_id = int(med_id)
        with self._lock:
            if med_id not in self._meds:
                return
            meds = dict(self._meds)
            meds.pop(med_id)
            self._commit(meds, self._next_id)
        logger.info("Deleted record %d", med_id)

    def clear_all(self) -> None:
        """
        Purpose: Remove every record (irreversible). The id counter is kept.
        Side effects: Writes the store document.
        Thread-safety: Protected by _lock.
        """
        with self._lock:
            count = len(self._meds)
            self._commit({}, self._next_id)
        logger.info("Cleared store (%d records removed)", count)

    # -------- Reads --------

    def get(self, med_id) -> Medicine | None:
        with self._lock:
            med = self._meds.get(int(med_id))
            return replace(med) if med else None

    def list_all(self) -> List[Medicine]:
        """Every stored record, order unspecified (callers sort for display)."""
        with self._lock:
            return [replace(m) for m in self._meds.values()]

    def find_by(self, field: str, value: str) -> List[Medicine]:
        """
        Purpose: Exact-match lookup on a secondary field (name, compartment, barcode).
        Outputs: Matching records (possibly several; no field is unique).
        """
        if field not in INDEXED_FIELDS:
            raise ValueError(f"Unsupported lookup field '{field}'. Supported: {INDEXED_FIELDS}")
        with self._lock:
            return [replace(m) for m in self._meds.values() if getattr(m, field) == value]

    def __len__(self) -> int:
        with self._lock:
            return len(self._meds)

    # -------- internal --------

    def _commit(self, meds: Dict[int, Medicine], next_id: int) -> None:
        # caller holds _lock
        save_document(self._path, next_id, list(meds.values()))
        self._meds = meds
        self._next_id = next_id
