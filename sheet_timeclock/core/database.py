import copy
import json
import logging
import os
import tempfile
import threading
import uuid
from contextlib import contextmanager, suppress
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, List, Optional

from sheet_timeclock.core.config import ServerConfig
from sheet_timeclock.core.errors import StoreError
from sheet_timeclock.models.common import Employee

logger = logging.getLogger(__name__)

EMPLOYEES = "employees"
DOCUMENTS = "documents"
HISTORY = "history"
COLLECTIONS = (EMPLOYEES, DOCUMENTS, HISTORY)

class RecordStore:
    """Flat JSON collections, each one file rewritten in full on every write.

    Each collection has a single writer lock. A read-modify-write through
    ``update()`` holds it for the whole cycle, and files are swapped in with
    ``os.replace`` so readers never see a half-written collection.
    """

    def __init__(self, data_dir):
        self.data_dir = Path(data_dir)
        self._locks = {name: threading.RLock() for name in COLLECTIONS}

    def _path(self, collection: str) -> Path:
        if collection not in self._locks:
            raise StoreError(f"Unknown collection '{collection}'")
        return self.data_dir / f"{collection}.json"

    def _read(self, path: Path) -> List[dict]:
        try:
            with open(path, encoding="utf-8") as f:
                records = json.load(f)
        except FileNotFoundError:
            # First access initialises the collection
            self._write(path, [])
            return []
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to read collection file {path}: {e}")
            raise StoreError(f"Unable to read {path.stem}") from e
        
        if not isinstance(records, list):
            logger.error(f"Collection file {path} does not hold a list")
            raise StoreError(f"Corrupt collection {path.stem}")
        return records

    def _write(self, path: Path, records: List[dict]):
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=self.data_dir, prefix=f".{path.stem}-", suffix=".tmp")
        except OSError as e:
            logger.error(f"Failed to prepare write for {path}: {e}")
            raise StoreError(f"Unable to write {path.stem}") from e
        
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(records, f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, path)
        except (OSError, TypeError, ValueError) as e:
            with suppress(OSError):
                os.unlink(tmp_path)
            logger.error(f"Failed to write collection file {path}: {e}")
            raise StoreError(f"Unable to write {path.stem}") from e

    def load(self, collection: str) -> List[dict]:
        path = self._path(collection)
        with self._locks[collection]:
            return self._read(path)

    def save(self, collection: str, records: List[dict]):
        path = self._path(collection)
        with self._locks[collection]:
            self._write(path, list(records))

    @contextmanager
    def update(self, collection: str) -> Iterator[List[dict]]:
        """Read-modify-write a whole collection under its writer lock.

        The yielded list is written back when the block exits cleanly and
        its content changed. An exception inside the block leaves the file
        untouched.
        """
        path = self._path(collection)
        with self._locks[collection]:
            records = self._read(path)
            snapshot = copy.deepcopy(records)
            yield records
            if records != snapshot:
                self._write(path, records)

    def init_collections(self):
        for name in COLLECTIONS:
            self.load(name)

    def health(self) -> dict:
        return {name: len(self.load(name)) for name in COLLECTIONS}

_store: Optional[RecordStore] = None

def init_store(data_dir=None) -> RecordStore:
    global _store
    _store = RecordStore(data_dir or ServerConfig.DATA_DIR)
    _store.init_collections()
    logger.info(f"Record store initialized at {_store.data_dir}")
    return _store

def get_store() -> RecordStore:
    if _store is None:
        return init_store()
    return _store

def seed_admin(store: RecordStore) -> Optional[Employee]:
    """Add the configured admin account if it is not on file yet"""
    if not ServerConfig.ADMIN_EMAIL:
        logger.warning("ADMIN_EMAIL is not set - no admin account will be seeded")
        return None
    
    with store.update(EMPLOYEES) as employees:
        admin_email = ServerConfig.ADMIN_EMAIL.strip().lower()
        if any((emp.get("email") or "").lower() == admin_email for emp in employees):
            logger.info(f"Admin account {ServerConfig.ADMIN_EMAIL} already present")
            return None
        
        admin = Employee(
            id=uuid.uuid4().hex,
            name=ServerConfig.ADMIN_NAME,
            email=admin_email,
            password_hash=None,
            hourly_rate=ServerConfig.ADMIN_HOURLY_RATE,
            created_at=datetime.now(timezone.utc),
            is_admin=True,
        )
        employees.append(admin.model_dump(mode="json"))
    
    logger.info(f"Seeded admin account {admin.email}")
    return admin
