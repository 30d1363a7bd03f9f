"""JSON-file farmer profile store.

One ``<farmer_id>.json`` per farmer under PROFILES_DIR.  Writes go to a
temporary file in the same directory and are swapped in with
``os.replace()``, so readers never see a half-written record.  A
per-farmer lock serializes read-modify-write cycles from concurrent
uploads; lock entries are reference-counted and dropped when idle.

A record that fails to parse reads as missing.  The next update moves it
aside to ``<farmer_id>.json.corrupt`` before writing a fresh one.

Only the extraction-owned keys (``documents``, ``profile``,
``name_verification_status``) are rewritten by the KYC pipeline; anything
else in the record (account metadata written by other services) is
carried over untouched.
"""

import json
import logging
import os
import re
import tempfile
import threading
import time
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Callable

from app.config import PROFILES_DIR

logger = logging.getLogger(__name__)

_FARMER_ID_RE = re.compile(r'^[A-Za-z0-9_-]{1,64}$')
_TMP_PREFIX = "prof_"
_TMP_SUFFIX = ".tmp"
_CORRUPT_SUFFIX = ".corrupt"


def validate_farmer_id(farmer_id: str) -> str:
    """Return ``farmer_id`` if safe to use as a filename, else raise ValueError."""
    if not isinstance(farmer_id, str) or not _FARMER_ID_RE.match(farmer_id):
        raise ValueError(f"Invalid farmer id: {farmer_id!r}")
    return farmer_id


class ProfileStore:
    """Persists farmer KYC records as JSON documents."""

    def __init__(self, root: str | Path = PROFILES_DIR):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)
        self._locks: dict[str, list] = {}   # farmer_id -> [Lock, users]
        self._locks_guard = threading.Lock()

    def _path(self, farmer_id: str) -> Path:
        return self.root / f"{validate_farmer_id(farmer_id)}.json"

    @contextmanager
    def _locked(self, farmer_id: str):
        """Hold the per-farmer lock; drop its entry once nobody holds or waits on it."""
        with self._locks_guard:
            entry = self._locks.setdefault(farmer_id, [threading.Lock(), 0])
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._locks_guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[farmer_id]

    @staticmethod
    def _read(path: Path) -> dict:
        record = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(record, dict):
            raise ValueError(f"expected a JSON object, got {type(record).__name__}")
        return record

    # ── Basic I/O ──

    def load(self, farmer_id: str) -> dict | None:
        path = self._path(farmer_id)
        if not path.exists():
            return None
        try:
            return self._read(path)
        except ValueError as e:
            logger.warning(f"Unreadable profile {farmer_id}: {e}")
            return None

    def save(self, record: dict):
        """Persist ``record`` atomically (temp file + os.replace)."""
        path = self._path(record["farmer_id"])
        data = json.dumps(record, indent=2, default=str, ensure_ascii=False)
        fd, tmp_path = tempfile.mkstemp(
            dir=str(self.root), suffix=_TMP_SUFFIX, prefix=_TMP_PREFIX
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as tmp:
                tmp.write(data)
            os.replace(tmp_path, str(path))
        except BaseException:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise

    def delete(self, farmer_id: str) -> bool:
        path = self._path(farmer_id)
        with self._locked(farmer_id):
            if not path.exists():
                return False
            path.unlink()
        logger.info(f"Deleted profile {farmer_id}")
        return True

    # ── Read-modify-write ──

    def update(self, farmer_id: str, mutate: Callable[[dict], None]) -> dict:
        """Load (or create) a record, apply ``mutate`` in place, save it.

        Returns the saved record.
        """
        validate_farmer_id(farmer_id)
        with self._locked(farmer_id):
            now = datetime.now().isoformat()
            record = self._load_or_quarantine(farmer_id) or {
                "farmer_id": farmer_id,
                "created_at": now,
                "documents": {},
            }
            record.setdefault("documents", {})
            mutate(record)
            record["farmer_id"] = farmer_id
            record["updated_at"] = now
            self.save(record)
        return record

    def _load_or_quarantine(self, farmer_id: str) -> dict | None:
        path = self._path(farmer_id)
        if not path.exists():
            return None
        try:
            return self._read(path)
        except ValueError as e:
            aside = path.with_name(path.name + _CORRUPT_SUFFIX)
            os.replace(str(path), str(aside))
            logger.warning(f"Moved unreadable profile {farmer_id} to {aside.name}: {e}")
            return None

    # ── Maintenance ──

    def cleanup_stale_temp_files(self, max_age_seconds: int) -> int:
        """Remove atomic-write leftovers older than ``max_age_seconds``."""
        now = time.time()
        removed = 0
        for f in self.root.glob(f"{_TMP_PREFIX}*{_TMP_SUFFIX}"):
            try:
                if now - f.stat().st_mtime > max_age_seconds:
                    f.unlink(missing_ok=True)
                    removed += 1
            except OSError:
                pass
        return removed
