"""
Record store for history, fraud reports and users.
- Opaque JSON records grouped by scope ("history", "fraud_reports", "users").
- get / set / append, plus find_or_append for keyed check-and-insert; callers own the record shape.
- Backend: JSON file (data/records.json) by default, in-memory with RECORD_STORE=memory.
"""
import copy
import json
import logging
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from core.config import get_record_store_backend, get_records_path
from core.errors import RecordStoreError

logger = logging.getLogger(__name__)


class RecordStore:
    """Interface. Records are returned as copies; mutating them does not touch the store."""

    def get(self, scope: str) -> List[Dict[str, Any]]:
        raise NotImplementedError

    def set(self, scope: str, records: List[Dict[str, Any]]) -> None:
        raise NotImplementedError

    def append(self, scope: str, record: Dict[str, Any]) -> Dict[str, Any]:
        raise NotImplementedError

    def find_or_append(self, scope: str, record: Dict[str, Any], key: str) -> Tuple[Dict[str, Any], bool]:
        """
        Atomic check-and-insert on record[key]. Returns (stored_record, created);
        an existing record with the same key value is returned unchanged.
        """
        raise NotImplementedError


def _find(records: List[Dict[str, Any]], key: str, value: Any) -> Optional[Dict[str, Any]]:
    for existing in records:
        if existing.get(key) == value:
            return existing
    return None


class InMemoryRecordStore(RecordStore):
    def __init__(self):
        self._data: Dict[str, List[Dict[str, Any]]] = {}
        self._lock = threading.Lock()

    def get(self, scope: str) -> List[Dict[str, Any]]:
        with self._lock:
            return copy.deepcopy(self._data.get(scope, []))

    def set(self, scope: str, records: List[Dict[str, Any]]) -> None:
        with self._lock:
            self._data[scope] = copy.deepcopy(list(records))

    def append(self, scope: str, record: Dict[str, Any]) -> Dict[str, Any]:
        with self._lock:
            self._data.setdefault(scope, []).append(copy.deepcopy(record))
        return record

    def find_or_append(self, scope: str, record: Dict[str, Any], key: str) -> Tuple[Dict[str, Any], bool]:
        with self._lock:
            records = self._data.setdefault(scope, [])
            existing = _find(records, key, record.get(key))
            if existing is not None:
                return copy.deepcopy(existing), False
            records.append(copy.deepcopy(record))
        return record, True


class JsonFileRecordStore(RecordStore):
    """Whole-file JSON: {scope: [record, ...]}. File created on first write."""

    def __init__(self, path: Optional[Path] = None):
        self._path = Path(path) if path else get_records_path()
        self._lock = threading.Lock()

    def _load_all(self, strict: bool = False) -> dict:
        """
        Reads see a damaged file as empty. Writes load with strict=True and
        raise RecordStoreError instead, so the damaged file is left in place.
        """
        if not self._path.exists():
            return {}
        try:
            with open(self._path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            if strict:
                logger.error("RECORD_STORE write refused, unreadable file %s: %s", self._path, e)
                raise RecordStoreError(f"records file {self._path} is unreadable: {e}") from e
            logger.warning("Failed to load records from %s: %s", self._path, e)
            return {}
        if not isinstance(data, dict):
            if strict:
                logger.error("RECORD_STORE write refused, %s is not a JSON object", self._path)
                raise RecordStoreError(f"records file {self._path} is not a JSON object")
            logger.warning("Records file %s is not a JSON object; ignoring", self._path)
            return {}
        return data

    def _save_all(self, data: dict) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        tmp.replace(self._path)

    def get(self, scope: str) -> List[Dict[str, Any]]:
        with self._lock:
            return list(self._load_all().get(scope, []))

    def set(self, scope: str, records: List[Dict[str, Any]]) -> None:
        with self._lock:
            data = self._load_all(strict=True)
            data[scope] = list(records)
            self._save_all(data)

    def append(self, scope: str, record: Dict[str, Any]) -> Dict[str, Any]:
        with self._lock:
            data = self._load_all(strict=True)
            data.setdefault(scope, []).append(record)
            self._save_all(data)
        logger.info("RECORD_APPEND scope=%s id=%s path=%s", scope, record.get("id"), self._path)
        return record

    def find_or_append(self, scope: str, record: Dict[str, Any], key: str) -> Tuple[Dict[str, Any], bool]:
        with self._lock:
            data = self._load_all(strict=True)
            records = data.setdefault(scope, [])
            existing = _find(records, key, record.get(key))
            if existing is not None:
                return existing, False
            records.append(record)
            self._save_all(data)
        logger.info("RECORD_APPEND scope=%s id=%s path=%s", scope, record.get("id"), self._path)
        return record, True


def get_default_store() -> RecordStore:
    backend = get_record_store_backend()
    if backend == "memory":
        logger.info("RECORD_STORE backend=memory (records are not persisted)")
        return InMemoryRecordStore()
    if backend != "json":
        logger.warning("RECORD_STORE=%s not recognized; using json", backend)
    return JsonFileRecordStore()
