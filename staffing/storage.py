from __future__ import annotations
import json
from pathlib import Path
from typing import Any, Dict, Generic, Iterable, List, Protocol, Type, TypeVar

from pydantic import TypeAdapter

from .errors import NotFoundError, PersistenceError
from .logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class KeyValueStore(Protocol):
    def get(self, key: str) -> Any | None:
        ...

    def set(self, key: str, value: Any) -> bool:
        ...


class JsonFileStore:
    """Every key lives in one JSON document, rewritten on each ``set``."""

    def __init__(self, path: Path, prefix: str = "") -> None:
        self.path = path
        self.prefix = prefix
        self.values: Dict[str, Any] = {}
        if path.exists():
            self.load()

    def load(self) -> None:
        self.values = json.loads(self.path.read_text())

    def save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(self.values, indent=2))

    def get(self, key: str) -> Any | None:
        value = self.values.get(f"{self.prefix}{key}")
        # callers get their own copy, never the cached document
        return json.loads(json.dumps(value)) if value is not None else None

    def set(self, key: str, value: Any) -> bool:
        prefixed = f"{self.prefix}{key}"
        previous = self.values.get(prefixed)
        self.values[prefixed] = json.loads(json.dumps(value))
        try:
            self.save()
        except OSError as exc:
            if previous is None:
                self.values.pop(prefixed, None)
            else:
                self.values[prefixed] = previous
            logger.error("store_write_failed", key=prefixed, error=str(exc))
            return False
        return True

    def keys(self) -> List[str]:
        return [key[len(self.prefix):] for key in self.values if key.startswith(self.prefix)]


class MemoryStore:
    def __init__(self, prefix: str = "") -> None:
        self.prefix = prefix
        self.values: Dict[str, str] = {}

    def get(self, key: str) -> Any | None:
        raw = self.values.get(f"{self.prefix}{key}")
        return json.loads(raw) if raw is not None else None

    def set(self, key: str, value: Any) -> bool:
        self.values[f"{self.prefix}{key}"] = json.dumps(value)
        return True

    def keys(self) -> List[str]:
        return [key[len(self.prefix):] for key in self.values if key.startswith(self.prefix)]


class Collection(Generic[T]):
    """A JSON array of records stored whole under a single key."""

    def __init__(self, store: KeyValueStore, key: str, record_type: Type[T], entity: str) -> None:
        self.store = store
        self.key = key
        self.entity = entity
        self.adapter = TypeAdapter(List[record_type])

    def all(self) -> List[T]:
        return self.adapter.validate_python(self.store.get(self.key) or [])

    def get(self, record_id: str) -> T:
        for record in self.all():
            if record.id == record_id:
                return record
        raise NotFoundError(self.entity, record_id)

    def get_many(self, record_ids: Iterable[str]) -> Dict[str, T]:
        wanted = set(record_ids)
        if not wanted:
            return {}
        return {record.id: record for record in self.all() if record.id in wanted}

    def put(self, record: T) -> T:
        records = [r for r in self.all() if r.id != record.id]
        records.append(record)
        self.replace_all(records)
        return record

    def replace_all(self, records: Iterable[T]) -> None:
        payload = self.adapter.dump_python(list(records), mode="json")
        if not self.store.set(self.key, payload):
            raise PersistenceError(f"Could not write {self.key}")
