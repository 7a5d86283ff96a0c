"""
Storage Backend Module

Provides abstract storage interface and implementations for in-memory (testing),
SQLite (embedded database) and JSON files (one document per table, the way the
browser demo kept each collection under one local-storage key). All monetary
values stored as Decimal strings.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Any, Union, Iterator
from decimal import Decimal
from datetime import datetime
from enum import Enum
import os
import sqlite3
import json
import threading
from dataclasses import dataclass, fields
from pathlib import Path
from contextlib import contextmanager

from .currency import Money
from .errors import PersistenceError


def serialize_value(value: Any) -> Any:
    """Convert a field value to its JSON-safe stored form"""
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Money):
        return str(value.amount)
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    return value


@dataclass
class StorageRecord:
    """Base class for all stored records"""
    id: str

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for storage"""
        return {f.name: serialize_value(getattr(self, f.name)) for f in fields(self)}


class StorageInterface(ABC):
    """Abstract interface for storage backends"""

    @abstractmethod
    def save(self, table: str, record_id: str, data: Dict[str, Any]) -> None:
        """Save a record to storage"""
        pass

    @abstractmethod
    def load(self, table: str, record_id: str) -> Optional[Dict[str, Any]]:
        """Load a record from storage"""
        pass

    @abstractmethod
    def load_all(self, table: str) -> List[Dict[str, Any]]:
        """Load all records from a table, in insertion order"""
        pass

    @abstractmethod
    def delete(self, table: str, record_id: str) -> bool:
        """Delete a record from storage"""
        pass

    @abstractmethod
    def exists(self, table: str, record_id: str) -> bool:
        """Check if a record exists"""
        pass

    @abstractmethod
    def count(self, table: str) -> int:
        """Count records in table"""
        pass

    @abstractmethod
    def clear_table(self, table: str) -> None:
        """Clear all records from a table"""
        pass

    @abstractmethod
    def close(self) -> None:
        """Close storage connection"""
        pass

    def find(self, table: str, filters: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Find records matching filters (simple JSON key matching)"""
        return [
            record for record in self.load_all(table)
            if all(key in record and record[key] == value for key, value in filters.items())
        ]

    @property
    def in_transaction(self) -> bool:
        return False

    def begin_transaction(self) -> None:
        """Start a transaction (default no-op)"""
        pass

    def commit(self) -> None:
        """Commit current transaction (default no-op)"""
        pass

    def rollback(self) -> None:
        """Rollback current transaction (default no-op)"""
        pass

    @contextmanager
    def atomic(self) -> Iterator[None]:
        """Context manager for atomic operations; nested blocks join the outer one"""
        if self.in_transaction:
            yield
            return

        self.begin_transaction()
        try:
            yield
            self.commit()
        except Exception:
            self.rollback()
            raise


def _copy(data: Any) -> Any:
    """Deep copy through JSON to prevent external mutation"""
    return json.loads(json.dumps(data, default=str))


class InMemoryStorage(StorageInterface):
    """In-memory storage implementation for testing"""

    def __init__(self):
        self._data: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._snapshot: Optional[Dict[str, Dict[str, Dict[str, Any]]]] = None
        self._lock = threading.RLock()

    def _ensure_table(self, table: str) -> None:
        if table not in self._data:
            self._data[table] = {}

    def save(self, table: str, record_id: str, data: Dict[str, Any]) -> None:
        """Save a record to memory"""
        with self._lock:
            self._ensure_table(table)
            self._data[table][record_id] = _copy(data)

    def load(self, table: str, record_id: str) -> Optional[Dict[str, Any]]:
        """Load a record from memory"""
        with self._lock:
            self._ensure_table(table)
            record = self._data[table].get(record_id)
            if record:
                return _copy(record)
            return None

    def load_all(self, table: str) -> List[Dict[str, Any]]:
        """Load all records from a table"""
        with self._lock:
            self._ensure_table(table)
            return [_copy(record) for record in self._data[table].values()]

    def delete(self, table: str, record_id: str) -> bool:
        """Delete a record from memory"""
        with self._lock:
            self._ensure_table(table)
            if record_id in self._data[table]:
                del self._data[table][record_id]
                return True
            return False

    def exists(self, table: str, record_id: str) -> bool:
        """Check if a record exists"""
        with self._lock:
            self._ensure_table(table)
            return record_id in self._data[table]

    def count(self, table: str) -> int:
        """Count records in table"""
        with self._lock:
            self._ensure_table(table)
            return len(self._data[table])

    def clear_table(self, table: str) -> None:
        """Clear all records from a table"""
        with self._lock:
            self._data[table] = {}

    @property
    def in_transaction(self) -> bool:
        return self._snapshot is not None

    def begin_transaction(self) -> None:
        """Snapshot current contents so rollback can restore them"""
        with self._lock:
            if self._snapshot is None:
                self._snapshot = _copy(self._data)

    def commit(self) -> None:
        """Keep changes made since begin_transaction"""
        with self._lock:
            self._snapshot = None

    def rollback(self) -> None:
        """Restore the snapshot taken at begin_transaction"""
        with self._lock:
            if self._snapshot is not None:
                self._data = self._snapshot
                self._snapshot = None

    def close(self) -> None:
        """Close storage (no-op for in-memory)"""
        pass

    def get_all_data(self) -> Dict[str, Dict[str, Dict[str, Any]]]:
        """Get all data for debugging/inspection"""
        with self._lock:
            return _copy(self._data)


class SQLiteStorage(StorageInterface):
    """SQLite storage implementation for persistence"""

    def __init__(self, db_path: Union[str, Path] = ":memory:"):
        self.db_path = str(db_path)
        self._lock = threading.RLock()
        self._in_transaction = False
        self._tables = set()

        with self._translate_errors():
            # Set isolation_level to 'DEFERRED' to enable manual transaction control
            self._connection = sqlite3.connect(self.db_path, check_same_thread=False, isolation_level='DEFERRED')
            self._connection.row_factory = sqlite3.Row

            # Enable WAL mode for better concurrent access
            if self.db_path != ":memory:":
                self._connection.execute("PRAGMA journal_mode = WAL")
                self._connection.execute("PRAGMA synchronous = NORMAL")
                self._connection.commit()

    @contextmanager
    def _translate_errors(self) -> Iterator[None]:
        try:
            yield
        except sqlite3.Error as e:
            raise PersistenceError(f"Storage failure: {e}") from e

    def _maybe_commit(self) -> None:
        if not self._in_transaction:
            self._connection.commit()

    def _ensure_table(self, table: str) -> None:
        """Ensure table exists with proper schema"""
        if table in self._tables:
            return

        self._connection.execute(f"""
            CREATE TABLE IF NOT EXISTS {table} (
                id TEXT PRIMARY KEY,
                data TEXT NOT NULL,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        """)
        self._connection.execute(f"""
            CREATE INDEX IF NOT EXISTS idx_{table}_created_at
            ON {table}(created_at)
        """)
        self._maybe_commit()
        self._tables.add(table)

    def save(self, table: str, record_id: str, data: Dict[str, Any]) -> None:
        """Save a record to SQLite"""
        with self._lock, self._translate_errors():
            self._ensure_table(table)

            now = datetime.now().astimezone().isoformat()
            data_json = json.dumps(data, default=str)

            # Keep the original created_at (and so the insertion order) on updates
            self._connection.execute(f"""
                INSERT INTO {table} (id, data, created_at, updated_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    data = excluded.data,
                    updated_at = excluded.updated_at
            """, (record_id, data_json, now, now))

            self._maybe_commit()

    def load(self, table: str, record_id: str) -> Optional[Dict[str, Any]]:
        """Load a record from SQLite"""
        with self._lock, self._translate_errors():
            self._ensure_table(table)
            cursor = self._connection.execute(f"""
                SELECT data FROM {table} WHERE id = ?
            """, (record_id,))
            row = cursor.fetchone()
            if row:
                return json.loads(row['data'])
            return None

    def load_all(self, table: str) -> List[Dict[str, Any]]:
        """Load all records from a table"""
        with self._lock, self._translate_errors():
            self._ensure_table(table)
            cursor = self._connection.execute(f"""
                SELECT data FROM {table} ORDER BY rowid
            """)
            return [json.loads(row['data']) for row in cursor.fetchall()]

    def delete(self, table: str, record_id: str) -> bool:
        """Delete a record from SQLite"""
        with self._lock, self._translate_errors():
            self._ensure_table(table)
            cursor = self._connection.execute(f"""
                DELETE FROM {table} WHERE id = ?
            """, (record_id,))
            self._maybe_commit()
            return cursor.rowcount > 0

    def exists(self, table: str, record_id: str) -> bool:
        """Check if a record exists"""
        with self._lock, self._translate_errors():
            self._ensure_table(table)
            cursor = self._connection.execute(f"""
                SELECT 1 FROM {table} WHERE id = ? LIMIT 1
            """, (record_id,))
            return cursor.fetchone() is not None

    def count(self, table: str) -> int:
        """Count records in table"""
        with self._lock, self._translate_errors():
            self._ensure_table(table)
            cursor = self._connection.execute(f"""
                SELECT COUNT(*) as count FROM {table}
            """)
            return cursor.fetchone()['count']

    def clear_table(self, table: str) -> None:
        """Clear all records from a table"""
        with self._lock, self._translate_errors():
            self._ensure_table(table)
            self._connection.execute(f"DELETE FROM {table}")
            self._maybe_commit()

    @property
    def in_transaction(self) -> bool:
        return self._in_transaction

    def begin_transaction(self) -> None:
        """Start a database transaction"""
        with self._lock:
            if not self._in_transaction:
                # SQLite with isolation_level='DEFERRED' opens the transaction
                # on the first write; we just need to hold off commits
                self._in_transaction = True

    def commit(self) -> None:
        """Commit current transaction"""
        with self._lock, self._translate_errors():
            if self._in_transaction:
                # A failed commit leaves the transaction open for rollback
                self._connection.commit()
                self._in_transaction = False

    def rollback(self) -> None:
        """Rollback current transaction"""
        with self._lock, self._translate_errors():
            if self._in_transaction:
                self._in_transaction = False
                # Tables created inside the transaction are gone as well
                self._tables = set()
                self._connection.rollback()

    def close(self) -> None:
        """Close SQLite connection"""
        with self._lock:
            if self._connection:
                self._connection.close()
                self._connection = None


class JSONFileStorage(StorageInterface):
    """
    JSON file storage: each table is one ``<table>.json`` file holding a JSON
    array of records in insertion order.

    Files are rewritten whole through a temporary file and ``os.replace`` so a
    crash never leaves half a document behind. Inside a transaction changes stay
    in memory until commit, which replaces every touched file or none.
    """

    def __init__(self, directory: Union[str, Path], pretty: bool = False):
        self.directory = Path(directory)
        self.pretty = pretty
        self._lock = threading.RLock()
        self._cache: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._dirty = set()
        self._in_transaction = False

        try:
            self.directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise PersistenceError(f"Cannot create storage directory {self.directory}: {e}") from e

    def _path(self, table: str) -> Path:
        return self.directory / f"{table}.json"

    def _table(self, table: str) -> Dict[str, Dict[str, Any]]:
        """Return the cached table, reading it from disk on first use"""
        if table not in self._cache:
            path = self._path(table)
            records = []
            if path.exists():
                try:
                    with open(path, "r", encoding="utf-8") as f:
                        records = json.load(f)
                except (OSError, json.JSONDecodeError) as e:
                    raise PersistenceError(f"Cannot read {path}: {e}") from e
                if not isinstance(records, list):
                    raise PersistenceError(f"{path} does not contain a JSON array")
            self._cache[table] = {record["id"]: record for record in records}
        return self._cache[table]

    def _stage(self, table: str) -> Path:
        """Write the cached table to its temporary file and return that path"""
        tmp_path = self._path(table).with_suffix(".json.tmp")
        records = list(self._cache.get(table, {}).values())
        with open(tmp_path, "w", encoding="utf-8") as f:
            if self.pretty:
                json.dump(records, f, indent=2, ensure_ascii=False, default=str)
            else:
                json.dump(records, f, ensure_ascii=False, default=str)
        return tmp_path

    def _write(self, table: str) -> None:
        self._write_tables([table])

    def _write_tables(self, tables: List[str]) -> None:
        """
        Replace several table files as one unit.

        Every table is staged before any file is replaced. If a replace fails
        part-way, the tables already swapped get their previous contents back.
        """
        staged: Dict[str, Path] = {}
        previous: Dict[str, Optional[bytes]] = {}
        replaced: List[str] = []
        try:
            for table in tables:
                staged[table] = self._stage(table)
            for table in tables:
                path = self._path(table)
                previous[table] = path.read_bytes() if path.exists() else None
            for table in tables:
                os.replace(staged[table], self._path(table))
                del staged[table]
                replaced.append(table)
        except OSError as e:
            try:
                for table in replaced:
                    path = self._path(table)
                    if previous[table] is None:
                        path.unlink()
                    else:
                        path.write_bytes(previous[table])
                for tmp_path in staged.values():
                    tmp_path.unlink()
            except OSError as restore_error:
                raise PersistenceError(
                    f"Cannot write {', '.join(tables)} and could not restore previous contents: {restore_error}"
                ) from e
            raise PersistenceError(f"Cannot write {', '.join(tables)}: {e}") from e

    def _changed(self, table: str) -> None:
        if self._in_transaction:
            self._dirty.add(table)
        else:
            self._write(table)

    def save(self, table: str, record_id: str, data: Dict[str, Any]) -> None:
        """Save a record to its table file"""
        with self._lock:
            record = _copy(data)
            record.setdefault("id", record_id)
            self._table(table)[record_id] = record
            self._changed(table)

    def load(self, table: str, record_id: str) -> Optional[Dict[str, Any]]:
        """Load a record from its table file"""
        with self._lock:
            record = self._table(table).get(record_id)
            if record:
                return _copy(record)
            return None

    def load_all(self, table: str) -> List[Dict[str, Any]]:
        """Load all records from a table file"""
        with self._lock:
            return [_copy(record) for record in self._table(table).values()]

    def delete(self, table: str, record_id: str) -> bool:
        """Delete a record from its table file"""
        with self._lock:
            records = self._table(table)
            if record_id in records:
                del records[record_id]
                self._changed(table)
                return True
            return False

    def exists(self, table: str, record_id: str) -> bool:
        """Check if a record exists"""
        with self._lock:
            return record_id in self._table(table)

    def count(self, table: str) -> int:
        """Count records in table"""
        with self._lock:
            return len(self._table(table))

    def clear_table(self, table: str) -> None:
        """Clear all records from a table"""
        with self._lock:
            self._cache[table] = {}
            self._changed(table)

    @property
    def in_transaction(self) -> bool:
        return self._in_transaction

    def begin_transaction(self) -> None:
        """Start buffering writes in memory"""
        with self._lock:
            self._in_transaction = True

    def commit(self) -> None:
        """Write every table touched since begin_transaction"""
        with self._lock:
            self._in_transaction = False
            dirty, self._dirty = self._dirty, set()
            try:
                self._write_tables(sorted(dirty))
            except PersistenceError:
                # Drop the cache so the next read reflects what is on disk
                for table in dirty:
                    self._cache.pop(table, None)
                raise

    def rollback(self) -> None:
        """Discard buffered writes; tables are re-read from disk on next use"""
        with self._lock:
            self._in_transaction = False
            for table in self._dirty:
                self._cache.pop(table, None)
            self._dirty = set()

    def close(self) -> None:
        """Flush nothing; every committed change is already on disk"""
        with self._lock:
            self._cache = {}


def create_storage(backend: str, path: Optional[str] = None) -> StorageInterface:
    """
    Build a storage backend by name.

    Args:
        backend: "memory", "sqlite" or "json"
        path: SQLite database file, or directory for the json backend
    """
    backend = backend.lower()
    if backend == "memory":
        return InMemoryStorage()
    if backend == "sqlite":
        return SQLiteStorage(path or ":memory:")
    if backend == "json":
        if not path:
            raise ValueError("The json storage backend needs a directory path")
        return JSONFileStorage(path)
    raise ValueError(f"Unknown storage backend: {backend}")
