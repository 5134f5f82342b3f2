"""SQLite store handle shared by the repositories."""

import sqlite3
import threading
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from pathlib import Path

from nutrition_store.domain.errors import StoreClosedError

MEMORY_PATH = ":memory:"

Params = Sequence[object]


class SqliteStore:
    """One connection to the store file with serialised access.

    All reads and writes go through the same re-entrant lock, so the handle
    can be shared between threads of one process. ``transaction`` nests: only
    the outermost block begins and commits.
    """

    def __init__(self, path: Path | str, busy_timeout_seconds: float = 5.0) -> None:
        self.path: Path | None = None if str(path) == MEMORY_PATH else Path(path)
        self.busy_timeout_seconds = busy_timeout_seconds
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.RLock()
        self._depth = 0

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    def connect(self) -> None:
        """Open the connection, creating the file and its directory if absent."""
        with self._lock:
            if self._conn is not None:
                return
            if self.path is None:
                target = MEMORY_PATH
            else:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                target = str(self.path)
            conn = sqlite3.connect(
                target,
                timeout=self.busy_timeout_seconds,
                check_same_thread=False,
                isolation_level=None,
            )
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA foreign_keys = ON;")
            self._conn = conn
            self._depth = 0

    def close(self) -> None:
        """Close the connection; closing twice is a no-op."""
        with self._lock:
            if self._conn is None:
                return
            self._conn.close()
            self._conn = None
            self._depth = 0

    @contextmanager
    def exclusive(self) -> Iterator["SqliteStore"]:
        """Hold the store lock, blocking every other caller."""
        with self._lock:
            yield self

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Run a block atomically, rolling back on any exception."""
        with self._lock:
            conn = self._connection()
            if self._depth:
                self._depth += 1
                try:
                    yield conn
                finally:
                    self._depth -= 1
                return
            conn.execute("BEGIN IMMEDIATE")
            self._depth = 1
            try:
                yield conn
            except BaseException:
                if conn.in_transaction:
                    conn.execute("ROLLBACK")
                raise
            else:
                try:
                    conn.execute("COMMIT")
                except sqlite3.Error:
                    if conn.in_transaction:
                        conn.execute("ROLLBACK")
                    raise
            finally:
                self._depth = 0

    def execute(self, sql: str, params: Params = ()) -> sqlite3.Cursor:
        with self._lock:
            return self._connection().execute(sql, params)

    def fetch_all(self, sql: str, params: Params = ()) -> list[sqlite3.Row]:
        with self._lock:
            return self._connection().execute(sql, params).fetchall()

    def fetch_one(self, sql: str, params: Params = ()) -> sqlite3.Row | None:
        with self._lock:
            return self._connection().execute(sql, params).fetchone()

    def user_version(self) -> int:
        row = self.fetch_one("PRAGMA user_version")
        return int(row[0]) if row else 0

    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise StoreClosedError("The nutrition store is closed")
        return self._conn
