# src/blogchain/runtime/sqlite_db.py
from __future__ import annotations

import os
import sqlite3
import time
import random
from contextlib import contextmanager
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Tuple

from blogchain.runtime.kv_store import KV, KVStore


def _now_ms() -> int:
    return int(time.time() * 1000)


def _env_int(name: str, default: int) -> int:
    try:
        raw = str(os.environ.get(name, "")).strip()
        return int(raw) if raw else int(default)
    except Exception:
        return int(default)


class SqliteDB:
    """SQLite manager for the blogchain node runtime.

    Design goals:
      - single durable DB file for the whole key-value state
      - cross-process safe (SQLite locks)
      - cross-thread safe by never sharing connections

    SQLite allows only one writer at a time. Under multi-process workloads,
    BEGIN IMMEDIATE can transiently fail with "database is locked", so
    write_tx() retries within a bounded deadline.
    """

    SCHEMA_VERSION = 1

    def __init__(self, *, path: str) -> None:
        self.path = str(path)

    @staticmethod
    def _sqlite_synchronous_pragma() -> str:
        """Return a safe PRAGMA synchronous value.

        Defaults:
          - prod        -> FULL
          - dev/testnet -> NORMAL

        Override with BLOGCHAIN_SQLITE_SYNCHRONOUS in {OFF,NORMAL,FULL,EXTRA}.
        """
        mode = (os.environ.get("BLOGCHAIN_MODE") or "prod").strip().lower()
        default = "FULL" if mode == "prod" else "NORMAL"
        raw = (os.environ.get("BLOGCHAIN_SQLITE_SYNCHRONOUS") or default).strip().upper()

        allowed = {"OFF", "NORMAL", "FULL", "EXTRA"}
        if raw not in allowed:
            raw = default
        return raw

    def ensure_parent_dir(self) -> None:
        p = Path(self.path)
        p.parent.mkdir(parents=True, exist_ok=True)

    def _connect(self) -> sqlite3.Connection:
        self.ensure_parent_dir()

        connect_timeout_s = float(_env_int("BLOGCHAIN_SQLITE_CONNECT_TIMEOUT_MS", 30_000)) / 1000.0

        con = sqlite3.connect(
            self.path,
            timeout=connect_timeout_s,
            isolation_level=None,  # we manage BEGIN/COMMIT ourselves
            check_same_thread=False,
        )
        con.row_factory = sqlite3.Row

        # WAL is required unless explicitly waived; rollback-journal mode is far
        # more prone to writer contention.
        allow_non_wal = (os.environ.get("BLOGCHAIN_SQLITE_ALLOW_NON_WAL") or "").strip() in {"1", "true", "TRUE"}
        try:
            row = con.execute("PRAGMA journal_mode=WAL;").fetchone()
            mode = ""
            if row is not None:
                mode = str(row[0]).strip().lower()
            if mode and mode != "wal" and not allow_non_wal:
                raise RuntimeError(f"sqlite journal_mode is '{mode}', expected 'wal'")
        except Exception:
            if not allow_non_wal:
                raise

        con.execute(f"PRAGMA synchronous={self._sqlite_synchronous_pragma()};")
        con.execute("PRAGMA temp_store=MEMORY;")

        wal_ckpt = max(1, _env_int("BLOGCHAIN_SQLITE_WAL_AUTOCHECKPOINT", 1000))
        con.execute(f"PRAGMA wal_autocheckpoint={wal_ckpt};")

        jsl = max(0, _env_int("BLOGCHAIN_SQLITE_JOURNAL_SIZE_LIMIT", 64 * 1024 * 1024))
        con.execute(f"PRAGMA journal_size_limit={jsl};")

        # Negative means KiB. Default 64 MiB.
        cache_kib = max(0, _env_int("BLOGCHAIN_SQLITE_CACHE_SIZE_KIB", 64 * 1024))
        con.execute(f"PRAGMA cache_size={-cache_kib};")

        busy_ms = max(0, _env_int("BLOGCHAIN_SQLITE_BUSY_TIMEOUT_MS", int(connect_timeout_s * 1000)))
        con.execute(f"PRAGMA busy_timeout={busy_ms};")

        return con

    def init_schema(self) -> None:
        with self.write_tx() as con:
            con.execute(
                """
                CREATE TABLE IF NOT EXISTS meta (
                  key TEXT PRIMARY KEY,
                  value TEXT NOT NULL
                );
                """
            )

            # Keys are compared bytewise (memcmp) which matches KVStore ordering.
            con.execute(
                """
                CREATE TABLE IF NOT EXISTS kv (
                  key BLOB PRIMARY KEY,
                  value BLOB NOT NULL
                );
                """
            )

            row = con.execute("SELECT value FROM meta WHERE key='schema_version' LIMIT 1;").fetchone()
            if row is None:
                con.execute("INSERT INTO meta(key, value) VALUES('schema_version', ?);", (str(self.SCHEMA_VERSION),))
            else:
                try:
                    v = int(str(row["value"]))
                except Exception:
                    v = 0
                if v != self.SCHEMA_VERSION:
                    raise RuntimeError(
                        f"sqlite schema_version mismatch: have={v} want={self.SCHEMA_VERSION}. "
                        "Refuse to start to avoid corrupting data."
                    )

    def get_meta(self, key: str) -> Optional[str]:
        with self.connection() as con:
            row = con.execute("SELECT value FROM meta WHERE key=? LIMIT 1;", (str(key),)).fetchone()
            return None if row is None else str(row["value"])

    def set_meta(self, key: str, value: str) -> None:
        with self.write_tx() as con:
            con.execute(
                "INSERT INTO meta(key, value) VALUES(?, ?) ON CONFLICT(key) DO UPDATE SET value=excluded.value;",
                (str(key), str(value)),
            )

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        con = self._connect()
        try:
            yield con
        finally:
            con.close()

    @staticmethod
    def _is_locked_error(e: Exception) -> bool:
        msg = str(e).lower()
        return ("database is locked" in msg) or ("database is busy" in msg) or ("locked" in msg and "database" in msg)

    def _backoff_sleep(self, attempt: int, base_sleep: float, max_sleep: float) -> None:
        sleep_s = min(max_sleep, base_sleep * (2.0 ** min(attempt, 8)))
        sleep_s = sleep_s * (0.5 + random.random())  # jitter in [0.5x, 1.5x]
        time.sleep(sleep_s)

    @contextmanager
    def write_tx(self) -> Iterator[sqlite3.Connection]:
        """Open a write transaction with bounded retry on writer-lock contention.

        Policy:
          - retry BEGIN IMMEDIATE until a deadline
          - exponential backoff with jitter
          - then raise (fail closed) if we cannot acquire within deadline
        """
        deadline_ms = max(250, _env_int("BLOGCHAIN_SQLITE_WRITE_DEADLINE_MS", 30_000))
        deadline_ts = _now_ms() + deadline_ms

        base_sleep = max(0.001, float(_env_int("BLOGCHAIN_SQLITE_WRITE_BACKOFF_BASE_MS", 5)) / 1000.0)
        max_sleep = max(base_sleep, float(_env_int("BLOGCHAIN_SQLITE_WRITE_BACKOFF_MAX_MS", 250)) / 1000.0)

        with self.connection() as con:
            attempt = 0
            while True:
                try:
                    con.execute("BEGIN IMMEDIATE;")
                    break
                except sqlite3.OperationalError as e:
                    if not self._is_locked_error(e):
                        raise
                    if _now_ms() >= deadline_ts:
                        raise
                    self._backoff_sleep(attempt, base_sleep, max_sleep)
                    attempt += 1

            try:
                yield con

                c_attempt = 0
                while True:
                    try:
                        con.execute("COMMIT;")
                        break
                    except sqlite3.OperationalError as e:
                        if not self._is_locked_error(e):
                            raise
                        if _now_ms() >= deadline_ts:
                            raise
                        self._backoff_sleep(c_attempt, base_sleep, max_sleep)
                        c_attempt += 1
            except Exception:
                con.execute("ROLLBACK;")
                raise


class SqliteKVStore(KVStore):
    """KVStore persisted in the `kv` table.

    Single-key writes each run in their own write_tx(); write_batch() applies a
    whole staged transaction inside one write_tx() so it lands atomically.
    Bare get/iterate open a connection per call; multi-key readers should use
    read_scope() instead.
    """

    def __init__(self, *, db: SqliteDB) -> None:
        self._db = db
        self._db.init_schema()

    @property
    def db(self) -> SqliteDB:
        return self._db

    def get(self, key: bytes) -> Optional[bytes]:
        with self._db.connection() as con:
            return _select_one(con, key)

    def set(self, key: bytes, value: bytes) -> None:
        self.write_batch([(key, value)])

    def delete(self, key: bytes) -> None:
        self.write_batch([(key, None)])

    def write_batch(self, ops: Iterable[Tuple[bytes, Optional[bytes]]]) -> None:
        with self._db.write_tx() as con:
            for k, v in ops:
                if v is None:
                    con.execute("DELETE FROM kv WHERE key=?;", (bytes(k),))
                else:
                    con.execute(
                        "INSERT INTO kv(key, value) VALUES(?, ?) ON CONFLICT(key) DO UPDATE SET value=excluded.value;",
                        (bytes(k), bytes(v)),
                    )

    def iterate(self, start: bytes = b"", end: Optional[bytes] = None) -> Iterator[KV]:
        with self._db.connection() as con:
            return _select_range(con, start, end)

    def count(self) -> int:
        with self._db.connection() as con:
            return _count(con)

    @contextmanager
    def read_scope(self) -> Iterator[KVStore]:
        """One connection, one read transaction: every read sees the same WAL snapshot."""
        with self._db.connection() as con:
            con.execute("BEGIN;")
            try:
                yield SqliteReadView(con)
            finally:
                con.execute("ROLLBACK;")


class SqliteReadView(KVStore):
    """Read-only KVStore over a connection that already holds a read transaction."""

    def __init__(self, con: sqlite3.Connection) -> None:
        self._con = con

    def get(self, key: bytes) -> Optional[bytes]:
        return _select_one(self._con, key)

    def set(self, key: bytes, value: bytes) -> None:
        raise RuntimeError("sqlite read view is read-only")

    def delete(self, key: bytes) -> None:
        raise RuntimeError("sqlite read view is read-only")

    def write_batch(self, ops: Iterable[Tuple[bytes, Optional[bytes]]]) -> None:
        raise RuntimeError("sqlite read view is read-only")

    def iterate(self, start: bytes = b"", end: Optional[bytes] = None) -> Iterator[KV]:
        return _select_range(self._con, start, end)


def _select_one(con: sqlite3.Connection, key: bytes) -> Optional[bytes]:
    row = con.execute("SELECT value FROM kv WHERE key=?;", (bytes(key),)).fetchone()
    return None if row is None else bytes(row["value"])


def _select_range(con: sqlite3.Connection, start: bytes, end: Optional[bytes]) -> Iterator[KV]:
    # Materialized so callers may write while iterating.
    if end is None:
        rows = con.execute("SELECT key, value FROM kv WHERE key >= ? ORDER BY key;", (bytes(start),)).fetchall()
    else:
        rows = con.execute(
            "SELECT key, value FROM kv WHERE key >= ? AND key < ? ORDER BY key;",
            (bytes(start), bytes(end)),
        ).fetchall()
    out: List[KV] = [(bytes(r["key"]), bytes(r["value"])) for r in rows]
    return iter(out)


def _count(con: sqlite3.Connection) -> int:
    row = con.execute("SELECT COUNT(*) FROM kv;").fetchone()
    return int(row[0]) if row is not None else 0
