from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest

from blogchain.runtime.sqlite_db import SqliteDB


def _pragma(con: sqlite3.Connection, name: str) -> int | str:
    row = con.execute(f"PRAGMA {name};").fetchone()
    if row is None:
        raise AssertionError(f"missing pragma: {name}")
    # sqlite3.Row behaves like a tuple for PRAGMA single-value results
    return row[0]


def test_sqlite_operational_pragmas_are_applied(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    # Force deterministic defaults for this test.
    monkeypatch.setenv("BLOGCHAIN_MODE", "prod")
    monkeypatch.delenv("BLOGCHAIN_SQLITE_SYNCHRONOUS", raising=False)
    monkeypatch.setenv("BLOGCHAIN_SQLITE_BUSY_TIMEOUT_MS", "1234")
    monkeypatch.setenv("BLOGCHAIN_SQLITE_WAL_AUTOCHECKPOINT", "777")
    monkeypatch.setenv("BLOGCHAIN_SQLITE_JOURNAL_SIZE_LIMIT", str(8 * 1024 * 1024))
    monkeypatch.setenv("BLOGCHAIN_SQLITE_CACHE_SIZE_KIB", str(4096))

    db = SqliteDB(path=str(tmp_path / "blogchain.db"))
    db.init_schema()

    with db.connection() as con:
        jm = str(_pragma(con, "journal_mode")).lower()
        assert jm == "wal"

        # FULL is the prod default.
        sync = int(_pragma(con, "synchronous"))
        assert sync == 2

        # MEMORY corresponds to 2
        assert int(_pragma(con, "temp_store")) == 2

        assert int(_pragma(con, "busy_timeout")) == 1234
        assert int(_pragma(con, "wal_autocheckpoint")) == 777
        assert int(_pragma(con, "journal_size_limit")) == 8 * 1024 * 1024

        # cache_size negative means KiB; SQLite may return negative.
        cache_sz = int(_pragma(con, "cache_size"))
        assert cache_sz == -4096


def test_sqlite_synchronous_is_normal_outside_prod(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("BLOGCHAIN_MODE", "dev")
    monkeypatch.delenv("BLOGCHAIN_SQLITE_SYNCHRONOUS", raising=False)

    db = SqliteDB(path=str(tmp_path / "blogchain.db"))
    db.init_schema()

    with db.connection() as con:
        # NORMAL corresponds to 1
        assert int(_pragma(con, "synchronous")) == 1


def test_schema_version_mismatch_refuses_to_start(tmp_path: Path) -> None:
    path = str(tmp_path / "blogchain.db")
    db = SqliteDB(path=path)
    db.init_schema()
    db.set_meta("schema_version", "999")

    with pytest.raises(RuntimeError):
        SqliteDB(path=path).init_schema()
