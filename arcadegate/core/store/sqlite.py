from __future__ import annotations

import asyncio
import json
import os
import sqlite3
import threading
from typing import Any, Callable, List, Optional

from arcadegate.core.errors import ConflictError, NotFoundError, StoreError
from arcadegate.core.licensing.keys import username_key
from arcadegate.core.licensing.models import AdminAccount, AdminRole, License, RecordKind, iso_now, kind_of
from arcadegate.core.store.base import Record, RecordStore


class SqliteRecordStore(RecordStore):
    """
    Durable record store (SQLite).

    NOTES:
    - stdlib sqlite3; every blocking call runs in a worker thread
    - one connection per operation, serialized by a process-local lock
    - cross-process writers rely on sqlite's own locking (WAL)
    """

    def __init__(self, *, db_path: str, logger: Any = None):
        self.db_path = str(db_path)
        self.logger = logger
        self._lock = threading.Lock()
        os.makedirs(os.path.dirname(self.db_path) or ".", exist_ok=True)
        self._init_db()

    # ---- sqlite helpers ----
    def _conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL;")
        conn.execute("PRAGMA synchronous=NORMAL;")
        return conn

    def _init_db(self) -> None:
        with self._lock:
            conn = self._conn()
            try:
                with conn:
                    conn.execute(
                        """
                        CREATE TABLE IF NOT EXISTS admin_accounts (
                          id INTEGER PRIMARY KEY AUTOINCREMENT,
                          username TEXT NOT NULL,
                          username_key TEXT NOT NULL,
                          password_hash TEXT NOT NULL,
                          role TEXT NOT NULL,
                          created_at TEXT,
                          updated_at TEXT
                        )
                        """
                    )
                    _migrate_username_key(conn)
                    conn.execute("CREATE UNIQUE INDEX IF NOT EXISTS idx_admin_accounts_username_key ON admin_accounts(username_key)")
                    conn.execute(
                        """
                        CREATE TABLE IF NOT EXISTS generated_licenses (
                          id INTEGER PRIMARY KEY AUTOINCREMENT,
                          key TEXT NOT NULL,
                          created_at TEXT,
                          updated_at TEXT,
                          expiration_days INTEGER,
                          created_by TEXT,
                          is_active INTEGER NOT NULL,
                          used_at TEXT,
                          used_by TEXT,
                          allowed_games TEXT,
                          is_admin INTEGER NOT NULL DEFAULT 0
                        )
                        """
                    )
                    conn.execute("CREATE UNIQUE INDEX IF NOT EXISTS idx_generated_licenses_key ON generated_licenses(key)")
                    conn.execute("CREATE INDEX IF NOT EXISTS idx_generated_licenses_admin ON generated_licenses(is_admin, is_active)")
            finally:
                conn.close()

    async def _run(self, fn: Callable[..., Any], *args: Any) -> Any:
        try:
            return await asyncio.to_thread(self._locked, fn, *args)
        except sqlite3.IntegrityError as e:
            raise ConflictError("Record already exists.", error=str(e)) from e
        except sqlite3.Error as e:
            if self.logger:
                self.logger.error(f"Record store failure: {e}")
            raise StoreError("Record store error.", error=str(e)) from e

    def _locked(self, fn: Callable[..., Any], *args: Any) -> Any:
        with self._lock:
            conn = self._conn()
            try:
                with conn:
                    return fn(conn, *args)
            finally:
                conn.close()

    # ---- RecordStore ----
    async def get_all(self, kind: RecordKind) -> List[Record]:
        return await self._run(_select_all, kind)

    async def get_by_unique_key(self, kind: RecordKind, key: str) -> Optional[Record]:
        return await self._run(_select_one, kind, str(key or ""))

    async def create(self, record: Record) -> Record:
        now = iso_now()
        stored = record.model_copy(deep=True, update={"created_at": now, "updated_at": now})
        new_id = await self._run(_insert, stored)
        stored.id = int(new_id)
        return stored

    async def update(self, record: Record) -> None:
        now = iso_now()
        changed = await self._run(_update, record.model_copy(deep=True, update={"updated_at": now}))
        if not changed:
            raise NotFoundError("Record not found.", kind=kind_of(record).value)
        record.updated_at = now

    async def delete(self, kind: RecordKind, key: str) -> None:
        removed = await self._run(_delete, kind, str(key or ""))
        if not removed:
            raise NotFoundError("Record not found.", kind=kind.value)


def _migrate_username_key(conn: sqlite3.Connection) -> None:
    """Databases created before `username_key` existed carry a NOCASE index instead."""
    cols = {str(r["name"]) for r in conn.execute("PRAGMA table_info(admin_accounts)").fetchall()}
    if "username_key" in cols:
        return
    conn.execute("ALTER TABLE admin_accounts ADD COLUMN username_key TEXT NOT NULL DEFAULT ''")
    for row in conn.execute("SELECT id, username FROM admin_accounts").fetchall():
        conn.execute("UPDATE admin_accounts SET username_key = ? WHERE id = ?", (username_key(row["username"]), int(row["id"])))
    conn.execute("DROP INDEX IF EXISTS idx_admin_accounts_username")


# ---- row mapping (run inside the worker thread) ----
def _row_to_record(kind: RecordKind, row: sqlite3.Row) -> Record:
    if kind == RecordKind.ADMIN_ACCOUNTS:
        return AdminAccount(
            id=int(row["id"]),
            username=str(row["username"]),
            password_hash=str(row["password_hash"] or ""),
            role=AdminRole(str(row["role"])),
            created_at=str(row["created_at"] or ""),
            updated_at=str(row["updated_at"] or ""),
        )
    games = row["allowed_games"]
    return License(
        id=int(row["id"]),
        key=str(row["key"]),
        created_at=str(row["created_at"] or ""),
        updated_at=str(row["updated_at"] or ""),
        expiration_days=(int(row["expiration_days"]) if row["expiration_days"] is not None else None),
        created_by=str(row["created_by"] or "system"),
        is_active=bool(row["is_active"]),
        used_at=row["used_at"],
        used_by=row["used_by"],
        allowed_games=(json.loads(games) if games else []),
        is_admin=bool(row["is_admin"]),
    )


def _select_all(conn: sqlite3.Connection, kind: RecordKind) -> List[Record]:
    rows = conn.execute(f"SELECT * FROM {kind.value} ORDER BY id ASC").fetchall()
    return [_row_to_record(kind, r) for r in rows]


def _select_one(conn: sqlite3.Connection, kind: RecordKind, key: str) -> Optional[Record]:
    if kind == RecordKind.ADMIN_ACCOUNTS:
        row = conn.execute("SELECT * FROM admin_accounts WHERE username_key = ?", (username_key(key),)).fetchone()
    else:
        row = conn.execute("SELECT * FROM generated_licenses WHERE key = ?", (key,)).fetchone()
    return _row_to_record(kind, row) if row is not None else None


def _insert(conn: sqlite3.Connection, rec: Record) -> int:
    if isinstance(rec, AdminAccount):
        cur = conn.execute(
            "INSERT INTO admin_accounts(username, username_key, password_hash, role, created_at, updated_at) VALUES (?, ?, ?, ?, ?, ?)",
            (rec.username, username_key(rec.username), rec.password_hash, rec.role.value, rec.created_at, rec.updated_at),
        )
    else:
        cur = conn.execute(
            """
            INSERT INTO generated_licenses(key, created_at, updated_at, expiration_days, created_by, is_active, used_at, used_by, allowed_games, is_admin)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            _license_values(rec),
        )
    return int(cur.lastrowid)


def _update(conn: sqlite3.Connection, rec: Record) -> bool:
    if isinstance(rec, AdminAccount):
        cur = conn.execute(
            "UPDATE admin_accounts SET password_hash = ?, role = ?, updated_at = ? WHERE username_key = ?",
            (rec.password_hash, rec.role.value, rec.updated_at, username_key(rec.username)),
        )
    else:
        values = _license_values(rec)
        cur = conn.execute(
            """
            UPDATE generated_licenses
               SET created_at = ?, updated_at = ?, expiration_days = ?, created_by = ?, is_active = ?,
                   used_at = ?, used_by = ?, allowed_games = ?, is_admin = ?
             WHERE key = ?
            """,
            values[1:] + values[:1],
        )
    return int(cur.rowcount or 0) > 0


def _delete(conn: sqlite3.Connection, kind: RecordKind, key: str) -> bool:
    if kind == RecordKind.ADMIN_ACCOUNTS:
        cur = conn.execute("DELETE FROM admin_accounts WHERE username_key = ?", (username_key(key),))
    else:
        cur = conn.execute("DELETE FROM generated_licenses WHERE key = ?", (key,))
    return int(cur.rowcount or 0) > 0


def _license_values(rec: License) -> tuple:
    return (
        rec.key,
        rec.created_at,
        rec.updated_at,
        rec.expiration_days,
        rec.created_by,
        1 if rec.is_active else 0,
        rec.used_at,
        rec.used_by,
        json.dumps(list(rec.allowed_games)),
        1 if rec.is_admin else 0,
    )
