from __future__ import annotations

import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, List, Optional, Sequence

from .errors import NotFound, StorageError, ValidationError
from .log import get_logger
from .model import KINDS, Item

log = get_logger(__name__)

SCHEMA_VERSION = 1

_UPDATABLE = ("name", "icon", "parent_id", "url", "rank")

_COLUMNS = "id, owner, kind, name, icon, parent_id, url, rank, created_at"


class ItemStore:
    """Owner-scoped CRUD over the ``items`` table.

    The store does not validate the hierarchy and does not cascade deletes;
    ``parent_id`` is a plain foreign key, so children must go before parents.
    One connection is shared by all threads and guarded by a re-entrant lock.
    """

    def __init__(self, db_path: Path | str, *, busy_timeout_ms: int = 5000):
        self.db_path = Path(db_path)
        self.busy_timeout_ms = max(0, int(busy_timeout_ms))
        self.conn: sqlite3.Connection | None = None
        self._lock = threading.RLock()
        self._tx_depth = 0

    def __enter__(self) -> "ItemStore":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def open(self) -> None:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        timeout_s = max(0.1, self.busy_timeout_ms / 1000.0) if self.busy_timeout_ms > 0 else 0.1
        try:
            self.conn = sqlite3.connect(str(self.db_path), timeout=timeout_s, check_same_thread=False)
            self.conn.row_factory = sqlite3.Row
            if self.busy_timeout_ms > 0:
                self.conn.execute(f"PRAGMA busy_timeout = {self.busy_timeout_ms}")
            self.conn.execute("PRAGMA foreign_keys = ON")
            self._init_schema()
        except sqlite3.Error as e:
            raise StorageError(f"cannot open item store {self.db_path}: {e}") from e

    def close(self) -> None:
        with self._lock:
            if self.conn is not None:
                self.conn.close()
                self.conn = None

    @contextmanager
    def transaction(self) -> Iterator["ItemStore"]:
        """Group several writes; commit once on success, roll back on any error."""
        with self._lock:
            conn = self._connection()
            self._tx_depth += 1
            try:
                yield self
            except BaseException:
                self._tx_depth -= 1
                if self._tx_depth == 0:
                    conn.rollback()
                raise
            self._tx_depth -= 1
            if self._tx_depth == 0:
                try:
                    conn.commit()
                except sqlite3.Error as e:
                    conn.rollback()
                    raise StorageError(f"commit failed: {e}") from e

    def create_item(
        self,
        owner: str,
        kind: str,
        name: str,
        *,
        icon: Optional[str] = None,
        parent_id: Optional[int] = None,
        url: Optional[str] = None,
        rank: Optional[int] = None,
    ) -> Item:
        if kind not in KINDS:
            raise ValidationError(f"unknown item kind: {kind!r}")
        now = datetime.now(timezone.utc).isoformat()
        with self._op("create item") as c:
            if rank is None:
                rank = self._next_rank(c, owner, parent_id, kind)
            c.execute(
                """
                INSERT INTO items (owner, kind, name, icon, parent_id, url, rank, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (owner, kind, name, icon, parent_id, url, int(rank), now),
            )
            new_id = int(c.lastrowid)
            self._commit()
        return Item(
            id=new_id,
            owner=owner,
            kind=kind,
            name=name,
            icon=icon,
            parent_id=parent_id,
            url=url,
            rank=int(rank),
            created_at=now,
        )

    def get_items(self, owner: str) -> List[Item]:
        with self._op("list items") as c:
            rows = c.execute(
                f"SELECT {_COLUMNS} FROM items WHERE owner = ? ORDER BY rank, id",
                (owner,),
            ).fetchall()
        return [_row_item(r) for r in rows]

    def get_item(self, owner: str, item_id: int) -> Optional[Item]:
        with self._op("read item") as c:
            row = c.execute(
                f"SELECT {_COLUMNS} FROM items WHERE id = ? AND owner = ?",
                (int(item_id), owner),
            ).fetchone()
        return _row_item(row) if row else None

    def list_children(self, owner: str, parent_id: int, kind: str) -> List[Item]:
        with self._op("list children") as c:
            rows = c.execute(
                f"SELECT {_COLUMNS} FROM items WHERE owner = ? AND parent_id = ? AND kind = ? ORDER BY rank, id",
                (owner, int(parent_id), kind),
            ).fetchall()
        return [_row_item(r) for r in rows]

    def next_rank(self, owner: str, parent_id: Optional[int], kind: str) -> int:
        with self._op("compute rank") as c:
            return self._next_rank(c, owner, parent_id, kind)

    def update_item(self, owner: str, item_id: int, **fields) -> None:
        if "kind" in fields:
            raise ValidationError("item kind cannot be changed")
        unknown = sorted(k for k in fields if k not in _UPDATABLE)
        if unknown:
            raise ValidationError(f"unknown item field(s): {', '.join(unknown)}")
        if not fields:
            if self.get_item(owner, item_id) is None:
                raise NotFound(f"item not found: {item_id}")
            return
        cols = list(fields)
        assignments = ", ".join(f"{k} = ?" for k in cols)
        vals: List[object] = [fields[k] for k in cols]
        with self._op("update item") as c:
            c.execute(
                f"UPDATE items SET {assignments} WHERE id = ? AND owner = ?",
                (*vals, int(item_id), owner),
            )
            if c.rowcount == 0:
                raise NotFound(f"item not found: {item_id}")
            self._commit()

    def delete_item(self, owner: str, item_id: int) -> None:
        with self._op("delete item") as c:
            c.execute("DELETE FROM items WHERE id = ? AND owner = ?", (int(item_id), owner))
            if c.rowcount == 0:
                raise NotFound(f"item not found: {item_id}")
            self._commit()

    def delete_children(self, owner: str, parent_id: int, kind: str) -> int:
        with self._op("delete children") as c:
            c.execute(
                "DELETE FROM items WHERE owner = ? AND parent_id = ? AND kind = ?",
                (owner, int(parent_id), kind),
            )
            removed = max(0, int(c.rowcount))
            self._commit()
        return removed

    def set_ranks(self, owner: str, ordered_ids: Sequence[int]) -> None:
        rows = [(i + 1, int(item_id), owner) for i, item_id in enumerate(ordered_ids)]
        if not rows:
            return
        with self.transaction():
            with self._op("set ranks") as c:
                c.executemany("UPDATE items SET rank = ? WHERE id = ? AND owner = ?", rows)

    def count(self, owner: str) -> int:
        with self._op("count items") as c:
            row = c.execute("SELECT COUNT(*) FROM items WHERE owner = ?", (owner,)).fetchone()
        return int(row[0] or 0)

    @contextmanager
    def _op(self, what: str) -> Iterator[sqlite3.Cursor]:
        with self._lock:
            conn = self._connection()
            try:
                yield conn.cursor()
            except sqlite3.Error as e:
                if self._tx_depth == 0:
                    conn.rollback()
                log.debug("Store %s failed: %s", what, e)
                raise StorageError(f"{what} failed: {e}") from e

    def _commit(self) -> None:
        if self._tx_depth == 0:
            self._connection().commit()

    def _next_rank(self, c: sqlite3.Cursor, owner: str, parent_id: Optional[int], kind: str) -> int:
        row = c.execute(
            "SELECT COALESCE(MAX(rank), 0) AS r FROM items WHERE owner = ? AND kind = ? AND parent_id IS ?",
            (owner, kind, parent_id),
        ).fetchone()
        return int(row["r"]) + 1

    def _connection(self) -> sqlite3.Connection:
        if self.conn is None:
            raise StorageError("item store is not open")
        return self.conn

    def _init_schema(self) -> None:
        conn = self._connection()
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS items (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                owner TEXT NOT NULL,
                kind TEXT NOT NULL CHECK (kind IN ('category', 'folder', 'bookmark')),
                name TEXT NOT NULL,
                icon TEXT,
                parent_id INTEGER REFERENCES items(id),
                url TEXT,
                rank INTEGER NOT NULL DEFAULT 0,
                created_at TEXT NOT NULL
            )
            """
        )
        conn.execute("CREATE INDEX IF NOT EXISTS idx_items_owner_group ON items(owner, parent_id, kind, rank)")
        ver = int(conn.execute("PRAGMA user_version").fetchone()[0] or 0)
        if ver < SCHEMA_VERSION:
            conn.execute(f"PRAGMA user_version = {SCHEMA_VERSION}")
        conn.commit()


def _row_item(row: sqlite3.Row) -> Item:
    parent = row["parent_id"]
    return Item(
        id=int(row["id"]),
        owner=str(row["owner"]),
        kind=str(row["kind"]),
        name=row["name"] or "",
        icon=row["icon"],
        parent_id=int(parent) if parent is not None else None,
        url=row["url"],
        rank=int(row["rank"] or 0),
        created_at=row["created_at"] or "",
    )
