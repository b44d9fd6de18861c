import json
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

import aiosqlite

from config import DESIGN_DOCUMENT
from exceptions import DocumentConflict, StoreError

logger = logging.getLogger(__name__)


def timestamp() -> float:
    return datetime.now(timezone.utc).timestamp()


SCHEMA = """
CREATE TABLE IF NOT EXISTS documents (
    seq INTEGER PRIMARY KEY AUTOINCREMENT,
    id TEXT NOT NULL UNIQUE,
    rev TEXT NOT NULL,
    type TEXT,
    body TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_documents_type ON documents (type);

CREATE TABLE IF NOT EXISTS sessions (
    session_id TEXT PRIMARY KEY,
    username TEXT,
    created_at REAL NOT NULL
);
"""


@dataclass(frozen=True)
class View:
    """A secondary index over documents of one type.

    `key` is the SQL expression rows are keyed (and filtered) by, `condition`
    an optional extra filter and `sort` the secondary ordering within a key.
    """
    doc_type: str
    key: str
    condition: str = ""
    sort: str = ""


VIEWS: Dict[str, Dict[str, View]] = {
    DESIGN_DOCUMENT: {
        "forums": View(
            doc_type="forum",
            key="json_extract(body, '$.name')",
        ),
        "forum_posts": View(
            doc_type="message",
            key="json_extract(body, '$.forum_id')",
            condition="json_extract(body, '$.parent_id') = ''",
            sort="json_extract(body, '$.created_at')",
        ),
        "forum_replies": View(
            doc_type="message",
            key="json_extract(body, '$.parent_id')",
            condition="json_extract(body, '$.parent_id') != ''",
            sort="json_extract(body, '$.created_at')",
        ),
        "forum_thread_replies": View(
            doc_type="message",
            key="json_extract(body, '$.forum_id')",
            condition="json_extract(body, '$.parent_id') != ''",
            sort="json_extract(body, '$.created_at')",
        ),
    }
}


class DatabaseManager:
    """Document store over a single long-lived aiosqlite connection."""

    def __init__(self, db_path: str):
        self.db_path = db_path
        self._conn: Optional[aiosqlite.Connection] = None

    async def connect(self):
        if self._conn is not None:
            return
        try:
            # autocommit: every statement is its own transaction on the shared connection
            self._conn = await aiosqlite.connect(self.db_path, isolation_level=None)
            self._conn.row_factory = aiosqlite.Row
            await self._conn.executescript(SCHEMA)
        except aiosqlite.Error as e:
            logger.error("Could not open database %s: %s", self.db_path, e)
            raise StoreError(str(e))
        logger.info("Connected to document store at %s", self.db_path)

    async def close(self):
        if self._conn is not None:
            await self._conn.close()
            self._conn = None

    @property
    def connection(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise StoreError("Database is not connected")
        return self._conn

    async def execute_query(self, query: str, params: tuple = (), fetch_one: bool = False):
        conn = self.connection
        try:
            async with conn.execute(query, params) as cursor:
                if fetch_one:
                    return await cursor.fetchone()
                return await cursor.fetchall()
        except aiosqlite.IntegrityError:
            raise
        except aiosqlite.Error as e:
            logger.error("Store query failed: %s", e)
            raise StoreError(str(e))

    # Documents

    @staticmethod
    def _row_to_document(row) -> Dict[str, Any]:
        doc = json.loads(row["body"])
        doc["_id"] = row["id"]
        doc["_rev"] = row["rev"]
        return doc

    async def get(self, doc_id: str) -> Optional[Dict[str, Any]]:
        """Get a document by id"""
        row = await self.execute_query(
            "SELECT id, rev, body FROM documents WHERE id = ?",
            (doc_id,),
            fetch_one=True
        )
        return self._row_to_document(row) if row else None

    async def create(self, doc: Dict[str, Any]) -> Tuple[str, str, Dict[str, Any]]:
        """Insert a new document; fails with DocumentConflict if the id is taken.

        The insert is a single statement guarded by the id's UNIQUE
        constraint, so two concurrent creates of the same id cannot both win.
        """
        body = dict(doc)
        doc_id = body.pop("_id", None) or uuid.uuid4().hex
        body.pop("_rev", None)
        rev = f"1-{uuid.uuid4().hex}"

        try:
            await self.execute_query(
                "INSERT INTO documents (id, rev, type, body) VALUES (?, ?, ?, ?)",
                (doc_id, rev, body.get("type"), json.dumps(body))
            )
        except aiosqlite.IntegrityError:
            raise DocumentConflict(f"Document update conflict: {doc_id}")

        stored = dict(body, _id=doc_id, _rev=rev)
        return doc_id, rev, stored

    async def query_view(self, view_name: str, design: str = DESIGN_DOCUMENT,
                         keys: Optional[Sequence[Any]] = None, descending: bool = False) -> List[Dict[str, Any]]:
        """Query a named view, returning rows of {"id", "key", "value"}"""
        view = VIEWS.get(design, {}).get(view_name)
        if view is None:
            raise StoreError(f"Unknown view {design}/{view_name}")

        query = f"SELECT id, rev, body, {view.key} AS view_key FROM documents WHERE type = ?"
        params: list = [view.doc_type]
        if view.condition:
            query += f" AND {view.condition}"
        if keys is not None:
            if not keys:
                return []
            query += f" AND {view.key} IN ({', '.join('?' for _ in keys)})"
            params.extend(keys)

        direction = "DESC" if descending else "ASC"
        order = [f"view_key {direction}"]
        if view.sort:
            order.append(f"{view.sort} {direction}")
        order.append(f"seq {direction}")
        query += " ORDER BY " + ", ".join(order)

        rows = await self.execute_query(query, tuple(params))
        return [
            {"id": row["id"], "key": row["view_key"], "value": self._row_to_document(row)}
            for row in rows
        ]

    # Sessions

    async def get_session(self, session_id: str) -> Optional[Dict[str, Any]]:
        row = await self.execute_query(
            "SELECT session_id, username, created_at FROM sessions WHERE session_id = ?",
            (session_id,),
            fetch_one=True
        )
        return dict(row) if row else None

    async def save_session(self, session_id: str, username: Optional[str]):
        await self.execute_query("""
            INSERT INTO sessions (session_id, username, created_at)
            VALUES (?, ?, ?)
            ON CONFLICT(session_id) DO UPDATE SET username = excluded.username
        """, (session_id, username, timestamp()))

    async def delete_session(self, session_id: str):
        await self.execute_query(
            "DELETE FROM sessions WHERE session_id = ?",
            (session_id,)
        )
