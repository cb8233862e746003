# Intel Module - Shared Document Store
#
# SQLite-backed keyed document store.  Documents live under a namespace
# (``threats`` for published slots) and are addressed by key.
#
# ``write_batch()`` applies a list of set/delete operations inside one
# transaction: either every operation lands or none does.  This is the
# only write path the slot publisher uses.

import json
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..core.db import MEMORY, connect, transaction
from .models import isoformat, utcnow

DEFAULT_DB_PATH = "data/sentinel.db"
THREATS_NAMESPACE = "threats"


@dataclass
class BatchOp:
    """One write in a batch.  ``document=None`` deletes the key."""

    key: str
    document: Optional[Dict[str, Any]] = None

    @property
    def is_delete(self) -> bool:
        return self.document is None


class ThreatStore:
    """Keyed document store with atomic multi-document batches.

    Thread-safe via a reentrant lock around every statement; the
    connection is shared across threads.
    """

    SCHEMA_VERSION = 1

    def __init__(self, db_path: str = DEFAULT_DB_PATH):
        self.db_path = db_path
        self._lock = threading.RLock()
        if db_path != MEMORY:
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._conn = connect(db_path, check_same_thread=False, row_factory=True)
        self._create_tables()

    def _create_tables(self) -> None:
        with self._lock:
            self._conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS documents (
                    namespace   TEXT NOT NULL,
                    doc_key     TEXT NOT NULL,
                    body        TEXT NOT NULL,
                    updated_at  TEXT NOT NULL,
                    PRIMARY KEY (namespace, doc_key)
                );

                CREATE TABLE IF NOT EXISTS schema_version (
                    version INTEGER NOT NULL
                );
                """
            )
            row = self._conn.execute(
                "SELECT version FROM schema_version LIMIT 1"
            ).fetchone()
            if row is None:
                self._conn.execute(
                    "INSERT INTO schema_version (version) VALUES (?)",
                    (self.SCHEMA_VERSION,),
                )

    # ------------------------------------------------------------------
    # Write operations
    # ------------------------------------------------------------------

    def put(self, namespace: str, key: str, document: Dict[str, Any]) -> None:
        self.write_batch(namespace, [BatchOp(key, document)])

    def delete(self, namespace: str, key: str) -> None:
        self.write_batch(namespace, [BatchOp(key, None)])

    def write_batch(self, namespace: str, ops: List[BatchOp]) -> Dict[str, int]:
        """Apply every op in a single transaction.

        Returns:
            Counts of ``written`` and ``deleted`` documents.

        Raises:
            sqlite3.Error / TypeError / ValueError from any op; the whole
            batch is rolled back first.
        """
        written = 0
        deleted = 0
        with self._lock, transaction(self._conn):
            for op in ops:
                self._apply_op(namespace, op)
                if op.is_delete:
                    deleted += 1
                else:
                    written += 1
        return {"written": written, "deleted": deleted}

    def _apply_op(self, namespace: str, op: BatchOp) -> None:
        if op.is_delete:
            self._conn.execute(
                "DELETE FROM documents WHERE namespace = ? AND doc_key = ?",
                (namespace, op.key),
            )
            return
        body = json.dumps(op.document, sort_keys=True)
        self._conn.execute(
            """
            INSERT INTO documents (namespace, doc_key, body, updated_at)
            VALUES (?, ?, ?, ?)
            ON CONFLICT (namespace, doc_key)
            DO UPDATE SET body = excluded.body, updated_at = excluded.updated_at
            """,
            (namespace, op.key, body, isoformat(utcnow())),
        )

    # ------------------------------------------------------------------
    # Read operations
    # ------------------------------------------------------------------

    def get(self, namespace: str, key: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            row = self._conn.execute(
                "SELECT body FROM documents WHERE namespace = ? AND doc_key = ?",
                (namespace, key),
            ).fetchone()
        return json.loads(row["body"]) if row else None

    def list(self, namespace: str) -> Dict[str, Dict[str, Any]]:
        """All documents in a namespace, ordered by key."""
        with self._lock:
            rows = self._conn.execute(
                "SELECT doc_key, body FROM documents WHERE namespace = ? "
                "ORDER BY doc_key",
                (namespace,),
            ).fetchall()
        return {r["doc_key"]: json.loads(r["body"]) for r in rows}

    def count(self, namespace: str) -> int:
        with self._lock:
            row = self._conn.execute(
                "SELECT COUNT(*) FROM documents WHERE namespace = ?",
                (namespace,),
            ).fetchone()
        return row[0]

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            rows = self._conn.execute(
                "SELECT namespace, COUNT(*) AS n FROM documents GROUP BY namespace"
            ).fetchall()
        return {
            "db_path": self.db_path,
            "namespaces": {r["namespace"]: r["n"] for r in rows},
        }

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        self._conn.close()
