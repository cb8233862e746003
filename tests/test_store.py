"""
Tests for the SQLite document store and connection helpers.
"""

import sqlite3

import pytest

from global_sentinel.core.db import MEMORY, connect, transaction
from global_sentinel.intel.store import BatchOp, ThreatStore


class FailingStore(ThreatStore):
    """Store whose Nth operation in a batch raises."""

    def __init__(self, db_path, fail_on_key):
        super().__init__(db_path)
        self.fail_on_key = fail_on_key

    def _apply_op(self, namespace, op):
        if op.key == self.fail_on_key:
            raise sqlite3.OperationalError("disk I/O error")
        super()._apply_op(namespace, op)


# ===================================================================
# Connection helpers
# ===================================================================

class TestConnect:
    def test_wal_enabled_for_files(self, tmp_path):
        conn = connect(tmp_path / "x.db")
        mode = conn.execute("PRAGMA journal_mode").fetchone()[0]
        conn.close()
        assert mode.lower() == "wal"

    def test_memory(self):
        conn = connect(MEMORY, row_factory=True)
        row = conn.execute("SELECT 1 AS one").fetchone()
        conn.close()
        assert row["one"] == 1

    def test_transaction_rolls_back(self):
        conn = connect(MEMORY)
        conn.execute("CREATE TABLE t (v INTEGER)")
        with pytest.raises(RuntimeError):
            with transaction(conn):
                conn.execute("INSERT INTO t VALUES (1)")
                raise RuntimeError("boom")
        assert conn.execute("SELECT COUNT(*) FROM t").fetchone()[0] == 0
        conn.close()


# ===================================================================
# ThreatStore
# ===================================================================

class TestThreatStore:
    def test_put_get(self, store):
        store.put("threats", "threat_001", {"title": "A"})
        assert store.get("threats", "threat_001") == {"title": "A"}

    def test_get_missing(self, store):
        assert store.get("threats", "nope") is None

    def test_upsert(self, store):
        store.put("threats", "k", {"v": 1})
        store.put("threats", "k", {"v": 2})
        assert store.get("threats", "k") == {"v": 2}
        assert store.count("threats") == 1

    def test_delete(self, store):
        store.put("threats", "k", {"v": 1})
        store.delete("threats", "k")
        assert store.get("threats", "k") is None

    def test_delete_missing_is_noop(self, store):
        store.delete("threats", "never-there")
        assert store.count("threats") == 0

    def test_namespaces_isolated(self, store):
        store.put("threats", "k", {"v": 1})
        store.put("other", "k", {"v": 2})
        assert store.get("threats", "k") == {"v": 1}
        assert store.stats()["namespaces"] == {"other": 1, "threats": 1}

    def test_list_ordered_by_key(self, store):
        for key in ("threat_003", "threat_001", "threat_002"):
            store.put("threats", key, {"k": key})
        assert list(store.list("threats")) == ["threat_001", "threat_002", "threat_003"]

    def test_write_batch_counts(self, store):
        store.put("threats", "gone", {"v": 0})
        counts = store.write_batch(
            "threats", [BatchOp("a", {"v": 1}), BatchOp("b", {"v": 2}), BatchOp("gone")]
        )
        assert counts == {"written": 2, "deleted": 1}
        assert set(store.list("threats")) == {"a", "b"}

    def test_persists_across_instances(self, tmp_path):
        path = str(tmp_path / "persist.db")
        s1 = ThreatStore(path)
        s1.put("threats", "k", {"v": 1})
        s1.close()
        s2 = ThreatStore(path)
        assert s2.get("threats", "k") == {"v": 1}
        s2.close()


class TestBatchAtomicity:
    def test_failure_mid_batch_rolls_back(self, tmp_path):
        s = FailingStore(str(tmp_path / "fail.db"), fail_on_key="c")
        s.write_batch("threats", [BatchOp("a", {"v": "old-a"}), BatchOp("b", {"v": "old-b"})])

        with pytest.raises(sqlite3.OperationalError):
            s.write_batch(
                "threats",
                [BatchOp("a", {"v": "new-a"}), BatchOp("b"), BatchOp("c", {"v": "new-c"})],
            )

        assert s.list("threats") == {"a": {"v": "old-a"}, "b": {"v": "old-b"}}
        s.close()
