# Core Module - SQLite Connection Helper
#
# Every Global Sentinel database goes through `connect()` so that all
# connections share WAL journaling, a busy timeout and explicit
# transaction control.  `transaction()` wraps a block in
# BEGIN IMMEDIATE / COMMIT and rolls back on any exception.

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Union

MEMORY = ":memory:"


def connect(
    db_path: Union[str, Path],
    *,
    row_factory: bool = False,
    check_same_thread: bool = True,
) -> sqlite3.Connection:
    """Open a SQLite connection in autocommit mode with safe PRAGMAs.

    Args:
        db_path: Path to the database file, or ``":memory:"``.
        row_factory: If True, rows come back as ``sqlite3.Row``.
        check_same_thread: Passed to sqlite3.connect().
    """
    conn = sqlite3.connect(
        str(db_path),
        check_same_thread=check_same_thread,
        isolation_level=None,
    )
    if str(db_path) != MEMORY:
        conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA busy_timeout=5000")
    if row_factory:
        conn.row_factory = sqlite3.Row
    return conn


@contextmanager
def transaction(conn: sqlite3.Connection) -> Iterator[sqlite3.Connection]:
    """All-or-nothing block: commit on success, roll back on any error."""
    conn.execute("BEGIN IMMEDIATE")
    try:
        yield conn
    except BaseException:
        conn.execute("ROLLBACK")
        raise
    else:
        conn.execute("COMMIT")
