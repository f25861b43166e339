# Core Module: Central SQLite Connection Helper
#
# Callers that provision a connection for VaultRepository should use
# `connect()` from this module instead of raw `sqlite3.connect()`. This
# ensures:
#
#   - WAL journal mode (concurrent readers + one writer)
#   - busy_timeout to avoid SQLITE_BUSY under contention
#   - foreign_keys enforcement on every connection
#
# The repository itself never opens or closes connections; the handle
# returned here is owned by whoever called connect().

import sqlite3
from pathlib import Path
from typing import Optional, Union

from .config import get_settings


def connect(
    db_path: Optional[Union[str, Path]] = None,
    *,
    row_factory: bool = False,
    check_same_thread: bool = True,
    busy_timeout_ms: Optional[int] = None,
) -> sqlite3.Connection:
    """Open a SQLite connection with WAL mode and safe PRAGMAs.

    Args:
        db_path: Path to the database file, or ":memory:".
                 If None, uses CODEBOOK_VAULT_DB_PATH from settings.
        row_factory: If True, set conn.row_factory = sqlite3.Row.
        check_same_thread: Passed to sqlite3.connect().
        busy_timeout_ms: Override the configured busy_timeout.

    Returns:
        sqlite3.Connection with WAL mode, busy_timeout, and foreign_keys.
    """
    settings = get_settings()
    if db_path is None:
        db_path = settings.db_path
    if str(db_path) != ":memory:":
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    if busy_timeout_ms is None:
        busy_timeout_ms = settings.busy_timeout_ms

    conn = sqlite3.connect(str(db_path), check_same_thread=check_same_thread)
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute(f"PRAGMA busy_timeout={int(busy_timeout_ms)}")
    conn.execute("PRAGMA foreign_keys=ON")
    if row_factory:
        conn.row_factory = sqlite3.Row
    return conn
