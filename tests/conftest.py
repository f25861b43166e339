"""
Shared pytest fixtures for the Codebook Vault test suite.

Autouse fixtures below isolate tests from live application data:
  - Settings     -> temp directory  (no .env lookup, no data/ writes)
  - Audit logger -> temp directory  (prevents test events in ./audit_logs)
"""

import pytest

from codebook_vault.core.config import VaultSettings, set_settings
from codebook_vault.core.db import connect as db_connect
from codebook_vault.vault import VaultRepository

SCHEMA = """
CREATE TABLE IF NOT EXISTS Codebook (
    codebook_id   INTEGER PRIMARY KEY AUTOINCREMENT,
    username      TEXT NOT NULL,
    codebook_name TEXT NOT NULL,
    created_time  TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
    UNIQUE (username, codebook_name)
);

CREATE TABLE IF NOT EXISTS PasswordEntry (
    entry_id           INTEGER PRIMARY KEY AUTOINCREMENT,
    codebook_id        INTEGER NOT NULL REFERENCES Codebook(codebook_id),
    address            TEXT NOT NULL,
    public_key         TEXT NOT NULL,
    encrypted_password TEXT NOT NULL,
    notes              TEXT,
    created_time       TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
);
"""


@pytest.fixture(autouse=True)
def _isolate_settings(tmp_path):
    """Pin settings to a temp directory for every test.

    Without this, the first get_settings() call would read a developer's
    .env file and point the audit log and default database at real paths.
    """
    set_settings(VaultSettings(
        db_path=tmp_path / "data" / "codebook_vault.db",
        audit_log_dir=tmp_path / "audit_logs",
    ))

    yield

    set_settings(None)


@pytest.fixture(autouse=True)
def _isolate_audit_logs(_isolate_settings):
    """Reset the global AuditLogger for every test.

    The next get_audit_logger() call creates a fresh instance writing to
    the temp audit directory; its file handler is detached afterwards.
    """
    import codebook_vault.core.audit_log as audit_mod

    old_logger = audit_mod._audit_logger
    audit_mod._audit_logger = None

    yield

    if audit_mod._audit_logger is not None:
        audit_mod._audit_logger.close()
    audit_mod._audit_logger = old_logger


@pytest.fixture
def conn(tmp_path):
    """Connection to a fresh vault database with the schema in place."""
    conn = db_connect(tmp_path / "vault.db")
    conn.executescript(SCHEMA)
    yield conn
    conn.close()


@pytest.fixture
def repo(conn):
    return VaultRepository(conn)


@pytest.fixture
def schema_sql():
    """The vault DDL, for tests that open their own connections."""
    return SCHEMA
