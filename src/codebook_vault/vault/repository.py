# Vault Module - Codebook Repository
#
# Data-access layer for codebooks and their password entries.
# All statements are parameterized; the codebook delete runs its two
# deletes and the commit as one transaction.
#
# Signalling:
#   InvalidArgument - malformed input, raised before any I/O
#   StorageError    - statement or transaction failure
#   False           - codebook/entry not found, or the store refused a write

import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator, List, Optional, Sequence

from ..core.audit_log import AuditLogger, EventSeverity, EventType, get_audit_logger
from ..core.config import get_settings
from .exceptions import InvalidArgument, StorageError
from .models import Codebook, PasswordEntry

logger = logging.getLogger(__name__)

CODEBOOK_NAME_MAX_LENGTH = 100
ADDRESS_MAX_LENGTH = 253
PUBLIC_KEY_MAX_LENGTH = 4096
ENCRYPTED_PASSWORD_MAX_LENGTH = 512

_NAME_PUNCTUATION = frozenset(" -_")


def validate_codebook_name(name: str) -> bool:
    """Return True if name is 1-100 ASCII letters, digits, spaces, '-' or '_'."""
    if not isinstance(name, str) or not name or len(name) > CODEBOOK_NAME_MAX_LENGTH:
        return False
    return all(
        (ch.isascii() and ch.isalnum()) or ch in _NAME_PUNCTUATION
        for ch in name
    )


def _bounded(value: str, max_length: int) -> bool:
    return isinstance(value, str) and 0 < len(value) <= max_length


def validate_entry_fields(address: str, public_key: str, encrypted_password: str) -> None:
    """
    Check the length-bounded entry fields.

    Raises:
        InvalidArgument: On the first field that is empty or too long
    """
    if not _bounded(address, ADDRESS_MAX_LENGTH):
        raise InvalidArgument(f"Address must be 1-{ADDRESS_MAX_LENGTH} characters")
    if not _bounded(public_key, PUBLIC_KEY_MAX_LENGTH):
        raise InvalidArgument(f"Public key must be 1-{PUBLIC_KEY_MAX_LENGTH} characters")
    if not _bounded(encrypted_password, ENCRYPTED_PASSWORD_MAX_LENGTH):
        raise InvalidArgument(
            f"Encrypted password must be 1-{ENCRYPTED_PASSWORD_MAX_LENGTH} characters"
        )


def _timestamp() -> str:
    # Same layout as SQLite CURRENT_TIMESTAMP plus microseconds, so rows
    # written by either sort together.
    return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S.%f")


class VaultRepository:
    """
    Repository over the Codebook and PasswordEntry tables.

    The connection is owned by the caller: the repository never opens,
    closes or locks it, and assumes exclusive use of it for the duration
    of each call.

    Schema (pre-existing):
        Codebook(codebook_id PK, username, codebook_name, created_time)
            UNIQUE(username, codebook_name)
        PasswordEntry(entry_id PK, codebook_id FK, address, public_key,
                      encrypted_password, notes, created_time)
    """

    def __init__(self, conn: sqlite3.Connection, audit_logger: Optional[AuditLogger] = None):
        """
        Args:
            conn: Live database connection
            audit_logger: Audit logger (default: process-wide audit logger)

        Raises:
            InvalidArgument: If conn is None
        """
        if conn is None:
            raise InvalidArgument("Invalid database connection")

        self.conn = conn
        self.audit_logger = audit_logger or get_audit_logger()

        # Diagnostic text of the most recent store failure
        self.last_error = ""

    # ── Codebooks ───────────────────────────────────────────────────

    def create_codebook(self, owner: str, name: str) -> bool:
        """
        Create a codebook for owner. Creating an existing (owner, name) pair
        is a successful no-op.

        Returns:
            True if the insert statement ran without error

        Raises:
            InvalidArgument: If name is not a valid codebook name
            StorageError: If the statement could not be executed
        """
        if not validate_codebook_name(name):
            raise InvalidArgument("Codebook name is invalid")

        rowcount = self._execute_write(
            """
            INSERT INTO Codebook (username, codebook_name, created_time)
            VALUES (?, ?, ?)
            ON CONFLICT(username, codebook_name) DO NOTHING
            """,
            (owner, name, _timestamp()),
            action="Create codebook",
        )
        if rowcount is None:
            return False

        if rowcount > 0:
            self.audit_logger.log_vault_event(
                EventType.CODEBOOK_CREATED,
                f"Codebook created: {name}",
                details={"owner": owner, "codebook_name": name},
            )
        else:
            logger.debug("Codebook %r already exists for %r", name, owner)
        return True

    def delete_codebook(self, codebook_id: int) -> bool:
        """
        Delete a codebook and all of its entries atomically.

        Returns:
            False if the codebook does not exist, True once both deletes
            are committed

        Raises:
            StorageError: If begin, either delete, or commit fails. The
                          transaction is rolled back before raising.
        """
        if not self._codebook_exists(codebook_id):
            return False

        if not self._begin_transaction():
            raise StorageError(f"Failed to start transaction: {self.last_error}")

        try:
            with self._in_transaction_step("Delete entries"):
                with self._statement(
                    "DELETE FROM PasswordEntry WHERE codebook_id = ?", (codebook_id,)
                ) as cursor:
                    entries_deleted = cursor.rowcount

            with self._in_transaction_step("Delete codebook"):
                with self._statement(
                    "DELETE FROM Codebook WHERE codebook_id = ?", (codebook_id,)
                ):
                    pass

            if not self._commit_transaction():
                raise StorageError(f"Commit failed: {self.last_error}")

        except BaseException as exc:
            self._rollback_after_failure(codebook_id, exc)
            raise

        self.audit_logger.log_vault_event(
            EventType.CODEBOOK_DELETED,
            f"Codebook deleted: {codebook_id}",
            details={"codebook_id": codebook_id, "entries_deleted": entries_deleted},
        )
        return True

    def get_user_codebooks(self, owner: str) -> List[Codebook]:
        """Return all codebooks owned by owner, newest first."""
        rows = self._fetch_all(
            """
            SELECT codebook_id, username, codebook_name, created_time
            FROM Codebook
            WHERE username = ?
            ORDER BY created_time DESC, codebook_id DESC
            """,
            (owner,),
        )
        return [Codebook.from_row(row) for row in rows]

    # ── Entries ─────────────────────────────────────────────────────

    def add_entry(
        self,
        codebook_id: int,
        address: str,
        public_key: str,
        encrypted_password: str,
        notes: str = "",
    ) -> bool:
        """
        Add a password entry to an existing codebook.

        Field lengths are not checked here; only update_entry validates them.

        Returns:
            False if the codebook does not exist or the store refused the
            row, True once the row is written

        Raises:
            StorageError: If the statement could not be executed
        """
        if not self._codebook_exists(codebook_id):
            return False

        rowcount = self._execute_write(
            """
            INSERT INTO PasswordEntry
            (codebook_id, address, public_key, encrypted_password, notes, created_time)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (codebook_id, address, public_key, encrypted_password, notes, _timestamp()),
            action="Add entry",
        )
        if rowcount is None:
            return False

        self.audit_logger.log_vault_event(
            EventType.ENTRY_ADDED,
            f"Entry added to codebook {codebook_id}",
            details={"codebook_id": codebook_id, "address": address},
        )
        return True

    def get_entries(
        self,
        codebook_id: int,
        address_filter: str = "",
        page: int = 0,
        page_size: Optional[int] = None,
    ) -> List[PasswordEntry]:
        """
        Return one page of a codebook's entries, newest first.

        Args:
            codebook_id: Codebook to read
            address_filter: Substring matched against address (LIKE, store collation)
            page: Zero-based page index
            page_size: Rows per page (default: CODEBOOK_VAULT_PAGE_SIZE)

        Returns:
            Matching entries; empty if none match or page is past the end
        """
        if page_size is None:
            page_size = get_settings().default_page_size

        rows = self._fetch_all(
            """
            SELECT entry_id, codebook_id, address, public_key,
                   encrypted_password, notes, created_time
            FROM PasswordEntry
            WHERE codebook_id = ?
            AND address LIKE ?
            ORDER BY created_time DESC, entry_id DESC
            LIMIT ? OFFSET ?
            """,
            (codebook_id, f"%{address_filter}%", page_size, page * page_size),
        )
        return [PasswordEntry.from_row(row) for row in rows]

    def update_entry(
        self,
        entry_id: int,
        new_address: str,
        new_public_key: str,
        new_encrypted_password: str,
        new_notes: str = "",
    ) -> bool:
        """
        Replace the stored fields of an entry.

        Returns:
            True only if a row was actually modified; False if entry_id
            does not exist

        Raises:
            InvalidArgument: If address, public key or encrypted password is
                             empty or too long
            StorageError: If the statement could not be executed
        """
        validate_entry_fields(new_address, new_public_key, new_encrypted_password)

        rowcount = self._execute_write(
            """
            UPDATE PasswordEntry SET
            address = ?,
            public_key = ?,
            encrypted_password = ?,
            notes = ?
            WHERE entry_id = ?
            """,
            (new_address, new_public_key, new_encrypted_password, new_notes, entry_id),
            action="Update entry",
        )
        if not rowcount:
            return False

        self.audit_logger.log_vault_event(
            EventType.ENTRY_UPDATED,
            f"Entry updated: {entry_id}",
            details={"entry_id": entry_id, "address": new_address},
        )
        return True

    # ── Statement helpers ───────────────────────────────────────────

    @contextmanager
    def _statement(self, sql: str, params: Sequence = ()) -> Iterator[sqlite3.Cursor]:
        """Execute sql on a fresh cursor that is closed on every exit path."""
        cursor = self.conn.cursor()
        cursor.row_factory = sqlite3.Row
        try:
            cursor.execute(sql, params)
            yield cursor
        finally:
            cursor.close()

    @contextmanager
    def _in_transaction_step(self, action: str) -> Iterator[None]:
        """Translate a driver error inside a transaction into StorageError."""
        try:
            yield
        except sqlite3.Error as e:
            self.last_error = str(e)
            raise StorageError(f"{action} failed: {e}") from e

    def _fetch_all(self, sql: str, params: Sequence) -> List[sqlite3.Row]:
        try:
            with self._statement(sql, params) as cursor:
                return cursor.fetchall()
        except sqlite3.Error as e:
            raise self._storage_error("Query", e) from e

    def _execute_write(self, sql: str, params: Sequence, action: str) -> Optional[int]:
        """
        Run a single write statement and commit it.

        If the connection was already inside a transaction the caller owns
        that transaction and nothing is committed or rolled back here.
        Connections opened with autocommit=False always have a transaction
        open, so there the write is committed through conn.commit().

        Returns:
            Affected row count, or None if the store rejected the write
            with a constraint violation
        """
        owns_transaction = self._manual_commit() or not self._transaction_open()
        try:
            with self._statement(sql, params) as cursor:
                rowcount = cursor.rowcount
            if owns_transaction and self._transaction_open():
                self.conn.commit()
            return rowcount

        except sqlite3.IntegrityError as e:
            self.last_error = str(e)
            if owns_transaction and self._transaction_open():
                self._rollback_transaction()
            logger.warning("%s rejected by store: %s", action, e)
            self.audit_logger.log_event(
                event_type=EventType.VAULT_ERROR,
                severity=EventSeverity.ALERT,
                message=f"{action} rejected: {e}",
            )
            return None

        except sqlite3.Error as e:
            if owns_transaction and self._transaction_open():
                self._rollback_transaction()
            raise self._storage_error(action, e) from e

    def _storage_error(self, action: str, exc: sqlite3.Error) -> StorageError:
        self.last_error = str(exc)
        logger.error("%s failed: %s", action, exc)
        self.audit_logger.log_event(
            event_type=EventType.VAULT_ERROR,
            severity=EventSeverity.CRITICAL,
            message=f"{action} failed: {exc}",
        )
        return StorageError(f"{action} failed: {exc}")

    def _transaction_open(self) -> bool:
        try:
            return self.conn.in_transaction
        except sqlite3.Error:
            # Closed connection
            return False

    def _codebook_exists(self, codebook_id: int) -> bool:
        rows = self._fetch_all(
            "SELECT 1 FROM Codebook WHERE codebook_id = ? LIMIT 1", (codebook_id,)
        )
        return bool(rows)

    # ── Transaction control ─────────────────────────────────────────

    def _manual_commit(self) -> bool:
        """True for connections opened with autocommit=False (Python 3.12+)."""
        return getattr(self.conn, "autocommit", None) is False

    def _run_control(self, command: str) -> bool:
        try:
            if self._manual_commit():
                # BEGIN is implicit; COMMIT and ROLLBACK go through the connection
                if command == "COMMIT":
                    self.conn.commit()
                elif command == "ROLLBACK":
                    self.conn.rollback()
                return True
            with self._statement(command):
                pass
            return True
        except sqlite3.Error as e:
            self.last_error = str(e)
            logger.error("%s failed: %s", command, e)
            return False

    def _begin_transaction(self) -> bool:
        return self._run_control("BEGIN")

    def _commit_transaction(self) -> bool:
        return self._run_control("COMMIT")

    def _rollback_transaction(self) -> bool:
        return self._run_control("ROLLBACK")

    def _rollback_after_failure(self, codebook_id: int, exc: BaseException) -> None:
        """Roll back a failed delete. The original error is what propagates."""
        self.audit_logger.log_event(
            event_type=EventType.VAULT_ERROR,
            severity=EventSeverity.CRITICAL,
            message=f"Delete codebook {codebook_id} failed: {exc}",
            details={"codebook_id": codebook_id},
        )
        # The store may already have rolled back on its own
        if not self._transaction_open() or self._rollback_transaction():
            return

        logger.error(
            "Rollback after failed delete of codebook %s also failed: %s",
            codebook_id, self.last_error,
        )
        self.audit_logger.log_event(
            event_type=EventType.VAULT_ROLLBACK_FAILED,
            severity=EventSeverity.CRITICAL,
            message=f"Rollback failed for codebook {codebook_id}: {self.last_error}",
            details={"codebook_id": codebook_id},
        )
