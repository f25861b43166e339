"""Tests for the structlog-backed AuditLogger."""

import json
from datetime import datetime

import pytest

import codebook_vault.core.audit_log as audit_mod
from codebook_vault.core.audit_log import (
    AuditLogger,
    EventSeverity,
    EventType,
    get_audit_logger,
    log_security_event,
)
from codebook_vault.core.config import get_settings
from codebook_vault.vault import VaultRepository


def _read_events(audit: AuditLogger):
    lines = audit.log_file.read_text(encoding="utf-8").splitlines()
    return [json.loads(line) for line in lines if line.strip()]


@pytest.fixture
def audit(tmp_path):
    logger = AuditLogger(log_dir=tmp_path / "audit")
    yield logger
    logger.close()


class TestAuditLogger:

    def test_creates_log_dir(self, tmp_path):
        logger = AuditLogger(log_dir=tmp_path / "nested" / "audit")
        try:
            assert (tmp_path / "nested" / "audit").is_dir()
        finally:
            logger.close()

    def test_log_event_writes_json(self, audit):
        event_id = audit.log_event(
            EventType.CODEBOOK_CREATED,
            EventSeverity.INFO,
            "created",
            details={"codebook_name": "Personal"},
        )
        (event,) = _read_events(audit)
        assert event["event_id"] == event_id
        assert event["event_type"] == "codebook.created"
        assert event["severity"] == "info"
        assert event["details"] == {"codebook_name": "Personal"}
        assert "timestamp" in event
        assert "hostname" in event["user_context"]

    def test_log_vault_event_prefix(self, audit):
        audit.log_vault_event(EventType.ENTRY_ADDED, "Entry added")
        (event,) = _read_events(audit)
        assert event["message"] == "Vault: Entry added"
        assert event["severity"] == "info"

    def test_explicit_user_context(self, audit):
        audit.log_event(
            EventType.VAULT_ERROR, EventSeverity.CRITICAL, "boom",
            user_context={"owner": "alice"},
        )
        (event,) = _read_events(audit)
        assert event["user_context"] == {"owner": "alice"}

    def test_event_ids_unique(self, audit):
        ids = {audit.log_vault_event(EventType.ENTRY_UPDATED, "x") for _ in range(5)}
        assert len(ids) == 5

    def test_close_detaches_handler(self, tmp_path):
        logger = AuditLogger(log_dir=tmp_path / "audit")
        logger.close()
        logger.log_vault_event(EventType.ENTRY_ADDED, "after close")
        assert _read_events(logger) == []

    def test_new_file_after_date_change(self, audit, monkeypatch):
        audit.log_vault_event(EventType.ENTRY_ADDED, "before midnight")
        first_file = audit.log_file

        class NextDay(datetime):
            @classmethod
            def now(cls, tz=None):
                return cls(2099, 1, 2, 0, 0, 1)

        monkeypatch.setattr(audit_mod, "datetime", NextDay)
        audit.log_vault_event(EventType.ENTRY_ADDED, "after midnight")

        assert audit.log_file.name == "audit_2099-01-02.log"
        assert audit.log_file != first_file
        (event,) = _read_events(audit)
        assert event["message"] == "Vault: after midnight"
        old_events = first_file.read_text(encoding="utf-8").splitlines()
        assert len(old_events) == 1
        assert json.loads(old_events[0])["message"] == "Vault: before midnight"


class TestGlobalAuditLogger:

    def test_singleton(self):
        assert get_audit_logger() is get_audit_logger()

    def test_uses_settings_dir(self):
        assert get_audit_logger().log_dir == get_settings().audit_log_dir

    def test_log_security_event(self):
        log_security_event(EventType.VAULT_ERROR, EventSeverity.ALERT, "rejected")
        events = _read_events(get_audit_logger())
        assert events[-1]["event_type"] == "vault.error"
        assert events[-1]["severity"] == "alert"

    def test_reset_between_tests(self):
        # conftest clears the singleton before every test
        assert audit_mod._audit_logger is None


class TestRepositoryAuditTrail:

    def test_mutations_recorded_without_secrets(self, conn):
        repo = VaultRepository(conn)
        repo.create_codebook("alice", "Personal")
        cb_id = repo.get_user_codebooks("alice")[0].id
        repo.add_entry(cb_id, "example.com", "PUBKEY", "SECRET", "private")
        repo.delete_codebook(cb_id)

        audit = get_audit_logger()
        events = _read_events(audit)
        assert [e["event_type"] for e in events] == [
            "codebook.created", "entry.added", "codebook.deleted",
        ]
        raw = audit.log_file.read_text(encoding="utf-8")
        assert "SECRET" not in raw
        assert "PUBKEY" not in raw
        assert "private" not in raw
