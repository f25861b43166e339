# Core Module - Audit Logging
#
# Append-only audit log for vault mutations and storage failures.
# Every codebook/entry change is logged with a timestamp, event ID and
# user context. Secret material (encrypted_password, public_key, notes)
# must never be passed in `details`.

import logging
import os
import socket
import sys
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional
from uuid import uuid4

import structlog

from .config import get_settings

AUDIT_LOGGER_NAME = "codebook_vault.audit"


class EventType(str, Enum):
    """Types of vault events that can be logged."""
    # Codebook Events
    CODEBOOK_CREATED = "codebook.created"
    CODEBOOK_DELETED = "codebook.deleted"

    # Entry Events
    ENTRY_ADDED = "entry.added"
    ENTRY_UPDATED = "entry.updated"

    # Failures
    VAULT_ERROR = "vault.error"
    VAULT_ROLLBACK_FAILED = "vault.rollback.failed"


class EventSeverity(str, Enum):
    """
    Severity levels for vault events.

    - INFO: Normal activity (logged only)
    - ALERT: A write was refused by the store
    - CRITICAL: Storage failure, possibly with a failed rollback
    """
    INFO = "info"
    ALERT = "alert"
    CRITICAL = "critical"


def daily_log_path(log_dir: Path) -> Path:
    """Path of the audit file for the current local date."""
    return Path(log_dir) / f"audit_{datetime.now().strftime('%Y-%m-%d')}.log"


class DailyFileHandler(logging.FileHandler):
    """FileHandler that moves to a new audit_YYYY-MM-DD.log when the date changes."""

    def __init__(self, log_dir: Path):
        self.log_dir = Path(log_dir)
        super().__init__(daily_log_path(self.log_dir), mode='a', encoding='utf-8')

    def emit(self, record):
        # Called with the handler lock held (Handler.handle)
        path = os.path.abspath(daily_log_path(self.log_dir))
        if path != self.baseFilename:
            if self.stream is not None:
                self.stream.close()
                self.stream = None
            self.baseFilename = path
        super().emit(record)


class AuditLogger:
    """
    Append-only audit logger for vault events.

    Features:
    - Structured JSON logging (structlog)
    - Automatic timestamp and event ID
    - User and system context capture
    - One log file per day: audit_YYYY-MM-DD.log
    """

    def __init__(self, log_dir: Optional[Path] = None):
        """
        Initialize audit logger.

        Args:
            log_dir: Directory for audit logs (default: CODEBOOK_VAULT_AUDIT_DIR)
        """
        self.log_dir = Path(log_dir) if log_dir else get_settings().audit_log_dir
        self.log_dir.mkdir(parents=True, exist_ok=True)

        # Setup structured logging
        structlog.configure(
            processors=[
                structlog.stdlib.add_log_level,
                structlog.stdlib.add_logger_name,
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                structlog.processors.JSONRenderer()
            ],
            wrapper_class=structlog.stdlib.BoundLogger,
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            cache_logger_on_first_use=True,
        )

        self._file_handler: Optional["DailyFileHandler"] = None
        self._setup_file_handler()

        self.logger = structlog.get_logger(AUDIT_LOGGER_NAME)

    @property
    def log_file(self) -> Path:
        """Path of today's audit log file."""
        return daily_log_path(self.log_dir)

    def _setup_file_handler(self):
        """Attach a daily file handler to the audit logger."""
        file_handler = DailyFileHandler(self.log_dir)
        file_handler.setLevel(logging.INFO)
        file_handler.setFormatter(logging.Formatter('%(message)s'))  # structlog handles formatting

        audit_logger = logging.getLogger(AUDIT_LOGGER_NAME)
        audit_logger.addHandler(file_handler)
        audit_logger.setLevel(logging.INFO)
        self._file_handler = file_handler

    def close(self):
        """Detach and close this logger's file handler."""
        if self._file_handler is not None:
            logging.getLogger(AUDIT_LOGGER_NAME).removeHandler(self._file_handler)
            self._file_handler.close()
            self._file_handler = None

    def log_event(
        self,
        event_type: EventType,
        severity: EventSeverity,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        user_context: Optional[Dict[str, Any]] = None
    ) -> str:
        """
        Log a vault event (append-only).

        Args:
            event_type: Type of event (from EventType enum)
            severity: Severity level (from EventSeverity enum)
            message: Human-readable event description
            details: Additional event details (never secrets)
            user_context: User context (owner, session_id, etc.)

        Returns:
            str: Event ID (UUID) for reference
        """
        event_id = str(uuid4())

        event_data = {
            "event_id": event_id,
            "event_type": event_type.value,
            "severity": severity.value,
            "message": message,
            "details": details or {},
            "user_context": user_context or self._get_default_user_context(),
        }

        self.logger.info("vault_event", **event_data)

        return event_id

    def log_vault_event(
        self,
        event_type: EventType,
        message: str,
        details: Optional[Dict[str, Any]] = None
    ) -> str:
        """Log a routine vault change at INFO severity."""
        return self.log_event(
            event_type=event_type,
            severity=EventSeverity.INFO,
            message=f"Vault: {message}",
            details=details
        )

    def _get_default_user_context(self) -> Dict[str, Any]:
        """Get default user context (OS user, hostname, etc.)."""
        return {
            "os_user": os.getenv("USERNAME") or os.getenv("USER"),
            "hostname": socket.gethostname(),
            "platform": sys.platform,
        }


# Global logger instance
_audit_logger: Optional[AuditLogger] = None


def get_audit_logger() -> AuditLogger:
    """Get global audit logger (singleton pattern)."""
    global _audit_logger
    if _audit_logger is None:
        _audit_logger = AuditLogger()
    return _audit_logger


def log_security_event(
    event_type: EventType,
    severity: EventSeverity,
    message: str,
    **kwargs
) -> str:
    """
    Convenience function for logging vault events.

    Usage:
        log_security_event(
            EventType.VAULT_ERROR,
            EventSeverity.CRITICAL,
            "Commit failed",
            details={"codebook_id": 7}
        )
    """
    return get_audit_logger().log_event(event_type, severity, message, **kwargs)
