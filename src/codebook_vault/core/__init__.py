# Core Module - Shared Utilities
#
# Core module provides functionality shared by the vault package:
# - Audit logging
# - Configuration
# - SQLite connection helper

from .audit_log import (
    AuditLogger,
    EventSeverity,
    EventType,
    get_audit_logger,
    log_security_event,
)
from .config import (
    VaultSettings,
    get_settings,
    load_settings,
    set_settings,
)
from .db import connect

__all__ = [
    # Audit Logging
    "AuditLogger",
    "EventType",
    "EventSeverity",
    "get_audit_logger",
    "log_security_event",
    # Configuration
    "VaultSettings",
    "get_settings",
    "load_settings",
    "set_settings",
    # Database
    "connect",
]
