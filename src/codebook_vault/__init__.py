# Codebook Vault - Main Package
#
# Data-access layer for password codebooks: schema-constrained CRUD,
# cascading codebook deletes, and input validation at the boundary.

__version__ = "0.1.0"
__author__ = "Codebook Vault Team"
__description__ = "Data-access layer for encrypted password codebooks"

from .core import (
    EventType,
    EventSeverity,
    get_audit_logger,
    connect,
)
from .vault import (
    VaultRepository,
    Codebook,
    PasswordEntry,
    InvalidArgument,
    StorageError,
)

__all__ = [
    "__version__",
    "VaultRepository",
    "Codebook",
    "PasswordEntry",
    "InvalidArgument",
    "StorageError",
    "EventType",
    "EventSeverity",
    "get_audit_logger",
    "connect",
]
