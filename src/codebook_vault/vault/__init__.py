# Vault Module - Codebook Repository
#
# Stores codebooks and their password entries. Encryption happens
# elsewhere: public keys and encrypted passwords are opaque strings here.

from .exceptions import InvalidArgument, StorageError, VaultError
from .models import Codebook, PasswordEntry
from .repository import (
    VaultRepository,
    validate_codebook_name,
    validate_entry_fields,
)

__all__ = [
    "VaultRepository",
    "Codebook",
    "PasswordEntry",
    "VaultError",
    "InvalidArgument",
    "StorageError",
    "validate_codebook_name",
    "validate_entry_fields",
]
