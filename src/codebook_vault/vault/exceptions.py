"""
Vault Exception Classes

Not-found conditions are reported as False return values, never as
exceptions.
"""


class VaultError(Exception):
    """Base exception for vault repository operations"""
    pass


class InvalidArgument(VaultError, ValueError):
    """Raised when caller input is malformed (connection, name, field lengths)"""
    pass


class StorageError(VaultError):
    """Raised when a statement or transaction step fails in the store"""
    pass
