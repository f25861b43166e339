# Vault Module - Record Models
#
# Plain value objects returned by VaultRepository. Column names in the
# store differ from attribute names:
#
#   Codebook.codebook_id    -> Codebook.id
#   Codebook.username       -> Codebook.owner
#   Codebook.codebook_name  -> Codebook.name
#   PasswordEntry.entry_id  -> PasswordEntry.id

import sqlite3
from dataclasses import dataclass, asdict
from typing import Any, Dict


@dataclass(frozen=True)
class Codebook:
    """A named collection of password entries owned by one user."""

    id: int
    owner: str
    name: str
    created_time: str

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "Codebook":
        return cls(
            id=row["codebook_id"],
            owner=row["username"],
            name=row["codebook_name"],
            created_time=row["created_time"],
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class PasswordEntry:
    """One stored credential.

    public_key and encrypted_password are opaque strings produced by the
    encryption layer; they are stored and returned unchanged.
    """

    id: int
    codebook_id: int
    address: str
    public_key: str
    encrypted_password: str
    notes: str
    created_time: str

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "PasswordEntry":
        return cls(
            id=row["entry_id"],
            codebook_id=row["codebook_id"],
            address=row["address"],
            public_key=row["public_key"],
            encrypted_password=row["encrypted_password"],
            notes=row["notes"] if row["notes"] is not None else "",
            created_time=row["created_time"],
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
