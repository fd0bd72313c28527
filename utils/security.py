"""
security helpers:
- Argon2 password hashing via argon2-cffi
- UserWrite: the command object every user-record write goes through, so a
  password is hashed exactly when the caller says it is changing
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

# argon2id with the library's default cost (tens of ms per hash)
ph = PasswordHasher()

_PASSWORD_FIELDS = ("password", "password_hash")


def hash_password(password: str) -> str:
    """Hash a plaintext password using Argon2
    """
    return ph.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a plaintext password against an Argon2 hash.
    Malformed or missing hashes never verify.
    """
    if not password or not password_hash:
        return False
    try:
        return ph.verify(password_hash, password)
    except (VerificationError, InvalidHashError):
        return False


@dataclass(frozen=True)
class UserWrite:
    """
    Fields to write onto a user record.

    `password_changing` is set by the caller; only then is `password` hashed
    into `password_hash`. Writes without it leave the stored hash alone.
    """
    fields: Dict[str, Any] = field(default_factory=dict)
    password: Optional[str] = None
    password_changing: bool = False


def prepare_user_fields(command: UserWrite) -> Dict[str, Any]:
    """Turn a UserWrite into the column values to persist."""
    leaked = [name for name in _PASSWORD_FIELDS if name in command.fields]
    if leaked:
        raise ValueError(f"password values must go through UserWrite.password, not {leaked}")

    values = dict(command.fields)
    if command.password_changing:
        if not command.password:
            raise ValueError("password_changing requires a password")
        values["password_hash"] = hash_password(command.password)
    elif command.password is not None:
        raise ValueError("password given without password_changing")
    return values
