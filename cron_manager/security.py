"""Password hashing helpers (scrypt)."""

import os

from cryptography.exceptions import InvalidKey
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

_SALT_BYTES = 16
_KEY_LENGTH = 64


def _kdf(salt: bytes) -> Scrypt:
    return Scrypt(salt=salt, length=_KEY_LENGTH, n=2**14, r=8, p=1)


def hash_password(password: str) -> str:
    """Return ``<salt hex>$<hash hex>``."""
    salt = os.urandom(_SALT_BYTES)
    derived = _kdf(salt).derive(password.encode())
    return f"{salt.hex()}${derived.hex()}"


def verify_password(stored: str, supplied: str) -> bool:
    try:
        salt_hex, hash_hex = stored.split("$", 1)
        salt, expected = bytes.fromhex(salt_hex), bytes.fromhex(hash_hex)
    except ValueError:
        return False
    try:
        _kdf(salt).verify(supplied.encode(), expected)
    except InvalidKey:
        return False
    return True
