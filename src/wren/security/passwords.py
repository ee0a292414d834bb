"""Password hashing with argon2id.

Hashes are PHC-format strings (``$argon2id$v=19$...``) produced by
``argon2-cffi``, safe to store as-is in a database column.

Usage::

    from wren.security.passwords import hash_password, verify_password

    hashed = hash_password("my-password")
    ok = verify_password("my-password", hashed)
    if ok and needs_rehash(hashed):
        user.password = hash_password("my-password")
"""

import secrets
import string

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

_hasher = PasswordHasher()

_RANDOM_ALPHABET = string.ascii_letters + string.digits


def hash_password(password: str) -> str:
    """Hash *password* with argon2id.

    Raises:
        ValueError: *password* is empty.
    """
    if not password:
        msg = "Password must not be empty."
        raise ValueError(msg)
    return _hasher.hash(password)


def verify_password(password: str, phc_hash: str) -> bool:
    """True if *password* matches *phc_hash*.

    Malformed hashes and non-argon2 hashes never verify.
    """
    if not password or not phc_hash:
        return False
    try:
        return _hasher.verify(phc_hash, password)
    except (VerificationError, InvalidHashError):
        return False


def needs_rehash(phc_hash: str) -> bool:
    """True if *phc_hash* was made with weaker parameters than the current ones."""
    try:
        return _hasher.check_needs_rehash(phc_hash)
    except InvalidHashError:
        return True


def random_string(length: int = 32) -> str:
    """A cryptographically random alphanumeric string."""
    return "".join(secrets.choice(_RANDOM_ALPHABET) for _ in range(length))
