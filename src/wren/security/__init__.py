"""Security utilities: CSRF tokens, password hashing and redirect checks.

Password hashing::

    from wren.security import hash_password, verify_password

    hashed = hash_password("my-password")
    ok = verify_password("my-password", hashed)
"""

from wren.security.csrf import Csrf
from wren.security.passwords import hash_password, needs_rehash, random_string, verify_password
from wren.security.urls import is_safe_url

__all__ = [
    "Csrf",
    "hash_password",
    "is_safe_url",
    "needs_rehash",
    "random_string",
    "verify_password",
]
