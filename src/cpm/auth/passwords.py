# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Password credentials.

Two stored layouts are understood:

- ``<sha256-hex>:<salt-hex>``: SHA-256 over ``password + salt``, where the salt
  is the hex text of 16 random bytes.
- an argon2 PHC string (``$argon2id$...``).

Verification never raises for a bad or malformed credential; it returns False.
"""

from __future__ import annotations

import hashlib
import hmac
import secrets

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

SALTED_SHA256 = "salted-sha256"
ARGON2 = "argon2"

SALT_BYTES = 16

_PH = PasswordHasher()


def _digest(password: str, salt: str) -> str:
    return hashlib.sha256((password + salt).encode("utf-8")).hexdigest()


def _is_argon2(credential: str) -> bool:
    return credential.startswith("$argon2")


def hash_password(password: str, *, scheme: str = SALTED_SHA256) -> str:
    if scheme == SALTED_SHA256:
        salt = secrets.token_hex(SALT_BYTES)
        return f"{_digest(password, salt)}:{salt}"
    if scheme == ARGON2:
        return _PH.hash(password)
    raise ValueError(f"Unknown password scheme: {scheme!r}")


def verify_password(password: str, credential: str) -> bool:
    if not credential:
        return False
    if _is_argon2(credential):
        if not credential.isascii():
            return False
        try:
            return _PH.verify(credential, password)
        except (VerificationError, InvalidHashError):
            return False

    parts = credential.split(":")
    if len(parts) != 2 or not all(parts):
        return False
    digest, salt = parts
    return hmac.compare_digest(digest.encode("utf-8"), _digest(password, salt).encode("utf-8"))


def needs_rehash(credential: str, *, scheme: str) -> bool:
    """True when a verified credential should be re-hashed with ``scheme``.

    Only upgrades to argon2 are considered; argon2 credentials are kept when
    the configured scheme is the salted digest.
    """
    if scheme == ARGON2:
        if not _is_argon2(credential):
            return True
        try:
            return _PH.check_needs_rehash(credential)
        except InvalidHashError:
            return True
    return False
