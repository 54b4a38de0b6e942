# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import hmac
import secrets

DEFAULT_TOKEN_BYTES = 32


def generate_token(byte_length: int = DEFAULT_TOKEN_BYTES) -> str:
    """Random lowercase hex string of ``2 * byte_length`` characters."""
    if byte_length < 1:
        raise ValueError(f"byte_length must be positive, got {byte_length}")
    return secrets.token_hex(byte_length)


def generate_session_token() -> str:
    return generate_token(DEFAULT_TOKEN_BYTES)


def generate_csrf_token() -> str:
    return generate_token(DEFAULT_TOKEN_BYTES)


def verify_csrf_token(expected: str, submitted: str) -> bool:
    if not expected or not submitted:
        return False
    return hmac.compare_digest(expected.encode("utf-8"), submitted.encode("utf-8"))
