# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Single-use, expiring tokens for password resets and email verification.

Tokens carry no structure; expiry and ownership live here. Issuing a new
token for the same (purpose, email) pair replaces the previous one, and a
consumed token is deleted.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

from cpm.auth.tokens import generate_token

logger = logging.getLogger(__name__)

PASSWORD_RESET = "password-reset"
EMAIL_VERIFICATION = "email-verification"


@dataclass(frozen=True)
class TokenRecord:
    token: str
    purpose: str
    email: str
    expires_at: float


class OneTimeTokenStore:
    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._by_token: Dict[Tuple[str, str], TokenRecord] = {}
        self._by_owner: Dict[Tuple[str, str], str] = {}

    def issue(self, purpose: str, email: str, ttl_seconds: int) -> str:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        token = generate_token()
        rec = TokenRecord(token=token, purpose=purpose, email=email, expires_at=self._clock() + ttl_seconds)
        with self._lock:
            old = self._by_owner.pop((purpose, email), None)
            if old is not None:
                self._by_token.pop((purpose, old), None)
            self._by_token[(purpose, token)] = rec
            self._by_owner[(purpose, email)] = token
        logger.debug("Issued %s token for %s", purpose, email)
        return token

    def _live(self, purpose: str, token: str) -> Optional[TokenRecord]:
        rec = self._by_token.get((purpose, token))
        if rec is None:
            return None
        if rec.expires_at <= self._clock():
            self._drop(rec)
            return None
        return rec

    def _drop(self, rec: TokenRecord) -> None:
        self._by_token.pop((rec.purpose, rec.token), None)
        if self._by_owner.get((rec.purpose, rec.email)) == rec.token:
            del self._by_owner[(rec.purpose, rec.email)]

    def peek(self, purpose: str, token: str) -> Optional[str]:
        """Email owning an unexpired token, without using it up."""
        if not token:
            return None
        with self._lock:
            rec = self._live(purpose, token)
        return rec.email if rec else None

    def consume(self, purpose: str, token: str) -> Optional[str]:
        if not token:
            return None
        with self._lock:
            rec = self._live(purpose, token)
            if rec is None:
                return None
            self._drop(rec)
        logger.debug("Consumed %s token for %s", purpose, rec.email)
        return rec.email

    def purge_expired(self) -> int:
        now = self._clock()
        with self._lock:
            expired = [r for r in self._by_token.values() if r.expires_at <= now]
            for rec in expired:
                self._drop(rec)
        return len(expired)
