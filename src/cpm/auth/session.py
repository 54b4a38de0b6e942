# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from itsdangerous import BadSignature, BadTimeSignature, SignatureExpired, URLSafeTimedSerializer

from cpm.auth.tokens import generate_session_token
from cpm.config import Settings


def _serializer(settings: Settings) -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(secret_key=settings.secret_key, salt=settings.session_salt)


@dataclass(frozen=True)
class SessionData:
    email: str
    session_id: str
    issued_at: datetime

    def expires_at(self, max_age: int) -> datetime:
        return datetime.fromtimestamp(self.issued_at.timestamp() + max_age, tz=timezone.utc)


def sign_session(email: str, settings: Settings) -> str:
    s = _serializer(settings)
    return s.dumps({"u": email, "sid": generate_session_token()})


def verify_session(token: str, settings: Settings, *, max_age: Optional[int] = None) -> Optional[SessionData]:
    if not token:
        return None
    s = _serializer(settings)
    try:
        data, issued_at = s.loads(
            token,
            max_age=settings.session_max_age if max_age is None else max_age,
            return_timestamp=True,
        )
    except (SignatureExpired, BadTimeSignature, BadSignature):
        return None
    if not isinstance(data, dict):
        return None
    u = str(data.get("u") or "").strip()
    if not u:
        return None
    return SessionData(email=u, session_id=str(data.get("sid") or ""), issued_at=issued_at)
