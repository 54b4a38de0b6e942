# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fastapi import HTTPException, Request

from cpm.auth.session import SessionData, verify_session
from cpm.auth.tokens import verify_csrf_token
from cpm.config import Settings

ROLE_ORDER = {"viewer": 0, "member": 1, "admin": 2}

CSRF_COOKIE = "csrf_token"
CSRF_HEADER = "x-csrf-token"


def _rank(role: str) -> int:
    return ROLE_ORDER.get((role or "viewer").strip().lower(), 0)


@dataclass(frozen=True)
class CurrentUser:
    email: str
    name: str
    role: str
    email_verified: bool
    session: SessionData


def _settings(request: Request) -> Settings:
    return request.app.state.settings


def load_user_from_request(request: Request) -> Optional[CurrentUser]:
    settings = _settings(request)
    token = request.cookies.get(settings.cookie_name, "")
    sess = verify_session(token, settings)
    if not sess:
        return None
    u = request.app.state.users.get_user(sess.email)
    if not u or not u.active:
        return None
    return CurrentUser(
        email=u.email,
        name=u.name,
        role=(u.role or "viewer").lower(),
        email_verified=u.is_verified,
        session=sess,
    )


def current_user_optional(request: Request) -> Optional[CurrentUser]:
    u = getattr(request.state, "user", None)
    if u is not None:
        return u
    return load_user_from_request(request)


def require_user(request: Request) -> CurrentUser:
    u = current_user_optional(request)
    if u:
        return u
    loc = request.app.state.gate.login_redirect(request.url.path)
    raise HTTPException(status_code=303, headers={"Location": loc})


def require_api_user(request: Request) -> CurrentUser:
    u = current_user_optional(request)
    if u:
        return u
    raise HTTPException(status_code=401, detail="Not authenticated")


def require_role(min_role: str):
    def _dep(request: Request) -> CurrentUser:
        u = require_api_user(request)
        if _rank(u.role) < _rank(min_role):
            raise HTTPException(status_code=403, detail="Forbidden")
        return u

    return _dep


def require_csrf(request: Request) -> None:
    if not verify_csrf_token(request.cookies.get(CSRF_COOKIE, ""), request.headers.get(CSRF_HEADER, "")):
        raise HTTPException(status_code=403, detail="Invalid CSRF token")


def safe_callback(url: Optional[str], default: str = "/dashboard") -> str:
    """Only local absolute paths are allowed as post-login destinations."""
    u = (url or "").strip()
    if not u.startswith("/") or u.startswith("//") or "\\" in u:
        return default
    return u


def cookie_settings(settings: Settings) -> dict:
    return {"httponly": True, "samesite": "lax", "secure": settings.cookie_secure, "path": "/"}
