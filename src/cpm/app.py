# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from fastapi import Depends, FastAPI, Form, HTTPException, Request
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from pydantic import BaseModel, EmailStr, Field, ValidationError

from cpm.auth.passwords import hash_password, needs_rehash, verify_password
from cpm.auth.session import sign_session, verify_session
from cpm.auth.tokens import generate_csrf_token
from cpm.auth.users import UserRecord, UserStore
from cpm.config import Settings
from cpm.core.utils import format_duration, sanitize_input
from cpm.errors import UnknownUserError, UserExistsError
from cpm.gate import RouteGate
from cpm.infra.token_store import EMAIL_VERIFICATION, PASSWORD_RESET, OneTimeTokenStore
from cpm.permissions import (
    CSRF_COOKIE,
    CurrentUser,
    cookie_settings,
    current_user_optional,
    require_api_user,
    require_csrf,
    require_role,
    require_user,
    safe_callback,
)

logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parent

templates = Jinja2Templates(directory=str(BASE_DIR / "templates"))
templates.env.filters["duration"] = format_duration


class LoginIn(BaseModel):
    email: str
    password: str


MIN_PASSWORD_LENGTH = 8


class RegisterIn(BaseModel):
    email: EmailStr
    password: str = Field(min_length=MIN_PASSWORD_LENGTH)
    name: str = ""


class EmailIn(BaseModel):
    email: str


class TokenIn(BaseModel):
    token: str


class ResetConfirmIn(BaseModel):
    token: str
    password: str = Field(min_length=MIN_PASSWORD_LENGTH)


class PasswordChangeIn(BaseModel):
    current_password: str
    new_password: str = Field(min_length=MIN_PASSWORD_LENGTH)


def _public_user(u: UserRecord) -> dict:
    return {
        "email": u.email,
        "name": sanitize_input(u.name),
        "role": u.role,
        "email_verified": u.email_verified or None,
    }


def _render(request: Request, template_name: str, ctx: dict, *, status_code: int = 200):
    """TemplateResponse wrapper injecting the current user."""
    base_ctx = {"current_user": getattr(request.state, "user", None)}
    return templates.TemplateResponse(request, template_name, {**base_ctx, **(ctx or {})}, status_code=status_code)


def _form_error(exc: ValidationError) -> str:
    err = exc.errors()[0]
    field = ".".join(str(p) for p in err["loc"])
    return f"{field}: {err['msg']}"


def create_app(settings: Settings) -> FastAPI:
    app = FastAPI()

    users = UserStore(settings.users_path)
    tokens = OneTimeTokenStore()

    def _session_is_valid(token: str) -> bool:
        return verify_session(token, settings) is not None

    gate = RouteGate(
        settings.public_paths,
        settings.public_patterns,
        login_path=settings.login_path,
        callback_param=settings.callback_param,
        cookie_name=settings.cookie_name,
        session_validator=_session_is_valid if settings.gate_verifies_session else None,
    )

    app.state.settings = settings
    app.state.users = users
    app.state.tokens = tokens
    app.state.gate = gate

    @app.middleware("http")
    async def _auth_middleware(request: Request, call_next):
        decision = gate.evaluate(request.url.path, request.cookies)
        if not decision.allowed:
            return RedirectResponse(url=decision.redirect_to, status_code=307)
        request.state.user = current_user_optional(request)
        return await call_next(request)

    def _login_response(u: UserRecord, resp):
        resp.set_cookie(
            settings.cookie_name,
            sign_session(u.email, settings),
            max_age=settings.session_max_age,
            **cookie_settings(settings),
        )
        return resp

    def _authenticate(email: str, password: str) -> Optional[UserRecord]:
        u = users.authenticate(email, password)
        if u and needs_rehash(u.password_hash, scheme=settings.password_scheme):
            u = users.set_password(u.email, hash_password(password, scheme=settings.password_scheme))
            logger.info("Upgraded password hash for %s to %s", u.email, settings.password_scheme)
        return u

    def _register(body: RegisterIn) -> UserRecord:
        u = users.create_user(
            str(body.email),
            hash_password(body.password, scheme=settings.password_scheme),
            name=body.name,
        )
        tokens.issue(EMAIL_VERIFICATION, u.email, settings.verification_token_ttl)
        return u

    def _request_reset(email: str) -> None:
        u = users.get_user(email)
        # Unknown emails get the same answer.
        if u and u.active:
            tokens.issue(PASSWORD_RESET, u.email, settings.reset_token_ttl)

    def _confirm_reset(body: ResetConfirmIn) -> bool:
        email = tokens.consume(PASSWORD_RESET, body.token)
        if not email:
            return False
        try:
            users.set_password(email, hash_password(body.password, scheme=settings.password_scheme))
        except UnknownUserError:
            return False
        return True

    def _verify_email(token: str) -> bool:
        email = tokens.consume(EMAIL_VERIFICATION, token)
        if not email:
            return False
        try:
            users.mark_verified(email)
        except UnknownUserError:
            return False
        return True

    def _logout_response(resp):
        resp.delete_cookie(settings.cookie_name, path="/")
        return resp

    # ------------------ Pages ------------------

    @app.get("/")
    def home(request: Request):
        if getattr(request.state, "user", None):
            return RedirectResponse(url="/dashboard", status_code=303)
        return RedirectResponse(url=settings.login_path, status_code=303)

    @app.get("/login", response_class=HTMLResponse)
    def login_get(request: Request, callbackUrl: str = "/dashboard"):
        if getattr(request.state, "user", None):
            return RedirectResponse(url=safe_callback(callbackUrl), status_code=303)
        return _render(request, "login.html", {"callback_url": safe_callback(callbackUrl), "error": ""})

    @app.post("/login")
    def login_post(
        request: Request,
        email: str = Form(...),
        password: str = Form(...),
        callbackUrl: str = Form("/dashboard"),
    ):
        u = _authenticate(email, password)
        if not u:
            return _render(
                request,
                "login.html",
                {"callback_url": safe_callback(callbackUrl), "error": "Invalid email or password"},
            )
        return _login_response(u, RedirectResponse(url=safe_callback(callbackUrl), status_code=303))

    @app.get("/dashboard", response_class=HTMLResponse)
    def dashboard(request: Request, user: CurrentUser = Depends(require_user)):
        expires = user.session.expires_at(settings.session_max_age)
        remaining_ms = (expires - datetime.now(timezone.utc)).total_seconds() * 1000
        return _render(request, "dashboard.html", {"user": user, "session_remaining_ms": remaining_ms})

    @app.post("/logout")
    def logout_post():
        return _logout_response(RedirectResponse(url=settings.login_path, status_code=303))

    @app.get("/register", response_class=HTMLResponse)
    def register_get(request: Request):
        return _render(request, "register.html", {"email": "", "name": "", "error": ""})

    @app.post("/register")
    def register_post(
        request: Request,
        email: str = Form(...),
        password: str = Form(...),
        name: str = Form(""),
    ):
        ctx = {"email": email, "name": name}
        try:
            u = _register(RegisterIn(email=email, password=password, name=name))
        except ValidationError as exc:
            return _render(request, "register.html", {**ctx, "error": _form_error(exc)}, status_code=400)
        except UserExistsError:
            return _render(request, "register.html", {**ctx, "error": "Email already registered"}, status_code=409)
        return _login_response(u, RedirectResponse(url="/dashboard", status_code=303))

    @app.get("/forgot-password", response_class=HTMLResponse)
    def forgot_password_get(request: Request):
        return _render(request, "forgot_password.html", {"sent": False})

    @app.post("/forgot-password", response_class=HTMLResponse)
    def forgot_password_post(request: Request, email: str = Form(...)):
        _request_reset(email)
        return _render(request, "forgot_password.html", {"sent": True})

    @app.get("/reset-password/{token}", response_class=HTMLResponse)
    def reset_password_get(request: Request, token: str):
        valid = tokens.peek(PASSWORD_RESET, token) is not None
        return _render(request, "reset_password.html", {"token": token, "valid": valid, "error": ""})

    @app.post("/reset-password/{token}")
    def reset_password_post(request: Request, token: str, password: str = Form(...)):
        try:
            body = ResetConfirmIn(token=token, password=password)
        except ValidationError as exc:
            ctx = {"token": token, "valid": True, "error": _form_error(exc)}
            return _render(request, "reset_password.html", ctx, status_code=400)
        if not _confirm_reset(body):
            ctx = {"token": token, "valid": False, "error": ""}
            return _render(request, "reset_password.html", ctx, status_code=400)
        return RedirectResponse(url=settings.login_path, status_code=303)

    @app.get("/verify-email/{token}", response_class=HTMLResponse)
    def verify_email_page(request: Request, token: str):
        return _render(request, "verify_email.html", {"verified": _verify_email(token)})

    # ------------------ Auth API ------------------

    @app.post("/api/auth/login")
    def api_login(body: LoginIn):
        u = _authenticate(body.email, body.password)
        if not u:
            return JSONResponse({"error": "Invalid email or password"}, status_code=400)
        return _login_response(u, JSONResponse({"success": True, "user": _public_user(u)}))

    @app.post("/api/auth/logout")
    def api_logout():
        return _logout_response(JSONResponse({"success": True}))

    @app.get("/api/auth/me")
    def api_me(user: CurrentUser = Depends(require_api_user)):
        u = users.get_user(user.email)
        return {"user": _public_user(u)}

    @app.post("/api/auth/register", status_code=201)
    def api_register(body: RegisterIn):
        try:
            u = _register(body)
        except UserExistsError:
            raise HTTPException(status_code=409, detail="Email already registered")
        return _login_response(u, JSONResponse({"success": True, "user": _public_user(u)}, status_code=201))

    @app.post("/api/auth/check-email")
    def api_check_email(body: EmailIn):
        return {"exists": users.get_user(body.email) is not None}

    @app.post("/api/auth/verify-email")
    def api_verify_email(body: TokenIn):
        if not _verify_email(body.token):
            raise HTTPException(status_code=400, detail="Invalid or expired token")
        return {"success": True}

    @app.post("/api/auth/resend-verification")
    def api_resend_verification(body: EmailIn):
        u = users.get_user(body.email)
        if u and not u.is_verified:
            tokens.issue(EMAIL_VERIFICATION, u.email, settings.verification_token_ttl)
        return {"success": True}

    @app.post("/api/auth/reset-password/request")
    def api_reset_request(body: EmailIn):
        _request_reset(body.email)
        return {"success": True}

    @app.post("/api/auth/reset-password/verify")
    def api_reset_verify(body: TokenIn):
        return {"valid": tokens.peek(PASSWORD_RESET, body.token) is not None}

    @app.post("/api/auth/reset-password/confirm")
    def api_reset_confirm(body: ResetConfirmIn):
        if not _confirm_reset(body):
            raise HTTPException(status_code=400, detail="Invalid or expired token")
        return {"success": True}

    # ------------------ User API ------------------

    @app.get("/api/csrf")
    def api_csrf():
        token = generate_csrf_token()
        resp = JSONResponse({"csrfToken": token})
        resp.set_cookie(CSRF_COOKIE, token, **{**cookie_settings(settings), "samesite": "strict"})
        return resp

    @app.post("/api/user/password", dependencies=[Depends(require_csrf)])
    def api_change_password(body: PasswordChangeIn, user: CurrentUser = Depends(require_api_user)):
        u = users.get_user(user.email)
        if not u or not verify_password(body.current_password, u.password_hash):
            raise HTTPException(status_code=400, detail="Current password is incorrect")
        users.set_password(u.email, hash_password(body.new_password, scheme=settings.password_scheme))
        return {"success": True}

    @app.get("/api/admin/users")
    def api_admin_users(user: CurrentUser = Depends(require_role("admin"))):
        return {"users": [_public_user(u) for u in users.get_users().values()]}

    return app
