# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Runtime configuration.

Settings are read from the environment once, at process start, and handed to
``create_app``. Nothing here runs at import time.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional, Tuple

BASE_DIR = Path(__file__).resolve().parents[2]

PUBLIC_PATHS: Tuple[str, ...] = (
    "/",
    "/login",
    "/register",
    "/forgot-password",
    "/reset-password",
    "/verify-email",
    "/api/auth/login",
    "/api/auth/register",
    "/api/auth/reset-password",
    "/api/auth/check-email",
    "/api/auth/verify-email",
    "/api/auth/resend-verification",
)

PUBLIC_PATTERNS: Tuple[re.Pattern[str], ...] = (re.compile(r"^/api/auth/reset-password/"),)

PASSWORD_SCHEMES = ("salted-sha256", "argon2")

_TRUTHY = {"1", "true", "yes", "y"}


def _flag(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in _TRUTHY


@dataclass(frozen=True)
class Settings:
    secret_key: str
    session_salt: str = "cpm.session.v1"
    cookie_name: str = "auth-token"
    cookie_secure: bool = False
    session_max_age: int = 60 * 60 * 24 * 7
    users_path: Path = BASE_DIR / "data" / "users.yml"
    password_scheme: str = "salted-sha256"
    public_paths: Tuple[str, ...] = PUBLIC_PATHS
    public_patterns: Tuple[re.Pattern[str], ...] = PUBLIC_PATTERNS
    login_path: str = "/login"
    callback_param: str = "callbackUrl"
    gate_verifies_session: bool = True
    reset_token_ttl: int = 60 * 60
    verification_token_ttl: int = 60 * 60 * 24
    log_level: str = "INFO"
    host: str = "127.0.0.1"
    port: int = 8000
    reload: bool = False

    def __post_init__(self) -> None:
        if not self.secret_key:
            raise RuntimeError("Missing CPM_SECRET_KEY (or SECRET_KEY)")
        if self.password_scheme not in PASSWORD_SCHEMES:
            raise ValueError(f"Unknown password scheme: {self.password_scheme!r}")

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if env is None else env
        secret = env.get("CPM_SECRET_KEY") or env.get("SECRET_KEY") or ""
        users_path = env.get("CPM_USERS_PATH")
        return cls(
            secret_key=secret,
            session_salt=env.get("CPM_SESSION_SALT", "cpm.session.v1"),
            cookie_name=env.get("CPM_COOKIE_NAME", "auth-token"),
            cookie_secure=_flag(env, "CPM_COOKIE_SECURE", False),
            session_max_age=int(env.get("CPM_SESSION_MAX_AGE", str(60 * 60 * 24 * 7))),
            users_path=Path(users_path).resolve() if users_path else BASE_DIR / "data" / "users.yml",
            password_scheme=env.get("CPM_PASSWORD_SCHEME", "salted-sha256").strip().lower(),
            gate_verifies_session=_flag(env, "CPM_GATE_VERIFIES_SESSION", True),
            log_level=env.get("CPM_LOG_LEVEL", "INFO").strip().upper(),
            host=env.get("CPM_HOST", "127.0.0.1"),
            port=int(env.get("CPM_PORT", "8000")),
            reload=_flag(env, "CPM_RELOAD", False),
        )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
    )
