# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import logging
import threading
from dataclasses import asdict, dataclass, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional, Tuple

import yaml

from cpm.auth.passwords import verify_password
from cpm.errors import UnknownUserError, UserExistsError

logger = logging.getLogger(__name__)

ROLES = ("viewer", "member", "admin")


@dataclass(frozen=True)
class UserRecord:
    email: str
    name: str
    role: str
    active: bool
    email_verified: str
    password_hash: str

    @property
    def is_verified(self) -> bool:
        return bool(self.email_verified)


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def _parse_users(raw: object) -> Dict[str, UserRecord]:
    users = (raw.get("users") or {}) if isinstance(raw, dict) else {}
    out: Dict[str, UserRecord] = {}
    for key, udata in users.items():
        if not isinstance(udata, dict):
            continue
        email = normalize_email(str(key))
        if not email:
            continue
        role = str(udata.get("role") or "member").strip().lower()
        out[email] = UserRecord(
            email=email,
            name=str(udata.get("name") or "").strip(),
            role=role if role in ROLES else "viewer",
            active=bool(udata.get("active", True)),
            email_verified=str(udata.get("email_verified") or "").strip(),
            password_hash=str(udata.get("password_hash") or "").strip(),
        )
    return out


class UserStore:
    """Users kept in a YAML file, reloaded when the file's mtime changes."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._cache: Tuple[float, Dict[str, UserRecord]] = (0.0, {})
        self._lock = threading.Lock()

    def _mtime(self) -> float:
        try:
            return self.path.stat().st_mtime if self.path.exists() else 0.0
        except OSError:
            return 0.0

    def get_users(self) -> Dict[str, UserRecord]:
        mtime = self._mtime()
        cached_mtime, cached_users = self._cache
        if mtime and mtime == cached_mtime and cached_users:
            return cached_users

        if not self.path.exists():
            users: Dict[str, UserRecord] = {}
        else:
            users = _parse_users(yaml.safe_load(self.path.read_text(encoding="utf-8")) or {})
        self._cache = (mtime, users)
        return users

    def get_user(self, email: str) -> Optional[UserRecord]:
        e = normalize_email(email)
        if not e:
            return None
        return self.get_users().get(e)

    def authenticate(self, email: str, password: str) -> Optional[UserRecord]:
        u = self.get_user(email)
        if not u or not u.active:
            logger.info("Login rejected: unknown or inactive account")
            return None
        if not verify_password(password, u.password_hash):
            logger.info("Login rejected: bad password for %s", u.email)
            return None
        return u

    # -- writes ---------------------------------------------------------

    def _write(self, users: Dict[str, UserRecord]) -> None:
        raw = {"version": 1, "users": {}}
        for email, u in users.items():
            data = asdict(u)
            data.pop("email")
            raw["users"][email] = data
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(yaml.safe_dump(raw, sort_keys=False, allow_unicode=True), encoding="utf-8")
        # Two writes within the same mtime tick would otherwise look unchanged.
        self._cache = (self._mtime(), dict(users))

    def create_user(
        self,
        email: str,
        password_hash: str,
        *,
        name: str = "",
        role: str = "member",
        active: bool = True,
        email_verified: str = "",
    ) -> UserRecord:
        e = normalize_email(email)
        if not e:
            raise ValueError("Email is required")
        with self._lock:
            users = dict(self.get_users())
            if e in users:
                raise UserExistsError(e)
            u = UserRecord(
                email=e,
                name=name.strip(),
                role=role if role in ROLES else "viewer",
                active=active,
                email_verified=email_verified,
                password_hash=password_hash,
            )
            users[e] = u
            self._write(users)
        logger.info("Created user %s (%s)", e, u.role)
        return u

    def _update(self, email: str, **changes) -> UserRecord:
        e = normalize_email(email)
        with self._lock:
            users = dict(self.get_users())
            if e not in users:
                raise UnknownUserError(e)
            u = replace(users[e], **changes)
            users[e] = u
            self._write(users)
        return u

    def set_password(self, email: str, password_hash: str) -> UserRecord:
        u = self._update(email, password_hash=password_hash)
        logger.info("Password changed for %s", u.email)
        return u

    def mark_verified(self, email: str) -> UserRecord:
        stamp = datetime.now(timezone.utc).isoformat(timespec="seconds")
        return self._update(email, email_verified=stamp)
