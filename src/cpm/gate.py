# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Route gate: decide, per request path, whether a session cookie is needed.

Public paths pass through. Everything else needs the session cookie; without
it the caller is sent to the login page with the original path attached as a
callback parameter. The gate does not touch storage.

With no ``session_validator`` only the cookie's presence is checked and the
real validation happens downstream (``cpm.permissions``). ``create_app`` plugs
in signed-session verification unless ``gate_verifies_session`` is off.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Iterable, Mapping, Optional, Tuple
from urllib.parse import quote

PUBLIC = "public"
PROTECTED = "protected"


@dataclass(frozen=True)
class GateDecision:
    classification: str
    allowed: bool
    redirect_to: Optional[str] = None


class RouteGate:
    def __init__(
        self,
        public_paths: Iterable[str],
        public_patterns: Iterable[re.Pattern[str]] = (),
        *,
        login_path: str = "/login",
        callback_param: str = "callbackUrl",
        cookie_name: str = "auth-token",
        session_validator: Optional[Callable[[str], bool]] = None,
    ) -> None:
        self.public_paths: Tuple[str, ...] = tuple(public_paths)
        self.public_patterns: Tuple[re.Pattern[str], ...] = tuple(public_patterns)
        self.login_path = login_path
        self.callback_param = callback_param
        self.cookie_name = cookie_name
        self.session_validator = session_validator

    def is_public(self, path: str) -> bool:
        for prefix in self.public_paths:
            if path == prefix or path.startswith(prefix + "/"):
                return True
        return any(p.match(path) for p in self.public_patterns)

    def classify(self, path: str) -> str:
        return PUBLIC if self.is_public(path) else PROTECTED

    def login_redirect(self, path: str) -> str:
        return f"{self.login_path}?{self.callback_param}={quote(path, safe='')}"

    def evaluate(self, path: str, cookies: Mapping[str, str]) -> GateDecision:
        if self.is_public(path):
            return GateDecision(classification=PUBLIC, allowed=True)

        token = cookies.get(self.cookie_name) or ""
        if token and (self.session_validator is None or self.session_validator(token)):
            return GateDecision(classification=PROTECTED, allowed=True)
        return GateDecision(classification=PROTECTED, allowed=False, redirect_to=self.login_redirect(path))
