# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations


class CpmError(Exception):
    """Base class for domain errors raised by cpm services."""


class UserExistsError(CpmError):
    def __init__(self, email: str) -> None:
        super().__init__(f"User already exists: {email}")
        self.email = email


class UnknownUserError(CpmError):
    def __init__(self, email: str) -> None:
        super().__init__(f"Unknown user: {email}")
        self.email = email
