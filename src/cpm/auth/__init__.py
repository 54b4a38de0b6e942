# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Authentication helpers.

This package provides:
- Password hashing/verification (salted SHA-256 credentials, argon2)
- Opaque random tokens for sessions, CSRF, resets and verification
- Signed session cookies (itsdangerous)
- User store loading from data/users.yml
"""
