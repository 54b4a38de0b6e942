#!/usr/bin/env python3
from __future__ import annotations

from getpass import getpass

from cpm.auth.passwords import hash_password
from cpm.auth.users import ROLES, UserStore
from cpm.config import Settings
from cpm.errors import UserExistsError


def main() -> None:
    settings = Settings.from_env()
    store = UserStore(settings.users_path)

    email = input("Email: ").strip()
    name = input("Name: ").strip()
    role = (input(f"Role [{'/'.join(ROLES)}]: ").strip().lower() or "member")
    active_in = input("Active? [Y/n]: ").strip().lower()
    active = (active_in != "n")

    pw1 = getpass("Password: ")
    pw2 = getpass("Repeat password: ")
    if pw1 != pw2:
        raise SystemExit("Passwords do not match")

    try:
        store.create_user(
            email,
            hash_password(pw1, scheme=settings.password_scheme),
            name=name,
            role=role,
            active=active,
        )
    except UserExistsError as exc:
        raise SystemExit(str(exc))
    print(f"OK -> {store.path}")


if __name__ == "__main__":
    main()
