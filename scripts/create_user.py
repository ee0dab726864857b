#!/usr/bin/env python3
from __future__ import annotations

import os
from getpass import getpass
from pathlib import Path

from mfgdash.auth.users import UserStore
from mfgdash.config import BASE_DIR
from mfgdash.errors import ConflictError, ValidationError
from mfgdash.services.auth_service import signup

USERS_PATH = Path(os.getenv("MFG_USERS_PATH", str(BASE_DIR / "data" / "users.yml"))).resolve()


def main() -> None:
    full_name = input("Full name: ").strip()
    business_name = input("Business name: ").strip()
    email = input("Email: ").strip()

    pw1 = getpass("Password: ")
    pw2 = getpass("Repeat password: ")
    if pw1 != pw2:
        raise SystemExit("Passwords do not match")

    payload = {
        "fullName": full_name,
        "email": email,
        "password": pw1,
        "businessName": business_name,
    }
    try:
        user = signup(payload, store=UserStore(USERS_PATH))
    except ValidationError as e:
        raise SystemExit(f"{e.field}: {e.public_message}")
    except ConflictError as e:
        raise SystemExit(e.public_message)
    print(f"OK {user['id']} -> {USERS_PATH}")


if __name__ == "__main__":
    main()
