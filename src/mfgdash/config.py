# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

# Anchor the default users.yml path to the project root (works with editable installs).
BASE_DIR = Path(__file__).resolve().parents[2]

_TRUTHY = {"1", "true", "yes", "y"}


def _flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in _TRUTHY


@dataclass(frozen=True)
class Settings:
    secret_key: str
    session_salt: str = "mfgdash.session.v1"
    session_max_age: int = 30 * 24 * 3600  # 30 days
    session_refresh_age: int = 24 * 3600
    cookie_name: str = "mfg_session"
    cookie_secure: bool = False
    users_path: Path = BASE_DIR / "data" / "users.yml"
    log_level: str = "INFO"

    def cookie_settings(self) -> dict:
        return {"httponly": True, "samesite": "lax", "secure": self.cookie_secure}


def load_settings() -> Settings:
    """Read settings from the environment. Call once at startup."""
    secret = os.getenv("SECRET_KEY") or os.getenv("MFG_SECRET_KEY")
    if not secret:
        raise RuntimeError("SECRET_KEY (or MFG_SECRET_KEY) is not set")
    return Settings(
        secret_key=secret,
        session_salt=os.getenv("MFG_SESSION_SALT", "mfgdash.session.v1"),
        session_max_age=int(os.getenv("MFG_SESSION_MAX_AGE", "2592000")),
        session_refresh_age=int(os.getenv("MFG_SESSION_REFRESH_AGE", "86400")),
        cookie_name=os.getenv("MFG_COOKIE_NAME", "mfg_session"),
        cookie_secure=_flag("MFG_COOKIE_SECURE"),
        users_path=Path(
            os.getenv("MFG_USERS_PATH", str(BASE_DIR / "data" / "users.yml"))
        ).resolve(),
        log_level=os.getenv("MFG_LOG_LEVEL", "INFO").upper(),
    )
