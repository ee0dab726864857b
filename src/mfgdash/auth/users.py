# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Credential store backed by a YAML file.

Layout of users.yml::

    version: 1
    users:
      <id>:
        email: a@b.com
        full_name: A
        business_name: Acme
        password_hash: $argon2id$...
        created_at: 2026-01-01T00:00:00+00:00
"""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional, Tuple

import yaml

from mfgdash.errors import UnexpectedError

logger = logging.getLogger(__name__)


class DuplicateEmailError(Exception):
    """Raised by the store when the unique email constraint would be violated."""


def normalize_email(email: str) -> str:
    return str(email or "").strip().lower()


@dataclass(frozen=True)
class UserRecord:
    id: str
    email: str
    full_name: str
    business_name: str
    password_hash: str
    created_at: str = ""

    def public(self) -> dict:
        return {
            "id": self.id,
            "fullName": self.full_name,
            "email": self.email,
            "businessName": self.business_name,
        }


class UserStore:
    def __init__(self, path: Path):
        self.path = Path(path)
        self._lock = threading.Lock()
        self._cache: Tuple[float, Dict[str, UserRecord]] = (0.0, {})

    def _read_raw(self) -> dict:
        if not self.path.exists():
            return {"version": 1, "users": {}}
        try:
            raw = yaml.safe_load(self.path.read_text(encoding="utf-8")) or {}
        except (OSError, yaml.YAMLError) as e:
            raise UnexpectedError(f"Cannot read user store {self.path}: {e}") from e
        if not isinstance(raw, dict):
            raw = {}
        if not isinstance(raw.get("users"), dict):
            raw["users"] = {}
        raw.setdefault("version", 1)
        return raw

    def _parse(self, raw: dict) -> Dict[str, UserRecord]:
        out: Dict[str, UserRecord] = {}
        for uid, udata in raw["users"].items():
            if not isinstance(udata, dict):
                continue
            email = normalize_email(udata.get("email"))
            if not email:
                continue
            out[email] = UserRecord(
                id=str(uid),
                email=email,
                full_name=str(udata.get("full_name") or "").strip(),
                business_name=str(udata.get("business_name") or "").strip(),
                password_hash=str(udata.get("password_hash") or "").strip(),
                created_at=str(udata.get("created_at") or ""),
            )
        return out

    def _users_by_email(self) -> Dict[str, UserRecord]:
        try:
            mtime = self.path.stat().st_mtime if self.path.exists() else 0.0
        except OSError:
            mtime = 0.0

        cached_mtime, cached_users = self._cache
        if mtime and mtime == cached_mtime and cached_users:
            return cached_users

        users = self._parse(self._read_raw())
        self._cache = (mtime, users)
        return users

    def find_by_email(self, email: str) -> Optional[UserRecord]:
        e = normalize_email(email)
        if not e:
            return None
        return self._users_by_email().get(e)

    def create(
        self,
        *,
        email: str,
        full_name: str,
        business_name: str,
        password_hash: str,
    ) -> UserRecord:
        """Persist a new user. Email uniqueness is re-checked under the store lock."""
        norm = normalize_email(email)
        with self._lock:
            raw = self._read_raw()
            if norm in self._parse(raw):
                raise DuplicateEmailError(norm)

            record = UserRecord(
                id=uuid.uuid4().hex,
                email=norm,
                full_name=full_name.strip(),
                business_name=business_name.strip(),
                password_hash=password_hash,
                created_at=datetime.now(timezone.utc).isoformat(timespec="seconds"),
            )
            raw["users"][record.id] = {
                "email": record.email,
                "full_name": record.full_name,
                "business_name": record.business_name,
                "password_hash": record.password_hash,
                "created_at": record.created_at,
            }
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                self.path.write_text(
                    yaml.safe_dump(raw, sort_keys=False, allow_unicode=True),
                    encoding="utf-8",
                )
            except OSError as e:
                raise UnexpectedError(f"Cannot write user store {self.path}: {e}") from e
            # mtime resolution can hide a same-second write; drop the cache
            self._cache = (0.0, {})

        logger.debug("Stored user %s in %s", record.id, self.path)
        return record
