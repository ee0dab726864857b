# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Signed session tokens.

Tokens are itsdangerous timed tokens over a small claims payload. Nothing is
kept server-side: every request re-verifies the signature and the age.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import datetime, timezone

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from mfgdash.errors import ExpiredTokenError, InvalidTokenError


@dataclass(frozen=True)
class SessionIdentity:
    user_id: str
    name: str
    business_name: str


@dataclass(frozen=True)
class SessionClaims:
    user_id: str
    name: str
    business_name: str
    issued_at: datetime
    expires_at: datetime

    @property
    def identity(self) -> SessionIdentity:
        return SessionIdentity(self.user_id, self.name, self.business_name)


class SessionManager:
    def __init__(self, secret_key: str, *, salt: str, max_age: int, refresh_age: int):
        if not secret_key:
            raise RuntimeError("Session secret is empty")
        self._serializer = URLSafeTimedSerializer(secret_key=secret_key, salt=salt)
        self.max_age = max_age
        self.refresh_age = refresh_age

    @classmethod
    def from_settings(cls, settings) -> "SessionManager":
        return cls(
            settings.secret_key,
            salt=settings.session_salt,
            max_age=settings.session_max_age,
            refresh_age=settings.session_refresh_age,
        )

    def issue(self, identity: SessionIdentity) -> str:
        return self._serializer.dumps(
            {"sub": identity.user_id, "name": identity.name, "org": identity.business_name}
        )

    def verify(self, token: str) -> SessionClaims:
        if not token:
            raise InvalidTokenError("Missing session token")
        try:
            data, signed_at = self._serializer.loads(
                token, max_age=self.max_age, return_timestamp=True
            )
        except SignatureExpired as e:
            raise ExpiredTokenError("Session token expired") from e
        except BadSignature as e:
            raise InvalidTokenError("Session token signature is invalid") from e

        if not isinstance(data, dict):
            raise InvalidTokenError("Session token payload is malformed")
        user_id = str(data.get("sub") or "").strip()
        if not user_id:
            raise InvalidTokenError("Session token has no subject")

        issued_at = signed_at.astimezone(timezone.utc)
        return SessionClaims(
            user_id=user_id,
            name=str(data.get("name") or ""),
            business_name=str(data.get("org") or ""),
            issued_at=issued_at,
            expires_at=datetime.fromtimestamp(
                issued_at.timestamp() + self.max_age, tz=timezone.utc
            ),
        )

    def needs_refresh(self, claims: SessionClaims) -> bool:
        return time.time() - claims.issued_at.timestamp() >= self.refresh_age

    def refresh(self, claims: SessionClaims) -> str:
        return self.issue(claims.identity)
