# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Tuple
from urllib.parse import quote

from fastapi import HTTPException, Request

from mfgdash.auth.session import SessionClaims, SessionManager
from mfgdash.errors import TokenError

logger = logging.getLogger(__name__)

LOGIN_PATH = "/login"

_UNRESOLVED = object()


@dataclass(frozen=True)
class CurrentUser:
    id: str
    name: str
    business_name: str

    @classmethod
    def from_claims(cls, claims: SessionClaims) -> "CurrentUser":
        return cls(id=claims.user_id, name=claims.name, business_name=claims.business_name)


def token_from_request(request: Request, cookie_name: str) -> Tuple[str, str]:
    """Return ``(token, source)`` where source is ``"cookie"``, ``"bearer"`` or ``""``."""
    token = request.cookies.get(cookie_name, "")
    if token:
        return token, "cookie"
    auth = request.headers.get("authorization", "")
    scheme, _, value = auth.partition(" ")
    if scheme.lower() == "bearer" and value.strip():
        return value.strip(), "bearer"
    return "", ""


def load_claims(request: Request, sessions: SessionManager, token: str) -> Optional[SessionClaims]:
    if not token:
        return None
    try:
        return sessions.verify(token)
    except TokenError as e:
        logger.debug("Rejected session token on %s: %s", request.url.path, type(e).__name__)
        return None


def resolve_session(request: Request) -> Tuple[Optional[CurrentUser], Optional[SessionClaims]]:
    """Verify the request's session and attach the user to ``request.state``."""
    app_state = request.app.state
    token, source = token_from_request(request, app_state.settings.cookie_name)
    claims = load_claims(request, app_state.sessions, token)
    user = CurrentUser.from_claims(claims) if claims else None
    request.state.user = user
    request.state.session_claims = claims
    request.state.session_source = source if claims else ""
    return user, claims


def current_user_optional(request: Request) -> Optional[CurrentUser]:
    # the middleware resolves once per request; only fall back when it did not run
    if getattr(request.state, "session_claims", _UNRESOLVED) is not _UNRESOLVED:
        return request.state.user
    user, _ = resolve_session(request)
    return user


def require_user(request: Request) -> CurrentUser:
    u = current_user_optional(request)
    if u:
        return u
    next_url = str(request.url.path)
    if request.url.query:
        next_url += "?" + request.url.query
    loc = f"{LOGIN_PATH}?next={quote(next_url, safe='/')}"
    raise HTTPException(status_code=303, headers={"Location": loc})
