# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict

from mfgdash.auth.passwords import hash_password, verify_password
from mfgdash.auth.session import SessionClaims, SessionIdentity, SessionManager
from mfgdash.auth.users import DuplicateEmailError, UserRecord, UserStore
from mfgdash.core.validation import validate_login, validate_signup
from mfgdash.errors import AuthenticationError, ConflictError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoginResult:
    token: str
    claims: SessionClaims
    user: UserRecord


def identity_for(user: UserRecord) -> SessionIdentity:
    return SessionIdentity(user_id=user.id, name=user.full_name, business_name=user.business_name)


def _create_user(raw: Any, *, store: UserStore) -> UserRecord:
    data = validate_signup(raw)

    if store.find_by_email(data.email) is not None:
        raise ConflictError()

    try:
        user = store.create(
            email=data.email,
            full_name=data.full_name,
            business_name=data.business_name,
            password_hash=hash_password(data.password),
        )
    except DuplicateEmailError as e:
        # lost the race against a concurrent signup for the same email
        raise ConflictError() from e

    logger.info("Created user %s", user.id)
    return user


def signup(raw: Any, *, store: UserStore) -> Dict[str, str]:
    """Register a user and return its public representation (never the hash)."""
    return _create_user(raw, store=store).public()


def signup_and_start_session(raw: Any, *, store: UserStore, sessions: SessionManager) -> LoginResult:
    """Register a user and mint its session straight from the new identity.

    The plaintext password is already known to be the one just stored, so the
    second credential check a separate login would do is skipped.
    """
    user = _create_user(raw, store=store)
    token = sessions.issue(identity_for(user))
    return LoginResult(token=token, claims=sessions.verify(token), user=user)


def login(raw: Any, *, store: UserStore, sessions: SessionManager) -> LoginResult:
    creds = validate_login(raw)

    user = store.find_by_email(creds.email)
    if user is None:
        logger.info("Login failed: no such user")
        raise AuthenticationError(reason="no_such_user")

    if not verify_password(user.password_hash, creds.password):
        logger.info("Login failed for user %s: invalid password", user.id)
        raise AuthenticationError(reason="invalid_password")

    token = sessions.issue(identity_for(user))
    logger.info("User %s logged in", user.id)
    return LoginResult(token=token, claims=sessions.verify(token), user=user)
