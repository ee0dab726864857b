# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Error taxonomy shared by the handlers and the HTTP layer.

Every error carries a ``public_message`` that is safe to show to a client and
an HTTP ``status_code`` used by the app-level exception handler.
"""

from __future__ import annotations

from typing import Optional

GENERIC_ERROR_MESSAGE = "Something went wrong"
LOGIN_FAILED_MESSAGE = "Invalid email or password"


class AuthError(Exception):
    status_code = 400
    public_message = GENERIC_ERROR_MESSAGE

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.public_message)
        if message:
            self.public_message = message


class ValidationError(AuthError, ValueError):
    """Bad input shape. Names the first violated field."""

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field


class ConflictError(AuthError):
    public_message = "User with this email already exists"


class AuthenticationError(AuthError):
    """Unknown user or wrong password.

    ``reason`` is for server-side diagnostics only; both cases share the same
    public message.
    """

    status_code = 401
    public_message = LOGIN_FAILED_MESSAGE

    def __init__(self, reason: str):
        super().__init__(LOGIN_FAILED_MESSAGE)
        self.reason = reason


class TokenError(AuthError):
    status_code = 401
    public_message = "Not authenticated"


class InvalidTokenError(TokenError):
    pass


class ExpiredTokenError(TokenError):
    pass


class UnexpectedError(AuthError):
    status_code = 500
    public_message = GENERIC_ERROR_MESSAGE

    def __init__(self, detail: str = ""):
        # detail goes to logs; clients only ever see the generic message
        super().__init__(GENERIC_ERROR_MESSAGE)
        self.detail = detail

    def __str__(self) -> str:
        return self.detail or GENERIC_ERROR_MESSAGE
