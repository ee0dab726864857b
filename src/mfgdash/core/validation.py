# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Input validation for the signup and login forms.

A schema is an ordered list of field rules. Validation stops at the first
failing rule and raises ``ValidationError`` naming that field, so the UI shows
one message at a time.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Sequence

from mfgdash.errors import ValidationError

EMAIL_RE = re.compile(r"^[A-Za-z0-9.!#$%&'*+/=?^_`{|}~-]+@[A-Za-z0-9](?:[A-Za-z0-9-]*[A-Za-z0-9])?(?:\.[A-Za-z0-9](?:[A-Za-z0-9-]*[A-Za-z0-9])?)+$")

MIN_PASSWORD_LENGTH = 6

_MISSING = object()


@dataclass(frozen=True)
class Rule:
    field: str
    check: Callable[[Any], bool]
    message: str

    def apply(self, data: Mapping[str, Any]) -> None:
        value = data.get(self.field, _MISSING)
        if value is not _MISSING and value is not None and not isinstance(value, str):
            raise ValidationError(self.field, f"{self.field} must be a string")
        if not self.check(value):
            raise ValidationError(self.field, self.message)


def _text(value: Any) -> str:
    if value is _MISSING or value is None:
        return ""
    return str(value)


def required(field: str, message: str) -> Rule:
    return Rule(field, lambda v: bool(_text(v).strip()), message)


def email(field: str, message: str = "Invalid email address") -> Rule:
    return Rule(field, lambda v: bool(EMAIL_RE.match(_text(v).strip())), message)


def min_length(field: str, n: int, message: str) -> Rule:
    return Rule(field, lambda v: len(_text(v)) >= n, message)


class Schema:
    def __init__(self, rules: Sequence[Rule]):
        self.rules = list(rules)

    def validate(self, data: Any) -> Dict[str, str]:
        if not isinstance(data, Mapping):
            data = {}
        for rule in self.rules:
            rule.apply(data)
        fields = {r.field for r in self.rules}
        return {f: _text(data.get(f, _MISSING)) for f in fields}


SIGNUP_SCHEMA = Schema(
    [
        required("fullName", "Full name is required"),
        email("email"),
        min_length("password", MIN_PASSWORD_LENGTH, "Password must be at least 6 characters long"),
        required("businessName", "Business name is required"),
    ]
)

LOGIN_SCHEMA = Schema(
    [
        required("email", "Please provide both email and password"),
        required("password", "Please provide both email and password"),
        email("email"),
        min_length("password", MIN_PASSWORD_LENGTH, "Password must be at least 6 characters"),
    ]
)


@dataclass(frozen=True)
class SignupData:
    full_name: str
    email: str
    password: str
    business_name: str

    def __repr__(self) -> str:
        return f"SignupData(full_name={self.full_name!r}, email={self.email!r}, business_name={self.business_name!r})"


@dataclass(frozen=True)
class LoginCredentials:
    email: str
    password: str

    def __repr__(self) -> str:
        return f"LoginCredentials(email={self.email!r})"


def validate_signup(raw: Any) -> SignupData:
    v = SIGNUP_SCHEMA.validate(raw)
    return SignupData(
        full_name=v["fullName"].strip(),
        email=v["email"].strip().lower(),
        password=v["password"],
        business_name=v["businessName"].strip(),
    )


def validate_login(raw: Any) -> LoginCredentials:
    v = LOGIN_SCHEMA.validate(raw)
    return LoginCredentials(email=v["email"].strip().lower(), password=v["password"])
