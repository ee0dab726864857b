# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Authentication building blocks.

This package provides:
- Password hashing/verification (argon2)
- The credential store backed by data/users.yml
- Signed, time-bound session tokens (itsdangerous)
"""
