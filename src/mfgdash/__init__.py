# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Manufacturing dashboard shell: credential signup, login and session-gated pages."""

__version__ = "0.1.0"
