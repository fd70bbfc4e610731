# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Configuration helpers for wwwdude."""

import os
from dataclasses import dataclass

from .version import __version__

DEFAULT_USER_AGENT = f"wwwdude/{__version__}"
DEFAULT_CONTENT_TYPE = "application/x-www-form-urlencoded"


def _int_env(name: str, default: int) -> int:
    try:
        value = os.getenv(name)
        return int(value) if value is not None else default
    except ValueError:
        return default


def _bool_env(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _optional_float_env(name: str, default: float | None) -> float | None:
    try:
        value = os.getenv(name)
        if value is None:
            return default
        parsed = float(value)
        return parsed if parsed > 0 else None
    except ValueError:
        return default


@dataclass
class ClientSettings:
    """Client defaults applied when create_client() is not given explicit values."""

    timeout: float | None = None
    follow_redirects: bool = True
    max_redirects: int = 10
    user_agent: str = DEFAULT_USER_AGENT
    verify_ssl: bool = True
    default_content_type: str = DEFAULT_CONTENT_TYPE

    @classmethod
    def from_env(cls) -> "ClientSettings":
        """Create settings from environment variables (evaluated at call time)."""
        max_redirects = _int_env("WWWDUDE_MAX_REDIRECTS", cls.max_redirects)
        if max_redirects < 0:
            max_redirects = cls.max_redirects
        return cls(
            timeout=_optional_float_env("WWWDUDE_TIMEOUT", cls.timeout),
            follow_redirects=_bool_env("WWWDUDE_FOLLOW_REDIRECTS", cls.follow_redirects),
            max_redirects=max_redirects,
            user_agent=os.getenv("WWWDUDE_USER_AGENT", cls.user_agent),
            verify_ssl=_bool_env("WWWDUDE_VERIFY_SSL", cls.verify_ssl),
            default_content_type=os.getenv("WWWDUDE_DEFAULT_CONTENT_TYPE", cls.default_content_type),
        )


def load_client_settings() -> ClientSettings:
    """Load client settings from environment with sensible defaults."""
    return ClientSettings.from_env()
