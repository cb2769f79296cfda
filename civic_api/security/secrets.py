"""Helpers for reading credentials without accepting template defaults."""
from __future__ import annotations

import os
from typing import Final

__all__ = ["MissingSecretError", "require_secret", "require_value", "is_placeholder"]


class MissingSecretError(RuntimeError):
    """Raised when a required credential is absent or still a placeholder."""


_PLACEHOLDER_VALUES: Final[set[str]] = {
    "changeme",
    "change-me",
    "placeholder",
    "example",
    "sample",
    "your-key-here",
    "your-secret-here",
    "xxx",
}


def is_placeholder(value: str | None) -> bool:
    if not value:
        return True
    normalized = value.strip().lower()
    return not normalized or normalized in _PLACEHOLDER_VALUES


def require_value(name: str, value: str | None) -> str:
    """Validate an already-loaded setting and return it trimmed."""

    if is_placeholder(value):
        raise MissingSecretError(f"{name} is required and must not use placeholder defaults")
    return value.strip()  # type: ignore[union-attr]


def require_secret(name: str) -> str:
    """Read ``name`` from the environment or raise :class:`MissingSecretError`."""

    return require_value(name, os.getenv(name))
