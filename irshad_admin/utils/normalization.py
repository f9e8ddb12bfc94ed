"""
Normalization helpers for contact values.

Emails are compared lower-cased and trimmed; phones are stored and compared
as bare digit strings so formatting differences never split an identity.
"""

from __future__ import annotations

import re

_EXTENSION_PATTERN = re.compile(r"\s*(x|ext|extension|#)\s*\d+.*$", flags=re.IGNORECASE)


def normalize_email(value: object | None) -> str | None:
    """Lower-case and trim an email address; blank values become None."""

    if value is None:
        return None
    token = str(value).strip().lower()
    return token or None


def normalize_phone(value: object | None) -> str | None:
    """
    Reduce a phone number to its digits.

    - Strips extensions (x123, ext 123, #123)
    - Drops formatting characters and a leading '+' or '00'
    """

    if value is None:
        return None
    token = str(value).strip()
    if not token:
        return None
    token = _EXTENSION_PATTERN.sub("", token).strip()
    if token.startswith("00"):
        token = token[2:]
    digits = "".join(c for c in token if c.isdigit())
    return digits or None


def normalize_name(value: object | None) -> str:
    if value is None:
        return ""
    return " ".join(str(value).split())
