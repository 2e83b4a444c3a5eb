"""Secret value and credential redaction for safe output."""

from __future__ import annotations

from urllib.parse import urlsplit, urlunsplit


def redact_local(value: str) -> str:
    """Partial reveal for local terminal: first 4 + last 2 chars.

    Example: ``AKIAIOSFODNN7REAL123`` → ``AKIA...23``
    """
    if len(value) <= 6:
        return "[REDACTED]"
    return f"{value[:4]}...{value[-2:]}"


def redact_ci(_value: str) -> str:
    """Full redaction for CI logs and artifacts — never reveal any part."""
    return "[REDACTED]"


def redact(value: str, *, ci_mode: bool = False) -> str:
    """Redact a matched secret value."""
    if ci_mode:
        return redact_ci(value)
    return redact_local(value)


def strip_credentials(url: str) -> str:
    """Drop any userinfo (``token@``) from a URL; non-URLs pass through."""
    parts = urlsplit(url)
    if not parts.netloc or "@" not in parts.netloc:
        return url
    host = parts.netloc.rsplit("@", 1)[1]
    return urlunsplit((parts.scheme, host, parts.path, parts.query, parts.fragment))


def redact_credentials(url: str) -> str:
    """Replace URL userinfo with ``***`` so the host stays recognisable."""
    parts = urlsplit(url)
    if not parts.netloc or "@" not in parts.netloc:
        return url
    host = parts.netloc.rsplit("@", 1)[1]
    return urlunsplit((parts.scheme, f"***@{host}", parts.path, parts.query, parts.fragment))
