"""Webhook URL validation and log-safe redaction."""

from __future__ import annotations

from urllib.parse import SplitResult, urlsplit, urlunsplit

ALLOWED_SCHEMES = frozenset({"http", "https"})
INVALID_URL_PLACEHOLDER = "[invalid URL]"


def is_valid_webhook_url(url: str) -> bool:
    """Return True for absolute http(s) URLs with a host and no embedded credentials."""

    if not url or any(char.isspace() or ord(char) < 32 for char in url):  # noqa: PLR2004
        return False
    try:
        parsed = urlsplit(url)
        # Accessing .port validates the port component.
        _ = parsed.port
    except ValueError:
        return False
    if parsed.scheme.lower() not in ALLOWED_SCHEMES:
        return False
    if not parsed.hostname:
        return False
    return parsed.username is None and parsed.password is None


def redact_url(url: str) -> str:
    """Strip credentials, query and fragment; keep scheme, host, port and path."""

    try:
        parsed = urlsplit(url)
        port = parsed.port
    except ValueError:
        return INVALID_URL_PLACEHOLDER
    if not parsed.scheme or not parsed.hostname:
        return INVALID_URL_PLACEHOLDER
    host = parsed.hostname
    if ":" in host:
        host = f"[{host}]"
    netloc = f"{host}:{port}" if port is not None else host
    return urlunsplit(SplitResult(parsed.scheme, netloc, parsed.path, "", ""))
