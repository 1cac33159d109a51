"""Redaction helpers for logging URLs and headers."""

import re


# Headers that must never appear in logs
SENSITIVE_HEADERS = frozenset(
    {
        "authorization",
        "cookie",
        "x-api-key",
        "x-auth-token",
        "proxy-authorization",
        "set-cookie",
    }
)

REDACTED_VALUE = "[REDACTED]"

_CREDENTIALS_PATTERN = re.compile(r"^([a-zA-Z][a-zA-Z0-9+.-]*://)([^:/@]+):([^@/]+)@")


def redact_headers(headers: dict[str, str]) -> dict[str, str]:
    """Redact sensitive headers for logging.

    Args:
        headers: Original headers dictionary.

    Returns:
        New dictionary with sensitive values redacted.
    """
    return {
        key: REDACTED_VALUE if key.lower() in SENSITIVE_HEADERS else value
        for key, value in headers.items()
    }


def redact_url_credentials(url: str) -> str:
    """Redact ``user:password@`` credentials from a URL.

    Args:
        url: URL that may contain credentials.

    Returns:
        URL with credentials redacted.
    """
    return _CREDENTIALS_PATTERN.sub(r"\1[REDACTED]:[REDACTED]@", url)
