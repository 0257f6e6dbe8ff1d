"""
Failure Classification Table

Maps provider failures to a FailureKind that drives credential rotation
and retry decisions. Lookup order:

1. HTTP status (STATUS_TABLE)
2. Structured provider error code (PROVIDER_CODE_TABLE)
3. Substring markers in the error message (MESSAGE_MARKERS)

Anything unmatched is TERMINAL. The table is kept free of network code so
it can be tested on its own.
"""

import re
from enum import Enum


class FailureKind(str, Enum):
    """Classification of a single failed call."""

    QUOTA = "quota"  # 429, rate limits, exhausted quota
    UNAVAILABLE = "unavailable"  # 503, connection failures, timeouts
    AUTH = "auth"  # Revoked/invalid key, permission denied
    TERMINAL = "terminal"  # Malformed request and anything unrecognised

    @property
    def failover(self) -> bool:
        """Try the next credential after this failure."""
        return self is not FailureKind.TERMINAL

    @property
    def retryable(self) -> bool:
        """Retry the whole call after backoff once every credential failed."""
        return self in (FailureKind.QUOTA, FailureKind.UNAVAILABLE)


STATUS_TABLE: dict[int, FailureKind] = {
    401: FailureKind.AUTH,
    403: FailureKind.AUTH,
    408: FailureKind.UNAVAILABLE,
    429: FailureKind.QUOTA,
    500: FailureKind.UNAVAILABLE,
    502: FailureKind.UNAVAILABLE,
    503: FailureKind.UNAVAILABLE,
    504: FailureKind.UNAVAILABLE,
}

# INVALID_ARGUMENT is deliberately absent: Gemini reports a bad API key as
# 400 INVALID_ARGUMENT, so the message markers must get a chance to see it.
PROVIDER_CODE_TABLE: dict[str, FailureKind] = {
    "RESOURCE_EXHAUSTED": FailureKind.QUOTA,
    "UNAVAILABLE": FailureKind.UNAVAILABLE,
    "DEADLINE_EXCEEDED": FailureKind.UNAVAILABLE,
    "PERMISSION_DENIED": FailureKind.AUTH,
    "UNAUTHENTICATED": FailureKind.AUTH,
    "FAILED_PRECONDITION": FailureKind.TERMINAL,
    "NOT_FOUND": FailureKind.TERMINAL,
}

MESSAGE_MARKERS: tuple[tuple[str, FailureKind], ...] = (
    ("quota", FailureKind.QUOTA),
    ("rate limit", FailureKind.QUOTA),
    ("rate-limit", FailureKind.QUOTA),
    ("exceeded", FailureKind.QUOTA),
    ("429", FailureKind.QUOTA),
    ("permission", FailureKind.AUTH),
    ("unauthorized", FailureKind.AUTH),
    ("api key", FailureKind.AUTH),
    ("network", FailureKind.UNAVAILABLE),
    ("unavailable", FailureKind.UNAVAILABLE),
    ("timed out", FailureKind.UNAVAILABLE),
    ("503", FailureKind.UNAVAILABLE),
)

_RETRY_IN = re.compile(r"retry in\s+(\d+(?:\.\d+)?)\s*s", re.IGNORECASE)
_RETRY_DELAY = re.compile(r'"retryDelay"\s*:\s*"(\d+(?:\.\d+)?)s"')


def classify_failure(
    status: int | None = None,
    provider_code: str | None = None,
    message: str | None = None,
) -> FailureKind:
    """
    Classify a failed call.

    Args:
        status: HTTP status code, None for network-level failures.
        provider_code: Structured error code from the provider body.
        message: Human-readable error message.

    Returns:
        The FailureKind for this failure.
    """
    if status is not None and status in STATUS_TABLE:
        return STATUS_TABLE[status]

    if provider_code:
        kind = PROVIDER_CODE_TABLE.get(provider_code.upper())
        if kind is not None:
            return kind

    text = (message or "").lower()
    for marker, kind in MESSAGE_MARKERS:
        if marker in text:
            return kind

    return FailureKind.TERMINAL


def parse_retry_hint(text: str | None) -> float | None:
    """
    Extract a provider "retry in N s" hint, in seconds.

    Recognises both the human-readable message form ("Please retry in 3.5s")
    and the structured RetryInfo form ("retryDelay": "3s").
    """
    if not text:
        return None
    match = _RETRY_IN.search(text) or _RETRY_DELAY.search(text)
    if match is None:
        return None
    return float(match.group(1))
