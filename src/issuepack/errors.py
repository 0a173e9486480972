"""Error taxonomy & redaction.

Classifies failures coming out of the GitHub REST layer so callers (CLI,
review reporter) can log a stable category and decide whether the failure is
worth retrying later. Messages pass through :func:`redact` before they are
logged so tokens never reach log output.

Public API:
- classify_error(exc) -> ErrorInfo
- redact(text) -> str
"""
from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import requests

_SENSITIVE_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"gh[pousr]_[A-Za-z0-9]{20,255}"),  # classic, OAuth, app and refresh tokens
    re.compile(r"github_pat_\w{20,}"),  # fine-grained tokens
    re.compile(r"(?i)(authorization:\s*(?:bearer|token)\s+)\S+"),
]

_REDACTION_PLACEHOLDER = "<redacted>"

_STATUS_CATEGORIES = {
    401: "github.auth",
    403: "github.auth",
    404: "github.not_found",
    410: "github.not_found",
    422: "github.validation",
}
_TRANSIENT_STATUSES = frozenset({502, 503, 504})
_TOO_MANY_REQUESTS = 429


class GitHubAPIError(RuntimeError):
    """Raised when the GitHub REST API returns an error."""

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        response_text: str | None = None,
        headers: Mapping[str, str] | None = None,
    ):
        super().__init__(message)
        self.status = status
        self.response_text = response_text
        self.headers: dict[str, str] = dict(headers or {})

    def header(self, name: str) -> str | None:
        """Case-insensitive response header lookup."""
        wanted = name.lower()
        for key, value in self.headers.items():
            if key.lower() == wanted:
                return value
        return None


@dataclass
class ErrorInfo:
    category: str
    message: str
    original_type: str
    transient: bool = False
    details: dict[str, Any] | None = None


def redact(text: str) -> str:
    """Replace token-looking substrings with a placeholder."""
    if not text:
        return text
    redacted = text
    for pat in _SENSITIVE_PATTERNS:
        if pat.groups:
            redacted = pat.sub(lambda m: m.group(1) + _REDACTION_PLACEHOLDER, redacted)
        else:
            redacted = pat.sub(_REDACTION_PLACEHOLDER, redacted)
    return redacted


def _combined_text(exc: BaseException) -> str:
    msg = str(exc)
    if isinstance(exc, GitHubAPIError) and exc.response_text:
        msg = f"{msg}: {exc.response_text}"
    return msg


def classify_error(exc: BaseException) -> ErrorInfo:
    """Best-effort classification of an exception.

    Message keywords win over status codes: GitHub answers secondary rate
    limits with 403, which would otherwise look like an auth failure.
    """
    msg = _combined_text(exc)
    low = msg.lower()
    name = exc.__class__.__name__
    status = exc.status if isinstance(exc, GitHubAPIError) else None
    details = {"status": status} if status is not None else None

    if "rate limit" in low or "secondary rate" in low or status == _TOO_MANY_REQUESTS:
        return ErrorInfo("github.rate_limit", redact(msg), name, transient=True, details=details)
    if "abuse" in low:
        return ErrorInfo("github.abuse", redact(msg), name, transient=True, details=details)
    if status is not None:
        if status in _TRANSIENT_STATUSES:
            return ErrorInfo("network", redact(msg), name, transient=True, details=details)
        category = _STATUS_CATEGORIES.get(status)
        if category:
            return ErrorInfo(category, redact(msg), name, details=details)
    if isinstance(exc, (requests.ConnectionError, requests.Timeout)):
        return ErrorInfo("network", redact(msg), name, transient=True)
    if any(k in low for k in ("timeout", "timed out", "connection reset", "temporarily unavailable")):
        return ErrorInfo("network", redact(msg), name, transient=True)
    return ErrorInfo("generic", redact(msg), name, details=details)


__all__ = ["ErrorInfo", "GitHubAPIError", "classify_error", "redact"]
