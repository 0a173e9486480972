"""Centralized retry / backoff helpers.

Provides a single small function ``run_with_retries`` that encapsulates
exponential backoff with jitter for transient GitHub REST failures (rate
limit / abuse / secondary rate limits, gateway errors, dropped connections).

Environment overrides:
  ISSUEPACK_RETRY_ATTEMPTS (default 3)
  ISSUEPACK_RETRY_BASE (seconds base, default 0.5)
  ISSUEPACK_RETRY_MAX_SLEEP (upper bound for a single sleep)

A ``Retry-After`` response header, or an exhausted ``x-ratelimit-remaining``
with its ``x-ratelimit-reset`` epoch, takes precedence over computed backoff.

The caller supplies a thunk returning the desired result or raising. Only
transient failures trigger a retry; other failures propagate immediately.
"""

from __future__ import annotations

import os
import random
import re
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TypeVar

import requests

from .errors import GitHubAPIError
from .logging import get_logger

T = TypeVar("T")

TRANSIENT_TOKENS = (
    "rate limit",
    "abuse detection",
    "secondary rate",
)
TRANSIENT_STATUSES = frozenset({429, 502, 503, 504})
RATE_LIMIT_STATUS = 403

_RE_RETRY_AFTER = re.compile(r"retry[-\s]after:?\s*(\d+)", re.IGNORECASE)
_RE_SECONDS_HINT = re.compile(r"wait\s*(\d+)\s*seconds", re.IGNORECASE)
_JITTER = random.SystemRandom()


def _extract_explicit_backoff(text: str) -> float | None:
    """Extract an explicit backoff (seconds) from error output.

    Supports patterns like:
      Retry-After: 12
      retry after 12
      wait 30 seconds
    Returns None if no valid positive value found.
    """
    if not text:
        return None
    for pattern in (_RE_RETRY_AFTER, _RE_SECONDS_HINT):
        m = pattern.search(text)
        if m:
            val = float(m.group(1))
            return val if val > 0 else None
    return None


@dataclass
class RetryConfig:
    attempts: int = field(
        default_factory=lambda: int(os.environ.get("ISSUEPACK_RETRY_ATTEMPTS", "3"))
    )
    base_sleep: float = field(
        default_factory=lambda: float(os.environ.get("ISSUEPACK_RETRY_BASE", "0.5"))
    )


def is_transient(output: str) -> bool:
    out_lower = output.lower()
    return any(tok in out_lower for tok in TRANSIENT_TOKENS)


def _failure_text(exc: Exception) -> str:
    if isinstance(exc, GitHubAPIError):
        return f"{exc} {exc.response_text or ''}"
    return str(exc)


def _header_backoff(exc: Exception) -> float | None:
    """Seconds to wait according to GitHub's rate limit response headers."""
    if not isinstance(exc, GitHubAPIError):
        return None
    retry_after = exc.header("Retry-After")
    if retry_after is not None:
        try:
            val = float(retry_after.strip())
        except ValueError:
            val = 0.0
        if val > 0:
            return val
    if exc.header("x-ratelimit-remaining") == "0":
        reset = exc.header("x-ratelimit-reset")
        if reset is not None:
            try:
                wait = float(reset.strip()) - time.time()
            except ValueError:
                return None
            return max(1.0, wait)
    return None


def is_transient_error(exc: Exception) -> bool:
    if isinstance(exc, (requests.ConnectionError, requests.Timeout)):
        return True
    if isinstance(exc, GitHubAPIError):
        if exc.status in TRANSIENT_STATUSES:
            return True
        if exc.status == RATE_LIMIT_STATUS and _header_backoff(exc) is not None:
            return True
        return is_transient(_failure_text(exc))
    return False


def _compute_sleep(
    attempt: int, cfg: RetryConfig, out: str, header_hint: float | None = None
) -> float:
    explicit = header_hint if header_hint is not None else _extract_explicit_backoff(out)
    backoff = cfg.base_sleep * (2 ** (attempt - 1)) + _JITTER.uniform(0, 0.25)
    sleep_for: float = explicit if explicit is not None else backoff
    max_cap_env = os.environ.get("ISSUEPACK_RETRY_MAX_SLEEP")
    if max_cap_env:
        try:
            cap = float(max_cap_env)
        except ValueError:
            return sleep_for
        if cap >= 0:
            sleep_for = min(sleep_for, cap)
    return sleep_for


def _should_retry(exc: Exception, attempt: int, attempts: int, cfg: RetryConfig) -> bool:
    if attempt >= attempts or not is_transient_error(exc):
        return False
    sleep_for = _compute_sleep(attempt, cfg, _failure_text(exc), _header_backoff(exc))
    get_logger().warning(
        f"transient error, attempt {attempt}/{attempts}, sleeping {sleep_for:.2f}s",
        operation="retry",
        attempt=attempt,
    )
    time.sleep(sleep_for)
    return True


def run_with_retries(fn: Callable[[], T], *, cfg: RetryConfig | None = None) -> T:
    cfg = cfg or RetryConfig()
    attempts = max(1, cfg.attempts)
    for attempt in range(1, attempts + 1):
        try:
            return fn()
        except (GitHubAPIError, requests.RequestException) as exc:
            if not _should_retry(exc, attempt, attempts, cfg):
                raise
    raise RuntimeError("retry logic exited unexpectedly")  # pragma: no cover


__all__ = ["RetryConfig", "run_with_retries", "is_transient", "is_transient_error"]
