"""Issue body size guard.

GitHub rejects issue bodies longer than 65536 characters. Anything that
builds a body (review reports, CLI input, API callers) funnels it through
:func:`truncate_body_if_too_large` before it is sent.
"""

from __future__ import annotations

MAX_BODY_LENGTH = 65536
TRUNCATION_NOTICE = "\n_Body truncated…_\n"
# headroom kept below the limit when a body has to be cut
TRUNCATION_MARGIN = 1000


def truncate_body_if_too_large(
    body: str,
    max_length: int = MAX_BODY_LENGTH,
    notice: str = TRUNCATION_NOTICE,
    margin: int = TRUNCATION_MARGIN,
) -> str:
    """Return ``body`` unchanged if it fits, otherwise a truncated copy.

    The leading ``max_length - margin`` characters are considered, the cut
    is moved back to the last complete line so markdown is not split
    mid-line, and ``notice`` is appended. ``margin`` never drops below the
    notice length, so the result never exceeds ``max_length`` characters.
    """
    max_length = max(0, max_length)
    if len(body) <= max_length:
        return body
    room = max_length - max(margin, len(notice))
    if room <= 0:
        # no space left for the notice itself
        return body[:max_length]
    kept = body[:room]
    newline = kept.rfind("\n")
    if newline >= 0:
        kept = kept[:newline]
    return kept + notice


__all__ = [
    "MAX_BODY_LENGTH",
    "TRUNCATION_MARGIN",
    "TRUNCATION_NOTICE",
    "truncate_body_if_too_large",
]
