from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

DEFAULT_API_BASE = "https://api.github.com"

_ISSUE_URL_NUMBER = re.compile(r"/issues/(\d+)/?$")


@dataclass(frozen=True)
class TokenCredentials:
    """Opaque GitHub token handed to the REST client."""

    token: str = field(repr=False)


@dataclass(frozen=True)
class RepoRef:
    owner: str
    repo: str
    api_base: str = DEFAULT_API_BASE

    @property
    def slug(self) -> str:
        return f"{self.owner}/{self.repo}"

    @classmethod
    def from_slug(cls, slug: str, api_base: str = DEFAULT_API_BASE) -> RepoRef:
        parts = slug.strip().split("/")
        if len(parts) != 2 or not all(parts):  # noqa: PLR2004
            raise ValueError(f"Repository must be given as owner/repo, got {slug!r}")
        return cls(owner=parts[0], repo=parts[1], api_base=api_base)


@dataclass
class Issue:
    """In-memory view of a GitHub issue.

    Only the fields this package reads or writes are kept; the issue itself
    lives in GitHub and no local copy is persisted. Fields left as ``None``
    are not sent, so a partial issue only changes what it sets.
    """

    title: str | None = None
    body: str | None = None
    state: str | None = None
    assignees: list[str] | None = None
    labels: list[str] | None = None
    number: int | None = None
    url: str | None = None
    html_url: str | None = None

    @property
    def resolved_number(self) -> int | None:
        if self.number is not None:
            return self.number
        if self.url:
            match = _ISSUE_URL_NUMBER.search(self.url)
            if match:
                return int(match.group(1))
        return None

    def to_payload(self, *, include_state: bool = False) -> dict[str, Any]:
        payload: dict[str, Any] = {}
        if self.title is not None:
            payload["title"] = self.title
        if self.body is not None:
            payload["body"] = self.body
        if self.assignees is not None:
            payload["assignees"] = list(self.assignees)
        if self.labels is not None:
            payload["labels"] = list(self.labels)
        if include_state and self.state is not None:
            payload["state"] = self.state
        return payload

    @classmethod
    def from_api(cls, entry: dict[str, Any]) -> Issue:
        number = entry.get("number")
        return cls(
            title=str(entry.get("title") or ""),
            body=entry.get("body") or "",
            state=str(entry.get("state") or "open"),
            assignees=_names(entry.get("assignees"), "login"),
            labels=_names(entry.get("labels"), "name"),
            number=number if isinstance(number, int) else None,
            url=entry.get("url"),
            html_url=entry.get("html_url"),
        )


def _names(raw: Any, key: str) -> list[str]:
    out: list[str] = []
    if not isinstance(raw, list):
        return out
    for item in raw:
        if isinstance(item, dict):
            value = item.get(key)
            if isinstance(value, str):
                out.append(value)
        elif isinstance(item, str):
            out.append(item)
    return out


__all__ = ["DEFAULT_API_BASE", "Issue", "RepoRef", "TokenCredentials"]
