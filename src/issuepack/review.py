"""Report code review findings as GitHub issues.

One issue is kept per review category. Each report run creates the issue
when a category first gets comments, rewrites its body while comments
remain, and closes it once the category comes back clean.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, replace
from enum import Enum

from .github_issues import IssuesClient
from .logging import get_logger
from .models import Issue
from .truncate import (
    MAX_BODY_LENGTH,
    TRUNCATION_MARGIN,
    TRUNCATION_NOTICE,
    truncate_body_if_too_large,
)

SEVERITY_ORDER = ("error", "warn", "info")
_SEVERITY_HEADINGS = {"error": "Errors", "warn": "Warnings", "info": "Info"}


class ReviewOutcome(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"
    CLOSED = "closed"


@dataclass(frozen=True)
class ReviewComment:
    category: str
    severity: str
    detail: str
    path: str | None = None
    line: int | None = None
    subcategory: str | None = None

    def __post_init__(self) -> None:
        if self.severity not in SEVERITY_ORDER:
            raise ValueError(
                f"Unknown severity {self.severity!r}; expected one of {', '.join(SEVERITY_ORDER)}"
            )

    @property
    def location(self) -> str | None:
        if not self.path:
            return None
        return f"{self.path}:{self.line}" if self.line else self.path


@dataclass
class ReviewAction:
    category: str
    outcome: ReviewOutcome
    issue: Issue


def category_marker(category: str) -> str:
    return f"<!-- issuepack:review-category={category} -->"


def issue_title(category: str, prefix: str = "Code Inspection") -> str:
    return f"{prefix}: {category}"


def _format_comment(comment: ReviewComment) -> str:
    parts = ["-"]
    if comment.location:
        parts.append(f"`{comment.location}`")
    if comment.subcategory:
        parts.append(f"_{comment.subcategory}_:")
    parts.append(comment.detail.strip())
    return " ".join(parts)


def render_review_body(
    category: str,
    comments: Sequence[ReviewComment],
    sha: str | None = None,
    *,
    max_length: int = MAX_BODY_LENGTH,
    notice: str = TRUNCATION_NOTICE,
    margin: int = TRUNCATION_MARGIN,
) -> str:
    """Markdown body listing ``comments`` grouped by severity, errors first."""
    lines = [category_marker(category), ""]
    if sha:
        lines.append(f"Review of commit `{sha}` found {len(comments)} comment(s).")
    else:
        lines.append(f"Review found {len(comments)} comment(s).")
    for severity in SEVERITY_ORDER:
        matching = [c for c in comments if c.severity == severity]
        if not matching:
            continue
        lines.extend(["", f"### {_SEVERITY_HEADINGS[severity]}", ""])
        ordered = sorted(matching, key=lambda c: (c.path or "", c.line or 0))
        lines.extend(_format_comment(c) for c in ordered)
    body = "\n".join(lines) + "\n"
    return truncate_body_if_too_large(body, max_length=max_length, notice=notice, margin=margin)


class ReviewIssueReporter:
    """Keeps a single GitHub issue per review category in sync."""

    def __init__(
        self,
        client: IssuesClient,
        *,
        title_prefix: str = "Code Inspection",
        assignees: Iterable[str] = (),
    ):
        self.client = client
        self.title_prefix = title_prefix
        self.assignees = list(assignees)
        self.logger = get_logger()

    def report(
        self,
        comments: Iterable[ReviewComment],
        *,
        categories: Iterable[str] | None = None,
        sha: str | None = None,
    ) -> list[ReviewAction]:
        """Create, update or close one issue per category.

        ``categories`` names every category the reviewer checked; a listed
        category with no comments has its open issue closed. Categories that
        only appear in ``comments`` are added automatically.
        """
        grouped: dict[str, list[ReviewComment]] = {}
        for name in categories or ():
            grouped.setdefault(name, [])
        for comment in comments:
            grouped.setdefault(comment.category, []).append(comment)

        actions: list[ReviewAction] = []
        for category in sorted(grouped):
            action = self._report_category(category, grouped[category], sha)
            if action is not None:
                actions.append(action)
        return actions

    def _report_category(
        self, category: str, comments: list[ReviewComment], sha: str | None
    ) -> ReviewAction | None:
        title = issue_title(category, self.title_prefix)
        existing = self.client.find_issue(title)
        if not comments:
            if existing is None:
                return None
            closed = self.client.close_issue(existing)
            self.logger.info(
                f"review category {category} clean; closed issue",
                operation="review_close",
                category=category,
            )
            return ReviewAction(category, ReviewOutcome.CLOSED, closed)

        body = render_review_body(
            category,
            comments,
            sha,
            max_length=self.client.cfg.max_body_length,
            notice=self.client.cfg.truncation_notice,
            margin=self.client.cfg.truncation_margin,
        )
        if existing is None:
            created = self.client.create_issue(
                Issue(title=title, body=body, assignees=list(self.assignees))
            )
            return ReviewAction(category, ReviewOutcome.CREATED, created)
        # GitHub may hand bodies back with CRLF line endings
        if (existing.body or "").replace("\r\n", "\n") == body:
            return ReviewAction(category, ReviewOutcome.UNCHANGED, existing)
        updated = self.client.update_issue(replace(existing, body=body, state="open"))
        return ReviewAction(category, ReviewOutcome.UPDATED, updated)


__all__ = [
    "ReviewAction",
    "ReviewComment",
    "ReviewIssueReporter",
    "ReviewOutcome",
    "category_marker",
    "issue_title",
    "render_review_body",
]
