"""GitHub issue lifecycle operations.

Wraps :class:`~issuepack.github_rest.GitHubRestClient` with the create /
update / find / close operations an automation tool needs:

 - Every body sent to GitHub goes through the truncation guard first
 - Dry-run mode logs the intended mutation and returns the issue unsent
 - ``find_issue`` does an exact title match on top of GitHub search

The module-level functions mirror the methods for callers that just hold a
credential and a repository reference.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

import requests

from .github_rest import GitHubRestClient
from .logging import get_logger
from .models import Issue, RepoRef, TokenCredentials
from .truncate import (
    MAX_BODY_LENGTH,
    TRUNCATION_MARGIN,
    TRUNCATION_NOTICE,
    truncate_body_if_too_large,
)


@dataclass
class IssuesClientConfig:
    dry_run: bool = False
    max_body_length: int = MAX_BODY_LENGTH
    truncation_notice: str = TRUNCATION_NOTICE
    truncation_margin: int = TRUNCATION_MARGIN


class IssuesClient:
    """Issue operations scoped to one repository.

    Failures from GitHub surface as :class:`~issuepack.errors.GitHubAPIError`;
    nothing is swallowed here so callers decide how to report them.
    """

    def __init__(
        self,
        credentials: TokenCredentials,
        repo_ref: RepoRef,
        cfg: IssuesClientConfig | None = None,
        *,
        rest_client: GitHubRestClient | None = None,
        session: requests.Session | None = None,
    ):
        self.repo_ref = repo_ref
        self.cfg = cfg or IssuesClientConfig()
        self.logger = get_logger()
        self._rest = rest_client or GitHubRestClient(
            token=credentials.token,
            repo=repo_ref.slug,
            base_url=repo_ref.api_base,
            session=session,
        )

    # --- internal helpers -------------------------------------------------
    def _guard_body(self, issue: Issue) -> Issue:
        if issue.body is None:
            return issue
        body = truncate_body_if_too_large(
            issue.body,
            max_length=self.cfg.max_body_length,
            notice=self.cfg.truncation_notice,
            margin=self.cfg.truncation_margin,
        )
        if body == issue.body:
            return issue
        self.logger.warning(
            "issue body truncated",
            operation="truncate_body",
            repo=self.repo_ref.slug,
            original_length=len(issue.body),
            max_length=self.cfg.max_body_length,
        )
        return replace(issue, body=body)

    @staticmethod
    def _require_number(issue: Issue) -> int:
        number = issue.resolved_number
        if number is None:
            raise ValueError(f"Issue {issue.title!r} has neither a number nor an issue URL")
        return number

    # --- lifecycle operations ---------------------------------------------
    def create_issue(self, issue: Issue) -> Issue:
        if not issue.title:
            raise ValueError("An issue needs a title to be created")
        guarded = self._guard_body(issue)
        if self.cfg.dry_run:
            self.logger.log_issue_action("create", self.repo_ref.slug, dry_run=True)
            return guarded
        with self.logger.timed_operation("create_issue", repo=self.repo_ref.slug):
            data = self._rest.create_issue(guarded.to_payload())
        created = Issue.from_api(data)
        self.logger.log_issue_action("create", self.repo_ref.slug, created.number)
        return created

    def update_issue(self, issue: Issue) -> Issue:
        number = self._require_number(issue)
        guarded = self._guard_body(issue)
        if self.cfg.dry_run:
            self.logger.log_issue_action("update", self.repo_ref.slug, number, dry_run=True)
            return replace(guarded, number=number)
        with self.logger.timed_operation("update_issue", repo=self.repo_ref.slug):
            data = self._rest.update_issue(number, guarded.to_payload(include_state=True))
        self.logger.log_issue_action("update", self.repo_ref.slug, number)
        return Issue.from_api(data)

    def close_issue(self, issue: Issue) -> Issue:
        number = self._require_number(issue)
        if self.cfg.dry_run:
            self.logger.log_issue_action("close", self.repo_ref.slug, number, dry_run=True)
            return replace(issue, number=number, state="closed", assignees=[])
        with self.logger.timed_operation("close_issue", repo=self.repo_ref.slug):
            data = self._rest.update_issue(number, {"state": "closed", "assignees": []})
        self.logger.log_issue_action("close", self.repo_ref.slug, number)
        return Issue.from_api(data)

    def find_issues(self, query: str) -> list[Issue]:
        """Issues in this repository matching a free-text search."""
        q = f"is:issue repo:{self.repo_ref.slug} {query}".strip()
        with self.logger.timed_operation("find_issues", repo=self.repo_ref.slug):
            items = self._rest.search_issues(q)
        return [Issue.from_api(item) for item in items]

    def find_issue(self, title: str) -> Issue | None:
        """The first open issue whose title is exactly ``title``."""
        escaped = title.replace('"', '\\"')
        q = f'is:issue state:open in:title repo:{self.repo_ref.slug} "{escaped}"'
        with self.logger.timed_operation("find_issue", repo=self.repo_ref.slug):
            for item in self._rest.iter_search_issues(q):
                if item.get("title") == title:
                    return Issue.from_api(item)
        return None


def create_issue(
    credentials: TokenCredentials,
    repo_ref: RepoRef,
    issue: Issue,
    cfg: IssuesClientConfig | None = None,
) -> Issue:
    return IssuesClient(credentials, repo_ref, cfg).create_issue(issue)


def update_issue(
    credentials: TokenCredentials,
    repo_ref: RepoRef,
    issue: Issue,
    cfg: IssuesClientConfig | None = None,
) -> Issue:
    return IssuesClient(credentials, repo_ref, cfg).update_issue(issue)


def close_issue(
    credentials: TokenCredentials,
    repo_ref: RepoRef,
    issue: Issue,
    cfg: IssuesClientConfig | None = None,
) -> Issue:
    return IssuesClient(credentials, repo_ref, cfg).close_issue(issue)


def find_issue(
    credentials: TokenCredentials, repo_ref: RepoRef, title: str
) -> Issue | None:
    return IssuesClient(credentials, repo_ref).find_issue(title)


def find_issues(
    credentials: TokenCredentials, repo_ref: RepoRef, query: str
) -> list[Issue]:
    return IssuesClient(credentials, repo_ref).find_issues(query)


__all__ = [
    "IssuesClient",
    "IssuesClientConfig",
    "close_issue",
    "create_issue",
    "find_issue",
    "find_issues",
    "update_issue",
]
