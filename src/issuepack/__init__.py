"""issuepack - GitHub issue lifecycle helpers for automation tools.

High-level public API:

from issuepack import Issue, RepoRef, TokenCredentials, create_issue, find_issue

creds = TokenCredentials(token)
repo = RepoRef.from_slug('acme/widgets')
issue = create_issue(creds, repo, Issue(title='Build broken', body=log_text))

Bodies longer than GitHub accepts are cut by ``truncate_body_if_too_large``
before they are sent.
"""

from __future__ import annotations

from .config import PackConfig, load_config
from .errors import GitHubAPIError
from .github_issues import (
    IssuesClient,
    IssuesClientConfig,
    close_issue,
    create_issue,
    find_issue,
    find_issues,
    update_issue,
)
from .models import Issue, RepoRef, TokenCredentials
from .review import ReviewComment, ReviewIssueReporter
from .truncate import MAX_BODY_LENGTH, TRUNCATION_NOTICE, truncate_body_if_too_large

# Keep in sync with pyproject.toml
__version__ = "0.2.0"

__all__ = [
    "GitHubAPIError",
    "Issue",
    "IssuesClient",
    "IssuesClientConfig",
    "MAX_BODY_LENGTH",
    "PackConfig",
    "RepoRef",
    "ReviewComment",
    "ReviewIssueReporter",
    "TRUNCATION_NOTICE",
    "TokenCredentials",
    "close_issue",
    "create_issue",
    "find_issue",
    "find_issues",
    "load_config",
    "truncate_body_if_too_large",
    "update_issue",
    "__version__",
]
