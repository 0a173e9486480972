from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any

import requests

from .errors import GitHubAPIError
from .models import DEFAULT_API_BASE
from .retry import RetryConfig, run_with_retries

DEFAULT_API_URL = DEFAULT_API_BASE
USER_AGENT = "issuepack-rest/0.2.0"
HTTP_ERROR_STATUS = 400
REQUEST_TIMEOUT = 30
SEARCH_PAGE_SIZE = 100
# GitHub's search API never returns more than 1000 results per query
SEARCH_RESULT_CAP = 1000


@dataclass
class GitHubRestClient:
    """Lightweight REST client for GitHub issue endpoints."""

    token: str = field(repr=False)
    repo: str
    base_url: str = DEFAULT_API_URL
    session: requests.Session | None = None
    retry: RetryConfig | None = None
    _session: requests.Session = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._session = self.session or requests.Session()
        self._session.headers.setdefault("Authorization", f"Bearer {self.token}")
        self._session.headers.setdefault("Accept", "application/vnd.github+json")
        self._session.headers.setdefault("User-Agent", USER_AGENT)

    # ---- REST helpers -------------------------------------------------
    def _url(self, path: str) -> str:
        if path.startswith("http"):
            return path
        return f"{self.base_url.rstrip('/')}/{path.lstrip('/')}"

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json_body: Any | None = None,
    ) -> Any:
        url = self._url(path)

        def _run() -> requests.Response:
            response = self._session.request(
                method,
                url,
                params=params,
                json=json_body,
                headers=self._session.headers,
                timeout=REQUEST_TIMEOUT,
            )
            if response.status_code >= HTTP_ERROR_STATUS:
                raise GitHubAPIError(
                    f"GitHub API {method} {url} failed with {response.status_code}",
                    status=response.status_code,
                    response_text=response.text,
                    headers=dict(response.headers),
                )
            return response

        response = run_with_retries(_run, cfg=self.retry)
        if not response.text:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise GitHubAPIError(
                f"GitHub API {method} {url} returned non-JSON content",
                status=response.status_code,
                response_text=response.text,
            ) from exc

    def _expect_dict(self, data: Any, what: str) -> dict[str, Any]:
        if not isinstance(data, dict):
            raise GitHubAPIError(f"Unexpected response for {what}: {type(data).__name__}")
        return data

    # ---- Issue operations --------------------------------------------
    def create_issue(self, payload: dict[str, Any]) -> dict[str, Any]:
        data = self._request("POST", f"/repos/{self.repo}/issues", json_body=payload)
        return self._expect_dict(data, "create issue")

    def update_issue(self, number: int, payload: dict[str, Any]) -> dict[str, Any]:
        data = self._request(
            "PATCH", f"/repos/{self.repo}/issues/{number}", json_body=payload
        )
        return self._expect_dict(data, f"update issue #{number}")

    def get_issue(self, number: int) -> dict[str, Any]:
        data = self._request("GET", f"/repos/{self.repo}/issues/{number}")
        return self._expect_dict(data, f"get issue #{number}")

    def iter_search_issues(
        self, query: str, *, max_results: int = SEARCH_RESULT_CAP
    ) -> Iterator[dict[str, Any]]:
        """Yield issue search results, fetching the next page only when needed.

        ``query`` is passed verbatim as the ``q`` parameter; callers add the
        ``repo:`` and ``is:`` qualifiers.
        """
        limit = max(0, min(max_results, SEARCH_RESULT_CAP))
        per_page = min(SEARCH_PAGE_SIZE, limit) or 1
        params: dict[str, Any] = {"q": query, "per_page": per_page, "page": 1}
        yielded = 0
        while yielded < limit:
            data = self._request("GET", "/search/issues", params=dict(params))
            items = data.get("items") if isinstance(data, dict) else None
            if not isinstance(items, list):
                return
            for entry in items:
                if not isinstance(entry, dict):
                    continue
                yield entry
                yielded += 1
                if yielded >= limit:
                    return
            if len(items) < per_page:
                return
            params["page"] += 1

    def search_issues(
        self, query: str, *, max_results: int = SEARCH_RESULT_CAP
    ) -> list[dict[str, Any]]:
        return list(self.iter_search_issues(query, max_results=max_results))


__all__ = [
    "DEFAULT_API_URL",
    "GitHubAPIError",
    "GitHubRestClient",
]
