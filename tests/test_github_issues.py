from __future__ import annotations

from collections.abc import Iterator
from typing import Any

import pytest

from conftest import StubResponse
from issuepack.github_issues import (
    IssuesClient,
    IssuesClientConfig,
    close_issue,
    create_issue,
    find_issue,
    find_issues,
    update_issue,
)
from issuepack.github_rest import GitHubRestClient
from issuepack.models import Issue, RepoRef, TokenCredentials
from issuepack.truncate import MAX_BODY_LENGTH, TRUNCATION_NOTICE

CREDS = TokenCredentials("tkn")
REPO = RepoRef.from_slug("atomisthqa/handlers")


def _api_issue(number: int, title: str, body: str = "", state: str = "open", **extra: Any):
    return {
        "number": number,
        "title": title,
        "body": body,
        "state": state,
        "assignees": [{"login": a} for a in extra.get("assignees", [])],
        "labels": [],
        "url": f"https://api.github.com/repos/atomisthqa/handlers/issues/{number}",
        "html_url": f"https://github.com/atomisthqa/handlers/issues/{number}",
    }


class _RecordingRestClient(GitHubRestClient):
    def __init__(self, search_results: list[dict[str, Any]] | None = None):
        self.calls: list[tuple[str, Any]] = []
        self.search_results = search_results or []

    def create_issue(self, payload: dict[str, Any]) -> dict[str, Any]:  # type: ignore[override]
        self.calls.append(("create", payload))
        return _api_issue(
            1,
            payload["title"],
            payload.get("body", ""),
            assignees=payload.get("assignees", []),
        )

    def update_issue(self, number: int, payload: dict[str, Any]) -> dict[str, Any]:  # type: ignore[override]
        self.calls.append(("update", (number, payload)))
        return _api_issue(
            number,
            payload.get("title", "t"),
            payload.get("body", ""),
            payload.get("state", "open"),
            assignees=payload.get("assignees", []),
        )

    def iter_search_issues(self, query: str, *, max_results: int = 1000) -> Iterator[dict[str, Any]]:  # type: ignore[override]
        self.calls.append(("search", query))
        yield from self.search_results


def _client(rest: GitHubRestClient, **cfg: Any) -> IssuesClient:
    return IssuesClient(CREDS, REPO, IssuesClientConfig(**cfg), rest_client=rest)


def test_create_issue_sends_title_body_and_assignees():
    rest = _RecordingRestClient()
    issue = Issue(title="Issue from test", body="First body\n", assignees=["atomist-bot"])

    created = _client(rest).create_issue(issue)

    assert rest.calls == [
        (
            "create",
            {"title": "Issue from test", "body": "First body\n", "assignees": ["atomist-bot"]},
        )
    ]
    assert created.number == 1
    assert created.state == "open"
    assert created.assignees == ["atomist-bot"]


def test_create_issue_truncates_oversized_body():
    rest = _RecordingRestClient()
    body = "a line of review output\n" * 5000

    created = _client(rest).create_issue(Issue(title="Big", body=body))

    sent = rest.calls[0][1]["body"]
    assert len(sent) <= MAX_BODY_LENGTH
    assert sent.endswith(TRUNCATION_NOTICE)
    assert created.body == sent


def test_configured_budget_is_applied():
    rest = _RecordingRestClient()
    client = _client(
        rest, max_body_length=40, truncation_notice="\n...\n", truncation_margin=0
    )
    client.create_issue(Issue(title="t", body="0123456789\n" * 10))
    assert rest.calls[0][1]["body"] == "0123456789\n0123456789\n0123456789\n...\n"


def test_update_issue_patches_by_number_with_state():
    rest = _RecordingRestClient()
    original = Issue.from_api(_api_issue(42, "Title", "First body\n"))

    updated = _client(rest).update_issue(
        Issue(
            title=original.title,
            body="Second body\n",
            state=original.state,
            url=original.url,
        )
    )

    kind, (number, payload) = rest.calls[0]
    assert kind == "update"
    assert number == 42  # noqa: PLR2004
    assert payload["body"] == "Second body\n"
    assert payload["state"] == "open"
    assert updated.body == "Second body\n"


def test_update_issue_without_number_raises():
    with pytest.raises(ValueError):
        _client(_RecordingRestClient()).update_issue(Issue(title="orphan"))


def test_close_issue_clears_assignees():
    rest = _RecordingRestClient()
    closed = _client(rest).close_issue(Issue(title="t", number=7, assignees=["atomist-bot"]))
    assert rest.calls == [("update", (7, {"state": "closed", "assignees": []}))]
    assert closed.state == "closed"
    assert closed.assignees == []


def test_find_issue_requires_exact_title():
    rest = _RecordingRestClient(
        [
            _api_issue(3, "Issue from test 12 extended"),
            _api_issue(4, "Issue from test 12"),
        ]
    )

    found = _client(rest).find_issue("Issue from test 12")

    assert found is not None
    assert found.number == 4  # noqa: PLR2004
    query = rest.calls[0][1]
    assert "repo:atomisthqa/handlers" in query
    assert "state:open" in query
    assert "in:title" in query
    assert '"Issue from test 12"' in query


def test_find_issue_returns_none_without_match():
    rest = _RecordingRestClient([_api_issue(3, "Something else")])
    assert _client(rest).find_issue("Missing") is None


def test_find_issue_escapes_quotes():
    rest = _RecordingRestClient()
    _client(rest).find_issue('say "hi"')
    assert '"say \\"hi\\""' in rest.calls[0][1]


def test_find_issues_scopes_query_to_repo():
    rest = _RecordingRestClient([_api_issue(5, "a"), _api_issue(6, "b")])
    found = _client(rest).find_issues("Second body 99")
    assert [i.number for i in found] == [5, 6]
    assert rest.calls[0][1] == "is:issue repo:atomisthqa/handlers Second body 99"


def test_dry_run_never_calls_github():
    rest = _RecordingRestClient()
    client = _client(rest, dry_run=True)

    created = client.create_issue(Issue(title="t", body="x" * (MAX_BODY_LENGTH + 10)))
    updated = client.update_issue(Issue(title="t", body="b", number=3))
    closed = client.close_issue(Issue(title="t", number=3, assignees=["a"]))

    assert rest.calls == []
    assert len(created.body) <= MAX_BODY_LENGTH
    assert updated.number == 3  # noqa: PLR2004
    assert closed.state == "closed"
    assert closed.assignees == []


def test_module_functions_use_credentials_and_repo(monkeypatch: pytest.MonkeyPatch, stub_session):
    session = stub_session(
        StubResponse(201, _api_issue(10, "Hello", "Body")),
        StubResponse(200, _api_issue(10, "Hello", "Body 2")),
        StubResponse(200, {"items": [_api_issue(10, "Hello", "Body 2")]}),
        StubResponse(200, {"items": [_api_issue(10, "Hello", "Body 2")]}),
        StubResponse(200, _api_issue(10, "Hello", "Body 2", state="closed")),
    )
    monkeypatch.setattr("issuepack.github_rest.requests.Session", lambda: session)

    created = create_issue(CREDS, REPO, Issue(title="Hello", body="Body"))
    updated = update_issue(CREDS, REPO, Issue(title="Hello", body="Body 2", number=created.number))
    found = find_issue(CREDS, REPO, "Hello")
    listed = find_issues(CREDS, REPO, "Body 2")
    closed = close_issue(CREDS, REPO, updated)

    assert created.number == 10  # noqa: PLR2004
    assert updated.body == "Body 2"
    assert found is not None and found.title == "Hello"
    assert [i.number for i in listed] == [10]
    assert closed.state == "closed"
    assert session.headers["Authorization"] == "Bearer tkn"
    methods = [entry[0] for entry in session.request_log]
    assert methods == ["POST", "PATCH", "GET", "GET", "PATCH"]


def test_state_only_update_sends_nothing_else():
    rest = _RecordingRestClient()
    _client(rest).update_issue(Issue(number=42, state="closed"))
    assert rest.calls == [("update", (42, {"state": "closed"}))]


def test_title_only_update_keeps_body_and_assignees():
    rest = _RecordingRestClient()
    _client(rest).update_issue(Issue(number=42, title="Renamed"))
    _, (_, payload) = rest.calls[0]
    assert payload == {"title": "Renamed"}
    assert "body" not in payload
    assert "assignees" not in payload


def test_create_issue_without_title_raises():
    rest = _RecordingRestClient()
    with pytest.raises(ValueError):
        _client(rest).create_issue(Issue(body="no title"))
    assert rest.calls == []


def test_update_and_close_by_url_only():
    rest = _RecordingRestClient()
    url = "https://api.github.com/repos/atomisthqa/handlers/issues/77"
    client = _client(rest)

    client.update_issue(Issue(url=url, body="Second body\n"))
    client.close_issue(Issue(url=url))

    assert rest.calls == [
        ("update", (77, {"body": "Second body\n"})),
        ("update", (77, {"state": "closed", "assignees": []})),
    ]


def test_find_issue_matches_on_a_later_page(stub_session):
    near_misses = [_api_issue(n, f"Issue from test 12 ({n})") for n in range(100, 200)]
    session = stub_session(
        StubResponse(200, {"items": near_misses}),
        StubResponse(200, {"items": [_api_issue(7, "Issue from test 12")]}),
    )
    client = IssuesClient(CREDS, REPO, session=session)

    found = client.find_issue("Issue from test 12")

    assert found is not None
    assert found.number == 7  # noqa: PLR2004
    pages = [entry[2]["params"]["page"] for entry in session.request_log]
    assert pages == [1, 2]


def test_find_issue_stops_at_first_exact_match(stub_session):
    items = [_api_issue(5, "Issue from test 12")]
    items += [_api_issue(n, f"other {n}") for n in range(100, 199)]
    # a full page; asking for page 2 would hit an empty queue and fail
    session = stub_session(StubResponse(200, {"items": items}))
    client = IssuesClient(CREDS, REPO, session=session)

    found = client.find_issue("Issue from test 12")

    assert found is not None
    assert found.number == 5  # noqa: PLR2004
    assert len(session.request_log) == 1
