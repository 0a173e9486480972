"""issuepack CLI.

Subcommands:
  truncate -> print a body cut down to the GitHub size limit
  create   -> open an issue
  update   -> change only the given fields of an issue
  find     -> look up an open issue by exact title
  search   -> list issues matching a free-text query
  close    -> close an issue and clear its assignees
  review   -> sync review comments (JSON) to one issue per category
"""

from __future__ import annotations

import argparse
import json
import os
import sys
from collections.abc import Callable
from dataclasses import asdict
from pathlib import Path
from typing import Any

import requests

from issuepack.config import CONFIG_DEFAULT, ConfigError, PackConfig, load_config, select_token
from issuepack.errors import GitHubAPIError, classify_error
from issuepack.github_issues import IssuesClient, IssuesClientConfig
from issuepack.logging import configure_logging, get_logger
from issuepack.models import Issue, RepoRef, TokenCredentials
from issuepack.review import ReviewComment, ReviewIssueReporter
from issuepack.truncate import truncate_body_if_too_large

REPO_HELP = "Target repository (owner/repo); overrides github.repo in config"
BODY_FILE_HELP = "Read the issue body from a file ('-' for stdin)"

_MAX_HELP_WIDTH = 100


class _HelpFormatter(argparse.HelpFormatter):
    def __init__(self, prog: str) -> None:
        super().__init__(prog, max_help_position=30, width=_MAX_HELP_WIDTH)


class _FormatterArgumentParser(argparse.ArgumentParser):
    def __init__(self, *args: Any, **kwargs: Any) -> None:
        kwargs.setdefault("formatter_class", _HelpFormatter)
        super().__init__(*args, **kwargs)


def _build_parser() -> argparse.ArgumentParser:
    p = _FormatterArgumentParser(prog="issuepack", description="GitHub issue lifecycle helper")
    p.add_argument("--config", default=CONFIG_DEFAULT)
    p.add_argument("--repo", help=REPO_HELP)
    p.add_argument("--dry-run", action="store_true", help="Log mutations without sending them")
    p.add_argument("--json-logs", action="store_true", help="Emit structured JSON logs")
    p.add_argument(
        "--quiet",
        action="store_true",
        help="Only log warnings and errors (env: ISSUEPACK_QUIET=1)",
    )
    sub = p.add_subparsers(
        dest="cmd",
        required=True,
        parser_class=_FormatterArgumentParser,
        metavar="<command>",
    )

    tr = sub.add_parser("truncate", help="Truncate a body to the configured maximum length")
    tr.add_argument("file", nargs="?", default="-", help="Input file ('-' for stdin)")
    tr.add_argument("--max-length", type=int, help="Override body.max_length")
    tr.add_argument("--margin", type=int, help="Override body.truncation_margin")

    cr = sub.add_parser("create", help="Create an issue")
    cr.add_argument("--title", required=True)
    cr.add_argument("--body", default="")
    cr.add_argument("--body-file", help=BODY_FILE_HELP)
    cr.add_argument("--assignee", action="append", default=[], dest="assignees")
    cr.add_argument("--label", action="append", default=[], dest="labels")

    up = sub.add_parser(
        "update", help="Update an existing issue; only the given fields change"
    )
    up.add_argument("number", type=int)
    up.add_argument("--title")
    up.add_argument("--body")
    up.add_argument("--body-file", help=BODY_FILE_HELP)
    up.add_argument("--state", choices=("open", "closed"))
    up.add_argument("--assignee", action="append", dest="assignees")
    up.add_argument("--label", action="append", dest="labels")

    fd = sub.add_parser("find", help="Find an open issue by exact title")
    fd.add_argument("title")

    se = sub.add_parser("search", help="List issues matching a free-text query")
    se.add_argument("query")

    cl = sub.add_parser("close", help="Close an issue")
    cl.add_argument("number", type=int)

    rv = sub.add_parser("review", help="Sync review comments to one issue per category")
    rv.add_argument("comments", help="JSON file with a list of review comments ('-' for stdin)")
    rv.add_argument("--sha", help="Commit the review ran against")
    rv.add_argument(
        "--category",
        action="append",
        default=[],
        dest="categories",
        help="Category that was checked; its issue is closed when it has no comments",
    )
    return p


def _read_text(path: str) -> str:
    if path == "-":
        return sys.stdin.read()
    return Path(path).read_text(encoding="utf-8")


def _body_from_args(args: argparse.Namespace) -> str | None:
    if args.body_file:
        return _read_text(args.body_file)
    return None if args.body is None else str(args.body)


def _emit_json(payload: Any) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False))


def _build_client(cfg: PackConfig, args: argparse.Namespace) -> IssuesClient:
    repo = args.repo or cfg.github_repo
    if not repo:
        raise ConfigError("No repository given; pass --repo or set github.repo")
    token = select_token(cfg)
    if not token:
        raise ConfigError("No GitHub token found; set ISSUEPACK_GITHUB_TOKEN or GITHUB_TOKEN")
    client_cfg = IssuesClientConfig(
        dry_run=bool(args.dry_run or cfg.dry_run),
        max_body_length=cfg.max_body_length,
        truncation_notice=cfg.truncation_notice,
        truncation_margin=cfg.truncation_margin,
    )
    return IssuesClient(
        TokenCredentials(token),
        RepoRef.from_slug(repo, api_base=cfg.github_api_url),
        client_cfg,
    )


def _cmd_truncate(cfg: PackConfig, args: argparse.Namespace) -> int:
    max_length = args.max_length if args.max_length is not None else cfg.max_body_length
    margin = args.margin if args.margin is not None else cfg.truncation_margin
    body = truncate_body_if_too_large(
        _read_text(args.file),
        max_length=max_length,
        notice=cfg.truncation_notice,
        margin=margin,
    )
    sys.stdout.write(body)
    return 0


def _cmd_create(cfg: PackConfig, args: argparse.Namespace) -> int:
    issue = Issue(
        title=args.title,
        body=_body_from_args(args),
        assignees=list(args.assignees),
        labels=list(args.labels),
    )
    _emit_json(asdict(_build_client(cfg, args).create_issue(issue)))
    return 0


def _cmd_update(cfg: PackConfig, args: argparse.Namespace) -> int:
    issue = Issue(
        title=args.title,
        body=_body_from_args(args),
        state=args.state,
        assignees=args.assignees,
        labels=args.labels,
        number=args.number,
    )
    _emit_json(asdict(_build_client(cfg, args).update_issue(issue)))
    return 0


def _cmd_find(cfg: PackConfig, args: argparse.Namespace) -> int:
    found = _build_client(cfg, args).find_issue(args.title)
    if found is None:
        get_logger().info(f"no open issue titled {args.title!r}", operation="find_issue")
        return 1
    _emit_json(asdict(found))
    return 0


def _cmd_search(cfg: PackConfig, args: argparse.Namespace) -> int:
    _emit_json([asdict(i) for i in _build_client(cfg, args).find_issues(args.query)])
    return 0


def _cmd_close(cfg: PackConfig, args: argparse.Namespace) -> int:
    client = _build_client(cfg, args)
    _emit_json(asdict(client.close_issue(Issue(number=args.number))))
    return 0


def _load_review_comments(path: str) -> list[ReviewComment]:
    try:
        raw = json.loads(_read_text(path))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Review comments file is not valid JSON: {exc}") from exc
    if not isinstance(raw, list):
        raise ValueError("Review comments file must contain a JSON list")
    comments: list[ReviewComment] = []
    for entry in raw:
        if not isinstance(entry, dict):
            raise ValueError(f"Review comment must be an object, got {entry!r}")
        try:
            comments.append(
                ReviewComment(
                    category=str(entry["category"]),
                    severity=str(entry.get("severity", "warn")),
                    detail=str(entry["detail"]),
                    path=entry.get("path"),
                    line=entry.get("line"),
                    subcategory=entry.get("subcategory"),
                )
            )
        except KeyError as exc:
            raise ValueError(f"Review comment missing field {exc}") from exc
    return comments


def _cmd_review(cfg: PackConfig, args: argparse.Namespace) -> int:
    comments = _load_review_comments(args.comments)
    reporter = ReviewIssueReporter(
        _build_client(cfg, args),
        title_prefix=cfg.review_title_prefix,
        assignees=cfg.review_assignees,
    )
    actions = reporter.report(comments, categories=args.categories, sha=args.sha)
    _emit_json(
        [
            {
                "category": a.category,
                "outcome": a.outcome.value,
                "number": a.issue.number,
                "url": a.issue.html_url,
            }
            for a in actions
        ]
    )
    return 0


_HANDLERS: dict[str, Callable[[PackConfig, argparse.Namespace], int]] = {
    "truncate": _cmd_truncate,
    "create": _cmd_create,
    "update": _cmd_update,
    "find": _cmd_find,
    "search": _cmd_search,
    "close": _cmd_close,
    "review": _cmd_review,
}


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    if not args.quiet and os.environ.get("ISSUEPACK_QUIET") == "1":
        args.quiet = True
    try:
        cfg = load_config(args.config)
    except ConfigError as exc:
        configure_logging().log_error("configuration error", error=str(exc))
        return 2
    level = "WARNING" if args.quiet else cfg.logging_level
    logger = configure_logging(json_logging=args.json_logs or cfg.logging_json_enabled, level=level)
    handler = _HANDLERS[args.cmd]
    try:
        return handler(cfg, args)
    except ConfigError as exc:
        logger.log_error("configuration error", error=str(exc))
        return 2
    except (GitHubAPIError, requests.RequestException, OSError, ValueError) as exc:
        info = classify_error(exc)
        logger.log_error(
            f"{args.cmd} failed",
            error=info.message,
            category=info.category,
            transient=info.transient,
        )
        return 1


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
