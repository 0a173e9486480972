from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, cast

import yaml

from .models import DEFAULT_API_BASE
from .truncate import MAX_BODY_LENGTH, TRUNCATION_MARGIN, TRUNCATION_NOTICE

CONFIG_DEFAULT = "issuepack.config.yaml"
TOKEN_ENV_VARS = ("ISSUEPACK_GITHUB_TOKEN", "GITHUB_TOKEN", "GH_TOKEN")


class ConfigError(RuntimeError):
    pass


@dataclass
class PackConfig:
    github_repo: str | None = None
    github_api_url: str = DEFAULT_API_BASE
    github_token_env: str | None = None
    max_body_length: int = MAX_BODY_LENGTH
    truncation_notice: str = TRUNCATION_NOTICE
    truncation_margin: int = TRUNCATION_MARGIN
    dry_run: bool = False
    review_title_prefix: str = "Code Inspection"
    review_assignees: list[str] = field(default_factory=list)
    # Logging configuration
    logging_json_enabled: bool = False
    logging_level: str = "INFO"


def _resolve_env_var(value: Any) -> Any:
    """Resolve environment variable if value starts with $."""
    if isinstance(value, str) and value.startswith('$'):
        return os.getenv(value[1:], value)  # Fallback to original if not found
    return value


def _section(raw: dict[str, Any], name: str) -> dict[str, Any]:
    value = raw.get(name, {}) or {}
    if not isinstance(value, dict):
        raise ConfigError(f"Config section '{name}' must be a mapping")
    return cast(dict[str, Any], value)


def load_config(path: str | Path | None = None, *, required: bool = False) -> PackConfig:
    """Load a YAML config file; absent optional files yield defaults."""
    p = Path(path or CONFIG_DEFAULT)
    if not p.exists():
        if required:
            raise ConfigError(f'Configuration file not found: {p}')
        return PackConfig()
    try:
        raw = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f'Invalid YAML in {p}: {exc}') from exc
    if not isinstance(raw, dict):
        raise ConfigError(f'Configuration root in {p} must be a mapping')
    gh = _section(raw, 'github')
    body = _section(raw, 'body')
    behavior = _section(raw, 'behavior')
    review = _section(raw, 'review')
    logging_config = _section(raw, 'logging')

    try:
        max_body_length = int(body.get('max_length', MAX_BODY_LENGTH))
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"body.max_length must be an integer: {exc}") from exc
    if max_body_length <= 0:
        raise ConfigError("body.max_length must be positive")
    try:
        truncation_margin = int(body.get('truncation_margin', TRUNCATION_MARGIN))
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"body.truncation_margin must be an integer: {exc}") from exc
    if truncation_margin < 0:
        raise ConfigError("body.truncation_margin must not be negative")

    assignees = review.get('assignees', []) or []
    if isinstance(assignees, str):
        assignees = [assignees]

    return PackConfig(
        github_repo=_resolve_env_var(gh.get('repo')),
        github_api_url=_resolve_env_var(gh.get('api_url', DEFAULT_API_BASE)),
        github_token_env=gh.get('token_env'),
        max_body_length=max_body_length,
        truncation_notice=str(body.get('truncation_notice', TRUNCATION_NOTICE)),
        truncation_margin=truncation_margin,
        dry_run=bool(behavior.get('dry_run', False)),
        review_title_prefix=str(review.get('title_prefix', 'Code Inspection')),
        review_assignees=[str(a) for a in assignees],
        logging_json_enabled=bool(logging_config.get('json_enabled', False)),
        logging_level=str(logging_config.get('level', 'INFO')),
    )


def select_token(cfg: PackConfig | None = None) -> str | None:
    names: tuple[str, ...] = TOKEN_ENV_VARS
    if cfg is not None and cfg.github_token_env:
        names = (cfg.github_token_env, *TOKEN_ENV_VARS)
    for name in names:
        raw = os.environ.get(name)
        if raw is None:
            continue
        token = raw.strip()
        if token:
            return token
    return None


__all__ = ["CONFIG_DEFAULT", "ConfigError", "PackConfig", "load_config", "select_token"]
