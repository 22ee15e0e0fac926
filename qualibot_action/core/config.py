from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from qualibot_action.core.errors import ConfigError

DEFAULT_API_URL = "https://quali-bot--quali-bot-da8cd.europe-west4.hosted.app/api/v1"
DEFAULT_GITHUB_API_URL = "https://api.github.com"


def _load_dotenv() -> None:
    if os.getenv("QUALIBOT_SKIP_DOTENV") == "1":
        return

    env_path = Path(__file__).resolve().parents[2] / ".env"
    if not env_path.exists():
        return

    from dotenv import load_dotenv

    load_dotenv(env_path, override=False)


def _input_env_name(name: str) -> str:
    return f"INPUT_{name.replace(' ', '_').upper()}"


def get_input(name: str, *, required: bool = False) -> str:
    """Read one action input the way the runner exposes it (``INPUT_<NAME>``)."""
    value = (os.getenv(_input_env_name(name)) or "").strip()
    if required and not value:
        raise ConfigError(f"Input required and not supplied: {name}")
    return value


def _parse_non_negative_int(value: str | None, default: int = 0) -> int:
    if value is None:
        return default
    raw = value.strip()
    if not raw:
        return default
    try:
        return max(0, int(raw))
    except ValueError:
        return default


def _parse_enabled(value: str | None) -> bool:
    # Inputs default to enabled; only an explicit "false" turns them off.
    return (value or "").strip() != "false"


@dataclass(frozen=True)
class Settings:
    api_key: str
    api_url: str
    org_id: str
    project_id: str
    target_url: str
    wait_for_results: bool
    timeout_seconds: int
    poll_interval_seconds: int
    fail_on_critical: bool
    comment_on_pr: bool
    github_token: str | None
    browsers: str
    viewports: str
    scope: str
    test_types: str
    exclude_tests: str
    http_timeout_seconds: int
    github_api_url: str
    github_repository: str | None
    github_event_path: Path | None
    github_output_path: Path | None
    github_step_summary_path: Path | None
    log_level: str

    @property
    def app_base_url(self) -> str:
        base = self.api_url.rstrip("/")
        if base.endswith("/api/v1"):
            base = base[: -len("/api/v1")]
        return base


def _optional_path(value: str | None) -> Path | None:
    raw = (value or "").strip()
    return Path(raw) if raw else None


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    _load_dotenv()

    timeout_seconds = _parse_non_negative_int(get_input("timeout") or None, default=1800)
    poll_interval_seconds = _parse_non_negative_int(get_input("poll-interval") or None, default=30)
    http_timeout_seconds = _parse_non_negative_int(os.getenv("QUALIBOT_HTTP_TIMEOUT_SECONDS"), default=30) or 30

    return Settings(
        api_key=get_input("api-key", required=True),
        api_url=(os.getenv("QUALIBOT_API_URL") or DEFAULT_API_URL).rstrip("/"),
        org_id=get_input("org-id", required=True),
        project_id=get_input("project-id", required=True),
        target_url=get_input("target-url", required=True),
        wait_for_results=_parse_enabled(get_input("wait-for-results")),
        timeout_seconds=timeout_seconds,
        poll_interval_seconds=poll_interval_seconds,
        fail_on_critical=_parse_enabled(get_input("fail-on-critical")),
        comment_on_pr=_parse_enabled(get_input("comment-on-pr")),
        github_token=get_input("github-token") or None,
        browsers=get_input("browsers") or "chrome",
        viewports=get_input("viewports") or "1920x1080",
        scope=get_input("scope") or "pr-changes",
        test_types=get_input("test-types"),
        exclude_tests=get_input("exclude-tests"),
        http_timeout_seconds=http_timeout_seconds,
        github_api_url=(os.getenv("GITHUB_API_URL") or DEFAULT_GITHUB_API_URL).rstrip("/"),
        github_repository=os.getenv("GITHUB_REPOSITORY") or None,
        github_event_path=_optional_path(os.getenv("GITHUB_EVENT_PATH")),
        github_output_path=_optional_path(os.getenv("GITHUB_OUTPUT")),
        github_step_summary_path=_optional_path(os.getenv("GITHUB_STEP_SUMMARY")),
        log_level=os.getenv("QUALIBOT_LOG_LEVEL", "INFO").strip() or "INFO",
    )
