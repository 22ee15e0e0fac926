from __future__ import annotations

import logging
from functools import lru_cache

from qualibot_action.application.services import VisualTestRunService
from qualibot_action.application.test_config import build_test_config
from qualibot_action.core.config import get_settings
from qualibot_action.core.errors import CommentError
from qualibot_action.infra.github.comments import GitHubCommentClient
from qualibot_action.infra.github.runner import ActionsRunner
from qualibot_action.infra.ports.comments import CommentPort
from qualibot_action.infra.ports.runner import RunnerPort
from qualibot_action.infra.ports.testing_service import TestingServicePort
from qualibot_action.infra.qualibot.client import QualiBotClient

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_testing_service() -> TestingServicePort:
    settings = get_settings()
    return QualiBotClient(
        api_key=settings.api_key,
        api_url=settings.api_url,
        app_base_url=settings.app_base_url,
        timeout_seconds=settings.http_timeout_seconds,
    )


@lru_cache(maxsize=1)
def get_runner() -> RunnerPort:
    settings = get_settings()
    return ActionsRunner(
        output_path=settings.github_output_path,
        summary_path=settings.github_step_summary_path,
    )


@lru_cache(maxsize=1)
def get_comments() -> CommentPort | None:
    settings = get_settings()
    if not settings.comment_on_pr or not settings.github_token:
        return None
    if not settings.github_repository:
        logger.warning("GITHUB_REPOSITORY is not set; the PR comment will be skipped")
        return None
    try:
        return GitHubCommentClient(
            token=settings.github_token,
            repository=settings.github_repository,
            api_url=settings.github_api_url,
            timeout_seconds=settings.http_timeout_seconds,
        )
    except CommentError as exc:
        logger.warning("PR comment disabled: %s", exc)
        return None


def get_run_service() -> VisualTestRunService:
    settings = get_settings()
    return VisualTestRunService(
        service=get_testing_service(),
        runner=get_runner(),
        comments=get_comments(),
        org_id=settings.org_id,
        project_id=settings.project_id,
        target_url=settings.target_url,
        config=build_test_config(
            browsers=settings.browsers,
            viewports=settings.viewports,
            scope=settings.scope,
            test_types=settings.test_types,
            exclude_tests=settings.exclude_tests,
        ),
        wait_for_results=settings.wait_for_results,
        timeout_seconds=settings.timeout_seconds,
        poll_interval_seconds=settings.poll_interval_seconds,
        fail_on_critical=settings.fail_on_critical,
    )


def clear_caches() -> None:
    get_settings.cache_clear()
    get_testing_service.cache_clear()
    get_runner.cache_clear()
    get_comments.cache_clear()
