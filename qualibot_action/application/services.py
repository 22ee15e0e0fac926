from __future__ import annotations

import logging
import time
from typing import Callable

from qualibot_action.application.polling import JobPoller
from qualibot_action.application.report import ReportContext, render_comment, render_summary
from qualibot_action.domain.models import ChangeMetadata, JobHandle, PollOutcome, RunOutcome, TestConfig
from qualibot_action.infra.ports.comments import CommentPort
from qualibot_action.infra.ports.runner import RunnerPort
from qualibot_action.infra.ports.testing_service import TestingServicePort

logger = logging.getLogger(__name__)


def decide_exit(outcome: PollOutcome, *, fail_on_critical: bool) -> str | None:
    """Return the single failure message for the run, or None when it passed."""
    if outcome.status == "timeout":
        return "QualiBot test timed out. Check the dashboard for details."
    if outcome.status == "failed":
        return f"QualiBot test failed: {outcome.error or 'Unknown error'}"
    if fail_on_critical and outcome.critical_issues > 0:
        return f"QualiBot found {outcome.critical_issues} critical visual issue(s)."
    return None


class VisualTestRunService:
    """Trigger, wait, report, decide. One pass per workflow step."""

    def __init__(
        self,
        *,
        service: TestingServicePort,
        runner: RunnerPort,
        comments: CommentPort | None = None,
        org_id: str,
        project_id: str,
        target_url: str,
        config: TestConfig,
        wait_for_results: bool = True,
        timeout_seconds: int = 1800,
        poll_interval_seconds: int = 30,
        fail_on_critical: bool = True,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.service = service
        self.runner = runner
        self.comments = comments
        self.org_id = org_id
        self.project_id = project_id
        self.target_url = target_url
        self.config = config
        self.wait_for_results = wait_for_results
        self.fail_on_critical = fail_on_critical
        self.poller = JobPoller(
            service=service,
            project_id=project_id,
            timeout_seconds=timeout_seconds,
            poll_interval_seconds=poll_interval_seconds,
            sleep=sleep,
            clock=clock,
        )

    def trigger(self, change: ChangeMetadata) -> JobHandle:
        logger.info("Triggering QualiBot test for PR #%s...", change.number)
        logger.info("Target URL: %s", self.target_url)
        handle = self.service.create_job(
            change=change,
            org_id=self.org_id,
            project_id=self.project_id,
            target_url=self.target_url,
            config=self.config,
        )
        logger.info("Test triggered successfully: %s", handle.id)
        self.runner.set_output("test-id", handle.id)
        self.runner.set_output("dashboard-url", handle.dashboard_url)
        return handle

    def publish_comment(self, *, issue_number: int, ctx: ReportContext, outcome: PollOutcome) -> bool:
        """Render and post the comment. Never raises: a failure here only warns."""
        if self.comments is None:
            return False
        try:
            body = render_comment(ctx, outcome.job)
            self.comments.post_comment(issue_number=issue_number, body=body)
        except Exception as exc:
            logger.warning("Failed to post PR comment: %s", exc)
            return False
        logger.info("Posted results comment on PR.")
        return True

    def publish_summary(self, ctx: ReportContext) -> bool:
        try:
            self.runner.write_summary(render_summary(ctx))
        except OSError as exc:
            logger.warning("Failed to write job summary: %s", exc)
            return False
        return True

    def run(self, change: ChangeMetadata | None) -> RunOutcome:
        if change is None:
            logger.warning("No pull request context found. Skipping QualiBot test.")
            return RunOutcome(exit_code=0, status="skipped")

        handle = self.trigger(change)

        if not self.wait_for_results:
            logger.info("Not waiting for results (wait-for-results: false)")
            self.runner.set_output("status", "triggered")
            return RunOutcome(exit_code=0, status="triggered", handle=handle)

        logger.info(
            "Waiting for results (timeout: %ss, poll every: %ss)...",
            round(self.poller.timeout_seconds),
            round(self.poller.poll_interval_seconds),
        )
        outcome = self.poller.wait(handle)

        self.runner.set_output("status", outcome.status)
        self.runner.set_output("result", outcome.result)
        self.runner.set_output("total-issues", str(outcome.total_issues))
        self.runner.set_output("critical-issues", str(outcome.critical_issues))

        ctx = ReportContext.from_outcome(
            outcome,
            target_url=self.target_url,
            dashboard_url=handle.dashboard_url,
            scope=self.config.scope,
        )
        self.publish_comment(issue_number=change.number, ctx=ctx, outcome=outcome)
        self.publish_summary(ctx)

        failure = decide_exit(outcome, fail_on_critical=self.fail_on_critical)
        if failure:
            return RunOutcome(exit_code=1, status=outcome.status, failure_message=failure, handle=handle)

        logger.info("QualiBot visual testing completed successfully.")
        return RunOutcome(exit_code=0, status=outcome.status, handle=handle)
