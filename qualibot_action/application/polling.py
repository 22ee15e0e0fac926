from __future__ import annotations

import logging
import time
from typing import Any, Callable

from pydantic import ValidationError

from qualibot_action.core.errors import StatusReadError
from qualibot_action.domain.models import TERMINAL_SERVICE_STATUSES, JobHandle, PollOutcome
from qualibot_action.infra.ports.testing_service import TestingServicePort
from qualibot_action.schemas.job import JobResult, parse_job_result

logger = logging.getLogger(__name__)

_NESTED_PAYLOAD_KEY = "prTest"


def unwrap_job_payload(body: dict[str, Any]) -> dict[str, Any]:
    """Status reads return either ``{"prTest": {...}}`` or the test object itself."""
    nested = body.get(_NESTED_PAYLOAD_KEY)
    if isinstance(nested, dict):
        return nested
    return body


class JobPoller:
    """Sleep-then-read loop bounded by a wall-clock deadline.

    Reads are strictly sequential and the first one happens one interval after
    the loop starts. Expiry is only checked before each sleep, so every sleep
    is followed by its read and the loop can overrun ``timeout_seconds`` by up
    to one interval. No read starts once that check has seen the deadline.
    """

    def __init__(
        self,
        *,
        service: TestingServicePort,
        project_id: str,
        timeout_seconds: float = 1800,
        poll_interval_seconds: float = 30,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.service = service
        self.project_id = project_id
        self.timeout_seconds = max(0.0, float(timeout_seconds))
        self.poll_interval_seconds = max(0.0, float(poll_interval_seconds))
        self._sleep = sleep
        self._clock = clock

    def _read(self, job_id: str) -> JobResult | None:
        try:
            body = self.service.get_job_status(job_id=job_id, project_id=self.project_id)
        except StatusReadError as exc:
            logger.warning("%s, retrying...", exc)
            return None

        try:
            return parse_job_result(unwrap_job_payload(body))
        except ValidationError as exc:
            logger.warning("Status check returned an unreadable payload (%d error(s)), retrying...", exc.error_count())
            return None

    def wait(self, handle: JobHandle) -> PollOutcome:
        start = self._clock()
        requests_made = 0

        while self._clock() - start < self.timeout_seconds:
            self._sleep(self.poll_interval_seconds)

            logger.info("Checking status... (%ss elapsed)", round(self._clock() - start))
            requests_made += 1
            job = self._read(handle.id)
            if job is None:
                continue

            logger.info("Status: %s", job.status)
            if job.status in TERMINAL_SERVICE_STATUSES:
                return PollOutcome(
                    status=job.status,  # type: ignore[arg-type]
                    result=job.result or "unknown",
                    total_issues=job.issuesSummary.total,
                    critical_issues=job.issuesSummary.critical,
                    job=job,
                    requests_made=requests_made,
                )

        logger.info("No terminal status after %ss", round(self._clock() - start))
        # Non-terminal payloads are never trusted, so nothing is carried over.
        return PollOutcome(status="timeout", requests_made=requests_made)
