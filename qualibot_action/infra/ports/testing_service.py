from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from qualibot_action.domain.models import ChangeMetadata, JobHandle, TestConfig


class TestingServicePort(ABC):
    __test__ = False

    @abstractmethod
    def create_job(
        self,
        *,
        change: ChangeMetadata,
        org_id: str,
        project_id: str,
        target_url: str,
        config: TestConfig,
    ) -> JobHandle:
        """Send exactly one creation request and return the new job handle."""

    @abstractmethod
    def get_job_status(self, *, job_id: str, project_id: str) -> dict[str, Any]:
        """Return the raw status body. Raise StatusReadError on a failed read."""
