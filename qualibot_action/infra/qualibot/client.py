from __future__ import annotations

from typing import Any
from urllib import parse

import httpx

from qualibot_action.core.errors import StatusReadError, TriggerError
from qualibot_action.domain.models import ChangeMetadata, JobHandle, TestConfig
from qualibot_action.infra.ports.testing_service import TestingServicePort


def build_trigger_payload(
    *,
    change: ChangeMetadata,
    org_id: str,
    project_id: str,
    target_url: str,
    config: TestConfig,
) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "projectId": project_id,
        "orgId": org_id,
        "prNumber": change.number,
        "prTitle": change.title,
        "prUrl": change.url,
        "prAuthor": change.author,
        "prAuthorAvatar": change.author_avatar,
        "headBranch": change.head_branch,
        "baseBranch": change.base_branch,
        "headSha": change.head_sha,
        "targetUrl": target_url,
        "browsers": list(config.browsers),
        "viewports": [viewport.to_payload() for viewport in config.viewports],
        "scope": config.scope,
    }
    if config.test_categories:
        payload["testCategories"] = list(config.test_categories)
    if config.exclude_tests:
        payload["excludeTests"] = list(config.exclude_tests)
    return payload


class QualiBotClient(TestingServicePort):
    provider_name = "qualibot"

    def __init__(
        self,
        *,
        api_key: str,
        api_url: str,
        app_base_url: str,
        timeout_seconds: int = 30,
        transport: httpx.BaseTransport | None = None,
    ):
        self.api_url = api_url.rstrip("/")
        self.app_base_url = app_base_url.rstrip("/")
        self.timeout_seconds = max(3, int(timeout_seconds))
        self._client = httpx.Client(
            base_url=self.api_url,
            headers={"Authorization": f"Bearer {api_key}"},
            timeout=self.timeout_seconds,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def dashboard_url(self, job_id: str) -> str:
        # Built from the job id only: org/project ids are registered secrets and
        # would be masked out of the link in the runner log.
        return f"{self.app_base_url}/view/{job_id}"

    def create_job(
        self,
        *,
        change: ChangeMetadata,
        org_id: str,
        project_id: str,
        target_url: str,
        config: TestConfig,
    ) -> JobHandle:
        payload = build_trigger_payload(
            change=change,
            org_id=org_id,
            project_id=project_id,
            target_url=target_url,
            config=config,
        )
        try:
            resp = self._client.post("/pr-tests", json=payload)
        except httpx.HTTPError as exc:
            raise TriggerError(f"Failed to trigger test: {exc}") from exc

        if not resp.is_success:
            raise TriggerError(
                f"Failed to trigger test ({resp.status_code}): {resp.text}",
                status_code=resp.status_code,
                body=resp.text,
            )

        try:
            data = resp.json()
        except ValueError as exc:
            raise TriggerError(f"Failed to trigger test: invalid JSON response: {resp.text[:200]}") from exc

        job_id = data.get("prTestId") if isinstance(data, dict) else None
        if not job_id:
            raise TriggerError(f"Failed to trigger test: response has no prTestId: {resp.text[:200]}")

        job_id = str(job_id)
        return JobHandle(id=job_id, dashboard_url=self.dashboard_url(job_id))

    def get_job_status(self, *, job_id: str, project_id: str) -> dict[str, Any]:
        try:
            resp = self._client.get(f"/pr-tests/{parse.quote(job_id, safe='')}", params={"projectId": project_id})
        except httpx.HTTPError as exc:
            raise StatusReadError(f"Status check failed ({exc})") from exc

        if not resp.is_success:
            raise StatusReadError(f"Status check failed ({resp.status_code})", status_code=resp.status_code)

        try:
            data = resp.json()
        except ValueError as exc:
            raise StatusReadError("Status check failed (invalid JSON body)", status_code=resp.status_code) from exc
        if not isinstance(data, dict):
            raise StatusReadError("Status check failed (unexpected body)", status_code=resp.status_code)
        return data
