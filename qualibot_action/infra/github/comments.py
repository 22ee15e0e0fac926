from __future__ import annotations

import httpx

from qualibot_action.core.errors import CommentError
from qualibot_action.infra.ports.comments import CommentPort


class GitHubCommentClient(CommentPort):
    def __init__(
        self,
        *,
        token: str,
        repository: str,
        api_url: str = "https://api.github.com",
        timeout_seconds: int = 30,
        transport: httpx.BaseTransport | None = None,
    ):
        owner, _, repo = repository.partition("/")
        if not owner or not repo:
            raise CommentError(f"Invalid repository '{repository}'. Expected 'owner/repo'.")
        self.owner = owner
        self.repo = repo
        self._client = httpx.Client(
            base_url=api_url.rstrip("/"),
            headers={
                "Authorization": f"Bearer {token}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": "2022-11-28",
            },
            timeout=max(3, int(timeout_seconds)),
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def post_comment(self, *, issue_number: int, body: str) -> None:
        resp = self._client.post(
            f"/repos/{self.owner}/{self.repo}/issues/{issue_number}/comments",
            json={"body": body},
        )
        if not resp.is_success:
            raise CommentError(
                f"GitHub API error ({resp.status_code}): {resp.text[:300]}",
                status_code=resp.status_code,
            )
