import json
from pathlib import Path

import httpx
import pytest

from qualibot_action.core.errors import CommentError
from qualibot_action.infra.github.comments import GitHubCommentClient
from qualibot_action.infra.github.context import load_change_metadata
from qualibot_action.infra.github.runner import ActionsRunner


def _write_event(tmp_path: Path, event: dict) -> Path:
    path = tmp_path / "event.json"
    path.write_text(json.dumps(event), encoding="utf-8")
    return path


def test_load_change_metadata_from_pull_request_event(tmp_path: Path):
    path = _write_event(
        tmp_path,
        {
            "action": "synchronize",
            "pull_request": {
                "number": 42,
                "title": "Redesign header",
                "html_url": "https://github.com/acme/shop/pull/42",
                "user": {"login": "octocat", "avatar_url": "https://avatars.example/1"},
                "head": {"ref": "feature/header", "sha": "deadbeef"},
                "base": {"ref": "main"},
            },
        },
    )

    change = load_change_metadata(path)

    assert change is not None
    assert change.number == 42
    assert change.author == "octocat"
    assert change.author_avatar == "https://avatars.example/1"
    assert change.head_branch == "feature/header"
    assert change.base_branch == "main"
    assert change.head_sha == "deadbeef"


def test_load_change_metadata_outside_pull_request(tmp_path: Path):
    assert load_change_metadata(_write_event(tmp_path, {"ref": "refs/heads/main"})) is None
    assert load_change_metadata(tmp_path / "missing.json") is None
    assert load_change_metadata(None) is None


@pytest.mark.parametrize("number", ["abc", "", 0, -3, True, 4.5, {"n": 1}])
def test_load_change_metadata_treats_bad_number_as_no_pull_request(tmp_path: Path, number):
    event = {"pull_request": {"number": number, "title": "Broken"}}

    assert load_change_metadata(_write_event(tmp_path, event)) is None


def test_load_change_metadata_accepts_numeric_string(tmp_path: Path):
    event = {"pull_request": {"number": " 17 ", "title": "From a string"}}

    change = load_change_metadata(_write_event(tmp_path, event))

    assert change is not None
    assert change.number == 17


def test_comment_client_posts_body_to_issue_thread():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(201, json={"id": 1})

    client = GitHubCommentClient(
        token="gh-token",
        repository="acme/shop",
        transport=httpx.MockTransport(handler),
    )
    client.post_comment(issue_number=42, body="## report")

    assert len(seen) == 1
    assert seen[0].url.path == "/repos/acme/shop/issues/42/comments"
    assert seen[0].headers["Authorization"] == "Bearer gh-token"
    assert json.loads(seen[0].content) == {"body": "## report"}


def test_comment_client_raises_on_rejection():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(403, text="Resource not accessible by integration")

    client = GitHubCommentClient(token="t", repository="acme/shop", transport=httpx.MockTransport(handler))

    with pytest.raises(CommentError, match="403"):
        client.post_comment(issue_number=1, body="x")


def test_comment_client_rejects_bad_repository():
    with pytest.raises(CommentError):
        GitHubCommentClient(token="t", repository="no-slash")


def test_runner_appends_outputs_and_summary(tmp_path: Path):
    output = tmp_path / "output"
    summary = tmp_path / "summary.md"
    runner = ActionsRunner(output_path=output, summary_path=summary)

    runner.set_output("test-id", "t1")
    runner.set_output("status", "completed")
    runner.set_output("notes", "line one\nline two")
    runner.write_summary("## Results")

    lines = output.read_text(encoding="utf-8").splitlines()
    assert lines[:2] == ["test-id=t1", "status=completed"]
    assert lines[2].startswith("notes<<ghadelimiter_")
    assert lines[3:5] == ["line one", "line two"]
    assert lines[5] == lines[2].split("<<", 1)[1]
    assert summary.read_text(encoding="utf-8") == "## Results\n"


def test_runner_without_files_does_not_fail():
    runner = ActionsRunner()

    runner.set_output("status", "timeout")
    runner.write_summary("## Results")
