from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

from qualibot_action.schemas.job import JobResult

TerminalStatus = Literal["completed", "failed", "timeout"]
TERMINAL_SERVICE_STATUSES = frozenset({"completed", "failed"})

PR_CHANGES_SCOPE = "pr-changes"


@dataclass(frozen=True)
class JobHandle:
    id: str
    dashboard_url: str


@dataclass(frozen=True)
class Viewport:
    width: int
    height: int

    def to_payload(self) -> dict[str, int]:
        return {"width": self.width, "height": self.height}


@dataclass(frozen=True)
class TestConfig:
    __test__ = False

    browsers: list[str] = field(default_factory=lambda: ["chrome"])
    viewports: list[Viewport] = field(default_factory=lambda: [Viewport(1920, 1080)])
    scope: str = PR_CHANGES_SCOPE
    test_categories: list[str] = field(default_factory=list)
    exclude_tests: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class ChangeMetadata:
    number: int
    title: str
    url: str
    author: str
    author_avatar: str | None
    head_branch: str
    base_branch: str
    head_sha: str


@dataclass
class PollOutcome:
    status: TerminalStatus
    result: str = ""
    total_issues: int = 0
    critical_issues: int = 0
    job: JobResult | None = None
    requests_made: int = 0

    @property
    def error(self) -> str | None:
        return self.job.error if self.job is not None else None


@dataclass(frozen=True)
class RunOutcome:
    exit_code: int
    status: str
    failure_message: str | None = None
    handle: JobHandle | None = None
