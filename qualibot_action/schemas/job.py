"""QualiBot test payload schemas.

The service owns the shape of the result bag, so every field here is optional
and defaulted. ``null`` anywhere reads as the field's default.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

logger = logging.getLogger(__name__)


class _Payload(BaseModel):
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data


class IssuesSummary(_Payload):
    total: int = 0
    critical: int = 0
    warning: int = 0
    info: int = 0


class AffectedComponent(_Payload):
    name: str = ""
    type: str = ""


class SegmentScreenshot(_Payload):
    browser: str = ""
    viewport: str = ""
    componentName: str = ""
    screenshotUrl: str = ""


class NavigationStep(_Payload):
    description: str = ""


class DiscoveryResult(_Payload):
    targetComponent: str = ""
    success: bool = False
    screenshotUrl: str | None = None
    duration: float = 0.0
    error: str | None = None
    browser: str | None = None
    viewport: str | None = None
    navigationPath: list[NavigationStep] = Field(default_factory=list)
    segmentScreenshots: list[SegmentScreenshot] = Field(default_factory=list)


class TestStep(_Payload):
    __test__ = False

    action: str = ""
    description: str = ""
    success: bool = False
    error: str | None = None


class NestedIssue(_Payload):
    severity: str = "info"
    title: str = ""
    description: str = ""


class InteractionResult(_Payload):
    behaviorType: str = "other"
    name: str = ""
    description: str = ""
    passed: bool = False
    browser: str = ""
    viewport: str = ""
    screenshotBefore: str | None = None
    screenshotAfter: str | None = None
    steps: list[TestStep] = Field(default_factory=list)
    issues: list[NestedIssue] = Field(default_factory=list)


class FailedAssertion(_Payload):
    description: str = ""
    expected: str | None = None
    actual: str | None = None


class NetworkCall(_Payload):
    method: str = "GET"
    url: str = ""
    status: int | None = None


class FunctionalScenario(_Payload):
    feature: str = ""
    name: str = ""
    description: str = ""
    passed: bool = False
    browser: str | None = None
    viewport: str | None = None
    steps: list[TestStep] = Field(default_factory=list)
    failedAssertions: list[FailedAssertion] = Field(default_factory=list)
    networkCalls: list[NetworkCall] = Field(default_factory=list)
    screenshotUrl: str | None = None
    issues: list[NestedIssue] = Field(default_factory=list)


class FeatureItem(_Payload):
    name: str = ""
    description: str = ""


class FormSubmission(_Payload):
    formName: str = ""
    success: bool = False
    error: str | None = None


class ExecutedTest(_Payload):
    name: str = ""
    type: str = ""
    passed: bool | None = None


class TestOverview(_Payload):
    __test__ = False

    features: list[FeatureItem] = Field(default_factory=list)
    formSubmissions: list[FormSubmission] = Field(default_factory=list)
    executedTests: list[ExecutedTest] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.features or self.formSubmissions or self.executedTests)


class CodeFinding(_Payload):
    severity: str = "info"
    file: str | None = None
    line: int | None = None
    message: str = ""
    suggestion: str | None = None


class TestIssue(_Payload):
    __test__ = False

    type: str = ""
    severity: str = "info"
    title: str = ""
    description: str = ""
    suggestion: str | None = None
    status: str | None = None


class JobResult(_Payload):
    prTestId: str | None = None
    detailsUrl: str | None = None
    status: str = ""
    result: str | None = None
    runNumber: int | None = None
    previousRunCount: int | None = None
    issuesSummary: IssuesSummary = Field(default_factory=IssuesSummary)
    affectedComponents: list[AffectedComponent] = Field(default_factory=list)
    discoveryResults: list[DiscoveryResult] = Field(default_factory=list)
    segmentScreenshots: list[SegmentScreenshot] = Field(default_factory=list)
    interactionResults: list[InteractionResult] = Field(default_factory=list)
    functionalResults: list[FunctionalScenario] = Field(default_factory=list)
    testOverview: TestOverview | None = None
    codeAnalysis: list[CodeFinding] = Field(default_factory=list)
    testCategories: list[str] = Field(default_factory=list)
    testResults: list[TestIssue] = Field(default_factory=list)
    scope: str | None = None
    error: str | None = None


def parse_job_result(payload: dict[str, Any]) -> JobResult:
    """Validate a status payload, discarding any top-level field that does not fit.

    A malformed sub-report only costs that sub-report; the terminal status and
    counts still come through.
    """
    data = dict(payload)
    while True:
        try:
            return JobResult.model_validate(data)
        except ValidationError as exc:
            bad_keys = {err["loc"][0] for err in exc.errors() if err.get("loc")}
            bad_keys &= set(data)
            if not bad_keys:
                raise
            logger.warning("Ignoring malformed result field(s): %s", ", ".join(sorted(map(str, bad_keys))))
            for key in bad_keys:
                data.pop(key, None)
