"""Markdown rendering for the pull request comment and the run summary.

Both renderers are pure: same inputs, same text. Every optional section is
skipped when the service did not send data for it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, TypeVar

from qualibot_action.domain.models import PR_CHANGES_SCOPE, PollOutcome
from qualibot_action.schemas.job import (
    CodeFinding,
    DiscoveryResult,
    FunctionalScenario,
    InteractionResult,
    JobResult,
    NestedIssue,
    SegmentScreenshot,
    TestIssue,
    TestOverview,
    TestStep,
)

MAX_LISTED_ISSUES = 10
MAX_LISTED_FINDINGS = 10
TITLE_LIMIT = 80
DESCRIPTION_LIMIT = 100
NESTED_DESCRIPTION_LIMIT = 120
ERROR_LIMIT = 200

_PASS = "✅"
_FAIL = "❌"
_SEVERITY_ICONS = {"critical": "🔴", "warning": "🟡"}
_DEFAULT_SEVERITY_ICON = "🔵"
_ISSUE_STATUS_LABELS = {"regressed": "⬆️ Regressed", "recurring": "🔄 Recurring"}
_NEW_ISSUE_LABEL = "🆕 New"
_BEHAVIOR_EMOJI = {
    "form": "📝",
    "navigation": "🔗",
    "modal": "🪟",
    "dropdown": "📋",
    "toggle": "🔀",
    "animation": "✨",
    "api-call": "🌐",
    "other": "🔧",
}

T = TypeVar("T")


@dataclass(frozen=True)
class ReportContext:
    status: str
    result: str
    total_issues: int
    critical_issues: int
    target_url: str
    dashboard_url: str
    scope: str
    run_number: int = 1
    previous_run_count: int | None = None

    @classmethod
    def from_outcome(
        cls,
        outcome: PollOutcome,
        *,
        target_url: str,
        dashboard_url: str,
        scope: str,
    ) -> "ReportContext":
        job = outcome.job
        return cls(
            status=outcome.status,
            result=outcome.result,
            total_issues=outcome.total_issues,
            critical_issues=outcome.critical_issues,
            target_url=target_url,
            dashboard_url=dashboard_url,
            scope=scope,
            run_number=(job.runNumber if job and job.runNumber else 1),
            previous_run_count=job.previousRunCount if job else None,
        )


def truncate(text: str | None, limit: int) -> str:
    return (text or "")[:limit]


def _cell(text: str | None, limit: int | None = None) -> str:
    value = (text or "").replace("\r", " ").replace("\n", " ").replace("|", "\\|")
    return value[:limit] if limit is not None else value


def _group_by(items: Iterable[T], key) -> dict[str, list[T]]:
    groups: dict[str, list[T]] = {}
    for item in items:
        groups.setdefault(key(item), []).append(item)
    return groups


def _plural(count: int, word: str) -> str:
    return f"{word}{'s' if count != 1 else ''}"


def _severity_icon(severity: str) -> str:
    return _SEVERITY_ICONS.get(severity, _DEFAULT_SEVERITY_ICON)


def _pass_icon(passed: bool | None) -> str:
    return _PASS if passed else _FAIL


def _environment_tag(browser: str | None, viewport: str | None) -> str:
    if browser and viewport:
        return f" [{truncate(browser, TITLE_LIMIT)} @ {truncate(viewport, TITLE_LIMIT)}]"
    return ""


def headline(ctx: ReportContext, components: int) -> tuple[str, str, str]:
    """Return ``(emoji, title, details)``. Order matters: first match wins."""
    if ctx.status == "timeout":
        return "⏱️", "Test Timed Out", "The visual test did not complete within the timeout period."
    if ctx.result == "passed":
        return _PASS, "Visual Tests Passed", f"All visual tests passed. **{components}** component(s) tested."
    if ctx.critical_issues > 0:
        return (
            "🚨",
            "Critical Visual Issues Found",
            f"**{ctx.total_issues}** issue(s) found (**{ctx.critical_issues}** critical) "
            f"across **{components}** component(s).",
        )
    if ctx.total_issues > 0:
        return (
            "⚠️",
            "Visual Issues Found",
            f"**{ctx.total_issues}** issue(s) found across **{components}** component(s).",
        )
    return _FAIL, "Visual Tests Failed", "The test encountered errors during execution."


def _overview_table(ctx: ReportContext, job: JobResult, components: int) -> list[str]:
    lines = [
        "| | |",
        "|---|---|",
        f"| **Preview URL** | {ctx.target_url} |",
        f"| **Issues** | {ctx.total_issues} total, {ctx.critical_issues} critical |",
        f"| **Components** | {components} tested |",
        f"| **Scope** | {'PR Changes Only' if ctx.scope == PR_CHANGES_SCOPE else 'Full Page'} |",
    ]
    if job.testCategories:
        lines.append(f"| **Test Types** | {_cell(', '.join(job.testCategories))} |")
    if ctx.run_number > 1:
        previous = ctx.previous_run_count if ctx.previous_run_count is not None else ctx.run_number - 1
        lines.append(
            f"| **Run** | #{ctx.run_number} (includes context from {previous} previous "
            f"{_plural(previous, 'run')}) |"
        )
    return lines


def _steps(steps: list[TestStep]) -> list[str]:
    if not steps:
        return []
    lines = ["**Steps:**"]
    for step in steps:
        text = truncate(step.description or step.action, NESTED_DESCRIPTION_LIMIT)
        suffix = f" (_{truncate(step.error, ERROR_LIMIT)}_)" if step.error else ""
        lines.append(f"{_pass_icon(step.success)} {text}{suffix}")
    lines.append("")
    return lines


def _nested_issues(issues: list[NestedIssue]) -> list[str]:
    if not issues:
        return []
    lines = ["**Issues:**"]
    for issue in issues:
        lines.append(
            f"- {_severity_icon(issue.severity)} {truncate(issue.title, TITLE_LIMIT)}: "
            f"{truncate(issue.description, NESTED_DESCRIPTION_LIMIT)}"
        )
    lines.append("")
    return lines


def _test_overview_section(overview: TestOverview | None) -> list[str]:
    if overview is None or overview.is_empty:
        return []
    lines = ["", "### Test Overview", ""]

    if overview.features:
        lines.append("**Features tested:**")
        for feature in overview.features:
            name = truncate(feature.name, TITLE_LIMIT)
            if feature.description:
                lines.append(f"- **{name}**: {truncate(feature.description, DESCRIPTION_LIMIT)}")
            else:
                lines.append(f"- **{name}**")
        lines.append("")

    if overview.formSubmissions:
        lines.append("**Form submissions:**")
        for form in overview.formSubmissions:
            suffix = f" (_{truncate(form.error, ERROR_LIMIT)}_)" if form.error else ""
            lines.append(f"- {_pass_icon(form.success)} {truncate(form.formName, TITLE_LIMIT)}{suffix}")
        lines.append("")

    if overview.executedTests:
        lines.append("| Test | Type | Result |")
        lines.append("|---|---|---|")
        for test in overview.executedTests:
            outcome = "⏭️ Skipped" if test.passed is None else ("✅ Passed" if test.passed else "❌ Failed")
            lines.append(f"| {_cell(test.name, TITLE_LIMIT)} | {_cell(test.type, TITLE_LIMIT)} | {outcome} |")
        lines.append("")
    return lines


def _segment_section(ctx: ReportContext, segments: list[SegmentScreenshot]) -> list[str]:
    if ctx.scope != PR_CHANGES_SCOPE or not segments:
        return []
    lines = [
        "",
        "### Changed Segment Screenshots",
        "",
        "Screenshots of the changed component segments across all tested browsers and viewports:",
        "",
    ]
    groups = _group_by(segments, lambda seg: truncate(seg.componentName, TITLE_LIMIT))
    for component_name, group in groups.items():
        lines.append("<details>")
        lines.append(
            f"<summary><strong>{component_name}</strong> "
            f"({len(group)} {_plural(len(group), 'screenshot')})</summary>"
        )
        lines.append("")
        for seg in group:
            browser = truncate(seg.browser, TITLE_LIMIT)
            viewport = truncate(seg.viewport, TITLE_LIMIT)
            lines.append(f"**{browser} @ {viewport}**")
            lines.append("")
            lines.append(f"![{component_name} - {browser} {viewport}]({seg.screenshotUrl})")
            lines.append("")
        lines.append("</details>")
        lines.append("")
    return lines


def _discovery_section(discoveries: list[DiscoveryResult]) -> list[str]:
    if not discoveries:
        return []
    lines = ["", "### Full Page Screenshots"]
    for discovery in discoveries:
        target = truncate(discovery.targetComponent, TITLE_LIMIT)
        tag = _environment_tag(discovery.browser, discovery.viewport)
        lines.extend(["", f"**{_pass_icon(discovery.success)} {target}{tag}**"])
        if discovery.screenshotUrl:
            lines.extend(["", f"![{target}]({discovery.screenshotUrl})"])
        if discovery.error:
            lines.append(f"> {_cell(discovery.error, ERROR_LIMIT)}")
    return lines


def _code_analysis_section(findings: list[CodeFinding]) -> list[str]:
    if not findings:
        return []
    lines = ["", "### Code Analysis", "", "| Severity | Location | Finding |", "|---|---|---|"]
    for finding in findings[:MAX_LISTED_FINDINGS]:
        location = finding.file or "-"
        if finding.file and finding.line is not None:
            location = f"{finding.file}:{finding.line}"
        message = _cell(finding.message, DESCRIPTION_LIMIT)
        if finding.suggestion:
            message = f"{message}<br>_{_cell(finding.suggestion, DESCRIPTION_LIMIT)}_"
        lines.append(
            f"| {_severity_icon(finding.severity)} {_cell(finding.severity, TITLE_LIMIT)} | `{_cell(location, DESCRIPTION_LIMIT)}` | {message} |"
        )
    if len(findings) > MAX_LISTED_FINDINGS:
        lines.extend(["", f"_...and {len(findings) - MAX_LISTED_FINDINGS} more findings_"])
    return lines


def _tally(passed: int, total: int, noun: str) -> str:
    return f"**{passed}** passed, **{total - passed}** failed out of **{total}** {noun}(s)"


def _functional_scenario(scenario: FunctionalScenario) -> list[str]:
    name = truncate(scenario.name, TITLE_LIMIT)
    tag = _environment_tag(scenario.browser, scenario.viewport)
    lines = [
        "<details>",
        f"<summary>{_pass_icon(scenario.passed)} <strong>{name}</strong>{tag}</summary>",
        "",
    ]
    if scenario.description:
        lines.extend([f"> {_cell(scenario.description, NESTED_DESCRIPTION_LIMIT)}", ""])
    lines.extend(_steps(scenario.steps))

    if scenario.failedAssertions:
        lines.append("**Failed assertions:**")
        for assertion in scenario.failedAssertions:
            line = f"- {truncate(assertion.description, NESTED_DESCRIPTION_LIMIT)}"
            if assertion.expected is not None or assertion.actual is not None:
                line += (
                    f" (expected `{truncate(assertion.expected, TITLE_LIMIT)}`, "
                    f"got `{truncate(assertion.actual, TITLE_LIMIT)}`)"
                )
            lines.append(line)
        lines.append("")

    if scenario.networkCalls:
        lines.append("**Network calls:**")
        for call in scenario.networkCalls:
            status = call.status if call.status is not None else "no response"
            lines.append(f"- `{call.method.upper()} {truncate(call.url, NESTED_DESCRIPTION_LIMIT)}` → {status}")
        lines.append("")

    if scenario.screenshotUrl:
        lines.extend([f"![{name}]({scenario.screenshotUrl})", ""])

    lines.extend(_nested_issues(scenario.issues))
    lines.extend(["</details>", ""])
    return lines


def _functional_section(scenarios: list[FunctionalScenario]) -> list[str]:
    if not scenarios:
        return []
    passed = sum(1 for scenario in scenarios if scenario.passed)
    lines = ["", "### Functional Tests", "", _tally(passed, len(scenarios), "functional scenario"), ""]
    for feature, group in _group_by(scenarios, lambda s: s.feature or "General").items():
        group_passed = sum(1 for scenario in group if scenario.passed)
        lines.append(f"#### {truncate(feature, TITLE_LIMIT)} ({group_passed}/{len(group)} passed)")
        lines.append("")
        for scenario in group:
            lines.extend(_functional_scenario(scenario))
    return lines


def _interaction_result(result: InteractionResult) -> list[str]:
    emoji = _BEHAVIOR_EMOJI.get(result.behaviorType, _BEHAVIOR_EMOJI["other"])
    tag = _environment_tag(result.browser, result.viewport)
    lines = [
        "<details>",
        f"<summary>{_pass_icon(result.passed)} {emoji} <strong>{truncate(result.name, TITLE_LIMIT)}</strong>{tag}</summary>",
        "",
    ]
    if result.description:
        lines.extend([f"> {_cell(result.description, NESTED_DESCRIPTION_LIMIT)}", ""])
    lines.extend(_steps(result.steps))
    if result.screenshotBefore or result.screenshotAfter:
        if result.screenshotBefore:
            lines.append(f"**Before:** ![Before]({result.screenshotBefore})")
        if result.screenshotAfter:
            lines.append(f"**After:** ![After]({result.screenshotAfter})")
        lines.append("")
    lines.extend(_nested_issues(result.issues))
    lines.extend(["</details>", ""])
    return lines


def _interaction_section(results: list[InteractionResult]) -> list[str]:
    if not results:
        return []
    passed = sum(1 for result in results if result.passed)
    lines = ["", "### Interaction Tests", "", _tally(passed, len(results), "interaction test"), ""]
    for behavior, group in _group_by(results, lambda r: r.behaviorType or "other").items():
        emoji = _BEHAVIOR_EMOJI.get(behavior, _BEHAVIOR_EMOJI["other"])
        lines.append(f"#### {emoji} {truncate(behavior, TITLE_LIMIT)}")
        lines.append("")
        for result in group:
            lines.extend(_interaction_result(result))
    return lines


def _issue_status_label(status: str | None) -> str:
    if not status:
        return ""
    return _ISSUE_STATUS_LABELS.get(status, _NEW_ISSUE_LABEL)


def _issues_section(issues: list[TestIssue]) -> list[str]:
    if not issues:
        return []
    lines = [
        "",
        "### Issues Found",
        "",
        "| Severity | Type | Title | Description | Status |",
        "|---|---|---|---|---|",
    ]
    for issue in issues[:MAX_LISTED_ISSUES]:
        lines.append(
            f"| {_severity_icon(issue.severity)} {_cell(issue.severity, TITLE_LIMIT)} | {_cell(issue.type, TITLE_LIMIT)} "
            f"| {_cell(issue.title, TITLE_LIMIT)} | {_cell(issue.description, DESCRIPTION_LIMIT)} "
            f"| {_issue_status_label(issue.status)} |"
        )
    if len(issues) > MAX_LISTED_ISSUES:
        lines.extend(["", f"_...and {len(issues) - MAX_LISTED_ISSUES} more issues_"])
    return lines


def render_comment(ctx: ReportContext, job: JobResult | None) -> str:
    job = job or JobResult()
    components = len(job.affectedComponents)
    emoji, title, details = headline(ctx, components)
    run_suffix = f" (Run #{ctx.run_number})" if ctx.run_number > 1 else ""

    lines = [f"## {emoji} QualiBot: {title}{run_suffix}", "", details]
    if ctx.status == "failed" and job.error:
        lines.extend(["", f"> {_cell(job.error, ERROR_LIMIT)}"])
    lines.append("")
    lines.extend(_overview_table(ctx, job, components))

    lines.extend(_test_overview_section(job.testOverview))
    lines.extend(_segment_section(ctx, job.segmentScreenshots))
    lines.extend(_discovery_section(job.discoveryResults))
    lines.extend(_code_analysis_section(job.codeAnalysis))
    lines.extend(_functional_section(job.functionalResults))
    lines.extend(_interaction_section(job.interactionResults))
    lines.extend(_issues_section(job.testResults))

    lines.extend(["", f"[View Full Results →]({ctx.dashboard_url})"])
    return "\n".join(lines)


def render_summary(ctx: ReportContext) -> str:
    emoji, _, _ = headline(ctx, 0)
    return "\n".join(
        [
            f"## {emoji} QualiBot Visual Testing Results",
            "",
            "| Status | Result | Issues | Critical |",
            "|--------|--------|--------|----------|",
            f"| {ctx.status} | {_cell(ctx.result)} | {ctx.total_issues} | {ctx.critical_issues} |",
            "",
            f"[View Full Results →]({ctx.dashboard_url})",
        ]
    )
