"""Text and JSON rendering for check results."""

from __future__ import annotations

import json
from typing import Any, Iterable, Sequence

from .guide.models import (
    CheckStatus,
    ExampleResult,
    GuideReport,
    SettingsIssue,
    StyleGuide,
    Verdict,
    Violation,
)
from .guide.settings import LinterSettings, section_name

_STATUS_LABELS = {
    CheckStatus.PASSED: "PASS",
    CheckStatus.FAILED: "FAIL",
    CheckStatus.SKIPPED: "SKIP",
}


def render_text(report: GuideReport, settings: LinterSettings | None = None, *, verbose: bool = False) -> str:
    """Human readable report; passing examples are listed only when ``verbose``."""

    lines = [f"Style guide: {report.title}"]
    if settings is not None:
        source = settings.source or "<inline>"
        lines.append(
            f"Settings: {source} (dialect={settings.core.dialect or '?'}, "
            f"templater={_value(settings.core.templater) or 'default'})"
        )
    if report.issues:
        lines.append("")
        lines.extend(render_issues(report.issues))
    if report.results:
        lines.append("")
    for result in report.results:
        if result.status is CheckStatus.PASSED and not verbose:
            continue
        lines.append(_result_line(result))
        if result.status is CheckStatus.FAILED:
            lines.extend(f"      {violation}" for violation in result.violations)
    lines.append("")
    lines.append(
        f"Summary: {report.passed} passed, {report.failed} failed, {report.skipped} skipped"
    )
    return "\n".join(lines)


def render_json(report: GuideReport) -> str:
    payload = {
        "title": report.title,
        "summary": {
            "passed": report.passed,
            "failed": report.failed,
            "skipped": report.skipped,
        },
        "issues": [
            {"severity": issue.severity.value, "message": issue.message} for issue in report.issues
        ],
        "results": [_result_payload(result) for result in report.results],
    }
    return json.dumps(payload, indent=2)


def render_issues(issues: Iterable[SettingsIssue]) -> list[str]:
    return [str(issue) for issue in issues]


def render_settings_summary(settings: LinterSettings) -> list[str]:
    """List the recognised options that are set, grouped by section."""

    lines: list[str] = []
    current: tuple[str, ...] | None = None
    for path, key, value in settings.recognised_options():
        if path != current:
            lines.append(f"[{section_name(path)}]")
            current = path
        lines.append(f"  {key} = {_display(value)}")
    for path, options in settings.extra.items():
        lines.append(f"[{section_name(path)}] (passed through)")
        lines.extend(f"  {key} = {_display(value)}" for key, value in options.items())
    return lines


def render_conventions(guide: StyleGuide) -> str:
    lines = [guide.title, ""]
    section: str | None = None
    for convention in guide.conventions:
        if convention.section and convention.section != section:
            section = convention.section
            lines.append(section)
        if convention.prose_only:
            rules = "prose only"
        else:
            rules = ", ".join(convention.rules) or "unmarked"
        good = len(convention.examples_for(Verdict.GOOD))
        bad = len(convention.examples_for(Verdict.BAD))
        lines.append(f"  {convention.slug:<45} {rules:<28} good={good} bad={bad}")
    return "\n".join(lines)


def render_violations(label: str, violations: Sequence[Violation]) -> list[str]:
    return [f"{label}: {violation}" for violation in violations]


def _result_line(result: ExampleResult) -> str:
    status = _STATUS_LABELS[result.status]
    example = result.example
    where = f"{result.convention.slug} {example.verdict.value} #{example.index} (line {example.line})"
    if result.reason:
        return f"{status}  {where}: {result.reason}"
    return f"{status}  {where}"


def _result_payload(result: ExampleResult) -> dict[str, Any]:
    return {
        "convention": result.convention.slug,
        "verdict": result.example.verdict.value,
        "index": result.example.index,
        "line": result.example.line,
        "status": result.status.value,
        "reason": result.reason,
        "violations": [
            {
                "code": violation.code,
                "description": violation.description,
                "line": violation.line,
                "position": violation.position,
            }
            for violation in result.violations
        ],
    }


def _value(value: Any) -> Any:
    return getattr(value, "value", value)


def _display(value: Any) -> str:
    value = _value(value)
    if isinstance(value, tuple):
        return ", ".join(value)
    return str(value)


__all__ = [
    "render_conventions",
    "render_issues",
    "render_json",
    "render_settings_summary",
    "render_text",
    "render_violations",
]
