from __future__ import annotations

import json

from sqlstyle.guide import (
    CheckStatus,
    Convention,
    Example,
    ExampleResult,
    GuideReport,
    IssueSeverity,
    SettingsIssue,
    Verdict,
    Violation,
    parse_guide,
    parse_settings,
)
from sqlstyle.report import (
    render_conventions,
    render_json,
    render_settings_summary,
    render_text,
    render_violations,
)

GOOD = Example(verdict=Verdict.GOOD, sql="select 1\n", line=10, index=1)
BAD = Example(verdict=Verdict.BAD, sql="SELECT 1\n", line=14, index=2)
CONVENTION = Convention(title="Lowercase", slug="lowercase", rules=("CP01",), examples=(GOOD, BAD))
VIOLATION = Violation(code="CP01", description="Keywords must be lower case.", line=1, position=1)


def _report() -> GuideReport:
    return GuideReport(
        title="Team SQL Guide",
        results=[
            ExampleResult(convention=CONVENTION, example=GOOD, status=CheckStatus.PASSED),
            ExampleResult(
                convention=CONVENTION,
                example=BAD,
                status=CheckStatus.FAILED,
                violations=(VIOLATION,),
                reason="expected a violation of CP02",
            ),
            ExampleResult(
                convention=CONVENTION,
                example=GOOD,
                status=CheckStatus.SKIPPED,
                reason="prose-only convention",
            ),
        ],
        issues=[SettingsIssue(IssueSeverity.WARNING, "convention 'x' names rules but has no bad example")],
    )


def test_render_text_hides_passes_unless_verbose() -> None:
    text = render_text(_report())

    assert text.splitlines()[0] == "Style guide: Team SQL Guide"
    assert "warning: convention 'x' names rules but has no bad example" in text
    assert "PASS" not in text
    assert "FAIL  lowercase bad #2 (line 14): expected a violation of CP02" in text
    assert "      CP01 (L1:1) Keywords must be lower case." in text
    assert "SKIP  lowercase good #1 (line 10): prose-only convention" in text
    assert text.splitlines()[-1] == "Summary: 1 passed, 1 failed, 1 skipped"


def test_render_text_verbose_lists_passes() -> None:
    text = render_text(_report(), verbose=True)

    assert "PASS  lowercase good #1 (line 10)" in text


def test_render_text_includes_settings_header() -> None:
    settings = parse_settings("[sqlfluff]\ndialect = snowflake\ntemplater = jinja\n", source=".sqlfluff")

    text = render_text(GuideReport(title="Guide"), settings)

    assert "Settings: .sqlfluff (dialect=snowflake, templater=jinja)" in text


def test_render_json_is_machine_readable() -> None:
    payload = json.loads(render_json(_report()))

    assert payload["summary"] == {"passed": 1, "failed": 1, "skipped": 1}
    assert payload["issues"][0]["severity"] == "warning"
    failed = payload["results"][1]
    assert failed["convention"] == "lowercase"
    assert failed["status"] == "failed"
    assert failed["violations"] == [
        {"code": "CP01", "description": "Keywords must be lower case.", "line": 1, "position": 1}
    ]


def test_render_settings_summary_groups_by_section() -> None:
    settings = parse_settings(
        "[sqlfluff]\ndialect = ansi\nexclude_rules = AM04, ST06\n\n"
        "[sqlfluff:rules:aliasing.table]\naliasing = explicit\n\n"
        "[sqlfluff:templater:jinja]\napply_dbt_builtins = True\n"
    )

    assert render_settings_summary(settings) == [
        "[sqlfluff]",
        "  dialect = ansi",
        "  exclude_rules = AM04, ST06",
        "[sqlfluff:rules:aliasing.table]",
        "  aliasing = explicit",
        "[sqlfluff:templater:jinja] (passed through)",
        "  apply_dbt_builtins = True",
    ]


def test_render_conventions_describes_markers() -> None:
    guide = parse_guide(
        "# Guide\n\n## Formatting\n\n### Keywords\n<!-- sqlfluff: CP01 -->\n\n"
        "```sql\n-- Good\nselect 1\n-- Bad\nSELECT 1\n```\n\n"
        "### Prose\n<!-- sqlfluff: none -->\n\n### Plain\n"
    )

    lines = render_conventions(guide).splitlines()

    assert lines[:3] == ["Guide", "", "Formatting"]
    assert lines[3].split() == ["keywords", "CP01", "good=1", "bad=1"]
    assert lines[4].split() == ["prose", "prose", "only", "good=0", "bad=0"]
    assert lines[5].split() == ["plain", "unmarked", "good=0", "bad=0"]


def test_render_violations_prefixes_label() -> None:
    assert render_violations("models/users.sql", [VIOLATION]) == [
        "models/users.sql: CP01 (L1:1) Keywords must be lower case."
    ]
