"""Checks the guide's examples and settings against sqlfluff."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Iterable

from sqlfluff.core import FluffConfig, Linter, SQLFluffUserError

from .errors import SettingsError
from .models import (
    CheckStatus,
    Convention,
    Example,
    ExampleResult,
    GuideReport,
    IssueSeverity,
    SettingsIssue,
    StyleGuide,
    Verdict,
    Violation,
)
from .settings import LinterSettings, load_settings
from .snippets import SnippetAnalyzer

LOG = logging.getLogger(__name__)

FALLBACK_DIALECT = "ansi"
_RULE_SELECTORS = frozenset({"all", "core"})


class StyleGuideService:
    """Facade that feeds guide examples to sqlfluff and interprets the verdicts."""

    def __init__(
        self,
        settings: LinterSettings,
        analyzer: SnippetAnalyzer | None = None,
    ) -> None:
        self._settings = settings
        self._analyzer = analyzer or SnippetAnalyzer(settings.core.dialect)
        self._fluff_config: FluffConfig | None = None
        self._linter: Linter | None = None
        self._known: dict[str, str] | None = None
        self._aliases: dict[str, str] = {}
        self._active: frozenset[str] | None = None

    @classmethod
    def from_file(cls, path: Path) -> StyleGuideService:
        return cls(load_settings(path))

    @property
    def settings(self) -> LinterSettings:
        return self._settings

    def fluff_config(self) -> FluffConfig:
        """Build the sqlfluff configuration; load-time errors become ``SettingsError``."""

        if self._fluff_config is None:
            try:
                self._fluff_config = FluffConfig(configs=self._settings.to_fluff_configs())
            except (SQLFluffUserError, KeyError, ValueError) as exc:
                raise SettingsError(f"sqlfluff rejected the settings: {exc}") from exc
        return self._fluff_config

    def known_rules(self) -> dict[str, str]:
        """Return every rule code sqlfluff knows about, mapped to its name."""

        if self._known is None:
            dialect = self._settings.core.dialect or FALLBACK_DIALECT
            try:
                config = FluffConfig(overrides={"dialect": dialect})
                rules = Linter(config=config).get_rulepack().rules
            except (SQLFluffUserError, KeyError, ValueError) as exc:
                raise SettingsError(f"Unable to load the sqlfluff rule registry: {exc}") from exc
            self._known = {rule.code: rule.name for rule in rules}
            self._aliases = {alias: rule.code for rule in rules for alias in getattr(rule, "aliases", ())}
        return self._known

    def active_rules(self) -> frozenset[str]:
        """Codes of the rules left enabled once ``rules``/``exclude_rules`` apply."""

        if self._active is None:
            try:
                rules = self._get_linter().get_rulepack().rules
            except (SQLFluffUserError, ValueError) as exc:
                raise SettingsError(f"sqlfluff rejected the rule settings: {exc}") from exc
            self._active = frozenset(rule.code for rule in rules)
        return self._active

    def resolve_rule(self, token: str) -> str | None:
        """Return the rule code for a code, name or legacy alias."""

        known = self.known_rules()
        if token.upper() in known:
            return token.upper()
        for code, name in known.items():
            if name == token:
                return code
        return self._aliases.get(token)

    def verify_settings(self, guide: StyleGuide | None = None) -> list[SettingsIssue]:
        """Cross-check the settings (and optionally the guide's markers) with sqlfluff."""

        issues: list[SettingsIssue] = []
        try:
            self.fluff_config()
            known = self.known_rules()
            active = self.active_rules()
        except SettingsError as exc:
            return [SettingsIssue(IssueSeverity.ERROR, str(exc))]

        selectors = set(known) | set(known.values()) | set(self._aliases) | set(_RULE_SELECTORS)
        selectors.update(name.split(".", 1)[0] for name in known.values())
        core = self._settings.core
        for key, tokens in (("rules", core.rules), ("exclude_rules", core.exclude_rules)):
            for token in tokens or ():
                if token not in selectors:
                    issues.append(SettingsIssue(IssueSeverity.ERROR, f"{key} names unknown rule '{token}'"))

        if guide is not None:
            for convention in guide.conventions:
                issues.extend(self._verify_convention(convention, active))

        for issue in issues:
            LOG.warning("Settings issue", extra={"issue": issue.message})
        return issues

    async def lint(self, sql: str) -> list[Violation]:
        """Lint a SQL string with the configured sqlfluff settings."""

        return await asyncio.to_thread(self._lint_sync, sql)

    async def check_example(self, convention: Convention, example: Example) -> ExampleResult:
        """Decide whether a single example behaves the way its label claims."""

        if convention.prose_only:
            return _skipped(convention, example, "prose-only convention")
        if example.verdict is Verdict.BAD and not convention.rules:
            return _skipped(convention, example, "no sqlfluff rule marker")

        info = self._analyzer.analyze(example.sql)
        if info.is_fragment:
            return _skipped(convention, example, f"fragment: {info.error}")

        violations = tuple(await self.lint(example.sql))
        if example.verdict is Verdict.GOOD:
            if violations:
                return ExampleResult(
                    convention=convention,
                    example=example,
                    status=CheckStatus.FAILED,
                    violations=violations,
                    reason=f"expected no violations, found {len(violations)}",
                )
            return ExampleResult(convention=convention, example=example, status=CheckStatus.PASSED)

        expected = self._codes_for(convention.rules)
        if any(violation.code in expected for violation in violations):
            return ExampleResult(
                convention=convention,
                example=example,
                status=CheckStatus.PASSED,
                violations=violations,
            )
        return ExampleResult(
            convention=convention,
            example=example,
            status=CheckStatus.FAILED,
            violations=violations,
            reason=f"expected a violation of {', '.join(sorted(expected)) or '?'}",
        )

    async def check_guide(self, guide: StyleGuide) -> GuideReport:
        """Check every example of the guide, in document order."""

        report = GuideReport(title=guide.title, issues=self.verify_settings(guide))
        try:
            self.fluff_config()
        except SettingsError:
            return report

        for convention, example in guide.examples:
            result = await self.check_example(convention, example)
            LOG.debug(
                "Checked example",
                extra={
                    "convention": convention.slug,
                    "example": example.index,
                    "status": result.status.value,
                },
            )
            report.results.append(result)
        return report

    def _get_linter(self) -> Linter:
        if self._linter is None:
            self._linter = Linter(config=self.fluff_config())
        return self._linter

    def _lint_sync(self, sql: str) -> list[Violation]:
        linted = self._get_linter().lint_string(sql)
        return [
            Violation(
                code=violation.rule_code(),
                description=violation.desc(),
                line=getattr(violation, "line_no", None),
                position=getattr(violation, "line_pos", None),
            )
            for violation in linted.get_violations()
        ]

    def _codes_for(self, tokens: Iterable[str]) -> set[str]:
        codes: set[str] = set()
        for token in tokens:
            code = self.resolve_rule(token)
            if code is not None:
                codes.add(code)
        return codes

    def _verify_convention(self, convention: Convention, active: frozenset[str]) -> list[SettingsIssue]:
        issues: list[SettingsIssue] = []
        for token in convention.rules:
            code = self.resolve_rule(token)
            if code is None:
                issues.append(
                    SettingsIssue(
                        IssueSeverity.ERROR,
                        f"convention '{convention.slug}' names unknown rule '{token}'",
                    )
                )
            elif code not in active:
                issues.append(
                    SettingsIssue(
                        IssueSeverity.ERROR,
                        f"convention '{convention.slug}' illustrates {code}, which the settings disable",
                    )
                )
        if convention.rules and not convention.examples_for(Verdict.BAD):
            issues.append(
                SettingsIssue(
                    IssueSeverity.WARNING,
                    f"convention '{convention.slug}' names rules but has no bad example",
                )
            )
        return issues


def _skipped(convention: Convention, example: Example, reason: str) -> ExampleResult:
    return ExampleResult(convention=convention, example=example, status=CheckStatus.SKIPPED, reason=reason)


__all__ = ["FALLBACK_DIALECT", "StyleGuideService"]
