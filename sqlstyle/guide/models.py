"""Core dataclasses shared by the guide parser, the checker and the reports."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Tuple


class Verdict(str, Enum):
    """Whether an example illustrates the preferred or the rejected style."""

    GOOD = "good"
    BAD = "bad"


class CheckStatus(str, Enum):
    """Outcome of checking a single example."""

    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"


class IssueSeverity(str, Enum):
    """Severity levels for configuration findings."""

    WARNING = "warning"
    ERROR = "error"


@dataclass(slots=True, frozen=True)
class Example:
    """One labelled SQL snippet taken from a fenced block."""

    verdict: Verdict
    sql: str
    line: int
    index: int = 1


@dataclass(slots=True, frozen=True)
class Convention:
    """A titled rule of the guide together with its examples."""

    title: str
    slug: str
    section: str | None = None
    line: int = 0
    rules: Tuple[str, ...] = ()
    examples: Tuple[Example, ...] = ()
    prose_only: bool = False

    def examples_for(self, verdict: Verdict) -> tuple[Example, ...]:
        return tuple(example for example in self.examples if example.verdict is verdict)


@dataclass(slots=True, frozen=True)
class StyleGuide:
    """Parsed representation of the Markdown style guide."""

    title: str
    conventions: Tuple[Convention, ...] = ()

    def find(self, slug: str) -> Convention | None:
        for convention in self.conventions:
            if convention.slug == slug:
                return convention
        return None

    @property
    def examples(self) -> tuple[tuple[Convention, Example], ...]:
        return tuple(
            (convention, example)
            for convention in self.conventions
            for example in convention.examples
        )


@dataclass(slots=True, frozen=True)
class Violation:
    """Single finding reported by sqlfluff."""

    code: str
    description: str
    line: int | None = None
    position: int | None = None

    def __str__(self) -> str:
        if self.line is None:
            return f"{self.code}: {self.description}"
        return f"{self.code} (L{self.line}:{self.position or 0}) {self.description}"


@dataclass(slots=True, frozen=True)
class ExampleResult:
    """Outcome of running one example through the linter."""

    convention: Convention
    example: Example
    status: CheckStatus
    violations: Tuple[Violation, ...] = ()
    reason: str | None = None


@dataclass(slots=True, frozen=True)
class SettingsIssue:
    """Problem found while cross-checking the linter settings."""

    severity: IssueSeverity
    message: str

    def __str__(self) -> str:
        return f"{self.severity.value}: {self.message}"


@dataclass(slots=True)
class GuideReport:
    """Aggregated results for a whole guide run."""

    title: str
    results: list[ExampleResult] = field(default_factory=list)
    issues: list[SettingsIssue] = field(default_factory=list)

    def _count(self, status: CheckStatus) -> int:
        return sum(1 for result in self.results if result.status is status)

    @property
    def passed(self) -> int:
        return self._count(CheckStatus.PASSED)

    @property
    def failed(self) -> int:
        return self._count(CheckStatus.FAILED)

    @property
    def skipped(self) -> int:
        return self._count(CheckStatus.SKIPPED)

    @property
    def has_errors(self) -> bool:
        return any(issue.severity is IssueSeverity.ERROR for issue in self.issues)

    def ok(self, strict: bool = False) -> bool:
        """Return True when nothing failed (and nothing was skipped, if strict)."""

        if self.failed or self.has_errors:
            return False
        if strict and self.skipped:
            return False
        return True


__all__ = [
    "CheckStatus",
    "Convention",
    "Example",
    "ExampleResult",
    "GuideReport",
    "IssueSeverity",
    "SettingsIssue",
    "StyleGuide",
    "Verdict",
    "Violation",
]
