"""Extract conventions and their Good/Bad examples from the Markdown guide."""

from __future__ import annotations

import logging
import re
import textwrap
from dataclasses import dataclass, field
from pathlib import Path

from .errors import GuideFormatError
from .models import Convention, Example, StyleGuide, Verdict
from .settings import parse_rule_list

LOG = logging.getLogger(__name__)

DEFAULT_TITLE = "SQL Style Guide"

_HEADING = re.compile(r"^(#{1,6})\s+(.+?)\s*#*\s*$")
_FENCE = re.compile(r"^\s{0,3}(`{3,}|~{3,})\s*([^\s`]*)")
_MARKER_START = re.compile(r"^\s*<!--\s*sqlfluff\b", re.IGNORECASE)
_MARKER = re.compile(r"^\s*<!--\s*sqlfluff\s*:(.*?)-->\s*$", re.IGNORECASE)
_LABEL = re.compile(r"^\s*(?:/\*\s*(good|bad)\s*\*/|--\s*(good|bad))\s*:?\s*$", re.IGNORECASE)
_SLUG_STRIP = re.compile(r"[^\w\- ]")


@dataclass(slots=True)
class _Draft:
    title: str
    slug: str
    level: int
    line: int
    section: str | None = None
    rules: tuple[str, ...] | None = None
    examples: list[Example] = field(default_factory=list)

    def add(self, verdict: Verdict, sql: str, line: int) -> None:
        self.examples.append(Example(verdict=verdict, sql=sql, line=line, index=len(self.examples) + 1))

    def keep(self) -> bool:
        return self.level >= 3 or bool(self.examples) or self.rules is not None

    def build(self) -> Convention:
        return Convention(
            title=self.title,
            slug=self.slug,
            section=self.section,
            line=self.line,
            rules=self.rules or (),
            examples=tuple(self.examples),
            prose_only=self.rules == (),
        )


def slugify(title: str) -> str:
    """Return the anchor GitHub generates for a heading."""

    return _SLUG_STRIP.sub("", title.strip().lower()).replace(" ", "-")


def parse_guide(text: str) -> StyleGuide:
    """Parse Markdown text into a :class:`StyleGuide`."""

    lines = text.splitlines()
    title: str | None = None
    section: str | None = None
    current: _Draft | None = None
    drafts: list[_Draft] = []
    slugs: dict[str, int] = {}

    index = 0
    while index < len(lines):
        line = lines[index]
        lineno = index + 1

        fence = _FENCE.match(line)
        if fence:
            body, closing = _read_fence(lines, index, fence.group(1))
            if fence.group(2).lower().startswith("sql"):
                examples = _split_examples(body, first_line=lineno + 1)
                if examples:
                    if current is None:
                        raise GuideFormatError("labelled example outside of a convention", lineno)
                    for verdict, sql, example_line in examples:
                        current.add(verdict, sql, example_line)
            index = closing + 1
            continue

        heading = _HEADING.match(line)
        if heading:
            level = len(heading.group(1))
            text_value = heading.group(2)
            slug = _unique_slug(slugify(text_value), slugs)
            if level == 1:
                if title is None:
                    title = text_value
                current = None
            else:
                if level == 2:
                    section = text_value
                current = _Draft(
                    title=text_value,
                    slug=slug,
                    level=level,
                    line=lineno,
                    section=None if level == 2 else section,
                )
                drafts.append(current)
            index += 1
            continue

        if _MARKER_START.search(line):
            current = _apply_marker(current, line, lineno)
        index += 1

    conventions = tuple(draft.build() for draft in drafts if draft.keep())
    LOG.debug(
        "Parsed style guide",
        extra={
            "conventions": len(conventions),
            "examples": sum(len(item.examples) for item in conventions),
        },
    )
    return StyleGuide(title=title or DEFAULT_TITLE, conventions=conventions)


def load_guide(path: Path) -> StyleGuide:
    """Read and parse the Markdown guide at ``path``."""

    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise GuideFormatError(f"Unable to read style guide {path}: {exc}") from exc
    return parse_guide(text)


def _apply_marker(current: _Draft | None, line: str, lineno: int) -> _Draft:
    match = _MARKER.search(line)
    if not match:
        raise GuideFormatError("sqlfluff marker must open and close on one line", lineno)
    if current is None:
        raise GuideFormatError("sqlfluff marker outside of a convention", lineno)
    if current.rules is not None:
        raise GuideFormatError(f"convention '{current.title}' already has a sqlfluff marker", lineno)
    body = match.group(1).strip()
    if body.lower() == "none":
        current.rules = ()
        return current
    try:
        rules = parse_rule_list(body)
    except ValueError as exc:
        raise GuideFormatError(str(exc), lineno) from exc
    if not rules:
        raise GuideFormatError("empty sqlfluff marker; use 'none' for prose-only conventions", lineno)
    current.rules = rules
    return current


def _read_fence(lines: list[str], start: int, opener: str) -> tuple[list[str], int]:
    closing = re.compile(rf"^\s{{0,3}}{re.escape(opener[0])}{{{len(opener)},}}\s*$")
    for index in range(start + 1, len(lines)):
        if closing.match(lines[index]):
            return lines[start + 1 : index], index
    raise GuideFormatError("unterminated code fence", start + 1)


def _split_examples(body: list[str], first_line: int) -> list[tuple[Verdict, str, int]]:
    examples: list[tuple[Verdict, str, int]] = []
    verdict: Verdict | None = None
    label_line = 0
    buffer: list[str] = []

    def flush() -> None:
        if verdict is None:
            return
        sql = _normalise_sql(buffer)
        if not sql:
            raise GuideFormatError(f"{verdict.value} example has no SQL", label_line)
        examples.append((verdict, sql, label_line))

    for offset, line in enumerate(body):
        label = _LABEL.match(line)
        if label:
            flush()
            verdict = Verdict((label.group(1) or label.group(2)).lower())
            label_line = first_line + offset
            buffer = []
        elif verdict is not None:
            buffer.append(line)
    flush()
    return examples


def _normalise_sql(lines: list[str]) -> str:
    text = textwrap.dedent("\n".join(lines)).strip("\n").rstrip()
    if not text.strip():
        return ""
    return text + "\n"


def _unique_slug(slug: str, seen: dict[str, int]) -> str:
    count = seen.get(slug, 0)
    seen[slug] = count + 1
    if count:
        return f"{slug}-{count}"
    return slug


__all__ = ["DEFAULT_TITLE", "load_guide", "parse_guide", "slugify"]
