"""Style guide parsing, linter settings and consistency checks."""

from __future__ import annotations

from .errors import GuideFormatError, SettingsError, StyleGuideError
from .markdown import load_guide, parse_guide, slugify
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
from .service import StyleGuideService
from .settings import LinterSettings, load_settings, parse_settings, render_settings, save_settings
from .snippets import SnippetAnalyzer, SnippetInfo

__all__ = [
    "CheckStatus",
    "Convention",
    "Example",
    "ExampleResult",
    "GuideFormatError",
    "GuideReport",
    "IssueSeverity",
    "LinterSettings",
    "SettingsError",
    "SettingsIssue",
    "SnippetAnalyzer",
    "SnippetInfo",
    "StyleGuide",
    "StyleGuideError",
    "StyleGuideService",
    "Verdict",
    "Violation",
    "load_guide",
    "load_settings",
    "parse_guide",
    "parse_settings",
    "render_settings",
    "save_settings",
    "slugify",
]
