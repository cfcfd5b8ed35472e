"""Error types raised while loading or checking the style guide."""

from __future__ import annotations


class StyleGuideError(RuntimeError):
    """Base error for style guide and linter settings failures."""


class SettingsError(StyleGuideError):
    """Raised when the linter configuration cannot be parsed or is out of domain."""


class GuideFormatError(StyleGuideError):
    """Raised when the Markdown guide is structurally malformed."""

    def __init__(self, message: str, line: int | None = None) -> None:
        self.line = line
        if line is not None:
            message = f"line {line}: {message}"
        super().__init__(message)


__all__ = ["GuideFormatError", "SettingsError", "StyleGuideError"]
