"""Command line entry point: ``sqlstyle check|config|conventions|lint``."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Callable, Sequence

from . import __version__
from .config import CONFIG_FILE, AppConfig, ReportFormat, load_config
from .guide import (
    IssueSeverity,
    StyleGuideError,
    StyleGuideService,
    Violation,
    load_guide,
    load_settings,
)
from .report import (
    render_conventions,
    render_issues,
    render_json,
    render_settings_summary,
    render_text,
    render_violations,
)

LOG = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sqlstyle",
        description="Check that the SQL style guide and its sqlfluff settings agree.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    parser.add_argument(
        "--pyproject",
        type=Path,
        default=None,
        help=f"pyproject.toml holding [tool.sqlstyle] (default: ./{CONFIG_FILE}).",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    check = commands.add_parser("check", help="Lint every guide example with the shipped settings.")
    _add_guide_argument(check)
    _add_settings_argument(check)
    check.add_argument(
        "--format",
        dest="report_format",
        choices=[item.value for item in ReportFormat],
        default=None,
        help="Report format.",
    )
    check.add_argument(
        "--strict",
        action="store_true",
        default=None,
        help="Treat skipped examples as failures.",
    )
    check.set_defaults(handler=_run_check)

    config = commands.add_parser("config", help="Validate the sqlfluff settings file.")
    _add_settings_argument(config)
    config.set_defaults(handler=_run_config)

    conventions = commands.add_parser("conventions", help="List the conventions in the guide.")
    _add_guide_argument(conventions)
    conventions.set_defaults(handler=_run_conventions)

    lint = commands.add_parser("lint", help="Lint SQL files with the shipped settings.")
    lint.add_argument("paths", nargs="+", type=Path, help="SQL files to lint.")
    _add_settings_argument(lint)
    lint.set_defaults(handler=_run_lint)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    config = load_config(args.pyproject).with_overrides(
        guide=getattr(args, "guide", None),
        settings=getattr(args, "settings", None),
        report_format=getattr(args, "report_format", None),
        strict=getattr(args, "strict", None),
    )
    _configure_logging("DEBUG" if args.verbose else config.log_level)

    handler: Callable[[argparse.Namespace, AppConfig], int] = args.handler
    try:
        return handler(args, config)
    except StyleGuideError as exc:
        LOG.debug("Command failed", exc_info=True)
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_ERROR


def _run_check(args: argparse.Namespace, config: AppConfig) -> int:
    settings = load_settings(config.settings)
    guide = load_guide(config.guide)
    service = StyleGuideService(settings)
    report = asyncio.run(service.check_guide(guide))

    if config.report_format is ReportFormat.JSON:
        print(render_json(report))
    else:
        print(render_text(report, settings, verbose=args.verbose))

    if report.has_errors:
        return EXIT_ERROR
    return EXIT_OK if report.ok(strict=config.strict) else EXIT_FAILED


def _run_config(args: argparse.Namespace, config: AppConfig) -> int:
    settings = load_settings(config.settings)
    issues = StyleGuideService(settings).verify_settings()
    print(f"Settings: {config.settings}")
    for line in render_settings_summary(settings):
        print(line)
    for line in render_issues(issues):
        print(line, file=sys.stderr)
    if any(issue.severity is IssueSeverity.ERROR for issue in issues):
        return EXIT_ERROR
    return EXIT_OK


def _run_conventions(args: argparse.Namespace, config: AppConfig) -> int:
    print(render_conventions(load_guide(config.guide)))
    return EXIT_OK


def _run_lint(args: argparse.Namespace, config: AppConfig) -> int:
    service = StyleGuideService(load_settings(config.settings))
    sources: list[tuple[Path, str]] = []
    for path in args.paths:
        try:
            sources.append((path, path.read_text(encoding="utf-8")))
        except OSError as exc:
            print(f"error: unable to read {path}: {exc}", file=sys.stderr)
            return EXIT_ERROR

    results = asyncio.run(_lint_all(service, sources))
    dirty = False
    for path, violations in results:
        for line in render_violations(str(path), violations):
            print(line)
        dirty = dirty or bool(violations)
    return EXIT_FAILED if dirty else EXIT_OK


async def _lint_all(
    service: StyleGuideService, sources: Sequence[tuple[Path, str]]
) -> list[tuple[Path, list[Violation]]]:
    service.fluff_config()
    return [(path, await service.lint(text)) for path, text in sources]


def _add_guide_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--guide", type=Path, default=None, help="Markdown style guide.")


def _add_settings_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--settings", type=Path, default=None, help="sqlfluff configuration file.")


def _configure_logging(level: str) -> None:
    # Only our loggers follow the level; sqlfluff's stay at the root default.
    logging.basicConfig(format="%(levelname)s %(name)s: %(message)s")
    logging.getLogger(__package__).setLevel(getattr(logging, level.upper(), logging.WARNING))


__all__ = ["EXIT_ERROR", "EXIT_FAILED", "EXIT_OK", "build_parser", "main"]
