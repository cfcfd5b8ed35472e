"""Tool configuration read from ``[tool.sqlstyle]`` in pyproject.toml."""

from __future__ import annotations

from enum import Enum
from pathlib import Path

import tomllib

from pydantic import BaseModel

CONFIG_FILE = Path("pyproject.toml")

DEFAULT_GUIDE = Path("STYLE_GUIDE.md")
DEFAULT_SETTINGS = Path(".sqlfluff")


class ReportFormat(str, Enum):
    TEXT = "text"
    JSON = "json"


class AppConfig(BaseModel):
    """Shape of the ``[tool.sqlstyle]`` table."""

    guide: Path = DEFAULT_GUIDE
    settings: Path = DEFAULT_SETTINGS
    report_format: ReportFormat = ReportFormat.TEXT
    strict: bool = False
    log_level: str = "WARNING"

    def resolve(self, root: Path) -> AppConfig:
        """Return a copy with relative paths anchored at ``root``."""

        return self.model_copy(
            update={
                "guide": self.guide if self.guide.is_absolute() else root / self.guide,
                "settings": self.settings if self.settings.is_absolute() else root / self.settings,
            }
        )

    def with_overrides(self, **updates: object) -> AppConfig:
        """Return a copy with command line overrides applied; ``None`` means unset."""

        data = self.model_dump()
        data.update({key: value for key, value in updates.items() if value is not None})
        return AppConfig.model_validate(data)


def load_config(path: Path | None = None) -> AppConfig:
    """Load configuration from disk; fall back to defaults if missing."""

    config_path = path or CONFIG_FILE
    try:
        data = _read_config_file(config_path)
    except FileNotFoundError:
        return AppConfig().resolve(config_path.parent)
    except (tomllib.TOMLDecodeError, OSError):
        return AppConfig().resolve(config_path.parent)

    return AppConfig(**data).resolve(config_path.parent)


def _read_config_file(path: Path) -> dict[str, object]:
    with path.open("rb") as handle:
        raw = tomllib.load(handle)
    data: dict[str, object] = {}
    tool = raw.get("tool")
    table = tool.get("sqlstyle") if isinstance(tool, dict) else None
    if not isinstance(table, dict):
        return data
    for key in ("guide", "settings"):
        value = table.get(key)
        if isinstance(value, str) and value:
            data[key] = Path(value)
    report_format = table.get("report_format")
    if isinstance(report_format, str) and report_format in {item.value for item in ReportFormat}:
        data["report_format"] = ReportFormat(report_format)
    strict = table.get("strict")
    if isinstance(strict, bool):
        data["strict"] = strict
    log_level = table.get("log_level")
    if isinstance(log_level, str) and log_level:
        data["log_level"] = log_level.upper()
    return data


__all__ = ["AppConfig", "CONFIG_FILE", "ReportFormat", "load_config"]
