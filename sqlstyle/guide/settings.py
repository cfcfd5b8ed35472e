"""Schema for the sqlfluff configuration file shipped with the guide.

The file is plain INI text (``.sqlfluff``, ``setup.cfg`` or ``tox.ini``) with
colon separated section names such as ``[sqlfluff:rules:aliasing.table]``.
It is read with sqlfluff's own config loader, so dotted keys, relative paths
and value coercion behave exactly as they do when sqlfluff runs. Only the
options the guide relies on are validated here; the loaded mapping is handed
to sqlfluff as is, and sqlfluff remains the authority on what it accepts.
"""

from __future__ import annotations

import configparser
import copy
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Iterable, Iterator

from pydantic import BaseModel, Field, ValidationError, field_validator
from sqlfluff.core import SQLFluffUserError
from sqlfluff.core.config.loader import load_config_file, load_config_string

from .errors import SettingsError

SECTION_PREFIX = "sqlfluff"

_RULE_TOKEN = re.compile(r"^(?:[A-Za-z]{2}\d{2}|[a-z_]+(?:\.[a-z_]+)?)$")
_DIALECT = re.compile(r"^[a-z][a-z0-9_]*$")
_LOAD_ERRORS = (configparser.Error, SQLFluffUserError, ValueError)


class Templater(str, Enum):
    RAW = "raw"
    JINJA = "jinja"
    PYTHON = "python"
    PLACEHOLDER = "placeholder"
    DBT = "dbt"


class IndentUnit(str, Enum):
    SPACE = "space"
    TAB = "tab"


class CapitalisationPolicy(str, Enum):
    CONSISTENT = "consistent"
    UPPER = "upper"
    LOWER = "lower"
    CAPITALISE = "capitalise"


class ExtendedCapitalisationPolicy(str, Enum):
    CONSISTENT = "consistent"
    UPPER = "upper"
    LOWER = "lower"
    CAPITALISE = "capitalise"
    PASCAL = "pascal"
    SNAKE = "snake"
    CAMEL = "camel"


class CommaPosition(str, Enum):
    LEADING = "leading"
    TRAILING = "trailing"


class CommaSpacing(str, Enum):
    TOUCH = "touch"
    SINGLE = "single"
    TOUCH_INLINE = "touch:inline"
    SINGLE_INLINE = "single:inline"
    ANY = "any"
    ALIGN = "align"


class AliasingStyle(str, Enum):
    EXPLICIT = "explicit"
    IMPLICIT = "implicit"


class ReferenceStyle(str, Enum):
    """How ``group by`` and ``order by`` refer to select targets."""

    CONSISTENT = "consistent"
    IMPLICIT = "implicit"
    EXPLICIT = "explicit"


class SubqueryPlacement(str, Enum):
    JOIN = "join"
    FROM = "from"
    BOTH = "both"


class NotEqualStyle(str, Enum):
    CONSISTENT = "consistent"
    C_STYLE = "c_style"
    ANSI = "ansi"


def _split_rule_list(value: object) -> object:
    if isinstance(value, str):
        return tuple(item.strip() for item in value.split(",") if item.strip())
    return value


def _normalise_rule_tokens(tokens: tuple[str, ...] | None) -> tuple[str, ...] | None:
    if tokens is None:
        return None
    normalised: list[str] = []
    for token in tokens:
        if not _RULE_TOKEN.match(token):
            raise ValueError(f"'{token}' is not a rule code, rule name or rule group")
        normalised.append(token.upper() if re.match(r"^[A-Za-z]{2}\d{2}$", token) else token)
    return tuple(normalised)


def parse_rule_list(value: str) -> tuple[str, ...]:
    """Split a comma separated rule list; codes are upper-cased.

    Raises ``ValueError`` for entries that are neither a code, a name nor a group.
    """

    tokens = tuple(item.strip() for item in value.split(",") if item.strip())
    return _normalise_rule_tokens(tokens) or ()


class CoreSettings(BaseModel):
    """Options of the top-level ``[sqlfluff]`` section."""

    dialect: str | None = None
    templater: Templater | None = None
    runaway_limit: int | None = Field(default=None, ge=1)
    max_line_length: int | None = Field(default=None, ge=0)
    indent_unit: IndentUnit | None = None
    rules: tuple[str, ...] | None = None
    exclude_rules: tuple[str, ...] | None = None

    @field_validator("dialect")
    @classmethod
    def _check_dialect(cls, value: str | None) -> str | None:
        if value is not None and not _DIALECT.match(value):
            raise ValueError(f"'{value}' is not a dialect identifier")
        return value

    @field_validator("rules", "exclude_rules", mode="before")
    @classmethod
    def _split_rules(cls, value: object) -> object:
        return _split_rule_list(value)

    @field_validator("rules", "exclude_rules")
    @classmethod
    def _check_rules(cls, value: tuple[str, ...] | None) -> tuple[str, ...] | None:
        return _normalise_rule_tokens(value)


class IndentationSettings(BaseModel):
    """Options of ``[sqlfluff:indentation]``."""

    tab_space_size: int | None = Field(default=None, ge=1)
    indent_unit: IndentUnit | None = None


class CommaLayout(BaseModel):
    """Options of ``[sqlfluff:layout:type:comma]``."""

    line_position: CommaPosition | None = None
    spacing_before: CommaSpacing | None = None


class CapitalisationSettings(BaseModel):
    """Policies of the ``capitalisation.*`` rules, keyed by what they cover."""

    keywords: CapitalisationPolicy | None = None
    identifiers: ExtendedCapitalisationPolicy | None = None
    functions: ExtendedCapitalisationPolicy | None = None
    literals: CapitalisationPolicy | None = None
    types: ExtendedCapitalisationPolicy | None = None


class AliasingSettings(BaseModel):
    table: AliasingStyle | None = None
    column: AliasingStyle | None = None
    allow_scalar: bool | None = None


class ReferenceSettings(BaseModel):
    group_by_and_order_by_style: ReferenceStyle | None = None


class StructureSettings(BaseModel):
    forbid_subquery_in: SubqueryPlacement | None = None


class ConventionSettings(BaseModel):
    preferred_not_equal_style: NotEqualStyle | None = None


@dataclass(frozen=True, slots=True)
class _Option:
    path: tuple[str, ...]
    key: str
    group: str
    field: str


_OPTIONS: tuple[_Option, ...] = (
    _Option(("core",), "dialect", "core", "dialect"),
    _Option(("core",), "templater", "core", "templater"),
    _Option(("core",), "runaway_limit", "core", "runaway_limit"),
    _Option(("core",), "max_line_length", "core", "max_line_length"),
    _Option(("core",), "indent_unit", "core", "indent_unit"),
    _Option(("core",), "rules", "core", "rules"),
    _Option(("core",), "exclude_rules", "core", "exclude_rules"),
    _Option(("indentation",), "indent_unit", "indentation", "indent_unit"),
    _Option(("indentation",), "tab_space_size", "indentation", "tab_space_size"),
    _Option(("layout", "type", "comma"), "spacing_before", "commas", "spacing_before"),
    _Option(("layout", "type", "comma"), "line_position", "commas", "line_position"),
    _Option(("rules", "capitalisation.keywords"), "capitalisation_policy", "capitalisation", "keywords"),
    _Option(
        ("rules", "capitalisation.identifiers"),
        "extended_capitalisation_policy",
        "capitalisation",
        "identifiers",
    ),
    _Option(
        ("rules", "capitalisation.functions"),
        "extended_capitalisation_policy",
        "capitalisation",
        "functions",
    ),
    _Option(("rules", "capitalisation.literals"), "capitalisation_policy", "capitalisation", "literals"),
    _Option(("rules", "capitalisation.types"), "extended_capitalisation_policy", "capitalisation", "types"),
    _Option(("rules", "aliasing.table"), "aliasing", "aliasing", "table"),
    _Option(("rules", "aliasing.column"), "aliasing", "aliasing", "column"),
    _Option(("rules", "aliasing.expression"), "allow_scalar", "aliasing", "allow_scalar"),
    _Option(
        ("rules", "ambiguous.column_references"),
        "group_by_and_order_by_style",
        "references",
        "group_by_and_order_by_style",
    ),
    _Option(("rules", "structure.subquery"), "forbid_subquery_in", "structure", "forbid_subquery_in"),
    _Option(
        ("rules", "convention.not_equal"),
        "preferred_not_equal_style",
        "conventions",
        "preferred_not_equal_style",
    ),
)

_OPTION_INDEX: dict[tuple[tuple[str, ...], str], _Option] = {
    (option.path, option.key): option for option in _OPTIONS
}

# Rule sections may be written with the short code instead of the rule name.
RULE_SECTION_ALIASES: dict[str, str] = {
    "CP01": "capitalisation.keywords",
    "CP02": "capitalisation.identifiers",
    "CP03": "capitalisation.functions",
    "CP04": "capitalisation.literals",
    "CP05": "capitalisation.types",
    "AL01": "aliasing.table",
    "AL02": "aliasing.column",
    "AL03": "aliasing.expression",
    "AM06": "ambiguous.column_references",
    "ST05": "structure.subquery",
    "CV01": "convention.not_equal",
}


class LinterSettings(BaseModel):
    """Validated view of a sqlfluff configuration file.

    ``configs`` is the nested mapping produced by sqlfluff's own loader and is
    what sqlfluff receives. The typed sections validate the part of it the
    guide relies on.
    """

    core: CoreSettings = Field(default_factory=CoreSettings)
    indentation: IndentationSettings = Field(default_factory=IndentationSettings)
    commas: CommaLayout = Field(default_factory=CommaLayout)
    capitalisation: CapitalisationSettings = Field(default_factory=CapitalisationSettings)
    aliasing: AliasingSettings = Field(default_factory=AliasingSettings)
    references: ReferenceSettings = Field(default_factory=ReferenceSettings)
    structure: StructureSettings = Field(default_factory=StructureSettings)
    conventions: ConventionSettings = Field(default_factory=ConventionSettings)
    configs: dict[str, Any] = Field(default_factory=dict)
    source: Path | None = None

    @property
    def indent_unit(self) -> IndentUnit | None:
        return self.indentation.indent_unit or self.core.indent_unit

    @property
    def excluded_rules(self) -> tuple[str, ...]:
        return self.core.exclude_rules or ()

    @property
    def extra(self) -> dict[tuple[str, ...], dict[str, Any]]:
        """Options outside the validated subset, grouped by section path."""

        extra: dict[tuple[str, ...], dict[str, Any]] = {}
        for path, key, value in _walk(self.configs):
            if (_canonical_path(path), key) not in _OPTION_INDEX:
                extra.setdefault(path, {})[key] = value
        return extra

    def with_overrides(self, **core: object) -> LinterSettings:
        """Return a copy with top-level options replaced and re-validated."""

        unknown = sorted(set(core) - set(CoreSettings.model_fields))
        if unknown:
            raise SettingsError(f"unknown [{SECTION_PREFIX}] option(s): {', '.join(unknown)}")
        merged = {**self.core.model_dump(), **core}
        try:
            updated = CoreSettings.model_validate(merged)
        except ValidationError as exc:
            raise SettingsError(_describe_validation_error(exc, ("core",))) from exc

        configs = copy.deepcopy(self.configs)
        section = configs.setdefault("core", {})
        for key in core:
            value = getattr(updated, key)
            if value is None:
                section.pop(key, None)
            else:
                section[key] = _fluff_value(value)
        return self.model_copy(update={"core": updated, "configs": configs})

    def recognised_options(self) -> Iterator[tuple[tuple[str, ...], str, Any]]:
        """Yield ``(section path, key, value)`` for every recognised option that is set."""

        for option in _OPTIONS:
            value = getattr(getattr(self, option.group), option.field)
            if value is not None:
                yield option.path, option.key, value

    def to_fluff_configs(self) -> dict[str, Any]:
        """Return the nested mapping ``FluffConfig(configs=...)`` expects."""

        configs = copy.deepcopy(self.configs)
        configs.setdefault("core", {})
        # sqlfluff only reads indent_unit from the indentation section.
        if self.indent_unit is not None:
            configs.setdefault("indentation", {}).setdefault("indent_unit", self.indent_unit.value)
        return configs


_GROUP_MODELS: dict[str, type[BaseModel]] = {
    "core": CoreSettings,
    "indentation": IndentationSettings,
    "commas": CommaLayout,
    "capitalisation": CapitalisationSettings,
    "aliasing": AliasingSettings,
    "references": ReferenceSettings,
    "structure": StructureSettings,
    "conventions": ConventionSettings,
}


def parse_settings(text: str, source: Path | str | None = None) -> LinterSettings:
    """Load sqlfluff INI text with sqlfluff's loader and validate the known options.

    Relative paths in the text resolve against the working directory; use
    :func:`load_settings` to resolve them against a file's location.
    """

    label = str(source) if source is not None else "<string>"
    try:
        configs = load_config_string(text)
    except _LOAD_ERRORS as exc:
        raise SettingsError(f"{label}: {exc}") from exc
    return _validate(configs, label, Path(source) if source is not None else None)


def load_settings(path: Path) -> LinterSettings:
    """Read and validate a sqlfluff configuration file."""

    if not path.is_file():
        raise SettingsError(f"Unable to read linter settings from {path}: no such file")
    try:
        configs = copy.deepcopy(load_config_file(str(path.parent), path.name))
    except OSError as exc:
        raise SettingsError(f"Unable to read linter settings from {path}: {exc}") from exc
    except _LOAD_ERRORS as exc:
        raise SettingsError(f"{path}: {exc}") from exc
    return _validate(configs, str(path), path)


def render_settings(settings: LinterSettings) -> str:
    """Serialise settings back to INI text, one section per nested mapping."""

    sections: dict[tuple[str, ...], list[tuple[str, Any]]] = {}
    for path, key, value in _walk(settings.configs):
        sections.setdefault(path, []).append((key, value))

    blocks: list[str] = []
    for path, options in sections.items():
        lines = [f"[{section_name(path)}]"]
        lines.extend(f"{key} = {value}" for key, value in options)
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks) + "\n"


def save_settings(settings: LinterSettings, path: Path) -> None:
    """Persist settings to disk."""

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render_settings(settings), encoding="utf-8")


def section_name(path: Iterable[str]) -> str:
    """Return the INI section name for a nested section path."""

    parts = tuple(path)
    if parts == ("core",):
        return SECTION_PREFIX
    return ":".join((SECTION_PREFIX, *parts))


def _walk(node: dict[str, Any], path: tuple[str, ...] = ()) -> Iterator[tuple[tuple[str, ...], str, Any]]:
    for key, value in node.items():
        if isinstance(value, dict):
            yield from _walk(value, (*path, key))
        else:
            yield path, key, value


def _canonical_path(path: tuple[str, ...]) -> tuple[str, ...]:
    if len(path) == 2 and path[0] == "rules":
        return ("rules", RULE_SECTION_ALIASES.get(path[1].upper(), path[1]))
    return path


def _validate(configs: dict[str, Any], label: str, source: Path | None) -> LinterSettings:
    if not configs:
        raise SettingsError(f"{label}: no [{SECTION_PREFIX}] sections found")

    grouped: dict[str, dict[str, Any]] = {}
    seen: dict[tuple[str, ...], tuple[str, ...]] = {}
    for path, key, value in _walk(configs):
        canonical = _canonical_path(path)
        if seen.setdefault(canonical, path) != path:
            raise SettingsError(f"{label}: section [{section_name(path)}] is declared twice")
        option = _OPTION_INDEX.get((canonical, key))
        if option is not None:
            grouped.setdefault(option.group, {})[option.field] = value

    models: dict[str, BaseModel] = {}
    for group, model in _GROUP_MODELS.items():
        try:
            models[group] = model.model_validate(grouped.get(group, {}))
        except ValidationError as exc:
            raise SettingsError(f"{label}: {_describe_validation_error(exc, group=group)}") from exc

    return LinterSettings(**models, configs=configs, source=source)


def _fluff_value(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, tuple):
        return ",".join(value)
    return value


def _describe_validation_error(
    exc: ValidationError,
    path: tuple[str, ...] | None = None,
    *,
    group: str | None = None,
) -> str:
    messages: list[str] = []
    for error in exc.errors():
        field = str(error["loc"][0]) if error["loc"] else "?"
        where = _locate(field, path=path, group=group)
        messages.append(f"{where}: {error['msg']}")
    return "; ".join(messages)


def _locate(field: str, *, path: tuple[str, ...] | None, group: str | None) -> str:
    for option in _OPTIONS:
        if option.field != field:
            continue
        if (group is not None and option.group == group) or (path is not None and option.path == path):
            return f"[{section_name(option.path)}] {option.key}"
    return field




__all__ = [
    "AliasingSettings",
    "AliasingStyle",
    "CapitalisationPolicy",
    "CapitalisationSettings",
    "CommaLayout",
    "CommaPosition",
    "CommaSpacing",
    "ConventionSettings",
    "CoreSettings",
    "ExtendedCapitalisationPolicy",
    "IndentUnit",
    "IndentationSettings",
    "LinterSettings",
    "NotEqualStyle",
    "RULE_SECTION_ALIASES",
    "ReferenceSettings",
    "ReferenceStyle",
    "StructureSettings",
    "SubqueryPlacement",
    "Templater",
    "load_settings",
    "parse_rule_list",
    "parse_settings",
    "render_settings",
    "save_settings",
    "section_name",
]
