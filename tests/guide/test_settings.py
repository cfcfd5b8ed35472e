"""Tests for the sqlfluff settings schema."""

from __future__ import annotations

from pathlib import Path

import pytest

from sqlstyle.guide.errors import SettingsError
from sqlstyle.guide.settings import (
    AliasingStyle,
    CapitalisationPolicy,
    CommaPosition,
    CommaSpacing,
    IndentUnit,
    LinterSettings,
    ReferenceStyle,
    Templater,
    load_settings,
    parse_rule_list,
    parse_settings,
    render_settings,
    save_settings,
    section_name,
)

SAMPLE = """
[sqlfluff]
dialect = snowflake
templater = jinja
runaway_limit = 10
max_line_length = 120
indent_unit = space
exclude_rules = AM04, ST06

[sqlfluff:indentation]
tab_space_size = 4

[sqlfluff:layout:type:comma]
spacing_before = touch
line_position = trailing

[sqlfluff:rules:capitalisation.keywords]
capitalisation_policy = lower

[sqlfluff:rules:aliasing.table]
aliasing = explicit

[sqlfluff:rules:aliasing.expression]
allow_scalar = False

[sqlfluff:rules:ambiguous.column_references]
group_by_and_order_by_style = implicit

[sqlfluff:templater:jinja]
apply_dbt_builtins = True
"""


def test_parse_reads_core_options() -> None:
    settings = parse_settings(SAMPLE)

    assert settings.core.dialect == "snowflake"
    assert settings.core.templater is Templater.JINJA
    assert settings.core.runaway_limit == 10
    assert settings.core.max_line_length == 120
    assert settings.core.indent_unit is IndentUnit.SPACE
    assert settings.core.exclude_rules == ("AM04", "ST06")
    assert settings.core.rules is None


def test_parse_reads_nested_sections() -> None:
    settings = parse_settings(SAMPLE)

    assert settings.indentation.tab_space_size == 4
    assert settings.commas.line_position is CommaPosition.TRAILING
    assert settings.commas.spacing_before is CommaSpacing.TOUCH
    assert settings.capitalisation.keywords is CapitalisationPolicy.LOWER
    assert settings.aliasing.table is AliasingStyle.EXPLICIT
    assert settings.aliasing.allow_scalar is False
    assert settings.references.group_by_and_order_by_style is ReferenceStyle.IMPLICIT


def test_unset_options_stay_unset() -> None:
    settings = parse_settings(SAMPLE)

    assert settings.capitalisation.identifiers is None
    assert settings.aliasing.column is None
    assert settings.structure.forbid_subquery_in is None


def test_unrecognised_sections_are_passed_through() -> None:
    settings = parse_settings(SAMPLE)

    assert settings.extra == {("templater", "jinja"): {"apply_dbt_builtins": True}}


def test_rule_sections_can_use_codes() -> None:
    settings = parse_settings("[sqlfluff]\ndialect = ansi\n\n[sqlfluff:rules:CP01]\ncapitalisation_policy = upper\n")

    assert settings.capitalisation.keywords is CapitalisationPolicy.UPPER


def test_code_and_name_for_the_same_rule_conflict() -> None:
    text = (
        "[sqlfluff]\ndialect = ansi\n\n"
        "[sqlfluff:rules:CP01]\ncapitalisation_policy = upper\n\n"
        "[sqlfluff:rules:capitalisation.keywords]\ncapitalisation_policy = lower\n"
    )

    with pytest.raises(SettingsError, match="declared twice"):
        parse_settings(text)


def test_other_tools_sections_are_ignored() -> None:
    settings = parse_settings("[flake8]\nmax-line-length = 100\n\n[sqlfluff]\ndialect = postgres\n")

    assert settings.core.dialect == "postgres"
    assert settings.extra == {}


def test_file_without_sqlfluff_sections_is_rejected() -> None:
    with pytest.raises(SettingsError, match=r"no \[sqlfluff\] sections"):
        parse_settings("[flake8]\nmax-line-length = 100\n")


def test_malformed_ini_is_rejected() -> None:
    with pytest.raises(SettingsError):
        parse_settings("dialect = snowflake\n")


def test_duplicate_options_are_rejected() -> None:
    with pytest.raises(SettingsError):
        parse_settings("[sqlfluff]\ndialect = ansi\ndialect = snowflake\n")


def test_out_of_domain_enum_names_section_and_key() -> None:
    text = "[sqlfluff]\ndialect = ansi\n\n[sqlfluff:layout:type:comma]\nline_position = middle\n"

    with pytest.raises(SettingsError, match=r"\[sqlfluff:layout:type:comma\] line_position"):
        parse_settings(text)


def test_runaway_limit_must_be_positive() -> None:
    with pytest.raises(SettingsError, match="runaway_limit"):
        parse_settings("[sqlfluff]\ndialect = ansi\nrunaway_limit = 0\n")


def test_exclude_rules_rejects_garbage_tokens() -> None:
    with pytest.raises(SettingsError, match="exclude_rules"):
        parse_settings("[sqlfluff]\ndialect = ansi\nexclude_rules = AM04, not a rule!\n")


def test_dialect_must_be_an_identifier() -> None:
    with pytest.raises(SettingsError, match="dialect"):
        parse_settings("[sqlfluff]\ndialect = Snow Flake\n")


def test_allow_scalar_must_be_boolean() -> None:
    with pytest.raises(SettingsError, match="allow_scalar"):
        parse_settings("[sqlfluff]\ndialect = ansi\n\n[sqlfluff:rules:aliasing.expression]\nallow_scalar = maybe\n")


def test_indent_unit_prefers_indentation_section() -> None:
    settings = parse_settings(
        "[sqlfluff]\ndialect = ansi\nindent_unit = space\n\n[sqlfluff:indentation]\nindent_unit = tab\n"
    )

    assert settings.indent_unit is IndentUnit.TAB


def test_to_fluff_configs_builds_nested_mapping() -> None:
    configs = parse_settings(SAMPLE).to_fluff_configs()

    assert configs["core"]["dialect"] == "snowflake"
    assert configs["core"]["templater"] == "jinja"
    assert configs["core"]["exclude_rules"] == "AM04, ST06"
    assert configs["indentation"]["tab_space_size"] == 4
    assert configs["indentation"]["indent_unit"] == "space"
    assert configs["layout"]["type"]["comma"]["line_position"] == "trailing"
    assert configs["rules"]["aliasing.expression"]["allow_scalar"] is False
    assert configs["templater"]["jinja"]["apply_dbt_builtins"] is True
    assert "capitalisation.identifiers" not in configs["rules"]


def test_render_settings_reparses_to_the_same_settings() -> None:
    settings = parse_settings(SAMPLE)

    rendered = render_settings(settings)

    assert rendered.startswith("[sqlfluff]\ndialect = snowflake\n")
    assert "exclude_rules = AM04, ST06" in rendered
    assert "[sqlfluff:templater:jinja]\napply_dbt_builtins = True" in rendered
    assert parse_settings(rendered) == settings


def test_with_overrides_revalidates() -> None:
    settings = parse_settings(SAMPLE)

    updated = settings.with_overrides(dialect="bigquery", exclude_rules="LT05")

    assert updated.core.dialect == "bigquery"
    assert updated.core.exclude_rules == ("LT05",)
    assert settings.core.dialect == "snowflake"
    with pytest.raises(SettingsError, match="runaway_limit"):
        settings.with_overrides(runaway_limit=0)


def test_save_and_load_settings(tmp_path: Path) -> None:
    path = tmp_path / "nested" / ".sqlfluff"

    save_settings(parse_settings(SAMPLE), path)
    loaded = load_settings(path)

    assert loaded.source == path
    assert loaded.core.dialect == "snowflake"
    assert loaded.aliasing.allow_scalar is False


def test_load_settings_reports_missing_file(tmp_path: Path) -> None:
    with pytest.raises(SettingsError, match="Unable to read"):
        load_settings(tmp_path / "missing.sqlfluff")


def test_default_settings_are_empty() -> None:
    settings = LinterSettings()

    assert list(settings.recognised_options()) == []
    assert settings.excluded_rules == ()


def test_values_are_typed_the_way_sqlfluff_reads_them() -> None:
    settings = parse_settings(
        "[sqlfluff]\ndialect = ansi\n\n"
        "[sqlfluff:templater:jinja]\nratio = 1.5\nenabled = true\nlibrary = none\nname = users\n"
    )

    assert settings.extra[("templater", "jinja")] == {
        "ratio": 1.5,
        "enabled": True,
        "library": None,
        "name": "users",
    }


def test_dotted_keys_become_nested_mappings() -> None:
    settings = parse_settings("[sqlfluff]\ndialect = ansi\n\n[sqlfluff:templater:jinja:context]\nns.value = 5\n")

    configs = settings.to_fluff_configs()

    assert configs["templater"]["jinja"]["context"] == {"ns": {"value": 5}}
    assert parse_settings(render_settings(settings)).configs == settings.configs


def test_colon_is_not_a_key_delimiter() -> None:
    with pytest.raises(SettingsError):
        parse_settings("[sqlfluff]\ndialect: ansi\n")


def test_relative_paths_resolve_against_the_settings_file(tmp_path: Path) -> None:
    (tmp_path / "macros").mkdir()
    path = tmp_path / ".sqlfluff"
    path.write_text(
        "[sqlfluff]\ndialect = ansi\ntemplater = jinja\n\n[sqlfluff:templater:jinja]\nload_macros_from_path = macros\n",
        encoding="utf-8",
    )

    value = load_settings(path).to_fluff_configs()["templater"]["jinja"]["load_macros_from_path"]

    assert Path(value).is_absolute()
    assert Path(value) == tmp_path / "macros"


def test_lowercase_codes_are_normalised() -> None:
    settings = parse_settings("[sqlfluff]\ndialect = ansi\nexclude_rules = am04, layout.long_lines\n")

    assert settings.core.exclude_rules == ("AM04", "layout.long_lines")


def test_with_overrides_updates_the_sqlfluff_mapping() -> None:
    settings = parse_settings(SAMPLE)

    updated = settings.with_overrides(exclude_rules="lt05", max_line_length=None)

    configs = updated.to_fluff_configs()
    assert configs["core"]["exclude_rules"] == "LT05"
    assert "max_line_length" not in configs["core"]
    assert configs["core"]["runaway_limit"] == 10
    assert parse_settings(SAMPLE).to_fluff_configs()["core"]["exclude_rules"] == "AM04, ST06"


def test_with_overrides_rejects_bad_values_and_unknown_options() -> None:
    settings = parse_settings(SAMPLE)

    with pytest.raises(SettingsError, match=r"\[sqlfluff\] templater"):
        settings.with_overrides(templater="mako")
    with pytest.raises(SettingsError, match="unknown"):
        settings.with_overrides(colour="blue")


def test_parse_rule_list_uppercases_codes() -> None:
    assert parse_rule_list("cp01, layout.indent ,aliasing") == ("CP01", "layout.indent", "aliasing")
    with pytest.raises(ValueError):
        parse_rule_list("CP01, ???")


def test_section_name() -> None:
    assert section_name(("core",)) == "sqlfluff"
    assert section_name(("rules", "aliasing.table")) == "sqlfluff:rules:aliasing.table"
