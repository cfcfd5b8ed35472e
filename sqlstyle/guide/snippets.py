"""Structural summary of guide examples, backed by sqlglot."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Tuple

import sqlglot
from sqlglot import exp
from sqlglot.errors import ParseError, TokenError

_TEMPLATE_TAG = re.compile(r"{{|{%|{#")

# sqlfluff dialect name -> sqlglot dialect name; None means sqlglot's generic dialect.
_DIALECTS: dict[str, str | None] = {
    "ansi": None,
    "athena": "athena",
    "bigquery": "bigquery",
    "clickhouse": "clickhouse",
    "databricks": "databricks",
    "doris": "doris",
    "duckdb": "duckdb",
    "greenplum": "postgres",
    "hive": "hive",
    "mariadb": "mysql",
    "materialize": "postgres",
    "mysql": "mysql",
    "oracle": "oracle",
    "postgres": "postgres",
    "redshift": "redshift",
    "snowflake": "snowflake",
    "sparksql": "spark",
    "sqlite": "sqlite",
    "starrocks": "starrocks",
    "teradata": "teradata",
    "trino": "trino",
    "tsql": "tsql",
}


def sqlglot_dialect(name: str | None) -> str | None:
    """Map a sqlfluff dialect name onto the closest sqlglot dialect."""

    if not name:
        return None
    return _DIALECTS.get(name.lower())


@dataclass(slots=True, frozen=True)
class SnippetInfo:
    """What sqlglot could tell about an example.

    Tables and CTE names are sorted case-insensitively.
    """

    statements: Tuple[str, ...] = ()
    tables: Tuple[str, ...] = ()
    ctes: Tuple[str, ...] = ()
    templated: bool = False
    error: str | None = None

    @property
    def is_fragment(self) -> bool:
        """True when the text is plain SQL but not one or more complete statements."""

        if self.templated:
            return False
        return self.error is not None or not self.statements


class SnippetAnalyzer:
    """Parses examples to tell complete statements apart from fragments."""

    def __init__(self, dialect: str | None = None) -> None:
        self._dialect = sqlglot_dialect(dialect)

    @property
    def dialect(self) -> str | None:
        return self._dialect

    def analyze(self, sql: str) -> SnippetInfo:
        if _TEMPLATE_TAG.search(sql):
            return SnippetInfo(templated=True)
        try:
            parsed = sqlglot.parse(sql, read=self._dialect)
        except (ParseError, TokenError) as exc:
            return SnippetInfo(error=_first_line(str(exc)))

        expressions = [expression for expression in parsed if expression is not None]
        if not expressions:
            return SnippetInfo(error="no SQL statement found")

        ctes = tuple(_collect_ctes(expressions))
        return SnippetInfo(
            statements=tuple(expression.key for expression in expressions),
            tables=tuple(_collect_tables(expressions, exclude=ctes)),
            ctes=ctes,
        )


def _collect_ctes(expressions: Iterable[exp.Expression]) -> Iterable[str]:
    names: list[str] = []
    seen: set[str] = set()
    for expression in expressions:
        for cte in expression.find_all(exp.CTE):
            name = cte.alias
            norm = name.lower()
            if norm and norm not in seen:
                names.append(name)
                seen.add(norm)
    return sorted(names, key=str.lower)


def _collect_tables(expressions: Iterable[exp.Expression], *, exclude: Iterable[str] = ()) -> Iterable[str]:
    tables: list[str] = []
    seen: set[str] = {name.lower() for name in exclude}
    for expression in expressions:
        for table in expression.find_all(exp.Table):
            schema = table.db
            name = table.name or ""
            label = f"{schema}.{name}" if schema else name
            norm = label.lower()
            if norm and norm not in seen:
                tables.append(label)
                seen.add(norm)
    return sorted(tables, key=str.lower)


def _first_line(message: str) -> str:
    stripped = message.strip()
    return stripped.splitlines()[0] if stripped else "parse error"


__all__ = ["SnippetAnalyzer", "SnippetInfo", "sqlglot_dialect"]
