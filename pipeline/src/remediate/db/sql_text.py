"""Textual parsing of the selection statement.

Column positions and the target table are read from the SELECT text itself,
not from driver metadata. Only a flat ``SELECT a, b, c FROM t ...`` column
list is understood: subqueries, computed columns containing commas and
aliases are not.
"""

from __future__ import annotations

import re

FALLBACK_TABLE_NAME = "table_name"

_SELECT_RE = re.compile(r"\bSELECT\s", re.IGNORECASE)
_FROM_RE = re.compile(r"\sFROM\s", re.IGNORECASE)
_TABLE_END_RE = re.compile(r"\s(?:WHERE|LIMIT)\s", re.IGNORECASE)


class SelectionError(ValueError):
    """Raised when the selection statement cannot be used for column lookup."""


def _collapse(statement: str) -> str:
    return " ".join(statement.split())


def select_columns(statement: str) -> list[str]:
    """Return the trimmed column expressions between SELECT and FROM."""

    text = _collapse(statement)
    select_match = _SELECT_RE.search(text)
    if select_match is None:
        raise SelectionError(f"SELECT statement not found in query: {statement}")
    from_match = _FROM_RE.search(text, select_match.end() - 1)
    if from_match is None:
        raise SelectionError(f"FROM clause not found in query: {statement}")
    columns_text = text[select_match.end():from_match.start()]
    return [column.strip() for column in columns_text.split(",")]


def resolve_column_index(statement: str, field_name: str) -> int:
    """Find ``field_name`` in the SELECT list by exact or ``.name`` match."""

    wanted = field_name.strip().lower()
    columns = select_columns(statement)
    for index, column in enumerate(columns):
        lowered = column.lower()
        if lowered == wanted or lowered.endswith(f".{wanted}"):
            return index
    raise SelectionError(
        f"Field name '{field_name}' not found in SELECT statement: {', '.join(columns)}"
    )


def column_index_by_position(num_cols: int, position: int) -> int:
    if 0 <= position < num_cols:
        return position
    return 0


def extract_table_name(statement: str) -> str:
    """Return the text between FROM and the next WHERE/LIMIT, or the end."""

    text = _collapse(statement).rstrip(";").strip()
    from_match = _FROM_RE.search(text)
    if from_match is None:
        return FALLBACK_TABLE_NAME
    after_from = text[from_match.end():]
    end_match = _TABLE_END_RE.search(f" {after_from} ")
    if end_match is not None:
        after_from = after_from[: max(end_match.start() - 1, 0)]
    table_name = after_from.strip()
    return table_name or FALLBACK_TABLE_NAME
