"""Placeholder rendering for update statement templates."""

from __future__ import annotations

from typing import Mapping, Sequence

KEY_PLACEHOLDER = "key"
FIELD_PLACEHOLDER_PREFIX = "field"


def row_placeholders(values: Sequence[str]) -> dict[str, str]:
    """Bind column 0 to ``key`` and columns 1..N to ``field1``..``fieldN``."""

    if not values:
        return {}
    placeholders = {KEY_PLACEHOLDER: values[0]}
    for index, value in enumerate(values[1:], start=1):
        placeholders[f"{FIELD_PLACEHOLDER_PREFIX}{index}"] = value
    return placeholders


def render_template(template: str, values: Mapping[str, str]) -> str:
    """Replace every ``{{name}}`` with its value, literally.

    Values are not escaped or quoted; templates carry their own quotes.
    Placeholders with no value are left as they are.
    """

    rendered = template
    for name, value in values.items():
        rendered = rendered.replace("{{" + name + "}}", value)
    return rendered
