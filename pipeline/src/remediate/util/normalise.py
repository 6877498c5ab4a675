"""Canonicalisation helpers for postal codes and driver cell values."""

from __future__ import annotations

_ZIP5_LEN = 5


def zip5(value: str | None) -> str:
    """Return the 5 character form of a zip or zip+4 value.

    The part before the first hyphen wins; otherwise the first five
    characters; shorter values are returned unchanged.
    """

    if not value:
        return ""
    if "-" in value:
        return value.split("-", 1)[0]
    if len(value) >= _ZIP5_LEN:
        return value[:_ZIP5_LEN]
    return value


def cell_text(value: object) -> str:
    """Collapse a driver value into the text form used by job synthesis.

    Booleans use the server's ``t``/``f`` spelling; other loaded values
    use ``str()``, so timestamps and intervals follow Python formatting
    rather than the server's text output.
    """

    if value is None:
        return ""
    if isinstance(value, bool):
        return "t" if value else "f"
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).decode("utf-8", errors="replace")
    return str(value)
