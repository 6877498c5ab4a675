"""Fixed-size row batches over a selection statement."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterator, Sequence

import structlog

from remediate.util.normalise import cell_text

logger = structlog.get_logger()

SELECTION_CURSOR_NAME = "remediate_selection"


@dataclass(frozen=True)
class RowBatch:
    """One fetched batch; every cell is text, NULL collapsed to ``""``.

    Cells arrive as values psycopg has already loaded and are rendered by
    ``cell_text``: numerics keep their digits, booleans become ``t``/``f``.
    """

    rows: tuple[tuple[str, ...], ...]
    num_cols: int

    @classmethod
    def from_rows(cls, rows: Sequence[Sequence[Any]], num_cols: int) -> RowBatch:
        return cls(
            rows=tuple(tuple(cell_text(value) for value in row) for row in rows),
            num_cols=num_cols,
        )

    @property
    def num_rows(self) -> int:
        return len(self.rows)

    def at(self, col: int, row: int) -> str:
        values = self.rows[row]
        if col >= len(values):
            return ""
        return values[col]


def iter_batches(conn: Any, statement: str, batch_size: int) -> Iterator[RowBatch]:
    """Run ``statement`` on a server-side cursor and yield its rows in batches.

    The sequence can only be restarted by calling this again, which re-issues
    the statement. An empty result set yields nothing.
    """

    if batch_size <= 0:
        raise ValueError("batch_size must be greater than zero")

    with conn.cursor(name=SELECTION_CURSOR_NAME) as cur:
        cur.execute(statement)
        num_cols: int | None = None
        batch_index = 0
        while True:
            rows = cur.fetchmany(batch_size)
            if not rows:
                break
            if num_cols is None:
                description = cur.description
                num_cols = len(description) if description else len(rows[0])
            batch_index += 1
            logger.debug("selection_batch_fetched", batch=batch_index, rows=len(rows))
            yield RowBatch.from_rows(rows, num_cols)
