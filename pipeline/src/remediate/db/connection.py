"""Database connection helpers."""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator

import psycopg
import structlog
from psycopg.conninfo import make_conninfo

logger = structlog.get_logger()


@contextmanager
def connect(
    conninfo: str,
    *,
    autocommit: bool = False,
    connect_timeout: int | None = None,
) -> Iterator[psycopg.Connection]:
    kwargs: dict[str, object] = {"autocommit": autocommit}
    if connect_timeout is not None:
        kwargs["connect_timeout"] = connect_timeout
    conn = psycopg.connect(conninfo, **kwargs)
    logger.info("database_connected", autocommit=autocommit)
    try:
        yield conn
    finally:
        conn.close()


@dataclass(frozen=True)
class DataSource:
    """Connection parameters shared by every phase of one process.

    Each phase opens and closes its own connection through ``connect``.
    """

    conninfo: str
    connect_timeout: int | None = None

    @classmethod
    def from_parts(
        cls,
        dsn: str,
        *,
        user: str = "",
        password: str = "",
        connect_timeout: int | None = None,
    ) -> DataSource:
        extra: dict[str, str] = {}
        if user:
            extra["user"] = user
        if password:
            extra["password"] = password
        return cls(conninfo=make_conninfo(dsn, **extra), connect_timeout=connect_timeout)

    def connect(self, *, autocommit: bool = False):
        return connect(self.conninfo, autocommit=autocommit, connect_timeout=self.connect_timeout)
