"""Seed and remove synthetic rows for trying the pipeline end to end."""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Any

import psycopg
import structlog
from psycopg import sql

from remediate.db.sql_text import extract_table_name
from remediate.reference.zip_county import ZipCountyMap, load_zip_county_map
from remediate.settings import AppSettings

logger = structlog.get_logger()

TEST_KEY_PREFIX = "testkey_"


@dataclass(frozen=True)
class SeedResult:
    table: str
    inserted: int
    failed: int


def _table_ident(table_name: str) -> sql.Composable:
    parts = [part.strip() for part in table_name.split(".") if part.strip()]
    return sql.SQL(".").join(sql.Identifier(part) for part in parts)


def _insert_sql(table_name: str, settings: AppSettings) -> sql.Composed:
    columns = [
        settings.key_field_name,
        "field1",
        "field2",
        "condition",
        settings.county_field_name,
        settings.zip_field_name,
    ]
    return sql.SQL("INSERT INTO {} ({}) VALUES ({})").format(
        _table_ident(table_name),
        sql.SQL(", ").join(sql.Identifier(column) for column in columns),
        sql.SQL(", ").join(sql.Placeholder() for _ in columns),
    )


def generate_test_data(
    conn: Any,
    settings: AppSettings,
    count: int,
    *,
    zip_map: ZipCountyMap | None = None,
    rng: random.Random | None = None,
) -> SeedResult:
    """Insert ``count`` rows keyed ``testkey_<n>`` with zip+4 codes from the reference table.

    Each row starts with the correct county FIPS code. A failed insert is
    logged and skipped.
    """

    reference = zip_map if zip_map is not None else load_zip_county_map()
    zip_codes = sorted(reference.keys())
    if not zip_codes:
        raise ValueError("No zip codes found in reference table")

    rng = rng or random.Random()
    table_name = extract_table_name(settings.selection_query)
    statement = _insert_sql(table_name, settings)

    inserted = 0
    failed = 0
    for index in range(1, count + 1):
        zip_code = rng.choice(zip_codes)
        entry = reference[zip_code]
        key = f"{TEST_KEY_PREFIX}{index}"
        params = (
            key,
            f"value_{rng.randint(1000, 9998)}",
            f"data_{rng.randint(100, 998)}",
            "t" if rng.random() < 0.8 else "f",
            entry.fips_code,
            f"{zip_code}-{rng.randint(0, 9998):04d}",
        )
        try:
            with conn.cursor() as cur:
                cur.execute(statement, params)
        except psycopg.Error as exc:
            logger.error("test_row_insert_failed", key=key, error=str(exc))
            failed += 1
            continue
        inserted += 1

    logger.info("test_data_generated", table=table_name, inserted=inserted, failed=failed)
    return SeedResult(table=table_name, inserted=inserted, failed=failed)


def clean_test_data(conn: Any, settings: AppSettings) -> int:
    table_name = extract_table_name(settings.selection_query)
    statement = sql.SQL("DELETE FROM {} WHERE {} LIKE %s").format(
        _table_ident(table_name),
        sql.Identifier(settings.key_field_name),
    )
    with conn.cursor() as cur:
        cur.execute(statement, (f"{TEST_KEY_PREFIX}%",))
        deleted = cur.rowcount
    logger.info("test_data_cleaned", table=table_name, deleted=deleted)
    return deleted
