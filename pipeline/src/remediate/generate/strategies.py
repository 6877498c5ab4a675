"""Per-row job synthesis strategies."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol

import structlog

from remediate.db.batches import RowBatch
from remediate.db.sql_text import (
    column_index_by_position,
    extract_table_name,
    resolve_column_index,
)
from remediate.generate.templates import KEY_PLACEHOLDER, render_template, row_placeholders
from remediate.jobs.models import JobRecord
from remediate.reference.zip_county import ZipCountyEntry, ZipCountyMap, load_zip_county_map, lookup_zip
from remediate.util.normalise import zip5

logger = structlog.get_logger()


class StrategyName(str, Enum):
    TEMPLATE = "template"
    COUNTY_FIPS = "county_fips"
    COUNTY_CODE = "county_code"


class RepairTarget(str, Enum):
    """Which reference value a row's current county value is compared to."""

    FIPS_CODE = "fips_code"
    COUNTY_CODE = "county_code"

    def canonical(self, entry: ZipCountyEntry) -> str:
        if self is RepairTarget.FIPS_CODE:
            return entry.fips_code
        return entry.county_code


class JobStrategy(Protocol):
    name: StrategyName

    def bind(self, selection_statement: str) -> None:
        """Resolve anything derived from the selection text, before any row is read."""

    def build_job(self, batch: RowBatch, row_index: int) -> JobRecord | None:
        """Return the job for one row, or None when the row needs no job."""


@dataclass
class TemplateStrategy:
    template: str
    name: StrategyName = StrategyName.TEMPLATE

    def bind(self, selection_statement: str) -> None:
        return None

    def build_job(self, batch: RowBatch, row_index: int) -> JobRecord | None:
        values = [batch.at(col, row_index) for col in range(batch.num_cols)]
        placeholders = row_placeholders(values)
        key = placeholders.get(KEY_PLACEHOLDER, "")
        return JobRecord(key=key, statement=render_template(self.template, placeholders))


@dataclass(frozen=True)
class ColumnLayout:
    key: int
    zip: int
    county: int


# Fixed selection layout: key, zip, county.
POSITIONAL_LAYOUT = ColumnLayout(key=0, zip=1, county=2)


@dataclass
class LookupRepairStrategy:
    """Repair a row's county value from the zip code reference table.

    Rows with no zip, an unmapped zip, or an already correct county value
    produce no job.
    """

    target: RepairTarget
    key_field_name: str
    zip_field_name: str
    county_field_name: str
    resolve_by_name: bool
    name: StrategyName
    zip_map: ZipCountyMap | None = None
    layout: ColumnLayout = POSITIONAL_LAYOUT
    table_name: str = field(default="", init=False)

    def bind(self, selection_statement: str) -> None:
        if self.resolve_by_name:
            self.layout = ColumnLayout(
                key=resolve_column_index(selection_statement, self.key_field_name),
                zip=resolve_column_index(selection_statement, self.zip_field_name),
                county=resolve_column_index(selection_statement, self.county_field_name),
            )
        self.table_name = extract_table_name(selection_statement)
        if self.zip_map is None:
            self.zip_map = load_zip_county_map()
        logger.info(
            "lookup_repair_bound",
            strategy=self.name.value,
            key_col=self.layout.key,
            zip_col=self.layout.zip,
            county_col=self.layout.county,
            table=self.table_name,
        )

    def _cell(self, batch: RowBatch, position: int, row_index: int) -> str:
        if self.resolve_by_name:
            return batch.at(position, row_index)
        return batch.at(column_index_by_position(batch.num_cols, position), row_index)

    def build_job(self, batch: RowBatch, row_index: int) -> JobRecord | None:
        key = self._cell(batch, self.layout.key, row_index)
        zip_code = self._cell(batch, self.layout.zip, row_index)
        current = self._cell(batch, self.layout.county, row_index)

        if not zip_code:
            logger.debug("row_skipped_no_zip", key=key)
            return None

        zip_code5 = zip5(zip_code)
        entry = lookup_zip(zip_code5, self.zip_map)
        if entry is None:
            logger.warning("row_skipped_unmapped_zip", key=key, zip=zip_code5)
            return None

        canonical = self.target.canonical(entry)
        if current == canonical:
            logger.debug("row_skipped_already_correct", key=key, county=current)
            return None

        statement = (
            f"UPDATE {self.table_name} SET {self.county_field_name} = '{canonical}' "
            f"WHERE {self.key_field_name} = '{key}'"
        )
        logger.info(
            "county_repair_generated",
            key=key,
            zip=zip_code5,
            current=current,
            canonical=canonical,
        )
        return JobRecord(key=key, statement=statement)


def build_strategy(
    name: StrategyName,
    *,
    template: str,
    key_field_name: str,
    zip_field_name: str,
    county_field_name: str,
    zip_map: ZipCountyMap | None = None,
) -> JobStrategy:
    if name is StrategyName.TEMPLATE:
        return TemplateStrategy(template=template)
    if name is StrategyName.COUNTY_FIPS:
        return LookupRepairStrategy(
            target=RepairTarget.FIPS_CODE,
            key_field_name=key_field_name,
            zip_field_name=zip_field_name,
            county_field_name=county_field_name,
            resolve_by_name=False,
            name=name,
            zip_map=zip_map,
        )
    if name is StrategyName.COUNTY_CODE:
        return LookupRepairStrategy(
            target=RepairTarget.COUNTY_CODE,
            key_field_name=key_field_name,
            zip_field_name=zip_field_name,
            county_field_name=county_field_name,
            resolve_by_name=True,
            name=name,
            zip_map=zip_map,
        )
    raise ValueError(f"Unknown strategy: {name!r}")
