"""Zip code to county lookup table."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Iterable, Mapping

from remediate.reference.data import COUNTIES, ZIP_ROWS
from remediate.util.normalise import zip5


@dataclass(frozen=True)
class ZipCountyEntry:
    zip_code: str
    county_code: str
    division: str
    fips_code: str
    county_name: str


ZipCountyMap = Mapping[str, ZipCountyEntry]


def build_zip_county_map(
    rows: Iterable[str],
    counties: Iterable[tuple[str, str, str]],
) -> dict[str, ZipCountyEntry]:
    """Parse ``zip:county_code:division`` rows into a lookup map.

    Rows that do not split into three parts are ignored. A county code
    missing from ``counties`` yields empty FIPS code and name.
    """

    county_info = {code: (fips, name) for code, fips, name in counties}
    output: dict[str, ZipCountyEntry] = {}
    for row in rows:
        parts = row.split(":")
        if len(parts) != 3:
            continue
        zip_code, county_code, division = parts
        fips_code, county_name = county_info.get(county_code, ("", ""))
        output[zip_code] = ZipCountyEntry(
            zip_code=zip_code,
            county_code=county_code,
            division=division,
            fips_code=fips_code,
            county_name=county_name,
        )
    return output


@lru_cache(maxsize=1)
def load_zip_county_map() -> ZipCountyMap:
    return build_zip_county_map(ZIP_ROWS, COUNTIES)


def lookup_zip(value: str | None, zip_map: ZipCountyMap | None = None) -> ZipCountyEntry | None:
    """Find the entry for a zip or zip+4 value by its 5 character form."""

    table = load_zip_county_map() if zip_map is None else zip_map
    key = zip5(value)
    if not key:
        return None
    return table.get(key)
