from __future__ import annotations

from remediate.reference.data import COUNTIES, ZIP_ROWS
from remediate.reference.zip_county import build_zip_county_map, load_zip_county_map, lookup_zip


def test_reference_counties_cover_washington() -> None:
    codes = [code for code, _, _ in COUNTIES]

    assert len(COUNTIES) == 39
    assert codes == [f"{n:02d}" for n in range(1, 40)]
    assert [fips for _, fips, _ in COUNTIES] == [f"{n:03d}" for n in range(1, 78, 2)]


def test_every_reference_zip_resolves_to_a_county() -> None:
    zip_map = load_zip_county_map()

    assert len(zip_map) == len({row.split(":")[0] for row in ZIP_ROWS})
    assert all(entry.fips_code and entry.county_name for entry in zip_map.values())


def test_build_zip_county_map_skips_malformed_rows() -> None:
    zip_map = build_zip_county_map(
        ["98115:17:A", "broken", "98040:99:A"],
        [("17", "033", "King County")],
    )

    assert sorted(zip_map) == ["98040", "98115"]
    assert zip_map["98115"].fips_code == "033"
    assert zip_map["98115"].county_name == "King County"
    assert zip_map["98040"].fips_code == ""


def test_lookup_zip_accepts_zip_plus_four() -> None:
    entry = lookup_zip("99001-0042")

    assert entry is not None
    assert (entry.zip_code, entry.county_code, entry.fips_code) == ("99001", "32", "063")
    assert lookup_zip("") is None
    assert lookup_zip("00000") is None
