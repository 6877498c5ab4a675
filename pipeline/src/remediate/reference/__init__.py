"""Static reference data consumed read-only by the pipeline."""

from .zip_county import ZipCountyEntry, load_zip_county_map, lookup_zip

__all__ = ["ZipCountyEntry", "load_zip_county_map", "lookup_zip"]
