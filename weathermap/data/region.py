"""
Region boundary resolution.

Finds the reference row describing a region and decodes its WKT geometry
into a RegionPolygon.

Matching is a linear, case-sensitive substring scan over the raw rows: the
first row whose text contains the region name wins, header included.

Usage:
    from weathermap.data.region import RegionResolver

    resolver = RegionResolver(open("regions.csv"))
    polygon = resolver.resolve("Bavaria")
"""

import csv
import logging
from typing import Iterable, List, Optional

from shapely import wkt
from shapely.errors import ShapelyError

from weathermap.data.models import RegionPolygon
from weathermap.errors import RegionGeometryError, RegionNotFound

logger = logging.getLogger(__name__)

# Column of the region row holding the WKT geometry
DEFAULT_GEOMETRY_COLUMN = 5


def parse_region_row(row: str) -> List[str]:
    """Split one raw CSV line into its fields."""
    return next(csv.reader([row]), [])


def parse_wkt_polygon(region_name: str, wkt_text: str) -> RegionPolygon:
    """
    Decode a WKT POLYGON or MULTIPOLYGON.

    Raises:
        RegionGeometryError: If the text is not a usable polygon
    """
    try:
        geometry = wkt.loads(wkt_text)
    except ShapelyError as e:
        raise RegionGeometryError(f"Invalid geometry for region '{region_name}': {e}") from e

    try:
        return RegionPolygon.from_geometry(region_name, geometry)
    except ValueError as e:
        raise RegionGeometryError(f"Unusable geometry for region '{region_name}': {e}") from e


class RegionResolver:
    """
    Resolves region names to boundary polygons.

    Attributes:
        rows: Raw text rows of the region dataset (consumed by one scan
            when given an iterator or stream)
        geometry_column: Zero-based index of the WKT column
    """

    def __init__(self, rows: Iterable[str], geometry_column: int = DEFAULT_GEOMETRY_COLUMN):
        self.rows = rows
        self.geometry_column = geometry_column

    def find_row(self, region_name: str) -> str:
        """
        Get the first row containing region_name.

        Raises:
            RegionNotFound: If no row contains the name
        """
        for line_number, row in enumerate(self.rows, start=1):
            if region_name in row:
                logger.debug(f"Region '{region_name}' matched row {line_number}")
                return row
        raise RegionNotFound(region_name)

    def resolve(self, region_name: str) -> RegionPolygon:
        """
        Resolve a region name to its boundary polygon.

        Raises:
            RegionNotFound: If no row contains the name
            RegionGeometryError: If the matched row has no usable polygon
        """
        row = self.find_row(region_name)
        fields = parse_region_row(row)

        if len(fields) <= self.geometry_column:
            raise RegionGeometryError(
                f"Region row for '{region_name}' has {len(fields)} columns, "
                f"geometry expected in column {self.geometry_column}"
            )

        polygon = parse_wkt_polygon(region_name, fields[self.geometry_column])
        logger.info(
            f"Resolved region '{region_name}': {len(polygon.parts)} part(s), "
            f"{sum(len(r) for r in polygon.rings)} vertices"
        )
        return polygon


def resolve_region(
    rows: Iterable[str],
    region_name: str,
    geometry_column: Optional[int] = None,
) -> RegionPolygon:
    """Convenience wrapper around RegionResolver.resolve."""
    if geometry_column is None:
        geometry_column = DEFAULT_GEOMETRY_COLUMN
    return RegionResolver(rows, geometry_column).resolve(region_name)
