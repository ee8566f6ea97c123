"""
Data models for region weather preparation.

This module defines the weather sample parsed from a flat dataset record,
the region polygon used for containment tests, the filtered point set,
interpolated grid nodes, and the query request/response pair.

Samples, polygons and nodes are immutable once built.
"""

import math
import re
from dataclasses import dataclass, field
from functools import cached_property
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator
from shapely.geometry import MultiPolygon, Point, Polygon, mapping
from shapely.prepared import prep

from weathermap.errors import CoordinateParseError


# Sample attribute -> source CSV column
FIELD_COLUMNS: Dict[str, str] = {
    "temperature": "t2m",       # 2 m temperature (K)
    "dew_point": "d2m",         # 2 m dew point (K)
    "surface_pressure": "sp",   # surface pressure (Pa)
    "cloud_cover": "tcc",       # total cloud cover (0-1)
    "wind_u": "u10",            # 10 m eastward wind (m/s)
    "wind_v": "v10",            # 10 m northward wind (m/s)
}

COLUMN_FIELDS: Dict[str, str] = {column: name for name, column in FIELD_COLUMNS.items()}

Vertex = Tuple[float, float]
Ring = Tuple[Vertex, ...]


# Optional sign, then Infinity or a decimal with optional exponent
_LEADING_FLOAT = re.compile(r"\s*([+-]?(?:Infinity|(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?))")


def parse_float(value: Any) -> float:
    """
    Parse a dataset value to float.

    Like the lenient parsers used for browser datasets, the longest leading
    number is taken ("0.5abc" -> 0.5). Returns NaN for missing or
    non-numeric values instead of raising.
    """
    if value is None:
        return float("nan")
    if isinstance(value, (int, float)):
        return float(value)
    match = _LEADING_FLOAT.match(str(value))
    if match is None:
        return float("nan")
    return float(match.group(1))


def coordinate_key(longitude: float, latitude: float) -> str:
    """Deduplication identity of a point (-0.0 and 0.0 share a key)."""
    return f"{longitude + 0.0},{latitude + 0.0}"


def resolve_column(name: str) -> str:
    """Map a sample attribute name or source column to the source column."""
    if name in COLUMN_FIELDS:
        return name
    if name in FIELD_COLUMNS:
        return FIELD_COLUMNS[name]
    raise ValueError(
        f"Unknown scalar field: {name}. "
        f"Supported: {sorted(FIELD_COLUMNS) + sorted(COLUMN_FIELDS)}"
    )


class WeatherSample(BaseModel):
    """
    Single weather sample at a point and instant.

    Numeric fields are NaN when the source value did not parse.

    Attributes:
        latitude: Latitude in decimal degrees
        longitude: Longitude in decimal degrees
        timestamp: Sample time as "YYYY-MM-DD HH:MM:SS"
        temperature: 2 m temperature (K)
        dew_point: 2 m dew point (K)
        surface_pressure: Surface pressure (Pa)
        cloud_cover: Total cloud cover fraction
        wind_u: Eastward 10 m wind component (m/s)
        wind_v: Northward 10 m wind component (m/s)
    """

    model_config = ConfigDict(frozen=True)

    latitude: float = Field(..., description="Latitude in decimal degrees")
    longitude: float = Field(..., description="Longitude in decimal degrees")
    timestamp: str = Field(default="", description="Normalized sample time")
    temperature: float = Field(default=float("nan"), description="2 m temperature (K)")
    dew_point: float = Field(default=float("nan"), description="2 m dew point (K)")
    surface_pressure: float = Field(default=float("nan"), description="Surface pressure (Pa)")
    cloud_cover: float = Field(default=float("nan"), description="Total cloud cover")
    wind_u: float = Field(default=float("nan"), description="10 m u wind (m/s)")
    wind_v: float = Field(default=float("nan"), description="10 m v wind (m/s)")

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "WeatherSample":
        """Create from a flat dataset record with string values."""
        values = {name: parse_float(record.get(column)) for name, column in FIELD_COLUMNS.items()}
        return cls(
            latitude=parse_float(record.get("latitude")),
            longitude=parse_float(record.get("longitude")),
            timestamp=record.get("time") or "",
            **values,
        )

    @property
    def has_valid_coordinates(self) -> bool:
        """Check if both coordinates are finite numbers."""
        return math.isfinite(self.latitude) and math.isfinite(self.longitude)

    @property
    def coordinate_key(self) -> str:
        """Deduplication key built from longitude and latitude."""
        return coordinate_key(self.longitude, self.latitude)

    def coordinates(self) -> Vertex:
        """
        Get (longitude, latitude).

        Raises:
            CoordinateParseError: If either coordinate is not finite
        """
        if not self.has_valid_coordinates:
            raise CoordinateParseError(
                f"Invalid coordinates: longitude={self.longitude}, latitude={self.latitude}"
            )
        return (self.longitude, self.latitude)

    def value(self, name: str) -> float:
        """Get a scalar field by attribute name or source column (e.g. 'sp')."""
        return getattr(self, COLUMN_FIELDS[resolve_column(name)])

    def to_record(self) -> Dict[str, Any]:
        """Convert to a flat record keyed by source column names (NaN -> None)."""
        record: Dict[str, Any] = {
            "latitude": _json_float(self.latitude),
            "longitude": _json_float(self.longitude),
            "time": self.timestamp,
        }
        for name, column in FIELD_COLUMNS.items():
            record[column] = _json_float(getattr(self, name))
        return record


def _json_float(value: float) -> Optional[float]:
    return value if math.isfinite(value) else None


@dataclass(frozen=True)
class RegionPolygon:
    """
    Boundary of a named region as closed (longitude, latitude) rings.

    Each part is an exterior ring followed by its holes. Regions with
    islands have several parts.

    Attributes:
        name: Region name the polygon was resolved for
        parts: Tuple of parts, each a tuple of closed rings
    """
    name: str
    parts: Tuple[Tuple[Ring, ...], ...]

    def __post_init__(self):
        """Validate rings."""
        if not self.parts:
            raise ValueError("Region polygon needs at least one part")
        for part in self.parts:
            if not part:
                raise ValueError("Polygon part has no exterior ring")
            for ring in part:
                if len(ring) < 4 or ring[0] != ring[-1]:
                    raise ValueError("Ring must be closed (first vertex == last vertex)")
                if len(set(ring)) < 3:
                    raise ValueError("Ring must have at least 3 distinct vertices")

    @classmethod
    def from_coordinates(
        cls,
        name: str,
        exterior: Sequence[Sequence[float]],
        holes: Iterable[Sequence[Sequence[float]]] = (),
    ) -> "RegionPolygon":
        """Create a single-part polygon, closing open rings."""
        rings = [_close_ring(exterior)] + [_close_ring(hole) for hole in holes]
        return cls(name=name, parts=(tuple(rings),))

    @classmethod
    def from_geometry(cls, name: str, geometry) -> "RegionPolygon":
        """
        Create from a shapely Polygon or MultiPolygon.

        Raises:
            ValueError: For other geometry types or empty geometries
        """
        if geometry.is_empty:
            raise ValueError("Geometry is empty")
        if isinstance(geometry, Polygon):
            polygons = [geometry]
        elif isinstance(geometry, MultiPolygon):
            polygons = list(geometry.geoms)
        else:
            raise ValueError(f"Unexpected geometry type: {geometry.geom_type}")

        parts = []
        for polygon in polygons:
            rings = [_close_ring(polygon.exterior.coords)]
            rings.extend(_close_ring(interior.coords) for interior in polygon.interiors)
            parts.append(tuple(rings))
        return cls(name=name, parts=tuple(parts))

    @property
    def exterior(self) -> Ring:
        """Exterior ring of the first part."""
        return self.parts[0][0]

    @property
    def holes(self) -> List[Ring]:
        """All hole rings across parts."""
        return [ring for part in self.parts for ring in part[1:]]

    @property
    def rings(self) -> List[Ring]:
        """All rings across parts."""
        return [ring for part in self.parts for ring in part]

    @cached_property
    def geometry(self):
        """Shapely geometry for the region."""
        polygons = [Polygon(part[0], holes=list(part[1:])) for part in self.parts]
        if len(polygons) == 1:
            return polygons[0]
        return MultiPolygon(polygons)

    @cached_property
    def _prepared(self):
        return prep(self.geometry)

    @property
    def bounds(self) -> Tuple[float, float, float, float]:
        """(lon_min, lat_min, lon_max, lat_max)."""
        return self.geometry.bounds

    @property
    def centroid(self) -> Vertex:
        """Centroid as (longitude, latitude)."""
        point = self.geometry.centroid
        return (point.x, point.y)

    def contains(self, longitude: float, latitude: float) -> bool:
        """
        Check if a point lies in the region.

        Points on an edge or vertex count as inside; points in a hole
        (not on its edge) are outside.
        """
        return self._prepared.covers(Point(longitude, latitude))

    def to_geojson(self) -> Dict[str, Any]:
        """Convert to a GeoJSON geometry dictionary."""
        return mapping(self.geometry)


def _close_ring(coords: Iterable[Sequence[float]]) -> Ring:
    ring = [(float(c[0]), float(c[1])) for c in coords]
    if ring and ring[0] != ring[-1]:
        ring.append(ring[0])
    return tuple(ring)


@dataclass
class FilteredPointSet:
    """
    Deduplicated samples in scan order.

    No two samples share a coordinate key.
    """
    samples: List[WeatherSample] = field(default_factory=list)
    report: Optional["FilterReport"] = None
    _keys: set = field(default_factory=set, init=False, repr=False)

    def __post_init__(self):
        samples, self.samples = self.samples, []
        for sample in samples:
            self.append(sample)

    def append(self, sample: WeatherSample) -> None:
        """Add a sample; duplicate coordinate keys are rejected."""
        key = sample.coordinate_key
        if key in self._keys:
            raise ValueError(f"Duplicate coordinate key: {key}")
        self._keys.add(key)
        self.samples.append(sample)

    @property
    def keys(self) -> List[str]:
        """Coordinate keys in scan order."""
        return [s.coordinate_key for s in self.samples]

    def __contains__(self, key: str) -> bool:
        return key in self._keys

    def __iter__(self) -> Iterator[WeatherSample]:
        return iter(self.samples)

    def __len__(self) -> int:
        return len(self.samples)

    def __getitem__(self, index: int) -> WeatherSample:
        return self.samples[index]


class FilterReport(BaseModel):
    """
    Counts of records excluded by the temporal and spatial filters.

    Attributes:
        target_datetime: Normalized target timestamp (None if unparseable)
        total_records: Records entering the temporal filter
        datetime_mismatches: Records with a different timestamp
        invalid_coordinates: Records with non-numeric coordinates
        duplicates: Records repeating an earlier coordinate
        outside_region: Records outside the region polygon
        retained: Records in the final point set
    """

    target_datetime: Optional[str] = None
    total_records: int = 0
    datetime_mismatches: int = 0
    invalid_coordinates: int = 0
    duplicates: int = 0
    outside_region: int = 0
    retained: int = 0

    @property
    def excluded(self) -> int:
        """Total records excluded by either filter."""
        return (
            self.datetime_mismatches
            + self.invalid_coordinates
            + self.duplicates
            + self.outside_region
        )


class GridNode(BaseModel):
    """
    Interpolated value at a grid position.

    Attributes:
        latitude: Node latitude
        longitude: Node longitude
        value: Interpolated scalar, NaN when undefined
    """

    model_config = ConfigDict(frozen=True)

    latitude: float
    longitude: float
    value: float

    @property
    def is_valid(self) -> bool:
        """Check if the node carries a usable value."""
        return math.isfinite(self.value)

    def to_record(self, column: str = "sp") -> Dict[str, Any]:
        """Convert to a flat record with the value under the source column name."""
        return {
            "latitude": self.latitude,
            "longitude": self.longitude,
            column: _json_float(self.value),
        }


class QueryRequest(BaseModel):
    """
    One region/time query together with its visualization toggles.

    Accepts the query-string names (regionName, selectedDateTime, ...)
    as well as the attribute names.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    region_name: str = Field(..., alias="regionName", min_length=1)
    selected_datetime: str = Field(..., alias="selectedDateTime", min_length=1)
    include_surface: bool = Field(default=False, alias="includeSurface")
    grid_resolution: Optional[int] = Field(default=None, alias="gridResolution", ge=1, le=1000)
    scalar_field: Optional[str] = Field(default=None, alias="field")

    @field_validator("scalar_field")
    @classmethod
    def validate_scalar_field(cls, v: Optional[str]) -> Optional[str]:
        """Accept a source column or sample attribute name."""
        if v is None:
            return v
        return resolve_column(v)


class QueryResponse(BaseModel):
    """
    Result of a region/time query.

    Attributes:
        points: Filtered samples in scan order
        nodes: Interpolated grid nodes (only when a surface was requested)
        region: Region boundary as GeoJSON (only when a surface was requested)
        report: Filter exclusion counts
        scalar_field: Source column the nodes were interpolated from
    """

    points: List[WeatherSample] = Field(default_factory=list)
    nodes: Optional[List[GridNode]] = None
    region: Optional[Dict[str, Any]] = None
    report: Optional[FilterReport] = None
    scalar_field: str = "sp"

    @property
    def valid_nodes(self) -> List[GridNode]:
        """Grid nodes with a finite value."""
        return [n for n in (self.nodes or []) if n.is_valid]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the JSON response body."""
        body: Dict[str, Any] = {"points": [p.to_record() for p in self.points]}
        if self.nodes is not None:
            body["nodes"] = [n.to_record(self.scalar_field) for n in self.nodes]
        if self.region is not None:
            body["region"] = self.region
        return body
