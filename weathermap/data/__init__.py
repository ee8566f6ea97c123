"""
Data module for weather samples, region polygons, filtering and grid interpolation.
"""

from weathermap.data.models import (
    WeatherSample,
    RegionPolygon,
    FilteredPointSet,
    FilterReport,
    GridNode,
    QueryRequest,
    QueryResponse,
)
from weathermap.data.grid import (
    GridBounds,
    create_grid,
    estimate_grid_size,
    grid_axis,
)
from weathermap.data.region import RegionResolver, resolve_region
from weathermap.data.filters import (
    TemporalFilter,
    SpatialFilter,
    filter_region_samples,
    normalize_target_datetime,
)
from weathermap.data.interpolation import (
    GridInterpolator,
    bilinear_interpolation,
    find_surrounding_points,
    generate_interpolated_points,
)
from weathermap.data.processor import (
    samples_to_dataframe,
    nodes_to_dataframe,
    convert_temperature,
)

__all__ = [
    # Models
    "WeatherSample",
    "RegionPolygon",
    "FilteredPointSet",
    "FilterReport",
    "GridNode",
    "QueryRequest",
    "QueryResponse",
    # Grid structures
    "GridBounds",
    "create_grid",
    "estimate_grid_size",
    "grid_axis",
    # Region resolution
    "RegionResolver",
    "resolve_region",
    # Filtering
    "TemporalFilter",
    "SpatialFilter",
    "filter_region_samples",
    "normalize_target_datetime",
    # Interpolation
    "GridInterpolator",
    "bilinear_interpolation",
    "find_surrounding_points",
    "generate_interpolated_points",
    # Processing
    "samples_to_dataframe",
    "nodes_to_dataframe",
    "convert_temperature",
]
