"""
Exceptions raised by the region weather pipeline.

Dataset-level errors abort a query; record-level and cell-level errors are
absorbed by the filters and the interpolator.
"""

from typing import Optional


class WeatherMapError(Exception):
    """Base exception for region weather errors."""
    pass


class RegionNotFound(WeatherMapError):
    """Raised when no region row contains the requested name."""

    def __init__(self, region_name: str):
        self.region_name = region_name
        super().__init__(f"Region not found: {region_name}")


class RegionGeometryError(WeatherMapError):
    """Raised when a region row carries no usable polygon geometry."""
    pass


class UpstreamRetrievalError(WeatherMapError):
    """Raised when reading the weather or region dataset fails."""

    def __init__(self, message: str, uri: Optional[str] = None):
        self.message = message
        self.uri = uri
        super().__init__(message)


class CoordinateParseError(WeatherMapError, ValueError):
    """Raised when a record's longitude or latitude is not a finite number."""
    pass


class InterpolationUndefined(WeatherMapError, ArithmeticError):
    """Raised when a grid cell value cannot be computed from its corners."""
    pass
