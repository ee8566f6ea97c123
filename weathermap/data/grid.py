"""
Grid structures for interpolated weather surfaces.

This module provides the bounding box of a point set and the regular
lon/lat axes the interpolator walks over.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

import numpy as np

from weathermap.data.models import WeatherSample

logger = logging.getLogger(__name__)


@dataclass
class GridBounds:
    """
    Geographic bounding box of a point set.

    Attributes:
        lat_min: Minimum latitude (southern boundary)
        lat_max: Maximum latitude (northern boundary)
        lon_min: Minimum longitude (western boundary)
        lon_max: Maximum longitude (eastern boundary)
        name: Optional name for the region
    """
    lat_min: float
    lat_max: float
    lon_min: float
    lon_max: float
    name: Optional[str] = None

    def __post_init__(self):
        """Validate bounds."""
        values = (self.lat_min, self.lat_max, self.lon_min, self.lon_max)
        if not all(np.isfinite(values)):
            raise ValueError(f"Bounds must be finite: {values}")
        if self.lat_min > self.lat_max:
            raise ValueError("lat_min must not exceed lat_max")
        if self.lon_min > self.lon_max:
            raise ValueError("lon_min must not exceed lon_max")

    @classmethod
    def from_points(cls, points: Iterable[WeatherSample], name: Optional[str] = None) -> "GridBounds":
        """
        Bounding box of the samples' coordinates.

        Raises:
            ValueError: If there are no points
        """
        points = list(points)
        lats = np.array([p.latitude for p in points], dtype=float)
        if lats.size == 0:
            raise ValueError("Cannot compute bounds of an empty point set")
        lons = np.array([p.longitude for p in points], dtype=float)
        return cls(
            lat_min=float(lats.min()),
            lat_max=float(lats.max()),
            lon_min=float(lons.min()),
            lon_max=float(lons.max()),
            name=name,
        )

    @property
    def lat_range(self) -> float:
        """Get latitude range in degrees."""
        return self.lat_max - self.lat_min

    @property
    def lon_range(self) -> float:
        """Get longitude range in degrees."""
        return self.lon_max - self.lon_min

    @property
    def center(self) -> Tuple[float, float]:
        """Get center point (lat, lon)."""
        return (
            (self.lat_min + self.lat_max) / 2,
            (self.lon_min + self.lon_max) / 2
        )

    @property
    def is_degenerate(self) -> bool:
        """True when the box has no extent along either axis."""
        return self.lat_range <= 0 or self.lon_range <= 0

    def steps(self, resolution: int) -> Tuple[float, float]:
        """
        Get (lat_step, lon_step) for the given subdivisions per axis.

        Raises:
            ValueError: If resolution is not positive or the box is degenerate
        """
        if resolution <= 0:
            raise ValueError("Resolution must be positive")
        if self.is_degenerate:
            raise ValueError(f"Bounds have no extent: {self.to_dict()}")
        return self.lat_range / resolution, self.lon_range / resolution

    def contains(self, lat: float, lon: float) -> bool:
        """Check if a point is within bounds."""
        return (self.lat_min <= lat <= self.lat_max and
                self.lon_min <= lon <= self.lon_max)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "lat_min": self.lat_min,
            "lat_max": self.lat_max,
            "lon_min": self.lon_min,
            "lon_max": self.lon_max,
            "name": self.name,
        }


def grid_axis(start: float, stop: float, step: float) -> Iterator[float]:
    """
    Yield start, start + step, ... while the value does not exceed stop.

    Values are accumulated by repeated addition, so floating-point drift
    can drop the final value that exact arithmetic would reach.
    """
    if step <= 0:
        raise ValueError("Step must be positive")
    value = start
    while value <= stop:
        yield value
        value += step


def create_grid(bounds: GridBounds, resolution: int) -> Tuple[List[float], List[float]]:
    """
    Create the latitude and longitude axes for a bounding box.

    Args:
        bounds: Geographic bounding box
        resolution: Subdivisions per axis

    Returns:
        Tuple of (latitudes, longitudes), south to north and west to east
    """
    lat_step, lon_step = bounds.steps(resolution)
    lats = list(grid_axis(bounds.lat_min, bounds.lat_max, lat_step))
    lons = list(grid_axis(bounds.lon_min, bounds.lon_max, lon_step))
    return lats, lons


def estimate_grid_size(bounds: GridBounds, resolution: int) -> Dict[str, int]:
    """
    Estimate the number of candidate cells for given bounds and resolution.

    Returns:
        Dictionary with lat_points, lon_points, and total
    """
    lats, lons = create_grid(bounds, resolution)
    return {
        "lat_points": len(lats),
        "lon_points": len(lons),
        "total": len(lats) * len(lons),
    }
