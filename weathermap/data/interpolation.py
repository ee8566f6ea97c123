"""
Grid interpolation of filtered weather samples.

Builds a regular lon/lat grid over the bounding box of the samples and
assigns each grid node a value computed from four bracketing samples.

Corner selection takes, for each quadrant around the node, the first sample
in source order that falls in it; it is not a nearest-neighbour search. The
node value is the plain mean of the four corner values. The cell offsets
are computed for a weighted blend but are not applied.

Usage:
    from weathermap.data.interpolation import GridInterpolator

    interpolator = GridInterpolator(field="sp")
    nodes = interpolator.interpolate(points, grid_resolution=30)
"""

import logging
import math
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Sequence, Tuple

import numpy as np

from weathermap.data.grid import GridBounds, create_grid
from weathermap.data.models import GridNode, WeatherSample, resolve_column
from weathermap.errors import InterpolationUndefined

logger = logging.getLogger(__name__)

DEFAULT_GRID_RESOLUTION = 30

# Corner order: (lat <= L, lon <= N), (lat <= L, lon > N), (lat > L, lon <= N), (lat > L, lon > N)
Corners = Tuple[WeatherSample, WeatherSample, WeatherSample, WeatherSample]


def _quadrant_indices(
    lat: float,
    lon: float,
    lats: np.ndarray,
    lons: np.ndarray,
) -> Optional[Tuple[int, int, int, int]]:
    """
    Index of the first sample in each quadrant, or None if any is empty.

    Samples with a NaN coordinate fall in no quadrant.
    """
    lower = lats <= lat
    upper = lats > lat
    left = lons <= lon
    right = lons > lon
    masks = (lower & left, lower & right, upper & left, upper & right)

    indices = []
    for mask in masks:
        if not mask.any():
            return None
        indices.append(int(np.argmax(mask)))
    return tuple(indices)


def find_surrounding_points(
    lat: float,
    lon: float,
    points: Sequence[WeatherSample],
) -> Optional[Corners]:
    """
    Get the four quadrant corners of (lat, lon).

    Args:
        lat: Target latitude
        lon: Target longitude
        points: Samples in source order

    Returns:
        (p00, p01, p10, p11) or None if a quadrant has no sample
    """
    lats = np.array([p.latitude for p in points], dtype=float)
    lons = np.array([p.longitude for p in points], dtype=float)
    indices = _quadrant_indices(lat, lon, lats, lons)
    if indices is None:
        return None
    return tuple(points[i] for i in indices)


def cell_offsets(lat: float, lon: float, corners: Corners) -> Tuple[float, float]:
    """
    Normalized (x, y) position of (lat, lon) relative to its corners.

    An axis whose corners coincide yields NaN.
    """
    p00, p01, p10, _ = corners
    dx = p10.longitude - p00.longitude
    dy = p01.latitude - p00.latitude
    x = (lon - p00.longitude) / dx if dx else float("nan")
    y = (lat - p00.latitude) / dy if dy else float("nan")
    return x, y


def bilinear_interpolation(x: float, y: float, values: Sequence[float]) -> float:
    """
    Combine the four corner values of a cell.

    x and y are the cell offsets; the corners are averaged without weights.

    Raises:
        InterpolationUndefined: If any corner value is not finite
    """
    if len(values) != 4:
        raise ValueError(f"Expected 4 corner values, got {len(values)}")
    if not all(math.isfinite(v) for v in values):
        raise InterpolationUndefined(f"Non-numeric corner value in {list(values)}")
    return sum(values) / 4


class GridInterpolator:
    """
    Interpolates a scalar field of a point set onto a regular grid.

    Attributes:
        grid_resolution: Default subdivisions per axis
        field: Source column (or sample attribute) to interpolate
        keep_invalid: Keep nodes whose value is undefined (value NaN)
        max_workers: Threads used to compute grid rows
    """

    def __init__(
        self,
        grid_resolution: int = DEFAULT_GRID_RESOLUTION,
        field: str = "sp",
        keep_invalid: bool = True,
        max_workers: int = 1,
    ):
        self.grid_resolution = grid_resolution
        self.field = resolve_column(field)
        self.keep_invalid = keep_invalid
        self.max_workers = max_workers

    def interpolate(
        self,
        points: Sequence[WeatherSample],
        grid_resolution: Optional[int] = None,
    ) -> List[GridNode]:
        """
        Compute grid nodes for the point set.

        Args:
            points: Filtered samples in source order
            grid_resolution: Subdivisions per axis (defaults to the instance value)

        Returns:
            Grid nodes, south to north then west to east

        Raises:
            ValueError: If grid_resolution is not a positive integer
        """
        resolution = self.grid_resolution if grid_resolution is None else grid_resolution
        if isinstance(resolution, bool) or not isinstance(resolution, int) or resolution <= 0:
            raise ValueError(f"Grid resolution must be a positive integer: {resolution!r}")

        points = list(points)
        valid = [p for p in points if p.has_valid_coordinates]
        if len(valid) < len(points):
            logger.warning(f"Ignoring {len(points) - len(valid)} points with invalid coordinates")
        points = valid

        if len(points) < 4:
            logger.warning(f"Need at least 4 points to interpolate, got {len(points)}")
            return []

        bounds = GridBounds.from_points(points)
        if bounds.is_degenerate:
            logger.warning(f"Points span no area, skipping interpolation: {bounds.to_dict()}")
            return []

        lat_axis, lon_axis = create_grid(bounds, resolution)
        logger.info(
            f"Interpolating '{self.field}' on {len(lat_axis)} x {len(lon_axis)} grid "
            f"from {len(points)} points"
        )

        lats = np.array([p.latitude for p in points], dtype=float)
        lons = np.array([p.longitude for p in points], dtype=float)
        values = np.array([p.value(self.field) for p in points], dtype=float)

        def compute_row(lat: float) -> List[GridNode]:
            return self._interpolate_row(lat, lon_axis, points, lats, lons, values)

        if self.max_workers > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                rows = list(executor.map(compute_row, lat_axis))
        else:
            rows = [compute_row(lat) for lat in lat_axis]

        nodes = [node for row in rows for node in row]
        invalid = sum(1 for n in nodes if not n.is_valid)
        logger.info(f"Interpolated {len(nodes)} grid nodes ({invalid} invalid)")
        return nodes

    def _interpolate_row(
        self,
        lat: float,
        lon_axis: Sequence[float],
        points: Sequence[WeatherSample],
        lats: np.ndarray,
        lons: np.ndarray,
        values: np.ndarray,
    ) -> List[GridNode]:
        """Compute the nodes of one grid row."""
        nodes = []
        for lon in lon_axis:
            indices = _quadrant_indices(lat, lon, lats, lons)
            if indices is None:
                logger.debug(f"Missing surrounding points for ({lat}, {lon})")
                continue

            corners = tuple(points[i] for i in indices)
            x, y = cell_offsets(lat, lon, corners)
            try:
                value = bilinear_interpolation(x, y, [float(values[i]) for i in indices])
            except InterpolationUndefined as e:
                logger.warning(f"Interpolation produced NaN for ({lat}, {lon}): {e}")
                if not self.keep_invalid:
                    continue
                value = float("nan")

            nodes.append(GridNode(latitude=lat, longitude=lon, value=value))
        return nodes


def generate_interpolated_points(
    points: Sequence[WeatherSample],
    grid_resolution: int = DEFAULT_GRID_RESOLUTION,
    field: str = "sp",
) -> List[GridNode]:
    """Convenience wrapper around GridInterpolator.interpolate."""
    return GridInterpolator(grid_resolution=grid_resolution, field=field).interpolate(points)
