"""
Tests for grid construction and interpolation.
"""
import math

import pytest

from conftest import make_sample
from weathermap.data.grid import GridBounds, create_grid, estimate_grid_size, grid_axis
from weathermap.data.interpolation import (
    GridInterpolator,
    bilinear_interpolation,
    cell_offsets,
    find_surrounding_points,
    generate_interpolated_points,
)
from weathermap.errors import InterpolationUndefined


@pytest.fixture
def corner_points():
    """Unit cell with pressures 10, 20, 30, 40 at its corners."""
    return [
        make_sample(0, 0, sp="10"),
        make_sample(0, 1, sp="20"),
        make_sample(1, 0, sp="30"),
        make_sample(1, 1, sp="40"),
    ]


class TestGrid:
    """Test bounds and axes."""

    def test_grid_axis(self):
        assert list(grid_axis(0.0, 1.0, 0.5)) == [0.0, 0.5, 1.0]

    def test_grid_axis_rejects_non_positive_step(self):
        with pytest.raises(ValueError):
            list(grid_axis(0.0, 1.0, 0.0))

    def test_bounds_from_points(self, corner_points):
        bounds = GridBounds.from_points(iter(corner_points))

        assert (bounds.lat_min, bounds.lat_max) == (0.0, 1.0)
        assert (bounds.lon_min, bounds.lon_max) == (0.0, 1.0)
        assert bounds.center == (0.5, 0.5)
        assert not bounds.is_degenerate

    def test_bounds_of_empty_set(self):
        with pytest.raises(ValueError):
            GridBounds.from_points([])

    def test_invalid_bounds(self):
        with pytest.raises(ValueError):
            GridBounds(lat_min=2, lat_max=1, lon_min=0, lon_max=1)
        with pytest.raises(ValueError):
            GridBounds(lat_min=0, lat_max=float("nan"), lon_min=0, lon_max=1)

    def test_steps(self):
        bounds = GridBounds(lat_min=0, lat_max=3, lon_min=10, lon_max=16)
        assert bounds.steps(3) == (1.0, 2.0)

    def test_steps_of_degenerate_box(self):
        bounds = GridBounds(lat_min=1, lat_max=1, lon_min=0, lon_max=1)
        assert bounds.is_degenerate
        with pytest.raises(ValueError):
            bounds.steps(2)

    def test_create_grid(self):
        bounds = GridBounds(lat_min=0, lat_max=2, lon_min=0, lon_max=4)
        lats, lons = create_grid(bounds, 2)

        assert lats == [0.0, 1.0, 2.0]
        assert lons == [0.0, 2.0, 4.0]

    def test_estimate_grid_size(self):
        bounds = GridBounds(lat_min=0, lat_max=1, lon_min=0, lon_max=1)
        assert estimate_grid_size(bounds, 4) == {"lat_points": 5, "lon_points": 5, "total": 25}


class TestCornerSelection:
    """Test quadrant corner lookup."""

    def test_corners_in_quadrant_order(self, corner_points):
        p00, p01, p10, p11 = find_surrounding_points(0.5, 0.5, corner_points)

        assert p00.surface_pressure == 10.0
        assert p01.surface_pressure == 20.0
        assert p10.surface_pressure == 30.0
        assert p11.surface_pressure == 40.0

    def test_first_match_in_source_order(self, corner_points):
        closer = make_sample(0.6, 0.6, sp="1000")
        corners = find_surrounding_points(0.5, 0.5, corner_points + [closer])
        assert corners[3].surface_pressure == 40.0

        corners = find_surrounding_points(0.5, 0.5, [closer] + corner_points)
        assert corners[3].surface_pressure == 1000.0

    def test_missing_quadrant(self, corner_points):
        assert find_surrounding_points(1.0, 0.5, corner_points) is None

    def test_nan_coordinates_are_never_corners(self, corner_points):
        broken = make_sample("nan", "nan", sp="999")
        p00, p01, p10, p11 = find_surrounding_points(0.5, 0.5, [broken] + corner_points)

        assert p11.surface_pressure == 40.0
        assert all(p is not broken for p in (p00, p01, p10, p11))

    def test_nan_coordinates_alone_leave_quadrant_empty(self, corner_points):
        broken = make_sample("x", "y", sp="999")
        assert find_surrounding_points(0.5, 0.5, corner_points[:3] + [broken]) is None

    def test_cell_offsets(self):
        corners = (
            make_sample(0, 0),
            make_sample(2, 1),
            make_sample(1, 4),
            make_sample(2, 4),
        )
        x, y = cell_offsets(1.0, 1.0, corners)

        assert x == pytest.approx(0.25)
        assert y == pytest.approx(0.5)

    def test_cell_offsets_coincident_corners(self, corner_points):
        corners = find_surrounding_points(0.0, 0.0, corner_points)
        x, y = cell_offsets(0.0, 0.0, corners)

        assert math.isnan(x)
        assert math.isnan(y)


class TestBilinearInterpolation:
    """Test the corner combination."""

    def test_unweighted_mean(self):
        assert bilinear_interpolation(0.1, 0.9, [10, 20, 30, 40]) == 25.0

    def test_offsets_do_not_change_result(self):
        values = [1.0, 2.0, 3.0, 6.0]
        assert bilinear_interpolation(0.0, 0.0, values) == bilinear_interpolation(
            float("nan"), 1.0, values
        )

    def test_nan_corner(self):
        with pytest.raises(InterpolationUndefined):
            bilinear_interpolation(0.5, 0.5, [1.0, float("nan"), 3.0, 4.0])

    def test_wrong_corner_count(self):
        with pytest.raises(ValueError):
            bilinear_interpolation(0.5, 0.5, [1.0, 2.0, 3.0])


class TestGridInterpolator:
    """Test grid node generation."""

    def test_unit_cell(self, corner_points):
        nodes = GridInterpolator(grid_resolution=2).interpolate(corner_points)

        assert [(n.latitude, n.longitude) for n in nodes] == [
            (0.0, 0.0), (0.0, 0.5), (0.5, 0.0), (0.5, 0.5),
        ]
        assert all(n.value == 25.0 for n in nodes)

    def test_resolution_argument(self, corner_points):
        nodes = GridInterpolator(grid_resolution=2).interpolate(corner_points, grid_resolution=4)

        assert len(nodes) == 16
        assert all(n.value == 25.0 for n in nodes)

    def test_nodes_stay_inside_bounds(self, corner_points):
        nodes = GridInterpolator(grid_resolution=7).interpolate(corner_points)
        bounds = GridBounds.from_points(corner_points)

        assert nodes
        assert all(bounds.contains(n.latitude, n.longitude) for n in nodes)

    def test_other_field(self, corner_points):
        nodes = GridInterpolator(grid_resolution=2, field="temperature").interpolate(corner_points)
        assert all(n.value == pytest.approx(290.0) for n in nodes)

    def test_deterministic(self, corner_points):
        interpolator = GridInterpolator(grid_resolution=5)
        assert interpolator.interpolate(corner_points) == interpolator.interpolate(corner_points)

    def test_threaded_matches_serial(self, corner_points):
        points = corner_points + [make_sample(0.3, 0.7, sp="500"), make_sample(0.8, 0.2, sp="7")]
        serial = GridInterpolator(grid_resolution=9).interpolate(points)
        threaded = GridInterpolator(grid_resolution=9, max_workers=4).interpolate(points)

        assert serial == threaded

    def test_nan_corner_keeps_node(self, corner_points):
        corner_points[3] = make_sample(1, 1, sp="")
        nodes = GridInterpolator(grid_resolution=2).interpolate(corner_points)

        assert len(nodes) == 4
        assert all(math.isnan(n.value) for n in nodes)
        assert not any(n.is_valid for n in nodes)

    def test_nan_corner_dropped(self, corner_points):
        corner_points[3] = make_sample(1, 1, sp="")
        nodes = GridInterpolator(grid_resolution=2, keep_invalid=False).interpolate(corner_points)
        assert nodes == []

    def test_invalid_coordinates_are_skipped(self, corner_points):
        points = [make_sample("nan", 0.5, sp="999")] + corner_points + [make_sample(0.5, "east")]
        nodes = GridInterpolator(grid_resolution=2).interpolate(points)

        assert len(nodes) == 4
        assert all(n.value == 25.0 for n in nodes)

    def test_invalid_coordinates_do_not_count_towards_minimum(self, corner_points):
        points = corner_points[:3] + [make_sample("nan", "nan")]
        assert GridInterpolator().interpolate(points) == []

    def test_too_few_points(self, corner_points):
        assert GridInterpolator().interpolate(corner_points[:3]) == []
        assert GridInterpolator().interpolate([]) == []

    def test_collinear_points(self):
        points = [make_sample(1, lon) for lon in range(5)]
        assert GridInterpolator().interpolate(points) == []

    @pytest.mark.parametrize("resolution", [0, -3, 1.5, True])
    def test_invalid_resolution(self, corner_points, resolution):
        with pytest.raises(ValueError):
            GridInterpolator().interpolate(corner_points, grid_resolution=resolution)

    def test_unknown_field(self):
        with pytest.raises(ValueError):
            GridInterpolator(field="humidity")


def test_generate_interpolated_points(corner_points):
    nodes = generate_interpolated_points(corner_points, grid_resolution=2)
    assert len(nodes) == 4
