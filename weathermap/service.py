"""
Region weather query service.

Runs the full preparation pipeline for one request: load the weather
samples, resolve the region polygon, filter by time and region and, when a
surface is requested, interpolate the grid.

handle_query() is the transport-facing entry point: it takes query
parameters and returns an HTTP-style (status, body) pair, turning every
failure into {"error": "..."}.

Usage:
    from weathermap.service import handle_query

    status, body = handle_query({"regionName": "Bavaria", "selectedDateTime": "2023-06-01T12:00"})
"""

import logging
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

from pydantic import ValidationError

from config.settings import Settings, get_settings
from weathermap.api.sources import RegionRecordSource, WeatherRecordSource
from weathermap.data.filters import filter_region_samples
from weathermap.data.interpolation import GridInterpolator
from weathermap.data.models import (
    FilteredPointSet,
    QueryRequest,
    QueryResponse,
    RegionPolygon,
    WeatherSample,
    resolve_column,
)
from weathermap.data.region import RegionResolver
from weathermap.errors import RegionNotFound, WeatherMapError

logger = logging.getLogger(__name__)


class RegionWeatherService:
    """
    Prepares filtered points and interpolated grids for region queries.

    Attributes:
        settings: Application settings
        weather_source: Source of weather samples
        region_source: Source of region reference rows
    """

    def __init__(
        self,
        weather_source: Optional[WeatherRecordSource] = None,
        region_source: Optional[RegionRecordSource] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.weather_source = weather_source or WeatherRecordSource(settings=self.settings)
        self.region_source = region_source or RegionRecordSource(settings=self.settings)

    def resolve_region(self, region_name: str) -> RegionPolygon:
        """Resolve the region polygon from the region dataset."""
        resolver = RegionResolver(
            self.region_source.iter_rows(),
            geometry_column=self.settings.region_geometry_column,
        )
        return resolver.resolve(region_name)

    def get_data_within_region(
        self,
        samples: Iterable[WeatherSample],
        polygon: RegionPolygon,
        selected_datetime: str,
    ) -> FilteredPointSet:
        """Filter samples to the selected instant and the region."""
        return filter_region_samples(samples, polygon, selected_datetime)

    def build_interpolator(self, request: QueryRequest) -> GridInterpolator:
        """Create the interpolator for a request, falling back to settings."""
        return GridInterpolator(
            grid_resolution=request.grid_resolution or self.settings.grid_resolution,
            field=request.scalar_field or self.settings.scalar_field,
            keep_invalid=self.settings.keep_invalid_nodes,
            max_workers=self.settings.interpolation_workers,
        )

    def query(self, request: QueryRequest) -> QueryResponse:
        """
        Run one region/time query.

        Raises:
            RegionNotFound: If the region is not in the region dataset
            RegionGeometryError: If the region row has no usable polygon
            UpstreamRetrievalError: If a dataset cannot be read
            ValueError: If the requested scalar field is unknown
        """
        logger.info(f"Fetching weather for region: {request.region_name}")

        field = resolve_column(request.scalar_field or self.settings.scalar_field)
        interpolator = self.build_interpolator(request) if request.include_surface else None

        samples = self.weather_source.fetch_samples()
        polygon = self.resolve_region(request.region_name)
        points = self.get_data_within_region(samples, polygon, request.selected_datetime)

        response = QueryResponse(
            points=points.samples,
            report=points.report,
            scalar_field=field,
        )
        if interpolator is not None:
            response.nodes = interpolator.interpolate(points.samples)
            response.region = polygon.to_geojson()

        logger.info(
            f"Query complete: {len(response.points)} points"
            + (f", {len(response.nodes)} grid nodes" if response.nodes is not None else "")
        )
        return response


def handle_query(
    params: Mapping[str, Any],
    service: Optional[RegionWeatherService] = None,
) -> Tuple[int, Dict[str, Any]]:
    """
    Answer a query given its request parameters.

    Args:
        params: Query parameters (regionName, selectedDateTime and the
            optional includeSurface, gridResolution, field)
        service: Service to run the query with (default service if None)

    Returns:
        (status, body): 200 with {"points": [...]} on success, otherwise
        400 (invalid request), 404 (unknown region) or 500 with {"error": ...}
    """
    try:
        request = QueryRequest.model_validate(dict(params))
    except ValidationError as e:
        logger.error(f"Invalid query {dict(params)}: {e}")
        return 400, {"error": str(e)}

    service = service or RegionWeatherService()

    try:
        response = service.query(request)
    except RegionNotFound as e:
        logger.error(f"Error: {e}")
        return 404, {"error": str(e)}
    except (WeatherMapError, ValueError) as e:
        logger.error(f"Error: {e}")
        return 500, {"error": str(e)}
    except Exception as e:
        logger.exception(f"Unexpected error answering query: {e}")
        return 500, {"error": f"{type(e).__name__}: {e}"}

    return 200, response.to_dict()
