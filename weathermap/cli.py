#!/usr/bin/env python
"""
Command-line interface for Region Weather Map.

This module provides a CLI that runs a region/time query against the
configured datasets and prints the JSON response or exports CSV files.

Usage:
    weathermap --region Bavaria --datetime 2023-06-01T12:00
    weathermap --region Bavaria --datetime 2023-06-01T12:00 --surface --resolution 40
    weathermap --region Bavaria --datetime 2023-06-01T12:00 --surface --format csv --output-dir out
"""

import argparse
import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional

from dotenv import load_dotenv
from pydantic import ValidationError

from config.settings import Settings, get_settings
from weathermap.data.models import QueryRequest, QueryResponse
from weathermap.data.processor import nodes_to_dataframe, samples_to_dataframe
from weathermap.errors import WeatherMapError
from weathermap.service import RegionWeatherService
from weathermap.visualization.bands import partition_by_band


logger = logging.getLogger(__name__)


def parse_selected_datetime(value: str) -> str:
    """Check a date-time in YYYY-MM-DDTHH:MM format."""
    try:
        datetime.strptime(value, "%Y-%m-%dT%H:%M")
    except ValueError:
        raise argparse.ArgumentTypeError(
            f"Invalid date-time: '{value}'. Use YYYY-MM-DDTHH:MM format."
        )
    return value


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        description="Filter regional weather samples and interpolate pressure surfaces.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Points for a region at one instant
  weathermap --region Bavaria --datetime 2023-06-01T12:00

  # Include the interpolated surface pressure grid
  weathermap --region Bavaria --datetime 2023-06-01T12:00 --surface

  # Export points and grid to CSV
  weathermap --region Bavaria --datetime 2023-06-01T12:00 --surface --format csv
        """
    )

    query_group = parser.add_argument_group('Query')
    query_group.add_argument(
        '--region',
        type=str,
        required=True,
        help='Region name (matched as a substring of the region dataset rows)'
    )
    query_group.add_argument(
        '--datetime',
        type=parse_selected_datetime,
        required=True,
        dest='selected_datetime',
        help='Instant to select (YYYY-MM-DDTHH:MM)'
    )

    grid_group = parser.add_argument_group('Surface Grid')
    grid_group.add_argument(
        '--surface',
        action='store_true',
        help='Interpolate the scalar field onto a regular grid'
    )
    grid_group.add_argument(
        '--resolution',
        type=int,
        default=None,
        help='Grid subdivisions per axis. Default: from settings (30)'
    )
    grid_group.add_argument(
        '--field',
        type=str,
        default=None,
        help='Column to interpolate (t2m, d2m, sp, tcc, u10, v10). Default: sp'
    )
    grid_group.add_argument(
        '--workers',
        type=int,
        default=None,
        help='Threads used to compute grid rows'
    )
    grid_group.add_argument(
        '--drop-invalid',
        action='store_true',
        help='Drop grid nodes whose value could not be computed'
    )

    data_group = parser.add_argument_group('Datasets')
    data_group.add_argument(
        '--weather-uri',
        type=str,
        default=None,
        help='Path or URL of the weather CSV (overrides WEATHER_DATASET_URI)'
    )
    data_group.add_argument(
        '--region-uri',
        type=str,
        default=None,
        help='Path or URL of the region CSV (overrides REGION_DATASET_URI)'
    )
    data_group.add_argument(
        '--no-cache',
        action='store_true',
        help='Do not use cached dataset downloads'
    )

    output_group = parser.add_argument_group('Output')
    output_group.add_argument(
        '--format',
        choices=['json', 'csv'],
        default='json',
        help='Output format. Default: json'
    )
    output_group.add_argument(
        '--output-dir',
        type=Path,
        default=None,
        help='Directory for CSV files. Default: ./output/<region>'
    )
    output_group.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Enable debug logging'
    )

    return parser


def build_settings(args: argparse.Namespace, settings: Settings) -> Settings:
    """
    Apply command-line overrides to the settings.

    Raises:
        ValidationError: If an override is out of range
    """
    updates = {}
    if args.weather_uri:
        updates["weather_dataset_uri"] = args.weather_uri
    if args.region_uri:
        updates["region_dataset_uri"] = args.region_uri
    if args.no_cache:
        updates["use_cache"] = False
    if args.workers is not None:
        updates["interpolation_workers"] = args.workers
    if args.drop_invalid:
        updates["keep_invalid_nodes"] = False
    return Settings.model_validate({**settings.model_dump(), **updates})


def export_csv(response: QueryResponse, output_dir: Path) -> Dict[str, Path]:
    """
    Write points (and grid nodes, if any) as CSV files.

    Returns:
        Dictionary of output kind -> file path
    """
    output_dir.mkdir(parents=True, exist_ok=True)
    results = {}

    points_path = output_dir / "points.csv"
    samples_to_dataframe(response.points).to_csv(points_path, index=False)
    results["points"] = points_path

    if response.nodes is not None:
        nodes_path = output_dir / "grid.csv"
        nodes_to_dataframe(response.nodes, response.scalar_field).to_csv(nodes_path, index=False)
        results["grid"] = nodes_path

    return results


def print_summary(response: QueryResponse, settings: Settings) -> None:
    """Print filter and grid statistics to stderr."""
    report = response.report
    print("=" * 70, file=sys.stderr)
    if report is not None:
        print(f"Target: {report.target_datetime}", file=sys.stderr)
        print(f"Records: {report.total_records} "
              f"(time mismatch {report.datetime_mismatches}, invalid {report.invalid_coordinates}, "
              f"duplicate {report.duplicates}, outside {report.outside_region})", file=sys.stderr)
    print(f"Points: {len(response.points)}", file=sys.stderr)

    if response.nodes is not None:
        print(f"Grid nodes: {len(response.nodes)} ({len(response.valid_nodes)} valid)", file=sys.stderr)
        if response.scalar_field == "sp":
            bands = partition_by_band(
                response.nodes,
                low=settings.low_pressure_threshold,
                high=settings.high_pressure_threshold,
            )
            for name, nodes in bands.items():
                print(f"  {name:>4}: {len(nodes)}", file=sys.stderr)
    print("=" * 70, file=sys.stderr)


def main(argv: Optional[list] = None) -> int:
    """Main entry point for CLI."""
    load_dotenv()

    parser = create_parser()
    args = parser.parse_args(argv)

    try:
        settings = build_settings(args, get_settings())
    except ValidationError as e:
        parser.error(f"Invalid option: {e}")

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else settings.log_level,
        format='%(asctime)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    try:
        request = QueryRequest(
            region_name=args.region,
            selected_datetime=args.selected_datetime,
            include_surface=args.surface,
            grid_resolution=args.resolution,
            scalar_field=args.field,
        )
    except ValueError as e:
        logger.error(f"Invalid query: {e}")
        return 1

    service = RegionWeatherService(settings=settings)

    try:
        response = service.query(request)
    except (WeatherMapError, ValueError) as e:
        logger.error(f"Error answering query: {e}")
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 1

    print_summary(response, settings)

    if args.format == 'csv':
        if args.output_dir:
            output_dir = args.output_dir
        else:
            region_slug = args.region.lower().replace(' ', '_').replace(',', '')
            output_dir = Path.cwd() / "output" / region_slug
        results = export_csv(response, output_dir)
        print("\nGenerated files:", file=sys.stderr)
        for kind, path in results.items():
            print(f"  • {path}", file=sys.stderr)
    else:
        print(json.dumps(response.to_dict(), indent=2))

    return 0


if __name__ == "__main__":
    sys.exit(main())
