"""
Temporal and spatial filtering of weather samples.

The temporal filter keeps samples taken exactly at the selected instant;
the spatial filter drops samples with unusable or repeated coordinates and
samples outside the region polygon. Every exclusion is logged at DEBUG and
counted in a FilterReport.

Usage:
    from weathermap.data.filters import TemporalFilter, SpatialFilter

    report = FilterReport()
    samples = TemporalFilter(report).filter(samples, "2023-06-01T12:00")
    points = SpatialFilter(report).filter(samples, polygon)
"""

import logging
from typing import Iterable, List, Optional

from weathermap.data.models import FilteredPointSet, FilterReport, RegionPolygon, WeatherSample
from weathermap.errors import CoordinateParseError

logger = logging.getLogger(__name__)

# Separator between date and time in the selected date-time
DATETIME_SEPARATOR = "T"


def normalize_target_datetime(selected_datetime: str) -> Optional[str]:
    """
    Convert "YYYY-MM-DDTHH:MM" to the dataset form "YYYY-MM-DD HH:MM:00".

    Returns:
        Normalized timestamp, or None if the input is not exactly one
        date and one time joined by 'T'
    """
    parts = selected_datetime.split(DATETIME_SEPARATOR)
    if len(parts) != 2:
        return None
    date_part, time_part = parts
    return f"{date_part} {time_part}:00"


class TemporalFilter:
    """Keeps samples whose timestamp equals the normalized target."""

    def __init__(self, report: Optional[FilterReport] = None):
        self.report = report or FilterReport()

    def filter(self, samples: Iterable[WeatherSample], selected_datetime: str) -> List[WeatherSample]:
        """
        Filter samples by exact timestamp match.

        Args:
            samples: Samples in source order
            selected_datetime: Caller date-time ("YYYY-MM-DDTHH:MM")

        Returns:
            Matching samples in source order
        """
        target = normalize_target_datetime(selected_datetime)
        self.report.target_datetime = target
        logger.info(f"Target DateTime: {target}")

        if target is None:
            logger.warning(f"Unparseable date-time '{selected_datetime}', no sample can match")

        matched = []
        for sample in samples:
            self.report.total_records += 1
            if target is not None and sample.timestamp == target:
                matched.append(sample)
            else:
                self.report.datetime_mismatches += 1
                logger.debug(f"Point filtered out due to date-time mismatch: {sample.timestamp}")

        logger.info(f"{len(matched)}/{self.report.total_records} samples match {target}")
        return matched


class SpatialFilter:
    """Deduplicates samples by coordinate and keeps those inside a polygon."""

    def __init__(self, report: Optional[FilterReport] = None):
        self.report = report or FilterReport()

    def filter(self, samples: Iterable[WeatherSample], polygon: RegionPolygon) -> FilteredPointSet:
        """
        Filter samples to the region.

        A coordinate key is claimed by the first sample carrying it, even if
        that sample then falls outside the polygon.

        Args:
            samples: Samples in source order
            polygon: Region boundary

        Returns:
            FilteredPointSet in source order
        """
        seen = set()
        result = FilteredPointSet(report=self.report)

        for sample in samples:
            try:
                longitude, latitude = sample.coordinates()
            except CoordinateParseError as e:
                self.report.invalid_coordinates += 1
                logger.debug(f"Point filtered out due to invalid coordinates: {e}")
                continue

            key = sample.coordinate_key
            if key in seen:
                self.report.duplicates += 1
                logger.debug(f"Point filtered out due to duplicate coordinates: {key}")
                continue
            seen.add(key)

            if not polygon.contains(longitude, latitude):
                self.report.outside_region += 1
                logger.debug(f"Point filtered out due to not being in region '{polygon.name}': {key}")
                continue

            result.append(sample)

        self.report.retained = len(result)
        logger.info(
            f"Region '{polygon.name}': kept {len(result)} points "
            f"({self.report.invalid_coordinates} invalid, {self.report.duplicates} duplicate, "
            f"{self.report.outside_region} outside)"
        )
        return result


def filter_region_samples(
    samples: Iterable[WeatherSample],
    polygon: RegionPolygon,
    selected_datetime: str,
) -> FilteredPointSet:
    """
    Run the temporal filter followed by the spatial filter.

    Returns:
        FilteredPointSet whose report covers both stages
    """
    report = FilterReport()
    matched = TemporalFilter(report).filter(samples, selected_datetime)
    return SpatialFilter(report).filter(matched, polygon)
