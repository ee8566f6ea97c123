"""
Data processing module for region weather output.

This module converts filtered samples and grid nodes into pandas
DataFrames for export, and provides temperature unit conversion.

Usage:
    from weathermap.data.processor import samples_to_dataframe, convert_temperature

    df = samples_to_dataframe(points)
"""

import logging
import math
from typing import Iterable

import pandas as pd

from weathermap.data.models import FIELD_COLUMNS, GridNode, WeatherSample

logger = logging.getLogger(__name__)


# =============================================================================
# Unit Conversion
# =============================================================================

# Offsets for conversion through Kelvin
KELVIN_OFFSET = 273.15

TEMPERATURE_UNITS = {"k", "c", "f"}

UNIT_LABELS = {
    "k": "K",
    "c": "°C",
    "f": "°F",
}


def convert_temperature(value: float, from_unit: str, to_unit: str) -> float:
    """
    Convert temperature between units.

    Supported units: K, C, F (case-insensitive)

    Raises:
        ValueError: If unit not supported
    """
    from_unit = from_unit.lower()
    to_unit = to_unit.lower()

    if from_unit not in TEMPERATURE_UNITS:
        raise ValueError(f"Unknown source unit: {from_unit}. Supported: {sorted(TEMPERATURE_UNITS)}")
    if to_unit not in TEMPERATURE_UNITS:
        raise ValueError(f"Unknown target unit: {to_unit}. Supported: {sorted(TEMPERATURE_UNITS)}")

    if from_unit == to_unit or math.isnan(value):
        return value

    # Convert to Kelvin first, then to target
    if from_unit == "c":
        kelvin = value + KELVIN_OFFSET
    elif from_unit == "f":
        kelvin = (value - 32) * 5 / 9 + KELVIN_OFFSET
    else:
        kelvin = value

    if to_unit == "c":
        return kelvin - KELVIN_OFFSET
    if to_unit == "f":
        return (kelvin - KELVIN_OFFSET) * 9 / 5 + 32
    return kelvin


def get_unit_label(unit: str) -> str:
    """Get display label for unit."""
    return UNIT_LABELS.get(unit.lower(), unit)


# =============================================================================
# DataFrame Conversion
# =============================================================================

SAMPLE_COLUMNS = ["latitude", "longitude", "time"] + list(FIELD_COLUMNS.values())


def samples_to_dataframe(samples: Iterable[WeatherSample]) -> pd.DataFrame:
    """
    Convert samples to a DataFrame with the source column names.

    Missing values are NaN. Row order follows the input order.
    """
    data = [
        {
            "latitude": s.latitude,
            "longitude": s.longitude,
            "time": s.timestamp,
            **{column: getattr(s, name) for name, column in FIELD_COLUMNS.items()},
        }
        for s in samples
    ]
    df = pd.DataFrame(data, columns=SAMPLE_COLUMNS)
    logger.debug(f"Created sample DataFrame with {len(df)} rows")
    return df


def nodes_to_dataframe(nodes: Iterable[GridNode], column: str = "sp") -> pd.DataFrame:
    """
    Convert grid nodes to a DataFrame with columns latitude, longitude, <column>.

    The column name is the interpolated source column.
    """
    data = [
        {"latitude": n.latitude, "longitude": n.longitude, column: n.value}
        for n in nodes
    ]
    df = pd.DataFrame(data, columns=["latitude", "longitude", column])
    df.attrs["field"] = column
    logger.debug(f"Created grid DataFrame with {len(df)} rows")
    return df
