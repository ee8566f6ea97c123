"""
Surface pressure bands and point weights for map layers.

Grid nodes and samples are split into three pressure bands, each drawn as
its own extruded layer with a fixed color, elevation range and radius.
Heat map weights are temperatures in degrees Celsius.
"""

import math
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple, TypeVar

from weathermap.data.models import WeatherSample
from weathermap.data.processor import convert_temperature

T = TypeVar("T")

Color = Tuple[int, int, int]


@dataclass(frozen=True)
class PressureBand:
    """
    One pressure band layer.

    Attributes:
        name: Band identifier (low, mid, high)
        color: RGB fill color
        elevation_range: (min, max) extrusion for the layer
        radius: Cell radius in meters
    """
    name: str
    color: Color
    elevation_range: Tuple[int, int]
    radius: int


PRESSURE_BANDS: Dict[str, PressureBand] = {
    "low": PressureBand("low", (0, 100, 0), (10000, 30000), 1500),
    "mid": PressureBand("mid", (255, 165, 0), (30000, 60000), 2000),
    "high": PressureBand("high", (128, 0, 0), (60000, 90000), 3000),
}

# Upper bounds (Pa) of the low and mid bands
LOW_PRESSURE_THRESHOLD = 98000.0
HIGH_PRESSURE_THRESHOLD = 100000.0

# Heat map palette, cold to warm
HEAT_COLOR_RANGE: List[Color] = [
    (1, 152, 189),
    (73, 227, 206),
    (216, 254, 181),
    (254, 237, 177),
    (254, 173, 84),
    (209, 55, 78),
]


def get_pressure_band(
    pressure: float,
    low: float = LOW_PRESSURE_THRESHOLD,
    high: float = HIGH_PRESSURE_THRESHOLD,
) -> Optional[PressureBand]:
    """
    Get the band for a pressure value.

    Returns:
        PressureBand, or None for NaN
    """
    if math.isnan(pressure):
        return None
    if pressure <= low:
        return PRESSURE_BANDS["low"]
    if pressure <= high:
        return PRESSURE_BANDS["mid"]
    return PRESSURE_BANDS["high"]


def get_color_for_pressure(
    pressure: float,
    low: float = LOW_PRESSURE_THRESHOLD,
    high: float = HIGH_PRESSURE_THRESHOLD,
) -> Optional[Color]:
    """Get the RGB color of the band containing pressure."""
    band = get_pressure_band(pressure, low, high)
    return band.color if band else None


def partition_by_band(
    items: Iterable[T],
    field: str = "value",
    low: float = LOW_PRESSURE_THRESHOLD,
    high: float = HIGH_PRESSURE_THRESHOLD,
) -> Dict[str, List[T]]:
    """
    Split nodes or samples into pressure bands.

    Items whose value is NaN are dropped.

    Args:
        items: GridNode or WeatherSample objects
        field: Attribute holding the pressure ('value' for nodes,
            'surface_pressure' for samples)
        low: Upper bound of the low band
        high: Upper bound of the mid band

    Returns:
        Dictionary band name -> items, in input order
    """
    bands: Dict[str, List[T]] = {name: [] for name in PRESSURE_BANDS}
    for item in items:
        band = get_pressure_band(float(getattr(item, field)), low, high)
        if band is not None:
            bands[band.name].append(item)
    return bands


def heat_weight(sample: WeatherSample) -> float:
    """Heat map weight: 2 m temperature in degrees Celsius."""
    return convert_temperature(sample.temperature, "K", "C")


def get_heat_color(
    weight: float,
    min_weight: float = -20.0,
    max_weight: float = 40.0,
) -> Optional[Color]:
    """
    Get the heat map palette color for a weight.

    The range [min_weight, max_weight] is split into equal bins, one per
    palette entry; weights outside it take the end colors.

    Args:
        weight: Heat weight (degrees Celsius)
        min_weight: Weight mapped to the coldest color
        max_weight: Weight mapped to the warmest color

    Returns:
        RGB color, or None for NaN
    """
    if math.isnan(weight):
        return None
    if max_weight <= min_weight:
        raise ValueError("max_weight must exceed min_weight")

    fraction = (weight - min_weight) / (max_weight - min_weight)
    index = int(fraction * len(HEAT_COLOR_RANGE))
    return HEAT_COLOR_RANGE[min(max(index, 0), len(HEAT_COLOR_RANGE) - 1)]
