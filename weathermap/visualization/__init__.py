"""
Rendering helpers for map layers.

Usage:
    from weathermap.visualization import partition_by_band

    bands = partition_by_band(nodes)
"""

from weathermap.visualization.bands import (
    PRESSURE_BANDS,
    HEAT_COLOR_RANGE,
    PressureBand,
    get_color_for_pressure,
    get_heat_color,
    get_pressure_band,
    heat_weight,
    partition_by_band,
)

__all__ = [
    "PRESSURE_BANDS",
    "HEAT_COLOR_RANGE",
    "PressureBand",
    "get_color_for_pressure",
    "get_heat_color",
    "get_pressure_band",
    "heat_weight",
    "partition_by_band",
]
