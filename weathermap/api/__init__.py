"""
API module for weather and region dataset retrieval.
"""

from weathermap.api.cache import DatasetCache
from weathermap.api.sources import DatasetSource, RegionRecordSource, WeatherRecordSource

__all__ = ["DatasetCache", "DatasetSource", "RegionRecordSource", "WeatherRecordSource"]
