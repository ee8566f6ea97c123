"""
Region Weather Map

Prepares regional weather samples for map rendering: resolves a region
boundary, filters samples by time and by region, and interpolates a regular
grid for pressure-contour surfaces.
"""

__version__ = "1.0.0"
__author__ = "Region Weather Map Project"
