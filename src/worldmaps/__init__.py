"""worldmaps package for indicator choropleth maps.

This package loads World Bank indicator exports, joins them to country
boundary polygons and renders equal-area choropleth maps.
"""

__version__ = "0.1.0"
