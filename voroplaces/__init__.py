"""Voronoi Places
==================

Overlays a Voronoi diagram of nearby points of interest on an interactive
map, recomputed every time the map settles.
"""

__version__ = '0.1.0'
