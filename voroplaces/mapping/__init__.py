"""
Mapping
========

Geometry of the overlay: projecting geographic coordinates into screen
pixels and building the clipped Voronoi diagram from them.
"""
