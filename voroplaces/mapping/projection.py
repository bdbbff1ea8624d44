"""
Projection
===========

Converts geographic ``(lat, lng)`` coordinates into the two pixel spaces used
by the overlay.

Geographic coordinates are first projected to Web Mercator
(``epsg:3857``) and then scaled to *world pixels*, where the whole world is
``256 * 2 ** zoom`` pixels wide. From there:

- *container pixels* are measured from the top-left corner of the map
  container. All the diagram geometry is computed in this space.
- *div pixels* are measured from the origin of the render layer pane, which
  stays put while the map is dragged and is only reset when the zoom changes.
  This space is only used to position the overlay surface.

In both spaces ``y`` grows downwards while latitude grows upwards.
"""

import math

import numpy as np
from pyproj import Transformer

__all__ = (
    'CoordinateTransformer', 'latlng_to_world', 'world_to_latlng',
    'world_size')

EARTH_RADIUS = 6378137.

TILE_SIZE = 256

MAX_LATITUDE = 85.0511287798

_to_mercator = Transformer.from_crs('epsg:4326', 'epsg:3857', always_xy=True)
_from_mercator = Transformer.from_crs(
    'epsg:3857', 'epsg:4326', always_xy=True)


def world_size(zoom):
    """The width (and height) in pixels of the whole world at ``zoom``.
    """
    return TILE_SIZE * 2 ** zoom


def latlng_to_world(locations, zoom):
    """Projects geographic coordinates to world pixels.

    :param locations: A ``(lat, lng)`` tuple or a ``nx2`` array of them.
    :param zoom: The map zoom level.
    :return: ``(x, y)`` floats for a single location, otherwise a ``nx2``
        array.
    """
    arr = np.asarray(locations, dtype=np.float64)
    single = arr.ndim == 1
    arr = arr.reshape((-1, 2))

    lat = np.clip(arr[:, 0], -MAX_LATITUDE, MAX_LATITUDE)
    x, y = _to_mercator.transform(arr[:, 1], lat)

    half = math.pi * EARTH_RADIUS
    scale = world_size(zoom) / (2 * half)
    pixels = np.empty(arr.shape, dtype=np.float64)
    pixels[:, 0] = (np.asarray(x) + half) * scale
    pixels[:, 1] = (half - np.asarray(y)) * scale

    if single:
        return float(pixels[0, 0]), float(pixels[0, 1])
    return pixels


def world_to_latlng(point, zoom):
    """Inverse of :func:`latlng_to_world` for a single ``(x, y)`` point.
    """
    half = math.pi * EARTH_RADIUS
    scale = (2 * half) / world_size(zoom)
    x, y = point
    lng, lat = _from_mercator.transform(x * scale - half, half - y * scale)
    return float(lat), float(lng)


class CoordinateTransformer(object):
    """Projection bound to a live
    :class:`~voroplaces.mapping.viewport.MapViewport`.

    The viewport's zoom and position are read on every call, so the
    projection always reflects the current viewport state. Once
    :meth:`release` is called the transformer cannot be used anymore.
    """

    viewport = None

    def __init__(self, viewport, **kwargs):
        super(CoordinateTransformer, self).__init__(**kwargs)
        self.viewport = viewport

    @property
    def attached(self):
        return self.viewport is not None

    def release(self):
        """Unbinds the projection from the viewport.
        """
        self.viewport = None

    def _live_viewport(self):
        if self.viewport is None:
            raise RuntimeError(
                'The projection is not attached to a live viewport')
        return self.viewport

    def to_container_pixel(self, location):
        """Converts a ``(lat, lng)`` coordinate to container pixels.
        """
        viewport = self._live_viewport()
        x, y = latlng_to_world(location, viewport.zoom)
        x0, y0 = viewport.origin
        return x - x0, y - y0

    def to_div_pixel(self, location):
        """Converts a ``(lat, lng)`` coordinate to div (pane) pixels.
        """
        viewport = self._live_viewport()
        x, y = latlng_to_world(location, viewport.zoom)
        x0, y0 = viewport.pane_origin
        return x - x0, y - y0

    def container_pixels(self, locations):
        """Converts many ``(lat, lng)`` coordinates to container pixels at
        once.

        :return: A ``nx2`` array, which is empty when ``locations`` is.
        """
        viewport = self._live_viewport()
        if not len(locations):
            return np.empty((0, 2), dtype=np.float64)

        pixels = latlng_to_world(
            np.asarray(locations, dtype=np.float64).reshape((-1, 2)),
            viewport.zoom)
        pixels -= np.asarray(viewport.origin)
        return pixels

    def container_rect(self, bounds=None):
        """The clip rectangle ``[xmin, ymin, xmax, ymax]`` in container
        pixels of ``bounds``, or of the viewport's current bounds when None.

        Latitude grows up while pixels grow down, so the rectangle is
        ``[west_x, north_y, east_x, south_y]``.
        """
        if bounds is None:
            bounds = self._live_viewport().bounds
        south_west, north_east = bounds
        sw_x, sw_y = self.to_container_pixel(south_west)
        ne_x, ne_y = self.to_container_pixel(north_east)
        return [sw_x, ne_y, ne_x, sw_y]

    def div_geometry(self, bounds=None):
        """The ``(left, top, width, height)`` of ``bounds`` in div pixels.
        """
        if bounds is None:
            bounds = self._live_viewport().bounds
        south_west, north_east = bounds
        sw_x, sw_y = self.to_div_pixel(south_west)
        ne_x, ne_y = self.to_div_pixel(north_east)
        return sw_x, ne_y, ne_x - sw_x, sw_y - ne_y
