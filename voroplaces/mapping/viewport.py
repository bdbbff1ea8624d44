"""
Viewport
=========

:class:`MapViewport` is the state of the visible map, as seen by the rest of
the package, together with the host capabilities the overlay needs: a render
layer that hands out drawing surfaces and shows markers, and a settle event.

The host (e.g. the Kivy widget in :mod:`voroplaces.app.voronoi`) mutates the
viewport in response to user interaction and calls :meth:`MapViewport.settle`
once the interaction is done. Everything else only reads it.
"""

import logging

from voroplaces.mapping.projection import CoordinateTransformer, \
    latlng_to_world, world_to_latlng

__all__ = (
    'MapViewport', 'OverlayView', 'OverlaySurface', 'RenderLayer', 'Marker')


class OverlayView(object):
    """Interface of anything that can be added to a :class:`MapViewport` with
    :meth:`MapViewport.add_overlay`.
    """

    def on_attach(self, viewport):
        """Called by the viewport once the overlay has been added to it.
        """
        raise NotImplementedError

    def on_detach(self):
        """Called by the viewport once the overlay has been removed from it.
        All the resources of the overlay must be released before returning.
        """
        raise NotImplementedError


class OverlaySurface(object):
    """A positioned vector surface in the render layer.

    This one keeps the drawn paths in memory, host layers subclass it to
    actually draw them.
    """

    geometry = None
    """``(left, top, width, height)`` of the surface, in div pixels.
    """

    paths = []
    """List of ``(path, color, width)`` drawn on the surface, where ``path``
    is the SVG path of the diagram.
    """

    released = False

    def __init__(self, **kwargs):
        super(OverlaySurface, self).__init__(**kwargs)
        self.geometry = None
        self.paths = []
        self.released = False

    def set_geometry(self, left, top, width, height):
        self.geometry = left, top, width, height

    def draw_path(self, diagram, color='#ff0000', width=3):
        """Draws the edges of ``diagram``, given in coordinates local to the
        surface.
        """
        self.paths.append((diagram.render(), color, width))

    def release(self):
        self.paths = []
        self.released = True


class Marker(object):
    """A marker shown at a site's location.
    """

    site = None

    def __init__(self, site, **kwargs):
        super(Marker, self).__init__(**kwargs)
        self.site = site

    @property
    def label(self):
        return self.site.label

    @property
    def location(self):
        return self.site.location


class RenderLayer(object):
    """The layer of the map on which overlay surfaces and markers are placed.

    This is an in-memory layer, hosts subclass it and override the hooks to
    create their own surfaces and marker graphics.
    """

    surfaces = []

    markers = []

    open_marker = None
    """The :class:`Marker` whose label is currently shown, if any.
    """

    def __init__(self, **kwargs):
        super(RenderLayer, self).__init__(**kwargs)
        self.surfaces = []
        self.markers = []
        self.open_marker = None

    def new_surface(self):
        return OverlaySurface()

    def create_surface(self):
        surface = self.new_surface()
        self.surfaces.append(surface)
        return surface

    def remove_surface(self, surface):
        """Removes the surface from the layer and releases it.
        """
        if surface in self.surfaces:
            self.surfaces.remove(surface)
        surface.release()

    def add_marker(self, marker):
        self.markers.append(marker)

    def remove_marker(self, marker):
        if marker is self.open_marker:
            self.open_marker = None
        self.markers.remove(marker)

    def show_label(self, marker):
        self.open_marker = marker


class MapViewport(object):
    """The visible part of the map.
    """

    center = (0., 0.)
    """The ``(lat, lng)`` at the center of the map container.
    """

    zoom = 14

    min_zoom = 0

    max_zoom = 19

    size = (800, 600)
    """The ``(width, height)`` of the map container, in pixels.
    """

    pane_origin = (0., 0.)
    """The world pixel of the render layer pane's origin. It's reset to the
    container's top-left corner when the zoom changes, but dragging the map
    leaves it alone.
    """

    render_layer = None

    overlays = []

    markers = []

    _settle_listeners = []

    def __init__(
            self, center=(48.1351, 11.5820), zoom=14, size=(800, 600),
            min_zoom=0, max_zoom=19, render_layer=None, **kwargs):
        super(MapViewport, self).__init__(**kwargs)
        self.min_zoom = min_zoom
        self.max_zoom = max_zoom
        self.center = tuple(map(float, center))
        self.zoom = min(max(zoom, min_zoom), max_zoom)
        self.size = tuple(size)
        self.render_layer = render_layer or RenderLayer()
        self.overlays = []
        self.markers = []
        self._settle_listeners = []
        self.reset_pane()

    @classmethod
    def from_bounds(cls, south_west, north_east, zoom=14, **kwargs):
        """Creates a viewport showing exactly the given geographic bounds at
        ``zoom``.
        """
        sw_x, sw_y = latlng_to_world(south_west, zoom)
        ne_x, ne_y = latlng_to_world(north_east, zoom)
        center = world_to_latlng(((sw_x + ne_x) / 2., (sw_y + ne_y) / 2.), zoom)
        return cls(
            center=center, zoom=zoom, size=(ne_x - sw_x, sw_y - ne_y),
            **kwargs)

    @property
    def origin(self):
        """The world pixel of the container's top-left corner.
        """
        x, y = latlng_to_world(self.center, self.zoom)
        w, h = self.size
        return x - w / 2., y - h / 2.

    @property
    def bounds(self):
        """The ``(south_west, north_east)`` geographic corners of the
        container.
        """
        x0, y0 = self.origin
        w, h = self.size
        return (world_to_latlng((x0, y0 + h), self.zoom),
                world_to_latlng((x0 + w, y0), self.zoom))

    @property
    def pane_offset(self):
        """The container-pixel position of the render layer pane's origin.
        """
        x0, y0 = self.origin
        px, py = self.pane_origin
        return px - x0, py - y0

    def get_projection(self):
        return CoordinateTransformer(self)

    def reset_pane(self):
        self.pane_origin = self.origin

    def pan_by(self, dx, dy):
        """Moves the map content by ``dx``, ``dy`` container pixels, like a
        drag does. Positive ``dx`` reveals more of the east, positive ``dy``
        more of the south.
        """
        x, y = latlng_to_world(self.center, self.zoom)
        self.center = world_to_latlng((x + dx, y + dy), self.zoom)

    def set_center(self, location):
        self.center = tuple(map(float, location))

    def set_zoom(self, zoom):
        """Changes the zoom, clamped to the zoom limits.

        :return: Whether the zoom changed.
        """
        zoom = min(max(zoom, self.min_zoom), self.max_zoom)
        if zoom == self.zoom:
            return False

        self.zoom = zoom
        self.reset_pane()
        return True

    def resize(self, size):
        self.size = tuple(size)

    def add_settle_listener(self, callback):
        self._settle_listeners.append(callback)

    def remove_settle_listener(self, callback):
        self._settle_listeners.remove(callback)

    def settle(self):
        """Signals that the viewport stopped changing. Called by the host.
        """
        logging.debug(
            'Viewport settled at %s, zoom %s', self.center, self.zoom)
        for callback in list(self._settle_listeners):
            callback(self)

    def add_overlay(self, overlay):
        """Adds the :class:`OverlayView` and calls its
        :meth:`~OverlayView.on_attach`.
        """
        if overlay in self.overlays:
            raise RuntimeError('{!r} is already attached'.format(overlay))
        self.overlays.append(overlay)
        overlay.on_attach(self)

    def remove_overlay(self, overlay):
        """Removes the :class:`OverlayView` and calls its
        :meth:`~OverlayView.on_detach`. Does nothing if it's not attached.
        """
        if overlay not in self.overlays:
            return
        self.overlays.remove(overlay)
        overlay.on_detach()

    def add_marker(self, site):
        marker = Marker(site)
        self.markers.append(marker)
        self.render_layer.add_marker(marker)
        return marker

    def remove_marker(self, marker):
        self.markers.remove(marker)
        self.render_layer.remove_marker(marker)

    def show_label(self, marker):
        self.render_layer.show_label(marker)
