"""
Voronoi Overlay
================

:class:`VoronoiOverlay` draws the diagram of the current sites on a surface
of the viewport's render layer, and :class:`OverlayLifecycleManager` makes
sure at most one of them is ever attached.
"""

import logging

from voroplaces.mapping.viewport import OverlayView
from voroplaces.mapping.voronoi import DiagramBuilder

__all__ = ('VoronoiOverlay', 'OverlayLifecycleManager')


class VoronoiOverlay(OverlayView):
    """Overlay showing the Voronoi diagram of :attr:`sites`.

    Nothing is computed until the viewport calls :meth:`on_attach`, at which
    point the sites and the viewport bounds are projected with the live
    projection and the diagram is drawn.
    """

    sites = []

    builder = None

    stroke_color = '#ff0000'

    stroke_width = 3

    viewport = None

    projection = None

    surface = None

    diagram = None

    def __init__(
            self, sites, builder=None, stroke_color='#ff0000', stroke_width=3,
            **kwargs):
        super(VoronoiOverlay, self).__init__(**kwargs)
        self.sites = list(sites)
        self.builder = builder or DiagramBuilder()
        self.stroke_color = stroke_color
        self.stroke_width = stroke_width

    def on_attach(self, viewport):
        self.viewport = viewport
        projection = self.projection = viewport.get_projection()
        bounds = viewport.bounds

        # the surface's top-left is the north-west corner of the bounds, so
        # container pixels are also coordinates local to the surface
        surface = self.surface = viewport.render_layer.create_surface()
        surface.set_geometry(*projection.div_geometry(bounds))

        points = [site.bind(projection) for site in self.sites]
        self.diagram = diagram = self.builder.build(
            points, projection.container_rect(bounds))
        surface.draw_path(diagram, self.stroke_color, self.stroke_width)
        logging.debug(
            'Attached overlay with %d cells in %s', len(diagram), diagram.rect)

    def on_detach(self):
        if self.surface is not None:
            self.viewport.render_layer.remove_surface(self.surface)
        if self.projection is not None:
            self.projection.release()
        for site in self.sites:
            site.unbind()

        self.surface = self.projection = self.viewport = None
        self.diagram = None


class OverlayLifecycleManager(object):
    """Owns the single :class:`VoronoiOverlay` of a viewport.
    """

    overlay = None

    viewport = None

    builder = None

    stroke_color = '#ff0000'

    stroke_width = 3

    def __init__(
            self, builder=None, stroke_color='#ff0000', stroke_width=3,
            **kwargs):
        super(OverlayLifecycleManager, self).__init__(**kwargs)
        self.builder = builder or DiagramBuilder()
        self.stroke_color = stroke_color
        self.stroke_width = stroke_width

    @property
    def attached(self):
        return self.overlay is not None

    @property
    def diagram(self):
        if self.overlay is None:
            return None
        return self.overlay.diagram

    def attach(self, viewport, sites):
        """Creates an overlay for ``sites`` and adds it to ``viewport``.

        :return: The :class:`~voroplaces.mapping.voronoi.Diagram` drawn.
        """
        if self.overlay is not None:
            raise RuntimeError(
                'An overlay is already attached, detach it first')

        overlay = VoronoiOverlay(
            sites, builder=self.builder, stroke_color=self.stroke_color,
            stroke_width=self.stroke_width)
        self.overlay = overlay
        self.viewport = viewport
        viewport.add_overlay(overlay)
        return overlay.diagram

    def detach(self):
        """Removes the overlay, and all its drawing resources, from the
        viewport. Does nothing if there's no overlay.
        """
        overlay, viewport = self.overlay, self.viewport
        if overlay is None:
            return

        self.overlay = self.viewport = None
        viewport.remove_overlay(overlay)
