"""
Markers
========
"""

__all__ = ('MarkerSet', )


class MarkerSet(object):
    """The markers shown on the map for the sites of one render cycle.
    """

    markers = []
    """List of :class:`~voroplaces.mapping.viewport.Marker`, in the order of
    the sites.
    """

    viewport = None

    def __init__(self, **kwargs):
        super(MarkerSet, self).__init__(**kwargs)
        self.markers = []

    def __len__(self):
        return len(self.markers)

    def __iter__(self):
        return iter(self.markers)

    def populate(self, viewport, sites):
        """Adds a marker to ``viewport`` for each site. The site's label is
        shown when the marker is selected with :meth:`show_label`.
        """
        self.viewport = viewport
        for site in sites:
            self.markers.append(viewport.add_marker(site))

    def clear(self):
        """Removes all the markers from the viewport.
        """
        markers = self.markers
        while markers:
            self.viewport.remove_marker(markers.pop())
        self.viewport = None

    def show_label(self, marker):
        self.viewport.show_label(marker)

    def find(self, projection, pos, radius=10):
        """Returns the marker closest to the container-pixel ``pos``, if it's
        within ``radius`` pixels, otherwise None.
        """
        x, y = pos
        best = None
        best_dist = radius
        for marker in self.markers:
            x2, y2 = projection.to_container_pixel(marker.location)
            dist = ((x - x2) ** 2 + (y - y2) ** 2) ** .5
            if dist <= best_dist:
                best, best_dist = marker, dist
        return best
