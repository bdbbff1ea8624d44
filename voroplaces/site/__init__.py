"""
Site
=====

:class:`Site` defines a point of interest and its immutable data.
"""

__all__ = ('Site', )


class Site(object):
    """
    Describes a point of interest used as a site of the Voronoi diagram.
    """

    label = ''
    """Name describing the site, shown when its marker is tapped.
    """

    location = (0, 0)
    """The geographic ``(lat, lng)`` coordinate of the site.
    """

    pixel = None
    """The ``(x, y)`` container-pixel coordinate of the site, or None.

    It is only valid while bound to the projection of the viewport that
    computed it and is reset by :meth:`unbind`.
    """

    def __init__(self, location=(0, 0), label='', **kwargs):
        super(Site, self).__init__(**kwargs)
        lat, lng = location
        self.location = float(lat), float(lng)
        self.label = label
        self.pixel = None

    def __repr__(self):
        return 'Site({!r}, {!r})'.format(self.location, self.label)

    @property
    def lat(self):
        return self.location[0]

    @property
    def lng(self):
        return self.location[1]

    def bind(self, transformer):
        """Computes :attr:`pixel` using the container-pixel projection of
        ``transformer``.

        :param transformer: A
            :class:`~voroplaces.mapping.projection.CoordinateTransformer`.
        :return: The ``(x, y)`` container-pixel coordinate.
        """
        self.pixel = transformer.to_container_pixel(self.location)
        return self.pixel

    def unbind(self):
        self.pixel = None
