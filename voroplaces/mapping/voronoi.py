"""
Voronoi Diagram
===============

Builds the Voronoi diagram of the sites, clipped to the visible rectangle.

The sites are first triangulated with :class:`scipy.spatial.Delaunay`. The
Voronoi cell of a site is bounded only by the perpendicular bisectors between
it and its Delaunay neighbours, so each cell is computed by cutting the clip
rectangle with those half-planes. Cells are convex, so cutting is a simple
Sutherland-Hodgman pass per half-plane.
"""
import logging

import numpy as np
from scipy.spatial import Delaunay, QhullError

__all__ = ('DiagramBuilder', 'Diagram')


def _format_point(point):
    x, y = point
    return '{:g},{:g}'.format(round(float(x), 3), round(float(y), 3))


class Diagram(object):
    """The clipped Voronoi diagram of a list of sites.
    """

    sites = None
    """``nx2`` array of the sites, in container pixels.
    """

    cells = []
    """List of ``kx2`` arrays, the polygon vertices of each cell in
    counter-clockwise screen order. ``cells[i]`` is the cell of ``sites[i]``
    and it's empty (``0x2``) when the site has no area in the rectangle, e.g.
    for a duplicated site.
    """

    rect = (0, 0, 0, 0)
    """The ``(xmin, ymin, xmax, ymax)`` clip rectangle.
    """

    def __init__(self, sites, cells, rect, **kwargs):
        super(Diagram, self).__init__(**kwargs)
        self.sites = sites
        self.cells = cells
        self.rect = tuple(rect)

    def __len__(self):
        return len(self.cells)

    def __iter__(self):
        return iter(self.cells)

    @property
    def is_empty(self):
        return not any(len(cell) for cell in self.cells)

    def areas(self):
        """Returns the area of each cell, using the shoelace formula.
        """
        areas = []
        for cell in self.cells:
            if len(cell) < 3:
                areas.append(0.)
                continue
            x, y = cell[:, 0], cell[:, 1]
            areas.append(
                abs(np.dot(x, np.roll(y, -1)) - np.dot(y, np.roll(x, -1))) / 2.)
        return areas

    def _on_border(self, p, q, eps=1e-6):
        xmin, ymin, xmax, ymax = self.rect
        for i, value in ((0, xmin), (0, xmax), (1, ymin), (1, ymax)):
            if abs(p[i] - value) < eps and abs(q[i] - value) < eps:
                return True
        return False

    def edges(self):
        """The unique edges separating the cells, as a list of
        ``((x1, y1), (x2, y2))``. Edges on the clip rectangle are left out.
        """
        seen = set()
        edges = []
        for cell in self.cells:
            n = len(cell)
            for i in range(n):
                p, q = cell[i], cell[(i + 1) % n]
                if self._on_border(p, q):
                    continue

                key = tuple(sorted(
                    (tuple(np.round(p, 6)), tuple(np.round(q, 6)))))
                if key in seen or key[0] == key[1]:
                    continue
                seen.add(key)
                edges.append((tuple(map(float, p)), tuple(map(float, q))))
        return edges

    def render(self):
        """Returns a SVG path drawing every non-empty cell as a closed
        polygon. An empty diagram renders to ``''``.
        """
        parts = []
        for cell in self.cells:
            if not len(cell):
                continue
            parts.append('M' + 'L'.join(_format_point(p) for p in cell) + 'Z')
        return ''.join(parts)


class DiagramBuilder(object):
    """Computes :class:`Diagram` instances. The builder holds no state
    between calls, so :meth:`build` is deterministic given its inputs.
    """

    def build(self, sites, rect):
        """Builds the diagram of ``sites`` clipped to ``rect``.

        :param sites: ``nx2`` container-pixel coordinates, ``n`` may be zero.
        :param rect: ``(xmin, ymin, xmax, ymax)``.
        :return: A :class:`Diagram`.
        """
        xmin, ymin, xmax, ymax = map(float, rect)
        if not (xmin < xmax and ymin < ymax):
            raise ValueError('Invalid clip rectangle {}'.format(rect))

        sites = np.asarray(sites, dtype=np.float64).reshape((-1, 2))
        n = len(sites)
        bounds = np.array(
            [[xmin, ymin], [xmin, ymax], [xmax, ymax], [xmax, ymin]])
        if not n:
            return Diagram(sites, [], (xmin, ymin, xmax, ymax))

        # later copies of a site get an empty cell
        unique, first_index = np.unique(sites, axis=0, return_index=True)
        owners = np.sort(first_index)
        unique = sites[owners]

        neighbours = self.find_neighbours(unique)
        cells = [np.empty((0, 2), dtype=np.float64) for _ in range(n)]
        for i, site_i in enumerate(owners):
            polygon = bounds
            p = unique[i]
            for j in neighbours[i]:
                q = unique[j]
                polygon = self.clip_half_plane(
                    polygon, 2 * (q - p), np.dot(q, q) - np.dot(p, p))
                if not len(polygon):
                    break
            cells[site_i] = polygon

        if len(unique) != n:
            logging.debug(
                'Diagram has %d duplicate sites out of %d', n - len(unique), n)
        return Diagram(sites, cells, (xmin, ymin, xmax, ymax))

    @staticmethod
    def find_neighbours(points):
        """Returns, for each point, the indices of its Delaunay neighbours.

        When there are too few points to triangulate, they're collinear, or
        Qhull left some of them out of the triangulation, every other point is
        returned as a neighbour instead.
        """
        n = len(points)
        everyone = [[j for j in range(n) if j != i] for i in range(n)]
        if n < 4:
            return everyone

        try:
            tri = Delaunay(points)
        except QhullError:
            logging.debug('Could not triangulate %d sites', n)
            return everyone

        if len(np.unique(tri.simplices)) != n:
            return everyone

        indptr, indices = tri.vertex_neighbor_vertices
        return [indices[indptr[i]:indptr[i + 1]].tolist() for i in range(n)]

    @staticmethod
    def clip_half_plane(polygon, normal, offset):
        """Clips the convex ``polygon`` to the half-plane
        ``dot(normal, x) <= offset``.
        """
        n = len(polygon)
        if not n:
            return polygon

        values = polygon.dot(normal) - offset
        result = []
        for i in range(n):
            k = (i + 1) % n
            p, vp, vq = polygon[i], values[i], values[k]
            if vp <= 0:
                result.append(p)
            if (vp <= 0) != (vq <= 0):
                t = vp / (vp - vq)
                result.append(p + t * (polygon[k] - p))

        if len(result) < 3:
            return np.empty((0, 2), dtype=np.float64)
        return np.asarray(result)
