"""Voronoi Places Application
==============================

Runs the application.
"""

from itertools import cycle

import numpy as np
import matplotlib.pyplot as plt


def mpl_plot_diagram(diagram, labels=None, ax=None):
    """Plots the cells of a :class:`~voroplaces.mapping.voronoi.Diagram` and
    its sites with matplotlib, in container pixels.

    :return: The axes plotted into.
    """
    if ax is None:
        ax = plt.gca()
    colors = cycle(plt.get_cmap('tab10').colors)

    for i, cell in enumerate(diagram.cells):
        color = next(colors)
        if not len(cell):
            continue
        ax.fill(cell[:, 0], cell[:, 1], color=color, alpha=.4, edgecolor='k')

        if labels is not None:
            x, y = np.mean(cell, axis=0)
            ax.annotate(
                labels[i], (x, y), color='k', fontsize=6, ha='center',
                va='center')

    if len(diagram.sites):
        ax.plot(diagram.sites[:, 0], diagram.sites[:, 1], 'r.')

    xmin, ymin, xmax, ymax = diagram.rect
    ax.set_xlim(xmin, xmax)
    # pixels grow downwards
    ax.set_ylim(ymax, ymin)
    ax.set_aspect('equal')
    return ax


if __name__ == '__main__':
    import asyncio
    from voroplaces.app.overlay import OverlayLifecycleManager
    from voroplaces.app.providers import OverpassPointProvider
    from voroplaces.mapping.viewport import MapViewport

    viewport = MapViewport()
    result = asyncio.run(
        OverpassPointProvider().query(viewport.bounds, 'subway'))
    if not result.ok:
        raise SystemExit('Query failed: {}'.format(result.status))

    manager = OverlayLifecycleManager()
    diagram = manager.attach(viewport, result.sites)
    mpl_plot_diagram(diagram, labels=[site.label for site in result.sites])
    plt.show()
