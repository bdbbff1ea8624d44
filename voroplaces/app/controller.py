"""
Render Cycle
=============

Every time the viewport settles, the overlay and markers of the previous
cycle are removed (derender), new sites are fetched for the visible bounds,
and a new overlay is attached for them (render).

Derendering is synchronous and always completes before the fetch starts, so
there's never a moment with two overlays attached or with markers from two
cycles. Fetches are never cancelled though, so a new settle can happen while
an older fetch is pending. Each cycle is numbered and, by default, the result
of a cycle that has since been superseded is dropped. With
:attr:`RenderCycleController.discard_stale_results` set to False the last
fetch to resolve wins instead, whichever cycle it belongs to.
"""

import asyncio
import logging

from voroplaces.app.markers import MarkerSet
from voroplaces.app.overlay import OverlayLifecycleManager
from voroplaces.app.providers import EMPTY

__all__ = (
    'RenderContext', 'RenderCycleController', 'ViewportController',
    'NO_RESULTS_TEXT', 'QUERY_ERROR_TEXT', 'GEOCODE_ERROR_TEXT')

NO_RESULTS_TEXT = 'No results. Try searching for something else'

QUERY_ERROR_TEXT = "Error querying places. This isn't normal!"

GEOCODE_ERROR_TEXT = "Error querying geocoder. This isn't normal!"


class RenderContext(object):
    """All the state of the render cycles of one map.
    """

    viewport = None

    overlay_manager = None

    markers = None

    category = ''
    """The kind of place currently searched for.
    """

    sites = []
    """The sites of the current cycle, empty after a derender.
    """

    error_text = None
    """The error shown to the user, or None.
    """

    cycle_id = 0
    """The number of the latest started render cycle.
    """

    def __init__(
            self, viewport, category='', overlay_manager=None, markers=None,
            **kwargs):
        super(RenderContext, self).__init__(**kwargs)
        self.viewport = viewport
        self.category = category
        self.overlay_manager = overlay_manager or OverlayLifecycleManager()
        self.markers = markers or MarkerSet()
        self.sites = []
        self.error_text = None
        self.cycle_id = 0


class RenderCycleController(object):
    """Runs the derender/fetch/render sequence on a :class:`RenderContext`.
    """

    context = None

    point_provider = None

    geocode_provider = None

    discard_stale_results = True

    error_callback = None
    """Called with the new error text (or None) whenever it changes.
    """

    def __init__(
            self, context, point_provider, geocode_provider=None,
            discard_stale_results=True, error_callback=None, **kwargs):
        super(RenderCycleController, self).__init__(**kwargs)
        self.context = context
        self.point_provider = point_provider
        self.geocode_provider = geocode_provider
        self.discard_stale_results = discard_stale_results
        self.error_callback = error_callback

    def set_error_text(self, text):
        self.context.error_text = text
        if self.error_callback is not None:
            self.error_callback(text)

    def derender(self):
        """Clears the error, removes the overlay and the markers.
        """
        context = self.context
        self.set_error_text(None)
        context.overlay_manager.detach()
        context.markers.clear()
        context.sites = []

    def is_stale(self, cycle_id):
        return cycle_id is not None and cycle_id != self.context.cycle_id

    async def render(self, cycle_id=None):
        """Fetches the sites for the current bounds and category and shows
        them.

        :param cycle_id: The cycle this render belongs to, if any.
        :return: Whether an overlay was attached.
        """
        context = self.context
        result = await self.point_provider.query(
            context.viewport.bounds, context.category)

        if self.discard_stale_results and self.is_stale(cycle_id):
            logging.info(
                'Dropping result of render cycle %d, cycle %d is current',
                cycle_id, context.cycle_id)
            return False

        # only needed when an older fetch resolves after a newer one rendered
        context.overlay_manager.detach()
        context.markers.clear()
        context.sites = []

        if not result.ok:
            if result.status == EMPTY:
                self.set_error_text(NO_RESULTS_TEXT)
            else:
                self.set_error_text(QUERY_ERROR_TEXT)
            return False

        if context.error_text is not None:
            self.set_error_text(None)
        context.sites = result.sites
        context.markers.populate(context.viewport, result.sites)
        context.overlay_manager.attach(context.viewport, result.sites)
        logging.info(
            'Rendered %d sites for "%s"', len(result.sites), context.category)
        return True

    async def perform_render_cycle(self):
        context = self.context
        context.cycle_id += 1
        cycle_id = context.cycle_id

        self.derender()
        return await self.render(cycle_id)

    async def search_place(self, category):
        """Changes the searched category and re-renders.
        """
        self.context.category = category
        return await self.perform_render_cycle()

    async def search_location(self, address):
        """Moves the map to ``address`` and re-renders. If the address can't
        be resolved the map stays where it is.
        """
        result = await self.geocode_provider.resolve(address)
        if not result.ok:
            self.set_error_text(GEOCODE_ERROR_TEXT)
            return False

        self.context.viewport.set_center(result.location)
        return await self.perform_render_cycle()


class ViewportController(object):
    """Starts a render cycle every time the viewport settles.
    """

    viewport = None

    render_controller = None

    tasks = set()
    """The render cycle tasks that haven't finished yet.
    """

    def __init__(self, viewport, render_controller, **kwargs):
        super(ViewportController, self).__init__(**kwargs)
        self.viewport = viewport
        self.render_controller = render_controller
        self.tasks = set()

    @property
    def bounds(self):
        return self.viewport.bounds

    @property
    def center(self):
        return self.viewport.center

    def start(self):
        self.viewport.add_settle_listener(self.on_settle)

    def stop(self):
        self.viewport.remove_settle_listener(self.on_settle)

    def on_settle(self, viewport):
        self.schedule(self.render_controller.perform_render_cycle())

    def schedule(self, coro):
        """Runs ``coro`` as a task of the running event loop.
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            coro.close()
            raise

        task = loop.create_task(coro)
        self.tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task):
        self.tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logging.error(
                'Render cycle failed', exc_info=task.exception())

    async def join(self):
        """Waits until all the scheduled render cycles are done.
        """
        while self.tasks:
            await asyncio.gather(*list(self.tasks), return_exceptions=True)
