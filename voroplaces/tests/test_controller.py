import asyncio

import pytest

from voroplaces.app.controller import RenderContext, RenderCycleController, \
    ViewportController, NO_RESULTS_TEXT, QUERY_ERROR_TEXT, GEOCODE_ERROR_TEXT
from voroplaces.app.providers import QueryError, EmptyResult
from voroplaces.tests.fakes import ScriptedPointProvider, \
    GatedPointProvider, FakeGeocodeProvider, sites_inside


def make_controller(viewport, provider, **kwargs):
    context = RenderContext(viewport, category='subway')
    return RenderCycleController(context, provider, **kwargs)


def visible_state(controller):
    context = controller.context
    viewport = context.viewport
    return {
        'overlays': len(viewport.overlays),
        'surfaces': len(viewport.render_layer.surfaces),
        'markers': len(context.markers),
        'viewport_markers': len(viewport.markers),
        'error': context.error_text,
    }


def test_render_cycle_success(viewport):
    sites = sites_inside(viewport, 5)
    provider = ScriptedPointProvider(sites)
    controller = make_controller(viewport, provider)

    assert asyncio.run(controller.perform_render_cycle())
    assert provider.calls == [(viewport.bounds, 'subway')]
    assert visible_state(controller) == {
        'overlays': 1, 'surfaces': 1, 'markers': 5, 'viewport_markers': 5,
        'error': None}
    assert controller.context.sites == sites
    assert len(controller.context.overlay_manager.diagram) == 5


def test_derender_completes_before_fetch(viewport):
    snapshots = []
    provider = ScriptedPointProvider(
        sites_inside(viewport, 3), sites_inside(viewport, 1),
        QueryError('down'), sites_inside(viewport, 7), EmptyResult('none'),
        on_fetch=lambda: snapshots.append(visible_state(controller)))
    controller = make_controller(viewport, provider)

    async def run():
        for _ in range(5):
            await controller.perform_render_cycle()
    asyncio.run(run())

    assert len(snapshots) == 5
    for state in snapshots:
        assert state == {
            'overlays': 0, 'surfaces': 0, 'markers': 0,
            'viewport_markers': 0, 'error': None}


def test_empty_result(viewport):
    controller = make_controller(viewport, ScriptedPointProvider([]))
    assert not asyncio.run(controller.perform_render_cycle())
    assert visible_state(controller) == {
        'overlays': 0, 'surfaces': 0, 'markers': 0, 'viewport_markers': 0,
        'error': NO_RESULTS_TEXT}


def test_empty_result_after_success(viewport):
    provider = ScriptedPointProvider(
        sites_inside(viewport, 4), EmptyResult('subway'))
    controller = make_controller(viewport, provider)

    async def run():
        await controller.perform_render_cycle()
        await controller.perform_render_cycle()
    asyncio.run(run())

    assert visible_state(controller)['overlays'] == 0
    assert visible_state(controller)['markers'] == 0
    assert controller.context.error_text == NO_RESULTS_TEXT
    assert controller.context.sites == []


def test_query_error_then_retry(viewport):
    texts = []
    provider = ScriptedPointProvider(
        QueryError('down'), sites_inside(viewport, 2))
    controller = make_controller(
        viewport, provider, error_callback=texts.append)

    assert not asyncio.run(controller.perform_render_cycle())
    assert visible_state(controller) == {
        'overlays': 0, 'surfaces': 0, 'markers': 0, 'viewport_markers': 0,
        'error': QUERY_ERROR_TEXT}

    assert asyncio.run(controller.perform_render_cycle())
    assert visible_state(controller)['error'] is None
    assert visible_state(controller)['overlays'] == 1
    assert texts == [None, QUERY_ERROR_TEXT, None]


def test_derender_is_idempotent(viewport):
    controller = make_controller(
        viewport, ScriptedPointProvider(sites_inside(viewport, 3)))
    asyncio.run(controller.perform_render_cycle())

    controller.derender()
    once = visible_state(controller)
    controller.derender()
    assert visible_state(controller) == once
    assert once['overlays'] == once['markers'] == 0


def resolve(gate, response):
    if isinstance(response, Exception):
        gate.set_exception(response)
    else:
        gate.set_result(response)


def run_two_settles(controller, provider, first_sites, second_sites):
    """Starts two cycles and resolves the second fetch before the first.
    Either response can be an exception to raise instead.
    """
    async def run():
        first = asyncio.ensure_future(controller.perform_render_cycle())
        second = asyncio.ensure_future(controller.perform_render_cycle())
        while len(provider.gates) < 2:
            await asyncio.sleep(0)

        resolve(provider.gates[1], second_sites)
        second_rendered = await second
        resolve(provider.gates[0], first_sites)
        first_rendered = await first
        return first_rendered, second_rendered
    return asyncio.run(run())


def test_last_resolving_fetch_wins_when_stale_results_kept(viewport):
    provider = GatedPointProvider()
    controller = make_controller(
        viewport, provider, discard_stale_results=False)
    first_sites = sites_inside(viewport, 3, 'first')
    second_sites = sites_inside(viewport, 6, 'second')

    assert run_two_settles(
        controller, provider, first_sites, second_sites) == (True, True)

    context = controller.context
    assert context.sites == first_sites
    assert [m.label for m in context.markers] == \
        [s.label for s in first_sites]
    assert len(context.overlay_manager.diagram) == 3
    assert visible_state(controller)['overlays'] == 1
    assert visible_state(controller)['surfaces'] == 1
    assert visible_state(controller)['viewport_markers'] == 3


def test_late_empty_fetch_clears_newer_overlay(viewport):
    provider = GatedPointProvider()
    controller = make_controller(
        viewport, provider, discard_stale_results=False)
    second_sites = sites_inside(viewport, 4, 'second')

    assert run_two_settles(
        controller, provider, EmptyResult('subway'), second_sites) == \
        (False, True)

    assert controller.context.sites == []
    assert visible_state(controller) == {
        'overlays': 0, 'surfaces': 0, 'markers': 0, 'viewport_markers': 0,
        'error': NO_RESULTS_TEXT}


def test_late_success_clears_newer_error(viewport):
    provider = GatedPointProvider()
    controller = make_controller(
        viewport, provider, discard_stale_results=False)
    first_sites = sites_inside(viewport, 3, 'first')

    assert run_two_settles(
        controller, provider, first_sites, QueryError('down')) == \
        (True, False)

    assert controller.context.sites == first_sites
    assert visible_state(controller) == {
        'overlays': 1, 'surfaces': 1, 'markers': 3, 'viewport_markers': 3,
        'error': None}


def test_superseded_fetch_is_dropped_by_default(viewport):
    provider = GatedPointProvider()
    controller = make_controller(viewport, provider)
    first_sites = sites_inside(viewport, 3, 'first')
    second_sites = sites_inside(viewport, 6, 'second')

    assert run_two_settles(
        controller, provider, first_sites, second_sites) == (False, True)

    context = controller.context
    assert context.cycle_id == 2
    assert context.sites == second_sites
    assert len(context.overlay_manager.diagram) == 6
    assert visible_state(controller) == {
        'overlays': 1, 'surfaces': 1, 'markers': 6, 'viewport_markers': 6,
        'error': None}


def test_search_place(viewport):
    provider = ScriptedPointProvider(sites_inside(viewport, 2))
    controller = make_controller(viewport, provider)

    assert asyncio.run(controller.search_place('cafe'))
    assert controller.context.category == 'cafe'
    assert provider.calls[0][1] == 'cafe'


def test_search_location(viewport):
    provider = ScriptedPointProvider([])
    geocoder = FakeGeocodeProvider({'Berlin': (52.52, 13.405)})
    controller = make_controller(
        viewport, provider, geocode_provider=geocoder)

    asyncio.run(controller.search_location('Berlin'))
    assert viewport.center == (52.52, 13.405)
    assert provider.calls == [(viewport.bounds, 'subway')]
    assert controller.context.error_text == NO_RESULTS_TEXT


def test_search_location_failure_keeps_viewport(viewport):
    provider = ScriptedPointProvider(sites_inside(viewport, 3))
    geocoder = FakeGeocodeProvider({})
    controller = make_controller(
        viewport, provider, geocode_provider=geocoder)
    asyncio.run(controller.perform_render_cycle())
    center = viewport.center

    assert not asyncio.run(controller.search_location('Atlantis'))
    assert viewport.center == center
    assert controller.context.error_text == GEOCODE_ERROR_TEXT
    assert len(provider.calls) == 1
    assert visible_state(controller)['overlays'] == 1


def test_viewport_controller_runs_a_cycle_per_settle(viewport):
    provider = ScriptedPointProvider(
        sites_inside(viewport, 2), sites_inside(viewport, 3),
        sites_inside(viewport, 4))
    controller = make_controller(viewport, provider)
    viewport_controller = ViewportController(viewport, controller)
    viewport_controller.start()

    async def run():
        viewport.settle()
        viewport.settle()
        viewport.settle()
        await viewport_controller.join()
    asyncio.run(run())

    assert len(provider.calls) == 3
    assert not viewport_controller.tasks
    assert controller.context.cycle_id == 3
    assert len(controller.context.markers) == 4
    assert viewport_controller.bounds == viewport.bounds
    assert viewport_controller.center == viewport.center

    viewport_controller.stop()
    viewport.settle()
    assert not viewport_controller.tasks
    assert len(provider.calls) == 3


def test_schedule_needs_running_loop(viewport):
    controller = make_controller(viewport, ScriptedPointProvider())
    viewport_controller = ViewportController(viewport, controller)
    with pytest.raises(RuntimeError):
        viewport_controller.schedule(controller.perform_render_cycle())
