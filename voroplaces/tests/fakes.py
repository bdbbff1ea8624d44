"""Fake providers and helpers shared by the tests.
"""
import asyncio

from voroplaces.app.providers import PointDataProvider, GeocodeProvider, \
    GeocodeError
from voroplaces.site import Site

MUNICH_SW = (48.130, 11.570)

MUNICH_NE = (48.140, 11.590)


def sites_inside(viewport, n, label='site'):
    """Returns ``n`` distinct sites spread strictly inside the viewport.
    """
    (south, west), (north, east) = viewport.bounds
    sites = []
    for i in range(n):
        fx = (i + 1.) / (n + 1)
        fy = ((i * 7) % n + .5) / n
        sites.append(Site(
            location=(south + fy * (north - south), west + fx * (east - west)),
            label='{} {}'.format(label, i)))
    return sites


class ScriptedPointProvider(PointDataProvider):
    """Returns the given responses in order. A response is a list of sites
    or an exception to raise. ``on_fetch`` is called at the start of every
    fetch.
    """

    def __init__(self, *responses, on_fetch=None):
        super(ScriptedPointProvider, self).__init__()
        self.responses = list(responses)
        self.calls = []
        self.on_fetch = on_fetch

    async def fetch_sites(self, bounds, category):
        self.calls.append((bounds, category))
        if self.on_fetch is not None:
            self.on_fetch()

        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


class GatedPointProvider(PointDataProvider):
    """Every fetch waits until its future in :attr:`gates` is resolved.
    """

    def __init__(self):
        super(GatedPointProvider, self).__init__()
        self.gates = []

    async def fetch_sites(self, bounds, category):
        future = asyncio.get_running_loop().create_future()
        self.gates.append(future)
        return await future


class FakeGeocodeProvider(GeocodeProvider):

    def __init__(self, locations):
        super(FakeGeocodeProvider, self).__init__()
        self.locations = locations

    async def fetch_location(self, address):
        if address not in self.locations:
            raise GeocodeError(address)
        return self.locations[address]


