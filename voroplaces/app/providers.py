"""
Providers
==========

Asynchronous clients for the external services: the points of interest come
from the OpenStreetMap Overpass API and free-text locations are resolved with
Nominatim.

Providers never raise to their callers. Failures are turned into a
:class:`QueryResult` or :class:`GeocodeResult` whose :attr:`status` tells
what went wrong.
"""

import logging

import httpx

from voroplaces.site import Site

__all__ = (
    'OK', 'EMPTY', 'QUERY_ERROR', 'ProviderError', 'QueryError',
    'EmptyResult', 'GeocodeError', 'QueryResult', 'GeocodeResult',
    'PointDataProvider', 'GeocodeProvider', 'OverpassPointProvider',
    'NominatimGeocodeProvider')

OK = 'ok'

EMPTY = 'empty'

QUERY_ERROR = 'query_error'

USER_AGENT = 'voroplaces/0.1 (voronoi overlay of points of interest)'


class ProviderError(Exception):
    pass


class QueryError(ProviderError):
    """The point of interest query failed for a reason other than it having
    no results.
    """
    pass


class EmptyResult(ProviderError):
    """The query succeeded but nothing matched.
    """
    pass


class GeocodeError(ProviderError):
    pass


class QueryResult(object):
    """The outcome of :meth:`PointDataProvider.query`.
    """

    status = OK

    sites = []
    """List of :class:`~voroplaces.site.Site`, never empty when
    :attr:`status` is :data:`OK`.
    """

    def __init__(self, status=OK, sites=(), **kwargs):
        super(QueryResult, self).__init__(**kwargs)
        self.status = status
        self.sites = list(sites)

    def __repr__(self):
        return 'QueryResult({!r}, {} sites)'.format(
            self.status, len(self.sites))

    @property
    def ok(self):
        return self.status == OK


class GeocodeResult(object):
    """The outcome of :meth:`GeocodeProvider.resolve`.
    """

    status = OK

    location = None
    """The resolved ``(lat, lng)``, or None on failure.
    """

    def __init__(self, status=OK, location=None, **kwargs):
        super(GeocodeResult, self).__init__(**kwargs)
        self.status = status
        self.location = location

    @property
    def ok(self):
        return self.status == OK


class PointDataProvider(object):
    """Base class of the point of interest sources. Subclasses implement
    :meth:`fetch_sites`.
    """

    async def query(self, bounds, category):
        """Gets the sites matching ``category`` within ``bounds``.

        :param bounds: ``(south_west, north_east)`` ``(lat, lng)`` corners.
        :param category: The kind of place to look for, e.g. ``'subway'``.
        :return: A :class:`QueryResult`.
        """
        try:
            sites = await self.fetch_sites(bounds, category)
        except EmptyResult:
            return QueryResult(status=EMPTY)
        except QueryError:
            logging.exception('Querying "%s" failed', category)
            return QueryResult(status=QUERY_ERROR)

        if not sites:
            return QueryResult(status=EMPTY)
        return QueryResult(sites=sites)

    async def fetch_sites(self, bounds, category):
        """Returns the list of :class:`~voroplaces.site.Site` or raises a
        :class:`ProviderError`.
        """
        raise NotImplementedError


class GeocodeProvider(object):
    """Base class of the geocoders. Subclasses implement
    :meth:`fetch_location`.
    """

    async def resolve(self, address):
        """Resolves the free text ``address`` to a :class:`GeocodeResult`.
        """
        try:
            location = await self.fetch_location(address)
        except ProviderError:
            logging.exception('Geocoding "%s" failed', address)
            return GeocodeResult(status=QUERY_ERROR)
        return GeocodeResult(location=location)

    async def fetch_location(self, address):
        raise NotImplementedError


_REGEX_SPECIAL = set('.^$*+?()[]{}|\\')


def _regex_escape(value):
    return ''.join('\\' + c if c in _REGEX_SPECIAL else c for c in value)


def _overpass_string(value):
    return value.replace('\\', '\\\\').replace('"', '\\"')


class OverpassPointProvider(PointDataProvider):
    """Finds the points of interest with the Overpass API.

    A place matches when its name or one of :attr:`tag_keys` contains the
    category, ignoring case.
    """

    url = 'https://overpass-api.de/api/interpreter'

    timeout = 30.

    max_results = 60

    user_agent = USER_AGENT

    tag_keys = (
        'name', 'amenity', 'shop', 'tourism', 'public_transport', 'railway')

    transport = None
    """An optional :class:`httpx.AsyncBaseTransport` used by the client.
    """

    def __init__(
            self, url=None, timeout=None, max_results=None, user_agent=None,
            transport=None, **kwargs):
        super(OverpassPointProvider, self).__init__(**kwargs)
        if url is not None:
            self.url = url
        if timeout is not None:
            self.timeout = timeout
        if max_results is not None:
            self.max_results = max_results
        if user_agent is not None:
            self.user_agent = user_agent
        self.transport = transport

    def build_query(self, bounds, category):
        """Returns the Overpass QL query for ``category`` within ``bounds``.
        """
        (south, west), (north, east) = bounds
        bbox = '{},{},{},{}'.format(south, west, north, east)
        category = category.strip()

        if category:
            pattern = _overpass_string(_regex_escape(category))
            filters = ['nwr["{}"~"{}",i]({});'.format(key, pattern, bbox)
                       for key in self.tag_keys]
        else:
            filters = ['nwr["name"]({});'.format(bbox)]

        return '[out:json][timeout:{}];\n(\n  {}\n);\nout center {};'.format(
            int(self.timeout), '\n  '.join(filters), int(self.max_results))

    @staticmethod
    def parse_sites(data, category=''):
        """Converts the Overpass JSON response to a list of sites.
        """
        try:
            elements = data['elements']
        except (KeyError, TypeError) as e:
            raise QueryError('Malformed Overpass response') from e

        sites = []
        seen = set()
        for element in elements:
            try:
                if 'lat' in element:
                    lat, lng = float(element['lat']), float(element['lon'])
                elif 'center' in element:
                    center = element['center']
                    lat, lng = float(center['lat']), float(center['lon'])
                else:
                    continue
            except (KeyError, TypeError, ValueError) as e:
                raise QueryError('Malformed Overpass element') from e

            key = element.get('type'), element.get('id')
            if key in seen:
                continue
            seen.add(key)

            label = element.get('tags', {}).get('name') or category
            sites.append(Site(location=(lat, lng), label=label))
        return sites

    async def fetch_sites(self, bounds, category):
        query = self.build_query(bounds, category)
        async with httpx.AsyncClient(
                timeout=self.timeout, transport=self.transport,
                headers={'User-Agent': self.user_agent}) as client:
            try:
                response = await client.post(self.url, data={'data': query})
                response.raise_for_status()
                data = response.json()
            except (httpx.HTTPError, ValueError) as e:
                raise QueryError(
                    'Overpass query for "{}" failed'.format(category)) from e

        sites = self.parse_sites(data, category)
        logging.info('Overpass found %d sites for "%s"', len(sites), category)
        if not sites:
            raise EmptyResult(category)
        return sites[:self.max_results]


class NominatimGeocodeProvider(GeocodeProvider):
    """Resolves addresses with the Nominatim search API.
    """

    url = 'https://nominatim.openstreetmap.org/search'

    timeout = 30.

    user_agent = USER_AGENT

    transport = None

    def __init__(
            self, url=None, timeout=None, user_agent=None, transport=None,
            **kwargs):
        super(NominatimGeocodeProvider, self).__init__(**kwargs)
        if url is not None:
            self.url = url
        if timeout is not None:
            self.timeout = timeout
        if user_agent is not None:
            self.user_agent = user_agent
        self.transport = transport

    async def fetch_location(self, address):
        async with httpx.AsyncClient(
                timeout=self.timeout, transport=self.transport,
                headers={'User-Agent': self.user_agent}) as client:
            try:
                response = await client.get(
                    self.url,
                    params={'q': address, 'format': 'json', 'limit': 1})
                response.raise_for_status()
                data = response.json()
            except (httpx.HTTPError, ValueError) as e:
                raise GeocodeError(
                    'Nominatim lookup of "{}" failed'.format(address)) from e

        if not data:
            raise GeocodeError('Nominatim has no result for "{}"'.format(
                address))
        try:
            return float(data[0]['lat']), float(data[0]['lon'])
        except (KeyError, TypeError, ValueError) as e:
            raise GeocodeError('Malformed Nominatim response') from e
