import os

# keep kivy from parsing the pytest arguments
os.environ.setdefault('KIVY_NO_ARGS', '1')
os.environ.setdefault('KIVY_NO_FILELOG', '1')
os.environ.setdefault('MPLBACKEND', 'Agg')

import pytest

from voroplaces.mapping.viewport import MapViewport
from voroplaces.tests.fakes import MUNICH_SW, MUNICH_NE


@pytest.fixture
def viewport():
    return MapViewport(center=(48.1351, 11.5820), zoom=14, size=(800, 600))


@pytest.fixture
def munich_viewport():
    return MapViewport.from_bounds(MUNICH_SW, MUNICH_NE, zoom=15)
