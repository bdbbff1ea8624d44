import json

import pytest

from voroplaces.utils import load_config, hex_to_rgba, default_config_path


class Settings(object):

    zoom = 14

    category = 'subway'

    center = [48.1351, 11.582]


KEYS = ['zoom', 'category', 'center']


def test_config_created_with_defaults(tmp_path):
    fname = tmp_path / 'conf' / 'config.json'
    settings = Settings()
    config = load_config(settings, KEYS, str(fname))

    assert config == {
        'zoom': 14, 'category': 'subway', 'center': [48.1351, 11.582]}
    with open(fname) as fp:
        assert json.load(fp) == config


def test_config_values_are_loaded(tmp_path):
    fname = tmp_path / 'config.json'
    fname.write_text(json.dumps({'zoom': 16, 'category': 'cafe'}))

    settings = Settings()
    load_config(settings, KEYS, str(fname))
    assert settings.zoom == 16
    assert settings.category == 'cafe'
    assert settings.center == [48.1351, 11.582]

    # missing keys are added back to the file
    with open(fname) as fp:
        assert json.load(fp)['center'] == [48.1351, 11.582]


def test_config_unknown_key(tmp_path):
    fname = tmp_path / 'config.json'
    fname.write_text(json.dumps({'zoom': 16, 'colour': 'red'}))
    with pytest.raises(ValueError):
        load_config(Settings(), KEYS, str(fname))


def test_default_config_path(monkeypatch, tmp_path):
    monkeypatch.delenv('VOROPLACES_CONFIG', raising=False)
    assert default_config_path().endswith('config.json')

    monkeypatch.setenv('VOROPLACES_CONFIG', str(tmp_path / 'other.json'))
    assert default_config_path() == str(tmp_path / 'other.json')


def test_hex_to_rgba():
    assert hex_to_rgba('#ff0000') == [1., 0., 0., 1.]
    assert hex_to_rgba('00ff00', .5) == [0., 1., 0., .5]
    with pytest.raises(ValueError):
        hex_to_rgba('#fff')
