"""Voronoi Places utilities
===========================
"""

__all__ = ('default_config_path', 'load_config', 'hex_to_rgba')

import json
import logging
import os

import voroplaces


def default_config_path():
    """The config file named by the ``VOROPLACES_CONFIG`` environment variable
    or, if unset, ``voroplaces/data/config.json``.
    """
    fname = os.environ.get('VOROPLACES_CONFIG')
    if fname:
        return fname
    return os.path.join(
        os.path.dirname(voroplaces.__file__), 'data', 'config.json')


def load_config(obj, keys, fname=None):
    """Loads the json config file into the attributes of ``obj``.

    If the file doesn't exist it's created with the current values of the
    attributes named in ``keys``. After loading, the file is rewritten so it
    lists every key, including any that are new since it was created.

    :param obj: The object whose attributes are set.
    :param keys: The names of the config attributes.
    :param fname: The config file, defaults to :func:`default_config_path`.
    :return: The dict of the config values.
    """
    if fname is None:
        fname = default_config_path()

    if not os.path.exists(fname):
        dirname = os.path.dirname(fname)
        if dirname:
            os.makedirs(dirname, exist_ok=True)
        config = {key: getattr(obj, key) for key in keys}
        with open(fname, 'w') as fp:
            json.dump(config, fp, indent=2, sort_keys=True)

    with open(fname, 'r') as fp:
        for key, val in json.load(fp).items():
            if key not in keys:
                raise ValueError(
                    'Unknown config option "{}" in "{}"'.format(key, fname))
            setattr(obj, key, val)

    config = {key: getattr(obj, key) for key in keys}
    with open(fname, 'w') as fp:
        json.dump(config, fp, indent=2, sort_keys=True)

    logging.info('Loaded config from %s', fname)
    return config


def hex_to_rgba(color, alpha=1.):
    """Converts a ``'#rrggbb'`` color to a ``[r, g, b, a]`` list of floats.
    """
    color = color.lstrip('#')
    if len(color) != 6:
        raise ValueError('Expected a #rrggbb color, got "{}"'.format(color))
    return [int(color[i:i + 2], 16) / 255. for i in (0, 2, 4)] + [alpha]
