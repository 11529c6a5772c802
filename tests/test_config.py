import json
import logging

import pytest

from gatecord import ConfigError, DEFAULT_FLAGS, load_config, \
    check_configuration, merge_flags, resolve_verbosity


def test_defaults_are_valid():
    flags = check_configuration(merge_flags())
    assert flags['gateway']['api_version'] == 10
    assert flags['reconnect']['max_retries'] is None


def test_merge_keeps_other_keys():
    flags = merge_flags({'reconnect': {'max_retries': 3}, 'token': 'abc'})

    assert flags['token'] == 'abc'
    assert flags['reconnect'] == {'base': 1.0, 'max_delay': 60.0, 'max_retries': 3}

    # defaults are not touched
    assert DEFAULT_FLAGS['reconnect']['max_retries'] is None


@pytest.mark.parametrize('flags', [
    {'token_type': 'User'},
    {'gateway': {'invalid_session_delay': [1]}},
    {'reconnect': {'base': -1}},
    {'reconnect': {'max_retries': 'forever'}},
    {'logging': {'file': 5}},
])
def test_invalid_flags(flags):
    with pytest.raises(ConfigError):
        check_configuration(merge_flags(flags))


def test_load_config(tmp_path):
    path = tmp_path / 'config.json'
    path.write_text(json.dumps({
        'token': 'abc',
        'token_type': 'Bearer',
        'identify': {'intents': 1},
        'unknown': True,
    }))

    flags = load_config(str(path))

    assert flags['token'] == 'abc'
    assert flags['token_type'] == 'Bearer'
    assert flags['identify'] == {'intents': 1}
    assert 'unknown' not in flags


def test_load_config_errors(tmp_path):
    with pytest.raises(ConfigError):
        load_config(str(tmp_path / 'missing.json'))

    path = tmp_path / 'broken.json'
    path.write_text('{nope')
    with pytest.raises(ConfigError):
        load_config(str(path))

    path.write_text('[]')
    with pytest.raises(ConfigError):
        load_config(str(path))


@pytest.mark.parametrize('verbosity, level', [
    ('all', logging.DEBUG),
    ('INFO', logging.INFO),
    ('warning', logging.WARNING),
    ('error', logging.ERROR),
    ('fatal_error', logging.CRITICAL),
    (5, logging.DEBUG),
    (3, logging.WARNING),
    ('none', None),
    (0, None),
])
def test_verbosity(verbosity, level):
    assert resolve_verbosity(verbosity) == level


@pytest.mark.parametrize('verbosity', ['loud', 9, -1, None, True])
def test_unknown_verbosity(caplog, verbosity):
    with caplog.at_level(logging.ERROR, logger='gatecord.config'):
        assert resolve_verbosity(verbosity) == logging.INFO

    assert len(caplog.records) == 1
