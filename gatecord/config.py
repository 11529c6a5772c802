"""
config.py - gatecord configuration

    Configuration is a dict of flags. Files are JSON, their values
    are merged over :data:`DEFAULT_FLAGS` and checked with
    :func:`check_configuration`.
"""
import copy
import json
import logging

from voluptuous import Schema, Required, Any, All, Range, Length, \
    Invalid, REMOVE_EXTRA

from .basics import API_BASE, API_VERSION
from .err import ConfigError

log = logging.getLogger(__name__)

DEFAULT_FLAGS = {
    'token': None,
    'token_type': 'Bot',
    'verbosity': 'info',
    'gateway': {
        'api_version': API_VERSION,
        'base_url': API_BASE,
        'heartbeat_jitter': True,

        # [min, max] seconds to wait before identifying again
        # after a non-resumable OP 9 Invalid Session
        'invalid_session_delay': [1, 5],
    },
    'reconnect': {
        # seconds, delays grow as base * 2^n up to max_delay
        'base': 1.0,
        'max_delay': 60.0,

        # None means reconnect forever
        'max_retries': None,
    },
    # options for IdentifyBuilder, checked there
    'identify': {},
    'logging': {
        'file': None,
    },
}

_number = Any(int, float)

CONFIG_SCHEMA = Schema({
    Required('token'): Any(None, str),
    Required('token_type'): Any('Bot', 'Bearer'),
    Required('verbosity'): Any(str, int),
    Required('gateway'): {
        Required('api_version'): int,
        Required('base_url'): str,
        Required('heartbeat_jitter'): bool,
        Required('invalid_session_delay'): All([_number], Length(min=2, max=2)),
    },
    Required('reconnect'): {
        Required('base'): All(_number, Range(min=0)),
        Required('max_delay'): All(_number, Range(min=0)),
        Required('max_retries'): Any(None, All(int, Range(min=0))),
    },
    Required('identify'): dict,
    Required('logging'): {
        Required('file'): Any(None, str),
    },
}, extra=REMOVE_EXTRA)

VERBOSITY_NAMES = {
    'none': 0,
    'fatal_error': 1,
    'error': 2,
    'warning': 3,
    'info': 4,
    'all': 5,
}

VERBOSITY_LEVELS = {
    1: logging.CRITICAL,
    2: logging.ERROR,
    3: logging.WARNING,
    4: logging.INFO,
    5: logging.DEBUG,
}


def merge_flags(flags=None) -> dict:
    """Merge flags over a copy of :data:`DEFAULT_FLAGS`.

    Sections(dict values) are merged key by key.
    """
    merged = copy.deepcopy(DEFAULT_FLAGS)
    for key, value in (flags or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key].update(value)
        else:
            merged[key] = value

    return merged


def check_configuration(flags) -> dict:
    """Validate flags.

    Returns
    -------
    dict
        The validated flags.

    Raises
    ------
    ConfigError
        When any flag has an invalid value.
    """
    try:
        return CONFIG_SCHEMA(flags)
    except Invalid as err:
        raise ConfigError(f'Invalid configuration: {err}') from err


def load_config(path) -> dict:
    """Load, merge and validate a JSON configuration file."""
    try:
        with open(path, 'r') as cfgfile:
            flags = json.load(cfgfile)
    except FileNotFoundError as err:
        raise ConfigError(f'Configuration file {path!r} not found') from err
    except json.JSONDecodeError as err:
        raise ConfigError(f'Configuration file {path!r} is not JSON: {err}') from err

    if not isinstance(flags, dict):
        raise ConfigError(f'Configuration file {path!r} must hold an object')

    return check_configuration(merge_flags(flags))


def resolve_verbosity(verbosity):
    """Get the logging level for a verbosity setting.

    Accepts the names in :data:`VERBOSITY_NAMES` or their numbers(0 to 5).
    Unknown values fall back to ``info``.

    Returns
    -------
    int or None
        A :mod:`logging` level, ``None`` when logging is disabled.
    """
    if isinstance(verbosity, str):
        level = VERBOSITY_NAMES.get(verbosity.lower())
    elif isinstance(verbosity, int) and not isinstance(verbosity, bool) \
            and 0 <= verbosity <= 5:
        level = verbosity
    else:
        level = None

    if level is None:
        log.error(f"Unknown verbosity level: {verbosity!r}. Defaulting to 'info'.")
        level = VERBOSITY_NAMES['info']

    return VERBOSITY_LEVELS.get(level)
