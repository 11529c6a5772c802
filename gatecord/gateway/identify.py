"""
identify.py - OP 2 Identify payloads

    Connection options given by the user are checked here and
    turned into the ``d`` field of an Identify. Invalid options never
    stop a connection, they get replaced by defaults and a warning is logged.
"""
import logging

from voluptuous import Schema, All, Range, Invalid, Optional, REMOVE_EXTRA

from ..basics import DEFAULT_INTENTS, MAX_INTENTS, DEFAULT_OS, \
    DEFAULT_BROWSER, DEFAULT_DEVICE, ACTIVITY_KEYS
from ..enums import OP
from ..utils import now_ms

log = logging.getLogger(__name__)


def _not_bool(value):
    if isinstance(value, bool):
        raise Invalid('expected an integer, got a boolean')
    return value


INTENTS_SCHEMA = Schema(All(_not_bool, int, Range(min=0, max=MAX_INTENTS)))
SINCE_SCHEMA = Schema(All(_not_bool, int))
STRING_SCHEMA = Schema(str)
BOOL_SCHEMA = Schema(bool)


def _valid(schema, value) -> bool:
    try:
        schema(value)
    except Invalid:
        return False
    return True


class IdentifyBuilder:
    """Validate connection options and build Identify payloads.

    Validation happens once, on creation. :meth:`IdentifyBuilder.build`
    can be called on every fresh connection, ``presence_since=True``
    is resolved to the current time on each call.

    Parameters
    ----------
    token: str
        The value of the ``token`` field, the full authorization
        string, like ``'Bot abc.def'``.
    token_type: str
        ``'Bot'`` or ``'Bearer'``. Selects which activity keys
        are accepted.
    activities: dict or list[dict], optional
    os: str, optional
    browser: str, optional
    device: str, optional
    intents: int, optional
        Bitmask between 0 and 131071. Defaults to 513.
    presence_since: int or True, optional
        ``True`` means the time the payload is built.
    presence_status: str, optional
    presence_afk: bool, optional
    """
    def __init__(self, token, token_type='Bot', *, activities=None,
                 os=None, browser=None, device=None, intents=None,
                 presence_since=None, presence_status=None,
                 presence_afk=None):
        self.token = token
        self.token_type = token_type

        allowed = ACTIVITY_KEYS.get(token_type)
        if allowed is None:
            log.warning('[identify] Unknown token type %r, using the '
                        'activity keys for bots', token_type)
            allowed = ACTIVITY_KEYS['Bot']

        self.allowed_activity_keys = allowed
        self.activity_schema = Schema({Optional(k): object for k in allowed},
                                      extra=REMOVE_EXTRA)

        self.activities = self._check_activities(activities)

        self.os = self._check_property('os', os, DEFAULT_OS)
        self.browser = self._check_property('browser', browser, DEFAULT_BROWSER)
        self.device = self._check_property('device', device, DEFAULT_DEVICE)

        self.intents = DEFAULT_INTENTS
        if intents is not None:
            if _valid(INTENTS_SCHEMA, intents):
                self.intents = intents
            else:
                log.warning(f'[identify] Invalid intents: {intents!r}. Expected '
                            f'an integer between 0 and {MAX_INTENTS}. '
                            f'Defaulting to {DEFAULT_INTENTS} '
                            '(GUILDS, GUILD_MESSAGES).')

        # anything that isn't True or an int is dropped without a warning
        self.presence_since = None
        if presence_since is True or _valid(SINCE_SCHEMA, presence_since):
            self.presence_since = presence_since

        self.presence_status = None
        if presence_status is not None:
            if _valid(STRING_SCHEMA, presence_status):
                self.presence_status = presence_status
            else:
                log.warning(f'[identify] Invalid presence status: '
                            f'{presence_status!r}. Expected a string, '
                            'dropping it.')

        self.presence_afk = None
        if presence_afk is not None:
            if _valid(BOOL_SCHEMA, presence_afk):
                self.presence_afk = presence_afk
            else:
                log.warning(f'[identify] Invalid presence afk: '
                            f'{presence_afk!r}. Expected a boolean, '
                            'dropping it.')

    def __repr__(self):
        return (f'<IdentifyBuilder type={self.token_type} '
                f'intents={self.intents}>')

    def _check_property(self, name, value, default):
        if value is None:
            return default

        if not _valid(STRING_SCHEMA, value):
            log.warning(f'[identify] Invalid {name}: {value!r}. Expected a '
                        f'string. Defaulting to {default!r}.')
            return default

        return value

    def _filter_activity(self, activity):
        """Remove unknown keys from an activity.

        Returns
        -------
        dict or None
            The filtered activity, ``None`` if it ended up empty.
        """
        for key in activity:
            if key not in self.allowed_activity_keys:
                log.warning(f'[identify] Unknown activity key: {key!r}. '
                            'Removing it.')

        activity = self.activity_schema(dict(activity))
        if not activity:
            return None

        return activity

    def _check_activities(self, activities):
        if activities is None:
            return None

        if isinstance(activities, dict):
            activity = self._filter_activity(activities)
            if activity is None:
                log.warning('[identify] Empty activity. '
                            'No activities will be sent.')
                return None

            return [activity]

        if not isinstance(activities, list):
            log.warning(f'[identify] Invalid activities: {activities!r}. '
                        'Expected an activity or a list of activities.')
            return None

        result = []
        for activity in activities:
            if not isinstance(activity, dict):
                log.warning(f'[identify] Invalid activity: {activity!r}. '
                            'Removing it from the list.')
                continue

            if not activity:
                log.warning('[identify] Empty activity. '
                            'Removing it from the list.')
                continue

            filtered = self._filter_activity(activity)
            if filtered is None:
                log.warning('[identify] Activity is empty after removing '
                            'unknown keys. Removing it from the list.')
                continue

            result.append(filtered)

        if not result:
            log.warning('[identify] Empty activities list. '
                        'No activities will be sent.')
            return None

        return result

    def presence(self):
        """Get the presence object, ``None`` if there is nothing to send."""
        presence = {}

        if self.activities is not None:
            presence['activities'] = self.activities

        if self.presence_since is True:
            presence['since'] = now_ms()
        elif self.presence_since is not None:
            presence['since'] = self.presence_since

        if self.presence_status is not None:
            presence['status'] = self.presence_status

        if self.presence_afk is not None:
            presence['afk'] = self.presence_afk

        return presence or None

    def build(self) -> dict:
        """Build a full OP 2 Identify packet."""
        data = {
            'token': self.token,
            'intents': self.intents,
            'properties': {
                'os': self.os,
                'browser': self.browser,
                'device': self.device,
            },
        }

        presence = self.presence()
        if presence is not None:
            data['presence'] = presence

        return {
            'op': OP.IDENTIFY.value,
            'd': data,
        }
