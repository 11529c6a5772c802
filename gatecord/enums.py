"""
enums.py - Various Enums used by gatecord
"""
import enum


class OP(enum.IntEnum):
    """Gateway OP codes.

    Any OP code not listed here becomes :attr:`OP.UNKNOWN`
    when parsed with :meth:`OP.parse`.
    """
    UNKNOWN = -1

    DISPATCH = 0
    HEARTBEAT = 1
    IDENTIFY = 2
    STATUS_UPDATE = 3

    VOICE_STATE_UPDATE = 4

    RESUME = 6
    RECONNECT = 7
    REQUEST_GUILD_MEMBERS = 8
    INVALID_SESSION = 9
    HELLO = 10

    HEARTBEAT_ACK = 11

    @classmethod
    def parse(cls, value):
        # bools are ints, they are still not OP codes
        if isinstance(value, bool) or not isinstance(value, int):
            return cls.UNKNOWN

        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN


class CloseCodes:
    """Websocket close codes used by the gateway."""
    NORMAL = 1000
    GOING_AWAY = 1001

    UNKNOWN_ERROR = 4000
    UNKNOWN_OP = 4001
    DECODE_ERROR = 4002

    NOT_AUTH = 4003
    AUTH_FAILED = 4004
    ALREADY_AUTH = 4005
    INVALID_SEQ = 4007
    RATE_LIMITED = 4008
    SESSION_TIMEOUT = 4009

    INVALID_SHARD = 4010
    SHARDING_REQUIRED = 4011
    INVALID_API_VERSION = 4012
    INVALID_INTENTS = 4013
    DISALLOWED_INTENTS = 4014

# Close codes after which the session can't be resumed anymore
SESSION_ENDING_CODES = (
    CloseCodes.INVALID_SEQ,
    CloseCodes.SESSION_TIMEOUT,
)

CloseReasons = {
    CloseCodes.UNKNOWN_ERROR: 'Unknown error',
    CloseCodes.UNKNOWN_OP: 'Unknown OP code',
    CloseCodes.DECODE_ERROR: 'Decode error',
    CloseCodes.NOT_AUTH: 'Not authenticated',
    CloseCodes.AUTH_FAILED: 'Authentication failed',
    CloseCodes.ALREADY_AUTH: 'Already authenticated',
    CloseCodes.INVALID_SEQ: 'Invalid sequence',
    CloseCodes.RATE_LIMITED: 'Rate limited',
    CloseCodes.SESSION_TIMEOUT: 'Session timed out',
    CloseCodes.INVALID_SHARD: 'Invalid shard',
    CloseCodes.SHARDING_REQUIRED: 'Sharding required',
    CloseCodes.INVALID_API_VERSION: 'Invalid API version',
    CloseCodes.INVALID_INTENTS: 'Invalid intents',
    CloseCodes.DISALLOWED_INTENTS: 'Disallowed intents',
}


class ConnectionStatus(enum.Enum):
    """Where a :class:`GatewayClient` is in its lifecycle."""
    DISCONNECTED = 'disconnected'
    CONNECTING = 'connecting'
    IDENTIFYING = 'identifying'
    RESUMING = 'resuming'
    CONNECTED = 'connected'
    CLOSING = 'closing'


class ConnectionOutcome(enum.Enum):
    """How one websocket lifetime ended."""
    CLEAN = 'clean'
    ABNORMAL = 'abnormal'


class Intents:
    """Gateway intent flags."""
    FLAGS = {
        'guilds': 1 << 0,
        'guild_members': 1 << 1,
        'guild_bans': 1 << 2,
        'guild_emojis_and_stickers': 1 << 3,
        'guild_integrations': 1 << 4,
        'guild_webhooks': 1 << 5,
        'guild_invites': 1 << 6,
        'guild_voice_states': 1 << 7,
        'guild_presences': 1 << 8,
        'guild_messages': 1 << 9,
        'guild_message_reactions': 1 << 10,
        'guild_message_typing': 1 << 11,
        'direct_messages': 1 << 12,
        'direct_message_reactions': 1 << 13,
        'direct_message_typing': 1 << 14,
        'message_content': 1 << 15,
        'guild_scheduled_events': 1 << 16,
    }

    @classmethod
    def calculate(cls, names) -> int:
        """Turn a list of intent names into an intents bitmask.

        Raises
        ------
        KeyError
            If any name isn't a known intent.
        """
        value = 0
        for name in names:
            value |= cls.FLAGS[name.lower()]
        return value

    @classmethod
    def reverse(cls, value: int) -> list:
        """Get the intent names set in a bitmask."""
        return [name for name, flag in cls.FLAGS.items() if value & flag]
