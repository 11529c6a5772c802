__title__ = 'gatecord'
__license__ = 'MIT'
__version__ = '0.1.0'

from .basics import API_VERSION, API_BASE, DEFAULT_INTENTS
from .enums import OP, CloseCodes, ConnectionStatus, ConnectionOutcome, Intents
from .err import GatewayError, GatewayURLError, ReconnectExhausted, \
    ConfigError, PayloadDecodeError
from .config import DEFAULT_FLAGS, load_config, check_configuration, \
    merge_flags, resolve_verbosity
from .http import HTTPClient
from .snowflake import snowflake_time, deconstruct
from .gateway import GatewayClient, SessionState, IdentifyBuilder, \
    HeartbeatScheduler, EventDispatcher, Backoff
