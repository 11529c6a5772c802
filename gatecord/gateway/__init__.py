from .state import SessionState
from .identify import IdentifyBuilder
from .heartbeat import HeartbeatScheduler
from .dispatcher import EventDispatcher
from .client import GatewayClient, Backoff
