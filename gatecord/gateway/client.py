"""
client.py - Gateway client

    :class:`GatewayClient` keeps a connection to the gateway alive.
    It connects, identifies or resumes, heartbeats, hands dispatched
    events to the user's handler and reconnects when the websocket
    closes, resuming the session when possible.
"""
import asyncio
import logging
import random

import websockets

from ..config import merge_flags
from ..enums import OP, CloseCodes, CloseReasons, ConnectionStatus, \
    ConnectionOutcome, SESSION_ENDING_CODES
from ..err import Reconnect, PayloadDecodeError, ReconnectExhausted
from ..http import HTTPClient
from ..utils import gateway_url
from ..ws import WebsocketConnection, handler

from .state import SessionState
from .identify import IdentifyBuilder
from .heartbeat import HeartbeatScheduler
from .dispatcher import EventDispatcher

log = logging.getLogger(__name__)

# errors that mean the websocket couldn't be opened
CONNECT_ERRORS = (OSError, asyncio.TimeoutError, websockets.WebSocketException)


class Backoff:
    """Delays between connection attempts.

    The first reconnect is immediate, the following ones wait
    ``base * 2^n`` seconds(with jitter), up to ``max_delay``.

    Parameters
    ----------
    base: float
    max_delay: float
    max_retries: int or None
        Amount of reconnects allowed without a successful session
        in between. ``None`` for no limit.
    """
    def __init__(self, base=1.0, max_delay=60.0, max_retries=None):
        self.base = base
        self.max_delay = max_delay
        self.max_retries = max_retries
        self.attempts = 0

    def __repr__(self):
        return f'<Backoff attempts={self.attempts} max_retries={self.max_retries}>'

    def reset(self):
        self.attempts = 0

    def delay(self) -> float:
        """Count a reconnect and get how long to wait before it.

        Raises
        ------
        ReconnectExhausted
            If ``max_retries`` reconnects already happened.
        """
        self.attempts += 1
        if self.max_retries is not None and self.attempts > self.max_retries:
            raise ReconnectExhausted(f'Gave up after {self.max_retries} reconnects')

        if self.attempts == 1:
            return 0.0

        delay = min(self.max_delay, self.base * 2 ** (self.attempts - 2))
        return random.uniform(delay / 2, delay)


class GatewayClient(WebsocketConnection):
    """A connection to the gateway that survives disconnects.

    Parameters
    ----------
    token: str
        Authorization token.
    event_handler: function or coroutine function
        Called with every dispatched event(OP 0), in order.
    token_type: str, optional
        ``'Bot'`` or ``'Bearer'``. Defaults to the ``token_type`` flag.
    flags: dict, optional
        Configuration flags, see :data:`gatecord.config.DEFAULT_FLAGS`.
    http: :class:`HTTPClient`, optional
        REST client used to get the gateway URL.
    connector: coroutine function, optional
        Opens a websocket given a URL. Defaults to :func:`websockets.connect`.
    **identify
        Options for :class:`IdentifyBuilder`, they override
        the ``identify`` flags.

    Attributes
    ----------
    state: :class:`SessionState`
        Session data used to resume.
    status: :class:`ConnectionStatus`
        Where the client is in its lifecycle.
    heartbeat: :class:`HeartbeatScheduler`
    dispatcher: :class:`EventDispatcher`
    backoff: :class:`Backoff`
    """
    def __init__(self, token, event_handler, *, token_type=None, flags=None,
                 http=None, connector=None, **identify):
        self.flags = merge_flags(flags)
        gw_flags = self.flags['gateway']

        self.token = token
        self.token_type = token_type or self.flags['token_type']
        self.api_version = gw_flags['api_version']
        self.invalid_session_delay = gw_flags['invalid_session_delay']

        self.http = http or HTTPClient(token, self.token_type,
                                       base_url=gw_flags['base_url'],
                                       api_version=self.api_version)
        self._connect = connector or websockets.connect

        self.state = SessionState()
        self.status = ConnectionStatus.DISCONNECTED

        identify_options = {**self.flags['identify'], **identify}
        self.identify = IdentifyBuilder(self.authorization, self.token_type,
                                        **identify_options)

        self.heartbeat = HeartbeatScheduler(self, self.state,
                                            jitter=gw_flags['heartbeat_jitter'])
        self.dispatcher = EventDispatcher(event_handler)
        self.backoff = Backoff(**self.flags['reconnect'])

        # set by stop() and never cleared, a stopped client stays stopped
        self._closing = False
        self._stopped = asyncio.Event()
        self._close_task = None
        self._extra_delay = 0

        super().__init__()

    def __repr__(self):
        return f'<GatewayClient status={self.status.value} state={self.state!r}>'

    @property
    def authorization(self) -> str:
        return f'{self.token_type} {self.token}'

    async def connect_url(self) -> str:
        """Get the URL for the next websocket.

        Resumable sessions use their ``resume_gateway_url``,
        everything else asks the REST API for the gateway.

        Raises
        ------
        GatewayURLError
            When the gateway URL can't be fetched.
        """
        if self.state.resumable:
            log.info('[gateway] Resuming session %s at %s',
                     self.state.session_id, self.state.resume_gateway_url)
            url = self.state.resume_gateway_url
        else:
            url = await self.http.get_gateway()

        return gateway_url(url, self.api_version)

    async def do_identify(self):
        """Send an OP 2 Identify."""
        self.status = ConnectionStatus.IDENTIFYING
        payload = self.identify.build()

        log.info('[gateway] Identifying')
        log.debug('[gateway] Identify intents=%d properties=%r',
                  payload['d']['intents'], payload['d']['properties'])
        await self.send(payload)

    async def do_resume(self):
        """Send an OP 6 Resume with the current session state."""
        self.status = ConnectionStatus.RESUMING

        log.info('[gateway] Resuming session %s from seq %r',
                 self.state.session_id, self.state.sequence)
        await self.send_op(OP.RESUME, self.state.resume_payload(self.authorization))

    @handler(OP.HELLO)
    async def hello_handler(self, payload):
        """Handle OP 10 Hello.

        Sends an Identify or a Resume and starts heartbeating.
        """
        if self._closing:
            return

        data = payload.get('d')
        interval = data.get('heartbeat_interval') if isinstance(data, dict) else None
        if isinstance(interval, bool) or not isinstance(interval, int) or interval <= 0:
            log.error('[gateway] Hello without a valid heartbeat_interval: %r', data)
            return

        log.info('[gateway] Received Hello, heartbeat interval %dms', interval)

        if self.state.resumable:
            await self.do_resume()
        else:
            await self.do_identify()

        await self.heartbeat.start(interval)

    @handler(OP.HEARTBEAT)
    async def heartbeat_handler(self, payload):
        """Handle OP 1 Heartbeat, the server wants a heartbeat now."""
        log.debug('[gateway] Received heartbeat request')
        await self.heartbeat.beat_now()

    @handler(OP.HEARTBEAT_ACK)
    async def heartbeat_ack_handler(self, payload):
        """Handle OP 11 Heartbeat ACK."""
        self.heartbeat.ack()
        log.debug('[gateway] Received heartbeat ACK, latency %.3fs',
                  self.heartbeat.latency or 0)

    @handler(OP.DISPATCH)
    async def dispatch_handler(self, payload):
        """Handle OP 0 Dispatch.

        Updates the session state and queues the event for
        the event handler.
        """
        seq = payload.get('s')
        evt_name = payload.get('t')

        if isinstance(seq, bool) or not isinstance(seq, (int, type(None))):
            log.warning('[gateway] Dispatch %r with invalid seq %r', evt_name, seq)
        else:
            self.state.update_sequence(seq)

        if evt_name == 'READY':
            data = payload.get('d')
            if not isinstance(data, dict):
                data = {}

            self.state.mark_ready(data.get('session_id'),
                                  data.get('resume_gateway_url'))
            log.info('[gateway] Received READY, session %s', self.state.session_id)
            self.backoff.reset()
        elif evt_name == 'RESUMED':
            log.info('[gateway] Resumed session %s', self.state.session_id)
            self.backoff.reset()
        else:
            log.debug('[gateway] Dispatch %s, seq %r', evt_name, seq)

        if self.status in (ConnectionStatus.IDENTIFYING, ConnectionStatus.RESUMING):
            self.status = ConnectionStatus.CONNECTED

        self.dispatcher.put(payload)

    @handler(OP.RECONNECT)
    async def reconnect_handler(self, payload):
        """Handle OP 7 Reconnect."""
        if self.state.resumable:
            log.warning('[gateway] Received Reconnect, resuming')
            raise Reconnect(True)

        log.warning('[gateway] Received Reconnect without a resumable session')
        self.state.clear()
        raise Reconnect(False)

    @handler(OP.INVALID_SESSION)
    async def invalid_session_handler(self, payload):
        """Handle OP 9 Invalid Session.

        ``d`` tells if the session can still be resumed.
        """
        if payload.get('d') is True and self.state.resumable:
            log.warning('[gateway] Invalid session, resuming')
            raise Reconnect(True)

        log.warning('[gateway] Invalid session, starting a new one')
        self.state.clear()
        self._extra_delay = random.uniform(*self.invalid_session_delay)
        raise Reconnect(False)

    def zombied(self):
        """Close the websocket after heartbeats stopped being acknowledged.

        Called by the heartbeat watchdog, the read loop then
        sees the close and reconnects.
        """
        if self.ws is None or self._closing:
            return

        log.warning('[gateway] Closing zombied connection')
        self._close_task = asyncio.get_running_loop().create_task(
            self.ws.close(CloseCodes.UNKNOWN_ERROR, 'Heartbeat ACK timeout'))

    async def _close_ws(self, code=CloseCodes.UNKNOWN_ERROR, reason='Reconnecting'):
        close_task, self._close_task = self._close_task, None
        if close_task is not None:
            await asyncio.gather(close_task, return_exceptions=True)

        ws, self.ws = self.ws, None
        if ws is not None:
            # never 1000/1001 here, those end the session server-side
            await ws.close(code, reason)

    async def _read_loop(self):
        while True:
            try:
                payload = await self.recv()
            except PayloadDecodeError as err:
                log.warning('[gateway] Dropping malformed payload: %s', err)
                continue

            await self.process(payload)

    async def run_once(self, url) -> ConnectionOutcome:
        """Run one websocket, from connecting to closing.

        Returns
        -------
        :class:`ConnectionOutcome`
            ``CLEAN`` if :meth:`stop` was called, ``ABNORMAL`` otherwise.
        """
        self.status = ConnectionStatus.CONNECTING
        log.info('[gateway] Connecting to %s', url)

        try:
            ws = await self._connect(url, max_size=None)
        except CONNECT_ERRORS as err:
            log.warning('[gateway] Failed to connect: %r', err)
            return ConnectionOutcome.ABNORMAL

        self.ws = ws
        if self._closing:
            await self._close_ws(CloseCodes.NORMAL, 'Client stopped')
            return ConnectionOutcome.CLEAN

        try:
            await self._read_loop()
        except Reconnect as err:
            log.info('[gateway] Reconnecting, resume=%s', err.resume)
        except websockets.ConnectionClosed as err:
            code = err.rcvd.code if err.rcvd is not None else None
            reason = err.rcvd.reason if err.rcvd is not None else None
            if not reason:
                reason = CloseReasons.get(code)
            log.warning('[gateway] Websocket closed with %r, %r', code, reason)

            if code in SESSION_ENDING_CODES:
                log.warning('[gateway] Session ended by close code %d', code)
                self.state.clear()
        except Exception:
            log.error('[gateway] Error while running', exc_info=True)
        finally:
            await self.heartbeat.stop()
            await self._close_ws()

        if self._closing:
            return ConnectionOutcome.CLEAN

        return ConnectionOutcome.ABNORMAL

    async def _wait_stopped(self, delay):
        """Sleep for ``delay`` seconds or until :meth:`stop` is called."""
        try:
            await asyncio.wait_for(self._stopped.wait(), delay)
        except asyncio.TimeoutError:
            pass

    async def start(self):
        """Connect to the gateway and stay connected until :meth:`stop`.

        Returns right away if :meth:`stop` was already called.

        Raises
        ------
        GatewayURLError
            When the gateway URL can't be fetched, there is nothing to
            connect or resume to.
        ReconnectExhausted
            When ``max_retries`` is set and was reached.
        """
        if self._closing:
            log.info('[gateway] Client was stopped, not connecting')
            return

        self.dispatcher.start()

        first = True
        try:
            while not self._closing:
                if not first:
                    delay = self.backoff.delay() + self._extra_delay
                    self._extra_delay = 0

                    if delay > 0:
                        log.info('[gateway] Reconnecting in %.2fs', delay)
                        await self._wait_stopped(delay)

                    if self._closing:
                        break

                first = False
                url = await self.connect_url()
                outcome = await self.run_once(url)

                if outcome is ConnectionOutcome.CLEAN:
                    break
        finally:
            await self.heartbeat.stop()
            await self.dispatcher.stop()
            self.status = ConnectionStatus.DISCONNECTED
            log.info('[gateway] Disconnected')

    async def stop(self):
        """Close the connection for good.

        After this returns the event handler won't be called anymore.
        """
        if self._closing:
            return

        log.info('[gateway] Stopping')
        self._closing = True
        self._stopped.set()
        self.status = ConnectionStatus.CLOSING

        await self.heartbeat.stop()

        ws = self.ws
        if ws is not None:
            await ws.close(CloseCodes.NORMAL, 'Client stopped')

        # last, this can be called from the event handler itself
        await self.dispatcher.stop()

        self.status = ConnectionStatus.DISCONNECTED

    async def close(self):
        """Stop and close the REST client."""
        await self.stop()
        await self.http.close()
