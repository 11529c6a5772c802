"""
ws - Websocket connection base
    This implements the basic packet handling of a websocket
    that talks Discord's gateway format.

    Handlers for OP codes are declared with the :func:`handler`
    decorator and get registered on instantiation.

    :class:`GatewayClient` inherits from this class.
"""

import json
import inspect
import logging
import pprint

import websockets

from .enums import OP
from .err import PayloadDecodeError

log = logging.getLogger(__name__)


class Handler:
    """Describes a handler for a specific OP code."""
    def __init__(self, op):
        self.op = op
        self.func = None

    def is_mine(self, op):
        return self.op == op

    def __call__(self, func):
        self.func = func
        self.__doc__ = func.__doc__
        return self

    def __repr__(self):
        return f'Handler({self.op!r}, {self.func})'

    async def run(self, conn, payload):
        await self.func(conn, payload)


def handler(op):
    return Handler(op)


def json_encoder(obj):
    return json.dumps(obj)


def json_decoder(raw_data):
    """Decode a raw websocket message into a payload.

    Raises
    ------
    PayloadDecodeError
        If the message isn't JSON or isn't a gateway payload.
    """
    if isinstance(raw_data, bytes):
        try:
            raw_data = raw_data.decode('utf-8')
        except UnicodeDecodeError as err:
            raise PayloadDecodeError(f'invalid utf-8: {err}') from err

    try:
        payload = json.loads(raw_data)
    except json.JSONDecodeError as err:
        raise PayloadDecodeError(f'invalid json: {err}') from err

    if not isinstance(payload, dict) or 'op' not in payload:
        raise PayloadDecodeError(f'not a gateway payload: {payload!r}')

    return payload


class WebsocketConnection:
    """Base class for something that speaks the gateway format
    over a websocket.

    Attributes
    ----------
    ws: websocket or None
        The current websocket, ``None`` when not connected.
    """
    def __init__(self, ws=None):
        self.ws = ws

        self._encoder = json_encoder
        self._decoder = json_decoder

        self._handlers = []
        self._register()

    def _register(self):
        """Register all handlers"""
        methods = inspect.getmembers(self)

        for _method_id, method in methods:
            if isinstance(method, Handler):
                self._handlers.append(method)

    async def send(self, anything) -> int:
        """Send anything through the websocket, if its a payload(dict)
        it gets encoded.

        Returns
        -------
        int
            The amount of bytes transmitted, 0 if the websocket is closed.
        """
        log.debug('[ws:send] %s', pprint.pformat(anything))
        anything = self._encoder(anything)

        if self.ws is None:
            log.warning('[ws:send] no websocket to send to')
            return 0

        try:
            await self.ws.send(anything)
        except websockets.ConnectionClosed:
            log.info('[ws:send] websocket is closed, dropping payload')
            return 0

        return len(anything)

    async def send_op(self, op, data=None):
        """Send a payload with an OP code.

        Parameters
        ----------
        op: int
            OP code to be sent.
        data: any
            OP code data.
        """
        return await self.send({
            'op': int(op),
            'd': data,
        })

    async def recv(self):
        """Receive a payload from the websocket.

        Returns
        -------
        dict

        Raises
        ------
        PayloadDecodeError
            When the message can't be decoded.
        """
        raw = await self.ws.recv()
        payload = self._decoder(raw)
        log.debug('[ws:recv] %s', pprint.pformat(payload))
        return payload

    async def _process(self, payload):
        """Process a payload

        This checks for the payload's OP code and runs its handler.
        Payloads without a handler are logged and ignored.
        """
        op = OP.parse(payload['op'])

        for op_handler in self._handlers:
            if op_handler.is_mine(op):
                log.debug('Handling OP %s', op.name)
                await op_handler.run(self, payload)
                return

        await self.unhandled(payload)

    async def unhandled(self, payload):
        """Called with payloads that have no handler. Can be overwritten."""
        log.warning('[ws] Unhandled OP code: %r', payload.get('op'))

    async def process(self, payload):
        """Can be overwritten."""
        return await self._process(payload)
