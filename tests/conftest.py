import asyncio
import json

import pytest
import websockets
from websockets.frames import Close

from gatecord.err import GatewayURLError

GATEWAY = 'wss://gateway.test'

TEST_FLAGS = {
    'gateway': {
        'heartbeat_jitter': False,
        'invalid_session_delay': [0, 0],
    },
    'reconnect': {
        'base': 0,
        'max_delay': 0,
    },
}


async def wait_for(predicate, timeout=2.0):
    """Wait until predicate() is true."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError('condition not met in time')
        await asyncio.sleep(0.005)


class FakeWebsocket:
    """In-memory websocket, frames fed by the test."""
    def __init__(self, url):
        self.url = url
        self.incoming = asyncio.Queue()
        self.sent = []
        self.closed = None

    def feed(self, payload):
        if not isinstance(payload, (str, bytes)):
            payload = json.dumps(payload)
        self.incoming.put_nowait(payload)

    def server_close(self, code, reason=''):
        """The server closed the connection with a close frame."""
        self.closed = (code, reason)
        self.incoming.put_nowait(websockets.ConnectionClosed(Close(code, reason), None))

    def drop(self):
        """The connection died without a close frame."""
        self.closed = (1006, '')
        self.incoming.put_nowait(websockets.ConnectionClosed(None, None))

    async def recv(self):
        item = await self.incoming.get()
        if isinstance(item, Exception):
            raise item
        return item

    async def send(self, data):
        if self.closed is not None:
            raise websockets.ConnectionClosed(None, Close(*self.closed))
        self.sent.append(json.loads(data))

    async def close(self, code=1000, reason=''):
        if self.closed is not None:
            return
        self.closed = (code, reason)
        self.incoming.put_nowait(
            websockets.ConnectionClosed(Close(code, reason), Close(code, reason), True))


class FakeConnector:
    def __init__(self):
        self.urls = []
        self.sockets = []
        self.fail = 0

    async def __call__(self, url, **kwargs):
        self.urls.append(url)
        if self.fail:
            self.fail -= 1
            raise OSError('connection refused')

        ws = FakeWebsocket(url)
        self.sockets.append(ws)
        return ws


class FakeHTTP:
    def __init__(self, url=GATEWAY, fail=False):
        self.url = url
        self.fail = fail
        self.calls = 0

    async def get_gateway(self):
        self.calls += 1
        if self.fail:
            raise GatewayURLError('GET /gateway returned 500')
        return self.url

    async def close(self):
        pass


class FakeConn:
    """Stands in for GatewayClient in heartbeat tests."""
    def __init__(self):
        self.sent = []
        self.zombies = 0

    async def send_op(self, op, data=None):
        self.sent.append({'op': int(op), 'd': data})
        return 1

    def zombied(self):
        self.zombies += 1


@pytest.fixture
def connector():
    return FakeConnector()


@pytest.fixture
def http():
    return FakeHTTP()


@pytest.fixture
def fake_conn():
    return FakeConn()
