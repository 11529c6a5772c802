"""
heartbeat.py - Heartbeating for gateway connections

    Two tasks run while a connection is alive:
     - the beat task, sending OP 1 Heartbeat every interval
     - the watchdog, waiting for an OP 11 Heartbeat ACK after each beat

    The beat task tells the watchdog about sent beats through a queue.
    If an ACK doesn't arrive within one interval, the connection is
    considered zombied and :meth:`GatewayClient.zombied` gets called.
"""
import asyncio
import logging
import random
import time

from ..enums import OP

log = logging.getLogger(__name__)


class HeartbeatScheduler:
    """Keeps a gateway connection alive.

    Parameters
    ----------
    conn: :class:`GatewayClient`
        Where to send heartbeats. Needs ``send_op`` and ``zombied``.
    state: :class:`SessionState`
        Heartbeats carry its latest sequence number.
    jitter: bool
        If the first beat waits a random fraction of the interval
        instead of the full interval.

    Attributes
    ----------
    interval: int or None
        Heartbeat interval, in milliseconds.
    latency: float or None
        Seconds between the last heartbeat and its ACK.
    """
    def __init__(self, conn, state, *, jitter=True):
        self.conn = conn
        self.state = state
        self.jitter = jitter

        self.interval = None
        self.latency = None

        self._beat_task = None
        self._watch_task = None

        self._reset = asyncio.Event()
        self._acked = asyncio.Event()
        self._sent = asyncio.Queue()
        self._last_send = None

    def __repr__(self):
        return f'<HeartbeatScheduler interval={self.interval} running={self.running}>'

    @property
    def running(self) -> bool:
        return self._beat_task is not None and not self._beat_task.done()

    @property
    def period(self) -> float:
        """The interval, in seconds."""
        return self.interval / 1000

    async def start(self, interval: int):
        """Start heartbeating every ``interval`` milliseconds.

        Restarts the tasks if they were already running.
        """
        await self.stop()

        self.interval = interval
        self._reset.clear()
        self._acked.clear()
        self._sent = asyncio.Queue()
        self._last_send = None

        loop = asyncio.get_running_loop()
        self._beat_task = loop.create_task(self._beat_loop())
        self._watch_task = loop.create_task(self._watchdog())
        log.info('[hb] started with interval %dms', interval)

    async def stop(self):
        """Cancel both tasks and wait for them to finish."""
        tasks = [t for t in (self._beat_task, self._watch_task) if t is not None]
        self._beat_task = None
        self._watch_task = None

        for task in tasks:
            task.cancel()

        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            log.debug('[hb] stopped')

    async def _beat(self):
        self._acked.clear()
        self._last_send = time.monotonic()

        seq = self.state.sequence
        log.debug('[hb] sending heartbeat, seq=%r', seq)
        await self.conn.send_op(OP.HEARTBEAT, seq)

        self._sent.put_nowait(self._last_send)

    async def beat_now(self):
        """Send a heartbeat right away and restart the interval.

        Used when the server requests a heartbeat with OP 1.
        """
        await self._beat()
        self._reset.set()

    def ack(self):
        """Mark the last heartbeat as acknowledged."""
        if self._last_send is not None:
            self.latency = time.monotonic() - self._last_send

        self._acked.set()

    async def _beat_loop(self):
        delay = self.period
        if self.jitter:
            delay *= random.random()

        try:
            while True:
                try:
                    # a reset means a beat was just sent by beat_now
                    await asyncio.wait_for(self._reset.wait(), delay)
                    self._reset.clear()
                except asyncio.TimeoutError:
                    await self._beat()

                delay = self.period
        except asyncio.CancelledError:
            log.debug('[hb] beat task cancelled')

    async def _watchdog(self):
        try:
            while True:
                await self._sent.get()

                # only the newest beat matters
                while not self._sent.empty():
                    self._sent.get_nowait()

                try:
                    await asyncio.wait_for(self._acked.wait(), self.period)
                except asyncio.TimeoutError:
                    log.warning('[hb] no ACK in %dms, connection is zombied',
                                self.interval)
                    self.conn.zombied()
                    return
        except asyncio.CancelledError:
            log.debug('[hb] watchdog cancelled')
