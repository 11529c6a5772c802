import asyncio
import logging

from ..utils import maybe_coroutine

log = logging.getLogger(__name__)


class EventDispatcher:
    """Delivers dispatched events to the user's handler.

    Events are put in a queue by the read loop and a single worker
    task calls the handler with them, one at a time, in the order
    they were received. A slow handler never holds the read loop
    or the heartbeats.

    Parameters
    ----------
    handler: function or coroutine function
        Called with each event payload(a dict with ``op``, ``d``, ``s``, ``t``).
    """
    def __init__(self, handler):
        self.handler = handler
        self.queue = asyncio.Queue()
        self._worker = None

    def __repr__(self):
        return f'<EventDispatcher pending={self.queue.qsize()} running={self.running}>'

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    def start(self):
        if self.running:
            return

        self._worker = asyncio.get_running_loop().create_task(self._work())

    def put(self, payload):
        """Queue an event for delivery."""
        self.queue.put_nowait(payload)

    async def join(self):
        """Wait until every queued event was delivered."""
        await self.queue.join()

    async def _deliver(self, payload):
        try:
            await maybe_coroutine(self.handler, payload)
        except asyncio.CancelledError:
            raise
        except Exception:
            log.error('[dispatch] Error in event handler for %r',
                      payload.get('t'), exc_info=True)

    async def _work(self):
        try:
            while True:
                payload = await self.queue.get()
                try:
                    await self._deliver(payload)
                finally:
                    self.queue.task_done()
        except asyncio.CancelledError:
            log.debug('[dispatch] worker cancelled')

    async def stop(self):
        """Stop delivering events.

        Events still in the queue are dropped, the handler is
        never called after this returns.
        """
        worker, self._worker = self._worker, None
        if worker is not None:
            worker.cancel()
            if worker is not asyncio.current_task():
                await asyncio.gather(worker, return_exceptions=True)

        dropped = 0
        while not self.queue.empty():
            self.queue.get_nowait()
            self.queue.task_done()
            dropped += 1

        if dropped:
            log.info('[dispatch] dropped %d pending events', dropped)
