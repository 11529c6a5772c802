import inspect
import time

from .basics import API_VERSION


def now_ms() -> int:
    """Current wall-clock time, in milliseconds."""
    return int(time.time() * 1000)


async def maybe_coroutine(func, *args, **kwargs):
    """Call a function and await the result if it is awaitable."""
    res = func(*args, **kwargs)
    if inspect.isawaitable(res):
        return await res
    return res


def gateway_url(url, api_version=API_VERSION):
    """Build the websocket URL from a gateway URL."""
    return f'{url.rstrip("/")}/?v={api_version}&encoding=json'
