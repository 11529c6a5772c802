"""
http.py - REST client

    The gateway only needs two things from the REST API:
    the gateway URL(``GET /gateway``) and a way to make
    authenticated requests, which event handlers can use too.
"""
import asyncio
import json
import logging

import aiohttp

from .basics import API_BASE, API_VERSION
from .err import GatewayURLError

log = logging.getLogger(__name__)


class HTTPClient:
    """Small REST client on top of :class:`aiohttp.ClientSession`.

    Parameters
    ----------
    token: str
        Authorization token.
    token_type: str
        ``'Bot'`` or ``'Bearer'``.
    base_url: str, optional
        Defaults to ``https://discord.com/api``.
    api_version: int, optional
    session: :class:`aiohttp.ClientSession`, optional
        Session to use. One is created on first use if not given.
    """
    def __init__(self, token, token_type='Bot', *, base_url=API_BASE,
                 api_version=API_VERSION, session=None):
        self.token = token
        self.token_type = token_type
        self.api_version = api_version
        self.base_url = f'{base_url.rstrip("/")}/v{api_version}'

        self._session = session
        self._own_session = session is None

    def __repr__(self):
        return f'<HTTPClient base={self.base_url!r}>'

    @property
    def authorization(self) -> str:
        """Value of the ``Authorization`` header."""
        return f'{self.token_type} {self.token}'

    @property
    def session(self):
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._own_session = True
        return self._session

    def route(self, path):
        return f'{self.base_url}/{path.lstrip("/")}'

    async def request(self, method, path, body=None, headers=None):
        """Make an authenticated request to the API.

        Parameters
        ----------
        method: str
        path: str
            Path relative to the API base, like ``'users/@me'``.
        body: any, optional
            JSON serializable request body.
        headers: dict, optional
            Extra headers.

        Returns
        -------
        tuple
            The status code and the response body, decoded
            from JSON when possible.
        """
        req_headers = {'Authorization': self.authorization}
        if headers:
            req_headers.update(headers)

        url = self.route(path)
        log.debug('[http] %s %s', method, url)

        async with self.session.request(method, url, json=body,
                                        headers=req_headers) as resp:
            text = await resp.text()
            try:
                data = json.loads(text) if text else None
            except json.JSONDecodeError:
                data = text

            if resp.status >= 400:
                log.error('[http] %s %s failed with %d: %r',
                          method, url, resp.status, data)

            return resp.status, data

    async def get_gateway(self) -> str:
        """Get the gateway URL.

        Raises
        ------
        GatewayURLError
            If the URL can't be fetched.
        """
        url = self.route('gateway')
        try:
            async with self.session.get(url) as resp:
                if resp.status != 200:
                    body = await resp.text()
                    raise GatewayURLError(f'GET /gateway returned {resp.status}: {body}')

                data = await resp.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError,
                json.JSONDecodeError) as err:
            raise GatewayURLError(f'Failed to get gateway URL: {err!r}') from err

        try:
            gateway = data['url']
        except (KeyError, TypeError):
            raise GatewayURLError(f'No gateway URL in {data!r}')

        log.info('[http] gateway: %s', gateway)
        return gateway

    async def close(self):
        if self._own_session and self._session is not None:
            await self._session.close()
            self._session = None
