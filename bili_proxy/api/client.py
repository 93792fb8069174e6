"""
Thin aiohttp wrapper handed to the key fetcher and the stream resolver.
Every call gets its own timeout and failures are turned into UpstreamError / UpstreamTimeout.
"""

import asyncio
import logging

import aiohttp

from bili_proxy.api.errors import UpstreamError, UpstreamTimeout
from config import Config


class HttpClient:
    """
    JSON over HTTP client bound to one aiohttp session.

    Usage:
        async with HttpClient() as client:
            data = await client.get_json('nav', url, headers=headers)
    """

    def __init__(self, timeout: float = None, session: aiohttp.ClientSession = None):
        self.timeout = aiohttp.ClientTimeout(total=timeout if timeout is not None else Config.UPSTREAM_TIMEOUT)
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self):
        if self._session is None:
            self._session = aiohttp.ClientSession()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def close(self):
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    async def get_json(self, step: str, url: str, params: dict = None, headers: dict = None) -> dict:
        """
        GET url and decode the JSON body
        :param step: pipeline step name, carried by the raised errors
        :param url: absolute url
        :param params: query parameters, sent in the given order
        :param headers: request headers
        :return: decoded JSON document
        """
        if self._session is None:
            raise RuntimeError("HttpClient must be used as an async context manager")

        logging.debug(f"[{step}] GET {url} params={params}")
        try:
            async with self._session.get(url, params=_stringify(params), headers=headers,
                                         timeout=self.timeout) as response:
                if response.status >= 400:
                    raise UpstreamError(step, f"HTTP {response.status} from {url}", response.status)
                return await response.json(content_type=None)
        except asyncio.TimeoutError as e:
            raise UpstreamTimeout(step, f"timed out after {self.timeout.total}s") from e
        except aiohttp.ClientError as e:
            raise UpstreamError(step, str(e) or e.__class__.__name__) from e
        except ValueError as e:
            raise UpstreamError(step, f"invalid JSON from {url}: {e}") from e


def _stringify(params: dict | None) -> dict | None:
    # aiohttp refuses bool query values
    if params is None:
        return None
    return {key: str(value).lower() if isinstance(value, bool) else value for key, value in params.items()}
