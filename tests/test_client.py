import asyncio
import unittest

import aiohttp

from bili_proxy.api.client import HttpClient
from bili_proxy.api.errors import UpstreamError, UpstreamTimeout
from config import Config


class FakeResponse:
    def __init__(self, status=200, payload=None, error=None):
        self.status = status
        self.payload = payload
        self.error = error

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return None

    async def json(self, content_type='application/json'):
        if self.error:
            raise self.error
        return self.payload


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.requests = []

    def get(self, url, **kwargs):
        self.requests.append((url, kwargs))
        if self.error:
            raise self.error
        return self.response


class HttpClientTests(unittest.IsolatedAsyncioTestCase):
    async def test_json(self) -> None:
        session = FakeSession(FakeResponse(payload={'code': 0}))
        async with HttpClient(timeout=3, session=session) as client:
            res = await client.get_json('view', 'https://api.example.com/view', params={'fourk': True, 'cid': 1})
        self.assertEqual(res, {'code': 0})
        url, kwargs = session.requests[0]
        self.assertEqual(kwargs['params'], {'fourk': 'true', 'cid': 1})
        self.assertEqual(kwargs['timeout'].total, 3)

    async def test_http_error_status(self) -> None:
        session = FakeSession(FakeResponse(status=412))
        async with HttpClient(session=session) as client:
            with self.assertRaises(UpstreamError) as ctx:
                await client.get_json('playurl', 'https://api.example.com/playurl')
        self.assertEqual(ctx.exception.status, 412)
        self.assertEqual(ctx.exception.step, 'playurl')

    async def test_timeout(self) -> None:
        session = FakeSession(error=asyncio.TimeoutError())
        async with HttpClient(session=session) as client:
            with self.assertRaises(UpstreamTimeout):
                await client.get_json('nav', 'https://api.example.com/nav')

    async def test_connection_error(self) -> None:
        session = FakeSession(error=aiohttp.ClientConnectionError('refused'))
        async with HttpClient(session=session) as client:
            with self.assertRaises(UpstreamError) as ctx:
                await client.get_json('nav', 'https://api.example.com/nav')
        self.assertNotIsInstance(ctx.exception, UpstreamTimeout)

    async def test_invalid_json(self) -> None:
        session = FakeSession(FakeResponse(error=ValueError('Expecting value')))
        async with HttpClient(session=session) as client:
            with self.assertRaises(UpstreamError):
                await client.get_json('view', 'https://api.example.com/view')

    async def test_requires_context_manager(self) -> None:
        with self.assertRaises(RuntimeError):
            await HttpClient().get_json('nav', 'https://api.example.com/nav')

    async def test_zero_timeout_kept(self) -> None:
        self.assertEqual(HttpClient(timeout=0).timeout.total, 0)
        self.assertEqual(HttpClient().timeout.total, Config.UPSTREAM_TIMEOUT)


if __name__ == "__main__":
    unittest.main()
