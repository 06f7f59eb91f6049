import unittest

import httpx

from lib.bandcamp.errors import SafetyRejected, UpstreamFetchFailed
from lib.bandcamp.fetcher import HttpxFetcher, _guard_redirect_target, media_headers, page_headers

from _helpers import TRACK_URL


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        transport=httpx.MockTransport(handler),
        follow_redirects=True,
        event_hooks={"request": [_guard_redirect_target]},
    )


class HttpxFetcherTests(unittest.IsolatedAsyncioTestCase):
    async def test_get_returns_status_headers_and_body(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["ua"] = request.headers.get("user-agent")
            return httpx.Response(200, headers={"Content-Type": "text/html"}, content=b"<html>ok</html>")

        async with _client(handler) as client:
            fetcher = HttpxFetcher(client=client)
            result = await fetcher.get(TRACK_URL, page_headers())

        self.assertEqual(result.status, 200)
        self.assertEqual(result.text, "<html>ok</html>")
        self.assertEqual(result.header("content-type"), "text/html")
        self.assertEqual(seen["ua"], page_headers()["User-Agent"])

    async def test_non_2xx_is_returned_not_raised(self):
        async with _client(lambda request: httpx.Response(410)) as client:
            result = await HttpxFetcher(client=client).get(TRACK_URL, media_headers())
        self.assertEqual(result.status, 410)
        self.assertFalse(result.ok)

    async def test_network_error_becomes_upstream_failure(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with _client(handler) as client:
            with self.assertRaises(UpstreamFetchFailed):
                await HttpxFetcher(client=client).get(TRACK_URL)

    async def test_redirect_to_internal_host_is_blocked(self):
        for target in ("http://127.0.0.1/admin", "http://127.1/admin", "http://0x7f000001/admin"):
            def handler(request, target=target):
                if request.url.host == "labelrecords.bandcamp.com":
                    return httpx.Response(302, headers={"Location": target})
                return httpx.Response(200, content=b"secret")

            with self.subTest(target=target):
                async with _client(handler) as client:
                    with self.assertRaises(SafetyRejected):
                        await HttpxFetcher(client=client).get(TRACK_URL)

    async def test_guard_allows_public_hosts(self):
        await _guard_redirect_target(httpx.Request("GET", TRACK_URL))
        with self.assertRaises(SafetyRejected):
            await _guard_redirect_target(httpx.Request("GET", "http://localhost/x"))

    async def test_owned_client_is_closed(self):
        fetcher = HttpxFetcher(timeout_s=1)
        async with fetcher:
            pass
        self.assertTrue(fetcher._client.is_closed)


class HeaderTests(unittest.TestCase):
    def test_media_headers_carry_referer(self):
        headers = media_headers()
        self.assertEqual(headers["Referer"], "https://bandcamp.com/")
        self.assertEqual(headers["Accept"], "audio/*,*/*")


if __name__ == "__main__":
    unittest.main()
