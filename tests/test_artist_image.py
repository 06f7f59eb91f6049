import unittest

from lib.bandcamp.artist_image import find_artist_image, photo_from_profile
from lib.bandcamp.search import build_search_url

from _helpers import PROFILE_URL, FakeFetcher, artist_routes, ok, search_page, status


class ProfilePhotoTests(unittest.TestCase):
    def test_relative_photo_is_resolved_and_upgraded(self):
        html = '<div class="band-photo"><img data-src="/img/0011_10.jpg"></div>'
        self.assertEqual(photo_from_profile(html, PROFILE_URL), "https://realperformer.bandcamp.com/img/0011_0.jpg")

    def test_no_photo(self):
        self.assertIsNone(photo_from_profile("<html><body>nothing</body></html>", PROFILE_URL))


class FindArtistImageTests(unittest.IsolatedAsyncioTestCase):
    async def test_exact_match(self):
        fetcher = FakeFetcher(artist_routes("Real Performer"))
        image = await find_artist_image("Real Performer", fetcher)
        self.assertEqual(image.image_url, "https://f4.bcbits.com/img/0099887766_0.jpg")
        self.assertEqual(image.source_url, PROFILE_URL)

    async def test_near_miss_is_not_a_match(self):
        fetcher = FakeFetcher({
            build_search_url("Real Performer"): ok(search_page([
                {"type": "ARTIST", "heading": "Real Performers", "url": "https://other.bandcamp.com"},
                {"type": "ALBUM", "heading": "Real Performer", "url": "https://x.bandcamp.com/album/y"},
            ])),
        })
        self.assertIsNone(await find_artist_image("Real Performer", fetcher))
        self.assertEqual(fetcher.calls, [build_search_url("Real Performer")])

    async def test_match_ignores_case_and_spacing(self):
        routes = artist_routes("Real  performer")
        fetcher = FakeFetcher({build_search_url("real performer"): routes[build_search_url("Real  performer")], **routes})
        image = await find_artist_image("real performer", fetcher)
        self.assertEqual(image.source_url, PROFILE_URL)

    async def test_failures_are_not_found(self):
        fetcher = FakeFetcher({build_search_url("Boom"): RuntimeError("network down")})
        self.assertIsNone(await find_artist_image("Boom", fetcher))
        self.assertIsNone(await find_artist_image("Nobody", FakeFetcher()))
        self.assertIsNone(await find_artist_image("   ", FakeFetcher()))

    async def test_failed_lookup_is_not_cached(self):
        cache = {}
        broken = FakeFetcher({build_search_url("Real Performer"): RuntimeError("timeout")})
        self.assertIsNone(await find_artist_image("Real Performer", broken, cache=cache))
        self.assertNotIn("real performer", cache)

        failing_profile = FakeFetcher({**artist_routes("Real Performer"), PROFILE_URL: status(503)})
        self.assertIsNone(await find_artist_image("Real Performer", failing_profile, cache=cache))
        self.assertNotIn("real performer", cache)

        healthy = FakeFetcher(artist_routes("Real Performer"))
        image = await find_artist_image("Real Performer", healthy, cache=cache)
        self.assertEqual(image.source_url, PROFILE_URL)
        self.assertIs(cache["real performer"], image)

    async def test_no_match_is_cached(self):
        fetcher = FakeFetcher({
            build_search_url("Nobody"): ok(search_page([])),
            build_search_url("nobody"): ok(search_page([])),
        })
        cache = {}
        await find_artist_image("Nobody", fetcher, cache=cache)
        await find_artist_image("  nobody ", fetcher, cache=cache)
        self.assertEqual(len(fetcher.calls), 1)
        self.assertIsNone(cache["nobody"])


if __name__ == "__main__":
    unittest.main()
