import unittest

from lib.bandcamp.errors import InvalidInput, UpstreamFetchFailed
from lib.bandcamp.search import (
    MAX_QUERY_LENGTH,
    build_search_url,
    classify_item_type,
    parse_search_results,
    search_catalog,
)

from _helpers import FakeFetcher, ok, search_page, status

RESULTS_HTML = search_page([
    {
        "type": "ALBUM",
        "heading": "Summer Comp",
        "subhead": "by Label Records",
        "url": "https://labelrecords.bandcamp.com/album/summer-comp?from=search",
        "img": "https://f4.bcbits.com/img/a0123456789_7.jpg",
    },
    {"type": "ARTIST", "heading": "Label Records", "url": "https://labelrecords.bandcamp.com"},
    {
        "type": "TRACK",
        "heading": "Song Title",
        "subhead": "from Summer Comp by Real Performer",
        "url": "/track/song-title",
    },
    {"type": "TRACK", "heading": "", "url": "https://x.bandcamp.com/track/untitled"},
])


class SearchParsingTests(unittest.TestCase):
    def test_build_search_url_encodes_query(self):
        self.assertEqual(build_search_url("a b&c/d"), "https://bandcamp.com/search?q=a%20b%26c%2Fd")

    def test_classify_item_type(self):
        self.assertEqual(classify_item_type("ALBUM"), "album")
        self.assertEqual(classify_item_type("song"), "track")
        self.assertEqual(classify_item_type("band"), "artist")
        self.assertEqual(classify_item_type("", "https://x.bandcamp.com/track/y"), "track")
        self.assertEqual(classify_item_type("", "https://x.bandcamp.com/"), "unknown")

    def test_parse_keeps_document_order_and_cleans_text(self):
        results = parse_search_results(RESULTS_HTML)
        self.assertEqual([r.type for r in results], ["album", "artist", "track", "track"])

        album = results[0]
        self.assertEqual(album.title, "Summer Comp")
        self.assertEqual(album.artist, "Label Records")
        self.assertEqual(album.cover_art, "https://f4.bcbits.com/img/a0123456789_7.jpg")

        track = results[2]
        self.assertEqual(track.artist, "Real Performer")
        self.assertEqual(track.url, "https://bandcamp.com/track/song-title")
        self.assertEqual(track.cover_art, "")


class SearchCatalogTests(unittest.IsolatedAsyncioTestCase):
    async def test_only_titled_albums_and_tracks(self):
        fetcher = FakeFetcher({build_search_url("summer comp"): ok(RESULTS_HTML)})
        results = await search_catalog("  summer comp ", fetcher)
        self.assertEqual([(r.type, r.title) for r in results], [("album", "Summer Comp"), ("track", "Song Title")])

    async def test_query_validation(self):
        fetcher = FakeFetcher()
        with self.assertRaises(InvalidInput):
            await search_catalog("   ", fetcher)
        with self.assertRaises(InvalidInput):
            await search_catalog("x" * (MAX_QUERY_LENGTH + 1), fetcher)
        self.assertEqual(fetcher.calls, [])

    async def test_upstream_failure(self):
        fetcher = FakeFetcher({build_search_url("q"): status(503)})
        with self.assertRaises(UpstreamFetchFailed) as cm:
            await search_catalog("q", fetcher)
        self.assertEqual(cm.exception.status, 503)


if __name__ == "__main__":
    unittest.main()
