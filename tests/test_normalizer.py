import unittest
from lib.bandcamp.normalizer import (
    format_duration,
    normalize_name,
    split_artist_title,
    strip_bullet_prefix,
    strip_from_by_prefix,
    upgrade_image_url,
)


class NormalizeTests(unittest.TestCase):
    def test_normalize_name_lowercases_and_collapses_spaces(self):
        self.assertEqual(normalize_name("  The   Band\tName "), "the band name")
        self.assertEqual(normalize_name(None), "")

    def test_split_uses_last_separator(self):
        self.assertEqual(
            split_artist_title("NA-3LDK / DEFRIC - Song Title"),
            ("NA-3LDK / DEFRIC", "Song Title"),
        )
        self.assertEqual(split_artist_title("A - B - Final"), ("A - B", "Final"))

    def test_split_loose_pattern_and_no_separator(self):
        self.assertEqual(split_artist_title("Artist\t-\tTitle"), ("Artist", "Title"))
        self.assertEqual(split_artist_title("Bim-Bam"), (None, "Bim-Bam"))
        self.assertEqual(split_artist_title(""), (None, ""))

    def test_prefix_cleanup(self):
        self.assertEqual(strip_from_by_prefix("from Summer Comp by Label Records"), "Label Records")
        self.assertEqual(strip_from_by_prefix("Label Records"), "Label Records")
        self.assertEqual(strip_bullet_prefix("Artist Name • Song"), "Song")

    def test_format_duration(self):
        self.assertEqual(format_duration(205.5), "00:03:25")
        self.assertEqual(format_duration(3725), "01:02:05")
        self.assertEqual(format_duration("61"), "00:01:01")
        self.assertEqual(format_duration(0), "")
        self.assertEqual(format_duration(None), "")
        self.assertEqual(format_duration("n/a"), "")

    def test_upgrade_image_url_strips_size_suffix(self):
        self.assertEqual(
            upgrade_image_url("https://f4.bcbits.com/img/a0123456789_10.jpg"),
            "https://f4.bcbits.com/img/a0123456789_0.jpg",
        )
        self.assertEqual(
            upgrade_image_url("https://f4.bcbits.com/img/0011_21.png"),
            "https://f4.bcbits.com/img/0011_0.png",
        )
        self.assertEqual(upgrade_image_url("https://x/img/photo.jpg"), "https://x/img/photo.jpg")


if __name__ == "__main__":
    unittest.main()
