import unittest

from crawler.normalizer import normalize_url, try_normalize_url, session_name_for


class TestNormalizeUrl(unittest.TestCase):

    def test_root_gets_single_slash(self):
        self.assertEqual(normalize_url("https://example.com"), "https://example.com/")
        self.assertEqual(normalize_url("https://example.com/"), "https://example.com/")

    def test_scheme_and_host_lowercased(self):
        self.assertEqual(normalize_url("HTTPS://Example.COM/About"), "https://example.com/About")

    def test_fragment_stripped(self):
        self.assertEqual(normalize_url("https://example.com/a#section-2"), "https://example.com/a")

    def test_trailing_slash_removed_from_paths(self):
        self.assertEqual(normalize_url("https://example.com/docs/"), "https://example.com/docs")

    def test_query_kept(self):
        self.assertEqual(normalize_url("https://example.com/list/?page=2"), "https://example.com/list?page=2")

    def test_path_params_kept(self):
        first = normalize_url("https://example.com/item;id=1")
        second = normalize_url("https://example.com/item;id=2#top")
        self.assertEqual(first, "https://example.com/item;id=1")
        self.assertEqual(second, "https://example.com/item;id=2")

    def test_default_port_dropped_other_port_kept(self):
        self.assertEqual(normalize_url("https://example.com:443/a"), "https://example.com/a")
        self.assertEqual(normalize_url("http://example.com:80/a"), "http://example.com/a")
        self.assertEqual(normalize_url("http://example.com:8080/a"), "http://example.com:8080/a")

    def test_relative_and_empty_urls_rejected(self):
        for bad in ("", "/relative/path", "example.com/no-scheme", "http://"):
            with self.subTest(url=bad):
                with self.assertRaises(ValueError):
                    normalize_url(bad)

    def test_bad_port_rejected(self):
        self.assertIsNone(try_normalize_url("http://example.com:abc/"))


class TestSessionName(unittest.TestCase):

    def test_non_word_characters_replaced(self):
        self.assertEqual(session_name_for("https://www.example.com/path?q=1"), "www_example_com")

    def test_port_not_part_of_name(self):
        self.assertEqual(session_name_for("http://localhost:8000/"), "localhost")


if __name__ == "__main__":
    unittest.main()
