import unittest
from unittest.mock import MagicMock, patch

import requests

from rendering.engine import RenderTimeoutError, NavigationError, InvalidUrlError
from rendering.static_backend import StaticBackend


def response(status=200, content_type="text/html; charset=utf-8", url="https://example.com/", text="<html></html>"):
    r = MagicMock()
    r.status_code = status
    r.headers = {"Content-Type": content_type}
    r.url = url
    r.text = text
    return r


class TestStaticBackend(unittest.TestCase):

    def setUp(self):
        patcher = patch("rendering.static_backend.requests.Session")
        self.session_cls = patcher.start()
        self.addCleanup(patcher.stop)
        self.session = self.session_cls.return_value
        self.backend = StaticBackend()

    def serve(self, r):
        ctx = self.session.get.return_value
        ctx.__enter__.return_value = r
        ctx.__exit__.return_value = False

    def test_returns_document_for_final_url(self):
        self.serve(response(url="https://example.com/landing", text="<title>Hi</title><p>x</p>"))

        doc = self.backend.render("https://example.com/start", timeout=7)

        self.assertEqual(doc.requested_url, "https://example.com/start")
        self.assertEqual(doc.final_url, "https://example.com/landing")
        self.assertEqual(doc.title(), "Hi")
        self.assertEqual(doc.status_code, 200)
        _, kwargs = self.session.get.call_args
        self.assertEqual(kwargs["timeout"], 7)
        self.assertTrue(kwargs["allow_redirects"])

    def test_timeout_maps_to_render_timeout(self):
        self.session.get.side_effect = requests.exceptions.Timeout("read timed out")
        with self.assertRaises(RenderTimeoutError):
            self.backend.render("https://example.com/", timeout=1)

    def test_connection_error_maps_to_navigation_error(self):
        self.session.get.side_effect = requests.exceptions.ConnectionError("connection reset")
        with self.assertRaises(NavigationError):
            self.backend.render("https://example.com/", timeout=1)

    def test_http_error_status_is_navigation_error(self):
        self.serve(response(status=503))
        with self.assertRaises(NavigationError) as cm:
            self.backend.render("https://example.com/", timeout=1)
        self.assertIn("503", str(cm.exception))

    def test_non_html_content_rejected(self):
        self.serve(response(content_type="application/pdf"))
        with self.assertRaises(NavigationError):
            self.backend.render("https://example.com/file.pdf", timeout=1)

    def test_invalid_url_never_fetched(self):
        with self.assertRaises(InvalidUrlError):
            self.backend.render("not a url", timeout=1)
        self.session.get.assert_not_called()

    def test_close_releases_sessions(self):
        self.serve(response())
        self.backend.render("https://example.com/", timeout=1)
        self.backend.close()
        self.session.close.assert_called_once()


if __name__ == "__main__":
    unittest.main()
