"""
Plain HTTP rendering backend. No JavaScript is executed: the document is the
HTML returned by the server after redirects.
"""

import threading

import requests

from crawler.core import USER_AGENT, logger
from crawler.normalizer import normalize_url
from rendering.engine import RenderingBackend, RenderTimeoutError, NavigationError, InvalidUrlError
from rendering.models import RenderedDocument

HEADERS = {
    "User-Agent": USER_AGENT,
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
}


class StaticBackend(RenderingBackend):
    """
    FLOW: Executes a GET with browser-like headers -> Maps requests' failures onto
    RenderError types -> Wraps the body in a RenderedDocument.
    One requests.Session per worker thread.
    """

    def __init__(self, headers=None, verify=True):
        self._headers = dict(headers or HEADERS)
        self._verify = verify
        self._local = threading.local()
        self._sessions = []
        self._lock = threading.Lock()

    def _session(self) -> requests.Session:
        session = getattr(self._local, "session", None)
        if session is None:
            session = requests.Session()
            session.headers.update(self._headers)
            self._local.session = session
            with self._lock:
                self._sessions.append(session)
        return session

    def render(self, url: str, timeout: float) -> RenderedDocument:
        try:
            normalize_url(url)
        except ValueError as e:
            raise InvalidUrlError(url, str(e)) from e

        try:
            with self._session().get(url, timeout=timeout, verify=self._verify, allow_redirects=True) as r:
                content_type = r.headers.get("Content-Type", "").lower()
                if r.status_code >= 400:
                    raise NavigationError(url, f"http error: {r.status_code}")
                if content_type and "html" not in content_type:
                    raise NavigationError(url, f"ignored content type: {content_type}")
                return RenderedDocument.from_html(
                    requested_url=url,
                    final_url=r.url,
                    html=r.text,
                    status_code=r.status_code,
                )
        except requests.exceptions.Timeout as e:
            raise RenderTimeoutError(url, f"timed out after {timeout}s") from e
        except (requests.exceptions.InvalidURL, requests.exceptions.MissingSchema, requests.exceptions.InvalidSchema) as e:
            raise InvalidUrlError(url, str(e)) from e
        except requests.exceptions.RequestException as e:
            raise NavigationError(url, str(e)) from e

    def close(self) -> None:
        with self._lock:
            sessions, self._sessions = self._sessions, []
        for session in sessions:
            session.close()
        logger.debug(f"[STATIC] Closed {len(sessions)} HTTP session(s).")
