"""
Headless-browser rendering backend using Playwright.
Playwright's sync API is bound to the thread that started it, so each render
thread owns its own browser and serves requests from a shared queue.
Crawl workers hand a request over and block on its private result queue.
"""

import threading
import queue

from playwright.sync_api import sync_playwright
from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from crawler.core import USER_AGENT, RENDER_GRACE_SECONDS, logger
from crawler.normalizer import normalize_url
from rendering.engine import RenderingBackend, RenderTimeoutError, NavigationError, InvalidUrlError
from rendering.models import RenderedDocument

# Copies the layout size of every image into attributes so it survives
# serialisation of the DOM snapshot.
_STAMP_IMAGE_SIZES = """
() => {
    for (const img of document.querySelectorAll('img')) {
        img.setAttribute('data-rendered-width', String(img.width));
        img.setAttribute('data-rendered-height', String(img.height));
    }
}
"""


class RenderRequest:
    def __init__(self, url, timeout):
        self.url = url
        self.timeout = timeout
        self.result_queue = queue.Queue(maxsize=1)
        # Set by the caller once it stops waiting; render threads drop it
        self.cancelled = threading.Event()


class RenderResult:
    def __init__(self, document=None, error=None):
        self.document = document
        self.error = error


class PlaywrightBackend(RenderingBackend):
    """
    FLOW: Spawns `workers` dedicated Playwright threads -> Each keeps its own browser context ->
    Processes URLs from a shared queue -> Returns a RenderedDocument or a typed RenderError.
    """

    def __init__(self, workers: int = 1, headless: bool = True, user_agent: str = USER_AGENT):
        self._workers = max(1, workers)
        self._headless = headless
        self._user_agent = user_agent
        self._request_queue = queue.Queue()
        self._init_lock = threading.Lock()
        self._threads = []
        self._startup_error = None
        self._closed = False

    def render(self, url: str, timeout: float) -> RenderedDocument:
        try:
            normalize_url(url)
        except ValueError as e:
            raise InvalidUrlError(url, str(e)) from e

        self._ensure_running()
        if self._startup_error is not None and not any(t.is_alive() for t in self._threads):
            raise NavigationError(url, f"browser unavailable: {self._startup_error}")

        req = RenderRequest(url, timeout)
        self._request_queue.put(req)
        try:
            result = req.result_queue.get(timeout=timeout + RENDER_GRACE_SECONDS)
        except queue.Empty:
            req.cancelled.set()
            raise RenderTimeoutError(url, f"no render result after {timeout + RENDER_GRACE_SECONDS:.0f}s")

        if result.error is not None:
            raise result.error
        return result.document

    def close(self) -> None:
        with self._init_lock:
            if self._closed:
                return
            self._closed = True
            threads = list(self._threads)
        if threads:
            self._request_queue.put(None)  # Poison pill, relayed by each thread
        for t in threads:
            t.join(timeout=30)
        logger.info(f"[JS-ENGINE] Closed {len(threads)} render thread(s).")

    def _ensure_running(self):
        if self._threads:
            return
        with self._init_lock:
            if self._threads:
                return
            if self._closed:
                raise RuntimeError("PlaywrightBackend is closed")
            for i in range(self._workers):
                t = threading.Thread(target=self._render_loop, args=(i,), daemon=True, name=f"RenderWorker-{i}")
                t.start()
                self._threads.append(t)

    def _render_loop(self, worker_id: int):
        """
        Independent render loop. Owns one Playwright instance and one browser.
        """
        try:
            with sync_playwright() as p:
                browser = p.chromium.launch(
                    headless=self._headless,
                    args=["--disable-gpu", "--no-sandbox", "--disable-dev-shm-usage"],
                )
                context = browser.new_context(user_agent=self._user_agent)
                logger.info(f"[JS-ENGINE] Render Worker-{worker_id} ready.")

                while True:
                    req = self._request_queue.get()
                    if req is None:
                        self._request_queue.put(None)  # Pass onto other workers
                        break
                    if req.cancelled.is_set():
                        logger.debug(f"[JS-ENGINE] Worker-{worker_id} dropped abandoned request {req.url}")
                        continue
                    req.result_queue.put(self._render_one(context, req))

                context.close()
                browser.close()
        except Exception as e:
            self._startup_error = e
            logger.critical(f"[JS-ENGINE] Worker-{worker_id} fatal error: {e}")
            self._fail_waiting(e)

    def _render_one(self, context, req: RenderRequest) -> RenderResult:
        page = None
        try:
            page = context.new_page()
            response = page.goto(req.url, wait_until="domcontentloaded", timeout=req.timeout * 1000)
            status_code = response.status if response else None

            try:
                page.wait_for_load_state("load", timeout=5000)
            except PlaywrightTimeoutError:
                pass

            try:
                page.evaluate(_STAMP_IMAGE_SIZES)
            except PlaywrightError as e:
                logger.debug(f"[JS-ENGINE] image size stamp failed on {req.url}: {e}")

            document = RenderedDocument.from_html(
                requested_url=req.url,
                final_url=page.url,
                html=page.content(),
                page_title=page.title(),
                status_code=status_code,
            )
            return RenderResult(document=document)
        except PlaywrightTimeoutError as e:
            return RenderResult(error=RenderTimeoutError(req.url, f"navigation timed out after {req.timeout}s: {e}"))
        except PlaywrightError as e:
            return RenderResult(error=NavigationError(req.url, str(e)))
        finally:
            if page is not None:
                try:
                    page.close()
                except PlaywrightError as e:
                    logger.debug(f"[JS-ENGINE] page.close failed for {req.url}: {e}")

    def _fail_waiting(self, error):
        """Answer requests already queued so their callers do not wait out the grace period."""
        if any(t.is_alive() and t is not threading.current_thread() for t in self._threads):
            return
        while True:
            try:
                req = self._request_queue.get_nowait()
            except queue.Empty:
                return
            if req is None:
                self._request_queue.put(None)
                return
            req.result_queue.put(RenderResult(error=NavigationError(req.url, f"browser unavailable: {error}")))
