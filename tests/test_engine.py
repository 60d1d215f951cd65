import json
import tempfile
import threading
import time
import unittest
from pathlib import Path
from unittest.mock import patch

from crawler.engine import CrawlEngine
from crawler.models import CrawlSession
from dataset.export import export_dataset
from dataset.sqlite_storage import SQLiteDatasetStore
from rendering.engine import RenderingBackend, RenderTimeoutError, NavigationError, InvalidUrlError
from rendering.models import RenderedDocument


class FakeBackend(RenderingBackend):
    """
    In-memory site. pages maps normalized URL -> HTML, failures maps URL -> list
    of exceptions raised on successive calls before the page is served.
    """

    def __init__(self, pages, failures=None, delay=0.0, redirects=None):
        self.pages = pages
        self.failures = {url: list(errs) for url, errs in (failures or {}).items()}
        self.redirects = redirects or {}
        self.delay = delay
        self.calls = []
        self.active = 0
        self.max_active = 0
        self._lock = threading.Lock()

    def render(self, url, timeout):
        with self._lock:
            self.calls.append(url)
            self.active += 1
            self.max_active = max(self.max_active, self.active)
            error = self.failures[url].pop(0) if self.failures.get(url) else None
        try:
            if self.delay:
                time.sleep(self.delay)
            if error is not None:
                raise error
            final_url = self.redirects.get(url, url)
            if final_url not in self.pages:
                raise NavigationError(url, "net::ERR_NAME_NOT_RESOLVED")
            return RenderedDocument.from_html(url, final_url, self.pages[final_url])
        finally:
            with self._lock:
                self.active -= 1


def page(title, links=(), description="A page"):
    anchors = "".join(f'<a href="{href}">{href}</a>' for href in links)
    meta = f'<meta name="description" content="{description}">' if description is not None else ""
    return f"<html><head><title>{title}</title>{meta}</head><body><p>{title} body</p>{anchors}</body></html>"


def site(n, fanout=3):
    """n pages on example.com, each linking forward, back to root, and off-site."""
    pages = {}
    for i in range(n):
        url = "https://example.com/" if i == 0 else f"https://example.com/p{i}"
        links = [f"/p{(i + k) % n or 1}" for k in range(1, fanout + 1)]
        self_link = "/#again" if i == 0 else f"/p{i}#again"
        links += ["/", self_link, "https://other.org/leak", "mailto:hi@example.com"]
        pages[url] = page(f"Page {i}", links)
    return pages


class EngineTestCase(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)
        self.store = SQLiteDatasetStore(self.root)

    def tearDown(self):
        self._tmp.cleanup()

    def crawl(self, backend, max_requests, concurrency=1, **options):
        options.setdefault("per_request_timeout", 5)
        options.setdefault("max_crawl_seconds", None)
        session = CrawlSession.create("https://example.com", max_requests, concurrency=concurrency, **options)
        engine = CrawlEngine(session, backend, self.store, poll_interval=0.01)
        result = engine.run()
        return engine, result


class TestCrawlScenarios(EngineTestCase):

    def test_budget_of_one_stores_seed_and_defers_same_host_links(self):
        backend = FakeBackend({
            "https://example.com/": page("Home", ["/a", "/b", "https://other.org/c"]),
            "https://example.com/a": page("A"),
            "https://example.com/b": page("B"),
        })
        engine, result = self.crawl(backend, max_requests=1)

        records = self.store.read_all("example_com")
        self.assertEqual([r.url for r in records], ["https://example.com/"])
        self.assertEqual(backend.calls, ["https://example.com/"])
        self.assertEqual(result.deferred_urls, ["https://example.com/a", "https://example.com/b"])
        self.assertEqual(result.frontier_stats["admitted_count"], 1)
        self.assertFalse(engine.frontier.is_known("https://other.org/c"))
        self.assertNotIn("https://other.org/c", result.deferred_urls)

    def test_missing_meta_description_defaults_and_crawl_continues(self):
        backend = FakeBackend({
            "https://example.com/": page("Home", ["/next"], description=None),
            "https://example.com/next": page("Next", description="Has one"),
        })
        _, result = self.crawl(backend, max_requests=10)

        records = {r.url: r for r in self.store.read_all("example_com")}
        self.assertEqual(records["https://example.com/"].meta_description, "")
        self.assertEqual(records["https://example.com/next"].meta_description, "Has one")
        self.assertEqual(result.records_written, 2)

    def test_two_timeouts_mean_one_retry_then_skip(self):
        slow = "https://example.com/slow"
        backend = FakeBackend(
            {
                "https://example.com/": page("Home", ["/slow", "/ok"]),
                slow: page("Slow"),
                "https://example.com/ok": page("OK"),
            },
            failures={slow: [RenderTimeoutError(slow, "t1"), RenderTimeoutError(slow, "t2")]},
        )
        _, result = self.crawl(backend, max_requests=10)

        self.assertEqual(backend.calls.count(slow), 2)
        urls = [r.url for r in self.store.read_all("example_com")]
        self.assertNotIn(slow, urls)
        self.assertIn("https://example.com/ok", urls)
        self.assertEqual(result.skipped, 1)
        self.assertEqual(result.records_written, 2)
        self.assertEqual(engine_totals(self, result), 3)

    def test_single_transient_failure_recovers_on_retry(self):
        seed = "https://example.com/"
        backend = FakeBackend({seed: page("Home")}, failures={seed: [NavigationError(seed, "reset")]})
        _, result = self.crawl(backend, max_requests=5)

        self.assertEqual(backend.calls, [seed, seed])
        self.assertEqual(result.records_written, 1)
        self.assertEqual(result.skipped, 0)

    def test_invalid_url_is_not_retried(self):
        bad = "https://example.com/bad"
        backend = FakeBackend(
            {"https://example.com/": page("Home", ["/bad"])},
            failures={bad: [InvalidUrlError(bad, "cannot navigate")]},
        )
        _, result = self.crawl(backend, max_requests=5)

        self.assertEqual(backend.calls.count(bad), 1)
        self.assertEqual(result.failed, 1)
        self.assertEqual(result.records_written, 1)

    def test_unexpected_backend_error_is_contained(self):
        boom = "https://example.com/boom"
        backend = FakeBackend(
            {"https://example.com/": page("Home", ["/boom", "/fine"]), "https://example.com/fine": page("Fine")},
            failures={boom: [RuntimeError("driver crashed")]},
        )
        _, result = self.crawl(backend, max_requests=5)

        self.assertEqual(result.failed, 1)
        self.assertEqual(result.records_written, 2)

    def test_discovery_failure_keeps_stored_page_successful(self):
        backend = FakeBackend({"https://example.com/": page("Home", ["/a"]), "https://example.com/a": page("A")})
        with patch("crawler.worker.ScopePolicy.is_in_scope", side_effect=RuntimeError("scope check crashed")):
            _, result = self.crawl(backend, max_requests=5)

        self.assertEqual(result.records_written, 1)
        self.assertEqual(result.failed, 0)
        self.assertEqual([r.url for r in self.store.read_all("example_com")], ["https://example.com/"])
        self.assertEqual(backend.calls, ["https://example.com/"])

    def test_zero_budget_crawls_nothing_and_exports_empty_array(self):
        backend = FakeBackend({"https://example.com/": page("Home")})
        _, result = self.crawl(backend, max_requests=0)

        self.assertEqual(backend.calls, [])
        self.assertEqual(self.store.read_all("example_com"), [])
        path = export_dataset(self.store, result.session_name, self.root / "exports")
        self.assertEqual(json.loads(path.read_text(encoding="utf-8")), [])

    def test_links_resolve_against_redirected_url(self):
        backend = FakeBackend(
            {
                "https://example.com/": page("Home", ["/old"]),
                "https://example.com/new/": page("Moved", ["child"]),
                "https://example.com/new/child": page("Child"),
            },
            redirects={"https://example.com/old": "https://example.com/new/"},
        )
        self.crawl(backend, max_requests=10)

        self.assertIn("https://example.com/new/child", backend.calls)
        urls = [r.url for r in self.store.read_all("example_com")]
        self.assertIn("https://example.com/new/", urls)


class TestCrawlInvariants(EngineTestCase):

    def test_no_url_rendered_twice_under_concurrency(self):
        pages = site(40, fanout=5)
        backend = FakeBackend(pages, delay=0.005)
        _, result = self.crawl(backend, max_requests=1000, concurrency=8)

        self.assertEqual(len(backend.calls), len(set(backend.calls)))
        self.assertEqual(set(backend.calls), set(pages))
        self.assertEqual(result.records_written, 40)
        self.assertLessEqual(backend.max_active, 8)

    def test_cross_host_links_never_enter_frontier(self):
        backend = FakeBackend(site(15))
        engine, _ = self.crawl(backend, max_requests=100, concurrency=4)

        self.assertFalse(engine.frontier.is_known("https://other.org/leak"))
        self.assertTrue(all(url.startswith("https://example.com/") for url in backend.calls))

    def test_admissions_never_exceed_budget(self):
        backend = FakeBackend(site(60, fanout=6), delay=0.002)
        _, result = self.crawl(backend, max_requests=7, concurrency=4)

        self.assertEqual(result.frontier_stats["admitted_count"], 7)
        self.assertEqual(len(set(backend.calls)), 7)
        self.assertEqual(result.records_written, 7)
        self.assertEqual(result.frontier_stats["in_flight_count"], 0)

    def test_export_has_one_object_per_record(self):
        backend = FakeBackend(site(12))
        self.crawl(backend, max_requests=100, concurrency=3)

        path = export_dataset(self.store, "example_com", self.root / "exports")
        exported = json.loads(path.read_text(encoding="utf-8"))
        self.assertEqual(exported, [r.to_dict() for r in self.store.read_all("example_com")])


class TestCrawlShutdown(EngineTestCase):

    def test_time_limit_drains_gracefully(self):
        backend = FakeBackend(site(200, fanout=4), delay=0.05)
        _, result = self.crawl(backend, max_requests=1000, concurrency=2, max_crawl_seconds=0.3)

        self.assertTrue(result.stopped_early)
        self.assertEqual(result.frontier_stats["in_flight_count"], 0)
        self.assertLess(result.records_written, 200)
        self.assertEqual(result.records_written, self.store.count("example_com"))

    def test_stop_lets_current_requests_finish(self):
        backend = FakeBackend(site(200, fanout=4), delay=0.05)
        session = CrawlSession.create("https://example.com", 1000, concurrency=3,
                                      per_request_timeout=5, max_crawl_seconds=None)
        engine = CrawlEngine(session, backend, self.store, poll_interval=0.01)

        timer = threading.Timer(0.2, engine.stop)
        timer.start()
        result = engine.run()
        timer.join()

        self.assertTrue(result.stopped_early)
        self.assertEqual(result.frontier_stats["in_flight_count"], 0)
        done = result.records_written + result.skipped + result.failed
        self.assertEqual(done, len(backend.calls))

    def test_engine_runs_once(self):
        backend = FakeBackend({"https://example.com/": page("Home")})
        engine, _ = self.crawl(backend, max_requests=1)
        with self.assertRaises(RuntimeError):
            engine.run()


def engine_totals(case, result):
    """Every admitted request ends in exactly one terminal state."""
    total = result.records_written + result.skipped + result.failed
    case.assertEqual(total, result.frontier_stats["completed_count"])
    return total


if __name__ == "__main__":
    unittest.main()
