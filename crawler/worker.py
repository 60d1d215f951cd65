"""
Worker lane for the crawler.
Each worker takes a request, renders it, extracts and stores the record,
admits discovered links, and marks the request done.
"""

import threading
import time
from typing import Optional

from crawler.core import logger
from crawler.policy import ScopePolicy
from frontier.models import CrawlRequest, Outcome
from rendering.engine import TransientFetchError, InvalidUrlError

# One retry per request on a transient failure
MAX_RETRIES = 1


class CrawlWorker(threading.Thread):
    """
    Crawler worker thread.
    Runs in a loop: take request, render, extract, persist, discover, mark done.
    Exits when the frontier reports no more work or has been closed.
    """

    def __init__(self, engine, name="Worker"):
        super().__init__(name=name, daemon=True)
        self.engine = engine
        self.frontier = engine.frontier
        self.session = engine.session
        self.running = True

    def log(self, level, msg, **kwargs):
        getattr(logger, level)(msg, extra={'context': self.name}, **kwargs)

    def run(self):
        self.log("debug", "started")
        while self.running:
            request = self.frontier.take_next()
            if request is None:
                break
            self.process(request)
        self.log("debug", "finished")

    def stop(self):
        self.running = False

    def process(self, request: CrawlRequest) -> Optional[Outcome]:
        """
        Handle one request. Every path ends in mark_done or retry, so the
        frontier's in-flight count always drains.
        """
        metrics = self.engine.metrics
        url = request.url
        self.log("info", f"Processing {url}..." if request.attempt_count == 0
                 else f"Processing {url} (retry {request.attempt_count})...")

        started = time.monotonic()
        try:
            document = self.engine.backend.render(url, self.session.per_request_timeout)
        except TransientFetchError as e:
            metrics.record_attempt(self.name, time.monotonic() - started)
            if request.attempt_count < MAX_RETRIES:
                self.log("warning", f"{type(e).__name__} on {url}: {e}. Retrying.")
                self.frontier.retry(request)
                metrics.record_retry(self.name)
                return None
            self.log("warning", f"{type(e).__name__} on {url}: {e}. Giving up, page skipped.")
            self.frontier.mark_done(request, Outcome.SKIPPED)
            metrics.record_skipped(self.name)
            return Outcome.SKIPPED
        except InvalidUrlError as e:
            metrics.record_attempt(self.name, time.monotonic() - started)
            self.log("warning", f"Invalid URL {url}: {e}")
            self.frontier.mark_done(request, Outcome.FAILED)
            metrics.record_failed(self.name)
            return Outcome.FAILED
        except Exception as e:
            metrics.record_attempt(self.name, time.monotonic() - started)
            self.log("error", f"Unexpected render failure on {url}: {e}", exc_info=True)
            self.frontier.mark_done(request, Outcome.FAILED)
            metrics.record_failed(self.name)
            return Outcome.FAILED
        metrics.record_attempt(self.name, time.monotonic() - started)

        try:
            record = self.engine.extractor.extract(document)
            self.log("info", f"Title of {record.url} is '{record.title}'")
            self.engine.store.append(self.session.session_name, record)
        except Exception as e:
            self.log("error", f"Failed to process {url}: {e}", exc_info=True)
            self.frontier.mark_done(request, Outcome.FAILED)
            metrics.record_failed(self.name)
            return Outcome.FAILED

        # The record is stored; a discovery failure only loses this page's links
        try:
            admitted = self.discover(request, record)
        except Exception as e:
            self.log("error", f"Link discovery failed on {url}: {e}", exc_info=True)
            admitted = 0

        self.frontier.mark_done(request, Outcome.SUCCESS)
        metrics.record_success(self.name, links_admitted=admitted)
        return Outcome.SUCCESS

    def discover(self, request: CrawlRequest, record) -> int:
        """
        Scope-filter the page's resolved links and admit them. Returns how many were admitted.
        """
        admitted = 0
        for link in record.links:
            if not link.href:
                continue
            if not ScopePolicy.is_in_scope(link.href, self.session.seed_url, self.session.scope):
                continue
            if self.frontier.try_admit(link.href, discovered_from=request.url):
                admitted += 1
        if admitted:
            self.log("debug", f"{request.url}: admitted {admitted} new link(s)")
        return admitted
