"""
FILE DESCRIPTION: Crawl orchestration. Owns the frontier of one crawl session,
runs a fixed pool of worker lanes against it and enforces the wall-clock cap.
KEY FUNCTIONS/CLASSES: CrawlEngine, CrawlResult
"""

import time
from dataclasses import dataclass, field
from typing import List, Optional, Dict, Any

from crawler.core import logger
from crawler.metrics import CrawlMetrics
from crawler.models import CrawlSession
from crawler.policy import ScopePolicy
from crawler.worker import CrawlWorker
from dataset.storage import DatasetStore
from extraction.extractor import PageExtractor
from frontier.models import RequestState
from frontier.orchestrator import Frontier
from rendering.engine import RenderingBackend


@dataclass(frozen=True)
class CrawlResult:
    session_name: str
    records_written: int
    skipped: int
    failed: int
    elapsed_seconds: float
    stopped_early: bool
    frontier_stats: Dict[str, Any] = field(default_factory=dict)
    pending_urls: List[str] = field(default_factory=list)
    deferred_urls: List[str] = field(default_factory=list)


class CrawlEngine:
    """
    FLOW: Admits the seed -> Starts `concurrency` CrawlWorker lanes on one Frontier ->
    Watches the wall-clock cap and stop requests -> Joins lanes -> Summarises terminal states.
    """

    def __init__(self, session: CrawlSession, backend: RenderingBackend, store: DatasetStore,
                 extractor: Optional[PageExtractor] = None, metrics: Optional[CrawlMetrics] = None,
                 poll_interval: float = 0.1):
        self.session = session
        self.backend = backend
        self.store = store
        self.extractor = extractor or PageExtractor()
        self.metrics = metrics or CrawlMetrics()
        self.frontier = Frontier(session.max_requests)
        self.poll_interval = poll_interval
        self.workers: List[CrawlWorker] = []
        self._started = False
        self._stop_requested = False

    def run(self) -> CrawlResult:
        if self._started:
            raise RuntimeError("CrawlEngine.run() can only be called once")
        self._started = True

        session = self.session
        ScopePolicy.reset_stats()
        logger.info(
            f"Starting crawl of {session.seed_url} (session={session.session_name}, "
            f"max_requests={session.max_requests}, concurrency={session.concurrency}, scope={session.scope.value})"
        )

        if not self.frontier.try_admit(session.seed_url):
            logger.info("Seed not admitted (request budget is 0); nothing to crawl.")

        start = time.monotonic()
        deadline = start + session.max_crawl_seconds if session.max_crawl_seconds else None

        self.workers = [CrawlWorker(self, name=f"Worker-{i}") for i in range(session.concurrency)]
        for worker in self.workers:
            worker.start()

        deadline_hit = False
        while any(w.is_alive() for w in self.workers):
            try:
                if deadline is not None and not deadline_hit and time.monotonic() >= deadline:
                    deadline_hit = True
                    logger.warning(
                        f"Crawl time limit of {session.max_crawl_seconds}s reached. "
                        f"Finishing in-flight requests and stopping."
                    )
                    self.frontier.close()
                time.sleep(self.poll_interval)
            except KeyboardInterrupt:
                self.stop()

        for worker in self.workers:
            worker.join()

        elapsed = time.monotonic() - start
        return self._result(elapsed, stopped_early=deadline_hit or self._stop_requested)

    def stop(self) -> None:
        """
        External shutdown: lanes finish their current request and exit.
        """
        if not self._stop_requested:
            logger.warning("Stop requested. Finishing in-flight requests...")
        self._stop_requested = True
        self.frontier.close()
        for worker in self.workers:
            worker.stop()

    def _result(self, elapsed: float, stopped_early: bool) -> CrawlResult:
        states = [r.state for r in self.frontier.completed()]
        stats = self.frontier.get_stats()
        result = CrawlResult(
            session_name=self.session.session_name,
            records_written=states.count(RequestState.SUCCEEDED),
            skipped=states.count(RequestState.SKIPPED),
            failed=states.count(RequestState.FAILED),
            elapsed_seconds=elapsed,
            stopped_early=stopped_early,
            frontier_stats=stats,
            pending_urls=self.frontier.pending_urls(),
            deferred_urls=self.frontier.deferred_urls(),
        )
        logger.info(
            f"Crawl finished in {elapsed:.1f}s: {result.records_written} stored, "
            f"{result.skipped} skipped, {result.failed} failed, {stats['queue_size']} left pending"
        )
        logger.debug(f"Scope policy stats: {ScopePolicy.get_stats()}")
        return result
