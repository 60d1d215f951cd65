"""
Thread-safe frontier for the crawler.
Manages the pending queue, the dedup set and the in-flight requests.
Ensures no URL is admitted twice and no more than the budget is admitted.
"""

import dataclasses
from collections import deque
from threading import Condition
from typing import Optional, List

from crawler.core import logger
from crawler.normalizer import try_normalize_url
from frontier.models import CrawlRequest, RequestState, Outcome, TERMINAL_STATES


class Frontier:
    """
    FIFO frontier guarded by a single condition variable.
    Admission (dedup check + budget check + enqueue) happens as one step under the lock.
    """

    def __init__(self, max_requests: int):
        if max_requests < 0:
            raise ValueError("max_requests must be >= 0")
        self._max_requests = max_requests
        self._cond = Condition()

        self._queue = deque()      # PENDING CrawlRequests
        self._seen = set()         # every normalized URL ever admitted
        self._in_flight = {}       # url -> IN_FLIGHT CrawlRequest
        self._completed = {}       # url -> terminal CrawlRequest
        self._deferred = []        # in-scope URLs refused because the budget ran out
        self._deferred_seen = set()
        self._admitted_count = 0
        self._closed = False

    @property
    def max_requests(self) -> int:
        return self._max_requests

    def try_admit(self, url: str, discovered_from: Optional[str] = None) -> bool:
        """
        Returns True if the URL was admitted and enqueued, False if it was
        malformed, already known, or the budget is exhausted.
        """
        normalized = try_normalize_url(url)
        if normalized is None:
            logger.debug(f"frontier: rejected malformed url {url!r}")
            return False

        with self._cond:
            if normalized in self._seen:
                return False
            if self._admitted_count >= self._max_requests:
                if normalized not in self._deferred_seen:
                    self._deferred_seen.add(normalized)
                    self._deferred.append(normalized)
                return False

            self._seen.add(normalized)
            self._admitted_count += 1
            self._queue.append(CrawlRequest(url=normalized, discovered_from=discovered_from))
            self._cond.notify()

        logger.debug(f"frontier: admitted {normalized} (discovered_from={discovered_from})")
        return True

    def take_next(self) -> Optional[CrawlRequest]:
        """
        PENDING -> IN_FLIGHT transition.
        Blocks while the queue is empty but other requests are in flight, since
        they may still discover work. Returns None once nothing is pending and
        nothing is in flight, or once the frontier has been closed.
        """
        with self._cond:
            while True:
                if self._closed:
                    return None
                if self._queue:
                    request = self._queue.popleft()
                    active = dataclasses.replace(request, state=RequestState.IN_FLIGHT)
                    self._in_flight[active.url] = active
                    return active
                if not self._in_flight:
                    # Wake the other lanes so they observe completion too
                    self._cond.notify_all()
                    return None
                self._cond.wait()

    def mark_done(self, request: CrawlRequest, outcome: Outcome) -> CrawlRequest:
        """
        IN_FLIGHT -> SUCCEEDED / SKIPPED / FAILED transition.
        This is the only release point for in-flight work.
        """
        with self._cond:
            active = self._in_flight.pop(request.url, None)
            if active is None:
                raise KeyError(f"mark_done: request not in flight: {request.url}")
            finished = dataclasses.replace(active, state=TERMINAL_STATES[outcome])
            self._completed[finished.url] = finished
            self._cond.notify_all()
        return finished

    def retry(self, request: CrawlRequest) -> CrawlRequest:
        """
        IN_FLIGHT -> PENDING transition for another attempt.
        Not an admission: the budget and the dedup set are unchanged.
        """
        with self._cond:
            active = self._in_flight.pop(request.url, None)
            if active is None:
                raise KeyError(f"retry: request not in flight: {request.url}")
            again = dataclasses.replace(active, state=RequestState.PENDING, attempt_count=active.attempt_count + 1)
            self._queue.append(again)
            self._cond.notify_all()
        return again

    def close(self) -> None:
        """
        Graceful drain: no more requests are handed out. In-flight requests
        can still be marked done.
        """
        with self._cond:
            self._closed = True
            self._cond.notify_all()

    @property
    def closed(self) -> bool:
        with self._cond:
            return self._closed

    def is_empty(self) -> bool:
        """
        Check if queue is empty and no URLs in flight.
        """
        with self._cond:
            return not self._queue and not self._in_flight

    def is_known(self, url: str) -> bool:
        normalized = try_normalize_url(url)
        with self._cond:
            return normalized in self._seen

    def pending_urls(self) -> List[str]:
        with self._cond:
            return [r.url for r in self._queue]

    def deferred_urls(self) -> List[str]:
        with self._cond:
            return list(self._deferred)

    def completed(self) -> List[CrawlRequest]:
        with self._cond:
            return list(self._completed.values())

    def get_stats(self):
        """
        Return stats: queue size, in-flight, completed and admission counters.
        """
        with self._cond:
            return {
                'queue_size': len(self._queue),
                'in_flight_count': len(self._in_flight),
                'completed_count': len(self._completed),
                'admitted_count': self._admitted_count,
                'deferred_count': len(self._deferred),
                'max_requests': self._max_requests,
                'budget_exhausted': self._admitted_count >= self._max_requests,
            }
