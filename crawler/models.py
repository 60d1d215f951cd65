from dataclasses import dataclass
from typing import Optional

from crawler.core import CRAWL_CONCURRENCY, NAVIGATION_TIMEOUT, MAX_CRAWL_SECONDS, HEADLESS
from crawler.normalizer import normalize_url, session_name_for
from crawler.policy import ScopeStrategy


class InputError(ValueError):
    """Invalid crawl input (seed URL, budget, ...). Fatal before any crawling starts."""
    pass


@dataclass(frozen=True)
class CrawlSession:
    """
    Configuration of one crawl. Immutable for the lifetime of the crawl.
    Use CrawlSession.create() to get a validated instance.
    """
    seed_url: str
    max_requests: int
    concurrency: int = CRAWL_CONCURRENCY
    scope: ScopeStrategy = ScopeStrategy.SAME_HOSTNAME
    per_request_timeout: float = NAVIGATION_TIMEOUT
    max_crawl_seconds: Optional[float] = MAX_CRAWL_SECONDS
    headless: bool = HEADLESS

    @property
    def session_name(self) -> str:
        return session_name_for(self.seed_url)

    @classmethod
    def create(cls, seed_url, max_requests, **options) -> "CrawlSession":
        """
        Validates and builds a session. Raises InputError on bad input.
        """
        seed_url = (seed_url or "").strip()
        if not seed_url:
            raise InputError("URL cannot be empty")
        try:
            seed_url = normalize_url(seed_url)
        except ValueError as e:
            raise InputError(f"invalid URL {seed_url!r}: {e}") from e
        if not seed_url.startswith(("http://", "https://")):
            raise InputError(f"only http(s) URLs can be crawled: {seed_url}")

        if isinstance(max_requests, bool) or not isinstance(max_requests, int) or max_requests < 0:
            raise InputError(f"maximum pages must be a non-negative integer, got {max_requests!r}")

        concurrency = options.get("concurrency", CRAWL_CONCURRENCY)
        if not isinstance(concurrency, int) or concurrency < 1:
            raise InputError(f"concurrency must be a positive integer, got {concurrency!r}")

        timeout = options.get("per_request_timeout", NAVIGATION_TIMEOUT)
        if timeout is None or timeout <= 0:
            raise InputError(f"per-request timeout must be positive, got {timeout!r}")

        cap = options.get("max_crawl_seconds", MAX_CRAWL_SECONDS)
        if cap is not None and cap <= 0:
            raise InputError(f"max crawl time must be positive, got {cap!r}")

        scope = options.get("scope", ScopeStrategy.SAME_HOSTNAME)
        if not isinstance(scope, ScopeStrategy):
            try:
                scope = ScopeStrategy(scope)
            except ValueError as e:
                raise InputError(f"unknown scope strategy {scope!r}") from e

        return cls(
            seed_url=seed_url,
            max_requests=max_requests,
            concurrency=concurrency,
            scope=scope,
            per_request_timeout=timeout,
            max_crawl_seconds=cap,
            headless=options.get("headless", HEADLESS),
        )
