"""
Centralized scope policy deciding which discovered links may enter the frontier.

The default strategy keeps a crawl on the seed's hostname. Other strategies
widen or narrow that boundary the same way link enqueueing strategies do
in browser-based crawling tools.
"""

from enum import Enum
from urllib.parse import urlparse
from typing import Dict
from threading import Lock

import tldextract

from crawler.core import logger

# Offline extractor: uses the suffix list snapshot bundled with tldextract
_TLD_EXTRACT = tldextract.TLDExtract(suffix_list_urls=())

_DEFAULT_PORTS = {"http": 80, "https": 443}


class ScopeStrategy(Enum):
    SAME_HOSTNAME = "same-hostname"
    SAME_DOMAIN = "same-domain"
    SAME_ORIGIN = "same-origin"
    ALL = "all"


class ScopePolicy:
    """
    Central policy for crawl scope.

    Methods:
    - is_http(url): True for http/https
    - hostname(url): lowercased host without port, or None
    - is_in_scope(candidate, seed, strategy): single gate used before admission
    """

    _lock: Lock = Lock()
    _stats: Dict[str, int] = {
        "evaluations": 0,
        "allowed": 0,
        "blocked_malformed": 0,
        "blocked_non_http": 0,
        "blocked_scope": 0,
    }

    @staticmethod
    def is_http(url: str) -> bool:
        try:
            return urlparse(url).scheme.lower() in ("http", "https")
        except Exception:
            return False

    @staticmethod
    def hostname(url: str):
        try:
            return urlparse(url).hostname or None
        except Exception:
            return None

    @staticmethod
    def origin(url: str):
        parsed = urlparse(url)
        scheme = parsed.scheme.lower()
        port = parsed.port or _DEFAULT_PORTS.get(scheme)
        return scheme, parsed.hostname, port

    @staticmethod
    def registrable_domain(host: str) -> str:
        extracted = _TLD_EXTRACT(host)
        if not extracted.suffix:
            # IPs, localhost and unknown suffixes compare by full host
            return host
        return f"{extracted.domain}.{extracted.suffix}".lower()

    @classmethod
    def eval(cls, candidate_url: str, seed_url: str, strategy: ScopeStrategy = ScopeStrategy.SAME_HOSTNAME):
        """
        Evaluate a candidate and return (allowed: bool, reason: str).
        Reasons are the stats keys. Never raises; malformed input is a rejection.
        """
        with cls._lock:
            cls._stats["evaluations"] += 1

        try:
            candidate_host = cls.hostname(candidate_url)
            seed_host = cls.hostname(seed_url)
            if not candidate_host or not seed_host:
                return cls._count(False, "blocked_malformed")
            if not cls.is_http(candidate_url):
                return cls._count(False, "blocked_non_http")

            if strategy is ScopeStrategy.ALL:
                in_scope = True
            elif strategy is ScopeStrategy.SAME_HOSTNAME:
                in_scope = candidate_host == seed_host
            elif strategy is ScopeStrategy.SAME_ORIGIN:
                in_scope = cls.origin(candidate_url) == cls.origin(seed_url)
            else:
                in_scope = cls.registrable_domain(candidate_host) == cls.registrable_domain(seed_host)
        except ValueError:
            # urlparse(...).port raises on non-numeric ports
            return cls._count(False, "blocked_malformed")

        if not in_scope:
            logger.debug(f"scope: rejected {candidate_url} (seed={seed_url}, strategy={strategy.value})")
            return cls._count(False, "blocked_scope")
        return cls._count(True, "allowed")

    @classmethod
    def is_in_scope(cls, candidate_url: str, seed_url: str, strategy: ScopeStrategy = ScopeStrategy.SAME_HOSTNAME) -> bool:
        allowed, _ = cls.eval(candidate_url, seed_url, strategy)
        return allowed

    @classmethod
    def _count(cls, allowed: bool, reason: str):
        with cls._lock:
            cls._stats[reason] += 1
        return allowed, reason

    @classmethod
    def get_stats(cls) -> Dict[str, int]:
        with cls._lock:
            return dict(cls._stats)

    @classmethod
    def reset_stats(cls) -> None:
        with cls._lock:
            for k in cls._stats:
                cls._stats[k] = 0
