"""
URL canonicalization shared by the frontier, the scope policy and the CLI.
A normalized URL is the identity of a crawl request.
"""

import re
from urllib.parse import urlparse, urlunparse

DEFAULT_PORTS = {"http": 80, "https": 443}


def normalize_url(url: str) -> str:
    """
    Canonical form used for deduplication:
    - scheme and host lowercased, default port dropped
    - fragment stripped, ;params kept as part of the path
    - root path is "/", any other path loses its trailing slash
    - query kept as-is
    Raises ValueError for URLs without a scheme or host.
    """
    if not url:
        raise ValueError("empty URL")

    parsed = urlparse(url.strip())
    scheme = parsed.scheme.lower()
    host = parsed.hostname
    if not scheme or not host:
        raise ValueError(f"not an absolute URL: {url!r}")

    # .port raises ValueError on garbage such as "host:abc"
    port = parsed.port
    netloc = f"[{host}]" if ":" in host else host
    if port is not None and DEFAULT_PORTS.get(scheme) != port:
        netloc = f"{netloc}:{port}"

    path = parsed.path or "/"
    if path != "/":
        path = path.rstrip("/") or "/"

    return urlunparse((scheme, netloc, path, parsed.params, parsed.query, ""))


def try_normalize_url(url):
    """Same as normalize_url but returns None instead of raising."""
    try:
        return normalize_url(url)
    except ValueError:
        return None


def session_name_for(seed_url: str) -> str:
    """
    Dataset name for a crawl: the seed hostname with every non-word
    character replaced, e.g. https://www.example.com -> www_example_com.
    """
    host = urlparse(seed_url.strip()).hostname or ""
    return re.sub(r"[^\w]", "_", host)
