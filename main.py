"""
Entry point for the page crawler.
Prompts for a seed URL and a page budget, crawls the site, stores every page
in the session dataset and exports the dataset to a single JSON file.
"""

import sys

from crawler.core import (
    CRAWLER_BACKEND,
    DEFAULT_MAX_REQUESTS,
    EXCLUDED_EXPORT_FIELDS,
    STORAGE_DIR,
    logger,
)
from crawler.engine import CrawlEngine
from crawler.models import CrawlSession, InputError
from dataset.export import export_dataset, ExportIOError
from dataset.sqlite_storage import SQLiteDatasetStore


def prompt(question: str) -> str:
    try:
        return input(question).strip()
    except EOFError:
        return ""


def parse_max_requests(raw: str) -> int:
    """Blank input means the default budget."""
    if not raw:
        return DEFAULT_MAX_REQUESTS
    try:
        value = int(raw, 10)
    except ValueError:
        raise InputError(f"maximum pages must be a whole number, got {raw!r}")
    if value < 0:
        raise InputError(f"maximum pages cannot be negative, got {value}")
    return value


def build_backend(session: CrawlSession, backend_name: str = CRAWLER_BACKEND):
    if backend_name == "playwright":
        from rendering.playwright_backend import PlaywrightBackend
        return PlaywrightBackend(workers=session.concurrency, headless=session.headless)
    if backend_name == "static":
        from rendering.static_backend import StaticBackend
        return StaticBackend()
    raise InputError(f"unknown CRAWLER_BACKEND {backend_name!r} (expected 'playwright' or 'static')")


def run_crawl(session: CrawlSession, backend, store, export_dir, exclude_fields=EXCLUDED_EXPORT_FIELDS):
    """
    Crawl one session and export it. Returns (CrawlResult, export path).
    Raises ExportIOError if the export cannot be written; the dataset is kept.
    """
    store.reset(session.session_name)
    engine = CrawlEngine(session, backend, store)
    print("Starting the crawl...")
    result = engine.run()
    print("Crawl finished!")
    engine.metrics.print_summary(result.frontier_stats)
    print(f"Results saved to {store.get_db_path(session.session_name)}")

    export_path = export_dataset(store, session.session_name, export_dir, exclude_fields)
    return result, export_path


def main() -> int:
    start_url = prompt("Enter the URL to crawl (e.g., https://example.com): ")
    if not start_url:
        print("Error: URL cannot be empty", file=sys.stderr)
        return 1

    try:
        max_requests = parse_max_requests(
            prompt(f"Enter maximum number of pages to crawl (default {DEFAULT_MAX_REQUESTS}): ")
        )
        session = CrawlSession.create(start_url, max_requests)
        backend = build_backend(session)
    except InputError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print("\nStarting crawl with the following settings:")
    print(f"- Target URL: {session.seed_url}")
    print(f"- Maximum pages: {session.max_requests}")
    print(f"- Concurrency: {session.concurrency}")

    store = SQLiteDatasetStore(STORAGE_DIR)
    try:
        with backend:
            _, export_path = run_crawl(session, backend, store, STORAGE_DIR / "exports")
    except ExportIOError as e:
        print(f"Error exporting dataset: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        logger.exception(f"An error occurred: {e}")
        return 1

    print(f"All data exported to a single file: {export_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
