from typing import Callable, Tuple, TypeVar
from urllib.parse import urljoin

from crawler.core import logger
from extraction.models import PageRecord, Link, Image
from rendering.models import RenderedDocument, Element

T = TypeVar("T")


class PageExtractor:
    """
    Turns a rendered document into a PageRecord.
    Invariants:
    - Pure: no network or storage access.
    - Total: every field has a default, a failing lookup never aborts extraction.
    - Ordered: paragraphs, links and images follow document order.
    """

    def extract(self, document: RenderedDocument) -> PageRecord:
        base_url = document.final_url
        return PageRecord(
            url=base_url,
            title=self._field("title", lambda: (document.title() or "").strip(), "", base_url),
            meta_description=self._field("meta_description", lambda: self._meta_description(document), "", base_url),
            paragraphs=self._field("paragraphs", lambda: self._paragraphs(document), (), base_url),
            links=self._field("links", lambda: self._links(document, base_url), (), base_url),
            images=self._field("images", lambda: self._images(document, base_url), (), base_url),
        )

    @staticmethod
    def _field(name: str, compute: Callable[[], T], default: T, url: str) -> T:
        try:
            return compute()
        except Exception as e:
            logger.debug(f"extract: {name} defaulted on {url}: {e}")
            return default

    @staticmethod
    def _meta_description(document: RenderedDocument) -> str:
        element = document.query_one('meta[name="description"]')
        if element is None:
            return ""
        return element.attr("content", "") or ""

    @staticmethod
    def _paragraphs(document: RenderedDocument) -> Tuple[str, ...]:
        return tuple(p.text().strip() for p in document.query("p"))

    @staticmethod
    def _links(document: RenderedDocument, base_url: str) -> Tuple[Link, ...]:
        return tuple(
            Link(href=_resolve(a.attr("href"), base_url), text=a.text().strip())
            for a in document.query("a")
        )

    @staticmethod
    def _images(document: RenderedDocument, base_url: str) -> Tuple[Image, ...]:
        return tuple(
            Image(
                src=_resolve(img.attr("src"), base_url),
                alt=img.attr("alt", "") or "",
                width=_dimension(img, "width"),
                height=_dimension(img, "height"),
            )
            for img in document.query("img")
        )


def _resolve(value, base_url: str) -> str:
    """Absolute form of an href/src, "" when the attribute is absent."""
    if value is None:
        return ""
    try:
        return urljoin(base_url, value.strip())
    except ValueError:
        return ""


def _dimension(img: Element, name: str) -> int:
    """Rendered layout size when the backend stamped it, else the HTML attribute."""
    for attr in (f"data-rendered-{name}", name):
        value = img.attr(attr)
        if value is None:
            continue
        try:
            return int(float(value.strip().rstrip("px")))
        except (ValueError, OverflowError):
            continue
    return 0
