from dataclasses import dataclass, field
from typing import List, Optional

from bs4 import BeautifulSoup


class Element:
    """Read-only view over one DOM node of a rendered snapshot."""

    def __init__(self, node):
        self._node = node

    @property
    def tag(self) -> str:
        return self._node.name

    def attr(self, name: str, default=None):
        value = self._node.get(name)
        if value is None:
            return default
        # bs4 returns multi-valued attributes (class, rel) as lists
        if isinstance(value, list):
            return " ".join(value)
        return value

    def text(self) -> str:
        return self._node.get_text()

    def __repr__(self):
        return f"Element({self._node.name})"


@dataclass(frozen=True)
class RenderedDocument:
    """
    Immutable post-render DOM snapshot.
    Invariant: final_url is the URL after redirects and is the base for link resolution.
    """
    requested_url: str
    final_url: str
    html: str
    page_title: Optional[str] = None
    status_code: Optional[int] = None
    soup: BeautifulSoup = field(default=None, repr=False, compare=False)

    def __post_init__(self):
        if self.soup is None:
            object.__setattr__(self, "soup", BeautifulSoup(self.html or "", "html.parser"))

    @classmethod
    def from_html(cls, requested_url: str, final_url: str, html: str,
                  page_title: Optional[str] = None, status_code: Optional[int] = None) -> "RenderedDocument":
        return cls(
            requested_url=requested_url,
            final_url=final_url or requested_url,
            html=html,
            page_title=page_title,
            status_code=status_code,
        )

    def title(self) -> str:
        if self.page_title is not None:
            return self.page_title
        if self.soup.title is None:
            return ""
        return self.soup.title.get_text()

    def query(self, selector: str) -> List[Element]:
        """All matches of a CSS selector, in document order."""
        return [Element(node) for node in self.soup.select(selector)]

    def query_one(self, selector: str) -> Optional[Element]:
        node = self.soup.select_one(selector)
        return Element(node) if node is not None else None
