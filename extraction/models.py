from dataclasses import dataclass, field
from typing import Any, Dict, Tuple


@dataclass(frozen=True)
class Link:
    href: str
    text: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"href": self.href, "text": self.text}


@dataclass(frozen=True)
class Image:
    src: str
    alt: str = ""
    width: int = 0
    height: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {"src": self.src, "alt": self.alt, "width": self.width, "height": self.height}


@dataclass(frozen=True)
class PageRecord:
    """
    Structured content of one successfully processed page.
    Invariant: immutable once built; paragraphs, links and images keep document order.
    """
    url: str
    title: str = ""
    meta_description: str = ""
    paragraphs: Tuple[str, ...] = field(default_factory=tuple)
    links: Tuple[Link, ...] = field(default_factory=tuple)
    images: Tuple[Image, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        """Serialised form, using the keys of the exported JSON."""
        return {
            "url": self.url,
            "title": self.title,
            "metaDescription": self.meta_description,
            "paragraphs": list(self.paragraphs),
            "links": [link.to_dict() for link in self.links],
            "images": [image.to_dict() for image in self.images],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PageRecord":
        """Inverse of to_dict. Unknown keys (e.g. a legacy "h1") are ignored."""
        return cls(
            url=data["url"],
            title=data.get("title", ""),
            meta_description=data.get("metaDescription", ""),
            paragraphs=tuple(data.get("paragraphs", ())),
            links=tuple(Link(href=link.get("href", ""), text=link.get("text", "")) for link in data.get("links", ())),
            images=tuple(
                Image(
                    src=i.get("src", ""),
                    alt=i.get("alt", ""),
                    width=i.get("width", 0),
                    height=i.get("height", 0),
                )
                for i in data.get("images", ())
            ),
        )
