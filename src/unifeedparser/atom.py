from __future__ import annotations

import datetime
from typing import Optional

from .contact import parse_contact_string
from .element import Document, Element
from .errors import InvalidFeedError
from .feed import (
    Feed,
    FeedAuthor,
    FeedCategory,
    FeedGenerator,
    FeedImage,
    FeedItem,
    FeedItemMedia,
    FeedMeta,
    child_date,
    child_text,
    is_media_rss,
    subject_categories,
    unique_media,
)

ATOM_VERSION_0_3 = "0.3"
ATOM_VERSION_1_0 = "1.0"
SUPPORTED_ATOM_VERSIONS = (ATOM_VERSION_0_3, ATOM_VERSION_1_0)

_ATOM_VERSION_BY_NAMESPACE: dict[str, str] = {
    "http://purl.org/atom/ns#": ATOM_VERSION_0_3,
    "http://www.w3.org/2005/Atom": ATOM_VERSION_1_0,
}


def _link_href(links: list[Element], rel: Optional[str]) -> Optional[str]:
    """href of the first link with the given rel (None means no rel attribute)."""
    for link in links:
        if link.get_attribute("rel") == rel:
            return link.get_attribute_as_url("href")
    return None


def _alternate_url(element: Element) -> Optional[str]:
    links = element.find_elements_with_name("link")
    return _link_href(links, "alternate") or _link_href(links, None)


def _parse_authors(element: Element) -> list[FeedAuthor]:
    """Atom ``author`` children; structured fields first, free text otherwise."""
    authors: list[FeedAuthor] = []
    for author in element.find_elements_with_name("author"):
        if not any(
            author.has_element_with_name(name) for name in ("name", "uri", "url", "email")
        ):
            parsed = parse_contact_string(author.text_content_normalized)
            if parsed is not None:
                authors.append(parsed)
            continue

        url = None
        url_el = author.find_element_with_name("uri") or author.find_element_with_name(
            "url"
        )
        if url_el is not None:
            url = url_el.text_content_as_url or None
        name = child_text(author, "name")
        email = child_text(author, "email")
        if name or url or email:
            authors.append({"name": name, "email": email, "url": url})
    return authors


def _parse_categories(element: Element) -> list[FeedCategory]:
    categories: list[FeedCategory] = []
    for category in element.find_elements_with_name("category"):
        term = category.get_attribute("term")
        if not term:
            continue
        categories.append(
            {
                "label": category.get_attribute("label") or term,
                "term": term,
                "url": category.get_attribute("scheme"),
            }
        )
    return categories + subject_categories(element)


class AtomFeed(Feed):
    """Atom 0.3 and 1.0 feeds."""

    def __init__(self, document: Document) -> None:
        super().__init__(document)
        root = document.find_element_with_name("feed")
        if root is None:
            raise InvalidFeedError("The Atom feed does not have a root element")
        self._root = root

    @property
    def element(self) -> Element:
        return self._root

    @property
    def _version(self) -> Optional[str]:
        version = self._root.get_attribute("version")
        if version in SUPPORTED_ATOM_VERSIONS:
            return version
        return _ATOM_VERSION_BY_NAMESPACE.get(self._root.get_attribute("xmlns") or "")

    @property
    def meta(self) -> FeedMeta:
        return {"type": "atom", "version": self._version}

    @property
    def language(self) -> Optional[str]:
        return self._root.get_attribute("xml:lang") or self._root.get_attribute("lang")

    @property
    def description(self) -> Optional[str]:
        return child_text(self._root, "subtitle") or child_text(self._root, "tagline")

    @property
    def copyright(self) -> Optional[str]:
        return child_text(self._root, "rights") or child_text(self._root, "copyright")

    @property
    def url(self) -> Optional[str]:
        return _alternate_url(self._root)

    @property
    def self(self) -> Optional[str]:
        return _link_href(self._root.find_elements_with_name("link"), "self")

    @property
    def updated(self) -> Optional[datetime.datetime]:
        return child_date(self._root, "updated") or child_date(self._root, "modified")

    @property
    def generator(self) -> Optional[FeedGenerator]:
        generator = self._root.find_element_with_name("generator")
        if generator is None:
            return None

        label = generator.text_content_normalized or None
        version = generator.get_attribute("version")
        url = generator.get_attribute_as_url("uri") or generator.get_attribute_as_url(
            "url"
        )
        if label or version or url:
            return {"label": label, "version": version, "url": url}
        return None

    @property
    def image(self) -> Optional[FeedImage]:
        for name in ("logo", "icon"):
            image = self._root.find_element_with_name(name)
            url = image.text_content_as_url if image is not None else None
            if url:
                return {"title": None, "url": url}
        return None

    @property
    def authors(self) -> list[FeedAuthor]:
        return _parse_authors(self._root)

    @property
    def categories(self) -> list[FeedCategory]:
        return _parse_categories(self._root)

    def _build_items(self) -> list[FeedItem]:
        return [
            AtomFeedItem(self, entry)
            for entry in self._root.find_elements_with_name("entry")
        ]


class AtomFeedItem(FeedItem):
    """An Atom ``entry``."""

    @property
    def id(self) -> Optional[str]:
        return child_text(self.element, "id")

    @property
    def description(self) -> Optional[str]:
        return child_text(self.element, "summary")

    @property
    def url(self) -> Optional[str]:
        url = _alternate_url(self.element)
        if not url:
            return None
        return self._resolve_against_feed(url)

    @property
    def published(self) -> Optional[datetime.datetime]:
        return child_date(self.element, "published") or child_date(self.element, "issued")

    @property
    def updated(self) -> Optional[datetime.datetime]:
        return (
            child_date(self.element, "modified")
            or child_date(self.element, "updated")
            or self.published
        )

    @property
    def content(self) -> Optional[str]:
        content = next(
            (
                content
                for content in self.element.find_elements_with_name("content")
                if not is_media_rss(content)
            ),
            None,
        )
        if content is None:
            return None

        # xhtml content is wrapped in a div that is not part of the content
        div = content.find_element_with_name("div")
        if content.get_attribute("type") == "xhtml" and div is not None:
            return div.inner_html or None
        return content.text_content_normalized or None

    @property
    def image(self) -> Optional[FeedImage]:
        return self._image_from_media()

    @property
    def media(self) -> list[FeedItemMedia]:
        enclosures: list[FeedItemMedia] = []
        for link in self.element.find_elements_with_name("link"):
            if link.get_attribute("rel") != "enclosure":
                continue
            url = link.get_attribute_as_url("href")
            if not url:
                continue
            mime_type = (link.get_attribute("type") or "").lower() or None
            media_type = mime_type.split("/")[0] if mime_type else None
            enclosures.append(
                {
                    "url": url,
                    "image": url if media_type == "image" else None,
                    "title": link.get_attribute("title"),
                    "length": link.get_attribute_as_number("length"),
                    "type": media_type,
                    "mime_type": mime_type,
                }
            )
        return unique_media(enclosures + super().media)

    @property
    def authors(self) -> list[FeedAuthor]:
        return _parse_authors(self.element) or self.feed.authors

    @property
    def categories(self) -> list[FeedCategory]:
        return _parse_categories(self.element) or self.feed.categories
