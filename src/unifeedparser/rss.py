from __future__ import annotations

import datetime
import re
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
    is_itunes,
    subject_categories,
    unique_media,
)

RSS_VERSION_0_9 = "0.9"
RSS_VERSION_1_0 = "1.0"
RSS_VERSION_2_0 = "2.0"
SUPPORTED_RSS_VERSIONS = (RSS_VERSION_0_9, RSS_VERSION_1_0, RSS_VERSION_2_0)

_RSS_VERSION_BY_NAMESPACE: dict[str, str] = {
    "http://channel.netscape.com/rdf/simple/0.9/": RSS_VERSION_0_9,
    "http://my.netscape.com/rdf/simple/0.9/": RSS_VERSION_0_9,
    "http://purl.org/rss/1.0/": RSS_VERSION_1_0,
}
_CONTENT_MODULE_NAMESPACE = "http://purl.org/rss/1.0/modules/content/"
_RE_HTTP_URL = re.compile(r"^https?://", re.IGNORECASE)


def _text_link_url(element: Element) -> Optional[str]:
    """The first ``link`` child with text, as a URL. RSS links carry no rel."""
    for link in element.find_elements_with_name("link"):
        if link.text_content_normalized:
            return link.text_content_as_url or None
    return None


def _parse_image(element: Element) -> Optional[FeedImage]:
    """A plain ``<image><url/><title/></image>``, else an ``itunes:image`` href."""
    images = element.find_elements_with_name("image")

    image = next((image for image in images if not is_itunes(image)), None)
    if image is not None:
        url_el = image.find_element_with_name("url")
        url = url_el.text_content_as_url if url_el is not None else None
        if url:
            return {"title": child_text(image, "title"), "url": url}

    for image in images:
        if is_itunes(image):
            href = image.get_attribute_as_url("href")
            if href:
                return {"title": None, "url": href}
    return None


def _parse_contacts(element: Element, names: tuple[str, ...]) -> list[FeedAuthor]:
    authors: list[FeedAuthor] = []
    for name in names:
        for contact in element.find_elements_with_name(name):
            parsed = parse_contact_string(contact.text_content_normalized)
            if parsed is not None:
                authors.append(parsed)
    return authors


def _parse_categories(element: Element) -> list[FeedCategory]:
    """Plain (non-iTunes) ``category`` elements; ``domain`` is kept when it is an http(s) URL."""
    categories: list[FeedCategory] = []
    for category in element.find_elements_with_name("category"):
        if is_itunes(category):
            continue
        term = category.text_content_normalized
        if not term:
            continue
        url = None
        domain = category.get_attribute("domain")
        if domain and _RE_HTTP_URL.match(domain.strip()):
            url = category.get_attribute_as_url("domain")
        categories.append({"label": term, "term": term, "url": url})
    return categories


def _parse_itunes_categories(element: Element) -> list[FeedCategory]:
    """iTunes categories, nested ones flattened to ``Parent/Child`` terms."""
    categories: list[FeedCategory] = []
    for category in element.find_elements_with_name("category"):
        if not is_itunes(category):
            continue
        label = (category.get_attribute("text") or "").strip()
        if not label:
            continue

        subcategories: list[FeedCategory] = []
        for subcategory in category.find_elements_with_name("category"):
            sublabel = (subcategory.get_attribute("text") or "").strip()
            if is_itunes(subcategory) and sublabel:
                subcategories.append(
                    {"label": sublabel, "term": f"{label}/{sublabel}", "url": None}
                )
        categories.extend(
            subcategories or [{"label": label, "term": label, "url": None}]
        )
    return categories


class RssFeed(Feed):
    """RSS 0.9x, 1.0 (RDF) and 2.0 feeds."""

    def __init__(self, document: Document) -> None:
        super().__init__(document)
        root = document.find_element_with_name("rss") or document.find_element_with_name(
            "rdf"
        )
        if root is None:
            raise InvalidFeedError("The RSS feed does not have a root element")
        channel = root.find_element_with_name("channel")
        if channel is None:
            raise InvalidFeedError("The RSS feed does not have a channel element")
        self._root = root
        self._channel = channel

    @property
    def element(self) -> Element:
        return self._channel

    @property
    def _version(self) -> Optional[str]:
        version = self._root.get_attribute("version")
        if version in SUPPORTED_RSS_VERSIONS:
            return version
        # 0.91, 0.92, 0.93 and 0.94 all report as 0.9
        if version and version.startswith(RSS_VERSION_0_9):
            return RSS_VERSION_0_9
        return _RSS_VERSION_BY_NAMESPACE.get(self._root.get_attribute("xmlns") or "")

    @property
    def meta(self) -> FeedMeta:
        return {"type": self._root.name, "version": self._version}

    @property
    def language(self) -> Optional[str]:
        return (
            child_text(self._channel, "language")
            or self._root.get_attribute("xml:lang")
            or self._root.get_attribute("lang")
        )

    @property
    def description(self) -> Optional[str]:
        return child_text(self._channel, "description") or child_text(
            self._channel, "subtitle"
        )

    @property
    def copyright(self) -> Optional[str]:
        return child_text(self._channel, "copyright") or child_text(
            self._channel, "rights"
        )

    @property
    def url(self) -> Optional[str]:
        return _text_link_url(self._channel)

    @property
    def self(self) -> Optional[str]:
        for link in self._channel.find_elements_with_name("link"):
            if link.get_attribute("rel") == "self":
                return link.get_attribute_as_url("href")
        return None

    @property
    def published(self) -> Optional[datetime.datetime]:
        return child_date(self._channel, "pubdate")

    @property
    def updated(self) -> Optional[datetime.datetime]:
        return child_date(self._channel, "lastbuilddate") or child_date(
            self._channel, "date"
        )

    @property
    def generator(self) -> Optional[FeedGenerator]:
        label = child_text(self._channel, "generator")
        if label:
            return {"label": label, "version": None, "url": None}
        return None

    @property
    def image(self) -> Optional[FeedImage]:
        return _parse_image(self._channel)

    @property
    def authors(self) -> list[FeedAuthor]:
        # webMaster is a technical contact, not an author
        return _parse_contacts(self._channel, ("managingeditor", "author", "creator"))

    @property
    def categories(self) -> list[FeedCategory]:
        return (
            _parse_categories(self._channel)
            + _parse_itunes_categories(self._channel)
            + subject_categories(self._channel)
        )

    def _build_items(self) -> list[FeedItem]:
        # RSS 1.0 places items beside the channel rather than inside it
        elements = self._channel.find_elements_with_name(
            "item"
        ) + self._root.find_elements_with_name("item")
        return [RssFeedItem(self, element) for element in elements]


class RssFeedItem(FeedItem):
    """An RSS or RDF ``item``."""

    @property
    def id(self) -> Optional[str]:
        return child_text(self.element, "guid")

    @property
    def description(self) -> Optional[str]:
        return child_text(self.element, "description")

    @property
    def url(self) -> Optional[str]:
        url = _text_link_url(self.element)
        if not url:
            return None
        return self._resolve_against_feed(url)

    @property
    def published(self) -> Optional[datetime.datetime]:
        return child_date(self.element, "pubdate") or child_date(self.element, "date")

    @property
    def updated(self) -> Optional[datetime.datetime]:
        return child_date(self.element, "date") or self.published

    @property
    def content(self) -> Optional[str]:
        encoded = self.element.find_element_with_name("encoded")
        if encoded is None:
            return None
        if (
            encoded.namespace != "content"
            and encoded.namespace_uri != _CONTENT_MODULE_NAMESPACE
        ):
            return None
        return encoded.text_content_normalized or None

    @property
    def image(self) -> Optional[FeedImage]:
        return _parse_image(self.element) or self._image_from_media()

    @property
    def media(self) -> list[FeedItemMedia]:
        enclosures: list[FeedItemMedia] = []
        for enclosure in self.element.find_elements_with_name("enclosure"):
            url = enclosure.get_attribute_as_url("url")
            if not url:
                continue
            mime_type = (enclosure.get_attribute("type") or "").lower() or None
            media_type = mime_type.split("/")[0] if mime_type else None
            enclosures.append(
                {
                    "url": url,
                    "image": url if media_type == "image" else None,
                    "title": None,
                    "length": enclosure.get_attribute_as_number("length"),
                    "type": media_type,
                    "mime_type": mime_type,
                }
            )
        return unique_media(enclosures + super().media)

    @property
    def authors(self) -> list[FeedAuthor]:
        return _parse_contacts(self.element, ("author", "creator")) or self.feed.authors

    @property
    def categories(self) -> list[FeedCategory]:
        return (
            _parse_categories(self.element) + subject_categories(self.element)
            or self.feed.categories
        )
