"""Format-independent Feed and FeedItem shapes.

Every field has a safe default here; AtomFeed/RssFeed and their item
classes override only what their format can provide.
"""

from __future__ import annotations

import datetime
from typing import TYPE_CHECKING, Any, Iterator, Optional, TypedDict, Union

from .contact import Contact
from .element import Document, Element, resolve_url

if TYPE_CHECKING:
    from .atom import AtomFeed, AtomFeedItem
    from .rss import RssFeed, RssFeedItem

_MEDIA_RSS_NAMESPACES = frozenset(
    {"http://search.yahoo.com/mrss/", "https://search.yahoo.com/mrss/"}
)
_ITUNES_NAMESPACES = frozenset(
    {
        "http://www.itunes.com/dtds/podcast-1.0.dtd",
        "https://www.itunes.com/dtds/podcast-1.0.dtd",
    }
)


class FeedMeta(TypedDict):
    type: str
    version: Optional[str]


class FeedGenerator(TypedDict):
    label: Optional[str]
    version: Optional[str]
    url: Optional[str]


class FeedImage(TypedDict):
    title: Optional[str]
    url: str


class FeedCategory(TypedDict):
    label: Optional[str]
    term: str
    url: Optional[str]


class FeedItemMedia(TypedDict):
    url: str
    image: Optional[str]
    title: Optional[str]
    length: Optional[Union[int, float]]
    type: Optional[str]
    mime_type: Optional[str]


FeedAuthor = Contact


def child_text(element: Element, name: str) -> Optional[str]:
    child = element.find_element_with_name(name)
    if child is None:
        return None
    return child.text_content_normalized or None


def child_date(element: Element, name: str) -> Optional[datetime.datetime]:
    child = element.find_element_with_name(name)
    if child is None:
        return None
    return child.text_content_as_date


def is_itunes(element: Element) -> bool:
    return element.namespace == "itunes" or element.namespace_uri in _ITUNES_NAMESPACES


def is_media_rss(element: Element) -> bool:
    return element.namespace_uri in _MEDIA_RSS_NAMESPACES


def subject_categories(element: Element) -> list[FeedCategory]:
    """Dublin Core style ``subject`` elements as bare-term categories."""
    categories: list[FeedCategory] = []
    for subject in element.find_elements_with_name("subject"):
        term = subject.text_content_normalized
        if term:
            categories.append({"label": term, "term": term, "url": None})
    return categories


def unique_media(media: list[FeedItemMedia]) -> list[FeedItemMedia]:
    """Drop media whose URL was already seen, keeping the first occurrence."""
    seen: set[str] = set()
    result: list[FeedItemMedia] = []
    for media_item in media:
        if media_item["url"] in seen:
            continue
        seen.add(media_item["url"])
        result.append(media_item)
    return result


def _isoformat(value: Optional[datetime.datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


class Feed:
    """A parsed feed bound to its XML document."""

    def __init__(self, document: Document) -> None:
        self._document = document
        self._items: Optional[list[FeedItem]] = None

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.title!r}>"

    @property
    def document(self) -> Document:
        return self._document

    @property
    def element(self) -> Element:
        """The element feed-level fields are read from."""
        return self._document

    @property
    def meta(self) -> FeedMeta:
        return {"type": "unknown", "version": "0"}

    @property
    def language(self) -> Optional[str]:
        return None

    @property
    def title(self) -> Optional[str]:
        return child_text(self.element, "title")

    @property
    def description(self) -> Optional[str]:
        return None

    @property
    def copyright(self) -> Optional[str]:
        return None

    @property
    def url(self) -> Optional[str]:
        return None

    @property
    def self(self) -> Optional[str]:
        return None

    @property
    def published(self) -> Optional[datetime.datetime]:
        return None

    @property
    def updated(self) -> Optional[datetime.datetime]:
        return None

    @property
    def generator(self) -> Optional[FeedGenerator]:
        return None

    @property
    def image(self) -> Optional[FeedImage]:
        return None

    @property
    def authors(self) -> list[FeedAuthor]:
        return []

    @property
    def categories(self) -> list[FeedCategory]:
        return []

    @property
    def items(self) -> list[FeedItem]:
        """Feed items, built on first access and reused afterwards."""
        if self._items is None:
            self._items = self._build_items()
        return self._items

    def _build_items(self) -> list[FeedItem]:
        return []

    def to_json(self) -> dict[str, Any]:
        """Project the feed into plain JSON-safe data."""
        return {
            "meta": self.meta,
            "language": self.language,
            "title": self.title,
            "description": self.description,
            "copyright": self.copyright,
            "url": self.url,
            "self": self.self,
            "published": _isoformat(self.published),
            "updated": _isoformat(self.updated),
            "generator": self.generator,
            "image": self.image,
            "authors": self.authors,
            "categories": self.categories,
            "items": [item.to_json() for item in self.items],
        }


class FeedItem:
    """A single entry or item; created by its Feed, never directly."""

    def __init__(self, feed: Feed, element: Element) -> None:
        self._feed = feed
        self._element = element

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.title!r}>"

    @property
    def feed(self) -> Feed:
        return self._feed

    @property
    def element(self) -> Element:
        return self._element

    @property
    def id(self) -> Optional[str]:
        return None

    @property
    def title(self) -> Optional[str]:
        return child_text(self.element, "title")

    @property
    def description(self) -> Optional[str]:
        return None

    @property
    def url(self) -> Optional[str]:
        return None

    @property
    def published(self) -> Optional[datetime.datetime]:
        return None

    @property
    def updated(self) -> Optional[datetime.datetime]:
        return None

    @property
    def content(self) -> Optional[str]:
        return None

    @property
    def image(self) -> Optional[FeedImage]:
        return None

    @property
    def media(self) -> list[FeedItemMedia]:
        """Media RSS ``content`` elements, direct or inside a Media RSS ``group``."""
        contents = [
            content
            for content in self.element.find_elements_with_name("content")
            if is_media_rss(content)
        ]
        for group in self.element.find_elements_with_name("group"):
            if is_media_rss(group):
                contents.extend(
                    content
                    for content in group.find_elements_with_name("content")
                    if is_media_rss(content)
                )

        media: list[FeedItemMedia] = []
        for content in contents:
            media_item = _media_rss_item(content)
            if media_item is not None:
                media.append(media_item)
        return media

    @property
    def media_audio(self) -> list[FeedItemMedia]:
        return [media_item for media_item in self.media if media_item["type"] == "audio"]

    @property
    def media_images(self) -> list[FeedItemMedia]:
        return [media_item for media_item in self.media if media_item["type"] == "image"]

    @property
    def media_videos(self) -> list[FeedItemMedia]:
        return [media_item for media_item in self.media if media_item["type"] == "video"]

    @property
    def authors(self) -> list[FeedAuthor]:
        return []

    @property
    def categories(self) -> list[FeedCategory]:
        return []

    def _resolve_against_feed(self, url: str) -> str:
        return resolve_url(url, self.feed.url)

    def _image_from_media(self) -> Optional[FeedImage]:
        """Image media, then any media thumbnail, then a ``thumbnail`` element."""
        media = self.media
        for media_item in media:
            if media_item["type"] == "image":
                return {"title": media_item["title"], "url": media_item["url"]}
        for media_item in media:
            if media_item["image"]:
                return {"title": media_item["title"], "url": media_item["image"]}

        thumbnails = [self.element.find_element_with_name("thumbnail")] + [
            group.find_element_with_name("thumbnail")
            for group in self.element.find_elements_with_name("group")
        ]
        for thumbnail in thumbnails:
            if thumbnail is None:
                continue
            url = thumbnail.get_attribute_as_url("url")
            if url:
                return {"title": None, "url": url}
        return None

    def to_json(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "url": self.url,
            "published": _isoformat(self.published),
            "updated": _isoformat(self.updated),
            "content": self.content,
            "image": self.image,
            "media": self.media,
            "authors": self.authors,
            "categories": self.categories,
        }


def _media_rss_nearby(content: Element, name: str) -> Iterator[Element]:
    """Media RSS elements called ``name`` inside ``content``, then beside it."""
    for element in (content, content.parent):
        if element is None:
            continue
        yield from (
            found for found in element.find_elements_with_name(name) if is_media_rss(found)
        )


def _media_rss_item(content: Element) -> Optional[FeedItemMedia]:
    url = content.get_attribute_as_url("url")
    if not url:
        return None

    length = content.get_attribute_as_number("length")
    if length is None:
        length = content.get_attribute_as_number("filesize")

    mime_type = (content.get_attribute("type") or "").lower() or None
    medium = (content.get_attribute("medium") or "").lower() or None
    media_type = medium
    if not medium and mime_type:
        media_type = mime_type.split("/")[0]

    image = next(
        (
            thumbnail.get_attribute_as_url("url")
            for thumbnail in _media_rss_nearby(content, "thumbnail")
            if thumbnail.get_attribute_as_url("url")
        ),
        None,
    )
    if not image and media_type == "image":
        image = url

    title = None
    for name in ("title", "description"):
        for element in _media_rss_nearby(content, name):
            if element.text_content_normalized:
                title = element.text_content_normalized
                break
        if title:
            break

    return {
        "url": url,
        "image": image,
        "title": title,
        "length": length,
        "type": media_type,
        "mime_type": mime_type,
    }


AnyFeed = Union["AtomFeed", "RssFeed"]
AnyFeedItem = Union["AtomFeedItem", "RssFeedItem"]
