from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Optional, Union

from lxml import etree

from .atom import AtomFeed
from .element import Document
from .errors import InvalidFeedError
from .rss import RssFeed

if TYPE_CHECKING:
    from lxml.etree import _Element

    from .feed import AnyFeed

logger = logging.getLogger(__name__)

_RE_XML_DECL_ENCODING = re.compile(
    r'(<\?xml[^>]*encoding=["\'])([^"\']+)(["\'][^>]*\?>)', re.IGNORECASE
)
_RE_WHITESPACE = re.compile(r"\s+")

_XML_START_PATTERNS = (b"<?xml", b"<rss", b"<feed", b"<rdf:rdf", b"<?xml-stylesheet")

# Root element name -> feed class, checked in order
_FEED_TYPES: tuple[tuple[str, type[Union[AtomFeed, RssFeed]]], ...] = (
    ("feed", AtomFeed),
    ("rdf", RssFeed),
    ("rss", RssFeed),
)

_NON_FEED_MESSAGES: dict[str, str] = {
    "html": "Received HTML page instead of feed",
    "div": "Received HTML fragment instead of feed",
    "body": "Received HTML fragment instead of feed",
    "br": "Received HTML fragment instead of feed",
    "status": "Feed server returned status message",
    "error": "Feed server returned error",
    "opml": "Received OPML document instead of feed (OPML is an outline format, not a feed)",
    "urlset": "Received XML sitemap instead of feed (sitemap is for search engines, not a feed)",
    "sitemapindex": "Received XML sitemap instead of feed (sitemap is for search engines, not a feed)",
}

_STRICT_XML_PARSER = etree.XMLParser(
    ns_clean=True,
    recover=False,
    collect_ids=False,
    resolve_entities=False,
)
_RECOVER_XML_PARSER = etree.XMLParser(
    ns_clean=True,
    recover=True,
    collect_ids=False,
    resolve_entities=False,
)


def _ensure_utf8_xml_declaration(content: str) -> str:
    """Ensure the XML declaration's encoding matches the UTF-8 bytes we emit."""
    if not content.lstrip().startswith("<?xml"):
        return content
    return _RE_XML_DECL_ENCODING.sub(r"\1utf-8\3", content, count=1)


def _clean_feed_bytes(content: bytes) -> bytes:
    """Cut the XML document out of any junk before it and reject HTML pages."""
    stripped_content = content.lstrip()
    preview_lower = stripped_content[:2000].lower()

    if preview_lower.startswith(b"\xef\xbb\xbf"):
        preview_lower = preview_lower[3:]
        stripped_content = stripped_content[3:]

    if preview_lower.startswith((b"<?xml", b"<rss", b"<feed", b"<rdf")):
        return stripped_content

    if preview_lower.startswith((b"<!doctype html", b"<html")):
        raise InvalidFeedError(_NON_FEED_MESSAGES["html"])

    search_chunk = content[:8192].lower()
    starts = [
        idx for idx in map(search_chunk.find, _XML_START_PATTERNS) if idx != -1
    ]
    if starts:
        return content[min(starts) :]

    if b"<script>" in preview_lower or b"<body>" in preview_lower:
        raise InvalidFeedError(_NON_FEED_MESSAGES["html"])

    return content


def _prepare_xml_bytes(source: Union[str, bytes]) -> bytes:
    if isinstance(source, str):
        source = _ensure_utf8_xml_declaration(source).encode("utf-8", errors="replace")

    cleaned = _clean_feed_bytes(source)
    if not cleaned.strip():
        raise InvalidFeedError("Empty content")

    # U+2028 and U+2029 are not valid XML 1.0 characters
    if b"\xe2\x80\xa8" in cleaned or b"\xe2\x80\xa9" in cleaned:
        cleaned = cleaned.replace(b"\xe2\x80\xa8", b"\n").replace(b"\xe2\x80\xa9", b"\n")
    return cleaned


def _parse_xml_root(xml_content: bytes, recover: bool) -> _Element:
    try:
        root = etree.fromstring(xml_content, parser=_STRICT_XML_PARSER)
    except etree.XMLSyntaxError as e:
        if not recover:
            raise InvalidFeedError(f"Failed to parse XML content: {e}") from e
        logger.warning("Malformed XML (%s), retrying with the recovering parser", e)
        try:
            root = etree.fromstring(xml_content, parser=_RECOVER_XML_PARSER)
        except etree.XMLSyntaxError as e:
            raise InvalidFeedError(f"Failed to parse XML content: {e}") from e

    if root is None:
        raise InvalidFeedError()
    return root


def _non_feed_message(document: Document) -> Optional[str]:
    base_msg = _NON_FEED_MESSAGES.get(document.root.name)
    if base_msg is None:
        return None

    text = _RE_WHITESPACE.sub(" ", " ".join(document.raw.itertext())).strip()
    if len(text) > 10:
        return f"{base_msg}: {text[:150]}"
    return base_msg


def parse_feed(source: Union[str, bytes], *, recover: bool = True) -> AnyFeed:
    """Parse an Atom, RSS or RDF document into a feed object.

    Args:
        source: The XML document, as text or raw bytes
        recover: Retry with lxml's recovering parser when the document
            is not well-formed

    Returns:
        An AtomFeed or RssFeed bound to the parsed document

    Raises:
        InvalidFeedError: When the input is not XML or not a recognised feed
    """
    if not isinstance(source, (str, bytes)):
        raise InvalidFeedError(f"Expected str or bytes, got {type(source).__name__}")

    document = Document(_parse_xml_root(_prepare_xml_bytes(source), recover))
    for name, feed_class in _FEED_TYPES:
        if document.has_element_with_name(name):
            feed = feed_class(document)
            logger.debug("Detected %s feed (version %s)", name, feed.meta["version"])
            return feed

    message = _non_feed_message(document)
    raise InvalidFeedError(message) if message else InvalidFeedError()
