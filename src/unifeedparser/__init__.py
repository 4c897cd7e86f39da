from .atom import AtomFeed, AtomFeedItem
from .contact import parse_contact_string
from .element import DEFAULT_NAMESPACE, Document, Element
from .errors import InvalidFeedError
from .feed import Feed, FeedItem
from .main import parse_feed
from .rss import RssFeed, RssFeedItem

__all__ = [
    "parse_feed",
    "parse_contact_string",
    "InvalidFeedError",
    "Feed",
    "FeedItem",
    "AtomFeed",
    "AtomFeedItem",
    "RssFeed",
    "RssFeedItem",
    "Document",
    "Element",
    "DEFAULT_NAMESPACE",
]
