import json
import logging

import pytest

from unifeedparser import AtomFeed, InvalidFeedError, RssFeed, parse_feed

RSS = """<rss version="2.0"><channel>
  <title>T</title>
  <link>https://example.com/</link>
  <pubDate>Mon, 01 Jan 2024 00:00:00 GMT</pubDate>
  <item><title>A</title><link>/a</link><pubDate>Tue, 02 Jan 2024 00:00:00 GMT</pubDate></item>
</channel></rss>"""


def test_dispatch_by_root_element():
    assert isinstance(parse_feed("<feed/>"), AtomFeed)
    assert isinstance(parse_feed(RSS), RssFeed)
    rdf = parse_feed(
        '<rdf:RDF xmlns:rdf="http://www.w3.org/1999/02/22-rdf-syntax-ns#"><channel/></rdf:RDF>'
    )
    assert isinstance(rdf, RssFeed)
    assert rdf.meta["type"] == "rdf"


def test_unknown_root_raises_invalid_feed():
    with pytest.raises(InvalidFeedError) as excinfo:
        parse_feed("<unknown/>")
    assert excinfo.value.code == "INVALID_FEED"
    assert excinfo.value.message == "The XML document could not be parsed as a feed"
    assert isinstance(excinfo.value, ValueError)


def test_known_non_feed_roots_get_specific_messages():
    with pytest.raises(InvalidFeedError, match="OPML"):
        parse_feed('<opml version="2.0"><head><title>Subs</title></head></opml>')
    with pytest.raises(InvalidFeedError, match="sitemap"):
        parse_feed(
            '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">'
            "<url><loc>https://example.com/</loc></url></urlset>"
        )


def test_non_string_input_raises():
    with pytest.raises(InvalidFeedError):
        parse_feed(123)


def test_malformed_xml_is_recovered(caplog):
    xml = '<rss version="2.0"><channel><title>Fish & Chips</title><item><title>A</title></item></channel></rss>'
    with caplog.at_level(logging.WARNING, logger="unifeedparser"):
        feed = parse_feed(xml)
    assert feed.meta["type"] == "rss"
    assert [item.title for item in feed.items] == ["A"]
    assert "recovering parser" in caplog.text


def test_malformed_xml_without_recovery_raises():
    xml = '<rss version="2.0"><channel><title>Fish & Chips</title></channel></rss>'
    with pytest.raises(InvalidFeedError, match="Failed to parse XML"):
        parse_feed(xml, recover=False)


def test_items_are_built_once():
    feed = parse_feed(RSS)
    assert feed.items is feed.items
    assert feed.items[0].feed is feed


def test_to_json():
    feed = parse_feed(RSS)
    data = feed.to_json()
    assert data["meta"] == {"type": "rss", "version": "2.0"}
    assert data["title"] == "T"
    assert data["published"] == "2024-01-01T00:00:00+00:00"
    assert data["authors"] == []
    assert data["items"] == [
        {
            "id": None,
            "title": "A",
            "description": None,
            "url": "https://example.com/a",
            "published": "2024-01-02T00:00:00+00:00",
            "updated": "2024-01-02T00:00:00+00:00",
            "content": None,
            "image": None,
            "media": [],
            "authors": [],
            "categories": [],
        }
    ]
    assert feed.to_json() == data
    assert json.loads(json.dumps(data)) == data
