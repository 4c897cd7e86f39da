import datetime

from unifeedparser import AtomFeed, AtomFeedItem, parse_feed

UTC = datetime.timezone.utc

ATOM_1_0 = """<?xml version="1.0" encoding="utf-8"?>
<feed xmlns="http://www.w3.org/2005/Atom"
      xmlns:media="http://search.yahoo.com/mrss/"
      xml:lang="en-GB">
  <title>Example Feed</title>
  <subtitle>A subtitle</subtitle>
  <rights>Copyright Example</rights>
  <link href="https://example.com/"/>
  <link rel="self" href="https://example.com/feed.xml"/>
  <updated>2024-01-02T03:04:05Z</updated>
  <generator uri="https://gen.example/" version="1.2">Gen</generator>
  <logo>https://example.com/logo.png</logo>
  <icon>https://example.com/icon.png</icon>
  <author>
    <name>Jane</name>
    <email>jane@example.com</email>
    <uri>https://jane.example/</uri>
  </author>
  <category term="tech" label="Technology" scheme="https://example.com/cats"/>
  <entry>
    <id>urn:1</id>
    <title>First</title>
    <link rel="alternate" href="/p"/>
    <link rel="enclosure" href="https://example.com/a.mp3" type="Audio/MPEG"
          length="1234" title="Audio"/>
    <summary>Sum</summary>
    <published>2024-01-01T00:00:00Z</published>
    <media:content url="https://example.com/a.mp3" type="audio/mpeg"/>
    <content type="xhtml"><div xmlns="http://www.w3.org/1999/xhtml">Hello <b>World</b></div></content>
    <media:content url="https://example.com/i.jpg" medium="image"/>
  </entry>
  <entry>
    <title>Second</title>
    <author>Bob bob@example.com</author>
    <category term="x"/>
    <updated>2024-02-01T00:00:00Z</updated>
    <content type="html">&lt;p&gt;Escaped&lt;/p&gt;</content>
  </entry>
</feed>
"""


def test_atom_feed_fields():
    feed = parse_feed(ATOM_1_0)
    assert isinstance(feed, AtomFeed)
    assert feed.meta == {"type": "atom", "version": "1.0"}
    assert feed.language == "en-GB"
    assert feed.title == "Example Feed"
    assert feed.description == "A subtitle"
    assert feed.copyright == "Copyright Example"
    assert feed.url == "https://example.com/"
    assert feed.self == "https://example.com/feed.xml"
    assert feed.published is None
    assert feed.updated == datetime.datetime(2024, 1, 2, 3, 4, 5, tzinfo=UTC)
    assert feed.generator == {
        "label": "Gen",
        "version": "1.2",
        "url": "https://gen.example/",
    }
    assert feed.image == {"title": None, "url": "https://example.com/logo.png"}
    assert feed.authors == [
        {"name": "Jane", "email": "jane@example.com", "url": "https://jane.example/"}
    ]
    assert feed.categories == [
        {"label": "Technology", "term": "tech", "url": "https://example.com/cats"}
    ]
    assert len(feed.items) == 2
    assert all(isinstance(item, AtomFeedItem) for item in feed.items)


def test_atom_entry_fields():
    item = parse_feed(ATOM_1_0).items[0]
    assert item.id == "urn:1"
    assert item.title == "First"
    assert item.description == "Sum"
    assert item.url == "https://example.com/p"
    assert item.published == datetime.datetime(2024, 1, 1, tzinfo=UTC)
    assert item.updated == item.published
    assert item.content == "Hello <b>World</b>"


def test_atom_entry_media_is_deduplicated():
    item = parse_feed(ATOM_1_0).items[0]
    audio = {
        "url": "https://example.com/a.mp3",
        "image": None,
        "title": "Audio",
        "length": 1234,
        "type": "audio",
        "mime_type": "audio/mpeg",
    }
    image = {
        "url": "https://example.com/i.jpg",
        "image": "https://example.com/i.jpg",
        "title": None,
        "length": None,
        "type": "image",
        "mime_type": None,
    }
    assert item.media == [audio, image]
    assert item.media_audio == [audio]
    assert item.media_images == [image]
    assert item.media_videos == []
    assert item.image == {"title": None, "url": "https://example.com/i.jpg"}


def test_atom_entry_inherits_feed_authors_and_categories():
    feed = parse_feed(ATOM_1_0)
    first, second = feed.items
    assert first.authors == feed.authors
    assert first.categories == feed.categories
    assert second.authors == [{"name": "Bob", "email": "bob@example.com", "url": None}]
    assert second.categories == [{"label": "x", "term": "x", "url": None}]


def test_atom_entry_without_optional_fields():
    item = parse_feed(ATOM_1_0).items[1]
    assert item.id is None
    assert item.url is None
    assert item.published is None
    assert item.updated == datetime.datetime(2024, 2, 1, tzinfo=UTC)
    assert item.content == "<p>Escaped</p>"
    assert item.media == []
    assert item.image is None


def test_atom_0_3():
    feed = parse_feed(
        """<feed version="0.3" xmlns="http://purl.org/atom/ns#">
          <title>Old</title>
          <tagline>Tag</tagline>
          <copyright>C</copyright>
          <modified>2004-01-01T00:00:00Z</modified>
          <link rel="alternate" href="https://old.example/"/>
          <entry>
            <title>E</title>
            <issued>2003-12-31T00:00:00Z</issued>
            <modified>2004-01-01T00:00:00Z</modified>
          </entry>
        </feed>"""
    )
    assert feed.meta == {"type": "atom", "version": "0.3"}
    assert feed.description == "Tag"
    assert feed.copyright == "C"
    assert feed.url == "https://old.example/"
    assert feed.updated == datetime.datetime(2004, 1, 1, tzinfo=UTC)
    item = feed.items[0]
    assert item.published == datetime.datetime(2003, 12, 31, tzinfo=UTC)
    assert item.updated == datetime.datetime(2004, 1, 1, tzinfo=UTC)


def test_atom_version_unknown():
    feed = parse_feed("<feed><title>x</title></feed>")
    assert feed.meta == {"type": "atom", "version": None}
    assert feed.items == []


def test_atom_empty_author_and_generator_are_dropped():
    feed = parse_feed(
        """<feed xmlns="http://www.w3.org/2005/Atom">
          <author><name> </name></author>
          <generator/>
          <icon>https://example.com/icon.png</icon>
        </feed>"""
    )
    assert feed.authors == []
    assert feed.generator is None
    assert feed.image == {"title": None, "url": "https://example.com/icon.png"}


def test_atom_category_label_defaults_to_term():
    feed = parse_feed(
        """<feed xmlns="http://www.w3.org/2005/Atom"
              xmlns:dc="http://purl.org/dc/elements/1.1/">
          <category term="a"/>
          <category label="no term"/>
          <dc:subject>b</dc:subject>
        </feed>"""
    )
    assert feed.categories == [
        {"label": "a", "term": "a", "url": None},
        {"label": "b", "term": "b", "url": None},
    ]


def test_atom_entry_url_uses_xml_base():
    feed = parse_feed(
        """<feed xmlns="http://www.w3.org/2005/Atom" xml:base="https://base.example/dir/">
          <entry><link href="post"/></entry>
        </feed>"""
    )
    assert feed.items[0].url == "https://base.example/dir/post"


def test_atom_xhtml_content_stays_escaped():
    feed = parse_feed(
        """<feed xmlns="http://www.w3.org/2005/Atom">
          <entry>
            <content type="xhtml"><div xmlns="http://www.w3.org/1999/xhtml"><b title='say "hi"'>x</b> 1 &lt; 2 &amp;lt;script&amp;gt;</div></content>
          </entry>
        </feed>"""
    )
    assert feed.items[0].content == (
        '<b title="say &quot;hi&quot;">x</b> 1 &lt; 2 &amp;lt;script&amp;gt;'
    )


def test_atom_entry_media_rss_group():
    feed = parse_feed(
        """<feed xmlns="http://www.w3.org/2005/Atom"
              xmlns:media="http://search.yahoo.com/mrss/">
          <entry>
            <media:group>
              <media:content url="https://example.com/clip.mp4" medium="video" filesize="4096"/>
              <media:thumbnail url="https://example.com/clip.jpg"/>
              <media:description>Clip</media:description>
            </media:group>
          </entry>
          <entry>
            <media:thumbnail url="https://example.com/only.jpg"/>
          </entry>
        </feed>"""
    )
    first, second = feed.items
    clip = {
        "url": "https://example.com/clip.mp4",
        "image": "https://example.com/clip.jpg",
        "title": "Clip",
        "length": 4096,
        "type": "video",
        "mime_type": None,
    }
    assert first.media == [clip]
    assert first.media_videos == [clip]
    assert first.image == {"title": "Clip", "url": "https://example.com/clip.jpg"}
    assert second.media == []
    assert second.image == {"title": None, "url": "https://example.com/only.jpg"}
