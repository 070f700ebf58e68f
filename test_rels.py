"""
Tests for the document-wide rel index (rels, rel-urls, alternates).
"""

from mf2_parser.main import MicroformatsParser
from mf2_parser.schemas import ParserOptions

BASE = "http://example.com/"


def parse(html: str, url: str = BASE, **options) -> dict:
    return MicroformatsParser(ParserOptions(**options)).parse(html, url=url).to_dict()


def test_rel_me_link():
    result = parse('<a rel="me" href="https://social.example/@x">Social</a>')
    assert result["rels"] == {"me": ["https://social.example/@x"]}
    assert result["rel-urls"] == {
        "https://social.example/@x": {"rels": ["me"], "text": "Social"}
    }


def test_duplicate_urls_are_merged_first_attributes_win():
    result = parse(
        '<a rel="me" href="/a">first</a>'
        '<a rel="me author" href="/a" title="T">second</a>'
    )
    assert result["rels"] == {
        "me": ["http://example.com/a"],
        "author": ["http://example.com/a"],
    }
    assert result["rel-urls"]["http://example.com/a"] == {
        "rels": ["author", "me"],
        "title": "T",
        "text": "first",
    }


def test_link_and_area_attributes():
    result = parse(
        '<html><head><link rel="stylesheet" href="/s.css" type="text/css" media="screen"></head>'
        '<body><map name="m"><area rel="license" href="/license" hreflang="en"></map></body></html>'
    )
    assert result["rels"] == {
        "stylesheet": ["http://example.com/s.css"],
        "license": ["http://example.com/license"],
    }
    assert result["rel-urls"]["http://example.com/s.css"] == {
        "rels": ["stylesheet"],
        "media": "screen",
        "type": "text/css",
    }
    assert result["rel-urls"]["http://example.com/license"] == {
        "rels": ["license"],
        "hreflang": "en",
    }


def test_other_elements_and_incomplete_links_are_ignored():
    result = parse(
        '<b rel="me" href="/b">b</b>'
        '<a rel="me">no href</a>'
        '<a href="/no-rel">no rel</a>'
        '<a rel=" " href="/blank">blank rel</a>'
    )
    assert result["rels"] == {}
    assert result["rel-urls"] == {}


def test_rels_inside_microformats_are_indexed():
    result = parse('<div class="h-card"><a rel="me" href="/me">Me</a></div>')
    assert result["rels"] == {"me": ["http://example.com/me"]}
    assert result["items"][0]["properties"]["url"] == ["http://example.com/me"]


def test_relative_urls_without_base_are_kept():
    result = parse('<a rel="me" href="/me">Me</a>', url=None)
    assert result["rels"] == {"me": ["/me"]}


def test_base_element_overrides_document_url():
    result = parse('<base href="http://other.example/dir/"><a rel="me" href="me">Me</a>')
    assert result["rels"] == {"me": ["http://other.example/dir/me"]}


def test_alternates_disabled_by_default():
    result = parse('<link rel="alternate" type="application/atom+xml" href="/feed">')
    assert "alternates" not in result
    assert result["rels"] == {"alternate": ["http://example.com/feed"]}


def test_alternates_enabled():
    result = parse(
        '<link rel="alternate" type="application/atom+xml" href="/feed">'
        '<a rel="alternate home" href="/fr/" hreflang="fr">Accueil</a>',
        enable_alternates=True,
    )
    assert result["alternates"] == [
        {"url": "http://example.com/feed", "rel": "", "type": "application/atom+xml"},
        {"url": "http://example.com/fr/", "rel": "home", "hreflang": "fr", "text": "Accueil"},
    ]
    # Alternate links still appear in the regular index
    assert result["rels"]["alternate"] == ["http://example.com/feed", "http://example.com/fr/"]


def test_alternates_enabled_without_alternate_links():
    result = parse('<a rel="me" href="/me">Me</a>', enable_alternates=True)
    assert "alternates" not in result


def test_rels_are_document_wide_when_parsing_from_id():
    result = MicroformatsParser().parse(
        '<a rel="me" href="/me">Me</a>'
        '<div id="scope"><p class="h-card">Inside</p></div>',
        url=BASE,
        element_id="scope",
    ).to_dict()
    assert result["rels"] == {"me": ["http://example.com/me"]}
    assert result["items"][0]["properties"]["name"] == ["Inside"]
