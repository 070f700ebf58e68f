"""
Tests for upgrading classic microformats.

The upgrader is checked directly on a tree (classnames it injects,
idempotence, rule table validation) and through full parses of the
classic roots with bespoke handling.
"""

import pytest
from bs4 import BeautifulSoup

from mf2_parser.backcompat import (
    LEGACY_PROPERTIES,
    LEGACY_ROOTS,
    BackcompatUpgrader,
    LegacyProperty,
    validate_rule_tables,
)
from mf2_parser.context import UpgradeTable
from mf2_parser.dom import class_tokens
from mf2_parser.exceptions import RuleTableError
from mf2_parser.main import MicroformatsParser
from mf2_parser.schemas import ParserOptions

BASE = "http://example.com/"

VCARD = '<div class="vcard"><a class="url fn" href="http://tantek.com/">Tantek Çelik</a></div>'

HENTRY = (
    '<div class="hentry">'
    '<h1 class="entry-title">Title</h1>'
    '<div class="entry-content"><p>Body</p></div>'
    '<span class="author vcard"><span class="fn">Ann</span></span>'
    '<a rel="bookmark" href="/post">permalink</a>'
    '<a rel="tag" href="/tags/python/">python</a>'
    '</div>'
)


def parse(html: str, **options) -> dict:
    return MicroformatsParser(ParserOptions(**options)).parse(html, url=BASE).to_dict()


def all_classes(soup: BeautifulSoup) -> list:
    return [class_tokens(el) for el in soup.find_all(True)]


def test_vcard_upgrade_injects_classnames():
    soup = BeautifulSoup(VCARD, "html5lib")
    root = soup.find("div")
    BackcompatUpgrader(UpgradeTable()).upgrade(root)

    assert class_tokens(root) == ["vcard", "h-card"]
    link_classes = class_tokens(soup.find("a"))
    assert link_classes[:2] == ["url", "fn"]
    assert {"u-url", "p-name"} <= set(link_classes)


def test_vcard_parses_as_h_card():
    item = parse(VCARD)["items"][0]
    assert item["type"] == ["h-card"]
    assert item["properties"] == {
        "name": ["Tantek Çelik"],
        "url": ["http://tantek.com/"],
    }


@pytest.mark.parametrize("html", [VCARD, HENTRY])
def test_upgrade_is_idempotent(html):
    soup = BeautifulSoup(html, "html5lib")
    root = soup.find("div")
    table = UpgradeTable()

    BackcompatUpgrader(table).upgrade(root)
    once = all_classes(soup)
    BackcompatUpgrader(table).upgrade(root)
    assert all_classes(soup) == once

    # A fresh table must not duplicate classnames or injected elements either
    BackcompatUpgrader(UpgradeTable()).upgrade(root)
    assert all_classes(soup) == once


def test_hentry_special_cases():
    item = parse(HENTRY)["items"][0]
    props = item["properties"]

    assert item["type"] == ["h-entry"]
    assert props["name"] == ["Title"]
    assert props["content"] == [{"html": "<p>Body</p>", "value": "Body"}]
    assert props["url"] == ["http://example.com/post"]
    assert props["category"] == ["python"]

    author = props["author"][0]
    assert author["type"] == ["h-card"]
    assert author["properties"] == {"name": ["Ann"]}
    assert author["value"] == "Ann"


def test_classic_property_outside_root_is_ignored():
    assert parse('<span class="fn">Not a card</span>')["items"] == []


def test_convert_classic_disabled():
    assert parse(VCARD, convert_classic=False)["items"] == []


def test_mf2_root_is_not_upgraded():
    item = parse('<div class="h-entry vcard"><span class="fn">X</span> Text</div>')["items"][0]
    # An element carrying an mf2 root is never upgraded
    assert item["type"] == ["h-entry"]
    assert item["properties"] == {"name": ["X Text"]}


def test_legacy_root_under_mf2_root_is_a_child():
    result = parse(
        '<div class="h-entry"><p class="p-name">T</p>'
        '<div class="vcard"><span class="fn">Bob</span></div></div>'
    )
    assert len(result["items"]) == 1
    entry = result["items"][0]
    assert entry["properties"] == {"name": ["T"]}
    assert entry["children"][0]["type"] == ["h-card"]
    assert entry["children"][0]["properties"] == {"name": ["Bob"]}


def test_backcompat_root_ignores_mf2_properties():
    item = parse('<div class="vcard"><span class="fn">A</span><span class="p-org">Org</span></div>')["items"][0]
    assert item["properties"] == {"name": ["A"]}


def test_hreview_item_vcard():
    item = parse(
        '<div class="hreview"><span class="item vcard"><span class="fn">Cafe</span></span>'
        '<span class="rating">5</span></div>'
    )["items"][0]
    assert item["type"] == ["h-review"]
    assert item["properties"]["rating"] == ["5"]
    reviewed = item["properties"]["item"][0]
    assert reviewed["type"] == ["h-card"]
    assert reviewed["properties"]["name"] == ["Cafe"]
    assert reviewed["value"] == "Cafe"


def test_hreview_plain_item():
    item = parse(
        '<div class="hreview"><span class="item"><a class="fn url" href="/cafe">Cafe</a></span></div>'
    )["items"][0]
    reviewed = item["properties"]["item"][0]
    assert reviewed["type"] == ["h-item"]
    assert reviewed["properties"] == {"name": ["Cafe"], "url": ["http://example.com/cafe"]}


def test_vevent_location_vcard():
    item = parse(
        '<div class="vevent"><span class="summary">Party</span>'
        '<abbr class="dtstart" title="2012-10-07T21:00">Oct 7</abbr>'
        '<div class="location vcard"><span class="fn org">Geoloqi</span></div></div>'
    )["items"][0]
    props = item["properties"]
    assert item["type"] == ["h-event"]
    assert props["name"] == ["Party"]
    assert props["start"] == ["2012-10-07T21:00"]
    location = props["location"][0]
    assert location["type"] == ["h-card"]
    assert location["properties"]["name"] == ["Geoloqi"]
    assert location["properties"]["org"] == ["Geoloqi"]


def test_vcard_geo_uses_geo_context():
    item = parse(
        '<div class="vcard"><span class="fn">A</span>'
        '<span class="geo"><span class="latitude">37.77</span>'
        '<span class="longitude">-122.41</span></span></div>'
    )["items"][0]
    geo = item["properties"]["geo"][0]
    assert geo["type"] == ["h-geo"]
    assert geo["properties"] == {"latitude": ["37.77"], "longitude": ["-122.41"]}


def test_hproduct_review_aggregate():
    item = parse(
        '<div class="hproduct"><span class="fn">Widget</span>'
        '<div class="review hreview-aggregate"><span class="rating">4.5</span>'
        '<span class="count">10</span></div></div>'
    )["items"][0]
    assert item["properties"]["name"] == ["Widget"]
    review = item["properties"]["review"][0]
    assert review["type"] == ["h-review-aggregate"]
    assert review["properties"]["rating"] == ["4.5"]
    assert review["properties"]["count"] == ["10"]


def test_rule_tables_are_consistent():
    validate_rule_tables(LEGACY_ROOTS, LEGACY_PROPERTIES)
    assert set(LEGACY_ROOTS) <= set(LEGACY_PROPERTIES)


def test_rule_table_with_unknown_context_is_rejected():
    tables = {"vcard": {"fn": LegacyProperty(replace=["p-name"], context="nowhere")}}
    with pytest.raises(RuleTableError) as exc_info:
        validate_rule_tables({"vcard": "h-card"}, tables)
    assert exc_info.value.details["context"] == "nowhere"


def test_rule_table_root_without_table_is_rejected():
    with pytest.raises(RuleTableError):
        validate_rule_tables({"hcalendar": "h-calendar"}, {})
