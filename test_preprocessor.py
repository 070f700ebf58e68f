"""
Tests for document loading: charset detection, sanitizing, template
removal, base URL discovery and tree-builder failure.
"""

import codecs

import pytest
from bs4 import BeautifulSoup

from mf2_parser import preprocessor as preprocessor_module
from mf2_parser.exceptions import PreprocessorError
from mf2_parser.main import MicroformatsParser
from mf2_parser.preprocessor import Preprocessor


@pytest.mark.parametrize("raw, expected", [
    (b'<meta charset="iso-8859-1"><p>x</p>', "windows-1252"),
    (b'<meta charset="UTF-8"><p>x</p>', "utf-8"),
    (b'<meta http-equiv="Content-Type" content="text/html; charset=Shift_JIS">', "shift_jis"),
    (codecs.BOM_UTF8 + b'<p>x</p>', "utf-8"),
    (codecs.BOM_UTF16_LE + '<p>x</p>'.encode('utf-16-le'), "utf-16-le"),
    ('<p>Café</p>'.encode('utf-8'), "utf-8"),
    (b'<p>Caf\xe9</p>', "windows-1252"),
    (b'<meta charset="x-no-such-charset"><p>x</p>', "utf-8"),
])
def test_detect_charset(raw, expected):
    assert Preprocessor.detect_charset_from_bytes(raw) == expected


def test_decode_strips_bom():
    text, charset = Preprocessor.decode(codecs.BOM_UTF8 + 'Café'.encode('utf-8'))
    assert text == "Café"
    assert charset == "utf-8"


def test_process_bytes_reports_charset():
    result = Preprocessor().process(b'<meta charset="iso-8859-1"><p>Caf\xe9</p>')
    assert result["declared_charset"] == "windows-1252"
    assert result["document"].find("p").get_text() == "Café"


def test_templates_are_removed():
    result = Preprocessor().process(
        '<div><template><p class="h-card">Hidden</p></template><p>Shown</p></div>'
    )
    document = result["document"]
    assert document.find("template") is None
    assert [p.get_text() for p in document.find_all("p")] == ["Shown"]


def test_microformats_inside_templates_are_ignored():
    result = MicroformatsParser().parse('<template><p class="h-card">Hidden</p></template>')
    assert result.items == []


@pytest.mark.parametrize("html, url, expected", [
    ('<base href="/dir/"><p>x</p>', "http://example.com/page", "http://example.com/dir/"),
    ('<base href="http://other.example/"><p>x</p>', "http://example.com/", "http://other.example/"),
    ('<base href="/dir/"><p>x</p>', None, "/dir/"),
    ('<p>x</p>', "http://example.com/page", "http://example.com/page"),
    ('<p>x</p>', None, None),
])
def test_base_url(html, url, expected):
    assert Preprocessor().process(html, url=url)["base_url"] == expected


def test_first_base_element_wins():
    result = Preprocessor().process(
        '<base href="http://first.example/"><base href="http://second.example/">',
        url="http://example.com/",
    )
    assert result["base_url"] == "http://first.example/"


@pytest.mark.parametrize("html", ["", "   \n"])
def test_empty_input_is_an_empty_document(html):
    result = Preprocessor().process(html)
    assert result["document"].find("body") is not None
    assert result["warnings"] == []


def test_nul_characters_are_removed():
    result = Preprocessor().process('<p>a\x00b</p>')
    assert result["document"].find("p").get_text() == "ab"
    assert result["warnings"] == ["Removed NULL bytes"]


def test_unsupported_input_type():
    with pytest.raises(TypeError):
        Preprocessor().process(42)


def test_soup_input_is_not_modified():
    soup = BeautifulSoup('<div class="vcard"><span class="fn">A</span></div>', "html5lib")
    result = MicroformatsParser().parse(soup).to_dict()

    assert result["items"][0]["properties"] == {"name": ["A"]}
    assert soup.find("div")["class"] == ["vcard"]
    assert soup.find("span")["class"] == ["fn"]


@pytest.mark.parametrize("raw", [
    '<p class="h-card">Café</p>'.encode('utf-8'),
    b'<meta charset="iso-8859-1"><p class="h-card">Caf\xe9</p>',
])
def test_bytes_input_is_decoded(raw):
    result = MicroformatsParser().parse(raw).to_dict()
    assert result["items"][0]["properties"]["name"] == ["Café"]


def test_all_tree_builders_failing(monkeypatch):
    monkeypatch.setattr(preprocessor_module, "TREE_BUILDERS", ("no-such-builder",))
    with pytest.raises(PreprocessorError) as exc_info:
        Preprocessor().process("<p>x</p>")
    assert exc_info.value.details == {"builders": ["no-such-builder"]}
