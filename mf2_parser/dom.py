"""
Tree helpers shared by every parsing stage.

The parsed document is a BeautifulSoup tree.  These helpers read classnames,
decide which of them are valid microformats2 names, render an element's text
the way microformats consumers expect, and serialize inner markup for e-*
properties.
"""

import re
from typing import Optional

from bs4 import NavigableString, Tag
from bs4.element import PreformattedString
from bs4.formatter import HTMLFormatter
from bs4.dammit import EntitySubstitution

# A valid mf2 classname: prefix, optional vendor segment, lowercase words
MF2_CLASS_RE = re.compile(r'^(h|p|u|dt|e)-([a-z0-9]+-)?[a-z]+(-[a-z]+)*$')

PROPERTY_PREFIXES = ('p-', 'u-', 'dt-', 'e-')

# unicode_trim strips these from both ends (note: includes NBSP)
TRIM_CHARS = ' \t\n\r\f\v\xa0'

# Collapses the output of _render_text():
#   leading whitespace, spaces before/after a newline, runs of spaces, trailing whitespace
TEXT_CLEANUP_RE = re.compile(r'^[\t\n\f\r ]+| +(?=\n)|(?<=\n) +| +(?= )|[\t\n\f\r ]+$')

# Void elements without the XHTML slash, text with minimal escaping
INNER_HTML_FORMATTER = HTMLFormatter(
    entity_substitution=EntitySubstitution.substitute_xml,
    void_element_close_prefix=None,
)


def unicode_trim(text: str) -> str:
    return text.strip(TRIM_CHARS)


def class_tokens(element: Tag) -> list[str]:
    """Classnames of an element, in attribute order."""
    value = element.get('class')
    if not value:
        return []
    if isinstance(value, str):
        return value.split()
    return [token for token in value if token]


def has_class(element: Tag, classname: str) -> bool:
    return classname in class_tokens(element)


def add_classes(element: Tag, classnames: list[str]) -> None:
    """Append classnames the element doesn't already carry."""
    tokens = class_tokens(element)
    for classname in classnames:
        if classname not in tokens:
            tokens.append(classname)
    element['class'] = tokens


def attr_tokens(element: Tag, name: str) -> list[str]:
    """Whitespace-separated tokens of any attribute (e.g. rel), deduplicated."""
    value = element.get(name)
    if not value:
        return []
    if isinstance(value, str):
        value = value.split()
    tokens = []
    for token in value:
        if token and token not in tokens:
            tokens.append(token)
    return tokens


def mf_names_from_class(element: Tag, prefix: str) -> list[str]:
    """
    Valid mf2 names of the element carrying `prefix`.

    Root names keep their "h-" prefix; property names are returned without
    theirs, so "p-name" → "name".
    """
    names = []
    for token in class_tokens(element):
        if not token.startswith(prefix) or not MF2_CLASS_RE.match(token):
            continue
        name = token if prefix == 'h-' else token[len(prefix):]
        if name not in names:
            names.append(name)
    return names


def has_root_mf2(element: Tag) -> bool:
    return bool(mf_names_from_class(element, 'h-'))


def nested_property_names(element: Tag) -> dict[str, list[str]]:
    """
    Property names carried by a root element, mapped to their prefixes.

    'someclass p-location u-author p-author' → {'location': ['p-'], 'author': ['u-', 'p-']}
    """
    names: dict[str, list[str]] = {}
    for token in class_tokens(element):
        if not MF2_CLASS_RE.match(token):
            continue
        for prefix in PROPERTY_PREFIXES:
            if token.startswith(prefix):
                prefixes = names.setdefault(token[len(prefix):], [])
                if prefix not in prefixes:
                    prefixes.append(prefix)
                break
    return names


def element_children(element: Tag) -> list[Tag]:
    """Direct element children (text and comments skipped)."""
    return [child for child in element.children if isinstance(child, Tag)]


def is_text_node(node) -> bool:
    # Comments, doctypes, CDATA and processing instructions are not text
    return isinstance(node, NavigableString) and not isinstance(node, PreformattedString)


def text_content(element: Tag, resolve_url=None, implied: bool = False) -> str:
    """
    Rendered text of an element, as mf2 consumers expect it.

    Scripts and styles are dropped, <img> contributes its alt text (or,
    outside implied-name mode, its resolved src), <br> and <p> start new
    lines, and whitespace is collapsed around them.

    Args:
        element: Element whose text to render
        resolve_url: Callable resolving an img src; src is used verbatim if None
        implied: Implied-name mode, where an img without alt contributes nothing
    """
    return TEXT_CLEANUP_RE.sub('', _render_text(element, resolve_url, implied))


def _render_text(element: Tag, resolve_url, implied: bool) -> str:
    out = []
    for child in element.children:
        if isinstance(child, Tag):
            name = child.name
            if name in ('script', 'style'):
                continue
            if name == 'img':
                if child.has_attr('alt'):
                    out.append(' ' + child['alt'].strip() + ' ')
                elif not implied and child.has_attr('src'):
                    src = child['src'].strip()
                    out.append(' ' + (resolve_url(src) if resolve_url else src) + ' ')
            elif name == 'br':
                out.append('\n')
            elif name == 'p':
                out.append('\n' + _render_text(child, resolve_url, implied))
            else:
                out.append(_render_text(child, resolve_url, implied))
        elif is_text_node(child):
            out.append(str(child).replace('\t', ' ').replace('\n', ' ').replace('\r', ' '))
    return ''.join(out)


def raw_text(element: Tag) -> str:
    """Concatenated descendant text, untouched (the DOM's textContent)."""
    return ''.join(str(node) for node in element.descendants if is_text_node(node))


def inner_html(element: Tag) -> str:
    """Serialized markup of the element's children."""
    return element.decode_contents(formatter=INNER_HTML_FORMATTER)


def owner_document(element: Tag) -> Tag:
    """The BeautifulSoup object an element belongs to."""
    node = element
    while node.parent is not None:
        node = node.parent
    return node


def element_language(element: Tag) -> Optional[str]:
    """
    Language of an element.

    The nearest lang attribute on the element or an ancestor; failing that,
    the document's Content-Language <meta http-equiv>.
    """
    node = element
    while isinstance(node, Tag):
        lang = node.get('lang')
        if lang and lang.strip():
            return lang.strip()
        node = node.parent
    document = owner_document(element)
    for meta in document.find_all('meta'):
        if meta.get('http-equiv', '').strip().lower() == 'content-language':
            content = meta.get('content', '').strip()
            if content:
                return content
    return None
