"""
URL resolution.

`resolve_url()` is RFC 3986 §5.2 reference resolution, written out rather
than delegated to urllib.parse.urljoin because microformats output must
keep a few details urljoin drops: an explicit empty fragment ("#"), and an
empty base path becoming "/".

`UrlResolver` binds a document base URL and adds the parser-level rules:
trim the input, leave absolute and undecomposable URLs alone, and rewrite
URL-bearing attributes (href, src, data, poster, srcset) inside a copied
subtree before it is serialized for e-* properties.
"""

import re
from typing import Callable, Optional
from urllib.parse import urlsplit

from bs4 import Tag

from .logger import get_module_logger

logger = get_module_logger("urls")

# RFC 3986 Appendix B: splits any string into the five components
URI_RE = re.compile(r'^(([^:/?#]+):)?(//([^/?#]*))?([^?#]*)(\?([^#]*))?(#(.*))?')

# Attributes holding a single URL, checked on every element of e-* markup
URL_ATTRIBUTES = ('href', 'src', 'data', 'poster')


def split_url(url: str) -> dict:
    """Decompose a URL into scheme/authority/path/query/fragment (None when absent)."""
    m = URI_RE.match(url)
    return {
        'scheme': m.group(2),
        'authority': m.group(4),
        'path': m.group(5),
        'query': m.group(7),
        'fragment': m.group(9),
    }


def remove_dot_segments(path: str) -> str:
    """RFC 3986 §5.2.4."""
    output = ''
    while path:
        if path.startswith('../'):
            path = path[3:]
        elif path.startswith('./'):
            path = path[2:]
        elif path.startswith('/./'):
            path = path[2:]
        elif path == '/.':
            path = '/'
        elif path.startswith('/../'):
            path = path[3:]
            output = _remove_last_segment(output)
        elif path == '/..':
            path = '/'
            output = _remove_last_segment(output)
        elif path in ('.', '..'):
            path = ''
        else:
            # Move the first segment, with its leading "/" if any, to output
            start = 1 if path.startswith('/') else 0
            end = path.find('/', start)
            if end == -1:
                end = len(path)
            output += path[:end]
            path = path[end:]
    return output


def _remove_last_segment(output: str) -> str:
    idx = output.rfind('/')
    return output[:idx] if idx >= 0 else ''


def merge_paths(base: dict, reference_path: str) -> str:
    """RFC 3986 §5.2.3."""
    if base['authority'] is not None and not base['path']:
        return '/' + reference_path
    idx = base['path'].rfind('/')
    if idx == -1:
        return reference_path
    return base['path'][:idx + 1] + reference_path


def resolve_url(base: str, reference: str) -> str:
    """
    Resolve `reference` against `base` (RFC 3986 §5.2.2).

    Absolute references and an empty base return the reference unchanged.
    """
    if not base:
        return reference

    ref = split_url(reference)
    if ref['scheme'] is not None:
        return reference

    base_parts = split_url(base)
    if not base_parts['path']:
        base_parts['path'] = '/'

    target = {'scheme': base_parts['scheme'], 'fragment': ref['fragment']}
    if ref['authority'] is not None:
        target['authority'] = ref['authority']
        target['path'] = remove_dot_segments(ref['path'])
        target['query'] = ref['query']
    else:
        target['authority'] = base_parts['authority']
        if not ref['path']:
            target['path'] = base_parts['path']
            target['query'] = ref['query'] if ref['query'] else base_parts['query']
        else:
            if ref['path'].startswith('/'):
                target['path'] = remove_dot_segments(ref['path'])
            else:
                target['path'] = remove_dot_segments(merge_paths(base_parts, ref['path']))
            target['query'] = ref['query']

    result = ''
    if target['scheme']:
        result += target['scheme'] + ':'
    if target['authority'] is not None:
        result += '//' + target['authority']
    result += target['path']
    if target['query']:
        result += '?' + target['query']
    if target['fragment']:
        result += '#' + target['fragment']
    elif reference == '#':
        result += '#'
    return result


def transform_srcset(srcset: str, transform: Callable[[str], str]) -> str:
    """
    Apply `transform` to every candidate URL of a srcset attribute.

    Descriptors ("2x", "480w") are kept; empty candidates are dropped.
    """
    candidates = []
    for candidate in srcset.split(','):
        parts = candidate.strip().split(None, 1)
        if not parts:
            continue
        url = transform(parts[0])
        candidates.append(f"{url} {parts[1]}" if len(parts) > 1 else url)
    return ', '.join(candidates)


class UrlResolver:
    """Resolves URLs found in a document against its base URL."""

    def __init__(self, base_url: Optional[str] = None):
        self.base_url = base_url or ''

    def resolve(self, url):
        """
        Resolve a URL from the document.

        Non-strings and URLs that cannot be decomposed come back unchanged;
        absolute URLs are only trimmed.
        """
        if not isinstance(url, str):
            return url
        url = url.strip()
        try:
            scheme = urlsplit(url).scheme
        except ValueError:
            logger.debug(f"Leaving malformed URL unresolved: {url!r}")
            return url
        if not scheme and self.base_url:
            return resolve_url(self.base_url, url)
        return url

    def resolve_descendants(self, element: Tag) -> None:
        """
        Rewrite URL attributes of every element below `element` in place.

        Only call this on a detached copy: the parsed document itself is not
        modified outside backcompat.
        """
        for child in element.find_all(True):
            for attr in URL_ATTRIBUTES:
                if child.has_attr(attr):
                    child[attr] = self.resolve(child[attr])
            if child.has_attr('srcset'):
                child['srcset'] = transform_srcset(child['srcset'], self.resolve)
