"""
Document-wide rel index.

Every <a>, <link> and <area> with both rel and href contributes, in
document order, regardless of microformat roots:

    rels:      rel token → absolute URLs (deduplicated, first-seen order)
    rel-urls:  absolute URL → {rels, media, hreflang, title, type, text}
    alternates (optional): rel=alternate links listed separately
"""

from typing import Optional

from bs4 import Tag

from .dom import attr_tokens, raw_text
from .logger import get_module_logger
from .schemas import Alternate, RelUrl
from .urls import UrlResolver

logger = get_module_logger("rels")

REL_ATTRIBUTES = ('media', 'hreflang', 'title', 'type')


class RelParser:
    """Builds rels / rel-urls / alternates for a whole document."""

    def __init__(self, resolver: UrlResolver, enable_alternates: bool = False):
        self.resolver = resolver
        self.enable_alternates = enable_alternates

    def parse(self, document: Tag) -> tuple[dict, dict, Optional[list]]:
        """
        Scan the document.

        Returns:
            Tuple of (rels, rel_urls, alternates); alternates is None unless
            enabled and at least one rel=alternate link exists
        """
        rels: dict[str, list[str]] = {}
        rel_urls: dict[str, RelUrl] = {}
        alternates: list[Alternate] = []

        for link in document.find_all(['a', 'link', 'area']):
            if not link.has_attr('rel') or not link.has_attr('href'):
                continue
            link_rels = attr_tokens(link, 'rel')
            if not link_rels:
                continue

            href = self.resolver.resolve(link['href'])
            attributes = {name: link[name] for name in REL_ATTRIBUTES if link.has_attr(name)}
            text = raw_text(link)
            if text:
                attributes['text'] = text

            if self.enable_alternates and 'alternate' in link_rels:
                alternates.append(Alternate(
                    url=href,
                    rel=' '.join(rel for rel in link_rels if rel != 'alternate'),
                    **attributes
                ))

            for rel in link_rels:
                urls = rels.setdefault(rel, [])
                if href not in urls:
                    urls.append(href)

            entry = rel_urls.get(href)
            if entry is None:
                rel_urls[href] = RelUrl(rels=sorted(link_rels), **attributes)
            else:
                # First-seen attributes win; rels are merged
                for name, value in attributes.items():
                    if getattr(entry, name) is None:
                        setattr(entry, name, value)
                entry.rels = sorted(set(entry.rels) | set(link_rels))

        logger.debug(f"Found {len(rels)} rel values across {len(rel_urls)} URLs")
        return rels, rel_urls, (alternates if self.enable_alternates and alternates else None)
