"""
Implied name, photo and url.

A root without an explicit `name`/`photo`/`url` gets one from its own
element or a lone child, e.g. `<a class="h-card" href="/me"><img alt="Me"
src="me.jpg"></a>` implies all three.  Each property is a chain of
candidate lookups tried in order; the first one that finds something wins.

Nothing is implied for roots parsed in backcompat mode, for roots the
upgrader produced from a legacy property, or when the root contains nested
microformats.
"""

from typing import Callable, Optional, Union

from bs4 import Tag

from .dom import element_children, has_root_mf2, unicode_trim
from .logger import get_module_logger
from .properties import PropertyExtractor
from .schemas import ImageValue

logger = get_module_logger("implied")

Candidate = Callable[[Tag], Optional[Union[str, ImageValue]]]


def _plain(element: Tag) -> bool:
    return not has_root_mf2(element)


def _sole_child(element: Tag, names: tuple) -> Optional[Tag]:
    """The only direct child among all element children, if it has one of `names`."""
    children = element_children(element)
    if len(children) == 1 and children[0].name in names and _plain(children[0]):
        return children[0]
    return None


def _sole_of_type(element: Tag, name: str) -> Optional[Tag]:
    """The only direct <name> child, other element children allowed."""
    matches = [child for child in element_children(element) if child.name == name]
    if len(matches) == 1 and _plain(matches[0]):
        return matches[0]
    return None


def _wrapper(element: Tag, inner: Callable[[Tag], Optional[Tag]]) -> Optional[Tag]:
    """Apply `inner` one level down, through a lone non-root child."""
    children = element_children(element)
    if len(children) == 1 and _plain(children[0]):
        return inner(children[0])
    return None


def _first(candidates: list, element: Tag):
    for candidate in candidates:
        value = candidate(element)
        if value is not None:
            return value
    return None


class ImpliedPropertyResolver:
    """Fills in name, photo and url for a root."""

    def __init__(self, extractor: PropertyExtractor):
        self.extractor = extractor
        self.resolve = extractor.resolver.resolve

        self.name_chain: list[Candidate] = [
            self._name_from_self,
            lambda e: self._name_from(_sole_child(e, ('img', 'area', 'abbr'))),
            lambda e: self._name_from(_wrapper(e, lambda c: _sole_child(c, ('img', 'area', 'abbr')))),
            lambda e: self.extractor.text(e, implied=True),
        ]
        self.photo_chain: list[Candidate] = [
            self._photo_from_self,
            lambda e: self._photo_from(_sole_of_type(e, 'img')),
            lambda e: self._photo_from(_sole_of_type(e, 'object')),
            lambda e: self._photo_from(_wrapper(e, lambda c: _sole_of_type(c, 'img'))),
            lambda e: self._photo_from(_wrapper(e, lambda c: _sole_of_type(c, 'object'))),
        ]
        self.url_chain: list[Candidate] = [
            self._url_from_self,
            lambda e: self._url_from(_sole_of_type(e, 'a')),
            lambda e: self._url_from(_sole_of_type(e, 'area')),
            lambda e: self._url_from(_wrapper(e, lambda c: _sole_of_type(c, 'a'))),
            lambda e: self._url_from(_wrapper(e, lambda c: _sole_of_type(c, 'area'))),
        ]

    # --- name ---

    def _name_from_self(self, element: Tag) -> Optional[str]:
        if element.name in ('img', 'area') and element.has_attr('alt'):
            return element['alt']
        if element.name == 'abbr' and element.has_attr('title'):
            return element['title']
        return None

    def _name_from(self, child: Optional[Tag]) -> Optional[str]:
        # Children only count with a non-empty alt/title
        if child is None:
            return None
        if child.name in ('img', 'area') and child.get('alt'):
            return child['alt']
        if child.name == 'abbr' and child.get('title'):
            return child['title']
        return None

    # --- photo ---

    def _photo_from_self(self, element: Tag):
        if element.name in ('img', 'object'):
            return self._photo_from(element)
        return None

    def _photo_from(self, child: Optional[Tag]):
        if child is None:
            return None
        if child.name == 'img' and child.has_attr('src'):
            photo = self.extractor.parse_img(child)
            return photo if isinstance(photo, ImageValue) else self.resolve(photo)
        if child.name == 'object' and child.has_attr('data'):
            return self.resolve(child['data'])
        return None

    # --- url ---

    def _url_from_self(self, element: Tag) -> Optional[str]:
        if element.name in ('a', 'area'):
            return self._url_from(element)
        return None

    def _url_from(self, child: Optional[Tag]) -> Optional[str]:
        if child is not None and child.has_attr('href'):
            return self.resolve(child['href'])
        return None

    def apply(self, element: Tag, properties: dict, prefixes: set[str]) -> None:
        """
        Add implied properties to `properties` in place.

        Callers only invoke this for roots eligible for implication (parsed
        as mf2, not produced by the upgrader, no nested microformats).

        Args:
            element: Root element
            properties: Properties extracted so far
            prefixes: Prefixes that occurred among the root's properties
        """
        if 'name' not in properties and 'p-' not in prefixes and 'e-' not in prefixes:
            name = _first(self.name_chain, element)
            if name is not None:
                properties['name'] = [unicode_trim(name)]

        if 'photo' not in properties and 'u-' not in prefixes:
            photo = _first(self.photo_chain, element)
            if photo is not None:
                properties['photo'] = [photo]

        if 'url' not in properties and 'u-' not in prefixes:
            url = _first(self.url_chain, element)
            if url is not None:
                properties['url'] = [url]

        logger.debug(f"Implied properties checked for <{element.name}>")
