"""
Value-class pattern.

An element whose direct children carry class="value" (or "value-title")
publishes its machine-readable value through those children instead of its
own text: `<span class="p-tel"><span class="value">+1</span> (home)</span>`
yields "+1".
"""

from typing import Callable, Optional

from bs4 import Tag

from .dom import element_children, has_class, text_content, unicode_trim


class ValueClassResolver:
    """Reads the value-class / value-title pattern from an element's children."""

    def __init__(self, resolve_url: Optional[Callable[[str], str]] = None):
        self.resolve_url = resolve_url

    def value_children(self, element: Tag) -> list[Tag]:
        return [child for child in element_children(element) if has_class(child, 'value')]

    def value_title_children(self, element: Tag) -> list[Tag]:
        return [child for child in element_children(element) if has_class(child, 'value-title')]

    def fragment(self, element: Tag) -> str:
        """Plain value of one value-class child."""
        if element.name in ('img', 'area') and element.has_attr('alt'):
            return element['alt']
        if element.name in ('abbr', 'link') and element.has_attr('title'):
            return element['title']
        if element.name in ('data', 'input') and element.has_attr('value'):
            return element['value']
        return text_content(element, self.resolve_url)

    def resolve(self, element: Tag) -> Optional[str]:
        """
        Value published through the pattern, or None if the pattern isn't used.

        An empty string is a valid result: the pattern was used but the
        value children were empty.
        """
        values = self.value_children(element)
        if values:
            return unicode_trim(''.join(self.fragment(child) for child in values))

        titles = self.value_title_children(element)
        if titles:
            return unicode_trim(''.join(child.get('title', '') for child in titles))

        return None
