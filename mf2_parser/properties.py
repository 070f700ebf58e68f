"""
Property extraction for one microformat root.

Every descendant of the root carrying a valid p-/u-/dt-/e- classname is
classified, in document order and one prefix at a time:

    p-*   plain text (value-class, then alt/title/value attributes, then text)
    u-*   a URL (href/src/data/poster first), resolved against the base URL
    dt-*  a date/time, see dates.DateTimeAssembler
    e-*   {html, value}: inner markup with URLs resolved, and its text

Elements already consumed under a prefix (typically by a nested root that
was processed first) are skipped.  In backcompat mode, only elements the
upgrader rewrote count; any other prefixed element is consumed unused.
"""

import copy
from typing import Optional, Union

from bs4 import Tag

from .context import ParseContext
from .dates import DateAccumulator, DateTimeAssembler
from .dom import element_language, inner_html, mf_names_from_class, text_content
from .logger import get_module_logger
from .schemas import EmbeddedValue, ImageValue
from .urls import UrlResolver
from .value_class import ValueClassResolver

logger = get_module_logger("properties")

# Order matters: dt-* values are completed from dates seen in earlier properties
PREFIX_ORDER = ('p-', 'u-', 'dt-', 'e-')


class PropertyExtractor:
    """Computes p-/u-/dt-/e- values and walks a root's properties."""

    def __init__(self, resolver: UrlResolver, lang: bool = False):
        self.resolver = resolver
        self.lang = lang
        self.value_class = ValueClassResolver(resolver.resolve)
        self.dates = DateTimeAssembler(resolver.resolve)

    def text(self, element: Tag, implied: bool = False) -> str:
        return text_content(element, self.resolver.resolve, implied)

    # --- Single values ---

    def parse_p(self, element: Tag) -> str:
        value = self.value_class.resolve(element)
        if value is not None:
            return value

        name = element.name
        if name in ('img', 'area') and element.has_attr('alt'):
            return element['alt']
        if name in ('abbr', 'link') and element.has_attr('title'):
            return element['title']
        if name in ('data', 'input') and element.has_attr('value'):
            return element['value']
        return self.text(element)

    def parse_img(self, element: Tag) -> Union[str, ImageValue]:
        """An <img> URL, as a {value, alt} pair when alt text is present."""
        src = element.get('src', '')
        if element.has_attr('alt'):
            return ImageValue(value=self.resolver.resolve(src), alt=element['alt'])
        return src

    def parse_u(self, element: Tag) -> Union[str, ImageValue]:
        name = element.name
        if name in ('a', 'area', 'link') and element.has_attr('href'):
            value = element['href']
        elif name == 'img' and element.has_attr('src'):
            value = self.parse_img(element)
        elif name in ('audio', 'video', 'source', 'iframe') and element.has_attr('src'):
            value = element['src']
        elif name == 'video' and element.has_attr('poster'):
            value = element['poster']
        elif name == 'object' and element.has_attr('data'):
            value = element['data']
        else:
            value = self.value_class.resolve(element)
            if value is None:
                if name in ('abbr', 'link') and element.has_attr('title'):
                    value = element['title']
                elif name in ('data', 'input') and element.has_attr('value'):
                    value = element['value']
                else:
                    value = self.text(element)

        if isinstance(value, ImageValue):
            return value
        return self.resolver.resolve(value)

    def parse_dt(self, element: Tag, accumulator: DateAccumulator) -> Optional[str]:
        return self.dates.parse(element, accumulator)

    def parse_e(self, element: Tag) -> Union[str, EmbeddedValue]:
        value = self.value_class.resolve(element)
        if value is not None:
            return value

        # Resolve URLs on a detached copy; the document itself stays untouched
        detached = copy.copy(element)
        self.resolver.resolve_descendants(detached)
        result = EmbeddedValue(
            html=inner_html(detached).strip(),
            value=self.text(element),
        )
        if self.lang:
            result.lang = element_language(element)
        return result

    # --- Walking a root ---

    def extract(
        self,
        root: Tag,
        context: ParseContext,
        is_backcompat: bool = False
    ) -> tuple[dict[str, list], set[str]]:
        """
        Extract every property below `root`.

        Args:
            root: Root element (not itself inspected)
            context: Consumption and upgrade tables for this parse
            is_backcompat: Root is a legacy root; only upgraded elements count

        Returns:
            Tuple of (properties, prefixes that occurred)
        """
        properties: dict[str, list] = {}
        prefixes: set[str] = set()
        accumulator = DateAccumulator()
        date_properties: list[tuple[str, str]] = []

        candidates = root.find_all(True)
        for prefix in PREFIX_ORDER:
            table_key = prefix[:-1]
            for element in candidates:
                names = mf_names_from_class(element, prefix)
                if not names or context.consumed.is_consumed(element, table_key):
                    continue
                if is_backcompat and element not in context.upgraded:
                    context.consumed.mark(element, table_key)
                    continue

                if prefix == 'p-':
                    value = self.parse_p(element)
                elif prefix == 'u-':
                    value = self.parse_u(element)
                elif prefix == 'dt-':
                    value = self.parse_dt(element, accumulator)
                else:
                    value = self.parse_e(element)

                prefixes.add(prefix)
                context.consumed.mark(element, table_key)

                if prefix == 'dt-':
                    if value:
                        date_properties.extend((name, value) for name in names)
                    continue
                if prefix == 'e-' and value == '':
                    continue
                for name in names:
                    properties.setdefault(name, []).append(value)

            if prefix == 'dt-':
                # Every dt-* value of the root is known: apply the implied timezone
                for name, value in date_properties:
                    properties.setdefault(name, []).append(
                        accumulator.apply_implied_timezone(value)
                    )

        logger.debug(f"<{root.name}> yielded {len(properties)} properties")
        return properties, prefixes


def nested_value(prefix: str, element: Tag, properties: dict, extractor: PropertyExtractor) -> dict:
    """
    `value` (and `html`) of a root that is also a property of its parent.

    Args:
        prefix: Property prefix the root carries ('p-', 'u-', 'dt-' or 'e-')
        element: The nested root element
        properties: The nested root's own properties (explicit and implied)
        extractor: Extractor bound to the document's base URL

    Returns:
        dict with "value", and "html" for e-* properties
    """
    if prefix == 'p-':
        names = properties.get('name')
        value = names[0] if names else extractor.parse_p(element)
    elif prefix == 'u-':
        urls = properties.get('url')
        value = urls[0] if urls else extractor.parse_u(element)
    elif prefix == 'dt-':
        value = extractor.parse_dt(element, DateAccumulator()) or ''
    else:
        embedded = extractor.parse_e(element)
        if isinstance(embedded, EmbeddedValue):
            return {"html": embedded.html, "value": embedded.value}
        value = embedded

    if isinstance(value, ImageValue):
        value = value.value
    elif not isinstance(value, str):
        # A nested item's own name/url can itself be an item; use its value
        value = getattr(value, 'value', None) or ''
    return {"value": value}
