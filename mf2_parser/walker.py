"""
Root walker: finds microformat roots and assembles them into items.

For each outermost root below the scope (document order):
  1. legacy roots are upgraded to mf2 classnames (backcompat)
  2. nested roots are parsed first, recursively, so their elements are
     consumed before the outer root looks at its own descendants
  3. the root's own properties are extracted, and implied ones added
  4. each nested item goes into `properties` if the nested root also
     carries p-/u-/dt-/e- classnames (with `value`/`html` filled in), or
     into `children` otherwise

All bookkeeping lives in a ParseContext passed down explicitly, so a
walker holds no per-document state and can be reused.
"""

from typing import Optional

from bs4 import Tag

from .backcompat import BackcompatUpgrader, legacy_root_names
from .context import ParseContext
from .dom import element_children, element_language, has_root_mf2, mf_names_from_class, nested_property_names
from .exceptions import ParseDepthError
from .implied import ImpliedPropertyResolver
from .logger import get_module_logger
from .properties import PropertyExtractor, nested_value
from .schemas import MicroformatItem, ParserOptions
from .urls import UrlResolver

logger = get_module_logger("walker")

# Which prefix supplies `value` when a nested root carries several for one name
NESTED_VALUE_PRECEDENCE = ('p-', 'e-', 'u-', 'dt-')


class RootWalker:
    """
    Parses the microformats of a document tree.

    Args:
        base_url: URL relative URLs resolve against (overrides options.base_url)
        options: Parser options; defaults apply when omitted
    """

    def __init__(self, base_url: Optional[str] = None, options: Optional[ParserOptions] = None):
        self.options = options or ParserOptions()
        self.resolver = UrlResolver(base_url if base_url is not None else self.options.base_url)
        self.extractor = PropertyExtractor(self.resolver, lang=self.options.lang)
        self.implied = ImpliedPropertyResolver(self.extractor)

    def is_root(self, element: Tag) -> bool:
        if has_root_mf2(element):
            return True
        return self.options.convert_classic and bool(legacy_root_names(element))

    def find_roots(self, scope: Tag) -> list[Tag]:
        """Outermost roots strictly below `scope`, in document order."""
        roots = []
        stack = list(reversed(element_children(scope)))
        while stack:
            element = stack.pop()
            if self.is_root(element):
                roots.append(element)
            else:
                stack.extend(reversed(element_children(element)))
        return roots

    def walk(
        self,
        scope: Tag,
        context: Optional[ParseContext] = None,
        include_scope: bool = False
    ) -> list[MicroformatItem]:
        """
        Parse every root below `scope`.

        Args:
            scope: Document or element to search
            context: Bookkeeping to use; a fresh one by default
            include_scope: Treat `scope` itself as a candidate root

        Returns:
            Top-level items, in document order

        Raises:
            ParseDepthError: The document nests deeper than options.max_depth
                microformats, or deeper than Python can recurse
        """
        context = context or ParseContext()
        upgrader = BackcompatUpgrader(context.upgraded)

        if include_scope and self.is_root(scope):
            roots = [scope]
        else:
            roots = self.find_roots(scope)
        logger.debug(f"Found {len(roots)} top-level roots")

        items = []
        try:
            for root in roots:
                item = self._parse_root(root, context, upgrader, depth=0)
                if item is not None:
                    items.append(item)
        except RecursionError as e:
            raise ParseDepthError(
                "Document nesting exceeds the interpreter recursion limit",
                depth=-1,
                details={"error": str(e)}
            ) from e
        return items

    def _parse_root(
        self,
        root: Tag,
        context: ParseContext,
        upgrader: BackcompatUpgrader,
        depth: int
    ) -> Optional[MicroformatItem]:
        if depth >= self.options.max_depth:
            raise ParseDepthError(
                f"Microformats nested deeper than {self.options.max_depth} levels",
                depth=depth,
                details={"tag": root.name}
            )
        # Already handled, e.g. on a second walk with the same context
        if root in context.consumed:
            return None

        is_backcompat = not has_root_mf2(root)
        if is_backcompat and self.options.convert_classic:
            upgrader.upgrade(root)

        children: list[MicroformatItem] = []
        nested_properties: dict[str, list[MicroformatItem]] = {}
        for nested_root in self.find_roots(root):
            nested = self._parse_root(nested_root, context, upgrader, depth + 1)
            if nested is None:
                continue
            property_names = nested_property_names(nested_root)
            if not property_names:
                children.append(nested)
                continue
            for name, prefixes in property_names.items():
                # One entry per property name, valued by the first prefix present
                prefix = next(p for p in NESTED_VALUE_PRECEDENCE if p in prefixes)
                entry = nested.model_copy(
                    update=nested_value(prefix, nested_root, nested.properties, self.extractor)
                )
                nested_properties.setdefault(name, []).append(entry)

        has_nested = bool(children or nested_properties)
        item = self._build_item(root, context, is_backcompat, has_nested)
        context.consumed.mark(root)
        if item is None:
            return None

        for name, entries in nested_properties.items():
            for entry in entries:
                item.add_property(name, entry)
        if children:
            item.children = children
        return item

    def _build_item(
        self,
        root: Tag,
        context: ParseContext,
        is_backcompat: bool,
        has_nested: bool
    ) -> Optional[MicroformatItem]:
        types = sorted(mf_names_from_class(root, 'h-'))
        if not types:
            return None

        properties, prefixes = self.extractor.extract(root, context, is_backcompat)

        if not has_nested and not is_backcompat and root not in context.upgraded:
            self.implied.apply(root, properties, prefixes)

        item = MicroformatItem(type=types, properties=properties)

        root_id = (root.get('id') or '').strip()
        if root_id:
            item.id = root_id
        if self.options.lang:
            item.lang = element_language(root)
        if root.name == 'area':
            for attr in ('shape', 'coords'):
                if root.get(attr):
                    setattr(item, attr, root[attr])
        return item
