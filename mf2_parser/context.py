"""
Per-parse bookkeeping, keyed by element identity.

ConsumptionTable: element → prefixes ("h", "p", "u", "dt", "e") it has been
extracted under.  Once marked, an element is never extracted again under
that prefix, which is what keeps a nested root's properties from also
showing up on its ancestors.

UpgradeTable: element → legacy property names already rewritten by
backcompat, so a second upgrade pass is a no-op.

Both hold a reference to every element they key, so an id() cannot be
reused by another element while the parse is running.
"""

from bs4 import Tag

ALL_PREFIXES = ('h', 'p', 'u', 'dt', 'e')


class _IdentityTable:
    def __init__(self):
        self._entries: dict[int, tuple[Tag, set[str]]] = {}

    def _names(self, element: Tag) -> set[str]:
        entry = self._entries.get(id(element))
        return entry[1] if entry else set()

    def _add(self, element: Tag, names) -> None:
        entry = self._entries.setdefault(id(element), (element, set()))
        entry[1].update(names)

    def __contains__(self, element: Tag) -> bool:
        return bool(self._names(element))


class ConsumptionTable(_IdentityTable):
    """Which prefixes each element has been consumed under."""

    def mark(self, element: Tag, *prefixes: str) -> None:
        self._add(element, prefixes or ALL_PREFIXES)

    def is_consumed(self, element: Tag, prefix: str) -> bool:
        return prefix in self._names(element)


class UpgradeTable(_IdentityTable):
    """Which legacy property names have been upgraded on each element."""

    def record(self, element: Tag, *properties: str) -> None:
        self._add(element, properties)

    def is_upgraded(self, element: Tag, prop: str) -> bool:
        return prop in self._names(element)


class ParseContext:
    """Mutable state threaded through one parse."""

    def __init__(self):
        self.consumed = ConsumptionTable()
        self.upgraded = UpgradeTable()
