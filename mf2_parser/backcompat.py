"""
Backcompat: upgrading classic microformats (mf1) to microformats2 classnames.

A legacy root such as `vcard` is rewritten in place before it is parsed:

    <div class="vcard"><a class="url fn" href="/">Tantek</a></div>
        → <div class="vcard h-card"><a class="url fn u-url p-name" href="/">…

The rewrite is driven by LEGACY_PROPERTIES, a table from legacy root name
to the replacement classnames of each of its properties.  A rule may name
a context table, which is applied recursively to the property element
(e.g. an hentry's `author` is upgraded using the vcard rules and becomes
`p-author h-card`).  A few roots need handling beyond the table:
rel=tag/rel=bookmark links in hentry/hfeed, and the nested items of
hreview, hreview-aggregate, hproduct and vevent.

Every element/property rewritten is recorded in the UpgradeTable, so
running the upgrade twice changes nothing the second time.
"""

from typing import Optional
from urllib.parse import urlsplit

from bs4 import Tag
from pydantic import BaseModel, Field

from .context import UpgradeTable
from .dom import add_classes, attr_tokens, class_tokens, element_children, has_class, has_root_mf2, owner_document
from .exceptions import RuleTableError
from .logger import get_module_logger

logger = get_module_logger("backcompat")

LEGACY_ROOTS = {
    'vcard': 'h-card',
    'hfeed': 'h-feed',
    'hentry': 'h-entry',
    'hrecipe': 'h-recipe',
    'hresume': 'h-resume',
    'vevent': 'h-event',
    'hreview': 'h-review',
    'hreview-aggregate': 'h-review-aggregate',
    'hproduct': 'h-product',
    'adr': 'h-adr',
    'geo': 'h-geo',
}


class LegacyProperty(BaseModel):
    """Upgrade rule for one legacy property classname."""
    replace: list[str] = Field(min_length=1)   # mf2 classnames added to the element
    context: Optional[str] = None               # Table applied to the element's own descendants


def _rule(replace: str, context: Optional[str] = None) -> LegacyProperty:
    return LegacyProperty(replace=replace.split(), context=context)


def _same(prefix: str, *names: str) -> dict[str, LegacyProperty]:
    return {name: _rule(f"{prefix}{name}") for name in names}


LEGACY_PROPERTIES: dict[str, dict[str, LegacyProperty]] = {
    'vcard': {
        'fn': _rule('p-name'),
        **_same('p-', 'honorific-prefix', 'given-name', 'additional-name',
                'family-name', 'honorific-suffix', 'nickname'),
        'email': _rule('u-email'),
        'logo': _rule('u-logo'),
        'photo': _rule('u-photo'),
        'url': _rule('u-url'),
        'uid': _rule('u-uid'),
        'category': _rule('p-category'),
        'adr': _rule('p-adr'),
        **_same('p-', 'extended-address', 'street-address', 'locality', 'region',
                'postal-code', 'country-name', 'label'),
        'geo': _rule('p-geo h-geo', 'geo'),
        **_same('p-', 'latitude', 'longitude'),
        'tel': _rule('p-tel'),
        'note': _rule('p-note'),
        'bday': _rule('dt-bday'),
        'key': _rule('u-key'),
        **_same('p-', 'org', 'organization-name', 'organization-unit'),
        'title': _rule('p-job-title'),
        'role': _rule('p-role'),
        'tz': _rule('p-tz'),
        'rev': _rule('dt-rev'),
    },
    'hfeed': {
        'author': _rule('p-author h-card', 'vcard'),
        'url': _rule('u-url'),
        'photo': _rule('u-photo'),
        'category': _rule('p-category'),
    },
    'hentry': {
        'entry-title': _rule('p-name'),
        'entry-summary': _rule('p-summary'),
        'entry-content': _rule('e-content'),
        'published': _rule('dt-published'),
        'updated': _rule('dt-updated'),
        'author': _rule('p-author h-card', 'vcard'),
        'category': _rule('p-category'),
    },
    'hrecipe': {
        'fn': _rule('p-name'),
        'ingredient': _rule('p-ingredient'),
        'yield': _rule('p-yield'),
        'instructions': _rule('e-instructions'),
        'duration': _rule('dt-duration'),
        'photo': _rule('u-photo'),
        'summary': _rule('p-summary'),
        'author': _rule('p-author h-card', 'vcard'),
        'nutrition': _rule('p-nutrition'),
        'category': _rule('p-category'),
    },
    'hresume': {
        'summary': _rule('p-summary'),
        'contact': _rule('p-contact h-card', 'vcard'),
        'education': _rule('p-education h-event', 'vevent'),
        'experience': _rule('p-experience h-event', 'vevent'),
        'skill': _rule('p-skill'),
        'affiliation': _rule('p-affiliation h-card', 'vcard'),
    },
    'vevent': {
        'summary': _rule('p-name'),
        'dtstart': _rule('dt-start'),
        'dtend': _rule('dt-end'),
        'duration': _rule('dt-duration'),
        'description': _rule('p-description'),
        'url': _rule('u-url'),
        'category': _rule('p-category'),
        'location': _rule('p-location'),
        'geo': _rule('p-location h-geo'),
        'attendee': _rule('p-attendee h-card', 'vcard'),
    },
    'hreview': {
        'summary': _rule('p-name'),
        'item': _rule('p-item h-item', 'item'),
        'reviewer': _rule('p-author h-card', 'vcard'),
        'dtreviewed': _rule('dt-published'),
        **_same('p-', 'rating', 'best', 'worst'),
        'description': _rule('e-content'),
        'category': _rule('p-category'),
    },
    'hreview-aggregate': {
        'summary': _rule('p-name'),
        'item': _rule('p-item h-item', 'item'),
        **_same('p-', 'rating', 'best', 'worst', 'average', 'count', 'votes'),
    },
    'hproduct': {
        'fn': _rule('p-name'),
        'photo': _rule('u-photo'),
        'brand': _rule('p-brand'),
        'category': _rule('p-category'),
        'description': _rule('p-description'),
        'identifier': _rule('u-identifier'),
        'url': _rule('u-url'),
        'price': _rule('p-price'),
    },
    # Only reachable as a context: the reviewed thing of an hreview
    'item': {
        'fn': _rule('p-name'),
        'url': _rule('u-url'),
        'photo': _rule('u-photo'),
    },
    'adr': _same('p-', 'post-office-box', 'extended-address', 'street-address',
                 'locality', 'region', 'postal-code', 'country-name'),
    'geo': _same('p-', 'latitude', 'longitude'),
}


def validate_rule_tables(roots: dict, properties: dict) -> None:
    """Check that every root has a table and every context names one."""
    for root in roots:
        if root not in properties:
            raise RuleTableError(f"Legacy root '{root}' has no property table",
                                 details={"root": root})
    for root, table in properties.items():
        for prop, rule in table.items():
            if rule.context is not None and rule.context not in properties:
                raise RuleTableError(
                    f"Rule {root}.{prop} refers to unknown context '{rule.context}'",
                    details={"root": root, "property": prop, "context": rule.context}
                )


validate_rule_tables(LEGACY_ROOTS, LEGACY_PROPERTIES)


def legacy_root_names(element: Tag) -> list[str]:
    return [token for token in class_tokens(element) if token in LEGACY_ROOTS]


def _descendants_with_class(element: Tag, classname: str) -> list[Tag]:
    return [el for el in element.find_all(True) if has_class(el, classname)]


class BackcompatUpgrader:
    """Rewrites legacy classnames under a root into mf2 classnames."""

    def __init__(self, upgraded: UpgradeTable):
        self.upgraded = upgraded

    def upgrade(
        self,
        element: Tag,
        context: Optional[str] = None,
        is_parent_mf2: bool = False
    ) -> None:
        """
        Upgrade `element` and its legacy properties.

        Args:
            element: Legacy root, or a legacy property being upgraded recursively
            context: Table to apply instead of the element's own root classnames
            is_parent_mf2: The element already carries an mf2 root; its
                properties are recorded but not rewritten
        """
        legacy_names = [context] if context else legacy_root_names(element)
        element_has_mf2 = has_root_mf2(element)

        for legacy in legacy_names:
            self._special_cases(element, legacy)

            for prop, rule in LEGACY_PROPERTIES.get(legacy, {}).items():
                for prop_element in _descendants_with_class(element, prop):
                    if not self.upgraded.is_upgraded(prop_element, prop) and not is_parent_mf2:
                        self.upgrade(prop_element, rule.context, has_root_mf2(prop_element))
                        add_classes(prop_element, rule.replace)
                    self.upgraded.record(prop_element, prop)

            if not context and legacy in LEGACY_ROOTS and not element_has_mf2:
                add_classes(element, [LEGACY_ROOTS[legacy]])
                logger.debug(f"Upgraded <{element.name} class={legacy}> to {LEGACY_ROOTS[legacy]}")

    def _special_cases(self, element: Tag, legacy: str) -> None:
        if legacy == 'hentry':
            self.upgrade_rel_tag_to_category(element)
            for link in element.find_all('a'):
                if 'bookmark' in attr_tokens(link, 'rel') and link.has_attr('href') \
                        and not self.upgraded.is_upgraded(link, 'bookmark'):
                    add_classes(link, ['u-url'])
                    self.upgraded.record(link, 'bookmark')
        elif legacy == 'hfeed':
            self.upgrade_rel_tag_to_category(element)
        elif legacy == 'hproduct':
            for review_class, mf2_root in (('hreview-aggregate', 'h-review-aggregate'),
                                           ('hreview', 'h-review')):
                for review in _descendants_with_class(element, 'review'):
                    if has_class(review, review_class) and not has_root_mf2(review):
                        self.upgrade(review, review_class)
                        add_classes(review, ['p-review', mf2_root])
                        self.upgraded.record(review, 'review')
        elif legacy in ('hreview', 'hreview-aggregate'):
            for item in _descendants_with_class(element, 'item'):
                if has_root_mf2(item):
                    continue
                for item_root, mf2_root in (('vcard', 'h-card'), ('vevent', 'h-event'),
                                            ('hproduct', 'h-product')):
                    if has_class(item, item_root):
                        self.upgrade(item, item_root)
                        add_classes(item, ['p-item', mf2_root])
                        self.upgraded.record(item, 'item', item_root)
                        break
            self.upgrade_rel_tag_to_category(element)
        elif legacy == 'vevent':
            for location in _descendants_with_class(element, 'location'):
                if has_class(location, 'vcard') and not has_root_mf2(location):
                    self.upgrade(location, 'vcard')
                    add_classes(location, ['p-location', 'h-card'])
                    self.upgraded.record(location, 'location', 'vcard')

    def upgrade_rel_tag_to_category(self, element: Tag) -> None:
        """
        Give every rel=tag link under `element` a category.

        The tag is the last path segment of the link; it is appended to
        `element` as <data class="category" value="..."> so the ordinary
        category rule picks it up.
        """
        document = owner_document(element)
        existing = {
            child.get('value') for child in element_children(element)
            if child.name == 'data' and has_class(child, 'category')
        }
        for link in element.find_all('a'):
            if 'tag' not in attr_tokens(link, 'rel') or has_class(link, 'category') \
                    or not link.has_attr('href'):
                continue
            try:
                path = urlsplit(link['href'].strip()).path
            except ValueError:
                continue
            segments = [segment for segment in path.strip(' /').split('/') if segment]
            if not segments or segments[-1] in existing:
                continue
            category = document.new_tag('data', attrs={'class': ['category'], 'value': segments[-1]})
            element.append(category)
            existing.add(segments[-1])
