"""
Date/time assembly for dt-* properties.

A dt-* value is either read whole from the element (datetime/title/value/alt
attribute or text), or assembled from value-class fragments:

    <span class="dt-start">
      <span class="value">2012-10-07</span> at <span class="value">9pm</span>
    </span>                                    →  "2012-10-07T21:00"

Two pieces of state span several dt-* properties of the same root and live
in a DateAccumulator:
  - the dates seen so far, so a later time-only value ("dt-end" = "23:00")
    can be completed with the most recent date;
  - the implied timezone, the first offset seen, which is appended to values
    that carry none once every dt-* property of the root is known.
"""

import datetime
import re
from typing import Callable, Optional

from bs4 import Tag

from .dom import has_class, raw_text, text_content, unicode_trim, element_children
from .logger import get_module_logger

logger = get_module_logger("dates")

ISO_DATETIME_RE = re.compile(r'^\d{4}-\d{2}-\d{2}[ T]\d{2}:\d{2}(:\d{2})?(Z|[+-]\d{2}:?\d{2})?$')
TIME_24H_RE = re.compile(r'^\d{1,2}:\d{2}(:\d{2})?(Z|[+-]\d{1,2}:?\d{2})?$')
TIME_12H_RE = re.compile(r'^\d{1,2}(:\d{2})?(:\d{2})?[ap]\.?m\.?$', re.IGNORECASE)
DATE_RE = re.compile(r'^\d{4}-\d{2}-\d{2}$')
ORDINAL_DATE_RE = re.compile(r'^(\d{4})-(\d{3})$')
TIMEZONE_RE = re.compile(r'^(Z|[+-]\d{1,2}:?(\d{2})?)$', re.IGNORECASE)
TRAILING_OFFSET_RE = re.compile(r'(?:Z|[+-]\d{1,2}:?(\d{2})?)$', re.IGNORECASE)
EMBEDDED_DATE_RE = re.compile(r'\d{4}-\d{2}-\d{2}')
# Used on final values: a value ending in a date ("...-07") counts as carrying an offset
HAS_OFFSET_RE = re.compile(r'(Z|[+-]\d{2}:?(\d{2})?)$', re.IGNORECASE)
CLOCK_RE = re.compile(r'(\d{1,2}):?(\d{2})?:?(\d{2})?(a\.?m\.?|p\.?m\.?)?', re.IGNORECASE)


def convert_time_format(time: str) -> str:
    """
    Convert a 12-hour time to 24-hour HH:MM[:SS].

    Times without am/pm are returned unchanged; "9pm" → "21:00".
    """
    m = CLOCK_RE.match(time)
    if not m or not m.group(4):
        return time

    hours = int(m.group(1))
    if m.group(4).lower().startswith('p') and hours < 12:
        hours += 12
    elif m.group(4).lower().startswith('a') and hours == 12:
        hours = 0

    result = f"{hours:02d}:{m.group(2) or '00'}"
    if m.group(3):
        result += f":{m.group(3)}"
    return result


def normalize_ordinal_date(value: str) -> str:
    """
    Convert an ordinal date to calendar form: "2016-060" → "2016-02-29".

    Returns '' if the day doesn't exist in that year.
    """
    m = ORDINAL_DATE_RE.match(value)
    if not m:
        return ''
    year, day = int(m.group(1)), int(m.group(2))
    if day < 1 or year < 1:
        return ''
    date = datetime.date(year, 1, 1) + datetime.timedelta(days=day - 1)
    if date.year != year:
        return ''
    return date.isoformat()


def normalize_timezone_offset(value: str) -> tuple[str, Optional[str]]:
    """
    Normalize a trailing offset to ±HHMM.

    Returns:
        Tuple of (value with the normalized offset, the offset); the offset
        is None for "Z" or when the value carries none.
    """
    m = TRAILING_OFFSET_RE.search(value)
    if not m or m.group(0).upper() == 'Z':
        return value, None

    offset = m.group(0).replace(':', '')
    sign, digits = offset[0], offset[1:]
    if len(digits) <= 2:
        digits = digits.zfill(2) + '00'
    else:
        digits = digits.zfill(4)
    offset = sign + digits
    return value[:m.start()] + offset, offset


def is_time_only(value: str) -> bool:
    return bool(TIME_24H_RE.match(value) or TIME_12H_RE.match(value))


class DateAccumulator:
    """Per-root dt-* state: dates seen so far and the implied timezone."""

    def __init__(self):
        self.dates: list[str] = []
        self.implied_timezone: Optional[str] = None

    def add_date(self, date: str) -> None:
        # Distinct, with the most recently seen date last
        if date in self.dates:
            self.dates.remove(date)
        self.dates.append(date)

    @property
    def latest(self) -> Optional[str]:
        return self.dates[-1] if self.dates else None

    def imply_timezone(self, offset: Optional[str]) -> None:
        if offset and not self.implied_timezone:
            self.implied_timezone = offset

    def apply_implied_timezone(self, value: str) -> str:
        if self.implied_timezone and not HAS_OFFSET_RE.search(value):
            return value + self.implied_timezone
        return value


class DateTimeAssembler:
    """Computes dt-* values."""

    def __init__(self, resolve_url: Optional[Callable[[str], str]] = None):
        self.resolve_url = resolve_url

    def _text(self, element: Tag) -> str:
        return text_content(element, self.resolve_url)

    def _fragment(self, element: Tag) -> str:
        """Value of one value-class child."""
        if has_class(element, 'value-title'):
            return element.get('title', '')
        name = element.name
        if name in ('img', 'area'):
            return element.get('alt', '')
        if name == 'data':
            return element['value'] if element.has_attr('value') else unicode_trim(raw_text(element))
        if name == 'abbr':
            return element['title'] if element.has_attr('title') else unicode_trim(raw_text(element))
        if name in ('del', 'ins', 'time'):
            return element['datetime'] if element.has_attr('datetime') else unicode_trim(raw_text(element))
        return unicode_trim(raw_text(element))

    def _assemble_value_class(self, fragments: list[str], accumulator: DateAccumulator) -> Optional[str]:
        date_part = time_part = timezone_part = None

        for fragment in fragments:
            if ISO_DATETIME_RE.match(fragment):
                return fragment

            if is_time_only(fragment):
                if time_part is None:
                    time_part, offset = normalize_timezone_offset(fragment)
                    accumulator.imply_timezone(offset)
                    continue
            elif DATE_RE.match(fragment):
                if date_part is None:
                    date_part = fragment
                    continue
            elif ORDINAL_DATE_RE.match(fragment):
                if date_part is None:
                    date_part = normalize_ordinal_date(fragment) or None
                    continue
            elif TIMEZONE_RE.match(fragment):
                if timezone_part is None:
                    timezone_part, offset = normalize_timezone_offset(fragment)
                    accumulator.imply_timezone(offset)
                    continue
            logger.debug(f"Dropping value-class datetime fragment: {fragment!r}")

        if date_part:
            accumulator.add_date(date_part)
        if time_part:
            time_part = convert_time_format(time_part).strip()
            if timezone_part and not TRAILING_OFFSET_RE.search(time_part):
                time_part += timezone_part

        if date_part and time_part:
            return f"{date_part.rstrip('T')}T{time_part}"
        if date_part:
            return date_part.rstrip('T')
        return time_part

    def _plain_value(self, element: Tag) -> Optional[str]:
        name = element.name
        if name in ('img', 'area'):
            return element['alt'] if element.get('alt') else None
        if name == 'data':
            return element['value'] if element.get('value') else self._text(element)
        if name == 'abbr':
            return element['title'] if element.get('title') else self._text(element)
        if name in ('del', 'ins', 'time'):
            return element['datetime'] if element.get('datetime') else self._text(element)
        return self._text(element)

    def parse(self, element: Tag, accumulator: DateAccumulator) -> Optional[str]:
        """
        dt-* value of an element, or None when it has none.

        Dates found are recorded in `accumulator`; a time-only result is
        completed with the most recent date recorded there.
        """
        parts = [
            child for child in element_children(element)
            if has_class(child, 'value') or has_class(child, 'value-title')
        ]

        if parts:
            fragments = [f for f in (self._fragment(child) for child in parts) if f]
            value = self._assemble_value_class(fragments, accumulator)
        else:
            value = self._plain_value(element)
            if value is None:
                return None
            value = unicode_trim(value)
            if not DATE_RE.match(value):
                m = TRAILING_OFFSET_RE.search(value)
                if m:
                    # Later values borrow the offset exactly as written here
                    accumulator.imply_timezone(m.group(0).upper())
            m = EMBEDDED_DATE_RE.search(value)
            if m:
                accumulator.add_date(m.group(0))

        if value and is_time_only(value) and accumulator.latest:
            m = TRAILING_OFFSET_RE.search(value)
            time, offset = (value[:m.start()], m.group(0).upper()) if m else (value, '')
            value = f"{accumulator.latest}T{convert_time_format(time).strip()}{offset}"

        return value or None
