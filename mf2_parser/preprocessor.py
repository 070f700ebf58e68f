"""
Document loading for the microformats2 parser.

Turns raw input (bytes, str or an existing BeautifulSoup tree) into the tree
the RootWalker works on:
  - bytes are decoded with the charset a browser would pick
  - NUL characters are dropped and empty input becomes an empty document
  - the tree is built with html5lib, falling back to lxml, then html.parser
  - <template> elements are removed (their content is inert)
  - the effective base URL is taken from the first <base href>

Nothing here raises for malformed markup: browsers render it, so we parse it.
"""

import codecs
import copy
import re
from typing import Optional, Union

from bs4 import BeautifulSoup

from .exceptions import PreprocessorError
from .logger import get_module_logger
from .urls import resolve_url

logger = get_module_logger("preprocessor")

EMPTY_DOCUMENT = '<html><body></body></html>'

# Tree builders in order of preference
TREE_BUILDERS = ('html5lib', 'lxml', 'html.parser')


class Preprocessor:
    """
    Loads HTML into a BeautifulSoup tree.

    Handles charset detection, parser fallback and template removal.
    """

    # WHATWG encoding spec: browsers silently remap these charsets.
    # https://encoding.spec.whatwg.org/#names-and-labels
    # Every browser treats "iso-8859-1" as "windows-1252": the two agree on
    # 0x00–0x7F, but windows-1252 defines printable characters in 0x80–0x9F.
    WHATWG_CHARSET_MAP = {
        'iso-8859-1': 'windows-1252',
        'iso8859-1': 'windows-1252',
        'iso88591': 'windows-1252',
        'latin-1': 'windows-1252',
        'latin1': 'windows-1252',
        'us-ascii': 'windows-1252',
        'ascii': 'windows-1252',
        'iso-8859-9': 'windows-1254',
        'iso-8859-11': 'windows-874',
        'utf8': 'utf-8',
        'unicode-1-1-utf-8': 'utf-8',
    }

    BOMS = (
        (codecs.BOM_UTF8, 'utf-8'),
        (codecs.BOM_UTF16_LE, 'utf-16-le'),
        (codecs.BOM_UTF16_BE, 'utf-16-be'),
    )

    @staticmethod
    def detect_charset_from_bytes(raw_bytes: bytes) -> str:
        """
        Detect the charset of raw HTML bytes the way a browser would.

        Order: byte order mark, then <meta charset=...> or
        <meta http-equiv="Content-Type" content="...; charset=..."> in the
        first 2048 bytes (with WHATWG label mapping), then UTF-8 if the bytes
        decode cleanly, else windows-1252.
        """
        for bom, charset in Preprocessor.BOMS:
            if raw_bytes.startswith(bom):
                return charset

        # Declarations must appear within the first 1024 bytes; scan 2048.
        head_str = raw_bytes[:2048].decode('ascii', errors='ignore')

        charset = None
        m = re.search(r'<meta[^>]+charset=["\']?\s*([^\s"\';>]+)', head_str, re.IGNORECASE)
        if m:
            charset = m.group(1).strip().lower()

        if not charset:
            m = re.search(
                r'<meta[^>]+content=["\'][^"\']*charset=([^\s"\';>]+)',
                head_str, re.IGNORECASE
            )
            if m:
                charset = m.group(1).strip().lower()

        if charset:
            charset = Preprocessor.WHATWG_CHARSET_MAP.get(charset, charset)
            try:
                codecs.lookup(charset)
                return charset
            except LookupError:
                logger.warning(f"Unknown declared charset {charset!r}, sniffing instead")

        try:
            raw_bytes.decode('utf-8')
            return 'utf-8'
        except UnicodeDecodeError:
            return 'windows-1252'

    @staticmethod
    def decode(raw_bytes: bytes) -> tuple[str, str]:
        """Decode bytes with the detected charset. Returns (text, charset)."""
        charset = Preprocessor.detect_charset_from_bytes(raw_bytes)
        text = raw_bytes.decode(charset, errors='replace')
        # A UTF-8 BOM survives decoding with "utf-8"; drop it
        return text.lstrip('\ufeff'), charset

    @staticmethod
    def find_base_url(soup: BeautifulSoup, url: Optional[str] = None) -> Optional[str]:
        """
        Effective base URL of a document.

        The first <base href> wins, resolved against `url` when relative;
        otherwise `url` itself.
        """
        base = soup.find('base', href=True)
        if base is None:
            return url
        href = base['href'].strip()
        if url:
            return resolve_url(url, href)
        return href or url

    def __init__(self, remove_templates: bool = True):
        """
        Initialize preprocessor.

        Args:
            remove_templates: Drop <template> elements before parsing.
        """
        self.remove_templates = remove_templates

    def _sanitize_html(self, html: str) -> tuple[str, list[str]]:
        """
        Fix string-level problems before parsing.

        Returns:
            Tuple of (sanitized HTML, list of warnings)
        """
        warnings = []
        sanitized = html

        # Lone surrogates cannot be encoded by any tree builder
        sanitized = sanitized.encode('utf-8', errors='replace').decode('utf-8')

        # NULL bytes are never valid in HTML text content
        if '\x00' in sanitized:
            sanitized = sanitized.replace('\x00', '')
            warnings.append("Removed NULL bytes")

        if not sanitized.strip():
            sanitized = EMPTY_DOCUMENT

        return sanitized, warnings

    def _build_tree(self, html: str, warnings: list[str]) -> BeautifulSoup:
        """
        Parse with the first tree builder that succeeds.

        html5lib implements the full WHATWG parsing algorithm, the same one
        browsers use, so the tree matches what page authors see.  lxml and
        html.parser are fallbacks for library failures.
        """
        for builder in TREE_BUILDERS:
            try:
                return BeautifulSoup(html, builder)
            except Exception as e:
                logger.warning(f"{builder} parsing failed: {e}")
                warnings.append(f"{builder} parsing failed: {e}")
        raise PreprocessorError("No tree builder could parse the document",
                                details={"builders": list(TREE_BUILDERS)})

    def _remove_template_elements(self, soup: BeautifulSoup) -> int:
        """Remove <template> elements. Returns count of removed elements."""
        templates = soup.find_all('template')
        for template in templates:
            template.extract()
        return len(templates)

    def process(
        self,
        html: Union[str, bytes, BeautifulSoup],
        url: Optional[str] = None,
        declared_charset: Optional[str] = None
    ) -> dict:
        """
        Load a document.

        Args:
            html: Raw HTML (str or bytes) or an already-parsed tree; a tree
                is copied so the caller's tree is never modified
            url: URL the document was retrieved from
            declared_charset: Charset of `html` if it was decoded elsewhere

        Returns:
            dict with:
                - document: BeautifulSoup tree
                - base_url: Effective base URL (may be None)
                - declared_charset: Charset the input was decoded with
                - warnings: List of warnings encountered

        Raises:
            TypeError: `html` is not str, bytes or BeautifulSoup
            PreprocessorError: No tree builder could parse the input
        """
        warnings = []

        if isinstance(html, BeautifulSoup):
            soup = copy.copy(html)
        else:
            if isinstance(html, bytes):
                html, declared_charset = self.decode(html)
                logger.debug(f"Decoded input as {declared_charset}")
            elif not isinstance(html, str):
                raise TypeError(f"Cannot parse input of type {type(html).__name__}")
            sanitized, sanitize_warnings = self._sanitize_html(html)
            warnings.extend(sanitize_warnings)
            soup = self._build_tree(sanitized, warnings)

        if self.remove_templates:
            removed = self._remove_template_elements(soup)
            if removed:
                logger.debug(f"Removed {removed} template elements")

        return {
            "document": soup,
            "base_url": self.find_base_url(soup, url),
            "declared_charset": declared_charset or "utf-8",
            "warnings": warnings,
        }
