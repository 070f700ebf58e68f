"""
Main orchestrator for the microformats2 parser.

Coordinates the pipeline: Preprocessor → RootWalker → RelParser.
The Preprocessor decides the effective base URL (caller URL, overridden by
<base href>), which then flows into every URL the walker and the rel scan
resolve.
"""

from pathlib import Path
from typing import Optional, Union

from bs4 import BeautifulSoup

from .exceptions import PreprocessorError
from .logger import get_module_logger, setup_logger
from .preprocessor import EMPTY_DOCUMENT, Preprocessor
from .rels import RelParser
from .schemas import ParseResult, ParserOptions
from .walker import RootWalker

logger = get_module_logger("main")

HtmlInput = Union[str, bytes, BeautifulSoup]


class MicroformatsParser:
    """
    Main orchestrator for microformats2 parsing.

    Coordinates the pipeline:
    1. Preprocessor: loads the document, finds the base URL
    2. RootWalker: upgrades legacy markup, extracts items
    3. RelParser: builds the document-wide rel index

    Each call parses its own copy of the document, so one parser can be
    reused for any number of documents.
    """

    def __init__(
        self,
        options: Optional[ParserOptions] = None,
        log_level: int = None
    ):
        if log_level is not None:
            setup_logger(level=log_level)

        self.options = options or ParserOptions()
        self.preprocessor = Preprocessor()

        logger.info("MicroformatsParser initialized")

    def _load(self, html: HtmlInput, url: Optional[str], declared_charset: Optional[str]) -> dict:
        try:
            return self.preprocessor.process(html, url, declared_charset=declared_charset)
        except PreprocessorError as e:
            # NON-FATAL: fall back to an empty document
            logger.warning(f"Could not load document, parsing an empty one: {e.message}")
            preprocessed = self.preprocessor.process(EMPTY_DOCUMENT, url)
            preprocessed["warnings"].append(e.message)
            return preprocessed

    def parse(
        self,
        html: HtmlInput,
        url: Optional[str] = None,
        element_id: Optional[str] = None,
        declared_charset: Optional[str] = None
    ) -> ParseResult:
        """
        Parse a document.

        Args:
            html: Raw HTML (str or bytes) or a parsed tree
            url: URL of the document; defaults to options.base_url
            element_id: Only parse microformats at or below the element with this id
            declared_charset: Charset `html` was decoded with, if known

        Returns:
            ParseResult with items, rels and rel-urls

        Raises:
            ParseDepthError: The document nests too deeply
        """
        logger.info("Starting pipeline")

        # Stage 1: Load
        # Input:  raw HTML, any encoding, possibly malformed
        # Output: dict with the tree, the effective base URL and warnings
        preprocessed = self._load(html, url or self.options.base_url, declared_charset)
        document = preprocessed["document"]
        base_url = preprocessed["base_url"]

        # Stage 2: Walk roots (mutates the loaded tree through backcompat)
        walker = RootWalker(base_url, self.options)
        if element_id is None:
            items = walker.walk(document)
        else:
            scope = document.find(id=element_id)
            if scope is None:
                logger.info(f"No element with id {element_id!r}")
                items = []
            else:
                items = walker.walk(scope, include_scope=True)

        # Stage 3: Rel index, always document-wide
        rels, rel_urls, alternates = RelParser(
            walker.resolver, self.options.enable_alternates
        ).parse(document)

        result = ParseResult(
            items=items,
            rels=rels,
            rel_urls=rel_urls,
            alternates=alternates,
            warnings=preprocessed["warnings"],
        )
        logger.info(f"Complete: {len(items)} items, {len(rels)} rels")
        return result

    def parse_from_id(self, html: HtmlInput, element_id: str, url: Optional[str] = None) -> ParseResult:
        """Parse only the microformats inside the element with `element_id`."""
        return self.parse(html, url=url, element_id=element_id)

    def parse_file(
        self,
        file_path: Union[str, Path],
        url: Optional[str] = None
    ) -> ParseResult:
        """Parse an HTML file."""
        file_path = Path(file_path)

        # Read raw bytes so the charset is sniffed from the document itself
        raw_bytes = file_path.read_bytes()
        html, declared_charset = Preprocessor.decode(raw_bytes)
        return self.parse(html, url=url, declared_charset=declared_charset)


def parse_html(
    html: HtmlInput,
    url: Optional[str] = None,
    convert_classic: bool = True,
    **options
) -> ParseResult:
    """Convenience function to parse HTML."""
    parser = MicroformatsParser(ParserOptions(convert_classic=convert_classic, **options))
    return parser.parse(html, url=url)


def parse_html_file(
    file_path: Union[str, Path],
    url: Optional[str] = None,
    convert_classic: bool = True,
    **options
) -> ParseResult:
    """Convenience function to parse an HTML file."""
    parser = MicroformatsParser(ParserOptions(convert_classic=convert_classic, **options))
    return parser.parse_file(file_path, url=url)
