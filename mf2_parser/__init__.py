"""
mf2_parser

A microformats2 parser: extracts h-* items, their properties and the
document's rel links from HTML, upgrading classic microformats on the way.
- Preprocessor: Document loading, charset detection, base URL
- RootWalker: Root discovery, backcompat, property and implied-property extraction
- RelParser: Document-wide rel / rel-urls index

Public API surface:
  Entry points  : MicroformatsParser, parse_html, parse_html_file
  Pipeline parts: Preprocessor, RootWalker, RelParser, BackcompatUpgrader
  Data models   : ParserOptions, ParseResult, MicroformatItem, RelUrl
  URL resolution: resolve_url
  Error types   : Mf2ParserError, ParseDepthError (fatal), PreprocessorError (non-fatal)
"""

# --- Entry points ---
from .main import MicroformatsParser, parse_html, parse_html_file

# --- Pipeline stage classes ---
from .preprocessor import Preprocessor
from .walker import RootWalker
from .rels import RelParser
from .backcompat import BackcompatUpgrader

# --- Data models (options in, results out) ---
from .schemas import ParserOptions, ParseResult, MicroformatItem, RelUrl

# --- URL resolution (usable on its own) ---
from .urls import resolve_url

# --- Exceptions (callers should catch these for error handling) ---
from .exceptions import Mf2ParserError, ParseDepthError, PreprocessorError

__version__ = "0.1.0"
__all__ = [
    "MicroformatsParser",
    "parse_html",
    "parse_html_file",
    "Preprocessor",
    "RootWalker",
    "RelParser",
    "BackcompatUpgrader",
    "ParserOptions",
    "ParseResult",
    "MicroformatItem",
    "RelUrl",
    "resolve_url",
    "Mf2ParserError",
    "ParseDepthError",
    "PreprocessorError",
]
