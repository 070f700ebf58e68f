"""
Custom exceptions for the microformats2 parser.

Error philosophy:
  - ParseDepthError   → FAIL HARD: the walk stops, the caller gets the depth reached.
  - PreprocessorError → NON-FATAL: the document is replaced by an empty one, warning logged.
  - RuleTableError    → FAIL HARD at import time: the legacy rule table is inconsistent.

Malformed markup is never an error.  Missing attributes, unparseable dates
and undecomposable URLs degrade at the value level (the property is omitted,
left empty or passed through unchanged), so a parse over hostile HTML still
returns *something*.  Only pathological nesting halts the pipeline.
"""

from typing import Optional


class Mf2ParserError(Exception):
    """Base exception for all microformats2 parser errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


# --- FAIL HARD: stops the pipeline ---

class ParseDepthError(Mf2ParserError):
    """
    Raised when the document nests deeper than the parser will follow.

    This is a FAIL HARD error - it is never caught inside the package.
    """

    def __init__(
        self,
        message: str,
        depth: int,
        details: Optional[dict] = None
    ):
        super().__init__(message, details)
        self.depth = depth

    def to_response(self) -> dict:
        """Convert to an error record for drivers that report failures as JSON."""
        return {
            "error": "ParseDepthError",
            "message": self.message,
            "depth": self.depth,
            "details": self.details
        }


class RuleTableError(Mf2ParserError):
    """Raised when a legacy upgrade rule refers to an unknown context table."""
    pass


# --- NON-FATAL: loading issues don't stop anything ---

class PreprocessorError(Mf2ParserError):
    """
    Raised when no tree builder could parse the input.

    Non-fatal - the orchestrator parses an empty document and logs a warning.
    """
    pass
