"""
Pydantic schemas defining the contracts between stages and with callers.

ParserOptions: configuration shared by every stage
MicroformatItem: one parsed root (and, recursively, its nested roots)
ParseResult: standard output of a parse, serializable to canonical mf2 JSON

Data flow through the pipeline:
  Preprocessor → produces dict (tree + base URL) → RootWalker produces MicroformatItem list
  tree → RelParser → rels / rel-urls / alternates
  items + rel index → ParseResult → to_dict() → canonical JSON
"""

import os
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


# --- Configuration ---

class ParserOptions(BaseModel):
    """Settings for one parser instance."""
    base_url: Optional[str] = None       # Document URL; a <base href> is resolved against it
    convert_classic: bool = True         # Upgrade legacy (mf1) roots and properties
    lang: bool = False                   # Add "lang" to items and e-* values
    enable_alternates: bool = False      # Add the "alternates" list to the output
    max_depth: int = Field(default=100, ge=1)  # Deepest microformat nesting followed

    @classmethod
    def from_env(cls, **overrides) -> "ParserOptions":
        """
        Build options from MF2_* environment variables.

        Keyword arguments that are not None take precedence over the
        environment, so a CLI can pass its parsed flags straight through.
        """
        values = {
            "base_url": os.getenv("MF2_BASE_URL") or None,
            "convert_classic": _env_flag("MF2_CONVERT_CLASSIC", True),
            "lang": _env_flag("MF2_LANG", False),
            "enable_alternates": _env_flag("MF2_ENABLE_ALTERNATES", False),
        }
        max_depth = os.getenv("MF2_MAX_DEPTH")
        if max_depth:
            values["max_depth"] = int(max_depth)
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


# --- Property value shapes ---

class ImageValue(BaseModel):
    """u-* / implied photo taken from an <img> that carries alt text."""
    value: str
    alt: str


class EmbeddedValue(BaseModel):
    """e-* value: serialized inner markup plus its rendered text."""
    html: str
    value: str
    lang: Optional[str] = None


PropertyValue = Union[str, ImageValue, EmbeddedValue, "MicroformatItem"]


class MicroformatItem(BaseModel):
    """
    One microformat root.

    `properties` always maps to lists, even for a single value.  Nested
    roots land either in `properties` (when the nested root also carries a
    p-/u-/dt-/e- class, with `value`/`html` filled in) or in `children`.
    """
    type: list[str] = Field(default_factory=list)    # Sorted, deduplicated h-* names
    properties: dict[str, list[PropertyValue]] = Field(default_factory=dict)
    id: Optional[str] = None
    lang: Optional[str] = None
    shape: Optional[str] = None                      # <area> roots only
    coords: Optional[str] = None                     # <area> roots only
    value: Optional[str] = None                      # Property-nested items only
    html: Optional[str] = None                       # e-* property-nested items only
    children: Optional[list["MicroformatItem"]] = None

    def add_property(self, name: str, value: PropertyValue) -> None:
        self.properties.setdefault(name, []).append(value)

    def to_dict(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


MicroformatItem.model_rebuild()


# --- Rel index ---

class RelUrl(BaseModel):
    """Attributes collected for one absolute URL in rel-urls."""
    rels: list[str] = Field(default_factory=list)
    media: Optional[str] = None
    hreflang: Optional[str] = None
    title: Optional[str] = None
    type: Optional[str] = None
    text: Optional[str] = None


class Alternate(BaseModel):
    """A rel=alternate link, reported separately when alternates are enabled."""
    url: str
    rel: str                         # Remaining rel tokens, space-joined
    media: Optional[str] = None
    hreflang: Optional[str] = None
    title: Optional[str] = None
    type: Optional[str] = None
    text: Optional[str] = None


# --- Parser output ---

class ParseResult(BaseModel):
    """Standard output of a parse."""
    model_config = ConfigDict(populate_by_name=True)

    items: list[MicroformatItem] = Field(default_factory=list)
    rels: dict[str, list[str]] = Field(default_factory=dict)
    rel_urls: dict[str, RelUrl] = Field(default_factory=dict, alias="rel-urls")
    alternates: Optional[list[Alternate]] = None
    # Loading issues from every stage; never part of the canonical JSON
    warnings: list[str] = Field(default_factory=list, exclude=True)

    def to_dict(self) -> dict:
        """Canonical microformats2 JSON structure."""
        return self.model_dump(by_alias=True, exclude_none=True)
