"""
Inline field policies shared by the record parsers.

A record region comes in one of two shapes:

- SINGLE: the whole body of an ``entity``/``relation``/``action`` document.
  Sub-sections sit at ``##`` (``###`` is accepted too, for bodies that repeat
  a ``## Entity: <id>`` header). Identity comes from front matter.
- MULTI: a region carved out of a network/fragment document below its
  ``## <Kind>: <id>`` header. Sub-sections sit at ``###`` and the display
  name comes from the first ``**Name** - description`` line.

The lenient matching rules (column aliases, fuzzy headers, YES/是 flags) are
kept here as small functions so each one can be tested on its own.
"""

from __future__ import annotations

import enum
import re
from typing import Dict, Iterable, Optional, Sequence, Tuple

from .models import Document, Frontmatter
from .sections import Section, find_leading_record_id, find_section

TITLE_PATTERN = re.compile(r"\*\*([^*\n]+)\*\*\s*-\s*([^\n]+)")
YES_VALUES = {"YES", "是"}
PARAMETER_SOURCES = ("property", "input", "const")


class RegionShape(enum.Enum):
    SINGLE = "single"
    MULTI = "multi"

    @property
    def section_depths(self) -> Tuple[int, ...]:
        return (2, 3) if self is RegionShape.SINGLE else (3,)


def extract_title(text: str) -> Tuple[Optional[str], Optional[str]]:
    """Display name and description from the first ``**Name** - description``."""
    match = TITLE_PATTERN.search(text)
    if not match:
        return None, None
    return match.group(1).strip(), match.group(2).strip()


def is_yes(value: Optional[str]) -> bool:
    return (value or "").strip().upper() in YES_VALUES


def pick(row: Dict[str, str], *keys: str) -> Optional[str]:
    """First non-empty cell among the column aliases ``keys``."""
    for key in keys:
        value = row.get(key)
        if value:
            return value
    return None


def find_column(row: Dict[str, str], fragments: Iterable[str]) -> Optional[str]:
    """Cell of the first column whose header contains any of ``fragments``.

    Tolerates decorated headers such as ``起点属性 (Pod)``.
    """
    fragments = list(fragments)
    for header, value in row.items():
        if any(fragment in header for fragment in fragments):
            return value or None
    return None


def normalize_parameter_source(value: Optional[str]) -> str:
    """Parameter binding provenance; empty cells mean caller input."""
    text = (value or "").strip()
    if not text:
        return "input"
    lowered = text.lower()
    return lowered if lowered in PARAMETER_SOURCES else text


def locate(body: str, name: str, shape: RegionShape) -> Optional[Section]:
    return find_section(body, name, shape.section_depths)


def resolve_identity(
    document: Document,
    body: str,
    kind: str,
    shape: RegionShape,
    record_id: Optional[str] = None,
) -> Optional[Tuple[str, str, Optional[str]]]:
    """Resolve ``(id, name, description)`` for a record region.

    Returns None when no id can be found.
    """
    title, summary = extract_title(body)
    fm = document.frontmatter

    if shape is RegionShape.MULTI:
        if not record_id:
            return None
        return record_id, title or record_id, summary

    record_id = fm.id or find_leading_record_id(body, kind)
    if not record_id:
        return None
    if fm.id:
        return record_id, fm.name or title or record_id, fm.description or summary
    return record_id, title or fm.name or record_id, summary or fm.description


def inherited(fm: Frontmatter) -> Dict[str, object]:
    """Metadata every record inherits from its document."""
    return {
        "network": fm.network,
        "namespace": fm.namespace,
        "owner": fm.owner,
    }


def first_word(text: str) -> Optional[str]:
    match = re.match(r"(\w+)", text.strip())
    return match.group(1) if match else None


def labelled_value(text: str, labels: Sequence[str]) -> Optional[str]:
    """Value of the first ``**label**: value`` line (``-`` bullet optional)."""
    for label in labels:
        match = re.search(
            r"^\s*(?:[-*]\s*)?\*\*" + re.escape(label) + r"\*\*\s*[:：]\s*(.+?)\s*$",
            text,
            re.MULTILINE,
        )
        if match:
            return match.group(1)
    return None
