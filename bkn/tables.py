"""
Pipe-table extraction for BKN documents.

Turns a Markdown table into rows keyed by the header cells:

    | 类型 | ID |
    |------|-----|
    | data_view | d2mio43q6gt6p380dis0 |

yields ``{"类型": "data_view", "ID": "d2mio43q6gt6p380dis0"}``.

Malformed tables degrade to fewer (or no) rows; nothing here raises.
"""

from __future__ import annotations

import re
from typing import Dict, Iterator, List, Optional

CELL_SEPARATOR = "|"
DIVIDER_PATTERN = re.compile(r"^\s*\|[-:|\s]+\|\s*$")
ALIGNMENT_CELL_PATTERN = re.compile(r"^[-:]+$")


def is_divider(line: str) -> bool:
    """Return True for a table divider line such as ``|---|:---:|``."""
    return bool(DIVIDER_PATTERN.match(line))


def split_header(line: str) -> List[str]:
    """Header cells of a table line, without empty or alignment-only cells."""
    headers = []
    for cell in line.split(CELL_SEPARATOR):
        cell = cell.strip()
        if cell and not ALIGNMENT_CELL_PATTERN.match(cell):
            headers.append(cell)
    return headers


def split_row(line: str) -> List[str]:
    """Trimmed cells of a data row, dropping the edge split artifacts."""
    return [cell.strip() for cell in line.split(CELL_SEPARATOR)[1:-1]]


def iter_table_rows(text: str) -> Iterator[Dict[str, str]]:
    """Lazily yield the rows of the first table found in ``text``.

    Args:
        text: Text fragment containing a pipe-delimited table

    Yields:
        One dict per data row, mapping header (verbatim) to trimmed cell.
        Rows whose width differs from the header are skipped.
    """
    if not isinstance(text, str):
        return

    lines = [line for line in text.split("\n") if line.strip()]

    header_index = next(
        (i for i, line in enumerate(lines) if CELL_SEPARATOR in line and not is_divider(line)),
        None,
    )
    if header_index is None:
        return

    headers = split_header(lines[header_index])
    if not headers:
        return

    divider_index = next(
        (i for i in range(header_index + 1, len(lines)) if is_divider(lines[i])),
        header_index + 1,
    )

    for line in lines[divider_index + 1:]:
        if CELL_SEPARATOR not in line:
            continue
        cells = split_row(line)
        if len(cells) != len(headers):
            continue
        yield dict(zip(headers, cells))


def parse_table(text: str) -> List[Dict[str, str]]:
    """Eager version of :func:`iter_table_rows`."""
    return list(iter_table_rows(text))


def first_row(text: Optional[str]) -> Optional[Dict[str, str]]:
    """First data row of the table in ``text``, or None."""
    if not text:
        return None
    return next(iter_table_rows(text), None)
