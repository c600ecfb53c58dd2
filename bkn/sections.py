"""
Section scanning for BKN document bodies.

Every line is classified once (heading, table row, divider, blockquote, fence
marker, fenced body, plain text) and all region lookups walk that token list,
so headings inside code fences never open or close a section.

Record regions:
    A "network" or "fragment" body holds repeated record headers:

        ## Entity: pod
        ...
        ## Relation: pod_belongs_node
        ...
        ## Action: restart_pod

    A region runs from its header to the next record header of any kind, the
    next top-level ``#`` heading, or the end of the document.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterator, List, Optional, Sequence, Set, Tuple

from .tables import is_divider, split_header

RECORD_KINDS = ("Entity", "Relation", "Action")
RECORD_HEADER_LEVEL = 2

HEADING_PATTERN = re.compile(r"^(#{1,6})\s+(.*?)\s*#*\s*$")
FENCE_PATTERN = re.compile(r"^\s*(```|~~~)\s*([\w+-]*)")
RECORD_HEADER_PATTERN = re.compile(r"^(Entity|Relation|Action)\s*:\s*(\w+)")

HEADING = "heading"
DIVIDER = "divider"
TABLE_ROW = "table_row"
BLOCKQUOTE = "blockquote"
FENCE = "fence"
FENCE_BODY = "fence_body"
TEXT = "text"


@dataclass(frozen=True)
class Line:
    kind: str
    text: str
    lineno: int
    level: int = 0
    title: str = ""
    info: str = ""


@dataclass(frozen=True)
class Section:
    """A headed block: its title, heading depth and the text below the heading."""
    title: str
    depth: int
    body: str


def tokenize(text: str) -> List[Line]:
    """Classify every line of ``text``.

    A fence opener with no matching closer is read as plain text, so an
    unterminated block cannot hide the headings after it.
    """
    lines = [raw.rstrip("\r") for raw in text.split("\n")]
    unclosed: Set[int] = set()
    while True:
        tokens, open_at = _classify(lines, unclosed)
        if open_at is None:
            return tokens
        unclosed.add(open_at)


def _classify(lines: Sequence[str], unclosed: Set[int]) -> Tuple[List[Line], Optional[int]]:
    tokens: List[Line] = []
    fence_marker = None
    fence_start = None

    for lineno, line in enumerate(lines):
        fence = FENCE_PATTERN.match(line)

        if fence_marker is not None:
            if fence and fence.group(1) == fence_marker and not fence.group(2):
                fence_marker = None
                tokens.append(Line(FENCE, line, lineno))
            else:
                tokens.append(Line(FENCE_BODY, line, lineno))
            continue

        if fence and lineno not in unclosed:
            fence_marker = fence.group(1)
            fence_start = lineno
            tokens.append(Line(FENCE, line, lineno, info=fence.group(2).lower()))
            continue

        heading = HEADING_PATTERN.match(line)
        if heading:
            tokens.append(Line(HEADING, line, lineno, level=len(heading.group(1)), title=heading.group(2)))
        elif is_divider(line):
            tokens.append(Line(DIVIDER, line, lineno))
        elif line.lstrip().startswith("|"):
            tokens.append(Line(TABLE_ROW, line, lineno))
        elif line.lstrip().startswith(">"):
            tokens.append(Line(BLOCKQUOTE, line, lineno))
        else:
            tokens.append(Line(TEXT, line, lineno))

    return tokens, fence_start if fence_marker is not None else None


def _join(tokens: Sequence[Line]) -> str:
    return "\n".join(token.text for token in tokens)


def _record_header(token: Line) -> Optional[Tuple[str, str]]:
    if token.kind != HEADING or token.level != RECORD_HEADER_LEVEL:
        return None
    match = RECORD_HEADER_PATTERN.match(token.title)
    if not match:
        return None
    return match.group(1), match.group(2)


def _ends_record_region(token: Line) -> bool:
    if token.kind != HEADING:
        return False
    return token.level == 1 or _record_header(token) is not None


def iter_record_regions(content: str, kind: str) -> Iterator[Tuple[str, str]]:
    """Yield ``(record_id, region_body)`` for each ``## <kind>: <id>`` header.

    Args:
        content: Body of a network/fragment document
        kind: One of "Entity", "Relation", "Action"
    """
    tokens = tokenize(content)

    for index, token in enumerate(tokens):
        header = _record_header(token)
        if not header or header[0] != kind:
            continue

        end = next(
            (j for j in range(index + 1, len(tokens)) if _ends_record_region(tokens[j])),
            len(tokens),
        )
        yield header[1], _join(tokens[index + 1:end]).strip()


def find_leading_record_id(content: str, kind: str) -> Optional[str]:
    """Id from the first ``## <kind>: <id>`` header, if any."""
    for token in tokenize(content):
        header = _record_header(token)
        if header and header[0] == kind:
            return header[1]
    return None


def find_section(body: str, name: str, depths: Sequence[int]) -> Optional[Section]:
    """Locate the section headed ``name`` at the first matching depth.

    The section body runs to the next heading of the same or a higher level.
    """
    tokens = tokenize(body)

    for depth in depths:
        for index, token in enumerate(tokens):
            if token.kind != HEADING or token.level != depth or token.title != name:
                continue
            end = next(
                (j for j in range(index + 1, len(tokens))
                 if tokens[j].kind == HEADING and tokens[j].level <= depth),
                len(tokens),
            )
            return Section(title=name, depth=depth, body=_join(tokens[index + 1:end]).strip())

    return None


def split_subsections(text: str, depth: int) -> List[Section]:
    """Sections headed at exactly ``depth`` inside ``text``, in order."""
    tokens = tokenize(text)
    sections: List[Section] = []

    starts = [i for i, t in enumerate(tokens) if t.kind == HEADING and t.level == depth]
    for index in starts:
        end = next(
            (j for j in range(index + 1, len(tokens))
             if tokens[j].kind == HEADING and tokens[j].level <= depth),
            len(tokens),
        )
        sections.append(Section(
            title=tokens[index].title,
            depth=depth,
            body=_join(tokens[index + 1:end]).strip(),
        ))

    return sections


def first_fenced_block(text: str, info: Sequence[str] = ("yaml", "yml")) -> Optional[str]:
    """Body of the first fenced block whose info string is in ``info``."""
    tokens = tokenize(text)

    for index, token in enumerate(tokens):
        if token.kind != FENCE or token.info not in info:
            continue
        body = []
        for inner in tokens[index + 1:]:
            if inner.kind != FENCE_BODY:
                break
            body.append(inner)
        return _join(body)

    return None


def find_table(text: str, required: Sequence[str]) -> Optional[str]:
    """Raw text of the first table whose header holds ``required`` as a contiguous run.

    The table runs over consecutive table rows and dividers.
    """
    tokens = tokenize(text)
    required = list(required)

    for index, token in enumerate(tokens):
        if token.kind != TABLE_ROW:
            continue
        if not _has_run(split_header(token.text), required):
            continue
        end = index + 1
        while end < len(tokens) and tokens[end].kind in (TABLE_ROW, DIVIDER):
            end += 1
        return _join(tokens[index:end])

    return None


def _has_run(cells: List[str], run: List[str]) -> bool:
    width = len(run)
    return any(cells[start:start + width] == run for start in range(len(cells) - width + 1))


def iter_blockquotes(text: str) -> Iterator[str]:
    """Blockquote lines outside code fences."""
    for token in tokenize(text):
        if token.kind == BLOCKQUOTE:
            yield token.text
