"""
Front-matter reader for BKN documents.

Format:
---
type: entity
id: pod
name: Pod
network: k8s-topology
tags:
    - k8s
    - workload
---

## Entity: pod
...

The block is read as YAML. A block that is not valid YAML is re-read line by
line (``key: value`` pairs and ``- item`` lists) so a stray character never
costs the whole header. Unknown keys are ignored and ``type`` always resolves
to one of the document types.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, Optional, Tuple

import yaml

from .models import DEFAULT_DOCUMENT_TYPE, DOCUMENT_TYPES, Document, Frontmatter

logger = logging.getLogger(__name__)

FRONTMATTER_PATTERN = re.compile(r"\A\ufeff?---[ \t]*\r?\n(.*?)\r?\n---[ \t]*(?:\r?\n|\Z)", re.DOTALL)
EMPTY_FRONTMATTER_PATTERN = re.compile(r"\A\ufeff?---[ \t]*\r?\n---[ \t]*(?:\r?\n|\Z)")
TARGET_KINDS = ("entity", "relation", "action")
TRUE_VALUES = {"true", "yes", "on", "1", "是"}
FALSE_VALUES = {"false", "no", "off", "0", "否"}


def split_frontmatter(text: str) -> Tuple[Dict[str, Any], str]:
    """Split raw document text into metadata and body.

    Args:
        text: Full document text

    Returns:
        Tuple of (metadata dict, body). Without a front-matter block the
        metadata is empty and the body is the text unchanged.

    Example:
        >>> meta, body = split_frontmatter("---\\ntype: entity\\nid: pod\\n---\\n## Entity: pod\\n")
        >>> meta["id"]
        'pod'
        >>> body
        '## Entity: pod\\n'
    """
    empty = EMPTY_FRONTMATTER_PATTERN.match(text)
    if empty:
        return {}, text[empty.end():]

    match = FRONTMATTER_PATTERN.match(text)
    if not match:
        return {}, text

    block = match.group(1)
    body = text[match.end():]

    try:
        data = yaml.safe_load(block)
    except yaml.YAMLError as exc:
        logger.debug(f"Front matter is not valid YAML, reading line by line: {exc}")
        data = _parse_metadata_text(block)

    if not isinstance(data, dict):
        data = {}

    return {str(k): v for k, v in data.items()}, body


def _parse_metadata_text(text: str) -> Dict[str, Any]:
    """Lenient ``key: value`` / ``- item`` reader used when YAML fails.

    Lines that fit neither form are skipped.
    """
    metadata: Dict[str, Any] = {}
    current_key = None
    list_values = []

    for line in text.split('\n'):
        line = line.strip()
        if not line or line.startswith('#'):
            continue

        # List item under the last empty-valued key
        if line.startswith('-'):
            if current_key is not None:
                list_values.append(line[1:].strip())
            continue

        if ':' in line:
            if current_key and list_values:
                metadata[current_key] = list_values
                list_values = []

            key, value = line.split(':', 1)
            key = key.strip()
            value = value.strip().strip('"\'')

            if value:
                metadata[key] = value
                current_key = None
            else:
                # Empty value means list follows
                current_key = key
                list_values = []

    if current_key and list_values:
        metadata[current_key] = list_values

    return metadata


def _as_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value).strip()


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    text = _as_str(value)
    if text is None:
        return None
    lowered = text.lower()
    if lowered in TRUE_VALUES:
        return True
    if lowered in FALSE_VALUES:
        return False
    return None


def _as_str_tuple(value: Any) -> Optional[Tuple[str, ...]]:
    if value is None:
        return None
    if isinstance(value, (list, tuple, set)):
        return tuple(_as_str(item) for item in value if item is not None and _as_str(item))
    # Comma-separated string
    return tuple(part.strip() for part in str(value).split(',') if part.strip())


def _as_targets(value: Any) -> Optional[Tuple[Dict[str, str], ...]]:
    if not isinstance(value, (list, tuple)):
        return None

    targets = []
    for item in value:
        if isinstance(item, dict):
            ref = {k: _as_str(v) for k, v in item.items() if k in TARGET_KINDS and v is not None}
        elif isinstance(item, str) and ':' in item:
            # "entity: pod" left over from the line reader
            kind, ref_id = item.split(':', 1)
            ref = {kind.strip(): ref_id.strip()} if kind.strip() in TARGET_KINDS else {}
        else:
            ref = {}
        if ref:
            targets.append(ref)
    return tuple(targets)


def resolve_document_type(value: Any) -> str:
    """Map any raw ``type`` value onto a valid document type."""
    text = (_as_str(value) or "").lower()
    return text if text in DOCUMENT_TYPES else DEFAULT_DOCUMENT_TYPE


def build_frontmatter(metadata: Dict[str, Any]) -> Frontmatter:
    """Coerce raw metadata into a :class:`Frontmatter`."""
    return Frontmatter(
        type=resolve_document_type(metadata.get('type')),
        id=_as_str(metadata.get('id')) or "",
        name=_as_str(metadata.get('name')) or "",
        version=_as_str(metadata.get('version')),
        network=_as_str(metadata.get('network')),
        namespace=_as_str(metadata.get('namespace')),
        owner=_as_str(metadata.get('owner')),
        tags=_as_str_tuple(metadata.get('tags')),
        description=_as_str(metadata.get('description')),
        includes=_as_str_tuple(metadata.get('includes')),
        action_type=_as_str(metadata.get('action_type')),
        enabled=_as_bool(metadata.get('enabled')),
        risk_level=_as_str(metadata.get('risk_level')),
        requires_approval=_as_bool(metadata.get('requires_approval')),
        targets=_as_targets(metadata.get('targets')),
    )


def parse_document(content: str, path: str) -> Document:
    """Parse one document.

    Args:
        content: Raw file text
        path: Project-relative path, ``/`` separated

    Returns:
        Frozen :class:`Document`; never raises on malformed text
    """
    if not isinstance(content, str):
        content = ""
    metadata, body = split_frontmatter(content)
    return Document(
        path=path,
        frontmatter=build_frontmatter(metadata),
        content=body,
        raw_content=content,
    )
