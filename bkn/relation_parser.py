"""
Relation record parser.

- definition table: the first table headed ``| 起点 | 终点 | 类型 |``
- 映射规则: mapping rules, headers matched by substring so decorated headers
  like ``起点属性 (Pod)`` still map
- 映射视图: ``| 类型 | ID |`` data view, read only for ``data_view`` relations

A relation without both endpoints is not part of the network; callers get
None and decide how to report it.
"""

from __future__ import annotations

from typing import Optional

from .inline import RegionShape, find_column, inherited, locate, pick, resolve_identity
from .models import DataViewRef, Document, MappingRule, Relation
from .sections import find_table
from .tables import first_row, parse_table

DEFINITION_HEADERS = (("起点", "终点", "类型"), ("source", "target", "type"))


def parse_relation(
    document: Document,
    body: str,
    shape: RegionShape,
    record_id: Optional[str] = None,
) -> Optional[Relation]:
    """Build a :class:`Relation` from a region.

    Returns:
        The relation, or None when the id, source or target is missing
    """
    relation = build_relation(document, body, shape, record_id)
    if relation is None or not relation.source or not relation.target:
        return None
    return relation


def build_relation(
    document: Document,
    body: str,
    shape: RegionShape,
    record_id: Optional[str] = None,
) -> Optional[Relation]:
    """Like :func:`parse_relation` but keeps relations with missing endpoints."""
    identity = resolve_identity(document, body, "Relation", shape, record_id)
    if identity is None:
        return None
    relation_id, name, description = identity

    relation = Relation(
        id=relation_id,
        name=name,
        file_path=document.path,
        description=description,
        **inherited(document.frontmatter),
    )

    definition = _definition_row(body)
    if definition:
        relation.source = pick(definition, "起点", "source") or ""
        relation.target = pick(definition, "终点", "target") or ""
        relation.type = pick(definition, "类型", "type") or "direct"

    section = locate(body, "映射规则", shape)
    if section is not None:
        relation.mapping_rules = [
            MappingRule(
                source_property=find_column(row, ["起点", "source"]),
                target_property=find_column(row, ["终点", "target"]),
                view_property=find_column(row, ["视图", "view"]),
            )
            for row in parse_table(section.body)
        ]

    if relation.type == "data_view":
        section = locate(body, "映射视图", shape)
        row = first_row(section.body) if section else None
        if row:
            relation.data_view = DataViewRef(
                type=row.get("类型", ""),
                id=pick(row, "ID", "id") or "",
            )

    return relation


def _definition_row(body: str):
    for headers in DEFINITION_HEADERS:
        table = find_table(body, headers)
        if table is not None:
            return first_row(table)
    return None
