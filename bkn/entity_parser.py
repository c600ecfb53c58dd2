"""
Entity record parser.

Sections read from an entity region (heading depth depends on the region
shape, see :mod:`bkn.inline`):

- 数据来源: one-row table ``| 类型 | ID | 名称 |``
- ``> **主键**: `id` | **显示属性**: `name```  blockquote
- 数据属性: data property table (主键/索引 columns take YES or 是)
- 属性覆盖: property override table
- 逻辑属性: one sub-section per logic property, each with 类型/来源/说明
  bullets and an optional parameter table
"""

from __future__ import annotations

import re
from typing import List, Optional

from .inline import (
    RegionShape,
    first_word,
    inherited,
    is_yes,
    labelled_value,
    locate,
    normalize_parameter_source,
    pick,
    resolve_identity,
)
from .models import DataProperty, DataSource, Document, Entity, LogicProperty, Parameter, Property
from .sections import iter_blockquotes, split_subsections
from .tables import first_row, parse_table

KEYS_PATTERN = re.compile(
    r">\s*\*\*主键\*\*\s*[:：]\s*`([^`]+)`\s*\|\s*\*\*显示属性\*\*\s*[:：]\s*`([^`]+)`"
)
DISPLAY_KEY_PATTERN = re.compile(r">\s*\*\*显示属性\*\*\s*[:：]\s*`([^`]+)`")
SOURCE_PATTERN = re.compile(r"^(.*?)\s*(?:[(（]([^)）]*)[)）])?\s*$")


def parse_entity(
    document: Document,
    body: str,
    shape: RegionShape,
    record_id: Optional[str] = None,
) -> Optional[Entity]:
    """Build an :class:`Entity` from a region.

    Args:
        document: Document the region belongs to (metadata is inherited)
        body: Region text
        shape: SINGLE for a whole entity document, MULTI for a section
        record_id: Id from the record header (MULTI regions)

    Returns:
        The entity, or None when no id can be resolved
    """
    identity = resolve_identity(document, body, "Entity", shape, record_id)
    if identity is None:
        return None
    entity_id, name, description = identity
    fm = document.frontmatter

    entity = Entity(
        id=entity_id,
        name=name,
        file_path=document.path,
        tags=list(fm.tags) if fm.tags is not None else None,
        description=description,
        **inherited(fm),
    )

    entity.data_source = _parse_data_source(body, shape)
    entity.primary_key, entity.display_key = _parse_keys(body)

    section = locate(body, "数据属性", shape)
    if section is not None:
        entity.data_properties = [_data_property(row) for row in parse_table(section.body)]

    section = locate(body, "属性覆盖", shape)
    if section is not None:
        entity.properties = [_property(row) for row in parse_table(section.body)]

    section = locate(body, "逻辑属性", shape)
    if section is not None:
        logic_properties = _parse_logic_properties(section.body, section.depth + 1)
        if logic_properties:
            entity.logic_properties = logic_properties

    return entity


def _parse_data_source(body: str, shape: RegionShape) -> Optional[DataSource]:
    section = locate(body, "数据来源", shape)
    row = first_row(section.body) if section else None
    if not row or not row.get("类型"):
        return None
    return DataSource(
        type=row["类型"],
        id=pick(row, "ID", "id") or "",
        name=pick(row, "名称", "name"),
    )


def _parse_keys(body: str):
    for line in iter_blockquotes(body):
        match = KEYS_PATTERN.search(line)
        if match:
            return match.group(1), match.group(2)

    for line in iter_blockquotes(body):
        match = DISPLAY_KEY_PATTERN.search(line)
        if match:
            return None, match.group(1)

    return None, None


def _data_property(row) -> DataProperty:
    return DataProperty(
        name=pick(row, "属性名", "property_name") or "",
        display_name=pick(row, "显示名", "display_name"),
        type=pick(row, "类型", "type"),
        description=pick(row, "说明", "description"),
        is_primary_key=is_yes(row.get("主键")) or is_yes(row.get("isPrimaryKey")),
        is_indexed=is_yes(row.get("索引")) or is_yes(row.get("isIndexed")),
    )


def _property(row) -> Property:
    return Property(
        name=pick(row, "属性名", "property_name") or "",
        display_name=pick(row, "显示名", "display_name"),
        type=pick(row, "类型", "type"),
        index_config=pick(row, "索引配置", "index_config"),
        description=pick(row, "说明", "description"),
    )


def _parse_logic_properties(text: str, depth: int) -> List[LogicProperty]:
    logic_properties = []

    for subsection in split_subsections(text, depth):
        name = first_word(subsection.title)
        if not name:
            continue

        prop = LogicProperty(name=name)

        kind = labelled_value(subsection.body, ["类型", "type"])
        if kind and first_word(kind):
            prop.type = first_word(kind)

        source = labelled_value(subsection.body, ["来源", "source"])
        if source:
            match = SOURCE_PATTERN.match(source)
            prop.source = match.group(1).strip()
            if match.group(2):
                prop.source_type = match.group(2).strip()

        prop.description = labelled_value(subsection.body, ["说明", "description"])

        rows = parse_table(subsection.body)
        if rows and "参数名" in rows[0]:
            prop.parameters = [_logic_parameter(row) for row in rows]

        logic_properties.append(prop)

    return logic_properties


def _logic_parameter(row) -> Parameter:
    return Parameter(
        name=pick(row, "参数名", "parameter_name") or "",
        source=normalize_parameter_source(pick(row, "来源", "source")),
        binding=pick(row, "绑定值", "binding", "绑定"),
        description=pick(row, "说明", "description"),
    )
