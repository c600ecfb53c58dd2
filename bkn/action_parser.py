"""
Action record parser.

- binding table: the first table headed ``| 绑定实体 | 行动类型 |``
- trigger condition: the first ```yaml fence, expecting a ``condition`` key
- 工具配置: ``tool`` (tool box) or ``mcp`` (remote tool) binding, never both
- 参数绑定, 调度配置, 影响范围 tables
- 执行步骤 (numbered list) and 回滚方案 (free text)

An action that is not bound to an entity is not part of the network.
"""

from __future__ import annotations

import logging
import re
from typing import Any, List, Optional

import yaml

from .inline import RegionShape, inherited, locate, normalize_parameter_source, pick, resolve_identity
from .models import Action, Affect, Condition, Document, MCPConfig, Parameter, Schedule, ToolConfig
from .sections import find_table, first_fenced_block
from .tables import first_row, parse_table

logger = logging.getLogger(__name__)

BINDING_HEADERS = (("绑定实体", "行动类型"), ("entity_id", "action_type"))
DEFAULT_ACTION_TYPE = "modify"
STEP_PATTERN = re.compile(r"^\s*(?:\d+[.)、]|[-*+])\s+(.+?)\s*$")

INT_TAG = "tag:yaml.org,2002:int"
FLOAT_TAG = "tag:yaml.org,2002:float"
TIMESTAMP_TAG = "tag:yaml.org,2002:timestamp"


class ConditionLoader(yaml.SafeLoader):
    """Safe loader with YAML 1.2 numbers: ``10:30`` and dates stay strings."""


ConditionLoader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag not in (INT_TAG, FLOAT_TAG, TIMESTAMP_TAG)]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}
ConditionLoader.add_implicit_resolver(
    INT_TAG,
    re.compile(r"^[-+]?(?:0|[1-9][0-9]*)$"),
    list("-+0123456789"),
)
ConditionLoader.add_implicit_resolver(
    FLOAT_TAG,
    re.compile(r"^[-+]?(?:\.[0-9]+|[0-9]+(?:\.[0-9]*)?)(?:[eE][-+]?[0-9]+)?$"),
    list("-+.0123456789"),
)


def parse_action(
    document: Document,
    body: str,
    shape: RegionShape,
    record_id: Optional[str] = None,
) -> Optional[Action]:
    """Build an :class:`Action` from a region.

    Returns:
        The action, or None when the id or the bound entity is missing
    """
    action = build_action(document, body, shape, record_id)
    if action is None or not action.entity_id:
        return None
    return action


def build_action(
    document: Document,
    body: str,
    shape: RegionShape,
    record_id: Optional[str] = None,
) -> Optional[Action]:
    """Like :func:`parse_action` but keeps actions without a bound entity."""
    identity = resolve_identity(document, body, "Action", shape, record_id)
    if identity is None:
        return None
    action_id, name, description = identity
    fm = document.frontmatter

    action = Action(
        id=action_id,
        name=name,
        file_path=document.path,
        description=description,
        action_type=fm.action_type or DEFAULT_ACTION_TYPE,
        enabled=fm.enabled,
        risk_level=fm.risk_level,
        requires_approval=fm.requires_approval,
        **inherited(fm),
    )

    binding = _binding_row(body)
    if binding:
        action.entity_id = pick(binding, "绑定实体", "entity_id") or ""
        action.action_type = pick(binding, "行动类型", "action_type") or action.action_type

    block = first_fenced_block(body)
    if block is not None:
        action.condition = parse_condition(block)

    _parse_tool_config(action, body, shape)

    section = locate(body, "参数绑定", shape)
    if section is not None:
        action.parameters = [
            Parameter(
                name=pick(row, "参数", "parameter", "参数名") or "",
                source=normalize_parameter_source(pick(row, "来源", "source")),
                binding=pick(row, "绑定", "binding", "绑定值"),
                description=pick(row, "说明", "description"),
            )
            for row in parse_table(section.body)
        ]

    section = locate(body, "调度配置", shape)
    row = first_row(section.body) if section else None
    if row:
        action.schedule = Schedule(
            type=pick(row, "类型", "type") or "FIX_RATE",
            expression=pick(row, "表达式", "expression") or "",
            description=pick(row, "说明", "description"),
        )

    section = locate(body, "影响范围", shape)
    if section is not None:
        action.affect = [
            Affect(
                object=pick(row, "影响对象", "object") or "",
                description=pick(row, "影响描述", "description") or "",
            )
            for row in parse_table(section.body)
        ]

    section = locate(body, "执行步骤", shape)
    if section is not None:
        steps = _list_items(section.body)
        if steps:
            action.execution_steps = steps

    section = locate(body, "回滚方案", shape)
    if section is not None and section.body:
        action.rollback_plan = section.body

    return action


def _binding_row(body: str):
    for headers in BINDING_HEADERS:
        table = find_table(body, headers)
        if table is not None:
            return first_row(table)
    return None


def parse_condition(block: str) -> Optional[Condition]:
    """Read a trigger condition from a YAML block.

    Falls back to line matching of ``field:``/``operation:``/``value:`` when
    the block is not valid YAML or lacks field/operation. Never raises.
    """
    try:
        data = yaml.load(block, Loader=ConditionLoader)
    except yaml.YAMLError as exc:
        logger.debug(f"Condition block is not valid YAML: {exc}")
        return _scan_condition(block)

    if not isinstance(data, dict) or not isinstance(data.get("condition"), dict):
        return None

    raw = data["condition"]
    field_name = _scalar(raw.get("field"))
    operation = _scalar(raw.get("operation"))
    if not field_name or not operation:
        return _scan_condition(block)

    return Condition(
        field=field_name,
        operation=operation,
        value=_json_safe(raw.get("value")),
        object_type_id=_scalar(raw.get("object_type_id")),
    )


def _scan_condition(block: str) -> Optional[Condition]:
    field_match = re.search(r"^\s*field:\s*(.+)$", block, re.MULTILINE)
    op_match = re.search(r"^\s*operation:\s*(.+)$", block, re.MULTILINE)
    if not field_match or not op_match:
        return None

    value_match = re.search(r"^\s*value:\s*(.+)$", block, re.MULTILINE)
    type_match = re.search(r"^\s*object_type_id:\s*(.+)$", block, re.MULTILINE)
    return Condition(
        field=field_match.group(1).strip(),
        operation=op_match.group(1).strip(),
        value=value_match.group(1).strip() if value_match else None,
        object_type_id=type_match.group(1).strip() if type_match else None,
    )


def _scalar(value: Any) -> Optional[str]:
    if value is None or isinstance(value, (dict, list)):
        return None
    return str(value).strip() or None


def _parse_tool_config(action: Action, body: str, shape: RegionShape) -> None:
    section = locate(body, "工具配置", shape)
    row = first_row(section.body) if section else None
    if not row:
        return

    kind = (pick(row, "类型", "type") or "").strip().lower()
    if kind == "tool":
        action.tool_config = ToolConfig(
            box_id=pick(row, "工具箱ID", "box_id"),
            tool_id=pick(row, "工具ID", "tool_id") or "",
        )
    elif kind == "mcp":
        action.mcp_config = MCPConfig(
            mcp_id=pick(row, "MCP ID", "mcp_id") or "",
            tool_name=pick(row, "工具名称", "tool_name") or "",
        )


def _list_items(text: str) -> List[str]:
    items = []
    for line in text.split("\n"):
        match = STEP_PATTERN.match(line)
        if match:
            items.append(match.group(1))
    return items


def _json_safe(value: Any) -> Any:
    if value is None or isinstance(value, (str, bool, int, float)):
        return value
    if isinstance(value, (list, tuple)):
        return [_json_safe(item) for item in value]
    if isinstance(value, dict):
        return {str(k): _json_safe(v) for k, v in value.items()}
    return str(value)
