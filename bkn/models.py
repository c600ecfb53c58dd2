"""
Data model for BKN knowledge networks.

Documents are frozen once parsed; records (entities, relations, actions) are
plain dataclasses rebuilt from scratch on every parse.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

DOCUMENT_TYPES = ("network", "entity", "relation", "action", "fragment", "delete")
DEFAULT_DOCUMENT_TYPE = "fragment"
DEFAULT_NETWORK_ID = "default-network"

ACTION_TYPES = ("add", "modify", "delete")
RISK_LEVELS = ("low", "medium", "high")
CONDITION_OPERATIONS = (
    "==", "!=", ">", "<", ">=", "<=", "in", "not_in", "exist", "not_exist", "range",
)


@dataclass(frozen=True)
class Frontmatter:
    """Typed metadata block at the top of a document."""
    type: str = DEFAULT_DOCUMENT_TYPE
    id: str = ""
    name: str = ""
    version: Optional[str] = None
    network: Optional[str] = None
    namespace: Optional[str] = None
    owner: Optional[str] = None
    tags: Optional[Tuple[str, ...]] = None
    description: Optional[str] = None
    includes: Optional[Tuple[str, ...]] = None
    # Action-specific
    action_type: Optional[str] = None
    enabled: Optional[bool] = None
    risk_level: Optional[str] = None
    requires_approval: Optional[bool] = None
    # Delete-specific: ({"entity": id} | {"relation": id} | {"action": id}, ...)
    targets: Optional[Tuple[Dict[str, str], ...]] = None


@dataclass(frozen=True)
class Document:
    """One source text unit, keyed by its project-relative path."""
    path: str
    frontmatter: Frontmatter
    content: str
    raw_content: str


@dataclass
class DataSource:
    type: str
    id: str
    name: Optional[str] = None


@dataclass
class DataProperty:
    """A column backed directly by the entity's data source."""
    name: str
    display_name: Optional[str] = None
    type: Optional[str] = None
    description: Optional[str] = None
    is_primary_key: bool = False
    is_indexed: bool = False


@dataclass
class Property:
    """Display/index override on top of a data or logic property."""
    name: str
    display_name: Optional[str] = None
    type: Optional[str] = None
    index_config: Optional[str] = None
    description: Optional[str] = None
    is_primary_key: Optional[bool] = None
    is_display_key: Optional[bool] = None


@dataclass
class Parameter:
    name: str
    source: str = "input"  # property | input | const
    binding: Optional[str] = None
    description: Optional[str] = None


@dataclass
class LogicProperty:
    """Derived attribute computed by an external metric or operator model."""
    name: str
    type: str = "metric"
    source: str = ""
    source_type: Optional[str] = None
    description: Optional[str] = None
    parameters: Optional[List[Parameter]] = None


@dataclass
class Entity:
    id: str
    name: str
    file_path: str
    network: Optional[str] = None
    namespace: Optional[str] = None
    owner: Optional[str] = None
    tags: Optional[List[str]] = None
    description: Optional[str] = None
    data_source: Optional[DataSource] = None
    primary_key: Optional[str] = None
    display_key: Optional[str] = None
    data_properties: Optional[List[DataProperty]] = None
    properties: Optional[List[Property]] = None
    logic_properties: Optional[List[LogicProperty]] = None


@dataclass
class MappingRule:
    source_property: Optional[str] = None
    target_property: Optional[str] = None
    view_property: Optional[str] = None


@dataclass
class DataViewRef:
    type: str
    id: str


@dataclass
class Relation:
    id: str
    name: str
    file_path: str
    source: str = ""
    target: str = ""
    type: str = "direct"  # direct | data_view
    network: Optional[str] = None
    namespace: Optional[str] = None
    owner: Optional[str] = None
    description: Optional[str] = None
    mapping_rules: Optional[List[MappingRule]] = None
    data_view: Optional[DataViewRef] = None


@dataclass
class Condition:
    field: str
    operation: str
    value: Any = None
    object_type_id: Optional[str] = None


@dataclass
class ToolConfig:
    tool_id: str
    box_id: Optional[str] = None
    type: str = "tool"


@dataclass
class MCPConfig:
    mcp_id: str
    tool_name: str
    type: str = "mcp"


@dataclass
class Schedule:
    expression: str
    type: str = "FIX_RATE"  # FIX_RATE | CRON
    description: Optional[str] = None


@dataclass
class Affect:
    object: str
    description: str = ""


@dataclass
class Action:
    id: str
    name: str
    file_path: str
    entity_id: str = ""
    action_type: str = "modify"
    network: Optional[str] = None
    namespace: Optional[str] = None
    owner: Optional[str] = None
    description: Optional[str] = None
    enabled: Optional[bool] = None
    risk_level: Optional[str] = None
    requires_approval: Optional[bool] = None
    condition: Optional[Condition] = None
    tool_config: Optional[ToolConfig] = None
    mcp_config: Optional[MCPConfig] = None
    parameters: Optional[List[Parameter]] = None
    schedule: Optional[Schedule] = None
    affect: Optional[List[Affect]] = None
    execution_steps: Optional[List[str]] = None
    rollback_plan: Optional[str] = None


@dataclass
class Diagnostic:
    """Non-fatal note about a record that was dropped during assembly."""
    kind: str
    record_id: str
    path: str
    reason: str


@dataclass
class Network:
    """Aggregate root: everything assembled from one project's documents."""
    id: str = ""
    name: str = ""
    entities: List[Entity] = field(default_factory=list)
    relations: List[Relation] = field(default_factory=list)
    actions: List[Action] = field(default_factory=list)
    files: List[Document] = field(default_factory=list)
    diagnostics: List[Diagnostic] = field(default_factory=list)
