"""
BKN document generation.

Builds the system prompt (format rules, data views, existing project files),
resolves ``@name`` mentions in the user prompt, and streams a generated
document. When no API key is configured, or the service fails before the
first chunk, a canned example document is streamed instead so the editor
keeps working offline.
"""

from __future__ import annotations

import logging
import re
import threading
from typing import Dict, Iterator, Mapping, Optional

from .data_sources import DATA_VIEWS, DataView, build_data_sources_summary
from .service import GenerationCancelled, LLMServiceError, is_configured, stream_completion

logger = logging.getLogger(__name__)

MENTION_PATTERN = re.compile(r"@([^\s@]+)")
FALLBACK_CHUNK_SIZE = 40

FORMAT_RULES = """## BKN Format Rules

### File Structure
Each BKN file has two parts:
1. YAML Frontmatter (metadata)
2. Markdown Body (content)

### Frontmatter Types
- `type: entity` - Single entity definition
- `type: relation` - Single relation definition
- `type: action` - Single action definition
- `type: network` - Complete network with multiple definitions
- `type: fragment` - Mixed fragment with multiple types

### Entity Format
```markdown
---
type: entity
id: {entity_id}
name: {实体名称}
network: {network_id}
---

## Entity: {entity_id}

**{显示名称}** - {简短描述}

### 数据来源

| 类型 | ID |
|------|-----|
| data_view | {view_id} |

> **主键**: `{primary_key}` | **显示属性**: `{display_key}`

### 数据属性

| 属性名 | 显示名 | 类型 | 说明 | 主键 | 索引 |
|--------|--------|------|------|:----:|:----:|
| {name} | {display} | {type} | {desc} | YES/NO | YES/NO |

### 逻辑属性

#### {property_name}

- **类型**: metric | operator
- **来源**: {source_id} ({source_type})
- **说明**: {description}

| 参数名 | 来源 | 绑定值 |
|--------|------|--------|
| {param} | property | {property_name} |
```

### Relation Format
```markdown
---
type: relation
id: {relation_id}
name: {关系名称}
network: {network_id}
---

## Relation: {relation_id}

**{显示名称}** - {简短描述}

| 起点 | 终点 | 类型 |
|------|------|------|
| {source_entity} | {target_entity} | direct |

### 映射规则

| 起点属性 | 终点属性 |
|----------|----------|
| {source_prop} | {target_prop} |
```

### Action Format
```markdown
---
type: action
id: {action_id}
name: {行动名称}
network: {network_id}
action_type: add | modify | delete
---

## Action: {action_id}

**{显示名称}** - {简短描述}

| 绑定实体 | 行动类型 |
|----------|----------|
| {entity_id} | modify |

### 触发条件

```yaml
condition:
  object_type_id: {entity_id}
  field: {property_name}
  operation: == | != | > | < | >= | <= | in | not_in
  value: {value}
```

### 工具配置

| 类型 | 工具箱ID | 工具ID |
|------|----------|--------|
| tool | {box_id} | {tool_id} |

### 参数绑定

| 参数 | 来源 | 绑定 | 说明 |
|------|------|------|------|
| {param} | property | {property_name} | {说明} |
```"""

OUTPUT_RULES = """## Important Rules

1. Output ONLY the BKN Markdown content (including YAML frontmatter)
2. Do NOT include code fences (```markdown) around the output
3. Use valid entity/relation IDs that exist in the project when referencing them
4. Follow the exact table formats shown above
5. Use Chinese for display names and descriptions unless specified otherwise
6. Ensure all required fields are present
7. Use consistent naming conventions (lowercase with underscores for IDs)"""


def build_system_prompt(
    data_sources_summary: str,
    existing_files: Mapping[str, str],
    current_file: Optional[str] = None,
) -> str:
    """System prompt with format rules and project context."""
    files_context = "\n".join(
        f"\n\n## File: {path}\n```markdown\n{content}\n```"
        for path, content in existing_files.items()
    )
    current_context = (
        f"\n\n## Current File Being Edited\n```markdown\n{current_file}\n```"
        if current_file else ""
    )

    return (
        "You are a BKN (Business Knowledge Network) expert. Your task is to generate "
        "valid BKN Markdown content based on user requests.\n\n"
        f"{FORMAT_RULES}\n\n"
        f"## Available Data Sources\n\n{data_sources_summary}\n\n"
        f"## Existing Project Files\n\n{files_context}{current_context}\n\n"
        f"{OUTPUT_RULES}"
    )


def resolve_mentions(
    prompt: str,
    files: Mapping[str, str],
    data_views: Optional[Mapping[str, DataView]] = None,
) -> str:
    """Inline ``@path`` file and ``@view_id`` data view mentions.

    Unknown mentions are left untouched.
    """
    data_views = DATA_VIEWS if data_views is None else data_views

    def _replace(match: re.Match) -> str:
        name = match.group(1)
        if name in files:
            return f"\n\n[文件: {name}]\n```markdown\n{files[name]}\n```\n\n"
        view = data_views.get(name)
        if view is not None:
            return f"\n\n[数据来源: {view.name}]\n{view.description}\n\n字段:\n{view.describe()}\n\n"
        return match.group(0)

    return MENTION_PATTERN.sub(_replace, prompt)


FALLBACK_ENTITY = """---
type: entity
id: new_entity
name: 新实体
network: k8s-topology
---

## Entity: new_entity

**新实体** - 这是一个由AI生成的实体示例

### 数据来源

| 类型 | ID |
|------|-----|
| data_view | d2mio43q6gt6p380dis0 |

> **主键**: `id` | **显示属性**: `name`

### 数据属性

| 属性名 | 显示名 | 类型 | 说明 | 主键 | 索引 |
|--------|--------|------|------|:----:|:----:|
| id | ID | int64 | 主键ID | YES | YES |
| name | 名称 | VARCHAR | 实体名称 | | YES |
| status | 状态 | VARCHAR | 实体状态 | | YES |
"""

FALLBACK_RELATION = """---
type: relation
id: new_relation
name: 新关系
network: k8s-topology
---

## Relation: new_relation

**新关系** - 这是一个由AI生成的关系示例

| 起点 | 终点 | 类型 |
|------|------|------|
| pod | node | direct |

### 映射规则

| 起点属性 | 终点属性 |
|----------|----------|
| pod_node_name | node_name |
"""

FALLBACK_ACTION = """---
type: action
id: new_action
name: 新行动
network: k8s-topology
action_type: modify
---

## Action: new_action

**新行动** - 这是一个由AI生成的行动示例

| 绑定实体 | 行动类型 |
|----------|----------|
| pod | modify |

### 触发条件

```yaml
condition:
  object_type_id: pod
  field: status
  operation: ==
  value: Failed
```

### 工具配置

| 类型 | 工具箱ID | 工具ID |
|------|----------|--------|
| tool | k8s_toolbox | example_tool |

### 参数绑定

| 参数 | 来源 | 绑定 | 说明 |
|------|------|------|------|
| id | property | id | 实体ID |
"""


def fallback_document(prompt: str) -> str:
    """Pick a canned document by the kind the prompt asks for."""
    lowered = prompt.lower()
    if "实体" in lowered or "entity" in lowered:
        return FALLBACK_ENTITY
    if "关系" in lowered or "relation" in lowered:
        return FALLBACK_RELATION
    if "行动" in lowered or "action" in lowered:
        return FALLBACK_ACTION
    return FALLBACK_ENTITY


def _chunks(text: str, size: int = FALLBACK_CHUNK_SIZE) -> Iterator[str]:
    for start in range(0, len(text), size):
        yield text[start:start + size]


def generate_document(
    prompt: str,
    existing_files: Optional[Mapping[str, str]] = None,
    current_file: Optional[str] = None,
    data_sources_summary: Optional[str] = None,
    cancel_event: Optional[threading.Event] = None,
) -> Iterator[str]:
    """Stream a generated BKN document.

    Args:
        prompt: User request; ``@`` mentions are resolved against
            ``existing_files`` and the data view catalog
        existing_files: Project files, ``path -> content``
        current_file: Content of the file being edited
        data_sources_summary: Override for the data view summary
        cancel_event: Set to stop; the generator raises GenerationCancelled

    Yields:
        Text chunks of one Markdown document

    Raises:
        LLMServiceError: If the service fails after chunks were already sent
    """
    existing_files = dict(existing_files or {})
    resolved = resolve_mentions(prompt, existing_files)

    if not is_configured():
        logger.info("LLM API key not configured, using fallback document")
        yield from _stream_fallback(resolved, cancel_event)
        return

    system_prompt = build_system_prompt(
        data_sources_summary if data_sources_summary is not None else build_data_sources_summary(),
        existing_files,
        current_file,
    )

    started = False
    try:
        for chunk in stream_completion(resolved, system_prompt=system_prompt, cancel_event=cancel_event):
            started = True
            yield chunk
    except GenerationCancelled:
        raise
    except LLMServiceError as exc:
        if started:
            raise
        logger.warning(f"Generation failed, using fallback document: {exc}")
        yield from _stream_fallback(resolved, cancel_event)


def _stream_fallback(prompt: str, cancel_event: Optional[threading.Event]) -> Iterator[str]:
    for chunk in _chunks(fallback_document(prompt)):
        if cancel_event is not None and cancel_event.is_set():
            raise GenerationCancelled("Generation cancelled")
        yield chunk


def collect(chunks: Iterator[str]) -> str:
    """Join a chunk stream into the full document."""
    return "".join(chunks)


def generate_into_store(store, project_id: str, path: str, prompt: str,
                        cancel_event: Optional[threading.Event] = None) -> str:
    """Generate a document and save it to ``path`` only once it is complete.

    A cancelled or failed generation leaves the project untouched.
    """
    files: Dict[str, str] = store.list_files(project_id)
    content = collect(generate_document(
        prompt,
        existing_files=files,
        current_file=files.get(path),
        cancel_event=cancel_event,
    ))
    store.write_file(project_id, path, content)
    return content
