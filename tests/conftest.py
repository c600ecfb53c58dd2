from pathlib import Path
from typing import Dict

import pytest

from bkn.frontmatter import parse_document

EXAMPLES_DIR = Path(__file__).resolve().parents[1] / "examples"


def read_project(source: Path) -> Dict[str, str]:
    if source.is_file():
        return {source.name: source.read_text(encoding="utf-8")}
    return {
        path.relative_to(source).as_posix(): path.read_text(encoding="utf-8")
        for path in sorted(source.rglob("*.bkn"))
    }


ENTITY_DOC = """---
type: entity
id: pod
name: Pod
network: k8s
owner: platform-team
tags: [k8s, workload]
---

## Entity: pod

**Pod 实例** - Kubernetes 中最小的可部署计算单元

### 数据来源

| 类型 | ID |
|------|-----|
| data_view | d2mio43q6gt6p380dis0 |

> **主键**: `id` | **显示属性**: `pod_name`

### 数据属性

| 属性名 | 显示名 | 类型 | 说明 | 主键 | 索引 |
|--------|--------|------|------|:----:|:----:|
| id | ID | int64 | 主键ID | YES | YES |
| pod_name | Pod名称 | VARCHAR | Pod名称 | | 是 |
"""

RELATION_DOC = """---
type: relation
id: pod_belongs_node
name: Pod 属于 Node
network: k8s
---

## Relation: pod_belongs_node

| 起点 | 终点 | 类型 |
|------|------|------|
| pod | node | direct |

### 映射规则

| 起点属性 | 终点属性 |
|----------|----------|
| pod_node_name | node_name |
"""

ACTION_DOC = """---
type: action
id: restart_pod
name: 重启 Pod
network: k8s
action_type: modify
---

## Action: restart_pod

| 绑定实体 | 行动类型 |
|----------|----------|
| pod | modify |

### 触发条件

```yaml
condition:
  object_type_id: pod
  field: pod_status
  operation: ==
  value: Failed
```

### 工具配置

| 类型 | 工具箱ID | 工具ID |
|------|----------|--------|
| tool | k8s_toolbox | restart_pod |
"""

NETWORK_DOC = """---
type: network
id: k8s
name: K8s 网络
---

# K8s 网络

## Entity: pod

**Pod** - 最小计算单元

### 数据来源

| 类型 | ID |
|------|-----|
| data_view | d2mio43q6gt6p380dis0 |

## Entity: node

**Node** - 工作节点

## Relation: pod_belongs_node

| 起点 | 终点 | 类型 |
|------|------|------|
| pod | node | direct |

## Action: restart_pod

| 绑定实体 | 行动类型 |
|----------|----------|
| pod | modify |
"""


@pytest.fixture
def examples_dir() -> Path:
    return EXAMPLES_DIR


@pytest.fixture
def entity_document():
    return parse_document(ENTITY_DOC, "entities/pod.bkn")


@pytest.fixture
def relation_document():
    return parse_document(RELATION_DOC, "relations/pod_belongs_node.bkn")


@pytest.fixture
def action_document():
    return parse_document(ACTION_DOC, "actions/restart_pod.bkn")


@pytest.fixture
def network_document():
    return parse_document(NETWORK_DOC, "network.bkn")


@pytest.fixture
def project_files() -> Dict[str, str]:
    return {
        "entities/pod.bkn": ENTITY_DOC,
        "relations/pod_belongs_node.bkn": RELATION_DOC,
        "actions/restart_pod.bkn": ACTION_DOC,
    }


@pytest.fixture
def modular_files() -> Dict[str, str]:
    return read_project(EXAMPLES_DIR / "k8s-modular")
