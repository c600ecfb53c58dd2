from bkn.frontmatter import parse_document
from bkn.inline import RegionShape
from bkn.models import DataViewRef, MappingRule
from bkn.relation_parser import build_relation, parse_relation

FRAGMENT = parse_document("---\ntype: fragment\nnetwork: k8s\n---\n", "fragment.bkn")


def test_single_relation(relation_document):
    relation = parse_relation(relation_document, relation_document.content, RegionShape.SINGLE)

    assert relation.id == "pod_belongs_node"
    assert relation.name == "Pod 属于 Node"
    assert relation.source == "pod"
    assert relation.target == "node"
    assert relation.type == "direct"
    assert relation.network == "k8s"
    assert relation.mapping_rules == [MappingRule(source_property="pod_node_name", target_property="node_name")]
    assert relation.data_view is None


def test_english_definition_headers():
    body = "| source | target | type |\n|---|---|---|\n| a | b | |\n"
    relation = parse_relation(FRAGMENT, body, RegionShape.MULTI, "a_b")
    assert (relation.source, relation.target, relation.type) == ("a", "b", "direct")
    assert relation.network == "k8s"


def test_missing_endpoint_is_rejected():
    body = "| 起点 | 终点 | 类型 |\n|---|---|---|\n| pod |  | direct |\n"
    assert parse_relation(FRAGMENT, body, RegionShape.MULTI, "broken") is None

    kept = build_relation(FRAGMENT, body, RegionShape.MULTI, "broken")
    assert kept.source == "pod"
    assert kept.target == ""


def test_no_definition_table():
    assert parse_relation(FRAGMENT, "**R** - nothing", RegionShape.MULTI, "r") is None


def test_definition_table_with_leading_name_column():
    body = "| 名称 | 起点 | 终点 | 类型 |\n|---|---|---|---|\n| 归属 | pod | node | direct |\n"
    relation = parse_relation(FRAGMENT, body, RegionShape.MULTI, "pod_node")
    assert (relation.source, relation.target, relation.type) == ("pod", "node", "direct")


def test_data_view_relation_with_decorated_mapping_headers():
    body = """**Service 路由到 Pod** - 标签选择

| 起点 | 终点 | 类型 |
|------|------|------|
| service | pod | data_view |

### 映射视图

| 类型 | ID |
|------|-----|
| data_view | d2mio43q6gt6p380dis0 |

### 映射规则

| 起点属性 (Service) | 视图属性 | 终点属性 (Pod) |
|--------------------|----------|----------------|
| service_name | pod_service | pod_name |
"""
    relation = parse_relation(FRAGMENT, body, RegionShape.MULTI, "service_routes_pod")

    assert relation.name == "Service 路由到 Pod"
    assert relation.type == "data_view"
    assert relation.data_view == DataViewRef(type="data_view", id="d2mio43q6gt6p380dis0")
    assert relation.mapping_rules == [
        MappingRule(source_property="service_name", target_property="pod_name", view_property="pod_service"),
    ]


def test_mapping_view_ignored_for_direct_relations():
    body = """| 起点 | 终点 | 类型 |
|------|------|------|
| a | b | direct |

### 映射视图

| 类型 | ID |
|------|-----|
| data_view | v1 |
"""
    relation = parse_relation(FRAGMENT, body, RegionShape.MULTI, "a_b")
    assert relation.data_view is None
