from bkn.graph import action_node_id, build_graph, entity_node_id
from bkn.network import parse_files

NETWORK = """---
type: network
id: g
---

## Entity: pod

**Pod v1** - first

## Entity: node

**Node** - machine

## Entity: pod

**Pod v2** - redefined

## Relation: pod_node

| 起点 | 终点 | 类型 |
|------|------|------|
| pod | node | direct |

## Relation: pod_volume

| 起点 | 终点 | 类型 |
|------|------|------|
| pod | volume | direct |

## Action: restart_pod

**重启** - restart

| 绑定实体 | 行动类型 |
|----------|----------|
| pod | modify |

## Action: drain_host

| 绑定实体 | 行动类型 |
|----------|----------|
| host | delete |
"""


def _graph(**kwargs):
    return build_graph(parse_files({"net.bkn": NETWORK}), **kwargs)


def test_node_ids_are_unique_last_write_wins():
    nodes = _graph()["nodes"]
    ids = [n["id"] for n in nodes]
    assert ids == ["entity-pod", "entity-node", "action-restart_pod", "action-drain_host"]
    assert nodes[0]["label"] == "Pod v2"
    assert nodes[0]["data"]["description"] == "redefined"


def test_action_binding_edges():
    edges = {e["id"]: e for e in _graph()["edges"]}
    edge = edges["edge-pod-restart_pod"]
    assert edge["source"] == entity_node_id("pod")
    assert edge["target"] == action_node_id("restart_pod")
    assert edge["type"] == "action-binding"
    assert edge["label"] == "modify"


def test_unresolved_edges_are_dropped():
    edge_ids = {e["id"] for e in _graph()["edges"]}
    assert edge_ids == {"edge-pod-restart_pod", "relation-pod_node"}


def test_unresolved_edges_kept_on_request():
    edge_ids = {e["id"] for e in _graph(drop_unresolved=False)["edges"]}
    assert edge_ids == {
        "edge-pod-restart_pod",
        "edge-host-drain_host",
        "relation-pod_node",
        "relation-pod_volume",
    }


def test_relation_edge_payload():
    edge = next(e for e in _graph()["edges"] if e["type"] == "relation")
    assert (edge["source"], edge["target"]) == ("entity-pod", "entity-node")
    assert edge["label"] == "pod_node"
    assert edge["data"]["type"] == "direct"


def test_nodes_carry_no_layout():
    for node in _graph()["nodes"]:
        assert "position" not in node


def test_empty_network():
    assert build_graph(parse_files({})) == {"nodes": [], "edges": []}
