import json

import pytest

from bkn.builder import NetworkBuilder, summarize
from bkn.network import parse_files


@pytest.fixture
def builder(tmp_path):
    return NetworkBuilder(tmp_path / "network")


def test_build_from_directory(builder, examples_dir):
    stats = builder.build_from_directory(examples_dir / "k8s-modular")

    assert stats["network_id"] == "k8s-modular"
    assert stats["files_count"] == 5
    assert stats["entities_count"] == 2
    assert stats["relations_count"] == 1
    assert stats["actions_count"] == 1
    assert stats["dropped_count"] == 0
    assert stats["by_type"] == {"action": 1, "entity": 2, "network": 1, "relation": 1}

    exported = json.loads(builder.network_file.read_text(encoding="utf-8"))
    assert exported["id"] == "k8s-modular"
    assert exported["version"] == "1.0"
    graph = json.loads(builder.graph_file.read_text(encoding="utf-8"))
    assert {n["id"] for n in graph["nodes"]} == {"entity-pod", "entity-node", "action-restart_pod"}
    assert json.loads(builder.diagnostics_file.read_text(encoding="utf-8")) == []


def test_build_from_single_file(builder, examples_dir):
    stats = builder.build_from_directory(examples_dir / "k8s-topology.bkn")
    assert stats["network_id"] == "k8s-topology"
    assert stats["entities_count"] == 3


def test_missing_source(builder, tmp_path):
    with pytest.raises(FileNotFoundError):
        builder.build_from_directory(tmp_path / "absent")


def test_diagnostics_are_reported(builder):
    stats = builder.build_from_files({
        "a.bkn": "---\ntype: action\nid: orphan\n---\n",
    })
    assert stats["dropped_count"] == 1
    assert stats["diagnostics"][0]["reason"] == "no bound entity"


def test_queries(builder, examples_dir):
    builder.build_from_directory(examples_dir / "k8s-topology.bkn")

    assert builder.get_record("entity", "node")["name"] == "Node"
    with pytest.raises(KeyError):
        builder.get_record("entity", "missing")
    with pytest.raises(KeyError):
        builder.get_record("widget", "pod")

    assert [r["id"] for r in builder.search_records("relation", type="data_view")] == ["service_routes_pod"]

    related = builder.get_related("pod")
    assert [r["id"] for r in related["outgoing"]] == ["pod_belongs_node"]
    assert [r["id"] for r in related["incoming"]] == ["service_routes_pod"]
    assert [a["id"] for a in related["actions"]] == ["restart_pod"]


def test_queries_before_build(builder):
    with pytest.raises(FileNotFoundError):
        builder.get_record("entity", "pod")
    assert builder.search_records("entity") == []
    assert builder.get_related("pod") == {}


def test_clean_existing(builder):
    stale = builder.output_dir / "stale.json"
    stale.write_text("{}", encoding="utf-8")
    builder.build_from_files({}, clean_existing=True)
    assert not stale.exists()
    assert builder.network_file.exists()


def test_summarize(project_files):
    assert summarize(parse_files(project_files)) == {
        "entities": 1, "relations": 1, "actions": 1, "files": 3,
    }
