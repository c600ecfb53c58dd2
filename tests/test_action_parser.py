import pytest

from bkn.action_parser import build_action, parse_action, parse_condition
from bkn.frontmatter import parse_document
from bkn.inline import RegionShape
from bkn.models import Affect, Condition, MCPConfig, Parameter, Schedule, ToolConfig

FRAGMENT = parse_document("---\ntype: fragment\n---\n", "fragment.bkn")

BINDING = "| 绑定实体 | 行动类型 |\n|---|---|\n| pod | delete |\n"


def test_single_action(action_document):
    action = parse_action(action_document, action_document.content, RegionShape.SINGLE)

    assert action.id == "restart_pod"
    assert action.name == "重启 Pod"
    assert action.entity_id == "pod"
    assert action.action_type == "modify"
    assert action.condition == Condition(
        field="pod_status", operation="==", value="Failed", object_type_id="pod",
    )
    assert action.tool_config == ToolConfig(tool_id="restart_pod", box_id="k8s_toolbox")
    assert action.mcp_config is None


def test_full_action_document(modular_files):
    document = parse_document(modular_files["actions/restart_pod.bkn"], "actions/restart_pod.bkn")
    action = parse_action(document, document.content, RegionShape.SINGLE)

    assert action.enabled is True
    assert action.risk_level == "medium"
    assert action.requires_approval is False
    assert action.parameters == [
        Parameter(name="pod_name", source="property", binding="pod_name", description="要重启的 Pod"),
        Parameter(name="namespace", source="property", binding="pod_namespace", description="命名空间"),
    ]
    assert action.schedule == Schedule(expression="5m", type="FIX_RATE", description="每 5 分钟检查一次")
    assert action.affect == [Affect(object="pod", description="Pod 将被删除并重建")]
    assert action.execution_steps == ["检查 Pod 当前状态", "删除失败的 Pod", "等待控制器重建 Pod"]
    assert action.rollback_plan == "重建失败时保留原 Pod 事件并通知值班人员。"


def test_mcp_binding():
    body = BINDING + "\n### 工具配置\n\n| 类型 | MCP ID | 工具名称 |\n|---|---|---|\n| MCP | mcp_k8s | delete_pod |\n"
    action = parse_action(FRAGMENT, body, RegionShape.MULTI, "drop_pod")

    assert action.mcp_config == MCPConfig(mcp_id="mcp_k8s", tool_name="delete_pod")
    assert action.tool_config is None
    assert action.action_type == "delete"


def test_unknown_tool_type_binds_nothing():
    body = BINDING + "\n### 工具配置\n\n| 类型 | 工具ID |\n|---|---|\n| script | run.sh |\n"
    action = parse_action(FRAGMENT, body, RegionShape.MULTI, "a")
    assert action.tool_config is None
    assert action.mcp_config is None


def test_unbound_action_is_rejected():
    assert parse_action(FRAGMENT, "**A** - no binding", RegionShape.MULTI, "a") is None

    kept = build_action(FRAGMENT, "**A** - no binding", RegionShape.MULTI, "a")
    assert kept.entity_id == ""
    assert kept.name == "A"


def test_action_type_falls_back_to_frontmatter():
    document = parse_document(
        "---\ntype: action\nid: scale\naction_type: add\n---\n| 绑定实体 | 行动类型 |\n|---|---|\n| deployment |  |\n",
        "scale.bkn",
    )
    action = parse_action(document, document.content, RegionShape.SINGLE)
    assert action.entity_id == "deployment"
    assert action.action_type == "add"


def test_action_type_defaults_to_modify():
    body = "| 绑定实体 | 行动类型 |\n|---|---|\n| pod |  |\n"
    assert parse_action(FRAGMENT, body, RegionShape.MULTI, "a").action_type == "modify"


def test_parameter_sources_and_literal_bindings():
    body = BINDING + """
### 参数绑定

| 参数 | 来源 | 绑定 | 说明 |
|------|------|------|------|
| namespace | Input | - | 命名空间 |
| grace | | 30 | |
| mode | custom | fast | |
"""
    action = parse_action(FRAGMENT, body, RegionShape.MULTI, "a")
    assert [(p.name, p.source, p.binding) for p in action.parameters] == [
        ("namespace", "input", "-"),
        ("grace", "input", "30"),
        ("mode", "custom", "fast"),
    ]


def test_cron_schedule():
    body = BINDING + "\n### 调度配置\n\n| 类型 | 表达式 |\n|---|---|\n| CRON | 0 * * * * |\n"
    action = parse_action(FRAGMENT, body, RegionShape.MULTI, "a")
    assert action.schedule == Schedule(expression="0 * * * *", type="CRON")


class TestParseCondition:
    def test_yaml_condition(self):
        condition = parse_condition("condition:\n  field: status\n  operation: in\n  value: [Failed, Unknown]\n")
        assert condition == Condition(field="status", operation="in", value=["Failed", "Unknown"])

    @pytest.mark.parametrize("operation", ["!=", ">", ">="])
    def test_operations_that_are_not_plain_yaml(self, operation):
        block = f"condition:\n  object_type_id: node\n  field: cpu\n  operation: {operation}\n  value: 80\n"
        condition = parse_condition(block)
        assert condition.field == "cpu"
        assert condition.operation == operation
        assert condition.object_type_id == "node"
        assert str(condition.value) == "80"

    def test_block_without_condition_key(self):
        assert parse_condition("trigger:\n  field: x\n") is None
        assert parse_condition("just text") is None

    def test_missing_operation(self):
        assert parse_condition("condition:\n  field: x\n") is None

    @pytest.mark.parametrize("raw, expected", [
        ("10:30", "10:30"),
        ("2024-01-01", "2024-01-01"),
        ("2024-01-01 10:30:00", "2024-01-01 10:30:00"),
        ("80", 80),
        ("0.5", 0.5),
        ("true", True),
    ])
    def test_values_keep_their_written_form(self, raw, expected):
        condition = parse_condition(f"condition:\n  field: t\n  operation: ==\n  value: {raw}\n")
        assert condition.value == expected

    def test_nested_values_are_json_safe(self):
        condition = parse_condition("condition:\n  field: t\n  operation: in\n  value: [2024-01-01, !!binary aGk=]\n")
        assert condition.value == ["2024-01-01", "b'hi'"]
