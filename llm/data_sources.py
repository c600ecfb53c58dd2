"""
Data view catalog used to ground generation prompts.

Each view can be referenced as ``@<view id>`` in a prompt; its columns are
inlined so generated entities bind to real columns.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional


@dataclass(frozen=True)
class DataColumn:
    name: str
    type: str
    description: str


@dataclass(frozen=True)
class DataView:
    id: str
    name: str
    description: str
    columns: List[DataColumn] = field(default_factory=list)

    def describe(self) -> str:
        """Column listing used in prompts."""
        return "\n".join(f"  - {c.name} ({c.type}): {c.description}" for c in self.columns)


DATA_VIEWS: Dict[str, DataView] = {
    view.id: view
    for view in [
        DataView(
            id="d2mio43q6gt6p380dis0",
            name="pod_info_view",
            description="Pod 实例信息视图，包含 Pod 的基本信息和状态",
            columns=[
                DataColumn("id", "int64", "主键ID"),
                DataColumn("pod_name", "VARCHAR", "Pod名称"),
                DataColumn("pod_status", "VARCHAR", "Pod状态 (Running/Pending/Failed)"),
                DataColumn("pod_node_name", "VARCHAR", "Pod所在节点名称"),
                DataColumn("pod_namespace", "VARCHAR", "Pod所属命名空间"),
                DataColumn("pod_ip", "VARCHAR", "Pod IP地址"),
                DataColumn("pod_created_at", "TIMESTAMP", "Pod创建时间"),
            ],
        ),
        DataView(
            id="d2mio43q6gt6p380disg",
            name="node_info_view",
            description="Node 节点信息视图，包含节点的资源容量和状态",
            columns=[
                DataColumn("id", "int64", "主键ID"),
                DataColumn("node_name", "VARCHAR", "节点名称"),
                DataColumn("node_status", "VARCHAR", "节点状态 (Ready/NotReady)"),
                DataColumn("node_cpu_capacity", "VARCHAR", "CPU总容量（核心数）"),
                DataColumn("node_memory_capacity", "VARCHAR", "内存总容量"),
                DataColumn("node_kubelet_version", "VARCHAR", "Kubelet版本"),
            ],
        ),
        DataView(
            id="d2mio43q6gt6p380dith",
            name="service_info_view",
            description="Service 服务信息视图，包含服务的网络配置和路由信息",
            columns=[
                DataColumn("id", "int64", "主键ID"),
                DataColumn("service_name", "VARCHAR", "Service名称"),
                DataColumn("service_namespace", "VARCHAR", "Service所属命名空间"),
                DataColumn("service_type", "VARCHAR", "Service类型 (ClusterIP/NodePort/LoadBalancer)"),
                DataColumn("service_selector", "VARCHAR", "Pod选择器标签"),
            ],
        ),
    ]
}


def build_data_sources_summary(views: Optional[Dict[str, DataView]] = None) -> str:
    """Markdown summary of the available data views."""
    views = DATA_VIEWS if views is None else views
    return "\n\n".join(
        f"### {view.name} (ID: {view.id})\n{view.description}\n\n字段:\n{view.describe()}"
        for view in views.values()
    )
