"""
Node/edge materialization of an assembled network.

Entities and actions become nodes (``entity-<id>``, ``action-<id>``); each
action gets an edge from its bound entity, each relation an edge between its
endpoints. Node ids are unique: when a network holds the same record id twice
the later record wins. Layout is left to the renderer.
"""

from __future__ import annotations

from typing import Dict, List

from .models import Network
from .network import record_to_dict


def entity_node_id(entity_id: str) -> str:
    return f"entity-{entity_id}"


def action_node_id(action_id: str) -> str:
    return f"action-{action_id}"


def build_graph(network: Network, drop_unresolved: bool = True) -> Dict[str, List[Dict]]:
    """Build renderable nodes and edges.

    Args:
        network: Assembled network
        drop_unresolved: Skip edges whose endpoint entity is not in the network

    Returns:
        ``{"nodes": [...], "edges": [...]}``
    """
    nodes: Dict[str, Dict] = {}
    edges: Dict[str, Dict] = {}

    for entity in network.entities:
        node_id = entity_node_id(entity.id)
        nodes[node_id] = {
            "id": node_id,
            "type": "entity",
            "label": entity.name,
            "data": record_to_dict(entity),
        }

    entity_nodes = set(nodes)

    for action in network.actions:
        node_id = action_node_id(action.id)
        nodes[node_id] = {
            "id": node_id,
            "type": "action",
            "label": action.name,
            "data": record_to_dict(action),
        }

        source = entity_node_id(action.entity_id)
        if drop_unresolved and source not in entity_nodes:
            continue
        edge_id = f"edge-{action.entity_id}-{action.id}"
        edges[edge_id] = {
            "id": edge_id,
            "source": source,
            "target": node_id,
            "type": "action-binding",
            "label": action.action_type,
        }

    for relation in network.relations:
        source = entity_node_id(relation.source)
        target = entity_node_id(relation.target)
        if drop_unresolved and (source not in entity_nodes or target not in entity_nodes):
            continue
        edge_id = f"relation-{relation.id}"
        edges[edge_id] = {
            "id": edge_id,
            "source": source,
            "target": target,
            "type": "relation",
            "label": relation.name,
            "data": record_to_dict(relation),
        }

    return {"nodes": list(nodes.values()), "edges": list(edges.values())}
