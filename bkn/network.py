"""
Network assembly for BKN projects.

Rules:
1. The first ``type: network`` document names the network; otherwise the
   first document's ``network`` field, otherwise ``default-network``
2. network/fragment documents are scanned for every ``## Entity|Relation|Action``
   region; entity/relation/action documents hold exactly one record
3. delete documents contribute no records
4. Records are appended in scan order; repeated ids are kept as-is

Assembly is a pure function of the documents it is given.
"""

from __future__ import annotations

import dataclasses
import logging
from typing import Any, Dict, Iterable, List, Mapping

from .action_parser import build_action
from .entity_parser import parse_entity
from .frontmatter import parse_document
from .inline import RegionShape
from .models import DEFAULT_NETWORK_ID, Diagnostic, Document, Network
from .relation_parser import build_relation
from .sections import iter_record_regions

logger = logging.getLogger(__name__)

MULTI_RECORD_TYPES = ("network", "fragment")

# Export keys that keep their front-matter spelling
SNAKE_CASE_KEYS = {"risk_level", "requires_approval", "object_type_id"}


def parse_documents(files: Mapping[str, str]) -> List[Document]:
    """Parse a ``path -> content`` mapping, keeping its order."""
    return [parse_document(content, path) for path, content in files.items()]


def parse_files(files: Mapping[str, str]) -> Network:
    """Parse raw files and assemble them into one network."""
    return parse_network(parse_documents(files))


def parse_network(documents: Iterable[Document]) -> Network:
    """Assemble documents into a :class:`Network`.

    Args:
        documents: Parsed documents of one project, in scan order

    Returns:
        A fresh network; malformed input only ever yields fewer records
    """
    documents = list(documents)
    network = Network()

    network_doc = next((d for d in documents if d.frontmatter.type == "network"), None)
    if network_doc is not None:
        network.id = network_doc.frontmatter.id
        network.name = network_doc.frontmatter.name or network_doc.frontmatter.id

    if not network.id:
        first = documents[0].frontmatter.network if documents else None
        network.id = first or DEFAULT_NETWORK_ID
        network.name = network.id

    for document in documents:
        network.files.append(document)
        doc_type = document.frontmatter.type

        if doc_type in MULTI_RECORD_TYPES:
            _collect_multi(network, document)
        elif doc_type == "entity":
            _add_entity(network, document, document.content, RegionShape.SINGLE)
        elif doc_type == "relation":
            _add_relation(network, document, document.content, RegionShape.SINGLE)
        elif doc_type == "action":
            _add_action(network, document, document.content, RegionShape.SINGLE)

    logger.debug(
        f"Assembled network '{network.id}': {len(network.entities)} entities, "
        f"{len(network.relations)} relations, {len(network.actions)} actions "
        f"from {len(network.files)} files"
    )
    return network


def _collect_multi(network: Network, document: Document) -> None:
    for record_id, body in iter_record_regions(document.content, "Entity"):
        _add_entity(network, document, body, RegionShape.MULTI, record_id)
    for record_id, body in iter_record_regions(document.content, "Relation"):
        _add_relation(network, document, body, RegionShape.MULTI, record_id)
    for record_id, body in iter_record_regions(document.content, "Action"):
        _add_action(network, document, body, RegionShape.MULTI, record_id)


def _discard(network: Network, kind: str, record_id: str, path: str, reason: str) -> None:
    logger.debug(f"Dropping {kind} '{record_id}' from {path}: {reason}")
    network.diagnostics.append(Diagnostic(kind=kind, record_id=record_id, path=path, reason=reason))


def _add_entity(network, document, body, shape, record_id=None) -> None:
    entity = parse_entity(document, body, shape, record_id)
    if entity is None:
        _discard(network, "entity", record_id or "", document.path, "no entity id")
        return
    network.entities.append(entity)


def _add_relation(network, document, body, shape, record_id=None) -> None:
    relation = build_relation(document, body, shape, record_id)
    if relation is None:
        _discard(network, "relation", record_id or "", document.path, "no relation id")
    elif not relation.source or not relation.target:
        _discard(network, "relation", relation.id, document.path, "missing source or target entity")
    else:
        network.relations.append(relation)


def _add_action(network, document, body, shape, record_id=None) -> None:
    action = build_action(document, body, shape, record_id)
    if action is None:
        _discard(network, "action", record_id or "", document.path, "no action id")
    elif not action.entity_id:
        _discard(network, "action", action.id, document.path, "no bound entity")
    else:
        network.actions.append(action)


# ============================================================================
# Export
# ============================================================================


def _camel(name: str) -> str:
    if name in SNAKE_CASE_KEYS:
        return name
    head, *rest = name.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def _export(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        exported = {}
        for f in dataclasses.fields(value):
            item = getattr(value, f.name)
            if item is not None:
                exported[_camel(f.name)] = _export(item)
        return exported
    if isinstance(value, (list, tuple)):
        return [_export(item) for item in value]
    if isinstance(value, dict):
        return {str(k): _export(v) for k, v in value.items()}
    return value


def record_to_dict(record: Any) -> Dict[str, Any]:
    """JSON-ready dict of one record; unset fields are left out."""
    return _export(record)


def network_to_dict(network: Network) -> Dict[str, Any]:
    """Export structure ``{id, name, entities, relations, actions}``.

    Raw file contents are not part of the export.
    """
    return {
        "id": network.id,
        "name": network.name,
        "entities": [record_to_dict(e) for e in network.entities],
        "relations": [record_to_dict(r) for r in network.relations],
        "actions": [record_to_dict(a) for a in network.actions],
    }


def diagnostics_to_list(network: Network) -> List[Dict[str, str]]:
    return [record_to_dict(d) for d in network.diagnostics]
