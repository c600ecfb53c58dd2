"""
Network builder for BKN projects.

Builds export files from a directory of ``.bkn`` documents:
- network.json for the assembled network {id, name, entities, relations, actions}
- graph.json for the node/edge view
- diagnostics.json for records dropped during assembly
"""

from __future__ import annotations

import json
import logging
import shutil
from collections import Counter
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from .graph import build_graph
from .models import Network
from .network import diagnostics_to_list, network_to_dict, parse_documents, parse_network

logger = logging.getLogger(__name__)

RECORD_COLLECTIONS = {"entity": "entities", "relation": "relations", "action": "actions"}


class NetworkBuilder:
    """Builds and queries network export files."""

    def __init__(self, output_dir: Path):
        """Initialize network builder.

        Args:
            output_dir: Directory to store exports (e.g., output/network)
        """
        self.output_dir = Path(output_dir)
        self.network_file = self.output_dir / "network.json"
        self.graph_file = self.output_dir / "graph.json"
        self.diagnostics_file = self.output_dir / "diagnostics.json"

        self.output_dir.mkdir(parents=True, exist_ok=True)

    def build_from_directory(self, source_dir: Path, clean_existing: bool = False) -> Dict[str, Any]:
        """Build exports from every ``.bkn`` file below ``source_dir``.

        Args:
            source_dir: Project directory
            clean_existing: If True, remove existing exports first

        Returns:
            Dictionary with build statistics

        Example:
            >>> builder = NetworkBuilder(Path("output/network"))
            >>> stats = builder.build_from_directory(Path("examples/k8s-modular"))
            >>> print(f"Extracted {stats['entities_count']} entities")
        """
        source_dir = Path(source_dir)
        if not source_dir.exists():
            raise FileNotFoundError(f"Source directory not found: {source_dir}")

        if source_dir.is_file():
            files = {source_dir.name: source_dir.read_text(encoding='utf-8')}
        else:
            files = {
                path.relative_to(source_dir).as_posix(): path.read_text(encoding='utf-8')
                for path in sorted(source_dir.rglob("*.bkn"))
                if path.is_file()
            }

        return self.build_from_files(files, source=str(source_dir), clean_existing=clean_existing)

    def build_from_files(
        self,
        files: Mapping[str, str],
        source: Optional[str] = None,
        clean_existing: bool = False,
    ) -> Dict[str, Any]:
        """Build exports from a ``path -> content`` mapping."""
        if clean_existing:
            self._clean_output()

        documents = parse_documents(files)
        network = parse_network(documents)

        self._save_json(self.network_file, {
            **network_to_dict(network),
            "version": "1.0",
            "created_at": datetime.now().isoformat(),
        })
        self._save_json(self.graph_file, build_graph(network))
        self._save_json(self.diagnostics_file, diagnostics_to_list(network))

        stats = {
            "network_id": network.id,
            "network_name": network.name,
            "files_count": len(documents),
            "entities_count": len(network.entities),
            "relations_count": len(network.relations),
            "actions_count": len(network.actions),
            "dropped_count": len(network.diagnostics),
            "diagnostics": diagnostics_to_list(network),
            "by_type": dict(Counter(d.frontmatter.type for d in documents)),
            "source": source,
            "output_dir": str(self.output_dir),
            "timestamp": datetime.now().isoformat(),
        }
        logger.info(
            f"Built network '{network.id}': {stats['entities_count']} entities, "
            f"{stats['relations_count']} relations, {stats['actions_count']} actions"
        )
        return stats

    def _save_json(self, path: Path, data: Any) -> None:
        path.write_text(
            json.dumps(data, indent=2, ensure_ascii=False, default=str),
            encoding='utf-8'
        )

    def _clean_output(self) -> None:
        """Remove existing export files."""
        if self.output_dir.exists():
            shutil.rmtree(self.output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)

    def _load_export(self) -> Dict[str, Any]:
        if not self.network_file.exists():
            raise FileNotFoundError("Network export not found. Build the network first.")
        return json.loads(self.network_file.read_text(encoding='utf-8'))

    def get_record(self, kind: str, record_id: str) -> Dict[str, Any]:
        """Get a record by kind and id from the export.

        The last record with that id wins, matching the graph view.

        Raises:
            FileNotFoundError: If the export has not been built
            KeyError: If no such record exists
        """
        collection = RECORD_COLLECTIONS.get(kind)
        if collection is None:
            raise KeyError(f"Unknown record kind '{kind}'")

        matches = [r for r in self._load_export()[collection] if r.get("id") == record_id]
        if not matches:
            raise KeyError(f"{kind.capitalize()} '{record_id}' not found in network")
        return matches[-1]

    def search_records(self, kind: str, **filters) -> List[Dict[str, Any]]:
        """Search records of one kind by exported field values.

        Example:
            >>> builder.search_records("action", entityId="pod", actionType="modify")
            [{'id': 'restart_pod', ...}]
        """
        collection = RECORD_COLLECTIONS.get(kind)
        if collection is None or not self.network_file.exists():
            return []

        return [
            record for record in self._load_export()[collection]
            if all(record.get(k) == v for k, v in filters.items())
        ]

    def get_related(self, entity_id: str) -> Dict[str, List[Dict[str, Any]]]:
        """Relations and actions touching an entity.

        Returns:
            {"outgoing": [...], "incoming": [...], "actions": [...]}
        """
        if not self.network_file.exists():
            return {}

        export = self._load_export()
        return {
            "outgoing": [r for r in export["relations"] if r.get("source") == entity_id],
            "incoming": [r for r in export["relations"] if r.get("target") == entity_id],
            "actions": [a for a in export["actions"] if a.get("entityId") == entity_id],
        }


def summarize(network: Network) -> Dict[str, int]:
    return {
        "entities": len(network.entities),
        "relations": len(network.relations),
        "actions": len(network.actions),
        "files": len(network.files),
    }
