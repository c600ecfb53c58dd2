"""
BKN (business knowledge network) parsing package.

This module provides functionality for:
- Reading front matter and body from .bkn Markdown documents
- Extracting entities, relations and actions from headed sections and tables
- Assembling a project's documents into one network
- Exporting the network as JSON and as a node/edge graph
- Storing projects on disk

Document format:
    ---
    type: entity          # network, entity, relation, action, fragment, delete
    id: pod
    name: Pod
    network: k8s-topology
    ---

    ## Entity: pod

    **Pod** - Kubernetes workload instance

    ### 数据来源

    | 类型 | ID |
    |------|-----|
    | data_view | d2mio43q6gt6p380dis0 |

    > **主键**: `id` | **显示属性**: `pod_name`

Usage:
    from bkn import parse_files, network_to_dict

    network = parse_files({"pod.bkn": text})
    export = network_to_dict(network)
"""

from .frontmatter import parse_document, split_frontmatter
from .tables import iter_table_rows, parse_table
from .sections import iter_record_regions
from .network import diagnostics_to_list, network_to_dict, parse_documents, parse_files, parse_network
from .graph import build_graph
from .builder import NetworkBuilder
from .store import DocumentNotFoundError, Project, ProjectNotFoundError, ProjectStore, StoreError
from .models import Action, Document, Entity, Frontmatter, Network, Relation

__all__ = [
    "parse_document",
    "split_frontmatter",
    "iter_table_rows",
    "parse_table",
    "iter_record_regions",
    "parse_documents",
    "parse_files",
    "parse_network",
    "network_to_dict",
    "diagnostics_to_list",
    "build_graph",
    "NetworkBuilder",
    "ProjectStore",
    "Project",
    "StoreError",
    "ProjectNotFoundError",
    "DocumentNotFoundError",
    "Action",
    "Document",
    "Entity",
    "Frontmatter",
    "Network",
    "Relation",
]

__version__ = "1.0.0"
