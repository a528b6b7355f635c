"""
Registry of the node types this package provides, keyed by node type name.
"""

from typing import Dict, List, Optional, Type

from .adapters.upstage import (
    DocumentClassificationUpstage,
    DocumentOCRUpstage,
    DocumentParsingUpstage,
    InformationExtractionUpstage,
)
from .nodes.base import UpstageNode
from .runtime.types import NodeDescription


NODE_TYPES: Dict[str, Type[UpstageNode]] = {
    node.description.name: node
    for node in (
        DocumentParsingUpstage,
        DocumentOCRUpstage,
        InformationExtractionUpstage,
        DocumentClassificationUpstage,
    )
}


def get_node(name: str) -> Optional[UpstageNode]:
    """Instantiate the node registered under `name`, or None if unknown."""
    node_cls = NODE_TYPES.get(name)
    return node_cls() if node_cls else None


def list_descriptions() -> List[NodeDescription]:
    return [node.description for node in NODE_TYPES.values()]
