"""
Host runtime contract for workflow nodes.

- types: descriptors, execution items, output items, request descriptors
- context: ExecutionContext handed to a node for one run
"""

from .context import ExecutionContext
from .types import (
    BinaryData,
    CollectionOption,
    DisplayOptions,
    ExecutionItem,
    NodeCredential,
    NodeDescription,
    NodeExecutionData,
    NodeProperty,
    PairedItem,
    PropertyOption,
    RequestOptions,
)

__all__ = [
    "BinaryData",
    "CollectionOption",
    "DisplayOptions",
    "ExecutionContext",
    "ExecutionItem",
    "NodeCredential",
    "NodeDescription",
    "NodeExecutionData",
    "NodeProperty",
    "PairedItem",
    "PropertyOption",
    "RequestOptions",
]
