"""
Workflow node base classes.

- base: UpstageNode, the item loop shared by every Upstage node
"""

from .base import UpstageNode

__all__ = ["UpstageNode"]
