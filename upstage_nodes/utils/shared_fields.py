"""Configuration fields shared across node descriptors."""

from typing import Iterable

from ..runtime.types import NodeProperty


CONNECTION_TYPE_LABELS = {
    "ai_agent": "AI Agent",
    "ai_chain": "AI Chain",
    "ai_document": "AI Document",
    "ai_embedding": "AI Embedding",
    "ai_languageModel": "AI Language Model",
    "ai_memory": "AI Memory",
    "ai_outputParser": "AI Output Parser",
    "ai_retriever": "AI Retriever",
    "ai_textSplitter": "AI Text Splitter",
    "ai_tool": "AI Tool",
    "ai_vectorStore": "AI Vector Store",
}


def get_connection_hint_notice_field(allowed_connection_types: Iterable[str]) -> NodeProperty:
    """
    Build a notice field telling the user which nodes this one connects to.

    Unknown connection types are shown as-is.

    Example:
        get_connection_hint_notice_field(["ai_agent", "ai_chain"]).description
        # "Connect this node to: AI Agent, AI Chain"
    """
    labels = ", ".join(CONNECTION_TYPE_LABELS.get(t, t) for t in allowed_connection_types)
    return NodeProperty(
        display_name="",
        name="notice",
        type="notice",
        default="",
        description=f"Connect this node to: {labels}",
    )
