"""
Upstage document-intelligence nodes for workflow automation.

Nodes: Document OCR, Document Parsing, Information Extraction and Document
Classification. See `registry.NODE_TYPES`.
"""

__version__ = "0.1.0"
