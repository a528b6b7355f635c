"""
Adapters layer for external system integrations.

Each adapter wraps one external service behind the workflow node interface.

Organization:
- upstage/: Upstage document-intelligence API nodes
"""
