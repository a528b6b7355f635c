"""
Services used by the node runtime.

- credentials: resolve named credentials (API keys)
- upstage_http: authenticated HTTP calls to the Upstage API
"""
