"""
Exception types raised by Upstage workflow nodes.

User errors (bad parameters, missing inputs) are NodeOperationError,
failures talking to the Upstage API are NodeApiError.
"""

from typing import Optional


class UpstageNodeError(Exception):
    """Base exception for Upstage node errors."""
    pass


class NodeOperationError(UpstageNodeError):
    """Raised for invalid node input or configuration."""
    pass


class CredentialError(UpstageNodeError):
    """Raised when a named credential cannot be resolved."""
    pass


class NodeApiError(UpstageNodeError):
    """
    Raised when an Upstage API call fails.

    Attributes:
        status_code: HTTP status returned by the API (None for transport errors)
        code: Short machine-readable error code
    """

    def __init__(self, message: str, status_code: Optional[int] = None, code: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.code = code
