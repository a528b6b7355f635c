"""
Proxy agent lookup.

Proxy configuration belongs to the host (e.g. HTTPS_PROXY honoured by httpx
through the host environment). Nodes must not read it themselves.
"""

import warnings


def get_http_proxy_agent() -> None:
    """
    Return the proxy to use for Upstage requests.

    Deprecated: always returns None. Configure proxies at the host level.
    """
    warnings.warn(
        "get_http_proxy_agent() is deprecated; configure proxies at the host level",
        DeprecationWarning,
        stacklevel=2,
    )
    return None
