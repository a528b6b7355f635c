"""
Upstage HTTP client.

Performs authenticated calls to the Upstage REST API on behalf of nodes.
No retries: a failed call surfaces immediately as NodeApiError.
"""
import logging
import os
from typing import Any, Dict, Optional

import httpx

from ..exceptions import NodeApiError
from ..runtime.types import RequestOptions
from .credentials import build_auth_headers


# Configuration
UPSTAGE_API_BASE_URL = os.getenv("UPSTAGE_API_BASE_URL", "https://api.upstage.ai/v1").rstrip("/")
HTTP_TIMEOUT_SECONDS = float(os.getenv("UPSTAGE_HTTP_TIMEOUT", "120"))

log = logging.getLogger("upstage_nodes.http")


def api_url(path: str) -> str:
    """Build an absolute Upstage API URL from a path like "/document-digitization"."""
    return f"{UPSTAGE_API_BASE_URL}/{path.lstrip('/')}"


async def request_with_authentication(
    credential: Dict[str, Any],
    options: RequestOptions,
    client: Optional[httpx.AsyncClient] = None,
) -> Any:
    """
    Send one request to the Upstage API.

    Args:
        credential: Resolved credential data (must contain api_key)
        options: Method, URL, headers and body of the request
        client: Optional httpx client to reuse; a short-lived one is created otherwise

    Returns:
        Parsed JSON body, the raw text if the body is not JSON, or {} if empty

    Raises:
        NodeApiError: On non-2xx responses or transport failures
    """
    headers = dict(options.headers)
    headers.update(build_auth_headers(credential))

    kwargs: Dict[str, Any] = {"headers": headers}
    if isinstance(options.body, bytes):
        kwargs["content"] = options.body
    elif options.body is not None:
        kwargs["json"] = options.body

    log.debug("Upstage request %s %s", options.method, options.url)

    try:
        if client is not None:
            response = await client.request(options.method, options.url, **kwargs)
        else:
            async with httpx.AsyncClient(timeout=HTTP_TIMEOUT_SECONDS) as owned_client:
                response = await owned_client.request(options.method, options.url, **kwargs)
        response.raise_for_status()
    except httpx.HTTPStatusError as e:
        status_code = e.response.status_code
        message, code = _error_details(e.response)
        raise NodeApiError(
            f"Upstage API error: {status_code} - {message}",
            status_code=status_code,
            code=code,
        )
    except httpx.RequestError as e:
        raise NodeApiError(f"Failed to reach Upstage API: {str(e)}", code="request_error")

    if not response.content:
        return {}
    try:
        return response.json()
    except ValueError:
        return response.text


def _error_details(response: httpx.Response) -> tuple[str, Optional[str]]:
    """Extract (message, code) from an Upstage error body."""
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase, None

    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict):
        return error.get("message") or response.reason_phrase, error.get("code")
    if isinstance(body, dict) and body.get("message"):
        return body["message"], body.get("code")
    return response.text, None
