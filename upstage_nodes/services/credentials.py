"""
Credential resolution for Upstage nodes.

Credentials are never stored here. A credential is looked up first in the
per-execution overrides (e.g. an API key sent with the request), then in the
environment.
"""
import os
from typing import Any, Dict, Optional

from ..exceptions import CredentialError


UPSTAGE_CREDENTIAL_NAME = "upstageApi"

# Environment variable holding the API key for each known credential
CREDENTIAL_ENV_VARS = {
    UPSTAGE_CREDENTIAL_NAME: "UPSTAGE_API_KEY",
}


def get_credential(name: str, overrides: Optional[Dict[str, Dict[str, Any]]] = None) -> Dict[str, Any]:
    """
    Resolve credential data for a named credential.

    Args:
        name: Credential name declared by the node (e.g. "upstageApi")
        overrides: Per-execution credential data keyed by credential name

    Returns:
        dict with:
            - api_key: str

    Raises:
        CredentialError: If the credential is unknown or has no API key
    """
    if overrides and overrides.get(name, {}).get("api_key"):
        return overrides[name]

    env_var = CREDENTIAL_ENV_VARS.get(name)
    if env_var is None:
        raise CredentialError(f"Unknown credential: {name}")

    api_key = os.getenv(env_var)
    if not api_key:
        raise CredentialError(f"Credential {name} is not configured ({env_var} not set)")

    return {"api_key": api_key}


def build_auth_headers(credential: Dict[str, Any]) -> Dict[str, str]:
    """Return the Authorization header for an Upstage credential."""
    return {"Authorization": f"Bearer {credential['api_key']}"}
