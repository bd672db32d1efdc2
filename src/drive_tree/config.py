"""Application configuration loaded from environment variables."""

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class AppConfig:
    """Centralized application configuration.

    Required fields have no defaults and will cause a KeyError at startup
    if the corresponding environment variable is missing. Connection tuning
    has sensible defaults but can be overridden via environment variables.
    """

    # Required, no defaults: fail at startup if missing
    api_base_url: str
    client_id: str
    client_secret: str
    tenant_id: str

    # Defaults provided, overridable via env
    api_scope: str = "api://drive-tree/.default"
    authority_base_url: str = "https://login.microsoftonline.com"
    request_timeout: float = 30.0


def load_config() -> AppConfig:
    """Construct an AppConfig from environment variables.

    Required environment variables:
        DT_API_BASE_URL: Base URL of the folder/file store API (no trailing slash).
        DT_CLIENT_ID: Azure AD application (client) ID used to call the store.
        DT_CLIENT_SECRET: Azure AD application client secret.
        DT_TENANT_ID: Azure AD tenant ID.

    Optional environment variables (with defaults):
        DT_API_SCOPE: OAuth scope requested for the store API
            (default: api://drive-tree/.default).
        DT_AUTHORITY_BASE_URL: MSAL authority host
            (default: https://login.microsoftonline.com).
        DT_REQUEST_TIMEOUT: Per-request timeout in seconds (default: 30).

    Returns:
        Configured AppConfig instance.
    """
    return AppConfig(
        api_base_url=os.environ["DT_API_BASE_URL"].rstrip("/"),
        client_id=os.environ["DT_CLIENT_ID"],
        client_secret=os.environ["DT_CLIENT_SECRET"],
        tenant_id=os.environ["DT_TENANT_ID"],
        api_scope=os.environ.get("DT_API_SCOPE", "api://drive-tree/.default"),
        authority_base_url=os.environ.get(
            "DT_AUTHORITY_BASE_URL", "https://login.microsoftonline.com"
        ),
        request_timeout=float(os.environ.get("DT_REQUEST_TIMEOUT", "30")),
    )
