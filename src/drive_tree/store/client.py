"""HTTP client for the folder/file store API with MSAL authentication."""

from __future__ import annotations

import json
import logging
import mimetypes
import uuid
from typing import TYPE_CHECKING, Any
from urllib import request as urllib_request
from urllib.error import HTTPError, URLError

import msal

from drive_tree.errors import StoreApiError, StoreAuthError

if TYPE_CHECKING:
    from drive_tree.config import AppConfig

logger = logging.getLogger(__name__)

DEFAULT_AUTHORITY_BASE_URL = "https://login.microsoftonline.com"
DEFAULT_TIMEOUT = 30.0


def _error_detail(raw: bytes, fallback: str) -> str:
    """Pull the human-readable message out of a store error body."""
    try:
        body = json.loads(raw)
    except ValueError:
        return fallback
    if not isinstance(body, dict):
        return fallback
    error = body.get("error")
    if isinstance(error, dict):
        return str(error.get("message", fallback))
    if error:
        return str(error)
    return str(body.get("message", fallback))


def _header_param(value: str) -> str:
    """Percent-encode the characters that would end a quoted header parameter."""
    return value.replace("\r", "%0D").replace("\n", "%0A").replace('"', "%22")


def _encode_multipart(
    fields: dict[str, str], file_field: str, file_name: str, content: bytes
) -> tuple[bytes, str]:
    """Build a multipart/form-data body.

    Returns:
        Tuple of (body bytes, Content-Type header value).
    """
    boundary = f"----drive-tree-{uuid.uuid4().hex}"
    mime = mimetypes.guess_type(file_name)[0] or "application/octet-stream"
    parts: list[bytes] = []
    for key, value in fields.items():
        parts.append(
            f"--{boundary}\r\n"
            f'Content-Disposition: form-data; name="{_header_param(key)}"\r\n\r\n'
            f"{value}\r\n".encode()
        )
    parts.append(
        f"--{boundary}\r\n"
        f'Content-Disposition: form-data; name="{_header_param(file_field)}";'
        f' filename="{_header_param(file_name)}"\r\n'
        f"Content-Type: {mime}\r\n\r\n".encode()
    )
    parts.append(content)
    parts.append(f"\r\n--{boundary}--\r\n".encode())
    return b"".join(parts), f"multipart/form-data; boundary={boundary}"


class StoreClient:
    """Authenticated JSON client for the store API."""

    def __init__(
        self,
        base_url: str,
        client_id: str,
        client_secret: str,
        tenant_id: str,
        scope: str,
        authority_base_url: str = DEFAULT_AUTHORITY_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        """Initialise the MSAL confidential client application.

        Args:
            base_url: Store API base URL without trailing slash.
            client_id: Azure AD application (client) ID.
            client_secret: Azure AD application client secret.
            tenant_id: Azure AD tenant ID.
            scope: OAuth scope requested for the store API.
            authority_base_url: MSAL authority host.
            timeout: Per-request timeout in seconds.
        """
        self._base_url = base_url.rstrip("/")
        self._scopes = [scope]
        self._timeout = timeout
        self._app = msal.ConfidentialClientApplication(
            client_id=client_id,
            client_credential=client_secret,
            authority=f"{authority_base_url}/{tenant_id}",
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    def _acquire_token(self) -> str:
        """Acquire a Bearer token using client credentials flow.

        Raises:
            StoreAuthError: If MSAL cannot acquire a token.
        """
        result: dict[str, Any] = self._app.acquire_token_for_client(scopes=self._scopes) or {}
        if "access_token" not in result:
            error = result.get("error", "unknown_error")
            description = result.get("error_description", "No description provided")
            logger.error("[_acquire_token] MSAL token acquisition failed; error:%s", error)
            raise StoreAuthError(f"Token acquisition failed: {error}: {description}")
        return str(result["access_token"])

    def request(
        self,
        method: str,
        path: str,
        *,
        json_body: dict[str, Any] | None = None,
        data: bytes | None = None,
        content_type: str | None = None,
        operation: str = "",
    ) -> dict[str, Any]:
        """Perform an authenticated request against the store API.

        Args:
            method: HTTP method.
            path: URL path relative to the base URL (must start with '/').
            json_body: Body to send as JSON; mutually exclusive with ``data``.
            data: Raw body bytes.
            content_type: Content-Type for ``data``.
            operation: Store operation name, attached to raised errors.

        Returns:
            Parsed JSON response body, or an empty dict for empty responses.

        Raises:
            StoreAuthError: If token acquisition fails.
            StoreApiError: If the API returns a non-2xx status, answers with a
                body that is not JSON, or is unreachable.
        """
        token = self._acquire_token()
        headers = {
            "Authorization": f"Bearer {token}",
            "Accept": "application/json",
        }
        if json_body is not None:
            data = json.dumps(json_body).encode("utf-8")
            content_type = "application/json"
        if content_type is not None:
            headers["Content-Type"] = content_type

        req = urllib_request.Request(
            f"{self._base_url}{path}", data=data, headers=headers, method=method
        )
        try:
            with urllib_request.urlopen(req, timeout=self._timeout) as resp:
                status = int(getattr(resp, "status", 200))
                body = resp.read()
        except HTTPError as exc:
            detail = _error_detail(exc.read(), str(exc.reason))
            logger.warning(
                "[request] store returned error; method:%s;path:%s;status:%d",
                method,
                path,
                exc.code,
            )
            raise StoreApiError(exc.code, detail, operation) from exc
        except URLError as exc:
            logger.warning("[request] store unreachable; method:%s;path:%s", method, path)
            raise StoreApiError(0, str(exc.reason), operation) from exc

        if not body:
            return {}
        try:
            parsed = json.loads(body)
        except ValueError as exc:
            logger.warning(
                "[request] store returned a non-JSON body; method:%s;path:%s;status:%d",
                method,
                path,
                status,
            )
            raise StoreApiError(status, "store returned a non-JSON response", operation) from exc
        return parsed if isinstance(parsed, dict) else {}

    def get(self, path: str, operation: str = "") -> dict[str, Any]:
        return self.request("GET", path, operation=operation)

    def post(self, path: str, body: dict[str, Any], operation: str = "") -> dict[str, Any]:
        return self.request("POST", path, json_body=body, operation=operation)

    def patch(self, path: str, body: dict[str, Any], operation: str = "") -> dict[str, Any]:
        return self.request("PATCH", path, json_body=body, operation=operation)

    def delete(self, path: str, operation: str = "") -> dict[str, Any]:
        return self.request("DELETE", path, operation=operation)

    def upload(
        self,
        path: str,
        file_name: str,
        content: bytes,
        fields: dict[str, str],
        operation: str = "",
    ) -> dict[str, Any]:
        """POST a file as multipart/form-data under the ``file`` field."""
        body, content_type = _encode_multipart(fields, "file", file_name, content)
        return self.request(
            "POST", path, data=body, content_type=content_type, operation=operation
        )


def store_client_from_config(config: AppConfig) -> StoreClient:
    """Construct a StoreClient from application configuration.

    Args:
        config: Application configuration instance.

    Returns:
        Configured StoreClient instance.
    """
    return StoreClient(
        base_url=config.api_base_url,
        client_id=config.client_id,
        client_secret=config.client_secret,
        tenant_id=config.tenant_id,
        scope=config.api_scope,
        authority_base_url=config.authority_base_url,
        timeout=config.request_timeout,
    )
