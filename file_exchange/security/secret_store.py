"""
Secret store clients.

The secret store is an external collaborator reached through a narrow
contract: read a secret, rotate a secret, check connectivity.
"""

import os
import re
from datetime import datetime, timezone
from typing import Protocol

import httpx

from file_exchange.core.errors import SecretStoreError
from file_exchange.observability.logger import get_logger

logger = get_logger(__name__)


class SecretProvider(Protocol):
    def get_secret(self, name: str) -> str: ...

    def rotate_secret(self, name: str, value: str) -> None: ...

    def check_connectivity(self) -> bool: ...


def env_var_name(name: str) -> str:
    """``file-decryption-key`` -> ``SECRET_FILE_DECRYPTION_KEY``"""
    return "SECRET_" + re.sub(r"[^A-Za-z0-9]", "_", name).upper()


class EnvSecretProvider:
    """Read-only provider backed by ``SECRET_<NAME>`` environment variables."""

    def get_secret(self, name: str) -> str:
        value = os.getenv(env_var_name(name))
        if value is None:
            raise SecretStoreError(f"Secret '{name}' not found (set {env_var_name(name)})")
        return value

    def rotate_secret(self, name: str, value: str) -> None:
        raise SecretStoreError("Environment secret provider is read-only")

    def check_connectivity(self) -> bool:
        return True


class HttpSecretProvider:
    """
    Client of an HTTP secret store.

    ``GET /v1/secrets/<name>`` returns ``{"data": {"value": ...}}``;
    ``PUT /v1/secrets/<name>`` stores a new value; ``GET /v1/sys/health``
    reports reachability. Requests carry a bearer token.
    """

    def __init__(self, base_url: str, token: str | None = None, timeout: float = 10.0, transport=None):
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        self._client = httpx.Client(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=httpx.Timeout(timeout, connect=5.0),
            transport=transport,
        )

    def get_secret(self, name: str) -> str:
        logger.debug(f"Retrieving secret {name}")
        try:
            response = self._client.get(f"/v1/secrets/{name}")
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as e:
            raise SecretStoreError(
                f"Secret store returned {e.response.status_code} for '{name}'"
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            raise SecretStoreError(f"Failed to retrieve secret '{name}': {e}") from e

        value = (payload.get("data") or {}).get("value") if isinstance(payload, dict) else None
        if not isinstance(value, str):
            raise SecretStoreError(f"Secret '{name}' not found in secret store")
        return value

    def rotate_secret(self, name: str, value: str) -> None:
        logger.info(f"Rotating secret {name}")
        body = {
            "data": {
                "value": value,
                "rotated_at": datetime.now(timezone.utc).isoformat(),
            }
        }
        try:
            response = self._client.put(f"/v1/secrets/{name}", json=body)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise SecretStoreError(f"Failed to rotate secret '{name}': {e}") from e
        logger.info(f"Rotated secret {name}")

    def check_connectivity(self) -> bool:
        try:
            return self._client.get("/v1/sys/health").is_success
        except httpx.HTTPError as e:
            logger.warning(f"Secret store health check failed: {e}")
            return False

    def close(self) -> None:
        self._client.close()
