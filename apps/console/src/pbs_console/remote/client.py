from __future__ import annotations

import logging
from typing import Any, Mapping, Protocol
from urllib.parse import quote

import httpx

logger = logging.getLogger(__name__)


class RemoteCallError(RuntimeError):
    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class KeyListingEndpoint(Protocol):
    async def list_encryption_keys(self) -> list[dict[str, Any]]: ...


class JobExecutionEndpoint(Protocol):
    async def start_backup(self, target_id: str, params: Mapping[str, str]) -> str: ...


class MediaRemovalEndpoint(Protocol):
    async def destroy_media(self, uuid: str, *, force: bool) -> None: ...


def _error_reason(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        payload = None

    if isinstance(payload, dict):
        message = payload.get("message")
        if isinstance(message, str) and message.strip():
            return message.strip()
        errors = payload.get("errors")
        if isinstance(errors, dict) and errors:
            return "; ".join(f"{key}: {value}" for key, value in errors.items())

    text = response.text.strip()
    if text:
        return text
    return f"HTTP {response.status_code} {response.reason_phrase}".strip()


class ProxmoxBackupClient:
    """Async client for the parts of the backup server API the console uses.

    Every call is a single request; retries are left to the caller.
    """

    def __init__(
        self,
        *,
        base_url: str,
        node: str,
        api_token: str | None = None,
        timeout_seconds: float = 30.0,
        verify_tls: bool = True,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        headers: dict[str, str] = {"Accept": "application/json"}
        if api_token:
            headers["Authorization"] = f"PBSAPIToken={api_token}"

        self._node = node
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=timeout_seconds,
            verify=verify_tls,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def list_encryption_keys(self) -> list[dict[str, Any]]:
        data = await self._request("GET", "/config/cloud-encryption-keys")
        if not isinstance(data, list):
            raise RemoteCallError("Invalid key listing payload: data is not a list")
        return data

    async def start_backup(self, target_id: str, params: Mapping[str, str]) -> str:
        data = await self._request(
            "POST",
            f"/nodes/{quote(self._node, safe='')}/qemu/{quote(target_id, safe='')}/backup",
            data=dict(params),
        )
        return "" if data is None else str(data)

    async def destroy_media(self, uuid: str, *, force: bool) -> None:
        await self._request(
            "GET",
            "/tape/media/destroy",
            params={"uuid": uuid, "force": "1" if force else "0"},
        )

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        logger.debug("%s %s", method, path)
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            raise RemoteCallError(str(exc) or exc.__class__.__name__) from exc

        if response.is_error:
            raise RemoteCallError(_error_reason(response))

        try:
            payload = response.json()
        except ValueError as exc:
            raise RemoteCallError(f"Invalid response payload from {path}") from exc

        if not isinstance(payload, dict):
            raise RemoteCallError(f"Invalid response payload from {path}: missing data envelope")
        return payload.get("data")
