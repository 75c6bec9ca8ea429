"""HTTP adapter for the remote asset store."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx

logger = logging.getLogger(__name__)

UPLOAD_ENDPOINT = "/assets/upload"


@dataclass(frozen=True)
class AssetUploadResponse:
    """Either the URLs of a stored asset or the store's error messages."""

    urls: Dict[str, Optional[str]] = field(default_factory=dict)
    error_messages: List[str] = field(default_factory=list)
    asset_id: Optional[str] = None

    @property
    def is_error(self) -> bool:
        return bool(self.error_messages)

    @property
    def locator(self) -> Optional[str]:
        """Original URL, falling back to preview."""
        return self.urls.get("original") or self.urls.get("preview")

    @classmethod
    def from_payload(cls, payload: Any, status_code: int = 200) -> "AssetUploadResponse":
        if not isinstance(payload, dict):
            if status_code >= 400:
                return cls(error_messages=[f"HTTP {status_code}: {payload}"])
            return cls()

        message = payload.get("message")
        if status_code >= 400 or (message and "urls" not in payload):
            if isinstance(message, list):
                messages = [str(m) for m in message]
            elif message:
                messages = [str(message)]
            else:
                messages = [f"HTTP {status_code}"]
            return cls(error_messages=messages)

        urls = payload.get("urls") or {}
        return cls(
            urls={"original": urls.get("original"), "preview": urls.get("preview")},
            asset_id=payload.get("id"),
        )


class AssetsAPIClient:
    """
    Multipart upload client for the asset store.

    Implements IAssetStore protocol. One request per call, no retries.
    """

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        timeout: float = 60,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        headers = {"x-api-key": self._api_key} if self._api_key else {}
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            headers=headers,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *args):
        if self._client:
            await self._client.aclose()
            self._client = None

    async def upload(
        self,
        data: bytes,
        filename: str,
        content_type: str,
        entity_type: str,
        entity_id: str,
        tags: List[str],
        description: str,
        alt_text: Optional[str] = None,
    ) -> AssetUploadResponse:
        if not self._client:
            raise RuntimeError("AssetsAPIClient not initialized. Use 'async with' context.")

        form: Dict[str, Any] = {
            "entityType": entity_type,
            "entityId": str(entity_id),
            "description": description,
            "tags": list(tags),
        }
        if alt_text:
            form["altText"] = alt_text

        response = await self._client.post(
            UPLOAD_ENDPOINT,
            data=form,
            files={"file": (filename, data, content_type)},
        )

        try:
            payload = response.json()
        except ValueError:
            payload = response.text

        if response.status_code >= 400:
            logger.debug("Asset store answered %s for %s", response.status_code, filename)
        return AssetUploadResponse.from_payload(payload, response.status_code)
