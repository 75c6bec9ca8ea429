"""HTTP adapter for entity API operations."""
from __future__ import annotations

import asyncio
from typing import Any, Dict, Optional

import httpx

from ..errors import APIStatusError


class HTTPAPIClient:
    """
    HTTP client adapter for JSON API calls.

    Retries transport failures and 5xx responses; 4xx responses raise
    APIStatusError immediately.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30,
        headers: Optional[Dict[str, str]] = None,
        max_retries: int = 3,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._base_url = base_url
        self._timeout = timeout
        self._headers = headers or {}
        self._max_retries = max_retries
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            headers=self._headers,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *args):
        if self._client:
            await self._client.aclose()
            self._client = None

    async def get(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> httpx.Response:
        return await self._request("GET", endpoint, params=params)

    async def post(self, endpoint: str, json: Dict) -> httpx.Response:
        return await self._request("POST", endpoint, json=json)

    async def patch(self, endpoint: str, json: Dict) -> httpx.Response:
        return await self._request("PATCH", endpoint, json=json)

    async def _request(self, method: str, endpoint: str, **kwargs) -> httpx.Response:
        if not self._client:
            raise RuntimeError("HTTPAPIClient not initialized. Use 'async with' context.")

        last_exception: Optional[Exception] = None

        for attempt in range(self._max_retries):
            try:
                response = await self._client.request(method, endpoint, **kwargs)

                if response.status_code >= 500 and attempt < self._max_retries - 1:
                    await asyncio.sleep(0.5 * (attempt + 1))
                    continue

                if response.status_code >= 400:
                    try:
                        error_detail = response.json()
                    except ValueError:
                        error_detail = response.text
                    raise APIStatusError(response.status_code, method, endpoint, error_detail)

                return response
            except (httpx.RequestError, httpx.TimeoutException) as exc:
                last_exception = exc
                if attempt < self._max_retries - 1:
                    await asyncio.sleep(0.5 * (attempt + 1))
                    continue
                raise

        if last_exception:
            raise last_exception
        raise RuntimeError(f"Failed to {method} {endpoint} after {self._max_retries} attempts")
