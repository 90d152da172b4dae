from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from typing import Any

import httpx
from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt, wait_exponential

DEFAULT_TIMEOUT = 10.0
USER_AGENT = "movie-finder/0.1.0"
UNIQUE_ID = "unique()"


class AppwriteClient:
    """Thin asynchronous wrapper around the Appwrite Databases REST API."""

    def __init__(
        self,
        endpoint: str,
        project_id: str,
        *,
        api_key: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        # Appwrite endpoints are versioned, e.g. https://cloud.appwrite.io/v1
        normalized_url = endpoint.rstrip("/")
        if not normalized_url.endswith("/v1"):
            normalized_url = f"{normalized_url}/v1"

        headers = {
            "X-Appwrite-Project": project_id,
            "User-Agent": USER_AGENT,
            "Accept": "application/json",
        }
        if api_key:
            headers["X-Appwrite-Key"] = api_key
        self._client = httpx.AsyncClient(
            base_url=normalized_url,
            headers=headers,
            timeout=timeout,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def list_documents(
        self,
        database_id: str,
        collection_id: str,
        queries: Sequence[str] = (),
    ) -> dict[str, Any]:
        params = {"queries[]": list(queries)} if queries else None
        path = _documents_path(database_id, collection_id)
        async for attempt in _retry_policy():
            with attempt:
                response = await self._client.get(path, params=params)
                response.raise_for_status()
                return response.json()
        raise RuntimeError("Unable to list documents after retries")

    async def create_document(
        self,
        database_id: str,
        collection_id: str,
        data: Mapping[str, Any],
        *,
        document_id: str = UNIQUE_ID,
    ) -> dict[str, Any]:
        payload = {"documentId": document_id, "data": dict(data)}
        response = await self._client.post(
            _documents_path(database_id, collection_id), json=payload
        )
        response.raise_for_status()
        return response.json()

    async def update_document(
        self,
        database_id: str,
        collection_id: str,
        document_id: str,
        data: Mapping[str, Any],
    ) -> dict[str, Any]:
        path = f"{_documents_path(database_id, collection_id)}/{document_id}"
        async for attempt in _retry_policy():
            with attempt:
                response = await self._client.patch(path, json={"data": dict(data)})
                response.raise_for_status()
                return response.json()
        raise RuntimeError("Unable to update document after retries")

    async def __aenter__(self) -> AppwriteClient:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:  # type: ignore[override]
        await self.close()


def query_equal(attribute: str, value: Any) -> str:
    values = list(value) if isinstance(value, (list, tuple)) else [value]
    return json.dumps({"method": "equal", "attribute": attribute, "values": values})


def query_order_desc(attribute: str) -> str:
    return json.dumps({"method": "orderDesc", "attribute": attribute})


def query_limit(limit: int) -> str:
    return json.dumps({"method": "limit", "values": [limit]})


def _documents_path(database_id: str, collection_id: str) -> str:
    return f"/databases/{database_id}/collections/{collection_id}/documents"


def _is_transient(exc: BaseException) -> bool:
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code >= 500
    return isinstance(exc, httpx.TransportError)


def _retry_policy() -> AsyncRetrying:
    return AsyncRetrying(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.5, max=6),
        retry=retry_if_exception(_is_transient),
        reraise=True,
    )


__all__ = [
    "AppwriteClient",
    "UNIQUE_ID",
    "query_equal",
    "query_limit",
    "query_order_desc",
]
