from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any

import httpx
from pydantic import ValidationError

from movie_finder.clients.cancellation import CancellationToken, RequestCancelled
from movie_finder.models import CatalogErrorKind, Movie

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.themoviedb.org/3"
DEFAULT_TIMEOUT = 10.0
USER_AGENT = "movie-finder/0.1.0"

ERROR_MESSAGES: dict[CatalogErrorKind, str] = {
    CatalogErrorKind.AUTH: "API key is invalid or missing",
    CatalogErrorKind.RATE_LIMITED: "Too many requests. Please wait a moment and try again.",
    CatalogErrorKind.SERVER: (
        "The movie service is temporarily unavailable. Please try again later."
    ),
    CatalogErrorKind.HTTP: "Request failed. Please try again later.",
    CatalogErrorKind.NETWORK: (
        "Unable to reach the movie service. Check your internet connection."
    ),
    CatalogErrorKind.TIMEOUT: "The request timed out. Please try again.",
    CatalogErrorKind.EMPTY_RESULT: "The movie service returned no results.",
    CatalogErrorKind.UNKNOWN: "Failed to fetch movies. Please try again later.",
}


def describe_error(kind: CatalogErrorKind, status: int | None = None) -> str:
    """User-facing message for a catalog failure."""
    if kind is CatalogErrorKind.HTTP and status is not None:
        return f"Request failed with status {status}. Please try again later."
    return ERROR_MESSAGES[kind]


class CatalogError(RuntimeError):
    """Base class for catalog failures; ``message`` is safe to show to users."""

    kind: CatalogErrorKind = CatalogErrorKind.UNKNOWN

    def __init__(self, message: str | None = None) -> None:
        self.message = message or describe_error(self.kind)
        super().__init__(self.message)


class AuthError(CatalogError):
    kind = CatalogErrorKind.AUTH


class RateLimitedError(CatalogError):
    kind = CatalogErrorKind.RATE_LIMITED


class ServerError(CatalogError):
    kind = CatalogErrorKind.SERVER

    def __init__(self, status: int, message: str | None = None) -> None:
        self.status = status
        super().__init__(message)


class HttpError(CatalogError):
    kind = CatalogErrorKind.HTTP

    def __init__(self, status: int, message: str | None = None) -> None:
        self.status = status
        super().__init__(message or describe_error(self.kind, status))


class NetworkError(CatalogError):
    kind = CatalogErrorKind.NETWORK


class CatalogTimeoutError(CatalogError):
    kind = CatalogErrorKind.TIMEOUT


class EmptyResultError(CatalogError):
    """The catalog answered 2xx without a ``results`` list."""

    kind = CatalogErrorKind.EMPTY_RESULT


class CatalogClient:
    """Read-only asynchronous client for a TMDB-style movie catalog."""

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        headers = {
            "Authorization": f"Bearer {api_key}",
            "User-Agent": USER_AGENT,
            "accept": "application/json",
        }
        self._timeout = timeout
        # The token enforces the overall deadline; httpx only guards against stalls
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=timeout,
        )

    @property
    def timeout(self) -> float:
        return self._timeout

    async def close(self) -> None:
        await self._client.aclose()

    async def discover(self, *, token: CancellationToken | None = None) -> list[Movie]:
        """Movies ordered by descending popularity."""
        return await self._get_results(
            "/discover/movie", {"sort_by": "popularity.desc"}, token=token
        )

    async def search(self, query: str, *, token: CancellationToken | None = None) -> list[Movie]:
        """Movies matching ``query``; httpx takes care of URL-encoding."""
        return await self._get_results("/search/movie", {"query": query}, token=token)

    async def _get_results(
        self,
        path: str,
        params: dict[str, str],
        *,
        token: CancellationToken | None,
    ) -> list[Movie]:
        token = token or CancellationToken()
        logger.debug(f"[CATALOG] GET {path} {params}")
        try:
            response = await token.guard(
                self._client.get(path, params=params), timeout=self._timeout
            )
        except (TimeoutError, httpx.TimeoutException, RequestCancelled) as exc:
            raise CatalogTimeoutError() from exc
        except httpx.TransportError as exc:
            raise NetworkError() from exc
        finally:
            token.release()

        _raise_for_status(response)
        return _parse_results(response)

    async def __aenter__(self) -> CatalogClient:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:  # type: ignore[override]
        await self.close()


@asynccontextmanager
async def catalog_client(
    api_key: str,
    *,
    base_url: str = DEFAULT_BASE_URL,
    timeout: float = DEFAULT_TIMEOUT,
):
    client = CatalogClient(api_key, base_url=base_url, timeout=timeout)
    try:
        yield client
    finally:
        await client.close()


def _raise_for_status(response: httpx.Response) -> None:
    status = response.status_code
    if 200 <= status < 300:
        return
    if status == 401:
        raise AuthError()
    if status == 429:
        raise RateLimitedError()
    if status >= 500:
        raise ServerError(status)
    raise HttpError(status)


def _parse_results(response: httpx.Response) -> list[Movie]:
    try:
        payload: Any = response.json()
    except ValueError as exc:  # body was not JSON
        raise EmptyResultError() from exc

    if not isinstance(payload, dict) or not isinstance(payload.get("results"), list):
        raise EmptyResultError()

    movies: list[Movie] = []
    for item in payload["results"]:
        try:
            movies.append(Movie.model_validate(item))
        except ValidationError as exc:
            logger.warning(f"[CATALOG] Skipping malformed result: {exc.error_count()} errors")
    return movies


__all__ = [
    "AuthError",
    "CatalogClient",
    "CatalogError",
    "CatalogTimeoutError",
    "EmptyResultError",
    "HttpError",
    "NetworkError",
    "RateLimitedError",
    "ServerError",
    "catalog_client",
    "describe_error",
]
