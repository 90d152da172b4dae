"""Tests for the movie catalog client."""

import asyncio
from unittest.mock import AsyncMock

import httpx
import pytest
import respx

from movie_finder.clients.cancellation import CancellationToken
from movie_finder.clients.catalog import (
    AuthError,
    CatalogClient,
    CatalogError,
    CatalogTimeoutError,
    EmptyResultError,
    HttpError,
    NetworkError,
    RateLimitedError,
    ServerError,
    catalog_client,
    describe_error,
)
from movie_finder.models import CatalogErrorKind, Movie
from tests.fixtures.tmdb_responses import (
    DISCOVER_RESPONSE,
    EMPTY_SEARCH_RESPONSE,
    MALFORMED_RESPONSE,
    SEARCH_RESPONSE,
    UNAUTHORIZED_RESPONSE,
)

BASE_URL = "https://api.themoviedb.org/3"


@pytest.fixture
def client():
    """Create a CatalogClient instance for testing."""
    return CatalogClient("test-api-key", base_url=BASE_URL, timeout=10.0)


class TestCatalogClient:
    """Test cases for CatalogClient."""

    @pytest.mark.asyncio
    async def test_client_initialization(self):
        """Test client is properly initialized with headers."""
        client = CatalogClient("test-key", base_url=f"{BASE_URL}/", timeout=7.5)

        assert client._client.base_url == BASE_URL + "/"
        assert client._client.headers["Authorization"] == "Bearer test-key"
        assert client._client.headers["accept"] == "application/json"
        assert client._client.headers["User-Agent"] == "movie-finder/0.1.0"
        assert client.timeout == 7.5

        await client.close()

    @pytest.mark.asyncio
    @respx.mock
    async def test_discover_success(self, client):
        """Test discover returns popular movies in catalog order."""
        route = respx.get(f"{BASE_URL}/discover/movie").mock(
            return_value=httpx.Response(200, json=DISCOVER_RESPONSE)
        )

        movies = await client.discover()

        assert [movie.title for movie in movies] == [
            "Inside Out 2",
            "Deadpool & Wolverine",
            "Alien: Romulus",
        ]
        assert all(isinstance(movie, Movie) for movie in movies)
        request = route.calls[0].request
        assert request.url.params["sort_by"] == "popularity.desc"
        assert "query" not in request.url.params

    @pytest.mark.asyncio
    @respx.mock
    async def test_discover_normalizes_blank_fields(self, client):
        """Test empty release dates and overviews become None."""
        respx.get(f"{BASE_URL}/discover/movie").mock(
            return_value=httpx.Response(200, json=DISCOVER_RESPONSE)
        )

        movies = await client.discover()

        romulus = movies[2]
        assert romulus.release_date is None
        assert romulus.overview is None
        assert romulus.year is None
        assert romulus.poster_url("https://image.tmdb.org/t/p/w500") is None

    @pytest.mark.asyncio
    @respx.mock
    async def test_search_sends_bearer_token_and_encoded_query(self, client):
        """Test search uses search mode with the exact term URL-encoded."""
        route = respx.get(f"{BASE_URL}/search/movie").mock(
            return_value=httpx.Response(200, json=SEARCH_RESPONSE)
        )

        await client.search("star wars & co")

        request = route.calls[0].request
        assert request.headers["Authorization"] == "Bearer test-api-key"
        assert request.headers["accept"] == "application/json"
        assert request.url.params["query"] == "star wars & co"
        assert "%26" in str(request.url)

    @pytest.mark.asyncio
    @respx.mock
    async def test_search_success(self, client):
        """Test search maps results onto Movie models."""
        respx.get(f"{BASE_URL}/search/movie").mock(
            return_value=httpx.Response(200, json=SEARCH_RESPONSE)
        )

        movies = await client.search("dune")

        assert len(movies) == 2
        assert movies[0].id == 693134
        assert movies[0].title == "Dune: Part Two"
        assert movies[0].year == 2024
        assert movies[0].vote_average == 8.2
        assert movies[0].original_language == "en"

    @pytest.mark.asyncio
    @respx.mock
    async def test_search_empty_results_list(self, client):
        """Test a present but empty results list is a legitimate empty answer."""
        respx.get(f"{BASE_URL}/search/movie").mock(
            return_value=httpx.Response(200, json=EMPTY_SEARCH_RESPONSE)
        )

        assert await client.search("zzzzzz") == []

    @pytest.mark.asyncio
    @respx.mock
    async def test_missing_results_field_is_empty_result(self, client):
        """Test a 2xx body without results is a malformed response, not an empty list."""
        respx.get(f"{BASE_URL}/search/movie").mock(
            return_value=httpx.Response(200, json=MALFORMED_RESPONSE)
        )

        with pytest.raises(EmptyResultError) as exc_info:
            await client.search("dune")

        assert exc_info.value.kind is CatalogErrorKind.EMPTY_RESULT

    @pytest.mark.asyncio
    @respx.mock
    async def test_non_json_body_is_empty_result(self, client):
        """Test a 2xx body that is not JSON is treated as malformed."""
        respx.get(f"{BASE_URL}/discover/movie").mock(
            return_value=httpx.Response(200, text="<html>maintenance</html>")
        )

        with pytest.raises(EmptyResultError):
            await client.discover()

    @pytest.mark.asyncio
    @respx.mock
    async def test_malformed_items_are_skipped(self, client):
        """Test results missing required fields are dropped, the rest kept."""
        payload = {"results": [{"title": "No id"}, SEARCH_RESPONSE["results"][0]]}
        respx.get(f"{BASE_URL}/search/movie").mock(
            return_value=httpx.Response(200, json=payload)
        )

        movies = await client.search("dune")

        assert [movie.id for movie in movies] == [693134]

    @pytest.mark.asyncio
    @respx.mock
    async def test_unauthorized_maps_to_auth_error(self, client):
        """Test 401 responses map to the API key message."""
        respx.get(f"{BASE_URL}/discover/movie").mock(
            return_value=httpx.Response(401, json=UNAUTHORIZED_RESPONSE)
        )

        with pytest.raises(AuthError) as exc_info:
            await client.discover()

        assert exc_info.value.message == "API key is invalid or missing"
        assert exc_info.value.kind is CatalogErrorKind.AUTH

    @pytest.mark.asyncio
    @respx.mock
    async def test_too_many_requests_maps_to_rate_limited(self, client):
        """Test 429 responses map to the rate-limit error."""
        respx.get(f"{BASE_URL}/search/movie").mock(return_value=httpx.Response(429))

        with pytest.raises(RateLimitedError) as exc_info:
            await client.search("dune")

        assert "Too many requests" in exc_info.value.message

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [500, 502, 503, 504])
    @respx.mock
    async def test_server_errors(self, client, status):
        """Test every 5xx maps to the server error."""
        respx.get(f"{BASE_URL}/search/movie").mock(return_value=httpx.Response(status))

        with pytest.raises(ServerError) as exc_info:
            await client.search("dune")

        assert exc_info.value.status == status
        assert "temporarily unavailable" in exc_info.value.message

    @pytest.mark.asyncio
    @respx.mock
    async def test_other_status_maps_to_http_error(self, client):
        """Test remaining non-2xx statuses keep their status code."""
        respx.get(f"{BASE_URL}/search/movie").mock(return_value=httpx.Response(404))

        with pytest.raises(HttpError) as exc_info:
            await client.search("dune")

        assert exc_info.value.status == 404
        assert "404" in exc_info.value.message

    @pytest.mark.asyncio
    @respx.mock
    async def test_connection_failure_maps_to_network_error(self, client):
        """Test connection-level failures map to the connectivity message."""
        respx.get(f"{BASE_URL}/discover/movie").mock(
            side_effect=httpx.ConnectError("connection refused")
        )

        with pytest.raises(NetworkError) as exc_info:
            await client.discover()

        assert "internet connection" in exc_info.value.message

    @pytest.mark.asyncio
    @respx.mock
    async def test_transport_timeout_maps_to_timeout(self, client):
        """Test httpx timeouts map to the timeout error, not the network error."""
        respx.get(f"{BASE_URL}/discover/movie").mock(
            side_effect=httpx.ReadTimeout("read timed out")
        )

        with pytest.raises(CatalogTimeoutError) as exc_info:
            await client.discover()

        assert exc_info.value.message == "The request timed out. Please try again."

    @pytest.mark.asyncio
    async def test_deadline_maps_to_timeout_and_releases_token(self):
        """Test the configured deadline fires even if the transport never answers."""
        client = CatalogClient("test-key", timeout=0.05)

        async def never_answers(*args, **kwargs):
            await asyncio.sleep(10)

        client._client.get = AsyncMock(side_effect=never_answers)
        token = CancellationToken()

        with pytest.raises(CatalogTimeoutError):
            await client.search("dune", token=token)

        assert token.released
        await client.close()

    @pytest.mark.asyncio
    async def test_token_cancellation_maps_to_timeout(self):
        """Test cancelling the token abandons the request."""
        client = CatalogClient("test-key", timeout=5.0)
        started = asyncio.Event()

        async def slow_get(*args, **kwargs):
            started.set()
            await asyncio.sleep(10)

        client._client.get = AsyncMock(side_effect=slow_get)
        token = CancellationToken()

        request = asyncio.create_task(client.discover(token=token))
        await started.wait()
        token.cancel()

        with pytest.raises(CatalogTimeoutError):
            await request

        assert token.released
        await client.close()

    @pytest.mark.asyncio
    @respx.mock
    async def test_token_released_on_success(self, client):
        """Test the token is released after a successful response."""
        respx.get(f"{BASE_URL}/discover/movie").mock(
            return_value=httpx.Response(200, json=DISCOVER_RESPONSE)
        )
        token = CancellationToken()

        await client.discover(token=token)

        assert token.released

    @pytest.mark.asyncio
    async def test_context_manager_closes_client(self):
        """Test catalog_client closes the underlying HTTP client."""
        async with catalog_client("test-key") as client:
            assert isinstance(client, CatalogClient)

        assert client._client.is_closed


class TestDescribeError:
    """Test user-facing messages for each failure kind."""

    @pytest.mark.parametrize("kind", list(CatalogErrorKind))
    def test_every_kind_has_a_message(self, kind):
        assert describe_error(kind)

    def test_http_message_includes_status(self):
        assert describe_error(CatalogErrorKind.HTTP, 418).startswith(
            "Request failed with status 418"
        )

    def test_base_error_is_unknown(self):
        error = CatalogError()
        assert error.kind is CatalogErrorKind.UNKNOWN
        assert error.message == "Failed to fetch movies. Please try again later."
