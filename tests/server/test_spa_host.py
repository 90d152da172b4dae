"""Tests for the single-page app host."""

import httpx
import pytest

from movie_finder.server import HEALTH_PATH, create_app

INDEX_HTML = "<!doctype html><div id=\"root\"></div>"


@pytest.fixture
def dist(tmp_path):
    """A built front end with an entry document and one asset."""
    (tmp_path / "index.html").write_text(INDEX_HTML, encoding="utf-8")
    assets = tmp_path / "assets"
    assets.mkdir()
    (assets / "app.js").write_text("console.log('movies');", encoding="utf-8")
    (tmp_path / "logo.png").write_bytes(b"\x89PNG\r\n")
    return tmp_path


def _client(static_dir) -> httpx.AsyncClient:
    transport = httpx.ASGITransport(app=create_app(static_dir))
    return httpx.AsyncClient(transport=transport, base_url="http://testserver")


class TestSpaHost:
    """Test routing of the static host."""

    @pytest.mark.asyncio
    async def test_health_check(self, dist):
        async with _client(dist) as client:
            response = await client.get(HEALTH_PATH)

        assert response.status_code == 200
        assert response.json() == {"status": "OK", "message": "Server is running"}
        assert response.headers["access-control-allow-origin"] == "*"

    @pytest.mark.asyncio
    async def test_serves_static_asset(self, dist):
        async with _client(dist) as client:
            response = await client.get("/assets/app.js")

        assert response.status_code == 200
        assert response.text == "console.log('movies');"
        assert "javascript" in response.headers["content-type"]

    @pytest.mark.asyncio
    async def test_serves_binary_asset(self, dist):
        async with _client(dist) as client:
            response = await client.get("/logo.png")

        assert response.content == b"\x89PNG\r\n"
        assert response.headers["content-type"] == "image/png"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("path", ["/", "/movies/42", "/search?q=dune", "/missing.js"])
    async def test_unknown_paths_fall_back_to_entry_document(self, dist, path):
        async with _client(dist) as client:
            response = await client.get(path)

        assert response.status_code == 200
        assert response.text == INDEX_HTML
        assert response.headers["content-type"].startswith("text/html")

    @pytest.mark.asyncio
    async def test_percent_in_file_name_is_decoded_once(self, dist):
        (dist / "a%41.txt").write_text("literal percent", encoding="utf-8")
        (dist / "aA.txt").write_text("decoded twice", encoding="utf-8")

        async with _client(dist) as client:
            response = await client.get("/a%2541.txt")

        assert response.status_code == 200
        assert response.text == "literal percent"

    @pytest.mark.asyncio
    async def test_path_traversal_is_refused(self, dist, tmp_path_factory):
        outside = tmp_path_factory.mktemp("secrets") / "secret.txt"
        outside.write_text("top secret", encoding="utf-8")

        async with _client(dist) as client:
            response = await client.get(f"/..%2F{outside.parent.name}%2Fsecret.txt")

        assert response.text == INDEX_HTML

    @pytest.mark.asyncio
    async def test_missing_entry_document_is_500(self, tmp_path):
        async with _client(tmp_path) as client:
            response = await client.get("/movies/42")

        assert response.status_code == 500
        assert response.json() == {"error": "Something went wrong!"}

    @pytest.mark.asyncio
    async def test_options_preflight(self, dist):
        async with _client(dist) as client:
            response = await client.options(HEALTH_PATH)

        assert response.status_code == 204
        assert response.headers["access-control-allow-origin"] == "*"
        assert "GET" in response.headers["access-control-allow-methods"]

    @pytest.mark.asyncio
    async def test_non_get_methods_are_not_found(self, dist):
        async with _client(dist) as client:
            response = await client.post("/api/health", json={})

        assert response.status_code == 404
        assert response.json() == {"error": "Not Found"}

    @pytest.mark.asyncio
    async def test_head_has_no_body(self, dist):
        async with _client(dist) as client:
            response = await client.head("/assets/app.js")

        assert response.status_code == 200
        assert response.content == b""
        assert response.headers["content-length"] == str(len("console.log('movies');"))
