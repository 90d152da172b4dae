"""Static host for the built single-page app."""

from __future__ import annotations

import asyncio
import json
import logging
import mimetypes
from pathlib import Path
from typing import Any, Awaitable, Callable

import uvicorn

logger = logging.getLogger(__name__)

Scope = dict[str, Any]
Receive = Callable[[], Awaitable[dict[str, Any]]]
Send = Callable[[dict[str, Any]], Awaitable[None]]
ASGIApp = Callable[[Scope, Receive, Send], Awaitable[None]]

HEALTH_PATH = "/api/health"
ENTRY_DOCUMENT = "index.html"
CORS_HEADERS = [
    (b"access-control-allow-origin", b"*"),
]
PREFLIGHT_HEADERS = [
    (b"access-control-allow-methods", b"GET,HEAD,PUT,PATCH,POST,DELETE"),
    (b"access-control-allow-headers", b"*"),
]


def create_app(static_dir: Path) -> ASGIApp:
    """Build the ASGI app serving ``static_dir`` with SPA fallback routing."""
    static_root = Path(static_dir).resolve()

    async def app(scope: Scope, receive: Receive, send: Send) -> None:
        """Raw ASGI application: health check, static files, entry document."""
        if scope["type"] != "http":
            return

        started = False

        async def tracking_send(message: dict[str, Any]) -> None:
            nonlocal started
            if message["type"] == "http.response.start":
                started = True
            await send(message)

        try:
            await _dispatch(scope, tracking_send, static_root)
        except Exception:
            logger.exception(f"Unhandled error for {scope['method']} {scope['path']}")
            if started:
                return
            await _send_json(send, 500, {"error": "Something went wrong!"})

    return app


async def _dispatch(scope: Scope, send: Send, static_root: Path) -> None:
    method = scope["method"]
    path = scope["path"]
    logger.debug(f"Received {method} request to {path}")

    if method == "OPTIONS":
        await _send(send, 204, b"", headers=PREFLIGHT_HEADERS)
        return

    if path == HEALTH_PATH and method in {"GET", "HEAD"}:
        await _send_json(
            send,
            200,
            {"status": "OK", "message": "Server is running"},
            head=method == "HEAD",
        )
        return

    if method not in {"GET", "HEAD"}:
        await _send_json(send, 404, {"error": "Not Found"})
        return

    target = _resolve_static(static_root, path) or static_root / ENTRY_DOCUMENT
    await _send_file(send, target, head=method == "HEAD")


def _resolve_static(static_root: Path, path: str) -> Path | None:
    # ASGI hands over the path already percent-decoded
    relative = path.lstrip("/")
    if not relative:
        return None
    candidate = (static_root / relative).resolve()
    # Refuse anything that escapes the static directory
    if not candidate.is_relative_to(static_root):
        return None
    return candidate if candidate.is_file() else None


async def _send_file(send: Send, target: Path, *, head: bool = False) -> None:
    body = await asyncio.to_thread(target.read_bytes)
    content_type, _ = mimetypes.guess_type(target.name)
    if content_type is None:
        content_type = "application/octet-stream"
    elif content_type.startswith("text/") or content_type == "application/javascript":
        content_type = f"{content_type}; charset=utf-8"
    await _send(send, 200, body, content_type=content_type, head=head)


async def _send_json(send: Send, status: int, payload: Any, *, head: bool = False) -> None:
    body = json.dumps(payload).encode("utf-8")
    await _send(send, status, body, content_type="application/json; charset=utf-8", head=head)


async def _send(
    send: Send,
    status: int,
    body: bytes,
    *,
    content_type: str | None = None,
    headers: list[tuple[bytes, bytes]] | None = None,
    head: bool = False,
) -> None:
    response_headers = [*CORS_HEADERS, *(headers or [])]
    if content_type:
        response_headers.append((b"content-type", content_type.encode("latin-1")))
    response_headers.append((b"content-length", str(len(body)).encode("latin-1")))
    await send(
        {
            "type": "http.response.start",
            "status": status,
            "headers": response_headers,
        }
    )
    await send({"type": "http.response.body", "body": b"" if head else body})


async def run_http_server(host: str, port: int, static_dir: Path) -> None:
    """Serve the SPA host until interrupted."""
    app = create_app(static_dir)
    logger.info(f"Server running on port {port}")
    logger.info(f"Static files served from: {Path(static_dir).resolve()}")
    if not (Path(static_dir) / ENTRY_DOCUMENT).exists():
        logger.warning(f"No {ENTRY_DOCUMENT} in {static_dir}; page requests will fail with 500")

    config = uvicorn.Config(app, host=host, port=port, log_level="info", lifespan="off")
    server_instance = uvicorn.Server(config)
    await server_instance.serve()


__all__ = ["ASGIApp", "HEALTH_PATH", "create_app", "run_http_server"]
