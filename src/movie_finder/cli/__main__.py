from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path
from typing import Any

import typer

from movie_finder import __version__
from movie_finder.clients.catalog import CatalogClient
from movie_finder.config import Settings, SettingsError, SettingsLoadResult, load_settings
from movie_finder.models import SearchOutcome, SearchStatus, TrendEntry
from movie_finder.search import SearchSession
from movie_finder.services import TrendingService
from movie_finder.trending import build_tally_store

app = typer.Typer(
    add_completion=False,
    help="Search a movie catalog, track trending searches, and host the web front end.",
)

RESULT_PREVIEW = 20


@app.callback()
def _cli_entry(ctx: typer.Context) -> None:
    """Entrypoint for the movie-finder CLI."""
    ctx.obj = {} if ctx.obj is None else ctx.obj


@app.command()
def version() -> None:
    """Print the installed version."""
    typer.echo(__version__)


@app.command()
def discover(
    limit: int = typer.Option(RESULT_PREVIEW, help="Maximum number of movies to print."),
    debug: bool = typer.Option(False, help="Enable debug logging."),
) -> None:
    """List popular movies from the catalog."""
    if debug:
        _setup_logging(logging.DEBUG)

    settings = _require_catalog_settings()
    outcome = asyncio.run(_run_search(settings, "", record=False))
    _render_outcome(outcome, limit=limit)
    if outcome.status is SearchStatus.ERROR:
        raise typer.Exit(code=1)


@app.command()
def search(
    term: str = typer.Argument(..., help="Title or keywords to search for."),
    limit: int = typer.Option(RESULT_PREVIEW, help="Maximum number of movies to print."),
    record: bool = typer.Option(True, help="Count this search towards trending."),
    debug: bool = typer.Option(False, help="Enable debug logging."),
) -> None:
    """Search the catalog and record the term for the trending panel."""
    if debug:
        _setup_logging(logging.DEBUG)

    settings = _require_catalog_settings()
    outcome = asyncio.run(_run_search(settings, term, record=record))
    _render_outcome(outcome, limit=limit)
    if outcome.status is SearchStatus.ERROR:
        raise typer.Exit(code=1)


@app.command()
def browse(
    delay: float | None = typer.Option(
        None, help="Seconds of quiet input before searching (default: SEARCH_DEBOUNCE_SECONDS)."
    ),
    limit: int = typer.Option(10, help="Maximum number of movies to print per result."),
    debug: bool = typer.Option(False, help="Enable debug logging."),
) -> None:
    """Interactive search: type a query per line, results follow once typing settles.

    Starts with popular movies, the same as an empty search box.
    Send EOF (Ctrl+D) to quit.
    """
    if debug:
        _setup_logging(logging.DEBUG)

    settings = _require_catalog_settings()
    quiet_period = settings.debounce_seconds if delay is None else delay
    try:
        asyncio.run(_run_browse(settings, delay=quiet_period, limit=limit))
    except KeyboardInterrupt:
        typer.echo("")


@app.command()
def trending(
    limit: int | None = typer.Option(
        None, min=1, help="Number of search terms to show (default: TRENDING_LIMIT)."
    ),
    debug: bool = typer.Option(False, help="Enable debug logging."),
) -> None:
    """Show the most searched terms."""
    if debug:
        _setup_logging(logging.DEBUG)

    load_result = _safe_load_settings()
    if load_result is None:
        raise typer.Exit(code=1)

    settings = load_result.settings
    final_limit = limit if limit is not None else settings.trending_limit
    entries = asyncio.run(_run_trending(settings, final_limit))
    _render_trending(entries)


@app.command()
def config(show_sources: bool = typer.Option(False, help="Display configuration hints.")) -> None:
    """Describe configuration expectations."""
    load_result = _safe_load_settings(load_even_if_missing=True)
    if load_result is None:
        raise typer.Exit(code=1)

    settings = load_result.settings
    values: dict[str, Any] = {
        "movie_api_key": "<set>" if settings.movie_api_key else "<unset>",
        "catalog_base_url": settings.catalog_base_url,
        "image_base_url": settings.image_base_url,
        "request_timeout": settings.request_timeout,
        "debounce_seconds": settings.debounce_seconds,
        "trending_limit": settings.trending_limit,
        "record_empty_results": settings.record_empty_results,
        "appwrite_endpoint": settings.appwrite_endpoint or "<unset>",
        "appwrite_project_id": settings.appwrite_project_id or "<unset>",
        "appwrite_api_key": "<set>" if settings.appwrite_api_key else "<unset>",
        "appwrite_database_id": settings.appwrite_database_id or "<unset>",
        "appwrite_collection_id": settings.appwrite_collection_id or "<unset>",
        "host": settings.host,
        "port": settings.port,
        "static_dir": settings.static_dir,
    }

    for key, value in values.items():
        typer.echo(f"{key}: {value}")

    if show_sources:
        source_hint = load_result.source_path or "<env/.env>"
        typer.echo(f"resolved_from: {source_hint}")
        typer.echo(
            "Trending store: "
            + ("appwrite" if settings.appwrite_configured else "in-memory (Appwrite not configured)")
        )
        typer.echo(
            "Configure ~/.config/movie-finder/config.toml for persistent settings.",
        )


@app.command()
def serve(
    host: str | None = typer.Option(None, help="Host to bind (default: HOST or 127.0.0.1)"),
    port: int | None = typer.Option(None, help="Port to bind (default: PORT or 3000)"),
    static_dir: Path | None = typer.Option(
        None, help="Directory holding the built front end (default: STATIC_DIR or ./dist)"
    ),
    debug: bool = typer.Option(False, help="Enable debug logging"),
) -> None:
    """Host the built single-page app with a health check at /api/health."""
    _setup_logging(logging.DEBUG if debug else logging.INFO)

    load_result = _safe_load_settings()
    if load_result is None:
        raise typer.Exit(code=1)

    settings = load_result.settings
    final_host = host if host is not None else settings.host
    final_port = port if port is not None else settings.port
    final_static_dir = static_dir if static_dir is not None else settings.static_dir

    from movie_finder.server import run_http_server

    typer.secho(
        f"🚀 Starting server on http://{final_host}:{final_port}...",
        fg=typer.colors.GREEN,
    )
    typer.echo("Press Ctrl+C to stop")

    try:
        asyncio.run(run_http_server(final_host, final_port, final_static_dir))
    except KeyboardInterrupt:
        typer.echo("\n👋 Server stopped")


def main() -> None:
    """Expose Typer app for the console script."""
    app()


def _safe_load_settings(load_even_if_missing: bool = False) -> SettingsLoadResult | None:
    try:
        return load_settings()
    except SettingsError as exc:
        if load_even_if_missing:
            typer.secho(
                f"Warning: configuration incomplete – {exc}",
                fg=typer.colors.YELLOW,
            )
            return SettingsLoadResult(settings=Settings(), source_path=None)
        typer.secho(str(exc), fg=typer.colors.RED)
        return None


def _require_catalog_settings() -> Settings:
    load_result = _safe_load_settings()
    if load_result is None:
        raise typer.Exit(code=1)

    settings = load_result.settings
    try:
        settings.require_catalog()
    except SettingsError as exc:
        typer.secho(str(exc), fg=typer.colors.RED)
        raise typer.Exit(code=1) from exc
    return settings


def _setup_logging(level: int = logging.INFO) -> None:
    """Configure logging for debug mode."""
    logging.basicConfig(
        format="%(message)s",
        level=level,
        force=True,
    )


def _catalog_for(settings: Settings) -> CatalogClient:
    assert settings.movie_api_key is not None
    return CatalogClient(
        settings.movie_api_key,
        base_url=settings.catalog_base_url,
        timeout=settings.request_timeout,
    )


async def _run_search(settings: Settings, term: str, *, record: bool) -> SearchOutcome:
    store = build_tally_store(settings) if record else None
    try:
        async with _catalog_for(settings) as catalog:
            session = SearchSession(
                catalog,
                tally_store=store,
                record_empty_results=settings.record_empty_results,
            )
            session.submit(term)
            outcome = await session.wait()
            await session.flush()
            session.close()
    finally:
        if store is not None:
            await store.close()
    return outcome


async def _run_browse(settings: Settings, *, delay: float, limit: int) -> None:
    store = build_tally_store(settings)
    try:
        async with _catalog_for(settings) as catalog:
            session = SearchSession(
                catalog,
                tally_store=store,
                record_empty_results=settings.record_empty_results,
            )
            trending_service = TrendingService(store, limit=settings.trending_limit)
            refreshes: set[asyncio.Task] = set()

            async def refresh_trending() -> None:
                await session.flush()
                _render_trending(await trending_service.refresh())

            def on_outcome(outcome: SearchOutcome) -> None:
                _render_outcome(outcome, limit=limit)
                if outcome.status is SearchStatus.SUCCESS and (outcome.query or "").strip():
                    # Runs after _run has scheduled the tally, so flush waits for it
                    task = asyncio.create_task(refresh_trending())
                    refreshes.add(task)
                    task.add_done_callback(refreshes.discard)

            _render_trending(await trending_service.refresh())
            session.subscribe(on_outcome)
            debouncer = session.debounced(delay)
            debouncer.push("")
            try:
                while True:
                    line = await asyncio.to_thread(sys.stdin.readline)
                    if not line:
                        break
                    debouncer.push(line.rstrip("\n"))

                # Let the last query settle before tearing down
                while debouncer.pending:
                    await asyncio.sleep(0.05)
                await debouncer.drain()
                await session.wait()
                await session.flush()
                if refreshes:
                    await asyncio.gather(*refreshes, return_exceptions=True)
            finally:
                session.close()
                for task in list(refreshes):
                    task.cancel()
    finally:
        await store.close()


async def _run_trending(settings: Settings, limit: int) -> list[TrendEntry]:
    store = build_tally_store(settings)
    try:
        service = TrendingService(store, limit=limit)
        return await service.refresh()
    finally:
        await store.close()


def _render_outcome(outcome: SearchOutcome, *, limit: int) -> None:
    heading = f"Results for '{outcome.query}'" if outcome.query else "All Movies"

    if outcome.status is SearchStatus.LOADING:
        typer.secho("Loading...", fg=typer.colors.CYAN)
        return
    if outcome.status is SearchStatus.ERROR:
        typer.secho(outcome.message or "Failed to fetch movies.", fg=typer.colors.RED)
        return
    if outcome.status is not SearchStatus.SUCCESS:
        return

    typer.secho(heading, fg=typer.colors.CYAN)
    if not outcome.movies:
        typer.secho("No movies found.", fg=typer.colors.YELLOW)
        return

    for idx, movie in enumerate(outcome.movies[:limit], start=1):
        year = movie.year or "N/A"
        rating = f"{movie.vote_average:.1f}" if movie.vote_average is not None else "N/A"
        language = movie.original_language or "?"
        typer.echo(f"{idx}. {movie.title} ({year}) • ★ {rating} • {language}")
    remaining = len(outcome.movies) - limit
    if remaining > 0:
        typer.echo(f"   ... and {remaining} more")


def _render_trending(entries: list[TrendEntry]) -> None:
    if not entries:
        typer.secho("No trending searches yet.", fg=typer.colors.YELLOW)
        return

    typer.secho("Trending Movies", fg=typer.colors.CYAN)
    for idx, entry in enumerate(entries, start=1):
        plural = "search" if entry.count == 1 else "searches"
        typer.echo(f"{idx}. {entry.search_term} ({entry.count} {plural})")
        if entry.poster_url:
            typer.echo(f"   poster: {entry.poster_url}")


if __name__ == "__main__":
    main()
