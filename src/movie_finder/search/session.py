from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Protocol

from movie_finder.clients.cancellation import CancellationToken
from movie_finder.clients.catalog import CatalogError, describe_error
from movie_finder.models import CatalogErrorKind, Movie, SearchOutcome
from movie_finder.search.debounce import DEFAULT_DELAY, Debouncer
from movie_finder.trending.store import TallyStore

logger = logging.getLogger(__name__)

OutcomeListener = Callable[[SearchOutcome], None]


class MovieCatalog(Protocol):
    """The two catalog reads a search session relies on."""

    async def discover(self, *, token: CancellationToken | None = None) -> list[Movie]:
        """Popular movies, used when the query is empty."""

    async def search(self, query: str, *, token: CancellationToken | None = None) -> list[Movie]:
        """Movies matching ``query``."""


class SearchSession:
    """Drives one search box: loading, success and error for the latest query.

    Each ``submit`` supersedes the previous request: its token is cancelled and
    its result, should it still arrive, is discarded. Only the request whose id
    matches the current one may replace the visible outcome.
    """

    def __init__(
        self,
        catalog: MovieCatalog,
        *,
        tally_store: TallyStore | None = None,
        record_empty_results: bool = False,
    ) -> None:
        self._catalog = catalog
        self._tally_store = tally_store
        self._record_empty_results = record_empty_results

        self._outcome = SearchOutcome.idle()
        self._listeners: list[OutcomeListener] = []
        self._request_id = 0
        self._token: CancellationToken | None = None
        self._task: asyncio.Task | None = None
        self._tally_tasks: set[asyncio.Task] = set()
        self._debouncers: list[Debouncer[str]] = []
        self._closed = False

    @property
    def outcome(self) -> SearchOutcome:
        return self._outcome

    @property
    def closed(self) -> bool:
        return self._closed

    def subscribe(self, listener: OutcomeListener) -> Callable[[], None]:
        """Call ``listener`` on every outcome change; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def submit(self, query: str) -> asyncio.Task:
        """Start a request for ``query``; an empty query means discover mode."""
        if self._closed:
            raise RuntimeError("SearchSession is closed")

        self._supersede()
        self._request_id += 1
        token = CancellationToken()
        self._token = token
        self._publish(SearchOutcome.loading(query))
        self._task = asyncio.create_task(self._run(self._request_id, query, token))
        return self._task

    def debounced(self, delay: float = DEFAULT_DELAY) -> Debouncer[str]:
        """A debouncer whose settled values are submitted to this session.

        The debouncer is closed together with the session.
        """
        debouncer: Debouncer[str] = Debouncer(self.submit, delay=delay)
        self._debouncers.append(debouncer)
        return debouncer

    async def wait(self) -> SearchOutcome:
        """Wait for the in-flight request, then return the current outcome."""
        # A newer submit may replace the task while we wait on the old one
        while self._task is not None and not self._task.done():
            await asyncio.gather(self._task, return_exceptions=True)
        return self._outcome

    async def flush(self) -> None:
        """Wait for tally updates that are still running."""
        if self._tally_tasks:
            await asyncio.gather(*self._tally_tasks, return_exceptions=True)

    def close(self) -> None:
        """Tear down: nothing in flight may touch the outcome afterwards."""
        self._closed = True
        for debouncer in self._debouncers:
            debouncer.close()
        self._debouncers.clear()
        self._supersede()
        for task in list(self._tally_tasks):
            task.cancel()
        self._tally_tasks.clear()
        self._listeners.clear()

    async def _run(self, request_id: int, query: str, token: CancellationToken) -> None:
        try:
            if query.strip():
                movies = await self._catalog.search(query, token=token)
            else:
                movies = await self._catalog.discover(token=token)
        except CatalogError as exc:
            if self._is_current(request_id):
                self._publish(SearchOutcome.failure(query, exc.kind, exc.message))
            else:
                logger.debug(f"[SEARCH] dropping error from superseded request {request_id}")
            return
        except Exception as exc:  # anything the client did not classify
            logger.error(f"Error fetching movies for {query!r}: {exc}")
            if self._is_current(request_id):
                self._publish(
                    SearchOutcome.failure(
                        query,
                        CatalogErrorKind.UNKNOWN,
                        describe_error(CatalogErrorKind.UNKNOWN),
                    )
                )
            return
        finally:
            token.release()

        if not self._is_current(request_id):
            logger.debug(f"[SEARCH] dropping result from superseded request {request_id}")
            return

        self._publish(SearchOutcome.success(query, movies))
        if query.strip() and (movies or self._record_empty_results):
            self._record(query, movies[0] if movies else None)

    def _is_current(self, request_id: int) -> bool:
        return not self._closed and request_id == self._request_id

    def _supersede(self) -> None:
        if self._token is not None:
            self._token.cancel()
            self._token = None
        if self._task is not None and not self._task.done():
            self._task.cancel()

    def _record(self, term: str, movie: Movie | None) -> None:
        if self._tally_store is None:
            return
        task = asyncio.create_task(self._tally_store.increment(term, movie))
        self._tally_tasks.add(task)
        task.add_done_callback(self._tally_done)

    def _tally_done(self, task: asyncio.Task) -> None:
        self._tally_tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Error updating search count: {task.exception()}")

    def _publish(self, outcome: SearchOutcome) -> None:
        self._outcome = outcome
        for listener in list(self._listeners):
            listener(outcome)


__all__ = ["MovieCatalog", "OutcomeListener", "SearchSession"]
