from __future__ import annotations

import logging

from movie_finder.clients.appwrite import AppwriteClient
from movie_finder.config import Settings
from movie_finder.trending.store import AppwriteTallyStore, InMemoryTallyStore

logger = logging.getLogger(__name__)


def build_tally_store(settings: Settings) -> AppwriteTallyStore | InMemoryTallyStore:
    """Construct the tally store the configuration points at.

    Falls back to a process-local store when the Appwrite endpoint, project,
    database or collection is missing, so search keeps working offline.
    """

    if not settings.appwrite_configured:
        logger.info("Appwrite is not configured; trending tallies are kept in memory")
        return InMemoryTallyStore(image_base_url=settings.image_base_url)

    assert settings.appwrite_endpoint is not None
    assert settings.appwrite_project_id is not None
    assert settings.appwrite_database_id is not None
    assert settings.appwrite_collection_id is not None

    client = AppwriteClient(
        settings.appwrite_endpoint,
        settings.appwrite_project_id,
        api_key=settings.appwrite_api_key,
        timeout=settings.request_timeout,
    )
    return AppwriteTallyStore(
        client,
        database_id=settings.appwrite_database_id,
        collection_id=settings.appwrite_collection_id,
        image_base_url=settings.image_base_url,
    )


__all__ = ["build_tally_store"]
