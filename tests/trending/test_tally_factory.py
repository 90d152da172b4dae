"""Tests for tally store selection."""

import pytest

from movie_finder.config import Settings
from movie_finder.trending import AppwriteTallyStore, InMemoryTallyStore, build_tally_store


def test_build_tally_store_without_appwrite_uses_memory():
    store = build_tally_store(Settings(image_base_url="https://img.example/w500"))

    assert isinstance(store, InMemoryTallyStore)


def test_build_tally_store_with_partial_appwrite_uses_memory():
    settings = Settings(
        appwrite_endpoint="https://cloud.appwrite.io/v1",
        appwrite_project_id="project-123",
    )

    assert isinstance(build_tally_store(settings), InMemoryTallyStore)


@pytest.mark.asyncio
async def test_build_tally_store_with_appwrite():
    settings = Settings(
        appwrite_endpoint="https://cloud.appwrite.io/v1",
        appwrite_project_id="project-123",
        appwrite_api_key="secret",
        appwrite_database_id="movies",
        appwrite_collection_id="metrics",
    )

    store = build_tally_store(settings)

    assert isinstance(store, AppwriteTallyStore)
    await store.close()
