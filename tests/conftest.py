"""Pytest configuration and fixtures."""

import os

import pytest

from specter.core.config import get_settings
from specter.core.enrichment_cache import EnrichmentCache
from specter.db.kv_store import MemoryStore


@pytest.fixture(scope="session", autouse=True)
def setup_test_env(tmp_path_factory):
    """Set up test environment variables."""
    os.environ["SPECTER_ENV"] = "test"
    os.environ["OPENAI_API_KEY"] = "test-openai-key"
    os.environ["FIRECRAWL_API_KEY"] = "test-firecrawl-key"
    os.environ["SERPAPI_API_KEY"] = "test-serpapi-key"
    os.environ["ENRICHMENT_CACHE_PATH"] = str(tmp_path_factory.mktemp("store") / "store.json")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def memory_cache():
    """An empty enrichment cache over an in-memory store."""
    cache = EnrichmentCache(MemoryStore(), "classActionEnrichmentCache")
    cache.load()
    return cache
