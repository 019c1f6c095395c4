"""
Tests for the catalog service: direct fetches and the all-types aggregation.
"""

import pytest

from cache_functions import MemoryResponseCache
from catalog_functions import CatalogService, build_catalog
from catalog_sources import GoogleBooksSource, SpotifyMusicSource, TmdbAnimeSource, TmdbMovieSource, TmdbSeriesSource
from fetch_functions import InvalidRequestParameter, UpstreamError
from items_functions import ITEM_TYPES, build_item


class StubSource:
    def __init__(self, item_type, items=None, error=None):
        self.item_type = item_type
        self.items = items if items is not None else [build_item(item_type, id=f"{item_type}-1", title=item_type)]
        self.error = error
        self.calls = []

    def fetch(self, search="", genres=None, region=None, limit=20):
        self.calls.append({"search": search, "genres": genres, "region": region, "limit": limit})
        if self.error:
            raise self.error
        return self.items


def stub_catalog(**overrides):
    sources = {item_type: overrides.get(item_type) or StubSource(item_type) for item_type in ITEM_TYPES}
    return CatalogService(sources), sources


class TestAggregateAll:

    def test_concatenates_in_fixed_type_order(self):
        catalog, _sources = stub_catalog()
        result = catalog.aggregate_all("", None, None)
        assert [item["type"] for item in result.items] == ["movies", "series", "books", "anime", "music"]
        assert result.failures == {}

    def test_one_failing_source_is_isolated(self):
        catalog, _sources = stub_catalog(series=StubSource("series", error=UpstreamError("tmdb down", source="tmdb-series")))
        result = catalog.aggregate_all("dune", "Action", "Hollywood")
        assert [item["type"] for item in result.items] == ["movies", "books", "anime", "music"]
        assert result.failures == {"series": "tmdb down"}

    def test_unexpected_errors_are_isolated_too(self):
        catalog, _sources = stub_catalog(music=StubSource("music", error=KeyError("tracks")))
        result = catalog.aggregate_all()
        assert len(result.items) == 4
        assert "music" in result.failures

    def test_total_failure_is_empty_not_error(self):
        failing = {item_type: StubSource(item_type, error=UpstreamError("down")) for item_type in ITEM_TYPES}
        result = CatalogService(failing).aggregate_all()
        assert result.items == []
        assert set(result.failures) == set(ITEM_TYPES)

    def test_books_receive_categories_and_video_the_genre(self):
        catalog, sources = stub_catalog()
        catalog.aggregate_all("x", "Drama", "European", 10, categories="Fiction,History")
        assert sources["books"].calls[0]["genres"] == "Fiction,History"
        assert sources["movies"].calls[0]["genres"] == "Drama"
        assert sources["anime"].calls[0] == {"search": "x", "genres": "Drama", "region": "European", "limit": 10}

    def test_books_fall_back_to_genre(self):
        catalog, sources = stub_catalog()
        catalog.aggregate_all("", "History", None)
        assert sources["books"].calls[0]["genres"] == "History"


class TestFetchType:

    def test_routes_to_the_source(self):
        catalog, sources = stub_catalog()
        items = catalog.fetch_type("BOOKS", "dune", "Fiction", None, 5)
        assert items[0]["type"] == "books"
        assert sources["books"].calls[0]["limit"] == 5

    @pytest.mark.parametrize("item_type", ["games", "", None])
    def test_unsupported_type(self, item_type):
        catalog, _sources = stub_catalog()
        with pytest.raises(InvalidRequestParameter):
            catalog.fetch_type(item_type)

    def test_direct_fetch_propagates_upstream_errors(self):
        catalog, _sources = stub_catalog(movies=StubSource("movies", error=UpstreamError("down")))
        with pytest.raises(UpstreamError):
            catalog.fetch_type("movies")

    def test_rejects_unknown_source_types(self):
        with pytest.raises(ValueError):
            CatalogService({"games": StubSource("movies")})


class TestBuildCatalog:

    def test_wires_every_source_with_shared_cache(self):
        cache = MemoryResponseCache()
        catalog = build_catalog(cache, tmdb_api_key="k", retries=2, max_workers=3)
        assert isinstance(catalog.sources["movies"], TmdbMovieSource)
        assert isinstance(catalog.sources["series"], TmdbSeriesSource)
        assert isinstance(catalog.sources["anime"], TmdbAnimeSource)
        assert isinstance(catalog.sources["books"], GoogleBooksSource)
        assert isinstance(catalog.sources["music"], SpotifyMusicSource)
        assert all(source.cache is cache for source in catalog.sources.values())
        assert all(source.retries == 2 for source in catalog.sources.values())
        assert catalog.sources["books"].timeout_ms == 7000
        assert catalog.sources["movies"].timeout_ms == 8000
        assert catalog.max_workers == 3
