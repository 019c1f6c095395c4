import logging
import time
from typing import Any

import requests

from cache_functions import DEFAULT_TTL_SECONDS, ResponseCache
from catalog_sources import (
    CatalogSource,
    GoogleBooksSource,
    SpotifyMusicSource,
    SpotifyTokenProvider,
    TmdbAnimeSource,
    TmdbMovieSource,
    TmdbSeriesSource,
)
from fetch_functions import InvalidRequestParameter, SettledResults, settle_all
from items_functions import ITEM_TYPES, clean_text

logger = logging.getLogger(__name__)


class AggregateResult:
    """Merged items of a fan-out plus the sources that failed."""

    def __init__(self, items: list[dict], failures: dict[str, str]):
        self.items = items
        self.failures = failures


class CatalogService:
    """Entry point for single-type fetches and the all-types aggregation."""

    def __init__(self, sources: dict[str, CatalogSource], max_workers: int = 5):
        unknown = [item_type for item_type in sources if item_type not in ITEM_TYPES]
        if unknown:
            raise ValueError(f"Unsupported source types: {', '.join(unknown)}")
        self.sources = sources
        self.max_workers = max_workers

    def source_for(self, item_type: str | None):
        """
        Look up the source serving an item type.

        Args:
            item_type (str | None): Requested type.

        Returns:
            CatalogSource: Matching source.

        Raises:
            InvalidRequestParameter: When the type is missing or unsupported.
        """
        normalized = clean_text(item_type).lower()
        source = self.sources.get(normalized)
        if source is None:
            raise InvalidRequestParameter("Invalid or unsupported type")
        return source

    def fetch_type(self, item_type: str, search: str | None = "", genres: Any = None, region: str | None = None, limit: int = 20):
        """
        Fetch one type directly; upstream failures propagate to the caller.

        Args:
            item_type (str): One of ``ITEM_TYPES``.
            search (str | None): Free-text search.
            genres (Any): Genre labels, or categories for books.
            region (str | None): Region label.
            limit (int): Maximum number of items.

        Returns:
            list[dict]: Canonical items.
        """
        return self.source_for(item_type).fetch(search, genres, region, limit)

    def settle_types(self, requests_by_type: dict[str, dict]):
        """
        Fetch several types concurrently, tolerating individual failures.

        Args:
            requests_by_type (dict[str, dict]): ``fetch`` keyword arguments per type.

        Returns:
            SettledResults: Items per successful type and failures per type.
        """
        tasks = {}
        for item_type in ITEM_TYPES:
            if item_type not in requests_by_type or item_type not in self.sources:
                continue
            source = self.sources[item_type]
            kwargs = dict(requests_by_type[item_type])
            tasks[item_type] = lambda source=source, kwargs=kwargs: source.fetch(**kwargs)
        return settle_all(tasks, self.max_workers)

    def aggregate_all(self, search: str | None = "", genre: Any = None, region: str | None = None, limit: int = 20, categories: Any = None):
        """
        Query every type concurrently and concatenate the results in type order.

        Args:
            search (str | None): Free-text search.
            genre (Any): Genre label for video sources.
            region (str | None): Region label.
            limit (int): Maximum number of items per type.
            categories (Any): Book categories; the genre is used when omitted.

        Returns:
            AggregateResult: Concatenated items and failed sources.
        """
        book_categories = categories if categories else genre
        requests_by_type = {
            item_type: {
                "search": search,
                "genres": book_categories if item_type == "books" else genre,
                "region": region,
                "limit": limit,
            }
            for item_type in ITEM_TYPES
        }
        settled = self.settle_types(requests_by_type)
        return merge_settled(settled)


def merge_settled(settled: SettledResults):
    """
    Concatenate successful type results in ``ITEM_TYPES`` order.

    Args:
        settled (SettledResults): Fan-out outcome keyed by type.

    Returns:
        AggregateResult: Merged items and failure reasons.
    """
    merged = []
    for _item_type, items in settled.successes():
        merged.extend(items or [])
    failures = settled.failure_reasons()
    if failures:
        logger.warning("partial results, failed sources: %s", failures)
    return AggregateResult(merged, failures)


def build_catalog(
    cache: ResponseCache,
    tmdb_api_key: str = "",
    tmdb_access_token: str = "",
    google_books_api_key: str = "",
    spotify_client_id: str = "",
    spotify_client_secret: str = "",
    retries: int = 1,
    cache_ttl: float = DEFAULT_TTL_SECONDS,
    max_workers: int = 5,
    session: requests.Session | None = None,
    sleep=time.sleep,
):
    """
    Wire the five sources around one session and one cache.

    Returns:
        CatalogService: Ready-to-use service.
    """
    http = session or requests.Session()
    shared = {"session": http, "cache": cache, "retries": retries, "cache_ttl": cache_ttl, "sleep": sleep}
    tmdb = {"api_key": tmdb_api_key, "access_token": tmdb_access_token}
    token_provider = SpotifyTokenProvider(spotify_client_id, spotify_client_secret, session=http, retries=retries, sleep=sleep)
    sources = {
        "movies": TmdbMovieSource(**tmdb, **shared),
        "series": TmdbSeriesSource(**tmdb, **shared),
        "books": GoogleBooksSource(api_key=google_books_api_key, **shared),
        "anime": TmdbAnimeSource(**tmdb, **shared),
        "music": SpotifyMusicSource(token_provider=token_provider, **shared),
    }
    return CatalogService(sources, max_workers=max_workers)
