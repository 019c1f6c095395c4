import logging
import threading
import time
from typing import Any, Callable

import requests

from cache_functions import DEFAULT_TTL_SECONDS, MemoryResponseCache, ResponseCache
from fetch_functions import DEFAULT_RETRIES, UpstreamError, fetch_json
from items_functions import (
    build_cache_key,
    build_item,
    clean_text,
    is_filter_value,
    is_meaningful_search,
    parse_identifier_list,
    safe_float,
)
from region_functions import (
    ANIMATION_GENRE_ID,
    canonical_region_label,
    genre_names_from_ids,
    language_to_country,
    normalize_country_code,
    region_label_to_country_codes,
    resolve_genre_id,
    resolve_origin,
)

logger = logging.getLogger(__name__)


class CatalogQuery:
    """Normalized query parameters shared by every source."""

    def __init__(self, search: str | None = "", genres: Any = None, region: str | None = None, limit: int = 20):
        """
        Normalize raw request parameters.

        Args:
            search (str | None): Free text.
            genres (Any): Genre or category labels, comma string or list.
            region (str | None): Region label; placeholders mean no filter.
            limit (int): Maximum number of items, at least 1.
        """
        self.search = clean_text(search)
        self.genres = parse_identifier_list(genres)
        if is_filter_value(region):
            self.region = canonical_region_label(region) or clean_text(region)
        else:
            self.region = None
        self.limit = max(int(limit), 1)

    @property
    def is_search(self):
        """True when the search text is long enough to use the search endpoint."""
        return is_meaningful_search(self.search)

    @property
    def genre(self):
        """First genre label, or None without a genre filter."""
        return self.genres[0] if self.genres else None

    def without_filters(self):
        """Copy of the query keeping only the search text and limit."""
        return CatalogQuery(self.search, None, None, self.limit)

    def __repr__(self):
        return f"CatalogQuery(search={self.search!r}, genres={self.genres!r}, region={self.region!r}, limit={self.limit})"


class CatalogSource:
    """
    One upstream catalog mapped into canonical items.

    Subclasses implement ``search`` and ``discover`` (returning raw upstream
    records) and ``map_to_item``; ``post_filter`` enforces what the upstream
    could not filter. ``fetch`` wires these together behind the response cache
    and raises ``UpstreamError`` when the upstream keeps failing.
    """

    name = ""
    item_type = ""
    timeout_ms = 8000
    trending_threshold = 100.0

    def __init__(
        self,
        session: requests.Session | None = None,
        cache: ResponseCache | None = None,
        retries: int = DEFAULT_RETRIES,
        timeout_ms: int | None = None,
        cache_ttl: float = DEFAULT_TTL_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize a source with its HTTP session, cache and retry settings.

        Args:
            session (requests.Session | None): Shared HTTP session.
            cache (ResponseCache | None): Response cache, a private memory cache when None.
            retries (int): Retries after the first attempt.
            timeout_ms (int | None): Per-attempt timeout, the class default when None.
            cache_ttl (float): Lifetime of cached results in seconds.
            sleep (Callable): Pause used between attempts.
        """
        self.session = session or requests.Session()
        self.cache = cache if cache is not None else MemoryResponseCache(default_ttl=cache_ttl)
        self.retries = retries
        if timeout_ms is not None:
            self.timeout_ms = timeout_ms
        self.cache_ttl = cache_ttl
        self.sleep = sleep

    def request_json(self, url: str, **kwargs):
        """
        Fetch JSON from this source's upstream with its retry and timeout settings.

        Args:
            url (str): Endpoint url.
            **kwargs: Extra ``requests`` arguments (``params``, ``headers``, ``data``...).

        Returns:
            Any: Decoded JSON payload.
        """
        return fetch_json(
            url,
            retries=self.retries,
            timeout_ms=self.timeout_ms,
            session=self.session,
            source=self.name,
            sleep=self.sleep,
            **kwargs,
        )

    def prepare_query(self, query: CatalogQuery):
        """Adjust the normalized query before it is cached and sent upstream."""
        return query

    def fetch(self, search: str | None = "", genres: Any = None, region: str | None = None, limit: int = 20):
        """
        Fetch canonical items for the given filters, serving repeats from the cache.

        Args:
            search (str | None): Free text; empty or placeholder means discovery mode.
            genres (Any): Genre or category labels, comma string or list.
            region (str | None): Region label.
            limit (int): Maximum number of items.

        Returns:
            list[dict]: Canonical items.

        Raises:
            UpstreamError: When the upstream call fails after retries.
        """
        query = self.prepare_query(CatalogQuery(search, genres, region, limit))
        mode = "search" if query.is_search else "discover"
        cache_key = build_cache_key(self.name, mode, query.search if query.is_search else "", query.genres, query.region or "", query.limit)

        cached = self.cache.get(cache_key)
        if cached is not None:
            logger.debug("cache hit %s", cache_key)
            return cached
        logger.debug("cache miss %s", cache_key)

        raw_records = self.search(query) if query.is_search else self.discover(query)
        items = [self.map_to_item(record, query) for record in raw_records if isinstance(record, dict)]
        items = self.post_filter(items, query)[: query.limit]

        self.cache.set(cache_key, items, self.cache_ttl)
        return items

    def search(self, query: CatalogQuery):
        """Return raw upstream records for a text search."""
        raise NotImplementedError

    def discover(self, query: CatalogQuery):
        """Return raw upstream records when no search text is given."""
        raise NotImplementedError

    def map_to_item(self, record: dict, query: CatalogQuery):
        """Map one raw upstream record into a canonical item."""
        raise NotImplementedError

    def post_filter(self, items: list[dict], query: CatalogQuery):
        """
        Keep items whose derived region matches the requested region label.

        Args:
            items (list[dict]): Mapped items.
            query (CatalogQuery): Normalized query.

        Returns:
            list[dict]: Filtered items.
        """
        if not query.region:
            return items
        wanted = query.region.lower()
        return [item for item in items if str(item.get("region", "")).lower() == wanted]

    def is_trending(self, popularity: Any):
        """
        Tell whether a popularity value passes the trending threshold.

        Args:
            popularity (Any): Upstream popularity.

        Returns:
            bool: True at or above ``trending_threshold``.
        """
        return safe_float(popularity) >= self.trending_threshold


class TmdbSource(CatalogSource):
    """Shared TMDB plumbing for the movie and TV endpoints."""

    BASE_URL = "https://api.themoviedb.org/3"
    IMAGE_BASE_URL = "https://image.tmdb.org/t/p/w500"
    media = "movie"

    def __init__(self, api_key: str = "", access_token: str = "", **kwargs):
        """
        Initialize a TMDB source; the v4 bearer token wins over the v3 key.

        Args:
            api_key (str): TMDB v3 API key.
            access_token (str): TMDB v4 read access token.
            **kwargs: ``CatalogSource`` settings.
        """
        super().__init__(**kwargs)
        self.api_key = clean_text(api_key)
        self.access_token = clean_text(access_token)

    def _get(self, path: str, params: dict):
        """
        Call a TMDB endpoint and return its ``results`` list.

        Args:
            path (str): Path below ``BASE_URL``.
            params (dict): Query parameters.

        Returns:
            list[dict]: Raw TMDB results, empty when absent.

        Raises:
            UpstreamError: When no credentials are configured or the call keeps failing.
        """
        if not self.api_key and not self.access_token:
            raise UpstreamError("TMDB credentials are not configured", source=self.name)
        query_params = {"language": "en-US", "include_adult": "false", **params}
        headers = {"Accept": "application/json"}
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        else:
            query_params["api_key"] = self.api_key
        payload = self.request_json(f"{self.BASE_URL}{path}", params=query_params, headers=headers)
        results = payload.get("results") if isinstance(payload, dict) else None
        return results if isinstance(results, list) else []

    def genre_id(self, query: CatalogQuery):
        """
        Resolve the genre filter into this media's TMDB genre id.

        Args:
            query (CatalogQuery): Normalized query.

        Returns:
            int | None: Genre id, None when absent or unknown.
        """
        return resolve_genre_id(query.genre, self.media) if query.genre else None

    def upstream_origin_codes(self, query: CatalogQuery):
        """
        Country codes pushed upstream as an origin filter in discovery mode.

        Args:
            query (CatalogQuery): Normalized query.

        Returns:
            list[str]: Codes for the selected region, empty when none apply.
        """
        if query.is_search or not query.region:
            return []
        return region_label_to_country_codes(query.region)

    def discover_genre_param(self, query: CatalogQuery):
        """
        Value of ``with_genres`` for the discovery endpoint.

        Args:
            query (CatalogQuery): Normalized query.

        Returns:
            str | None: Genre id as text, None for no genre filter.
        """
        genre_id = self.genre_id(query)
        return str(genre_id) if genre_id is not None else None

    def search(self, query: CatalogQuery):
        """
        Search TMDB by title, keeping only results carrying the requested genre.

        Args:
            query (CatalogQuery): Normalized query.

        Returns:
            list[dict]: Raw TMDB results.
        """
        records = self._get(f"/search/{self.media}", {"query": query.search, "page": 1})
        genre_id = self.genre_id(query)
        if genre_id is None:
            return records
        return [record for record in records if genre_id in (record.get("genre_ids") or [])]

    def discover(self, query: CatalogQuery):
        """
        Discover popular titles with the genre and origin filters pushed upstream.

        Args:
            query (CatalogQuery): Normalized query.

        Returns:
            list[dict]: Raw TMDB results.
        """
        params = {"sort_by": "popularity.desc", "page": 1}
        with_genres = self.discover_genre_param(query)
        if with_genres:
            params["with_genres"] = with_genres
        origin_codes = self.upstream_origin_codes(query)
        if origin_codes:
            params["with_origin_country"] = "|".join(origin_codes)
        return self._get(f"/discover/{self.media}", params)

    def origin(self, record: dict, query: CatalogQuery):
        """
        Resolve ``(country, region)`` for a TMDB record.

        With an upstream origin filter, the first origin country inside that
        filter wins over the record's first one. Records without
        ``origin_country`` fall back to the country implied by the filter,
        then to the original language.

        Args:
            record (dict): Raw TMDB result.
            query (CatalogQuery): Normalized query.

        Returns:
            tuple[str, str]: Country code and region label.
        """
        language = record.get("original_language")
        explicit = [code for code in record.get("origin_country") or [] if clean_text(code)]
        pushed = self.upstream_origin_codes(query)
        if explicit:
            if pushed:
                inside = [code for code in explicit if normalize_country_code(code) in pushed]
                if inside:
                    return resolve_origin(inside, language)
            return resolve_origin(explicit, language)
        if pushed:
            from_language = language_to_country(language)
            fallback = from_language if from_language in pushed else pushed[0]
            return resolve_origin(None, language, fallback_country=fallback)
        return resolve_origin(None, language)

    def poster_url(self, record: dict):
        """
        Build the w500 poster url of a record.

        Args:
            record (dict): Raw TMDB result.

        Returns:
            str: Absolute url, empty without an image path.
        """
        path = clean_text(record.get("poster_path") or record.get("backdrop_path"))
        return f"{self.IMAGE_BASE_URL}{path}" if path else ""

    def map_to_item(self, record: dict, query: CatalogQuery):
        """
        Map a TMDB result into a canonical video item.

        Args:
            record (dict): Raw TMDB result.
            query (CatalogQuery): Normalized query.

        Returns:
            dict: Canonical item.
        """
        country, region = self.origin(record, query)
        if record.get("genres") and isinstance(record["genres"], list):
            genres = [entry.get("name") for entry in record["genres"] if isinstance(entry, dict)]
        else:
            genres = genre_names_from_ids(record.get("genre_ids"), self.media)
        return build_item(
            self.item_type,
            id=record.get("id"),
            title=self.title_of(record),
            rating=record.get("vote_average"),
            genres=genres,
            region=region,
            country=country,
            trending=self.is_trending(record.get("popularity")),
            thumbnail=self.poster_url(record),
            description=record.get("overview"),
            language=clean_text(record.get("original_language")) or None,
            release_date=self.release_date_of(record),
            popularity=safe_float(record.get("popularity")),
        )

    def title_of(self, record: dict):
        """Movie title, falling back to the original title."""
        return record.get("title") or record.get("original_title")

    def release_date_of(self, record: dict):
        """Movie release date, empty when unknown."""
        return record.get("release_date") or ""


class TmdbMovieSource(TmdbSource):
    name = "tmdb-movies"
    item_type = "movies"
    media = "movie"


class TmdbSeriesSource(TmdbSource):
    name = "tmdb-series"
    item_type = "series"
    media = "tv"

    def title_of(self, record: dict):
        """Show name, falling back to the original name."""
        return record.get("name") or record.get("original_name")

    def release_date_of(self, record: dict):
        """First air date of a show, empty when unknown."""
        return record.get("first_air_date") or ""


class TmdbAnimeSource(TmdbSeriesSource):
    """TMDB TV constrained to animation from Japan, Korea and China."""

    name = "tmdb-anime"
    item_type = "anime"
    ANIME_ORIGIN_COUNTRIES = ("JP", "KR", "CN")

    def upstream_origin_codes(self, query: CatalogQuery):
        """
        Origin countries for anime discovery: the selected region or JP, KR and CN.

        Args:
            query (CatalogQuery): Normalized query.

        Returns:
            list[str]: Country codes, empty in search mode.
        """
        if query.is_search:
            return []
        codes = region_label_to_country_codes(query.region) if query.region else []
        return codes or list(self.ANIME_ORIGIN_COUNTRIES)

    def discover_genre_param(self, query: CatalogQuery):
        """
        Genre filter ANDing animation with the requested genre.

        Args:
            query (CatalogQuery): Normalized query.

        Returns:
            str: ``16`` or ``16,<genre id>``.
        """
        genre_id = self.genre_id(query)
        if genre_id is None or genre_id == ANIMATION_GENRE_ID:
            return str(ANIMATION_GENRE_ID)
        return f"{ANIMATION_GENRE_ID},{genre_id}"

    def search(self, query: CatalogQuery):
        """Search TV titles and keep the anime-like ones."""
        return [record for record in super().search(query) if self.looks_like_anime(record)]

    @staticmethod
    def looks_like_anime(record: dict):
        """
        Tell whether a TMDB TV record is animation or of Japanese origin.

        Args:
            record (dict): Raw TMDB result.

        Returns:
            bool: True for anime-like records.
        """
        if ANIMATION_GENRE_ID in (record.get("genre_ids") or []):
            return True
        origins = {normalize_country_code(code) for code in record.get("origin_country") or []}
        return "JP" in origins or clean_text(record.get("original_language")).lower() == "ja"


class GoogleBooksSource(CatalogSource):
    """Google Books volumes with subject-assisted, post-filtered categories."""

    name = "google-books"
    item_type = "books"
    timeout_ms = 7000
    trending_threshold = 1000.0
    BASE_URL = "https://www.googleapis.com/books/v1/volumes"
    PAGE_SIZE = 40
    MAX_PAGES = 3
    DEFAULT_QUERY = "bestseller"

    def __init__(self, api_key: str = "", **kwargs):
        """
        Initialize the Google Books source.

        Args:
            api_key (str): Optional Google Books key.
            **kwargs: ``CatalogSource`` settings.
        """
        super().__init__(**kwargs)
        self.api_key = clean_text(api_key)

    def build_search_terms(self, query: CatalogQuery):
        """
        Build the ``q`` parameter, adding a subject qualifier for a single category.

        Args:
            query (CatalogQuery): Normalized query.

        Returns:
            str: Google Books query string.
        """
        terms = []
        if query.is_search:
            terms.append(query.search)
        if len(query.genres) == 1:
            category = query.genres[0]
            terms.append(f'subject:"{category}"' if " " in category else f"subject:{category}")
        if not terms:
            terms.append(self.DEFAULT_QUERY)
        return " ".join(terms)

    def fetch_pages(self, q: str, wanted: int):
        """
        Collect volumes across sequential pages, deduplicated by id.

        Args:
            q (str): Query string.
            wanted (int): Desired number of volumes, capped by ``MAX_PAGES``.

        Returns:
            list[dict]: Raw volumes in upstream order.
        """
        target = min(wanted, self.PAGE_SIZE * self.MAX_PAGES)
        collected = []
        seen = set()
        start_index = 0
        for _page in range(self.MAX_PAGES):
            page_size = min(self.PAGE_SIZE, max(target - len(collected), 1))
            params = {"q": q, "maxResults": page_size, "startIndex": start_index, "printType": "books"}
            if self.api_key:
                params["key"] = self.api_key
            payload = self.request_json(self.BASE_URL, params=params)
            batch = payload.get("items") if isinstance(payload, dict) else None
            batch = batch if isinstance(batch, list) else []
            for volume in batch:
                volume_id = volume.get("id") if isinstance(volume, dict) else None
                if not volume_id or volume_id in seen:
                    continue
                seen.add(volume_id)
                collected.append(volume)
            start_index += page_size
            if len(batch) < page_size or len(collected) >= target:
                break
        return collected

    def search(self, query: CatalogQuery):
        """Query Google Books with the search text and category qualifier."""
        return self.fetch_pages(self.build_search_terms(query), query.limit)

    def discover(self, query: CatalogQuery):
        """Query Google Books with the default term when no search text is given."""
        return self.fetch_pages(self.build_search_terms(query), query.limit)

    @staticmethod
    def flatten_categories(raw_categories: Any):
        """
        Split Google's ``A / B`` category paths into a flat, de-duplicated list.

        Args:
            raw_categories (Any): ``volumeInfo.categories`` value.

        Returns:
            list[str]: Category labels in order.
        """
        if isinstance(raw_categories, str):
            raw_categories = [raw_categories]
        flattened = []
        seen = set()
        for entry in raw_categories or []:
            for part in str(entry).split("/"):
                label = part.strip()
                if label and label.lower() not in seen:
                    seen.add(label.lower())
                    flattened.append(label)
        return flattened

    def map_to_item(self, record: dict, query: CatalogQuery):
        """
        Map a Google Books volume into a canonical book item.

        Args:
            record (dict): Raw volume.
            query (CatalogQuery): Normalized query.

        Returns:
            dict: Canonical item with authors and categories.
        """
        info = record.get("volumeInfo") if isinstance(record.get("volumeInfo"), dict) else {}
        sale = record.get("saleInfo") if isinstance(record.get("saleInfo"), dict) else {}
        images = info.get("imageLinks") if isinstance(info.get("imageLinks"), dict) else {}
        thumbnail = clean_text(images.get("thumbnail") or images.get("smallThumbnail"))
        if thumbnail.startswith("http://"):
            thumbnail = "https://" + thumbnail[len("http://"):]
        country, region = resolve_origin([sale.get("country")] if sale.get("country") else None)
        return build_item(
            self.item_type,
            id=record.get("id"),
            title=info.get("title"),
            rating=info.get("averageRating"),
            categories=self.flatten_categories(info.get("categories")),
            region=region,
            country=country,
            trending=self.is_trending(info.get("ratingsCount")),
            thumbnail=thumbnail,
            description=info.get("description"),
            authors=[clean_text(author) for author in info.get("authors") or [] if clean_text(author)],
            release_date=clean_text(info.get("publishedDate")),
            language=clean_text(info.get("language")) or None,
        )

    @staticmethod
    def matches_categories(item: dict, selected: list[str]):
        """
        Check a book against selected categories (case-insensitive exact or substring).

        Args:
            item (dict): Canonical book item.
            selected (list[str]): Category labels; any one matching is enough.

        Returns:
            bool: True when a selected label matches a flattened category.
        """
        categories = [str(category).lower() for category in item.get("categories") or []]
        for label in selected:
            wanted = label.lower()
            if any(wanted == category or wanted in category for category in categories):
                return True
        return False

    def post_filter(self, items: list[dict], query: CatalogQuery):
        """
        Keep volumes matching every category filter, then apply the region filter.

        Args:
            items (list[dict]): Mapped items.
            query (CatalogQuery): Normalized query.

        Returns:
            list[dict]: Filtered items.
        """
        if query.genres:
            items = [item for item in items if self.matches_categories(item, query.genres)]
        return super().post_filter(items, query)


class SpotifyTokenProvider:
    """Client-credentials token for the Spotify Web API, cached until it expires."""

    TOKEN_URL = "https://accounts.spotify.com/api/token"
    EXPIRY_MARGIN_SECONDS = 60

    def __init__(self, client_id: str = "", client_secret: str = "", session: requests.Session | None = None, retries: int = DEFAULT_RETRIES, timeout_ms: int = 8000, clock: Callable[[], float] = time.monotonic, sleep: Callable[[float], None] = time.sleep):
        """
        Initialize the token provider.

        Args:
            client_id (str): Spotify client id.
            client_secret (str): Spotify client secret.
            session (requests.Session | None): HTTP session.
            retries (int): Retries after the first attempt.
            timeout_ms (int): Per-attempt timeout.
            clock (Callable): Monotonic clock used for expiry.
            sleep (Callable): Pause used between attempts.
        """
        self.client_id = clean_text(client_id)
        self.client_secret = clean_text(client_secret)
        self.session = session or requests.Session()
        self.retries = retries
        self.timeout_ms = timeout_ms
        self.clock = clock
        self.sleep = sleep
        self._token = None
        self._expires_at = 0.0
        self._lock = threading.Lock()

    def get_token(self):
        """
        Return a valid access token, requesting a new one when needed.

        Returns:
            str: Bearer token.

        Raises:
            UpstreamError: When credentials are missing or the token call fails.
        """
        with self._lock:
            if self._token and self.clock() < self._expires_at:
                return self._token
            if not self.client_id or not self.client_secret:
                raise UpstreamError("Spotify credentials are not configured", source="spotify")
            payload = fetch_json(
                self.TOKEN_URL,
                method="POST",
                retries=self.retries,
                timeout_ms=self.timeout_ms,
                session=self.session,
                source="spotify-token",
                sleep=self.sleep,
                data={"grant_type": "client_credentials"},
                auth=(self.client_id, self.client_secret),
            )
            token = payload.get("access_token") if isinstance(payload, dict) else None
            if not token:
                raise UpstreamError("Spotify token response had no access_token", source="spotify-token")
            expires_in = safe_float(payload.get("expires_in"), 3600.0)
            self._token = token
            self._expires_at = self.clock() + max(expires_in - self.EXPIRY_MARGIN_SECONDS, 0)
            return token


class SpotifyMusicSource(CatalogSource):
    """
    Spotify track search.

    Spotify keeps genres on artists, not tracks, so genre and region filters
    are ignored rather than resolved with one extra call per artist.
    """

    name = "spotify"
    item_type = "music"
    trending_threshold = 70.0
    SEARCH_URL = "https://api.spotify.com/v1/search"
    FALLBACK_QUERY = "Alan Walker"
    MAX_LIMIT = 50

    def __init__(self, token_provider: SpotifyTokenProvider | None = None, **kwargs):
        """
        Initialize the Spotify source.

        Args:
            token_provider (SpotifyTokenProvider | None): Token source, built from the session when None.
            **kwargs: ``CatalogSource`` settings.
        """
        super().__init__(**kwargs)
        self.token_provider = token_provider or SpotifyTokenProvider(session=self.session, retries=self.retries, sleep=self.sleep)

    def prepare_query(self, query: CatalogQuery):
        """Spotify ignores genre and region filters."""
        return query.without_filters()

    def search(self, query: CatalogQuery):
        """Search tracks by the given text."""
        return self.search_tracks(query.search, query.limit)

    def discover(self, query: CatalogQuery):
        """Search the fallback artist when no search text is given."""
        return self.search_tracks(self.FALLBACK_QUERY, query.limit)

    def search_tracks(self, term: str, limit: int):
        """
        Search Spotify tracks with a bearer token.

        Args:
            term (str): Search text.
            limit (int): Requested size, capped at ``MAX_LIMIT``.

        Returns:
            list[dict]: Raw track records.
        """
        token = self.token_provider.get_token()
        payload = self.request_json(
            self.SEARCH_URL,
            params={"q": term, "type": "track", "limit": min(limit, self.MAX_LIMIT)},
            headers={"Authorization": f"Bearer {token}"},
        )
        tracks = payload.get("tracks") if isinstance(payload, dict) else None
        items = tracks.get("items") if isinstance(tracks, dict) else None
        return items if isinstance(items, list) else []

    def map_to_item(self, record: dict, query: CatalogQuery):
        """
        Map a Spotify track into a canonical music item.

        Args:
            record (dict): Raw track.
            query (CatalogQuery): Normalized query.

        Returns:
            dict: Canonical item, with the artist names as description.
        """
        album = record.get("album") if isinstance(record.get("album"), dict) else {}
        images = album.get("images") if isinstance(album.get("images"), list) else []
        thumbnail = images[0].get("url") if images and isinstance(images[0], dict) else ""
        artists = [clean_text(artist.get("name")) for artist in record.get("artists") or [] if isinstance(artist, dict) and clean_text(artist.get("name"))]
        external_urls = record.get("external_urls") if isinstance(record.get("external_urls"), dict) else {}
        popularity = safe_float(record.get("popularity"))
        return build_item(
            self.item_type,
            id=record.get("id"),
            title=record.get("name"),
            rating=popularity,
            genres=[],
            region="Global",
            country=None,
            trending=self.is_trending(popularity),
            thumbnail=thumbnail,
            description=", ".join(artists),
            artists=artists,
            album=clean_text(album.get("name")),
            release_date=clean_text(album.get("release_date")),
            preview_url=record.get("preview_url") or "",
            spotifyUrl=clean_text(external_urls.get("spotify")),
            popularity=popularity,
        )
