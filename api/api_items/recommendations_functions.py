import logging

from catalog_functions import CatalogService, merge_settled
from items_functions import ITEM_TYPES, clean_text, item_score, parse_identifier_list
from profiles_functions import is_excluded, load_exclusions

logger = logging.getLogger(__name__)

DEFAULT_MOOD = "chill"
DEFAULT_RECOMMENDATION_LIMIT = 24
MAX_RECOMMENDATION_LIMIT = 100
MIN_SEED_LENGTH = 3
GENRE_DRIVEN_TYPES = {"movies", "series", "anime"}

# mood -> per-type genre (video) or search seed (books, music)
MOODS = {
    "chill": {
        "movies": "Comedy",
        "series": "Comedy",
        "anime": "Comedy",
        "books": "cozy fiction",
        "music": "lofi chill",
    },
    "happy": {
        "movies": "Family",
        "series": "Family",
        "anime": "Comedy",
        "books": "humor",
        "music": "happy hits",
    },
    "sad": {
        "movies": "Drama",
        "series": "Drama",
        "anime": "Drama",
        "books": "literary fiction",
        "music": "sad songs",
    },
    "excited": {
        "movies": "Action",
        "series": "Action & Adventure",
        "anime": "Action & Adventure",
        "books": "thriller",
        "music": "workout",
    },
    "romantic": {
        "movies": "Romance",
        "series": "Drama",
        "anime": "Drama",
        "books": "romance",
        "music": "love songs",
    },
    "scary": {
        "movies": "Horror",
        "series": "Mystery",
        "anime": "Mystery",
        "books": "horror",
        "music": "dark ambient",
    },
    "thoughtful": {
        "movies": "Documentary",
        "series": "Documentary",
        "anime": "Sci-Fi & Fantasy",
        "books": "philosophy",
        "music": "acoustic",
    },
    "adventurous": {
        "movies": "Adventure",
        "series": "Action & Adventure",
        "anime": "Sci-Fi & Fantasy",
        "books": "adventure",
        "music": "epic soundtrack",
    },
}


def resolve_mood(mood: str | None):
    """
    Normalize a mood label, falling back to the default mood.

    Args:
        mood (str | None): Mood requested by the client.

    Returns:
        str: Key of ``MOODS``.
    """
    normalized = clean_text(mood).lower()
    return normalized if normalized in MOODS else DEFAULT_MOOD


def resolve_types(raw_types: object):
    """
    Parse the requested item types, keeping the canonical order.

    Args:
        raw_types (Any): Comma-separated types or a list.

    Returns:
        list[str]: Valid types, every type when none is valid.
    """
    requested = {entry.lower() for entry in parse_identifier_list(raw_types)}
    selected = [item_type for item_type in ITEM_TYPES if item_type in requested]
    return selected or list(ITEM_TYPES)


def clamp_limit(limit: object):
    """
    Clamp the recommendation limit to ``[1, MAX_RECOMMENDATION_LIMIT]``.

    Args:
        limit (Any): Raw limit.

    Returns:
        int: Usable limit, the default when unparsable.
    """
    if limit is None or clean_text(limit) == "":
        return DEFAULT_RECOMMENDATION_LIMIT
    try:
        value = int(limit)
    except (TypeError, ValueError):
        return DEFAULT_RECOMMENDATION_LIMIT
    return min(max(value, 1), MAX_RECOMMENDATION_LIMIT)


def build_mood_requests(mood: str, types: list[str], limit: int, seed: str | None = None):
    """
    Translate a mood into per-type fetch arguments.

    Video types discover by the mood's genre. Books and music search by the
    mood's seed, replaced by ``seed`` when it has at least three characters.

    Args:
        mood (str): Key of ``MOODS``.
        types (list[str]): Types to query.
        limit (int): Items requested per type.
        seed (str | None): Free-text override for searchable types.

    Returns:
        dict[str, dict]: ``fetch`` keyword arguments per type.
    """
    table = MOODS[mood]
    override = clean_text(seed)
    if len(override) < MIN_SEED_LENGTH:
        override = ""

    requests_by_type = {}
    for item_type in types:
        if item_type in GENRE_DRIVEN_TYPES:
            requests_by_type[item_type] = {"search": "", "genres": table[item_type], "region": None, "limit": limit}
        else:
            requests_by_type[item_type] = {"search": override or table[item_type], "genres": None, "region": None, "limit": limit}
    return requests_by_type


def rank_items(items: list[dict]):
    """
    Sort items by score, highest first, keeping input order on ties.

    Args:
        items (list[dict]): Candidates.

    Returns:
        list[dict]: Ranked items.
    """
    return sorted(items, key=item_score, reverse=True)


def recommend(catalog: CatalogService, mood: str | None = None, types: object = None, limit: object = None, user_id: str | None = None, seed: str | None = None, profiles_collection=None):
    """
    Produce mood-based recommendations, skipping what the user already saved.

    Args:
        catalog (CatalogService): Source registry used for the fan-out.
        mood (str | None): Mood label; unknown values use the default mood.
        types (Any): Types to include, every type when empty.
        limit (Any): Result size, clamped to ``[1, 100]``.
        user_id (str | None): User whose saved items are excluded.
        seed (str | None): Free-text override for books and music.
        profiles_collection: MongoDB profiles collection.

    Returns:
        list[dict]: Ranked items, possibly empty; never raises for upstream failures.
    """
    resolved_mood = resolve_mood(mood)
    selected_types = resolve_types(types)
    size = clamp_limit(limit)

    settled = catalog.settle_types(build_mood_requests(resolved_mood, selected_types, size, seed))
    candidates = merge_settled(settled).items

    exclusions = load_exclusions(user_id, profiles_collection)
    if exclusions:
        candidates = [item for item in candidates if not is_excluded(item, exclusions)]

    ranked = rank_items(candidates)[:size]
    logger.info("mood=%s types=%s -> %d recommendations", resolved_mood, ",".join(selected_types), len(ranked))
    return ranked
