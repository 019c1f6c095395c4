from typing import Any

UNKNOWN_TITLE = "Unknown Title"
UNKNOWN_LABEL = "Unknown"

ITEM_TYPES = ("movies", "series", "books", "anime", "music")
PLACEHOLDER_FILTERS = {"", "all", "any"}


def safe_float(value, default=0.0):
    """
    Convert arbitrary values into floats while guarding against failures.

    Args:
        value (Any): Raw value to convert.
        default (float): Fallback value when parsing is unsuccessful.

    Returns:
        float: Parsed float or the provided default.
    """
    if value is None or isinstance(value, bool):
        return default
    try:
        return float(str(value).replace(",", "."))
    except (TypeError, ValueError):
        return default


def safe_int(value, default=0):
    """
    Parse a value into an integer, tolerating strings and floats.

    Args:
        value (Any): Raw value to convert.
        default (int): Fallback value when parsing fails.

    Returns:
        int: Parsed integer or the default.
    """
    if value is None:
        return default
    try:
        return int(float(str(value).split()[0]))
    except (TypeError, ValueError, IndexError):
        return default


def clean_text(value: Any):
    """
    Return a stripped string for any value, treating None as empty.

    Args:
        value (Any): Candidate value.

    Returns:
        str: Stripped text.
    """
    if value is None:
        return ""
    return str(value).strip()


def is_filter_value(value: str | None):
    """
    Tell whether a query filter carries an actual selection.

    Args:
        value (str | None): Raw filter value from the query string.

    Returns:
        bool: False for empty values and ``all``/``any`` placeholders.
    """
    return clean_text(value).lower() not in PLACEHOLDER_FILTERS


def is_meaningful_search(search: str | None):
    """
    Decide whether a search term should trigger text search instead of discovery.

    Args:
        search (str | None): Free text supplied by the client.

    Returns:
        bool: True when the term is non-empty and not a placeholder.
    """
    return is_filter_value(search)


def parse_identifier_list(raw_value: Any):
    """
    Parse a value into a sanitized list of strings.

    Args:
        raw_value (Any): Potentially comma-separated values.

    Returns:
        list[str]: Cleaned values with blanks and placeholders removed, order kept.
    """
    if not raw_value:
        return []
    if isinstance(raw_value, (list, tuple)):
        items = raw_value
    else:
        items = str(raw_value).split(",")
    parsed = []
    for item in items:
        text = clean_text(item)
        if text and is_filter_value(text) and text not in parsed:
            parsed.append(text)
    return parsed


def parse_limit_param(raw_value: object, default_limit: int, max_limit: int, min_limit: int = 1):
    """
    Sanitize limit query parameters, clamping to configured bounds.

    Args:
        raw_value (Any): Limit value provided by the client.
        default_limit (int): Fallback limit when parsing fails.
        max_limit (int): Maximum allowed limit.
        min_limit (int): Minimum allowed limit.

    Returns:
        int: Validated limit value.
    """
    if raw_value is None or clean_text(raw_value) == "":
        return default_limit
    try:
        limit = int(raw_value)
    except (TypeError, ValueError):
        return default_limit
    return min(max(limit, min_limit), max_limit)


def build_cache_key(prefix: str, *parts: Any):
    """
    Build a cache key with a prefix and optional segments.

    Args:
        prefix (str): Root part of the key, usually the source name.
        *parts: Additional segments; lists are sorted and comma-joined.

    Returns:
        str: Colon-separated, lowercased cache key.
    """
    normalized = [prefix]
    for part in parts:
        if part is None:
            normalized.append("")
        elif isinstance(part, (list, tuple, set)):
            normalized.append(",".join(sorted(clean_text(entry).lower() for entry in part)))
        else:
            normalized.append(clean_text(part).lower())
    return ":".join(normalized)


def build_item(item_type: str, **fields):
    """
    Build a canonical catalog item, filling every field the client reads.

    Args:
        item_type (str): One of ``ITEM_TYPES``.
        **fields: Source-specific values; ``None`` values fall back to defaults.

    Returns:
        dict: Item with non-null ``title``, ``rating``, ``genre``, ``region``,
        ``thumbnail`` and ``description``.
    """
    if item_type not in ITEM_TYPES:
        raise ValueError(f"Unsupported item type: {item_type}")

    values = {key: value for key, value in fields.items() if value is not None}
    label_key = "categories" if item_type == "books" else "genres"
    labels = [clean_text(label) for label in values.pop(label_key, None) or [] if clean_text(label)]

    item = {
        "id": clean_text(values.pop("id", "")),
        "type": item_type,
        "title": clean_text(values.pop("title", "")) or UNKNOWN_TITLE,
        "rating": safe_float(values.pop("rating", 0)),
        "genre": labels[0] if labels else UNKNOWN_LABEL,
        label_key: labels,
        "region": clean_text(values.pop("region", "")) or UNKNOWN_LABEL,
        "country": clean_text(values.pop("country", "")) or UNKNOWN_LABEL,
        "trending": bool(values.pop("trending", False)),
        "thumbnail": clean_text(values.pop("thumbnail", "")),
        "description": clean_text(values.pop("description", "")),
    }
    values.pop("genre", None)
    item.update(values)
    return item


def item_score(item: dict):
    """
    Score an item for ranking.

    Args:
        item (dict): Canonical item.

    Returns:
        float: Rating when non-zero, otherwise a tenth of the popularity, otherwise 0.
    """
    rating = safe_float(item.get("rating"))
    if rating:
        return rating
    if item.get("popularity") is not None:
        return safe_float(item.get("popularity")) / 10
    return 0.0
