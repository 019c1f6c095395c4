from items_functions import UNKNOWN_LABEL, clean_text

REGION_LABELS = (
    "Hollywood",
    "Bollywood",
    "British",
    "Korean",
    "Japanese",
    "European",
    "Asian",
    "Africa",
    "Oceania",
    "Global",
    "Other",
    "Unknown",
)

# Each country belongs to exactly one region; COUNTRY_TO_REGION is derived from it.
REGION_TO_COUNTRIES = {
    "Hollywood": ("US", "CA", "MX", "BR", "AR", "CL", "CO"),
    "Bollywood": ("IN",),
    "British": ("GB", "IE"),
    "Korean": ("KR",),
    "Japanese": ("JP",),
    "European": ("FR", "DE", "IT", "ES", "NL", "BE", "SE", "DK", "NO", "FI", "PL", "PT", "AT", "CH", "RU", "TR", "GR"),
    "Asian": ("CN", "HK", "TW", "TH", "PH", "ID", "MY", "SG", "VN", "PK", "BD", "LK", "IR"),
    "Africa": ("NG", "ZA", "EG", "KE", "GH", "MA"),
    "Oceania": ("AU", "NZ"),
}

COUNTRY_TO_REGION = {
    country: region
    for region, countries in REGION_TO_COUNTRIES.items()
    for country in countries
}

LANGUAGE_TO_COUNTRY = {
    "en": "US",
    "hi": "IN",
    "ta": "IN",
    "te": "IN",
    "ml": "IN",
    "kn": "IN",
    "bn": "IN",
    "mr": "IN",
    "ko": "KR",
    "ja": "JP",
    "zh": "CN",
    "cn": "CN",
    "th": "TH",
    "tl": "PH",
    "id": "ID",
    "ms": "MY",
    "vi": "VN",
    "ur": "PK",
    "fa": "IR",
    "fr": "FR",
    "de": "DE",
    "it": "IT",
    "es": "ES",
    "nl": "NL",
    "sv": "SE",
    "da": "DK",
    "no": "NO",
    "fi": "FI",
    "pl": "PL",
    "pt": "PT",
    "ru": "RU",
    "tr": "TR",
    "el": "GR",
    "yo": "NG",
    "af": "ZA",
    "ar": "EG",
    "sw": "KE",
}

TMDB_MOVIE_GENRES = {
    28: "Action",
    12: "Adventure",
    16: "Animation",
    35: "Comedy",
    80: "Crime",
    99: "Documentary",
    18: "Drama",
    10751: "Family",
    14: "Fantasy",
    36: "History",
    27: "Horror",
    10402: "Music",
    9648: "Mystery",
    10749: "Romance",
    878: "Science Fiction",
    10770: "TV Movie",
    53: "Thriller",
    10752: "War",
    37: "Western",
}

TMDB_TV_GENRES = {
    10759: "Action & Adventure",
    16: "Animation",
    35: "Comedy",
    80: "Crime",
    99: "Documentary",
    18: "Drama",
    10751: "Family",
    10762: "Kids",
    9648: "Mystery",
    10763: "News",
    10764: "Reality",
    10765: "Sci-Fi & Fantasy",
    10766: "Soap",
    10767: "Talk",
    10768: "War & Politics",
    37: "Western",
}

ANIMATION_GENRE_ID = 16

# UI label (lowercase) -> upstream genre name, per media vocabulary
GENRE_SYNONYMS = {
    "movie": {
        "sci-fi": "Science Fiction",
        "scifi": "Science Fiction",
        "sci fi": "Science Fiction",
        "romcom": "Romance",
        "rom-com": "Romance",
        "kids": "Family",
        "musical": "Music",
        "suspense": "Thriller",
        "action & adventure": "Action",
        "sci-fi & fantasy": "Science Fiction",
    },
    "tv": {
        "sci-fi": "Sci-Fi & Fantasy",
        "scifi": "Sci-Fi & Fantasy",
        "sci fi": "Sci-Fi & Fantasy",
        "science fiction": "Sci-Fi & Fantasy",
        "fantasy": "Sci-Fi & Fantasy",
        "action": "Action & Adventure",
        "adventure": "Action & Adventure",
        "war": "War & Politics",
        "thriller": "Mystery",
        "suspense": "Mystery",
        "romance": "Drama",
        "romcom": "Comedy",
        "horror": "Mystery",
    },
}

GENRE_TABLES = {
    "movie": TMDB_MOVIE_GENRES,
    "tv": TMDB_TV_GENRES,
}


def normalize_country_code(code: str | None):
    """
    Uppercase a raw country code, returning an empty string when absent.

    Args:
        code (str | None): Upstream country value.

    Returns:
        str: Two-letter code in uppercase or an empty string.
    """
    return clean_text(code).upper()


def country_to_region(code: str | None):
    """
    Map a country code to a region label.

    Args:
        code (str | None): ISO 3166-1 alpha-2 code.

    Returns:
        str: Region label, ``Other`` for unmapped codes or ``Unknown`` when absent.
    """
    normalized = normalize_country_code(code)
    if not normalized or normalized == UNKNOWN_LABEL.upper():
        return UNKNOWN_LABEL
    return COUNTRY_TO_REGION.get(normalized, "Other")


def language_to_country(language: str | None):
    """
    Guess an origin country from a spoken language code.

    Args:
        language (str | None): ISO 639-1 code such as ``ja``.

    Returns:
        str | None: Country code or None when the language is not mapped.
    """
    normalized = clean_text(language).lower()
    if not normalized:
        return None
    return LANGUAGE_TO_COUNTRY.get(normalized)


def region_label_to_country_codes(label: str | None):
    """
    Resolve a region label to the country codes it covers.

    Args:
        label (str | None): Region label, matched case-insensitively.

    Returns:
        list[str]: Country codes, empty when the label has no codes.
    """
    lowered = clean_text(label).lower()
    for region, countries in REGION_TO_COUNTRIES.items():
        if region.lower() == lowered:
            return list(countries)
    return []


def canonical_region_label(label: str | None):
    """
    Return the canonical spelling of a region label.

    Args:
        label (str | None): Region label in any case.

    Returns:
        str | None: Matching entry of ``REGION_LABELS`` or None.
    """
    lowered = clean_text(label).lower()
    for region in REGION_LABELS:
        if region.lower() == lowered:
            return region
    return None


def resolve_origin(origin_countries: list | None = None, language: str | None = None, fallback_country: str | None = None):
    """
    Derive the country and region of an upstream item.

    Args:
        origin_countries (list | None): Explicit origin countries, first one wins.
        language (str | None): Original language, used when no country is given.
        fallback_country (str | None): Country implied by the upstream query, used last.

    Returns:
        tuple[str, str]: ``(country, region)`` with ``Unknown`` placeholders.
    """
    country = ""
    for candidate in origin_countries or []:
        country = normalize_country_code(candidate)
        if country:
            break
    if not country and fallback_country:
        country = normalize_country_code(fallback_country)
    if not country:
        country = normalize_country_code(language_to_country(language))
    if not country:
        return UNKNOWN_LABEL, UNKNOWN_LABEL
    return country, country_to_region(country)


def canonical_genre_name(label: str | None, media: str = "movie"):
    """
    Rewrite a UI genre label into the upstream vocabulary of a media type.

    Args:
        label (str | None): Genre label shown in the UI.
        media (str): ``movie`` or ``tv``.

    Returns:
        str: Rewritten label, or the stripped input when no synonym applies.
    """
    text = clean_text(label)
    return GENRE_SYNONYMS.get(media, {}).get(text.lower(), text)


def resolve_genre_id(label: str | None, media: str = "movie"):
    """
    Resolve a UI genre label to a TMDB genre identifier.

    Args:
        label (str | None): Genre label shown in the UI.
        media (str): ``movie`` or ``tv``.

    Returns:
        int | None: Genre id, or None when nothing matches exactly (case-insensitive).
    """
    name = canonical_genre_name(label, media).lower()
    if not name:
        return None
    for genre_id, genre_name in GENRE_TABLES.get(media, {}).items():
        if genre_name.lower() == name:
            return genre_id
    return None


def genre_names_from_ids(genre_ids: list | None, media: str = "movie"):
    """
    Translate TMDB genre ids back into names, dropping unknown ids.

    Args:
        genre_ids (list | None): Ids found on an upstream result.
        media (str): ``movie`` or ``tv``.

    Returns:
        list[str]: Genre names in upstream order.
    """
    table = GENRE_TABLES.get(media, {})
    names = []
    for genre_id in genre_ids or []:
        name = table.get(genre_id)
        if name and name not in names:
            names.append(name)
    return names
