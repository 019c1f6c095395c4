import logging
import re

from bson import ObjectId
from bson.errors import InvalidId
from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from items_functions import clean_text, safe_float, safe_int

logger = logging.getLogger(__name__)

UNKNOWN_TYPE = "unknown"


def object_id_candidates(identifier: str):
    """
    Return the identifier plus its ObjectId form when it parses as one.

    Args:
        identifier (str): Raw identifier.

    Returns:
        list: Values to match against an id field.
    """
    candidates = [identifier]
    try:
        candidates.append(ObjectId(identifier))
    except (InvalidId, TypeError):
        pass
    return candidates


def find_profile(user_id: str, profiles_collection: Collection):
    """
    Locate the profile document owned by a user.

    Args:
        user_id (str): User identifier, plain string or ObjectId hex.
        profiles_collection (Collection): MongoDB collection handle.

    Returns:
        dict | None: Profile document or None.
    """
    identifier = clean_text(user_id)
    if not identifier:
        return None
    return profiles_collection.find_one({"userId": {"$in": object_id_candidates(identifier)}})


def profile_list_entries(profile: dict | None):
    """
    Return the well-formed list entries of a profile.

    Args:
        profile (dict | None): Profile document.

    Returns:
        list[dict]: Entries that are dictionaries.
    """
    if not isinstance(profile, dict):
        return []
    entries = profile.get("lists")
    if not isinstance(entries, list):
        return []
    return [entry for entry in entries if isinstance(entry, dict)]


def entry_type(entry: dict):
    """Lowercased type of a saved entry, ``unknown`` when missing."""
    return clean_text(entry.get("type")).lower() or UNKNOWN_TYPE


def entry_matches_item(entry: dict | None, external_id: str = "", url: str = "", name: str = "", item_type: str = ""):
    """
    Check whether a saved list entry refers to an item identity.

    An ``externalId`` match wins, then the url, then the name. A requested
    type narrows the name match; without one any saved type is accepted.

    Args:
        entry (dict | None): Saved list entry.
        external_id (str): Upstream identifier.
        url (str): Item url.
        name (str): Item title.
        item_type (str): Item type.

    Returns:
        bool: True when the entry refers to the identity.
    """
    if not entry or not isinstance(entry, dict):
        return False
    external_id = clean_text(external_id)
    url = clean_text(url)
    name = clean_text(name)

    entry_external = clean_text(entry.get("externalId"))
    if external_id and entry_external and entry_external == external_id:
        return True
    entry_url = clean_text(entry.get("url"))
    if url and entry_url and entry_url == url:
        return True
    if name and clean_text(entry.get("name")).lower() == name.lower():
        wanted_type = clean_text(item_type).lower()
        return not wanted_type or entry_type(entry) == wanted_type
    return False


def build_exclusion_set(entries: list[dict]):
    """
    Build the identity keys of a user's saved items.

    Args:
        entries (list[dict]): Saved list entries.

    Returns:
        set[tuple[str, ...]]: ``("id", externalId)`` keys, or ``("title", name, type)``
        keys for entries without an external id.
    """
    keys = set()
    for entry in entries:
        external_id = clean_text(entry.get("externalId"))
        if external_id:
            keys.add(("id", external_id))
            continue
        name = clean_text(entry.get("name")).lower()
        if name:
            keys.add(("title", name, entry_type(entry)))
    return keys


def is_excluded(item: dict, exclusion_keys: set):
    """
    Tell whether a canonical item is already saved by the user.

    Args:
        item (dict): Canonical item.
        exclusion_keys (set): Keys from ``build_exclusion_set``.

    Returns:
        bool: True when the item's id or ``(title, type)`` is excluded.
    """
    if not exclusion_keys:
        return False
    item_id = clean_text(item.get("id"))
    if item_id and ("id", item_id) in exclusion_keys:
        return True
    title = clean_text(item.get("title")).lower()
    item_kind = clean_text(item.get("type")).lower() or UNKNOWN_TYPE
    return ("title", title, item_kind) in exclusion_keys


def load_exclusions(user_id: str | None, profiles_collection: Collection | None):
    """
    Load the exclusion keys of a user, treating store failures as no exclusions.

    Args:
        user_id (str | None): Requesting user.
        profiles_collection (Collection | None): MongoDB collection handle.

    Returns:
        set: Exclusion keys, empty when the user or profile is unknown.
    """
    if not clean_text(user_id) or profiles_collection is None:
        return set()
    try:
        profile = find_profile(user_id, profiles_collection)
    except PyMongoError as exc:
        logger.warning("could not load profile %s for exclusions: %s", user_id, exc)
        return set()
    return build_exclusion_set(profile_list_entries(profile))


def build_review_query(external_id: str = "", url: str = "", name: str = "", item_type: str = ""):
    """
    Build a MongoDB filter for profiles holding a reviewed entry of an item.

    Args:
        external_id (str): Upstream identifier.
        url (str): Item url.
        name (str): Item title, matched case-insensitively.
        item_type (str): Item type narrowing a name match.

    Returns:
        dict: Filter using ``$elemMatch`` on ``lists``.
    """
    identity = []
    if clean_text(external_id):
        identity.append({"externalId": clean_text(external_id)})
    if clean_text(url):
        identity.append({"url": clean_text(url)})
    if clean_text(name):
        by_name = {"name": {"$regex": f"^{re.escape(clean_text(name))}$", "$options": "i"}}
        if clean_text(item_type):
            by_name["type"] = clean_text(item_type).lower()
        identity.append(by_name)
    element = {"review": {"$exists": True, "$nin": ["", None]}}
    if identity:
        element["$or"] = identity
    return {"lists": {"$elemMatch": element}}


def find_users_by_ids(user_ids: list, users_collection: Collection | None):
    """
    Fetch user documents keyed by their string id.

    Args:
        user_ids (list): Identifiers taken from profiles.
        users_collection (Collection | None): MongoDB collection handle.

    Returns:
        dict[str, dict]: Users by ``str(_id)``.
    """
    if users_collection is None or not user_ids:
        return {}
    candidates = []
    for user_id in user_ids:
        candidates.extend(object_id_candidates(str(user_id)))
    users = {}
    for user in users_collection.find({"_id": {"$in": candidates}}, {"passwordHash": 0, "refreshTokens": 0}):
        users[str(user.get("_id"))] = user
    return users


def username_of(user: dict | None, fallback: str = ""):
    """
    Pick a public username for a user document.

    Args:
        user (dict | None): User document.
        fallback (str): Value used when nothing else is available.

    Returns:
        str: Username, else the email local part, else the name, else ``fallback``.
    """
    if not user:
        return fallback
    username = clean_text(user.get("username"))
    if username:
        return username
    email = clean_text(user.get("email"))
    if email:
        return email.split("@")[0]
    return clean_text(user.get("name")) or fallback


def build_review(profile: dict, entry: dict, user: dict | None):
    """
    Shape one public review from a profile, its matching entry and its owner.

    Args:
        profile (dict): Profile document.
        entry (dict): Matching list entry.
        user (dict | None): Owner's user document.

    Returns:
        dict: Review payload.
    """
    user_id = str(profile.get("userId") or "")
    return {
        "user": {
            "id": user_id,
            "username": username_of(user, user_id),
            "name": clean_text((user or {}).get("name")),
        },
        "avatarUrl": clean_text(profile.get("avatarUrl")),
        "rating": safe_float(entry.get("rating")),
        "review": clean_text(entry.get("review")),
        "rewatchCount": safe_int(entry.get("rewatchCount")),
        "status": clean_text(entry.get("status")),
        "type": clean_text(entry.get("type")),
        "name": clean_text(entry.get("name")),
    }


def collect_reviews(profiles_collection: Collection, users_collection: Collection | None, external_id: str = "", url: str = "", name: str = "", item_type: str = ""):
    """
    Assemble the public review feed of an item across all profiles.

    Args:
        profiles_collection (Collection): Profiles collection.
        users_collection (Collection | None): Users collection for display names.
        external_id (str): Upstream identifier.
        url (str): Item url.
        name (str): Item title.
        item_type (str): Item type.

    Returns:
        dict: ``{"count": int, "reviews": list}`` sorted by rating then username.
    """
    matches = []
    for profile in profiles_collection.find(build_review_query(external_id, url, name, item_type)):
        for entry in profile_list_entries(profile):
            if not clean_text(entry.get("review")):
                continue
            if entry_matches_item(entry, external_id, url, name, item_type):
                matches.append((profile, entry))
                break

    users = find_users_by_ids([profile.get("userId") for profile, _entry in matches if profile.get("userId")], users_collection)
    reviews = [build_review(profile, entry, users.get(str(profile.get("userId")))) for profile, entry in matches]
    reviews.sort(key=lambda review: (-review["rating"], review["user"]["username"].lower()))
    return {"count": len(reviews), "reviews": reviews}
