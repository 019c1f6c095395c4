import logging
import os

from dotenv import load_dotenv
from flask import Flask, jsonify, request
from flask_cors import CORS
from pymongo import MongoClient
from pymongo.errors import PyMongoError
import redis
from werkzeug.exceptions import HTTPException

from cache_functions import *
from catalog_functions import *
from fetch_functions import InvalidRequestParameter, UpstreamError
from items_functions import *
from profiles_functions import collect_reviews
from recommendations_functions import recommend

load_dotenv()

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = Flask(__name__)
app.config["JSON_SORT_KEYS"] = False
CORS(app, resources={r"/*": {"origins": os.getenv("CLIENT_URL", "*")}}, supports_credentials=True)

MONGO_URI = os.getenv("MONGO_URI", "mongodb://localhost:27017")
client = MongoClient(MONGO_URI, serverSelectionTimeoutMS=int(os.getenv("MONGO_TIMEOUT_MS", 5000)))
db = client[os.getenv("MONGO_DB", "entertainment")]
profiles_collection = db["profiles"]
users_collection = db["users"]

CACHE_BACKEND = os.getenv("CACHE_BACKEND", "memory")
CACHE_TTL_SECONDS = int(os.getenv("CACHE_TTL_SECONDS", 120))
CACHE_MAX_ENTRIES = int(os.getenv("CACHE_MAX_ENTRIES", 0))
DEFAULT_ITEMS_LIMIT = int(os.getenv("DEFAULT_ITEMS_LIMIT", 40))
MAX_ITEMS_LIMIT = int(os.getenv("MAX_ITEMS_LIMIT", 120))

r = None
if CACHE_BACKEND.strip().lower() == "redis":
    r = redis.Redis(
        host=os.environ.get("REDIS_HOST", "localhost"),
        port=int(os.environ.get("REDIS_PORT", 6379)),
        db=int(os.environ.get("REDIS_DB", 0)),
    )

response_cache = create_response_cache(CACHE_BACKEND, CACHE_TTL_SECONDS, CACHE_MAX_ENTRIES, redis_client=r)

catalog = build_catalog(
    response_cache,
    tmdb_api_key=os.getenv("TMDB_API_KEY", ""),
    tmdb_access_token=os.getenv("TMDB_ACCESS_TOKEN", ""),
    google_books_api_key=os.getenv("GOOGLE_BOOKS_API_KEY", ""),
    spotify_client_id=os.getenv("SPOTIFY_CLIENT_ID", ""),
    spotify_client_secret=os.getenv("SPOTIFY_CLIENT_SECRET", ""),
    retries=int(os.getenv("UPSTREAM_RETRIES", 1)),
    cache_ttl=CACHE_TTL_SECONDS,
    max_workers=int(os.getenv("FANOUT_WORKERS", 5)),
)


@app.route("/", methods=["GET"])
def health():
    """
    Handle GET requests for the health check.

    Returns:
        Response: Flask response with an ok flag.
    """
    return jsonify({"ok": True})


@app.route("/items", methods=["GET"])
@app.route("/getItemsOf/items", methods=["GET"])
def get_items():
    """
    Handle GET requests for catalog items of one type or of every type.

    Returns:
        Response: Flask response with canonical items or error payload.
    """
    search = request.args.get("search", "")
    requested_type = clean_text(request.args.get("type")).lower() or "all"
    genre = request.args.get("genre")
    region = request.args.get("region")
    categories = request.args.get("categories")
    limit = parse_limit_param(request.args.get("limit"), DEFAULT_ITEMS_LIMIT, MAX_ITEMS_LIMIT)

    if requested_type == "all":
        result = catalog.aggregate_all(search, genre, region, limit, categories=categories)
        response = jsonify(result.items)
        if result.failures:
            response.headers["X-Failed-Sources"] = ",".join(sorted(result.failures))
        return response

    genres = (categories or genre) if requested_type == "books" else genre
    try:
        items = catalog.fetch_type(requested_type, search, genres, region, limit)
    except InvalidRequestParameter as exc:
        return jsonify({"error": str(exc)}), 400
    except UpstreamError as exc:
        logger.error("items request for %s failed: %s", requested_type, exc)
        return jsonify({"error": str(exc)}), 500
    return jsonify(items)


@app.route("/recommendations", methods=["GET"])
def get_recommendations():
    """
    Handle GET requests for mood-based recommendations.

    Returns:
        Response: Flask response with ranked items, possibly empty.
    """
    items = recommend(
        catalog,
        mood=request.args.get("mood"),
        types=request.args.get("types"),
        limit=request.args.get("limit"),
        user_id=request.args.get("userId"),
        seed=request.args.get("q"),
        profiles_collection=profiles_collection,
    )
    return jsonify(items)


@app.route("/reviews", methods=["GET"])
def get_reviews():
    """
    Handle GET requests for the public reviews of an item.

    Returns:
        Response: Flask response with review count and entries or error payload.
    """
    external_id = clean_text(request.args.get("externalId"))
    url = clean_text(request.args.get("url"))
    name = clean_text(request.args.get("name"))
    item_type = clean_text(request.args.get("type"))

    if not external_id and not url and not name:
        return jsonify({"error": "externalId, url or name query parameter is required"}), 400

    try:
        feed = collect_reviews(profiles_collection, users_collection, external_id, url, name, item_type)
    except PyMongoError as exc:
        logger.error("reviews lookup failed: %s", exc)
        return jsonify({"error": "Failed to fetch reviews"}), 500
    return jsonify(feed)


@app.errorhandler(HTTPException)
def handle_http_error(exc: HTTPException):
    """
    Render framework errors (404, 405...) as JSON.

    Args:
        exc (HTTPException): Raised error.

    Returns:
        Response: JSON error payload with the original status.
    """
    return jsonify({"error": exc.description or exc.name}), exc.code


@app.errorhandler(Exception)
def handle_unexpected_error(exc: Exception):
    """
    Render any unhandled exception as a JSON 500.

    Args:
        exc (Exception): Raised error.

    Returns:
        Response: JSON error payload.
    """
    logger.exception("unhandled error on %s", request.path)
    return jsonify({"error": str(exc) or "Internal server error"}), 500


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=int(os.getenv("PORT", 5000)), debug=False)
