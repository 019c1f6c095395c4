"""
HTTP tests for the items, recommendations and reviews endpoints.
Upstream catalogs and MongoDB are replaced by in-memory fakes.
"""

import pytest
from pymongo.errors import ServerSelectionTimeoutError

import items as items_module
from cache_functions import MemoryResponseCache
from catalog_functions import build_catalog
from conftest import FakeCollection, FakeResponse, FakeSession, google_volume, spotify_track, tmdb_movie, tmdb_show


@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def client(monkeypatch, session):
    catalog = build_catalog(
        MemoryResponseCache(),
        tmdb_api_key="key",
        spotify_client_id="id",
        spotify_client_secret="secret",
        session=session,
        sleep=lambda _seconds: None,
    )
    monkeypatch.setattr(items_module, "catalog", catalog)
    monkeypatch.setattr(items_module, "profiles_collection", FakeCollection([]))
    monkeypatch.setattr(items_module, "users_collection", FakeCollection([]))
    items_module.app.config["TESTING"] = True
    return items_module.app.test_client()


def route_everything(session):
    session.add("/discover/movie", {"results": [tmdb_movie(1, "Movie", vote=7.5)]})
    session.add("/discover/tv", {"results": [tmdb_show(2, "Show", genre_ids=[16], origin=["JP"], language="ja", vote=8.5)]})
    session.add("googleapis", {"items": [google_volume("b1", "Book", rating=4.5)]})
    session.add("accounts.spotify.com", {"access_token": "tok", "expires_in": 3600})
    session.add("api.spotify.com", {"tracks": {"items": [spotify_track("t1", "Track", popularity=65)]}})


class TestHealth:

    def test_health(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.get_json() == {"ok": True}

    def test_unknown_route_is_json(self, client):
        response = client.get("/nope")
        assert response.status_code == 404
        assert "error" in response.get_json()


class TestItemsEndpoint:

    def test_movie_discovery_by_region(self, client, session):
        session.add("/discover/movie", {"results": [
            tmdb_movie(1, "Ikiru", language="ja"),
            tmdb_movie(2, "Ran", origin=["JP"]),
        ]})
        response = client.get("/items?type=movies&region=Japanese")

        assert response.status_code == 200
        assert session.calls[0]["params"]["with_origin_country"] == "JP"
        body = response.get_json()
        assert len(body) == 2
        assert all(item["region"] == "Japanese" for item in body)

    def test_book_multi_category(self, client, session):
        session.add("googleapis", {"items": [
            google_volume("b1", "Novel", ["Fiction"]),
            google_volume("b2", "Past", ["History / Europe"]),
            google_volume("b3", "Cooking", ["Cooking"]),
        ]})
        response = client.get("/items?type=books&categories=Fiction,History")

        assert response.status_code == 200
        assert [item["id"] for item in response.get_json()] == ["b1", "b2"]

    def test_all_types_in_order(self, client, session):
        route_everything(session)
        response = client.get("/getItemsOf/items?type=all")

        assert response.status_code == 200
        assert [item["type"] for item in response.get_json()] == ["movies", "series", "books", "anime", "music"]
        assert "X-Failed-Sources" not in response.headers

    def test_type_defaults_to_all(self, client, session):
        route_everything(session)
        assert len(client.get("/items").get_json()) == 5

    def test_all_types_tolerates_a_failing_source(self, client, session):
        route_everything(session)
        session.routes.insert(0, ["googleapis", [FakeResponse({}, status_code=503)]])
        response = client.get("/items?type=all")

        assert response.status_code == 200
        assert [item["type"] for item in response.get_json()] == ["movies", "series", "anime", "music"]
        assert response.headers["X-Failed-Sources"] == "books"

    def test_unsupported_type_is_400(self, client):
        response = client.get("/items?type=games")
        assert response.status_code == 400
        assert response.get_json() == {"error": "Invalid or unsupported type"}

    def test_direct_upstream_failure_is_500(self, client, session):
        session.add("/search/movie", FakeResponse({}, status_code=500))
        response = client.get("/items?type=movies&search=dune")

        assert response.status_code == 500
        assert "HTTP 500" in response.get_json()["error"]
        assert len(session.calls) == 2

    def test_second_identical_request_is_cached(self, client, session):
        session.add("/discover/tv", {"results": [tmdb_show(2, "Show")]})
        client.get("/items?type=series&genre=Drama")
        client.get("/items?type=series&genre=drama")
        assert len(session.calls) == 1

    def test_canonical_shape(self, client, session):
        route_everything(session)
        for item in client.get("/items?type=all").get_json():
            for field in ("title", "rating", "genre", "region", "thumbnail", "description"):
                assert item[field] is not None

    def test_limit_is_applied(self, client, session):
        session.add("/discover/movie", {"results": [tmdb_movie(i, f"M{i}") for i in range(10)]})
        assert len(client.get("/items?type=movies&limit=4").get_json()) == 4


class TestRecommendationsEndpoint:

    def test_unknown_mood_matches_chill(self, client, session):
        route_everything(session)
        unknown = client.get("/recommendations?mood=unknownvalue").get_json()
        chill = client.get("/recommendations?mood=chill").get_json()
        assert unknown == chill

    def test_ranked_and_limited(self, client, session):
        route_everything(session)
        response = client.get("/recommendations?mood=happy&limit=2")
        assert response.status_code == 200
        body = response.get_json()
        assert [item["id"] for item in body] == ["t1", "2"]

    def test_excludes_saved_items(self, client, session, monkeypatch):
        route_everything(session)
        profiles = FakeCollection([{"userId": "u1", "lists": [{"externalId": "t1", "name": "Track", "type": "music"}]}])
        monkeypatch.setattr(items_module, "profiles_collection", profiles)

        body = client.get("/recommendations?userId=u1").get_json()

        assert "t1" not in [item["id"] for item in body]
        assert len(body) == 4

    def test_all_sources_down_is_empty_200(self, client, session):
        session.add("themoviedb", FakeResponse({}, status_code=500))
        session.add("googleapis", FakeResponse({}, status_code=500))
        session.add("spotify.com", FakeResponse({}, status_code=500))
        response = client.get("/recommendations?mood=sad")
        assert response.status_code == 200
        assert response.get_json() == []


class TestReviewsEndpoint:

    def test_requires_identity(self, client):
        response = client.get("/reviews")
        assert response.status_code == 400
        assert "error" in response.get_json()

    def test_nonexistent_item_is_empty(self, client):
        response = client.get("/reviews?externalId=nonexistent")
        assert response.status_code == 200
        assert response.get_json() == {"count": 0, "reviews": []}

    def test_returns_matching_reviews(self, client, monkeypatch):
        monkeypatch.setattr(items_module, "profiles_collection", FakeCollection([
            {"userId": "u1", "lists": [{"externalId": "42", "name": "Dune", "type": "books", "rating": 5, "review": "Classic"}]},
        ]))
        monkeypatch.setattr(items_module, "users_collection", FakeCollection([{"_id": "u1", "name": "Zoe", "username": "zoe"}]))

        body = client.get("/reviews?externalId=42").get_json()

        assert body["count"] == 1
        assert body["reviews"][0]["user"] == {"id": "u1", "username": "zoe", "name": "Zoe"}

    def test_store_failure_is_json_500(self, client, monkeypatch):
        monkeypatch.setattr(items_module, "profiles_collection", FakeCollection(error=ServerSelectionTimeoutError("down")))
        response = client.get("/reviews?name=Dune")
        assert response.status_code == 500
        assert response.get_json() == {"error": "Failed to fetch reviews"}

    def test_name_lookup_without_type(self, client, monkeypatch):
        monkeypatch.setattr(items_module, "profiles_collection", FakeCollection([
            {"userId": "u1", "lists": [{"name": "Dune", "type": "books", "rating": 4, "review": "Classic"}]},
        ]))
        body = client.get("/reviews?name=dune").get_json()
        assert body["count"] == 1
        assert body["reviews"][0]["name"] == "Dune"
