"""
Shared fixtures: fake HTTP session, fake MongoDB collections and a manual clock.
No network, MongoDB or redis is needed to run the suite.
"""

import os
import sys

import pytest
import requests

sys.path.insert(0, os.path.dirname(__file__))

from cache_functions import MemoryResponseCache


class FakeResponse:
    def __init__(self, payload=None, status_code=200, raise_on_json=False):
        self.payload = payload
        self.status_code = status_code
        self.raise_on_json = raise_on_json

    @property
    def ok(self):
        return 200 <= self.status_code < 300

    def json(self):
        if self.raise_on_json:
            raise ValueError("not json")
        return self.payload


class FakeSession:
    """Routes requests by URL substring; each route returns a response or raises."""

    def __init__(self):
        self.routes = []
        self.calls = []

    def add(self, fragment, *outcomes):
        self.routes.append([fragment, list(outcomes)])
        return self

    def calls_to(self, fragment):
        return [call for call in self.calls if fragment in call["url"]]

    def request(self, method, url, timeout=None, **kwargs):
        self.calls.append({"method": method, "url": url, "timeout": timeout, **kwargs})
        for fragment, outcomes in self.routes:
            if fragment in url:
                outcome = outcomes.pop(0) if len(outcomes) > 1 else outcomes[0]
                if callable(outcome) and not isinstance(outcome, FakeResponse):
                    outcome = outcome(method, url, kwargs)
                if isinstance(outcome, Exception):
                    raise outcome
                if isinstance(outcome, FakeResponse):
                    return outcome
                return FakeResponse(outcome)
        raise requests.ConnectionError(f"no fake route for {url}")


class FakeCollection:
    """Minimal stand-in for a pymongo collection; filters are recorded, not evaluated."""

    def __init__(self, documents=None, error=None):
        self.documents = list(documents or [])
        self.error = error
        self.queries = []

    def find(self, query=None, projection=None):
        self.queries.append(query)
        if self.error:
            raise self.error
        if query and "_id" in query and "$in" in query["_id"]:
            wanted = {str(value) for value in query["_id"]["$in"]}
            return [doc for doc in self.documents if str(doc.get("_id")) in wanted]
        return list(self.documents)

    def find_one(self, query=None, projection=None):
        self.queries.append(query)
        if self.error:
            raise self.error
        if query and "userId" in query:
            wanted = {str(value) for value in query["userId"]["$in"]}
            for doc in self.documents:
                if str(doc.get("userId")) in wanted:
                    return doc
            return None
        return self.documents[0] if self.documents else None


class ManualClock:
    def __init__(self, start=1000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def cache(clock):
    return MemoryResponseCache(default_ttl=120, clock=clock)


@pytest.fixture
def no_sleep():
    delays = []
    return delays


@pytest.fixture
def source_kwargs(session, cache, no_sleep):
    return {"session": session, "cache": cache, "retries": 1, "sleep": no_sleep.append}


def tmdb_movie(movie_id, title, genre_ids=(28,), language="en", origin=None, vote=7.0, popularity=50.0):
    record = {
        "id": movie_id,
        "title": title,
        "original_title": title,
        "vote_average": vote,
        "genre_ids": list(genre_ids),
        "original_language": language,
        "popularity": popularity,
        "poster_path": f"/{movie_id}.jpg",
        "overview": f"About {title}",
        "release_date": "2020-01-01",
    }
    if origin is not None:
        record["origin_country"] = list(origin)
    return record


def tmdb_show(show_id, name, genre_ids=(18,), language="en", origin=("US",), vote=8.0, popularity=50.0):
    return {
        "id": show_id,
        "name": name,
        "original_name": name,
        "vote_average": vote,
        "genre_ids": list(genre_ids),
        "original_language": language,
        "origin_country": list(origin),
        "popularity": popularity,
        "poster_path": None,
        "overview": None,
        "first_air_date": "2019-05-01",
    }


def google_volume(volume_id, title, categories=("Fiction",), country="US", rating=4.0):
    return {
        "id": volume_id,
        "volumeInfo": {
            "title": title,
            "averageRating": rating,
            "categories": list(categories),
            "authors": ["A. Writer"],
            "imageLinks": {"thumbnail": f"http://books.example/{volume_id}.jpg"},
            "publishedDate": "2001",
            "language": "en",
        },
        "saleInfo": {"country": country},
    }


def spotify_track(track_id, name, popularity=60):
    return {
        "id": track_id,
        "name": name,
        "popularity": popularity,
        "artists": [{"name": "Artist One"}, {"name": "Artist Two"}],
        "album": {"name": "Album", "release_date": "2015-12-04", "images": [{"url": f"https://img.example/{track_id}.png"}]},
        "preview_url": None,
        "external_urls": {"spotify": f"https://open.spotify.com/track/{track_id}"},
    }
