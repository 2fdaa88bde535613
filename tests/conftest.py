import fakeredis
import mongomock
import pytest

from movie_matrix import create_app


@pytest.fixture
def database():
    return mongomock.MongoClient()["movie_matrix_test"]


@pytest.fixture
def redis_client():
    return fakeredis.FakeRedis()


@pytest.fixture
def app(database, redis_client):
    app = create_app(database=database, redis_client=redis_client, lock_timeout=5, lock_wait=0.2)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def store(app):
    return app.extensions["movie_matrix"]


@pytest.fixture
def make_movie(client):
    def _make_movie(**overrides):
        payload = {"title": "Inception", "genre": "Sci-Fi", "rating": 8.5, "addedBy": "owner@example.com"}
        payload.update(overrides)
        response = client.post("/movies", json=payload)
        assert response.status_code == 201
        return response.get_json()["insertedId"]

    return _make_movie


@pytest.fixture
def post_review(client):
    def _post_review(movie_id, email, rating, **extra):
        payload = {"movieId": movie_id, "userEmail": email, "rating": rating}
        payload.update(extra)
        return client.post("/reviews", json=payload)

    return _post_review
