from bson import ObjectId


def test_add_and_list_watchlist(client, make_movie):
    alien = make_movie(title="Alien")
    make_movie(title="Heat")

    response = client.post("/watchlist", json={"email": "ann@example.com", "movieId": alien})
    assert response.status_code == 201
    assert response.get_json()["acknowledged"] is True

    movies = client.get("/watchlist/ann@example.com").get_json()
    assert [movie["title"] for movie in movies] == ["Alien"]
    assert client.get("/watchlist/bob@example.com").get_json() == []


def test_add_same_movie_twice_conflicts(client, store, make_movie):
    movie_id = make_movie()
    client.post("/watchlist", json={"email": "ann@example.com", "movieId": movie_id})

    response = client.post("/watchlist", json={"email": "ann@example.com", "movieId": movie_id})
    assert response.status_code == 409
    assert store.watchlist.count_documents({}) == 1


def test_add_requires_email_and_movie(client):
    assert client.post("/watchlist", json={"email": "ann@example.com"}).status_code == 400
    assert client.post("/watchlist", json={"movieId": str(ObjectId())}).status_code == 400


def test_remove_from_watchlist(client, make_movie):
    movie_id = make_movie()
    client.post("/watchlist", json={"email": "ann@example.com", "movieId": movie_id})

    response = client.delete(f"/watchlist/ann@example.com/{movie_id}")
    assert response.status_code == 200
    assert response.get_json()["deletedCount"] == 1

    assert client.delete(f"/watchlist/ann@example.com/{movie_id}").status_code == 404


def test_list_skips_dangling_and_malformed_references(client, store, make_movie):
    movie_id = make_movie(title="Alien")
    store.watchlist.insert_many(
        [
            {"email": "ann@example.com", "movieId": movie_id, "addedAt": "2024-01-01T00:00:00.000Z"},
            {"email": "ann@example.com", "movieId": "not-an-object-id", "addedAt": "2024-01-01T00:00:00.000Z"},
            {"email": "ann@example.com", "movieId": str(ObjectId()), "addedAt": "2024-01-01T00:00:00.000Z"},
        ]
    )

    response = client.get("/watchlist/ann@example.com")
    assert response.status_code == 200
    assert [movie["title"] for movie in response.get_json()] == ["Alien"]


def test_deleting_movie_leaves_watchlist_entries(client, store, make_movie):
    movie_id = make_movie()
    client.post("/watchlist", json={"email": "ann@example.com", "movieId": movie_id})
    client.delete(f"/movies/{movie_id}")

    assert store.watchlist.count_documents({"email": "ann@example.com"}) == 1
    assert client.get("/watchlist/ann@example.com").get_json() == []


def test_watchlist_count(client, make_movie):
    for title in ("Alien", "Heat"):
        client.post("/watchlist", json={"email": "ann@example.com", "movieId": make_movie(title=title)})

    assert client.get("/stats/watchlist-count/ann@example.com").get_json() == {"watchlistCount": 2}
    assert client.get("/stats/watchlist-count/bob@example.com").get_json() == {"watchlistCount": 0}
