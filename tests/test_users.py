def test_register_user(client, store):
    response = client.post("/users", json={"email": "ann@example.com", "name": "Ann", "photoURL": "http://img/ann.png"})
    assert response.status_code == 201
    body = response.get_json()
    assert body["acknowledged"] is True

    user = store.users.find_one({"email": "ann@example.com"})
    assert str(user["_id"]) == body["insertedId"]
    assert user["name"] == "Ann"
    assert user["createdAt"]


def test_register_user_is_idempotent(client, store):
    client.post("/users", json={"email": "ann@example.com", "name": "Ann"})

    response = client.post("/users", json={"email": "ann@example.com", "name": "Someone else"})
    assert response.status_code == 200
    assert response.get_json() == {"message": "User already exists", "insertedId": None}

    assert store.users.count_documents({"email": "ann@example.com"}) == 1
    assert store.users.find_one({"email": "ann@example.com"})["name"] == "Ann"


def test_register_user_requires_email(client, store):
    assert client.post("/users", json={"name": "Ann"}).status_code == 400
    assert client.post("/users").status_code == 400
    assert store.users.count_documents({}) == 0


def test_users_count(client):
    client.post("/users", json={"email": "ann@example.com"})
    client.post("/users", json={"email": "bob@example.com"})
    client.post("/users", json={"email": "bob@example.com"})

    assert client.get("/stats/users-count").get_json() == {"totalUsers": 2}
