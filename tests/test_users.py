def test_create_user_is_idempotent_by_email(client, database) -> None:
    first = client.post("/users", json={"email": "student@sportsplus.com", "name": "Sam"})
    second = client.post("/users", json={"email": "student@sportsplus.com", "name": "Samuel"})

    assert first.status_code == 200
    assert first.json()["acknowledged"] is True
    assert first.json()["insertedId"]
    assert second.json() == {"message": "user already exists"}
    assert len(database.users.find({"email": "student@sportsplus.com"})) == 1


def test_create_user_does_not_store_unset_role(client, database) -> None:
    client.post("/users", json={"email": "student@sportsplus.com", "photo": "me.png"})

    stored = database.users.find_one({"email": "student@sportsplus.com"})
    assert "role" not in stored
    assert stored["photo"] == "me.png"


def test_create_user_rejects_unknown_role(client) -> None:
    response = client.post("/users", json={"email": "student@sportsplus.com", "role": "superuser"})

    assert response.status_code == 422
    assert response.json()["error"] is True


def test_is_admin_checks_stored_role(client, admin) -> None:
    response = client.get("/users/admin/admin@sportsplus.com", headers=admin)

    assert response.json() == {"admin": True}


def test_is_admin_is_false_for_another_identity(client, database, auth_header) -> None:
    database.users.insert({"email": "boss@sportsplus.com", "role": "admin"})

    response = client.get("/users/admin/boss@sportsplus.com", headers=auth_header("student@sportsplus.com"))

    assert response.json() == {"admin": False}


def test_is_instructor(client, database, auth_header) -> None:
    database.users.insert({"email": "coach@sportsplus.com", "role": "instructor"})
    headers = auth_header("coach@sportsplus.com")

    assert client.get("/users/instructor/coach@sportsplus.com", headers=headers).json() == {"instructor": True}
    assert client.get("/users/admin/coach@sportsplus.com", headers=headers).json() == {"admin": False}


def test_is_instructor_requires_token(client) -> None:
    response = client.get("/users/instructor/coach@sportsplus.com")

    assert response.status_code == 401


def test_promote_user_roles(client, database) -> None:
    user_id = database.users.insert({"email": "coach@sportsplus.com"})

    response = client.patch(f"/users/instructor/{user_id}")

    assert response.json() == {"acknowledged": True, "matchedCount": 1, "modifiedCount": 1}
    assert database.users.get(user_id)["role"] == "instructor"

    client.patch(f"/users/admin/{user_id}")
    assert database.users.get(user_id)["role"] == "admin"


def test_users_by_role(client, database) -> None:
    database.users.insert({"email": "coach@sportsplus.com", "role": "instructor"})
    database.users.insert({"email": "student@sportsplus.com"})

    response = client.get("/allUsers/instructor")

    assert [u["email"] for u in response.json()] == ["coach@sportsplus.com"]
    assert isinstance(response.json()[0]["_id"], str)


def test_users_by_unknown_role_is_rejected(client) -> None:
    response = client.get("/allUsers/janitor")

    assert response.status_code == 422


def test_promote_missing_user_is_not_found(client) -> None:
    response = client.patch("/users/admin/64b7f0c2a1b2c3d4e5f60718")

    assert response.status_code == 404
    assert response.json() == {"error": True, "message": "User not found"}


def test_promote_with_invalid_id_is_bad_request(client) -> None:
    response = client.patch("/users/admin/not-an-id")

    assert response.status_code == 400
    assert response.json() == {"error": True, "message": "Invalid id"}


def test_role_check_matches_mixed_case_domain(client, database) -> None:
    client.post("/users", json={"email": "Sam@Gmail.com"})
    user_id = database.users.find()[0]["_id"]
    client.patch(f"/users/admin/{user_id}")
    token = client.post("/jwt", json={"email": "Sam@Gmail.com"}).json()["token"]

    response = client.get("/users/admin/Sam@Gmail.com", headers={"Authorization": f"Bearer {token}"})

    assert response.json() == {"admin": True}
