# tests/test_auth_api.py

AUTH = "/api/v1/auth"


def _register(client, email="dana@example.com", password="s3cret-pass", name="Dana"):
    return client.post(f"{AUTH}/register", json={"email": email, "password": password, "name": name})


def test_register_returns_token_and_user(client) -> None:
    response = _register(client, email="Dana@Example.com")

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["token_type"] == "bearer"
    assert data["access_token"]
    assert data["user"]["email"] == "dana@example.com"
    assert "password_hash" not in data["user"]


def test_register_rejects_duplicate_email(client) -> None:
    _register(client)

    response = _register(client)

    assert response.status_code == 409
    assert response.json()["error"]["code"] == "CONFLICT"


def test_register_validates_input(client) -> None:
    response = _register(client, email="not-an-email")

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


def test_login_and_me(client) -> None:
    _register(client)

    login = client.post(f"{AUTH}/login", json={"email": "dana@example.com", "password": "s3cret-pass"})
    assert login.status_code == 200
    token = login.json()["data"]["access_token"]
    assert login.json()["data"]["user"]["last_login"] is not None

    me = client.get(f"{AUTH}/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["data"]["name"] == "Dana"


def test_login_with_wrong_password(client) -> None:
    _register(client)

    response = client.post(f"{AUTH}/login", json={"email": "dana@example.com", "password": "wrong-pass"})

    assert response.status_code == 401
    assert response.json()["error"]["code"] == "UNAUTHORIZED"


def test_token_lets_new_user_manage_tasks(client) -> None:
    token = _register(client).json()["data"]["access_token"]
    headers = {"Authorization": f"Bearer {token}"}

    created = client.post("/api/v1/tasks/", json={"title": "First task"}, headers=headers)

    assert created.status_code == 201
    assert created.json()["data"]["order"] == 0
