from datetime import timedelta

from chainxchange.core.security import create_access_token, verify_password
from chainxchange.crud.user import user as crud_user


def test_register_login_and_read_current_user(client, db_session):
    response = client.post(
        "/users", json={"username": "satoshi", "email": "Satoshi@Example.com", "password": "hodl-forever"}
    )
    assert response.status_code == 201, response.text
    created = response.json()["data"]
    assert created["email"] == "satoshi@example.com"
    assert created["wallet"] == 0
    assert "password" not in created and "hashed_password" not in created

    stored = crud_user.get(db_session, created["id"])
    assert stored.hashed_password != "hodl-forever"
    assert verify_password("hodl-forever", stored.hashed_password)

    login = client.post("/users/login", json={"username": "satoshi", "password": "hodl-forever"})
    assert login.status_code == 200, login.text
    token = login.json()["data"]["token"]
    assert token["token_type"] == "bearer"

    me = client.get("/users/me", headers={"Authorization": f"Bearer {token['access_token']}"})
    assert me.status_code == 200
    assert me.json()["data"]["username"] == "satoshi"


def test_registration_requires_password(client):
    response = client.post("/users", json={"username": "nopass", "email": "nopass@test.com"})

    assert response.status_code == 422


def test_login_with_wrong_password_is_rejected(client, user_factory):
    user_factory("alice")

    wrong = client.post("/users/login", json={"username": "alice", "password": "guess"})
    unknown = client.post("/users/login", json={"username": "nobody", "password": "guess"})

    assert wrong.status_code == 401
    assert wrong.json()["error"]["message"] == "Invalid username or password"
    assert unknown.status_code == 401


def test_duplicate_email_conflicts(client, user_factory):
    user_factory("taken")

    response = client.post(
        "/users", json={"username": "other", "email": "taken@test.com", "password": "secret"}
    )

    assert response.status_code == 409
    assert response.json()["error"]["code"] == "CONFLICT"


def test_missing_or_invalid_token_is_unauthorized(client, user_factory):
    trader = user_factory()
    expired = create_access_token(trader.id, trader.username, expires_delta=timedelta(minutes=-1))

    assert client.get("/users/me").status_code == 401
    assert client.get("/users/me", headers={"Authorization": "Bearer not-a-jwt"}).status_code == 401
    assert client.get("/users/me", headers={"Authorization": f"Bearer {expired}"}).status_code == 401

    # A user id header alone no longer identifies anyone
    response = client.get("/users/me", headers={"X-User-Id": str(trader.id)})
    assert response.status_code == 401
    assert response.json()["error"]["message"] == "Unauthorized"
    assert response.headers["X-Request-ID"] == response.json()["request_id"]


def test_token_for_deleted_user_is_unauthorized(client, auth_headers, user_factory, db_session):
    trader = user_factory()
    headers = auth_headers(trader)
    crud_user.delete(db_session, id=trader.id)

    assert client.get("/users/me", headers=headers).status_code == 401
