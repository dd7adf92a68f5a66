from meetups import models
from meetups.auth_utils import create_access_token
from meetups.db import SessionLocal


def test_register_and_login(client):
    register_resp = client.post(
        "/api/auth/register",
        json={"name": "Mina", "email": "Mina@Example.com", "password": "password123"},
    )
    assert register_resp.status_code == 200
    user = register_resp.json()
    assert user["email"] == "mina@example.com"

    duplicate = client.post(
        "/api/auth/register",
        json={"name": "Mina", "email": "mina@example.com", "password": "password123"},
    )
    assert duplicate.status_code == 400

    login_resp = client.post(
        "/api/auth/login", json={"email": "mina@example.com", "password": "password123"}
    )
    assert login_resp.status_code == 200
    token = login_resp.json()["access_token"]
    assert login_resp.json()["token_type"] == "bearer"

    me = client.get("/api/users/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["id"] == user["id"]

    wrong = client.post("/api/auth/login", json={"email": "mina@example.com", "password": "nope"})
    assert wrong.status_code == 401


def test_invalid_tokens_are_rejected(client):
    assert client.get("/api/users/me").status_code == 401
    assert client.get("/api/users/me", headers={"Authorization": "Bearer garbage"}).status_code == 401
    unknown = create_access_token(987654)
    assert client.get("/api/users/me", headers={"Authorization": f"Bearer {unknown}"}).status_code == 401


def test_users_can_only_delete_themselves(client, make_user, headers_for):
    alice = make_user("alice")
    bob = make_user("bob")

    assert client.delete(f"/api/users/{bob}", headers=headers_for(alice)).status_code == 400
    assert client.delete(f"/api/users/{alice}", headers=headers_for(alice)).status_code == 204

    with SessionLocal() as session:
        deleted = session.get(models.User, alice)
        assert deleted is not None
        assert deleted.deleted_at is not None

    # a soft-deleted account can no longer authenticate
    assert client.get("/api/users/me", headers=headers_for(alice)).status_code == 401
    login = client.post("/api/auth/login", json={"email": "alice@example.com", "password": "password123"})
    assert login.status_code == 401


def test_deleted_member_no_longer_counts_toward_club_capacity(
    client, make_user, make_club, headers_for
):
    leader = make_user("leader")
    member = make_user("member")
    newcomer = make_user("newcomer")
    club_id = make_club(leader, member_ids=[member], max_people=2)

    assert client.post(f"/api/clubs/{club_id}/join", headers=headers_for(newcomer)).status_code == 409
    client.delete(f"/api/users/{member}", headers=headers_for(member))
    assert client.post(f"/api/clubs/{club_id}/join", headers=headers_for(newcomer)).status_code == 204
