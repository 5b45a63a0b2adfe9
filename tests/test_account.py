from sqlalchemy import func, select
from werkzeug.security import check_password_hash

from models import User, UserAccount


def account_count(db_session):
    return db_session.execute(select(func.count(UserAccount.user_id))).scalar_one()


def test_account_requires_login(client):
    assert client.get("/account").status_code == 401
    assert client.put("/account", json={"favorite_team_id": 1}).status_code == 401


def test_account_without_profile(auth_client, user):
    resp = auth_client.get("/account")

    assert resp.status_code == 200
    assert resp.headers["Cache-Control"].startswith("no-store")
    assert resp.get_json() == {"user": user.to_dict(), "account": None}


def test_set_and_clear_favorite_team(auth_client, db_session):
    resp = auth_client.put("/account", json={"favorite_team_id": 7})
    assert resp.status_code == 200
    assert resp.get_json()["account"]["favorite_team_name"] == "Team07"

    account = auth_client.get("/account").get_json()["account"]
    assert account["favorite_team_id"] == 7
    assert account["podcast"] is False

    resp = auth_client.put("/account", json={"favorite_team_id": None})
    assert resp.get_json()["account"]["favorite_team_name"] is None
    assert account_count(db_session) == 1


def test_unknown_favorite_team(auth_client, db_session):
    resp = auth_client.put("/account", json={"favorite_team_id": 999})

    assert resp.status_code == 400
    assert account_count(db_session) == 0


def test_empty_update_is_rejected(auth_client):
    assert auth_client.put("/account", json={}).status_code == 400
    assert auth_client.put("/account", json={"email": "", "password": ""}).status_code == 400
    assert auth_client.put("/account", data="not json").status_code == 400


def test_change_email(auth_client, db_session, user):
    resp = auth_client.put("/account", json={"email": "moved@example.com"})

    assert resp.status_code == 200
    body = resp.get_json()
    assert body["emailUpdated"] is True
    assert body["user"]["email"] == "moved@example.com"
    assert auth_client.get("/auth/me").get_json()["user"]["email"] == "moved@example.com"


def test_email_must_be_valid_and_unused(auth_client, other_user):
    assert auth_client.put("/account", json={"email": "not-an-email"}).status_code == 400

    resp = auth_client.put("/account", json={"email": other_user.email})
    assert resp.status_code == 409
    assert resp.get_json()["error"] == "Email already in use."


def test_same_email_is_not_a_change(auth_client, user):
    resp = auth_client.put("/account", json={"email": user.email, "favorite_team_id": 2})

    assert resp.status_code == 200
    assert resp.get_json()["emailUpdated"] is False


def test_change_password(client, auth_client, db_session, user, password):
    resp = auth_client.put("/account", json={
        "password": "newsecret", "password_confirm": "newsecret", "current_password": password,
    })
    assert resp.status_code == 200

    stored = db_session.execute(select(User.pw_hash).where(User.id == user.id)).scalar_one()
    assert check_password_hash(stored, "newsecret")

    client.post("/auth/logout")
    assert client.post("/auth/login", json={"username": user.username, "password": password}).status_code == 401
    assert client.post("/auth/login", json={"username": user.username, "password": "newsecret"}).status_code == 200


def test_password_change_rules(auth_client, password):
    assert auth_client.put("/account", json={"password": "newsecret"}).status_code == 400
    assert auth_client.put("/account", json={
        "password": "newsecret", "current_password": "wrong",
    }).status_code == 400
    assert auth_client.put("/account", json={
        "password": "123", "current_password": password,
    }).status_code == 400
    assert auth_client.put("/account", json={
        "password": "newsecret", "password_confirm": "other", "current_password": password,
    }).status_code == 400


def test_failed_update_changes_nothing(auth_client, db_session, user):
    resp = auth_client.put("/account", json={"email": "moved@example.com", "favorite_team_id": 999})

    assert resp.status_code == 400
    assert auth_client.get("/auth/me").get_json()["user"]["email"] == user.email
    assert account_count(db_session) == 0


def test_media_profile(auth_client):
    resp = auth_client.put("/account", json={
        "podcast": True, "podcast_url": " https://pod.example.com ", "podcast_followers": 1200,
    })
    account = resp.get_json()["account"]
    assert account["podcast"] is True
    assert account["podcast_url"] == "https://pod.example.com"
    assert account["podcast_followers"] == 1200
    assert account["podcast_verified"] is False

    # turning the flag off clears the url, even if one is sent alongside
    resp = auth_client.put("/account", json={"podcast": False, "podcast_url": "https://ignored.example.com"})
    account = resp.get_json()["account"]
    assert account["podcast"] is False
    assert account["podcast_url"] is None
    assert account["podcast_followers"] == 1200


def test_verified_flags_cannot_be_set_by_the_user(auth_client):
    resp = auth_client.put("/account", json={"sports_media": True, "sports_media_verified": True})

    assert resp.status_code == 200
    assert resp.get_json()["account"]["sports_media_verified"] is False


def test_media_field_types(auth_client):
    assert auth_client.put("/account", json={"podcast": "Y"}).status_code == 400
    assert auth_client.put("/account", json={"podcast_followers": -1}).status_code == 400
    assert auth_client.put("/account", json={"sports_broadcast_url": 5}).status_code == 400
