from pattern_mirror.api_v1 import deps
from pattern_mirror.auth import create_access_token, create_auth_code
from pattern_mirror.core.models import AnalyticsEventType
from pattern_mirror.main import app

CREDENTIALS = {"username": "ada", "password": "analytical-engine"}


def signup(client, credentials=CREDENTIALS):
    return client.post("/api/auth/signup", json=credentials)


def test_signup_signs_in(db_client, analytics):
    response = signup(db_client)

    assert response.status_code == 201
    assert response.json()["token_type"] == "bearer"
    assert "access_token=" in response.headers["set-cookie"]

    me = db_client.get("/api/auth/me")
    assert me.status_code == 200
    assert me.json()["username"] == "ada"
    [event] = analytics.of_type(AnalyticsEventType.USER_SIGNUP)
    assert str(event["user_id"]) == me.json()["id"]


def test_duplicate_signup_is_rejected(db_client):
    signup(db_client)
    response = signup(db_client)
    assert response.status_code == 400
    assert response.json()["detail"] == "Username already registered"


def test_signup_validates_password_length(db_client):
    response = signup(db_client, {"username": "ada", "password": "short"})
    assert response.status_code == 422


def test_login_with_form(db_client, analytics):
    signup(db_client)
    db_client.cookies.clear()

    response = db_client.post("/api/auth/token", data=CREDENTIALS)

    assert response.status_code == 200
    token = response.json()["access_token"]
    db_client.cookies.clear()
    me = db_client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.json()["username"] == "ada"
    assert len(analytics.of_type(AnalyticsEventType.USER_LOGIN)) == 1


def test_login_with_wrong_password(db_client, analytics):
    signup(db_client)
    response = db_client.post("/api/auth/token", data={"username": "ada", "password": "wrong-password"})
    assert response.status_code == 401
    assert analytics.of_type(AnalyticsEventType.USER_LOGIN) == []


def test_me_requires_a_session(db_client):
    assert db_client.get("/api/auth/me").status_code == 401
    response = db_client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


def test_signout_clears_cookie(db_client):
    signup(db_client)
    response = db_client.post("/api/auth/signout")
    assert response.status_code == 204
    cookie = response.headers["set-cookie"]
    assert cookie.startswith("access_token=")
    assert "Max-Age=0" in cookie


def test_callback_with_valid_code_sets_session(db_client):
    signup(db_client)
    db_client.cookies.clear()

    response = db_client.get("/auth/callback", params={"code": create_auth_code("ada")}, follow_redirects=False)

    assert response.status_code in (302, 307)
    assert response.headers["location"] == "/"
    assert "access_token=" in response.headers["set-cookie"]


def test_callback_rejects_bad_codes(db_client):
    signup(db_client)
    db_client.cookies.clear()

    for code in ("garbage", create_access_token({"sub": "ada"}), create_auth_code("nobody")):
        response = db_client.get("/auth/callback", params={"code": code}, follow_redirects=False)
        assert response.headers["location"] == "/"
        assert "set-cookie" not in response.headers


def test_readings_are_owned_by_session_user(db_client, fake_client, memory_store, reading_text):
    app.dependency_overrides[deps.get_completion_client] = lambda: fake_client
    app.dependency_overrides[deps.get_reading_store] = lambda: memory_store
    fake_client.queue(reading_text)
    signup(db_client)

    reading_id = db_client.post(
        "/api/generate-reading",
        json={"name": "Ada", "birthDate": "1990-01-01", "birthCity": "London, UK"},
    ).json()["readingId"]

    mine = db_client.get("/api/readings").json()
    assert [r["readingId"] for r in mine] == [reading_id]


def test_concurrent_duplicate_signup_is_rejected(db_client, monkeypatch):
    signup(db_client)

    async def not_found(db, username):
        return None

    # Simulates the second request passing the existence check before the first commits
    monkeypatch.setattr("pattern_mirror.api_v1.endpoints.auth.get_user_by_username", not_found)
    response = signup(db_client)

    assert response.status_code == 400
    assert response.json()["detail"] == "Username already registered"
