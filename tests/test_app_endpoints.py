import time

from fastapi.testclient import TestClient

from mfgdash.app import create_app
from mfgdash.auth.session import SessionIdentity
from mfgdash.auth.users import UserStore
from mfgdash.config import Settings


class _BrokenStore(UserStore):
    def find_by_email(self, email):
        raise RuntimeError("db://user:pw@host down")


def _signup(client, payload):
    return client.post("/auth/signup", json=payload)


def test_signup_then_repeat(client, signup_payload):
    r = _signup(client, signup_payload)
    assert r.status_code == 201
    body = r.json()
    assert body["message"] == "User created successfully"
    user = body["user"]
    assert user["id"]
    assert {k: user[k] for k in ("fullName", "email", "businessName")} == {
        "fullName": "A",
        "email": "a@b.com",
        "businessName": "Acme",
    }
    assert "password" not in user and "passwordHash" not in user

    r = _signup(client, signup_payload)
    assert r.status_code == 400
    assert r.json() == {"error": "User with this email already exists"}


def test_signup_validation_error(client, signup_payload):
    r = _signup(client, {**signup_payload, "email": "nope"})
    assert r.status_code == 400
    assert r.json() == {"error": "Invalid email address"}


def test_signup_malformed_body(client):
    r = client.post("/auth/signup", content=b"{not json", headers={"content-type": "application/json"})
    assert r.status_code == 400


def test_signup_store_failure_is_generic_500(client, settings, signup_payload):
    settings.users_path.parent.mkdir(parents=True, exist_ok=True)
    settings.users_path.write_text("users: [unclosed", encoding="utf-8")
    r = _signup(client, signup_payload)
    assert r.status_code == 500
    assert r.json() == {"error": "Something went wrong"}


def test_login_wrong_then_right_password(client, settings, signup_payload):
    _signup(client, signup_payload)

    r = client.post("/auth/login", json={"email": "a@b.com", "password": "wrong-pw"})
    assert r.status_code == 401
    assert "error" in r.json()
    assert settings.cookie_name not in r.cookies

    r = client.post("/auth/login", json={"email": "a@b.com", "password": "secret1"})
    assert r.status_code == 200
    assert r.json()["user"]["businessName"] == "Acme"
    assert r.cookies.get(settings.cookie_name)

    session_user = client.get("/auth/session").json()["user"]
    assert set(session_user) == {"id", "name", "businessName"}
    assert (session_user["name"], session_user["businessName"]) == ("A", "Acme")


def test_dashboard_without_token_redirects(client):
    r = client.get("/dashboard", follow_redirects=False)
    assert r.status_code == 303
    assert r.headers["location"].startswith("/login")


def test_dashboard_with_bad_token_redirects(client, settings):
    client.cookies.set(settings.cookie_name, "forged.token.value")
    r = client.get("/dashboard", follow_redirects=False)
    assert r.status_code == 303
    assert r.headers["location"].startswith("/login")


def test_dashboard_with_valid_session(client, signup_payload):
    _signup(client, signup_payload)
    client.post("/auth/login", json={"email": "a@b.com", "password": "secret1"})
    r = client.get("/dashboard", follow_redirects=False)
    assert r.status_code == 200
    assert "Welcome back, A!" in r.text
    assert "Acme" in r.text


def test_bearer_header_is_accepted(client, signup_payload):
    _signup(client, signup_payload)
    r = client.post("/auth/login", json={"email": "a@b.com", "password": "secret1"})
    token = r.cookies.get("mfg_session")
    client.cookies.clear()
    r = client.get("/dashboard", headers={"Authorization": f"Bearer {token}"}, follow_redirects=False)
    assert r.status_code == 200


def test_session_endpoint_without_session(client):
    assert client.get("/auth/session").json() == {}


def test_form_signup_logs_in_and_redirects(client, settings, signup_payload):
    r = client.post("/signup", data=signup_payload, follow_redirects=False)
    assert r.status_code == 303
    assert r.headers["location"] == "/dashboard"
    assert r.cookies.get(settings.cookie_name)
    assert "Welcome back, A!" in client.get("/dashboard").text


def test_form_login_error_rerenders(client, signup_payload):
    _signup(client, signup_payload)
    r = client.post("/login", data={"email": "a@b.com", "password": "wrong-pw"}, follow_redirects=False)
    assert r.status_code == 401
    assert "Invalid email or password" in r.text


def test_form_login_ignores_offsite_next(client, signup_payload):
    _signup(client, signup_payload)
    r = client.post(
        "/login",
        data={"email": "a@b.com", "password": "secret1", "next": "//evil.example"},
        follow_redirects=False,
    )
    assert r.status_code == 303
    assert r.headers["location"] == "/dashboard"


def test_logout_clears_session(client, signup_payload):
    client.post("/signup", data=signup_payload, follow_redirects=False)
    r = client.post("/logout", follow_redirects=False)
    assert r.status_code == 303
    assert r.headers["location"] == "/login"
    assert client.get("/dashboard", follow_redirects=False).status_code == 303


def test_old_session_is_refreshed(tmp_path, signup_payload):
    settings = Settings(secret_key="test-secret", users_path=tmp_path / "users.yml", session_refresh_age=0)
    client = TestClient(create_app(settings))
    client.post("/signup", data=signup_payload, follow_redirects=False)
    r = client.get("/dashboard", follow_redirects=False)
    assert r.status_code == 200
    assert settings.cookie_name in r.headers.get("set-cookie", "")


def test_dashboard_with_expired_token_redirects(client, settings, sessions, monkeypatch):
    token = sessions.issue(SessionIdentity(user_id="u1", name="A", business_name="Acme"))
    now = time.time()
    monkeypatch.setattr(time, "time", lambda: now + settings.session_max_age + 60)
    client.cookies.set(settings.cookie_name, token)
    r = client.get("/dashboard", follow_redirects=False)
    assert r.status_code == 303
    assert r.headers["location"].startswith("/login")


def test_form_routes_hide_store_failures(settings, signup_payload):
    client = TestClient(create_app(settings, store=_BrokenStore(settings.users_path)))

    r = client.post("/signup", data=signup_payload, follow_redirects=False)
    assert r.status_code == 500
    assert r.headers["content-type"].startswith("text/html")
    assert "Something went wrong" in r.text
    assert "db://" not in r.text

    r = client.post("/login", data={"email": "a@b.com", "password": "secret1"}, follow_redirects=False)
    assert r.status_code == 500
    assert "Something went wrong" in r.text
    assert "db://" not in r.text


def test_unhandled_error_returns_generic_json(settings):
    app = create_app(settings)

    @app.get("/boom")
    def boom():
        raise RuntimeError("db://user:pw@host down")

    client = TestClient(app, raise_server_exceptions=False)
    r = client.get("/boom")
    assert r.status_code == 500
    assert r.json() == {"error": "Something went wrong"}


def test_bearer_session_is_not_refreshed_into_cookie(tmp_path, signup_payload):
    settings = Settings(secret_key="test-secret", users_path=tmp_path / "users.yml", session_refresh_age=0)
    client = TestClient(create_app(settings))
    _signup(client, signup_payload)
    token = client.post("/auth/login", json={"email": "a@b.com", "password": "secret1"}).cookies.get(
        settings.cookie_name
    )
    client.cookies.clear()

    r = client.get("/dashboard", headers={"Authorization": f"Bearer {token}"}, follow_redirects=False)
    assert r.status_code == 200
    assert settings.cookie_name not in r.headers.get("set-cookie", "")


def test_rejected_token_is_verified_once(settings, monkeypatch):
    app = create_app(settings)
    sessions = app.state.sessions
    calls = []
    real_verify = sessions.verify

    def counting_verify(token):
        calls.append(token)
        return real_verify(token)

    monkeypatch.setattr(sessions, "verify", counting_verify)
    client = TestClient(app)
    client.cookies.set(settings.cookie_name, "forged.token.value")
    r = client.get("/dashboard", follow_redirects=False)
    assert r.status_code == 303
    assert calls == ["forged.token.value"]
