"""Integration tests for the login/logout endpoints and request authorization."""
from __future__ import annotations

import uuid

from fastapi.testclient import TestClient


LOGIN_URL = "/api/2/auth/bob/login.json"
LOGOUT_URL = "/api/2/auth/bob/logout.json"
DEVICES_URL = "/api/2/devices/bob.json"


def login(client: TestClient, username: str = "bob", password: str = "abc"):
    return client.post(f"/api/2/auth/{username}/login.json", auth=(username, password))


def test_root_reports_working(client: TestClient) -> None:
    response = client.get("/")

    assert response.status_code == 200
    assert response.text == "PodSync is Working!"


def test_login_sets_session_cookie(client: TestClient) -> None:
    response = login(client)

    assert response.status_code == 200
    token = response.cookies["sessionid"]
    assert uuid.UUID(token).hex == token

    set_cookie = response.headers["set-cookie"].lower()
    assert "httponly" in set_cookie
    assert "samesite=strict" in set_cookie
    assert "path=/api" in set_cookie
    assert "max-age=1209600" in set_cookie


def test_cookie_authorizes_requests(client: TestClient) -> None:
    login(client)

    response = client.get(DEVICES_URL)

    assert response.status_code == 200
    assert response.json() == []


def test_relogin_with_cookie_keeps_token(client: TestClient) -> None:
    token = login(client).cookies["sessionid"]

    again = login(client)

    assert again.status_code == 200
    assert again.cookies["sessionid"] == token


def test_login_with_wrong_credentials(client: TestClient) -> None:
    response = client.post("/api/2/auth/tim/login.json", auth=("tim", "123"))

    assert response.status_code == 401
    assert response.json()["detail"] == "Unauthorized"
    assert response.headers["www-authenticate"].startswith("Basic")


def test_login_requires_matching_basic_user(client: TestClient) -> None:
    response = client.post(LOGIN_URL, auth=("alice", "xyz"))

    assert response.status_code == 401
    assert "sessionid" not in response.cookies


def test_login_without_credentials(client: TestClient) -> None:
    assert client.post(LOGIN_URL).status_code == 401


def test_logout_invalidates_session(client: TestClient) -> None:
    token = login(client).cookies["sessionid"]

    response = client.post(LOGOUT_URL)
    assert response.status_code == 200

    client.cookies.clear()
    stale = client.get(DEVICES_URL, headers={"Cookie": f"sessionid={token}"})
    assert stale.status_code == 401


def test_login_with_stale_cookie_is_rejected(client: TestClient) -> None:
    token = login(client).cookies["sessionid"]
    client.post(LOGOUT_URL)
    client.cookies.clear()

    response = client.post(
        LOGIN_URL, auth=("bob", "abc"), headers={"Cookie": f"sessionid={token}"}
    )

    assert response.status_code == 401


def test_login_with_foreign_cookie_is_server_error(client: TestClient) -> None:
    login(client)
    client.cookies.clear()

    response = client.post(
        LOGIN_URL,
        auth=("bob", "abc"),
        headers={"Cookie": f"sessionid={uuid.uuid4().hex}"},
    )

    assert response.status_code == 500
    assert response.json()["detail"] == "Internal server error"


def test_malformed_cookie_is_bad_request(client: TestClient) -> None:
    response = client.get(DEVICES_URL, headers={"Cookie": "sessionid=not-a-token"})

    assert response.status_code == 400


def test_requests_without_auth_are_rejected(client: TestClient) -> None:
    assert client.get(DEVICES_URL).status_code == 401
    assert client.get("/api/2/subscriptions/bob/phone.json").status_code == 401
    assert client.get("/api/2/episodes/bob.json").status_code == 401
    assert client.post(LOGOUT_URL).status_code == 401


def test_basic_auth_fallback_on_data_routes(client: TestClient) -> None:
    response = client.get(DEVICES_URL, auth=("bob", "abc"))

    assert response.status_code == 200
    assert "set-cookie" not in response.headers

    assert client.get(DEVICES_URL, auth=("bob", "wrong")).status_code == 401
    assert client.get(DEVICES_URL, auth=("alice", "xyz")).status_code == 401


def test_session_is_scoped_to_its_account(client: TestClient) -> None:
    login(client)

    assert client.get("/api/2/devices/alice.json").status_code == 401
    assert client.get("/api/2/subscriptions/alice/phone.json").status_code == 401
    assert client.post("/api/2/auth/alice/logout.json").status_code == 401


def test_unsupported_format_suffix(client: TestClient) -> None:
    login(client)

    assert client.get("/api/2/devices/bob.xml").status_code == 400
    assert client.get("/api/2/devices/bob").status_code == 400


def test_file_backend_login(file_client: TestClient, tmp_path) -> None:
    response = file_client.post(LOGIN_URL, auth=("bob", "abc"))

    assert response.status_code == 200
    token = response.cookies["sessionid"]
    creds = (tmp_path / "data" / "users" / "bob" / "creds.txt").read_text()
    assert f"session_id: {token}" in creds
