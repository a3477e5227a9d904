"""Integration tests for the device, subscription and episode endpoints."""
from __future__ import annotations

import json

import pytest
from fastapi.testclient import TestClient


@pytest.fixture()
def bob_client(client: TestClient) -> TestClient:
    response = client.post("/api/2/auth/bob/login.json", auth=("bob", "abc"))
    assert response.status_code == 200
    return client


def test_device_create_and_partial_update(bob_client: TestClient) -> None:
    response = bob_client.post(
        "/api/2/devices/bob/phone.json", json={"caption": "My Phone", "type": "Mobile"}
    )
    assert response.status_code == 200

    response = bob_client.post("/api/2/devices/bob/phone.json", json={"caption": "Work phone"})
    assert response.status_code == 200

    devices = bob_client.get("/api/2/devices/bob.json").json()
    assert devices == [
        {"id": "phone", "caption": "Work phone", "type": "mobile", "subscriptions": 0}
    ]


def test_device_unknown_type_is_other(bob_client: TestClient) -> None:
    bob_client.post("/api/2/devices/bob/tv.json", json={"type": "television"})

    [device] = bob_client.get("/api/2/devices/bob.json").json()
    assert device["type"] == "other"
    assert device["caption"] == ""


def test_device_id_is_validated(bob_client: TestClient) -> None:
    response = bob_client.post("/api/2/devices/bob/bad%20id.json", json={})

    assert response.status_code == 400


def test_device_list_counts_active_subscriptions(bob_client: TestClient) -> None:
    bob_client.post(
        "/api/2/subscriptions/bob/phone.json",
        json={"add": ["http://a", "http://b"], "remove": []},
    )
    bob_client.post("/api/2/subscriptions/bob/phone.json", json={"add": [], "remove": ["http://b"]})

    [device] = bob_client.get("/api/2/devices/bob.json").json()
    assert device["id"] == "phone"
    assert device["subscriptions"] == 1


def test_subscription_upload_and_download(bob_client: TestClient) -> None:
    response = bob_client.post(
        "/api/2/subscriptions/bob/phone.json",
        json={"add": ["http://a", " http://a "], "remove": []},
    )

    assert response.status_code == 200
    body = response.json()
    assert isinstance(body["timestamp"], int)
    assert body["update_urls"] == [["http://a", "http://a"]]

    changes = bob_client.get("/api/2/subscriptions/bob/phone.json", params={"since": 0}).json()
    assert changes["add"] == ["http://a"]
    assert changes["remove"] == []
    assert isinstance(changes["timestamp"], int)


def test_subscription_conflict_is_bad_request(bob_client: TestClient) -> None:
    response = bob_client.post(
        "/api/2/subscriptions/bob/phone.json",
        json={"add": ["http://a"], "remove": ["http://a"]},
    )

    assert response.status_code == 400
    assert bob_client.get("/api/2/devices/bob.json").json() == []


def test_subscription_negative_cursor_rejected(bob_client: TestClient) -> None:
    response = bob_client.get("/api/2/subscriptions/bob/phone.json", params={"since": -1})

    assert response.status_code == 422


def test_episode_upload_and_download(bob_client: TestClient) -> None:
    actions = [
        {"podcast": "http://feed", "episode": "http://feed/1.mp3", "action": "download"},
        {
            "podcast": "http://feed",
            "episode": "http://feed/2.mp3",
            "device": "phone",
            "action": "PLAY",
            "timestamp": "2009-12-12T09:00:00",
            "started": 15,
            "position": 120,
            "total": 500,
        },
    ]

    upload = bob_client.post("/api/2/episodes/bob.json", json=actions)
    assert upload.status_code == 200
    assert set(upload.json()) == {"timestamp"}

    body = bob_client.get("/api/2/episodes/bob.json", params={"since": 0}).json()
    by_episode = {action["episode"]: action for action in body["actions"]}

    download = by_episode["http://feed/1.mp3"]
    assert download["action"] == "download"
    assert download["timestamp"] == "1970-01-01T00:00:00"
    assert "guid" not in download
    assert "position" not in download
    assert "device" not in download

    play = by_episode["http://feed/2.mp3"]
    assert play["action"] == "play"
    assert play["device"] == "phone"
    assert play["timestamp"] == "2009-12-12T09:00:00"
    assert (play["started"], play["position"], play["total"]) == (15, 120, 500)

    assert body["timestamp"] >= upload.json()["timestamp"]


def test_episode_replay_does_not_advance(bob_client: TestClient) -> None:
    action = {"podcast": "p", "episode": "e", "action": "new"}
    bob_client.post("/api/2/episodes/bob.json", json=[action])
    cursor = bob_client.get("/api/2/episodes/bob.json").json()["timestamp"]

    bob_client.post("/api/2/episodes/bob.json", json=[action])

    assert bob_client.get("/api/2/episodes/bob.json", params={"since": cursor}).json()["actions"] == []


def test_episode_filters(bob_client: TestClient) -> None:
    bob_client.post(
        "/api/2/episodes/bob.json",
        json=[
            {"podcast": "p", "episode": "1", "action": "new", "device": "phone"},
            {"podcast": "q", "episode": "2", "action": "new", "device": "laptop"},
        ],
    )

    by_podcast = bob_client.get("/api/2/episodes/bob.json", params={"podcast": "q"}).json()
    assert [a["episode"] for a in by_podcast["actions"]] == ["2"]

    by_device = bob_client.get(
        "/api/2/episodes/bob.json", params={"device": "phone", "aggregated": "true"}
    ).json()
    assert [a["episode"] for a in by_device["actions"]] == ["1"]


def test_play_without_position_is_rejected(bob_client: TestClient) -> None:
    response = bob_client.post(
        "/api/2/episodes/bob.json",
        json=[{"podcast": "p", "episode": "e", "action": "play", "position": 10}],
    )

    assert response.status_code == 422
    assert response.json()["message"] == "Validation failed"
    assert response.json()["detail"][0]["type"] == "value_error"


def test_unknown_action_is_rejected(bob_client: TestClient) -> None:
    response = bob_client.post(
        "/api/2/episodes/bob.json",
        json=[{"podcast": "p", "episode": "e", "action": "flag"}],
    )

    assert response.status_code == 422


def test_file_backend_round_trip(file_client: TestClient, tmp_path) -> None:
    auth = ("bob", "abc")
    user_dir = tmp_path / "data" / "users" / "bob"

    response = file_client.post(
        "/api/2/subscriptions/bob/phone.json", json={"add": ["http://a"]}, auth=auth
    )
    assert response.status_code == 200
    created = response.json()["timestamp"]
    assert (user_dir / "subs.txt").read_text() == f"phone {created} - http://a\n"
    assert (user_dir / "devices.txt").read_text() == "phone other \n"

    file_client.post(
        "/api/2/episodes/bob.json",
        json=[{"podcast": "p", "episode": "e", "action": "new", "guid": "g"}],
        auth=auth,
    )
    [line] = (user_dir / "episodes.txt").read_text().splitlines()
    stored = json.loads(line)
    assert stored["guid"] == "g"
    assert "timestamp" not in stored
    assert len(stored["content_hash"]) == 64

    changes = file_client.get("/api/2/subscriptions/bob/phone.json", auth=auth).json()
    assert changes["add"] == ["http://a"]
    episodes = file_client.get("/api/2/episodes/bob.json", auth=auth).json()
    assert [a["guid"] for a in episodes["actions"]] == ["g"]


@pytest.fixture(params=["client", "file_client"])
def any_client(request) -> TestClient:
    return request.getfixturevalue(request.param)


@pytest.mark.parametrize(
    "payload",
    [
        {"add": ["http://a/feed\nx"]},
        {"add": ["http://a/my feed"]},
        {"remove": ["http://a/\rfeed"]},
    ],
)
def test_malformed_subscription_urls_leave_account_readable(
    any_client: TestClient, payload: dict
) -> None:
    auth = ("bob", "abc")

    response = any_client.post("/api/2/subscriptions/bob/phone.json", json=payload, auth=auth)
    assert response.status_code == 422

    assert any_client.get("/api/2/subscriptions/bob/phone.json", auth=auth).status_code == 200
    assert any_client.get("/api/2/devices/bob.json", auth=auth).json() == []


@pytest.mark.parametrize("device", ["a\nb", "my phone"])
def test_malformed_episode_device_leaves_account_readable(
    any_client: TestClient, device: str
) -> None:
    auth = ("bob", "abc")
    action = {"podcast": "p", "episode": "e", "action": "new", "device": device}

    response = any_client.post("/api/2/episodes/bob.json", json=[action], auth=auth)
    assert response.status_code == 422

    assert any_client.get("/api/2/devices/bob.json", auth=auth).json() == []
    assert any_client.get("/api/2/episodes/bob.json", auth=auth).json()["actions"] == []


def test_device_segment_splits_at_first_dot(bob_client: TestClient) -> None:
    response = bob_client.post("/api/2/devices/bob/my.device.json", json={})
    assert response.status_code == 400

    response = bob_client.get("/api/2/subscriptions/bob/my.device.json")
    assert response.status_code == 400

    assert bob_client.get("/api/2/devices/bob.json").json() == []
