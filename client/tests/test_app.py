from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from avatargen.config import Settings
from avatargen.main import create_app

SELFIE = {"file": ("selfie.png", b"\x89PNG\r\n", "image/png")}


@pytest.fixture
def make_client(fake_supabase, backend_factory):
    def _make(**backend_kwargs):
        settings = Settings(api_url="http://backend.test", avatar_bucket="avatars")
        app = create_app(settings, supabase=fake_supabase, backend=backend_factory(**backend_kwargs))
        return TestClient(app)

    return _make


def _sign_in(client: TestClient) -> None:
    resp = client.post("/auth/sign-in", json={"email": "user@example.com", "password": "hunter2"})
    assert resp.status_code == 200
    assert resp.json()["user_id"] == "u1"


def test_full_upload_flow(make_client, fake_supabase):
    with make_client() as client:
        assert client.get("/auth/session").json() == {"authenticated": False, "user_id": None, "email": None}
        _sign_in(client)

        selected = client.post("/uploads/file", files=SELFIE)
        assert selected.status_code == 200
        assert selected.json()["extension"] == "png"

        resp = client.post("/uploads")
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "succeeded"
        assert body["message"] == "Success! AI is generating your avatar."
        assert body["storage_path"].startswith("u1/")
        assert body["generation_id"] == "gen-1"

        status = client.get("/uploads/status").json()
        assert status == {
            "status": "succeeded",
            "text": "Success! AI is generating your avatar.",
            "reason": None,
            "busy": False,
        }

    assert fake_supabase.auth.unsubscribed == 1


def test_upload_without_file_is_rejected(make_client, fake_supabase):
    with make_client() as client:
        _sign_in(client)
        resp = client.post("/uploads")

    assert resp.status_code == 400
    assert resp.json()["detail"] == "You must select an image to upload."
    assert fake_supabase.calls == []


def test_upload_requires_session(make_client, fake_supabase):
    with make_client() as client:
        client.post("/uploads/file", files=SELFIE)
        resp = client.post("/uploads")

    assert resp.status_code == 401
    assert fake_supabase.calls == []


def test_backend_failure_reported_in_status(make_client, fake_supabase):
    with make_client(status_code=500, body={"error": "Database error"}) as client:
        _sign_in(client)
        client.post("/uploads/file", files=SELFIE)
        body = client.post("/uploads").json()
        status = client.get("/uploads/status").json()

    assert body["status"] == "failed"
    assert body["object_stored"] is True
    assert status["text"] == "Error occurred: Database error"


def test_sign_in_with_bad_password(make_client):
    with make_client() as client:
        resp = client.post("/auth/sign-in", json={"email": "user@example.com", "password": "nope"})

    assert resp.status_code == 401


def test_status_stream_sends_snapshot(make_client):
    with make_client() as client:
        with client.websocket_connect("/uploads/status/ws") as ws:
            frame = ws.receive_json()

    assert frame == {"status": "idle", "text": "", "reason": None, "busy": False}


def test_sign_out_clears_session(make_client):
    with make_client() as client:
        _sign_in(client)
        assert client.post("/auth/sign-out").json()["authenticated"] is False
        assert client.get("/auth/session").json()["authenticated"] is False


def test_sign_in_provider_outage_is_not_an_auth_failure(make_client, fake_supabase):
    fake_supabase.auth.sign_in_error = ConnectionError("auth service unreachable")

    with make_client() as client:
        with pytest.raises(ConnectionError):
            client.post("/auth/sign-in", json={"email": "user@example.com", "password": "hunter2"})


def test_status_stream_pushes_each_transition(make_client):
    with make_client() as client:
        _sign_in(client)
        client.post("/uploads/file", files=SELFIE)
        with client.websocket_connect("/uploads/status/ws") as ws:
            assert ws.receive_json()["status"] == "idle"
            assert client.post("/uploads").json()["status"] == "succeeded"
            frames = [ws.receive_json() for _ in range(4)]

    assert [frame["status"] for frame in frames] == ["uploading", "resolved", "notifying", "succeeded"]
    assert frames[-1]["text"] == "Success! AI is generating your avatar."
