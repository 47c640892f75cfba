from __future__ import annotations

import json
from types import SimpleNamespace
from typing import Any, Callable, Optional

import httpx
import pytest
from supabase import AuthApiError

from avatargen.services.generation_backend import GenerationBackend

PUBLIC_BASE = "https://project.supabase.co/storage/v1/object/public"


class FakeBucket:
    def __init__(self, name: str, calls: list[tuple[str, Any]]) -> None:
        self.name = name
        self.calls = calls
        self.objects: dict[str, bytes] = {}
        self.upload_error: Optional[Exception] = None
        self.public_url: Optional[str] = None

    def upload(self, path: str, file: bytes, file_options: Optional[dict[str, str]] = None) -> Any:
        self.calls.append(("upload", path))
        if self.upload_error is not None:
            raise self.upload_error
        self.objects[path] = file
        return SimpleNamespace(path=path, full_path=f"{self.name}/{path}")

    def get_public_url(self, path: str) -> str:
        self.calls.append(("get_public_url", path))
        if self.public_url is not None:
            return self.public_url
        return f"{PUBLIC_BASE}/{self.name}/{path}"


class FakeStorage:
    def __init__(self, calls: list[tuple[str, Any]]) -> None:
        self.calls = calls
        self.buckets: dict[str, FakeBucket] = {}

    def from_(self, bucket: str) -> FakeBucket:
        if bucket not in self.buckets:
            self.buckets[bucket] = FakeBucket(bucket, self.calls)
        return self.buckets[bucket]


class FakeSubscription:
    def __init__(self, auth: "FakeAuth") -> None:
        self._auth = auth

    def unsubscribe(self) -> None:
        self._auth.callbacks.clear()
        self._auth.unsubscribed += 1


class FakeAuth:
    def __init__(self) -> None:
        self.session: Any = None
        self.callbacks: list[Callable[[str, Any], None]] = []
        self.unsubscribed = 0
        self.password = "hunter2"
        self.sign_in_error: Optional[Exception] = None

    def get_session(self) -> Any:
        return self.session

    def on_auth_state_change(self, callback: Callable[[str, Any], None]) -> FakeSubscription:
        self.callbacks.append(callback)
        return FakeSubscription(self)

    def emit(self, event: str, session: Any) -> None:
        self.session = session
        for callback in list(self.callbacks):
            callback(event, session)

    def sign_in_with_password(self, credentials: dict[str, str]) -> Any:
        if self.sign_in_error is not None:
            raise self.sign_in_error
        if credentials["password"] != self.password:
            raise AuthApiError("Invalid login credentials", 400, "invalid_credentials")
        session = make_raw_session("u1", credentials["email"])
        self.emit("SIGNED_IN", session)
        return SimpleNamespace(session=session, user=session.user)

    def sign_out(self) -> None:
        self.emit("SIGNED_OUT", None)


class FakeSupabase:
    def __init__(self) -> None:
        self.calls: list[tuple[str, Any]] = []
        self.storage = FakeStorage(self.calls)
        self.auth = FakeAuth()


def make_raw_session(user_id: str, email: str = "user@example.com") -> Any:
    return SimpleNamespace(user=SimpleNamespace(id=user_id, email=email), access_token="token")


@pytest.fixture
def fake_supabase() -> FakeSupabase:
    return FakeSupabase()


@pytest.fixture
def backend_factory(fake_supabase: FakeSupabase) -> Callable[..., GenerationBackend]:
    """Build a backend whose HTTP traffic is answered in-process and logged to ``calls``."""

    def _factory(status_code: int = 200, body: Any = None, error: Optional[Exception] = None) -> GenerationBackend:
        def handler(request: httpx.Request) -> httpx.Response:
            fake_supabase.calls.append(("generate", json.loads(request.content)))
            if error is not None:
                raise error
            payload = body if body is not None else {"status": "processing", "id": "gen-1", "msg": "ok"}
            return httpx.Response(status_code, json=payload)

        return GenerationBackend("http://backend.test/", transport=httpx.MockTransport(handler))

    return _factory


@pytest.fixture
def raw_session() -> Callable[..., Any]:
    return make_raw_session
