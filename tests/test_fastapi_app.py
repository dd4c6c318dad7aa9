from __future__ import annotations

import asyncio
import json
from typing import Any

import pytest
from fastapi.testclient import TestClient

from xfory_summary.common.settings import Settings
from xfory_summary.pipeline.fallback import fallback_quip, fallback_summary
from xfory_summary.ratelimit.store import InMemoryCounterStore
from xfory_summary.serve.fastapi_app import create_app


class _FakeBackend:
    def __init__(self, response: Any = None, error: Exception | None = None, delay: float = 0.0) -> None:
        self.response = response
        self.error = error
        self.delay = delay
        self.calls = 0

    async def run(self, model_id: str, messages: list[dict[str, str]], temperature: float = 0.3, max_tokens: int = 600) -> Any:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return {"response": self.response}


class _BrokenStore(InMemoryCounterStore):
    async def get(self, key: str) -> str | None:
        raise ConnectionError("store unavailable")


BODY = {"app": "Tinder", "niche": "dog walking", "wants_quip": True}
GOOD = json.dumps({"summary": "A plan.", "quip": "Woof."})


def _client(backend: _FakeBackend, store: InMemoryCounterStore | None = None, **settings: Any) -> TestClient:
    app = create_app(Settings(**settings), backend=backend, store=store or InMemoryCounterStore())
    return TestClient(app)


def test_generate_success() -> None:
    client = _client(_FakeBackend(GOOD))
    r = client.post("/", json=BODY)
    assert r.status_code == 200
    assert r.json() == {"summary": "A plan.", "quip": "Woof."}
    assert r.headers["access-control-allow-origin"] == "https://xfory.vercel.app"


def test_generate_unstructured_output_falls_back() -> None:
    client = _client(_FakeBackend("Here is a great idea with no JSON."))
    r = client.post("/", json=BODY)
    assert r.status_code == 200
    assert r.json() == {
        "summary": fallback_summary("Tinder", "dog walking"),
        "quip": fallback_quip("Tinder", "dog walking"),
    }


def test_timeout_is_success() -> None:
    client = _client(_FakeBackend(GOOD, delay=5.0), timeout_seconds=0.05)
    r = client.post("/", json={**BODY, "wants_quip": False})
    assert r.status_code == 200
    assert r.json() == {"summary": fallback_summary("Tinder", "dog walking"), "quip": ""}


def test_backend_failure_is_400() -> None:
    client = _client(_FakeBackend(error=RuntimeError("upstream 500")))
    r = client.post("/", json=BODY)
    assert r.status_code == 400
    assert r.json() == {"error": "upstream 500"}


def test_missing_fields_is_400() -> None:
    backend = _FakeBackend(GOOD)
    client = _client(backend)
    r = client.post("/", json={"app": "  ", "niche": "dogs"})
    assert r.status_code == 400
    assert r.json() == {"error": "Missing 'app' or 'niche'."}
    assert backend.calls == 0


def test_invalid_json_is_400() -> None:
    client = _client(_FakeBackend(GOOD))
    r = client.post("/", content=b"{not json", headers={"content-type": "application/json"})
    assert r.status_code == 400
    data = r.json()
    assert set(data) == {"error"}


def test_31st_request_is_rate_limited() -> None:
    backend = _FakeBackend(GOOD)
    client = _client(backend)
    client.app.state.limiter._clock = lambda: 1_700_000_000.0
    headers = {"CF-Connecting-IP": "1.2.3.4"}
    statuses = [client.post("/", json=BODY, headers=headers).status_code for _ in range(31)]
    assert statuses == [200] * 30 + [429]
    assert backend.calls == 30
    last = client.post("/", json=BODY, headers=headers)
    assert last.json() == {"error": "Rate limit exceeded. Try again in a minute."}
    # other clients are unaffected
    assert client.post("/", json=BODY, headers={"CF-Connecting-IP": "5.6.7.8"}).status_code == 200


def test_rate_limited_requests_skip_backend() -> None:
    backend = _FakeBackend(GOOD)
    client = _client(backend, rate_limit=0)
    r = client.post("/", json=BODY)
    assert r.status_code == 429
    assert backend.calls == 0


def test_counter_store_error_is_400() -> None:
    client = _client(_FakeBackend(GOOD), store=_BrokenStore())
    r = client.post("/", json=BODY)
    assert r.status_code == 400
    assert r.json() == {"error": "store unavailable"}


def test_wrong_method_is_405() -> None:
    client = _client(_FakeBackend(GOOD))
    r = client.get("/")
    assert r.status_code == 405
    assert r.text == "Use POST"
    assert "access-control-allow-origin" in r.headers


def test_preflight_reflects_allowed_origin() -> None:
    client = _client(_FakeBackend(GOOD))
    r = client.options(
        "/",
        headers={
            "Origin": "http://localhost:3000",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "content-type, x-custom",
        },
    )
    assert r.status_code == 204
    assert r.content == b""
    assert r.headers["access-control-allow-origin"] == "http://localhost:3000"
    assert r.headers["access-control-allow-methods"] == "POST, OPTIONS"
    assert r.headers["access-control-allow-headers"] == "content-type, x-custom"
    assert r.headers["access-control-max-age"] == "86400"


def test_unknown_origin_gets_default() -> None:
    client = _client(_FakeBackend(GOOD))
    r = client.options("/", headers={"Origin": "https://evil.example"})
    assert r.headers["access-control-allow-origin"] == "https://xfory.vercel.app"


def test_debug_needs_no_body_or_admission() -> None:
    backend = _FakeBackend(GOOD)
    client = _client(backend, rate_limit=0, model_id="test-model")
    r = client.get("/debug")
    assert r.status_code == 200
    data = r.json()
    assert data["status"] == "debug"
    assert data["ai_available"] is True
    assert data["model"] == "test-model"
    assert "headers" not in data
    assert "stack" not in data


def test_deeply_nested_body_is_400_with_cors() -> None:
    client = _client(_FakeBackend(GOOD))
    r = client.post("/", content=b"[" * 100000 + b"]" * 100000, headers={"content-type": "application/json"})
    assert r.status_code == 400
    assert set(r.json()) == {"error"}
    assert "access-control-allow-origin" in r.headers


def test_unexpected_error_is_400_with_cors(monkeypatch: pytest.MonkeyPatch) -> None:
    import xfory_summary.serve.fastapi_app as app_mod

    async def _boom(*args: Any, **kwargs: Any) -> Any:
        raise KeyError("unexpected")

    monkeypatch.setattr(app_mod, "generate_summary", _boom)
    client = _client(_FakeBackend(GOOD))
    r = client.post("/", json=BODY)
    assert r.status_code == 400
    assert set(r.json()) == {"error"}
    assert "access-control-allow-origin" in r.headers


def test_any_non_post_path_is_405_use_post() -> None:
    client = _client(_FakeBackend(GOOD))
    for method, path in (("GET", "/other"), ("DELETE", "/"), ("PUT", "/x/y")):
        r = client.request(method, path)
        assert r.status_code == 405
        assert r.text == "Use POST"
        assert "access-control-allow-origin" in r.headers


def test_post_on_other_path_generates() -> None:
    client = _client(_FakeBackend(GOOD))
    r = client.post("/generate", json=BODY)
    assert r.status_code == 200
    assert r.json() == {"summary": "A plan.", "quip": "Woof."}


def test_debug_answers_any_verb_without_body() -> None:
    backend = _FakeBackend(GOOD)
    client = _client(backend, rate_limit=0)
    r = client.post("/debug")
    assert r.status_code == 200
    assert r.json()["status"] == "debug"
    assert backend.calls == 0


def test_debug_reports_missing_backend_url() -> None:
    client = _client(_FakeBackend(GOOD), backend_url="")
    assert client.get("/debug").json()["ai_available"] is False
