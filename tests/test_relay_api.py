from __future__ import annotations

import json
from typing import Callable, Dict, List

import httpx
import pytest
from fastapi.testclient import TestClient

from intake_wizard.api.main import create_app
from intake_wizard.config import RelaySettings

STORAGE_URL = "https://hooks.example.test/intake"
ANALYSIS_URL = "https://llm.example.test/v1/chat/completions"
FINAL_STORAGE_URL = "https://hooks-final.example.test/intake"

SETTINGS = RelaySettings(
    storage_webhook_url=STORAGE_URL,
    openai_api_key="sk-test",
    analysis_api_url=ANALYSIS_URL,
)

ANSWERS = {"firstName": "Ada", "lastName": "Lovelace", "email": "ada@example.com", "treeRemoval": True, "currentStep": 5}


def _completion(content: str) -> Dict:
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


class Upstreams:
    """Routes relay calls by URL and records what was sent."""

    def __init__(self, storage: Callable[[httpx.Request], httpx.Response], analysis: Callable[[httpx.Request], httpx.Response]):
        self.storage = storage
        self.analysis = analysis
        self.storage_calls: List[httpx.Request] = []
        self.analysis_calls: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if str(request.url) == STORAGE_URL:
            self.storage_calls.append(request)
            return self.storage(request)
        if str(request.url) == ANALYSIS_URL:
            self.analysis_calls.append(request)
            return self.analysis(request)
        return httpx.Response(404)


def _client(upstreams: Upstreams, settings: RelaySettings = SETTINGS) -> TestClient:
    return TestClient(create_app(settings, transport=httpx.MockTransport(upstreams)))


def _ok_storage(_request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, json={"status": "stored"})


def _ok_analysis(_request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, json=_completion("High-value lead: tree removal."))


def test_both_calls_succeed():
    upstreams = Upstreams(_ok_storage, _ok_analysis)
    with _client(upstreams) as client:
        resp = client.post("/", json=ANSWERS)

    assert resp.status_code == 200
    assert resp.json() == {
        "success": True,
        "message": "Form processed successfully",
        "analysis": "High-value lead: tree removal.",
    }
    assert resp.headers["access-control-allow-origin"] == "*"

    assert json.loads(upstreams.storage_calls[0].content) == ANSWERS
    analysis_req = upstreams.analysis_calls[0]
    assert analysis_req.headers["authorization"] == "Bearer sk-test"
    body = json.loads(analysis_req.content)
    assert body["model"] == "gpt-4"
    assert body["temperature"] == 0.7
    assert [m["role"] for m in body["messages"]] == ["system", "user"]
    assert '"firstName": "Ada"' in body["messages"][1]["content"]


@pytest.mark.parametrize("status", [400, 500, 503])
def test_storage_failure_skips_analysis(status):
    upstreams = Upstreams(lambda r: httpx.Response(status), _ok_analysis)
    with _client(upstreams) as client:
        resp = client.post("/", json=ANSWERS)

    assert resp.status_code >= 400
    assert resp.json() == {"success": False, "error": "storage failure"}
    assert len(upstreams.storage_calls) == 1
    assert upstreams.analysis_calls == []


class RedirectingUpstreams(Upstreams):
    """Storage answers 302; the redirect target accepts the record."""

    def __init__(self) -> None:
        super().__init__(lambda r: httpx.Response(302, headers={"Location": FINAL_STORAGE_URL}), _ok_analysis)
        self.final_calls: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if str(request.url) == FINAL_STORAGE_URL:
            self.final_calls.append(request)
            return httpx.Response(200, json={"status": "stored"})
        return super().__call__(request)


def test_storage_redirect_is_followed():
    upstreams = RedirectingUpstreams()
    with _client(upstreams) as client:
        resp = client.post("/", json=ANSWERS)

    assert resp.status_code == 200
    assert resp.json()["success"] is True
    assert len(upstreams.final_calls) == 1
    assert len(upstreams.analysis_calls) == 1


def test_malformed_storage_url_is_a_storage_failure():
    settings = RelaySettings(
        storage_webhook_url="https://hooks.example.test:notaport/intake",
        openai_api_key="sk-test",
        analysis_api_url=ANALYSIS_URL,
    )
    upstreams = Upstreams(_ok_storage, _ok_analysis)
    with _client(upstreams, settings) as client:
        resp = client.post("/", json=ANSWERS)

    assert resp.status_code == 502
    assert resp.json() == {"success": False, "error": "storage failure"}
    assert upstreams.analysis_calls == []


def test_storage_transport_error_skips_analysis():
    def unreachable(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    upstreams = Upstreams(unreachable, _ok_analysis)
    with _client(upstreams) as client:
        resp = client.post("/", json=ANSWERS)

    assert resp.json() == {"success": False, "error": "storage failure"}
    assert upstreams.analysis_calls == []


@pytest.mark.parametrize(
    "analysis",
    [
        lambda r: httpx.Response(500, json={"error": {"message": "overloaded"}}),
        lambda r: httpx.Response(200, json={"choices": []}),
        lambda r: httpx.Response(200, text="not json"),
    ],
)
def test_analysis_failure_fails_submission(analysis):
    upstreams = Upstreams(_ok_storage, analysis)
    with _client(upstreams) as client:
        resp = client.post("/", json=ANSWERS)

    assert resp.status_code >= 400
    assert resp.json() == {"success": False, "error": "analysis failure"}
    assert len(upstreams.storage_calls) == 1
    assert len(upstreams.analysis_calls) == 1


def test_preflight():
    with _client(Upstreams(_ok_storage, _ok_analysis)) as client:
        resp = client.options("/")
    assert resp.status_code == 204
    assert resp.headers["access-control-allow-origin"] == "*"
    assert resp.headers["access-control-allow-methods"] == "POST, OPTIONS"
    assert resp.headers["access-control-allow-headers"] == "Content-Type"


@pytest.mark.parametrize("method", ["GET", "PUT", "DELETE"])
def test_other_methods_rejected(method):
    upstreams = Upstreams(_ok_storage, _ok_analysis)
    with _client(upstreams) as client:
        resp = client.request(method, "/")
    assert resp.status_code == 405
    assert resp.text == "Method not allowed"
    assert upstreams.storage_calls == []


@pytest.mark.parametrize("body", [b"{broken", b"[1, 2, 3]"])
def test_bad_body_rejected(body):
    upstreams = Upstreams(_ok_storage, _ok_analysis)
    with _client(upstreams) as client:
        resp = client.post("/", content=body, headers={"Content-Type": "application/json"})
    assert resp.status_code == 400
    assert resp.json() == {"success": False, "error": "invalid request body"}
    assert upstreams.storage_calls == []


def test_unconfigured_relay():
    upstreams = Upstreams(_ok_storage, _ok_analysis)
    with _client(upstreams, RelaySettings()) as client:
        resp = client.post("/", json=ANSWERS)
    assert resp.status_code == 500
    assert resp.json() == {"success": False, "error": "relay not configured"}
    assert upstreams.storage_calls == []


def test_health():
    with _client(Upstreams(_ok_storage, _ok_analysis)) as client:
        resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["ok"] is True
    assert resp.json()["relayConfigured"] is True
