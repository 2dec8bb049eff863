# -*- coding: utf-8 -*-
import base64
import json

import pytest

from services import github_store
from services.document_store import StoreError
from services.github_store import GithubJSONStore


class FakeResponse:
    def __init__(self, status_code, payload=None):
        self.status_code = status_code
        self._payload = payload or {}
        self.text = json.dumps(self._payload)

    def json(self):
        return self._payload


def _b64(data) -> str:
    return base64.b64encode(json.dumps(data).encode("utf-8")).decode("utf-8")


@pytest.fixture
def calls(monkeypatch):
    """Registra as chamadas HTTP e devolve as respostas enfileiradas."""
    state = {"get": [], "put": [], "responses": {"get": [], "put": []}}

    def fake(method):
        def _call(url, **kwargs):
            state[method].append((url, kwargs))
            return state["responses"][method].pop(0)
        return _call

    monkeypatch.setattr(github_store.requests, "get", fake("get"))
    monkeypatch.setattr(github_store.requests, "put", fake("put"))
    return state


@pytest.fixture
def gh():
    return GithubJSONStore(owner="dono", repo="ponto-db", token="tok", branch="main", timeout=5)


def test_load_decodes_content(gh, calls):
    calls["responses"]["get"].append(FakeResponse(200, {"content": _b64([{"id": 1}]), "sha": "abc"}))
    data, sha = gh.load("eventos.json")
    assert data == [{"id": 1}]
    assert sha == "abc"
    url, kwargs = calls["get"][0]
    assert url == "https://api.github.com/repos/dono/ponto-db/contents/eventos.json"
    assert kwargs["params"] == {"ref": "main"}
    assert kwargs["headers"]["Authorization"] == "Bearer tok"
    assert kwargs["timeout"] == 5


def test_load_creates_missing_file(gh, calls):
    calls["responses"]["get"].append(FakeResponse(404))
    calls["responses"]["put"].append(FakeResponse(201, {"content": {"sha": "novo"}}))
    data, sha = gh.load("funcionarios.json")
    assert (data, sha) == ([], "novo")
    payload = calls["put"][0][1]["json"]
    assert base64.b64decode(payload["content"]).decode("utf-8") == "[]"
    assert payload["branch"] == "main"


def test_load_error_raises(gh, calls):
    calls["responses"]["get"].append(FakeResponse(500, {"message": "boom"}))
    with pytest.raises(StoreError):
        gh.load("eventos.json")


def test_commit_sends_sha_and_returns_new_sha(gh, calls):
    calls["responses"]["put"].append(FakeResponse(200, {"content": {"sha": "def"}}))
    assert gh.commit("eventos.json", [{"id": 2, "employeeName": "João"}], "abc", "msg") == "def"
    payload = calls["put"][0][1]["json"]
    assert payload["sha"] == "abc"
    assert payload["message"] == "msg"
    body = json.loads(base64.b64decode(payload["content"]).decode("utf-8"))
    assert body == [{"id": 2, "employeeName": "João"}]


def test_commit_conflict_returns_none(gh, calls):
    calls["responses"]["put"].append(FakeResponse(409))
    assert gh.commit("eventos.json", [], "abc", "msg") is None


def test_commit_other_errors_raise(gh, calls):
    calls["responses"]["put"].append(FakeResponse(422, {"message": "invalid"}))
    with pytest.raises(StoreError):
        gh.commit("eventos.json", [], "abc", "msg")


def test_update_with_retry_reloads_after_conflict(gh, calls, monkeypatch):
    monkeypatch.setattr("services.document_store.time.sleep", lambda s: None)
    calls["responses"]["get"] += [
        FakeResponse(200, {"content": _b64([]), "sha": "v1"}),
        FakeResponse(200, {"content": _b64([{"id": 1}]), "sha": "v2"}),
    ]
    calls["responses"]["put"] += [FakeResponse(409), FakeResponse(200, {"content": {"sha": "v3"}})]
    data = gh.update_with_retry("eventos.json", lambda d: d + [{"id": 2}], "msg")
    assert data == [{"id": 1}, {"id": 2}]
    assert [c[1]["json"]["sha"] for c in calls["put"]] == ["v1", "v2"]


def test_corrupted_content_raises(gh, calls):
    calls["responses"]["get"].append(FakeResponse(200, {"content": base64.b64encode(b"{quebrado").decode(), "sha": "x"}))
    with pytest.raises(StoreError):
        gh.load("eventos.json")


def test_network_failure_is_store_error(gh, monkeypatch):
    def boom(url, **kwargs):
        raise github_store.requests.ConnectionError("offline")

    monkeypatch.setattr(github_store.requests, "get", boom)
    with pytest.raises(StoreError):
        gh.load("eventos.json")
