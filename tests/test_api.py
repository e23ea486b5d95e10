"""HTTP-level tests for the FastAPI application."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from helpers import make_client, make_response
from prompt_enhancement_service.app import main as main_module
from prompt_enhancement_service.app.config import settings
from prompt_enhancement_service.app.services import enhancement_flow, modification_flow
from prompt_enhancement_service.app.services import rate_limiter as rate_limiter_module


@pytest.fixture
def fake_genai(monkeypatch: pytest.MonkeyPatch):
    client = make_client(make_response(text="A clearer, more specific prompt."))
    monkeypatch.setattr(main_module, "get_genai_client", lambda: client)
    monkeypatch.setattr(enhancement_flow, "get_genai_client", lambda: client)
    monkeypatch.setattr(modification_flow, "get_genai_client", lambda: client)
    return client


@pytest.fixture
def api(fake_genai) -> TestClient:
    with TestClient(main_module.app) as test_client:
        yield test_client


def test_enhance_endpoint_returns_camel_case_record(api: TestClient) -> None:
    response = api.post("/prompts/enhance", json={"originalPrompt": "write better"})

    assert response.status_code == 200
    body = response.json()
    assert body["originalPrompt"] == "write better"
    assert body["enhancedPrompt"] == "A clearer, more specific prompt."
    assert body["promptAnalysis"]["primaryCategory"] == "Other"
    assert body["promptAnalysis"]["secondaryCategories"] == []


def test_invalid_body_is_reported_as_input_error(api: TestClient) -> None:
    response = api.post("/prompts/enhance", json={"originalPrompt": ""})

    assert response.status_code == 200
    assert response.json()["promptAnalysis"]["primaryCategory"] == "Input Error"


def test_missing_body_is_reported_as_input_error(api: TestClient) -> None:
    response = api.post("/prompts/modify")

    assert response.status_code == 200
    assert response.json()["modifiedPrompt"].startswith("Error: Invalid input.")


def test_modify_endpoint(api: TestClient) -> None:
    response = api.post(
        "/prompts/modify",
        json={
            "originalPrompt": "a",
            "enhancedPrompt": "b",
            "modificationRequest": "c",
        },
    )

    assert response.status_code == 200
    assert response.json() == {"modifiedPrompt": "A clearer, more specific prompt."}


def test_rate_limit_is_keyed_by_forwarded_address(
    api: TestClient, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(settings, "RATE_LIMIT_MAX_REQUESTS", 2)
    # Force a fresh limiter with the patched quota
    monkeypatch.setattr(rate_limiter_module, "_rate_limiter", None)
    headers = {"X-Forwarded-For": "203.0.113.7, 10.0.0.1"}

    for _ in range(2):
        api.post("/prompts/enhance", json={"originalPrompt": "p"}, headers=headers)
    limited = api.post("/prompts/enhance", json={"originalPrompt": "p"}, headers=headers)
    other = api.post(
        "/prompts/enhance",
        json={"originalPrompt": "p"},
        headers={"X-Forwarded-For": "198.51.100.2"},
    )

    assert limited.json()["promptAnalysis"]["primaryCategory"] == "Rate Limit Error"
    assert other.json()["promptAnalysis"]["primaryCategory"] == "Other"


def test_health_reports_api_key_state(api: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    assert api.get("/health").json()["status"] == "ok"

    monkeypatch.setattr(settings, "GEMINI_API_KEY", None)
    body = api.get("/health").json()

    assert body["status"] == "degraded"
    assert body["api_key_configured"] is False


def test_root(api: TestClient) -> None:
    assert "Prompt Enhancement Service" in api.get("/").json()["message"]


def test_startup_survives_missing_api_key(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings, "GEMINI_API_KEY", None)

    with TestClient(main_module.app) as test_client:
        body = test_client.post("/prompts/enhance", json={"originalPrompt": "p"}).json()

    assert body["promptAnalysis"]["primaryCategory"] == "Configuration Error"


@pytest.mark.parametrize("path", ["/prompts/enhance", "/prompts/modify"])
def test_unparseable_json_is_reported_as_input_error(api: TestClient, path: str) -> None:
    response = api.post(
        path, content=b"{not json", headers={"content-type": "application/json"}
    )

    assert response.status_code == 200
    body = response.json()
    if path == "/prompts/enhance":
        assert body["promptAnalysis"]["primaryCategory"] == "Input Error"
        assert body["enhancedPrompt"].startswith("Error: Invalid input.")
    else:
        assert body["modifiedPrompt"].startswith("Error: Invalid input.")
