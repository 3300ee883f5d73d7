import json

import pytest
from fastapi.testclient import TestClient

from conftest import DOCUMENT, GOOD_RESPONSE
from redline.main import app, get_analyzer


@pytest.fixture
def client_for(make_analyzer):
    def _client(*responses):
        analyzer, llm = make_analyzer(*responses)
        app.dependency_overrides[get_analyzer] = lambda: analyzer
        return TestClient(app), llm
    yield _client
    app.dependency_overrides.clear()


def test_health():
    r = TestClient(app).get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


def test_analyze(client_for):
    client, _ = client_for(GOOD_RESPONSE)
    r = client.post("/analyze", json={"text": DOCUMENT, "temperature": 0.2})
    assert r.status_code == 200
    body = r.json()
    assert body["success"] is True
    located = body["data"]["located"][0]
    assert (located["start"], located["end"]) == (10, 19)
    assert located["tier"] == "exact_context"
    assert body["data"]["result"]["is_fallback"] is False


def test_analyze_rejects_bad_input(client_for):
    client, llm = client_for(GOOD_RESPONSE)
    r = client.post("/analyze", json={"text": ""})
    assert r.status_code == 400
    assert r.json()["error"].startswith("Invalid request data")
    r = client.post("/analyze", json={"text": DOCUMENT, "topP": 3})
    assert r.status_code == 400
    assert llm.calls == 0


def test_analyze_prd_language(client_for):
    client, llm = client_for(GOOD_RESPONSE)
    r = client.post("/analyze-prd", json={"text": DOCUMENT, "language": "中文"})
    assert r.status_code == 200
    assert "PRD：" in llm.prompts[0]


def test_malformed_model_output_is_still_success(client_for):
    client, _ = client_for("The model refused.")
    r = client.post("/analyze-bot-card", json={"text": DOCUMENT})
    assert r.status_code == 200
    result = r.json()["data"]["result"]
    assert result["is_fallback"] is True
    assert result["comments"][0]["category"] == "LLM Issue"


def test_unreachable_llm_is_502(client_for, down_error):
    client, _ = client_for(down_error)
    r = client.post("/analyze", json={"text": DOCUMENT})
    assert r.status_code == 502
    assert r.json()["success"] is False


def test_quantify_bot_card(client_for):
    raw = json.dumps({"card_id": "card_9", "quantitative_scores": {"sections": {}, "final_score": 88}})
    client, _ = client_for(raw)
    r = client.post("/quantify-bot-card", json={"originalContent": "Title: X", "analysisResult": {"card_id": "card_9"}})
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["card_id"] == "card_9"
    assert data["quantitative_scores"]["final_score"] == 0


def test_locate_endpoint_needs_no_llm():
    r = TestClient(app).post("/locate", json={
        "text": DOCUMENT,
        "comments": [
            {"comment_id": "c1", "original_text": "brown fox", "context_before": "The quick ", "context_after": " jumps."},
            {"comment_id": "c2", "original_text": "not in the text at all"},
        ],
    })
    assert r.status_code == 200
    [first, second] = r.json()["data"]
    assert (first["start"], first["end"]) == (10, 19)
    assert second["tier"] == "fallback"
    assert 0 <= second["start"] <= second["end"] <= len(DOCUMENT)
