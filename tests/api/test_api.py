import pytest

pytest.importorskip("fastapi")

from fastapi.testclient import TestClient

from scam_thread_risk.api.app import app, get_analyzer


@pytest.fixture
def client():
    get_analyzer.cache_clear()
    yield TestClient(app)
    get_analyzer.cache_clear()


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_analyze_thread_text(client, scam_thread):
    response = client.post("/analyze", json={"threadText": scam_thread, "callChecks": {"otpAsked": False}})
    assert response.status_code == 200
    body = response.json()
    assert body["stagePeak"] == "payment"
    assert body["uiScoreTotal"] >= body["scoreTotal"]
    assert body["runtime"]["catalog_version"]


def test_analyze_legacy_blocks(client):
    response = client.post("/analyze", json={"threadBlocks": ["S: 인증번호 알려주세요", "R: 네"]})
    assert response.status_code == 200
    assert response.json()["messageCount"] == 2


def test_analyze_with_semantic_query_without_pool(client):
    response = client.post("/analyze", json={"threadText": "S: 안녕", "semQueryVec": [1.0, 0.0]})
    assert response.status_code == 200
    assert response.json()["semanticTop"] == []


def test_invalid_payload_is_422(client):
    assert client.post("/analyze", json={"threadText": 5}).status_code == 422
    assert client.post("/analyze", json={"threadText": "x", "semQueryVec": "nope"}).status_code == 422


def test_prefilter_endpoint(client):
    response = client.post("/prefilter", json={"text": "https://bit.ly/3xYz", "context": {"isSavedContact": False}})
    assert response.status_code == 200
    body = response.json()
    assert body["gatePass"] is True
    assert "pf_unknown_contact" in body["trigIds"]
