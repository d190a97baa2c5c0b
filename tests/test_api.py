"""
Pulseflow Debug API 테스트
FastAPI TestClient + dependency_overrides (Pulseflow / OpenAI Mock)
"""

import pytest
from fastapi.testclient import TestClient

from src.api.main import app, get_diagnoser, get_llm_analyzer, get_pulseflow_client
from src.diagnosis.diagnoser import ExecutionDiagnoser

AUTOMATION_ID = "cmkwhwr4j0001jp0412bdp8zw"


@pytest.fixture
def api(mock_client):
    app.dependency_overrides[get_pulseflow_client] = lambda: mock_client
    app.dependency_overrides[get_diagnoser] = lambda: ExecutionDiagnoser()
    app.dependency_overrides[get_llm_analyzer] = lambda: None
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestHealth:
    def test_health_ok(self, api):
        response = api.get("/api/health")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"
        assert "timestamp" in response.json()


class TestDebugEndpoint:
    """GET /api/debug/{id}"""

    def test_debug_latest_execution(self, api):
        response = api.get(f"/api/debug/{AUTOMATION_ID}")
        data = response.json()

        assert response.status_code == 200
        assert data["automationId"] == AUTOMATION_ID
        assert data["status"] == "FAILED"
        assert [i["type"] for i in data["issues"]] == ["slippage", "reverted"]
        assert data["failedNode"]["type"] == "swapTokens"
        assert data["failedNode"]["config"]["slippage"] == 0.5
        assert "Pulseflow Debug Report" in data["report"]
        assert data["analysis"] is None

    def test_debug_with_llm(self, api):
        class FakeLLM:
            def explain(self, automation, diagnosis):
                return "Raise slippage."

        app.dependency_overrides[get_llm_analyzer] = lambda: FakeLLM()

        data = api.get(f"/api/debug/{AUTOMATION_ID}").json()

        assert data["analysis"] == "Raise slippage."

    def test_not_found(self, api, mock_client):
        mock_client.fetch_automation.return_value = None

        response = api.get("/api/debug/missing")

        assert response.status_code == 404
        assert response.json()["detail"]["code"] == "AUTOMATION_NOT_FOUND"


class TestAutomationEndpoints:
    """GET /api/automation/{id}[/...]"""

    def test_full_document(self, api):
        data = api.get(f"/api/automation/{AUTOMATION_ID}").json()

        assert data["automationId"] == AUTOMATION_ID
        assert data["name"] == "Morning ETH → USDC"
        assert len(data["executions"]) == 3

    def test_definition(self, api):
        data = api.get(f"/api/automation/{AUTOMATION_ID}/definition").json()

        assert [n["id"] for n in data["definition"]["nodes"]] == ["node_balance", "node_swap"]

    def test_executions(self, api):
        data = api.get(f"/api/automation/{AUTOMATION_ID}/executions").json()

        assert [e["id"] for e in data["executions"]] == ["exec_3", "exec_2", "exec_1"]

    def test_executions_missing_key(self, api, mock_client):
        mock_client.fetch_automation_payload.return_value = {"id": AUTOMATION_ID}

        data = api.get(f"/api/automation/{AUTOMATION_ID}/executions").json()

        assert data["executions"] == []

    def test_nodes(self, api):
        data = api.get(f"/api/automation/{AUTOMATION_ID}/nodes").json()

        assert data["nodes"][0] == {"id": "node_balance", "type": "checkBalance", "config": {"token": "ETH"}}

    def test_summary(self, api):
        data = api.get(f"/api/automation/{AUTOMATION_ID}/summary").json()

        assert data["name"] == "Morning ETH → USDC"
        assert data["latestStatus"] == "FAILED"
        assert data["latestError"] == "swapTokens (node_swap): execution reverted"
        assert data["totalRuns"] == 3
        assert data["successRate"] == "33.3%"

    @pytest.mark.parametrize("suffix", ["", "/definition", "/executions", "/nodes", "/summary"])
    def test_not_found(self, api, mock_client, suffix):
        mock_client.fetch_automation_payload.return_value = None

        response = api.get(f"/api/automation/missing{suffix}")

        assert response.status_code == 404
        assert response.json()["detail"]["code"] == "AUTOMATION_NOT_FOUND"
