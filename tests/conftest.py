"""
Pytest Fixtures for Pulseflow Debug Agent

제공 Fixtures:
    - test_env_vars: 테스트용 환경 변수 (autouse, Settings cache 초기화)
    - node_payloads / failed_automation_payload: Pulseflow API 응답 샘플
    - make_execution / make_automation: 테스트 데이터 factory
    - mock_client: PulseflowClient Mock

전략:
    - 외부 API (Pulseflow, OpenAI, Telegram)는 전부 Mock
    - 진단 로직은 순수 함수이므로 실제 객체로 테스트
"""

import copy
from typing import Any, Dict, List, Optional
from unittest.mock import MagicMock

import pytest

from src.config import get_settings
from src.diagnosis.models import AutomationRecord

AUTOMATION_ID = "cmkwhwr4j0001jp0412bdp8zw"


# ============================================================
# 1. Environment Fixtures
# ============================================================

@pytest.fixture(autouse=True)
def test_env_vars(monkeypatch):
    """테스트용 환경 변수 설정 (모든 테스트에 자동 적용)"""
    monkeypatch.setenv("TESTING", "true")
    monkeypatch.setenv("PULSEFLOW_API_URL", "https://pulseflow.test/api/automations")
    monkeypatch.setenv("PULSEFLOW_API_PASSWORD", "test-password")
    monkeypatch.setenv("RETRY_DELAY", "0")
    monkeypatch.setenv("DEBUGGING_GUIDE_PATH", "")
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.delenv("TELEGRAM_BOT_TOKEN", raising=False)
    get_settings.cache_clear()

    yield

    get_settings.cache_clear()


# ============================================================
# 2. Test Data Fixtures
# ============================================================

@pytest.fixture
def node_payloads() -> List[Dict[str, Any]]:
    """Automation definition nodes"""
    return [
        {"id": "node_balance", "type": "checkBalance", "data": {"config": {"token": "ETH"}}},
        {
            "id": "node_swap",
            "type": "swapTokens",
            "data": {
                "config": {"from": "ETH", "to": "USDC", "amount": "0.5", "slippage": 0.5},
                "notes": "Swap half of the balance every morning",
            },
        },
    ]


@pytest.fixture
def make_execution():
    """Execution payload factory"""
    def _make(
        status: str = "FAILED",
        error: Optional[str] = None,
        logs: Optional[List[Dict[str, Any]]] = None,
        started_at: str = "2026-01-10T09:00:00Z",
        execution_id: str = "exec_1",
    ) -> Dict[str, Any]:
        return {
            "id": execution_id,
            "status": status,
            "error": error,
            "startedAt": started_at,
            "logs": logs or [],
        }
    return _make


@pytest.fixture
def failed_automation_payload(node_payloads, make_execution) -> Dict[str, Any]:
    """Swap node가 slippage로 revert된 실패 실행 + 과거 실행 기록"""
    return {
        "id": AUTOMATION_ID,
        "name": "Morning ETH → USDC",
        "definition": {"nodes": node_payloads},
        "executions": [
            make_execution(
                status="FAILED",
                error="swapTokens (node_swap): execution reverted",
                execution_id="exec_3",
                started_at="2026-01-12T09:00:00Z",
                logs=[
                    {"nodeId": "node_balance", "error": None, "output": {"balance": "1.0"}},
                    {
                        "nodeId": "node_swap",
                        "error": "execution reverted: INSUFFICIENT_OUTPUT_AMOUNT",
                        "input": {"from": "ETH", "to": "USDC", "amount": "0.5"},
                        "output": {"revertReason": "UniswapV2Router: INSUFFICIENT_OUTPUT_AMOUNT"},
                    },
                ],
            ),
            make_execution(status="SUCCESS", execution_id="exec_2", started_at="2026-01-11T09:00:00Z"),
            make_execution(status="CANCELLED", execution_id="exec_1", started_at="2026-01-10T09:00:00Z"),
        ],
    }


@pytest.fixture
def make_automation(node_payloads):
    """AutomationRecord factory from a list of execution payloads"""
    def _make(executions: Optional[List[Dict[str, Any]]] = None, nodes=None, name="Test automation"):
        return AutomationRecord.from_payload(
            {
                "id": AUTOMATION_ID,
                "name": name,
                "definition": {"nodes": node_payloads if nodes is None else nodes},
                "executions": executions or [],
            }
        )
    return _make


@pytest.fixture
def failed_automation(failed_automation_payload) -> AutomationRecord:
    return AutomationRecord.from_payload(copy.deepcopy(failed_automation_payload))


@pytest.fixture
def mock_client(failed_automation_payload, failed_automation):
    """PulseflowClient Mock (항상 failed_automation 반환)"""
    client = MagicMock()
    client.fetch_automation.return_value = failed_automation
    client.fetch_automation_payload.return_value = copy.deepcopy(failed_automation_payload)
    return client


# ============================================================
# 3. Pytest Configuration
# ============================================================

def pytest_configure(config):
    """Pytest 초기 설정"""
    config.addinivalue_line(
        "markers", "e2e: E2E 통합 테스트 (실제 Pulseflow/OpenAI 호출)"
    )
    config.addinivalue_line(
        "markers", "unit: 단위 테스트 (빠름, Mock 사용)"
    )
    config.addinivalue_line(
        "markers", "slow: 느린 테스트 (10초 이상)"
    )
