"""
Pulseflow Debug API
FastAPI wrapper around the automation-debugging logic

Version: 1.0.0
Created: 2026-01-13
"""

from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger
from pydantic import BaseModel, Field

from src.agents.llm_analyzer import LLMAnalyzer
from src.clients.pulseflow_client import PulseflowClient
from src.config import get_settings
from src.diagnosis.diagnoser import ExecutionDiagnoser
from src.diagnosis.error_classifier import Issue
from src.diagnosis.failure_analyzer import FailureAnalyzer
from src.diagnosis.models import AutomationRecord
from src.diagnosis.report import render_report

app = FastAPI(
    title="Pulseflow Debug API",
    description="Execution diagnosis for Pulseflow automations",
    version="1.0.0",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
)

# CORS 설정
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET"],
    allow_headers=["*"],
)


# ========================================
# Dependencies
# ========================================

@lru_cache()
def get_pulseflow_client() -> PulseflowClient:
    return PulseflowClient()


@lru_cache()
def get_diagnoser() -> ExecutionDiagnoser:
    return ExecutionDiagnoser()


def get_llm_analyzer() -> Optional[LLMAnalyzer]:
    settings = get_settings()
    return LLMAnalyzer(settings) if settings.llm_enabled else None


# ========================================
# Pydantic Models (Response)
# ========================================

class NodeSummary(BaseModel):
    id: str
    type: str
    config: Dict[str, Any] = Field(default_factory=dict)


class DebugResponse(BaseModel):
    """Diagnosis of the latest execution"""
    automationId: str
    status: str = Field(..., description="Latest execution status, or 'unknown' when none")
    issues: List[Issue]
    failedNode: Optional[NodeSummary] = None
    report: str = Field(..., description="Markdown report as sent by the bot")
    analysis: Optional[str] = Field(None, description="LLM explanation, null when unavailable")


class SummaryResponse(BaseModel):
    automationId: str
    name: Optional[str] = None
    latestStatus: Optional[str] = None
    latestError: Optional[str] = None
    totalRuns: int
    successRate: str


def _not_found(automation_id: str) -> HTTPException:
    return HTTPException(
        status_code=404,
        detail={
            "code": "AUTOMATION_NOT_FOUND",
            "message": f"Automation not found: {automation_id}",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    )


def _load_payload(automation_id: str, client: PulseflowClient) -> Dict[str, Any]:
    payload = client.fetch_automation_payload(automation_id)
    if payload is None:
        raise _not_found(automation_id)
    return payload


def _load_record(automation_id: str, client: PulseflowClient) -> AutomationRecord:
    record = AutomationRecord.from_payload(_load_payload(automation_id, client), automation_id=automation_id)
    if record is None:
        raise _not_found(automation_id)
    return record


# ========================================
# 헬스체크 엔드포인트
# ========================================

@app.get("/api/health", tags=["System"])
def health_check():
    """API 서버 상태 확인"""
    return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}


# ========================================
# 진단 엔드포인트
# ========================================

@app.get("/api/debug/{automation_id}", response_model=DebugResponse, tags=["Debug"])
def debug_latest_execution(
    automation_id: str,
    client: PulseflowClient = Depends(get_pulseflow_client),
    diagnoser: ExecutionDiagnoser = Depends(get_diagnoser),
    llm: Optional[LLMAnalyzer] = Depends(get_llm_analyzer),
):
    """
    Debug the latest execution of an automation

    Returns the rule-based issues, the rendered report and, when an
    OpenAI key is configured, a short LLM explanation.
    """
    automation = client.fetch_automation(automation_id)
    if automation is None:
        raise _not_found(automation_id)

    diagnosis = diagnoser.diagnose_latest(automation)
    settings = get_settings()
    report = render_report(
        automation,
        diagnosis,
        recent_limit=settings.RECENT_EXECUTIONS_SHOWN,
        preview_chars=settings.INPUT_PREVIEW_CHARS,
    )

    analysis = None
    if llm is not None and diagnosis.has_execution:
        analysis = llm.explain(automation, diagnosis)

    node = diagnosis.failed_node
    logger.info(f"Debug request: {automation_id} → {[i.type.value for i in diagnosis.issues]}")

    return DebugResponse(
        automationId=automation_id,
        status=diagnosis.execution.status if diagnosis.execution else "unknown",
        issues=diagnosis.issues,
        failedNode=NodeSummary(id=node.id, type=node.type, config=node.config) if node else None,
        report=report,
        analysis=analysis,
    )


# ========================================
# Automation 조회 엔드포인트
# ========================================

@app.get("/api/automation/{automation_id}", tags=["Automation"])
def get_automation(automation_id: str, client: PulseflowClient = Depends(get_pulseflow_client)):
    """Full automation document as returned by Pulseflow"""
    payload = _load_payload(automation_id, client)
    return {"automationId": automation_id, **payload}


@app.get("/api/automation/{automation_id}/definition", tags=["Automation"])
def get_definition(automation_id: str, client: PulseflowClient = Depends(get_pulseflow_client)):
    payload = _load_payload(automation_id, client)
    return {"automationId": automation_id, "definition": payload.get("definition")}


@app.get("/api/automation/{automation_id}/executions", tags=["Automation"])
def get_executions(automation_id: str, client: PulseflowClient = Depends(get_pulseflow_client)):
    payload = _load_payload(automation_id, client)
    return {"automationId": automation_id, "executions": payload.get("executions") or []}


@app.get("/api/automation/{automation_id}/nodes", tags=["Automation"])
def get_nodes(automation_id: str, client: PulseflowClient = Depends(get_pulseflow_client)):
    """Nodes with their configs"""
    record = _load_record(automation_id, client)
    nodes = [NodeSummary(id=n.id, type=n.type, config=n.config) for n in record.nodes]
    return {"automationId": automation_id, "nodes": nodes}


@app.get("/api/automation/{automation_id}/summary", response_model=SummaryResponse, tags=["Automation"])
def get_summary(automation_id: str, client: PulseflowClient = Depends(get_pulseflow_client)):
    """Quick summary: latest status and success rate"""
    record = _load_record(automation_id, client)
    history = FailureAnalyzer.analyze_history(record.executions)
    return SummaryResponse(
        automationId=automation_id,
        name=record.name,
        latestStatus=history["latest_status"],
        latestError=history["latest_error"],
        totalRuns=history["total_runs"],
        successRate=history["success_rate"],
    )


# ========================================
# 서버 실행
# ========================================

if __name__ == "__main__":
    import uvicorn

    from src.utils.logging_setup import setup_logging

    setup_logging()
    settings = get_settings()
    uvicorn.run(
        "src.api.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )
