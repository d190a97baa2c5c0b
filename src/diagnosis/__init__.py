"""
Diagnosis System for Pulseflow Debug Agent

This module turns a Pulseflow execution into a structured diagnosis
and a user-facing report.

Components:
- models: Lenient pydantic projections of the Pulseflow automation document
- error_classifier: Ordered, additive rule table over node error strings
- diagnoser: ExecutionDiagnoser (execution + automation → Diagnosis)
- failure_analyzer: History summaries and error-string parsing
- report: Markdown rendering of a Diagnosis
"""

from src.diagnosis.diagnoser import Diagnosis, ExecutionDiagnoser
from src.diagnosis.error_classifier import (
    CLASSIFICATION_RULES,
    ErrorClassifier,
    Issue,
    IssueCategory,
    IssueType,
    Severity,
)
from src.diagnosis.failure_analyzer import FailureAnalyzer
from src.diagnosis.models import AutomationRecord, ExecutionRecord, LogEntry, NodeRecord
from src.diagnosis.report import render_report

__all__ = [
    'AutomationRecord',
    'CLASSIFICATION_RULES',
    'Diagnosis',
    'ErrorClassifier',
    'ExecutionDiagnoser',
    'ExecutionRecord',
    'FailureAnalyzer',
    'Issue',
    'IssueCategory',
    'IssueType',
    'LogEntry',
    'NodeRecord',
    'Severity',
    'render_report',
]
