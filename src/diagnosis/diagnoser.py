"""
Execution Diagnoser

Turns the newest execution of an automation into a Diagnosis:
the failing log entry, the node it ran on, and the classified Issues.

The diagnoser performs no I/O and never raises; malformed input
degrades to an `unknown` Issue.
"""

from typing import List, Optional

from loguru import logger
from pydantic import BaseModel, Field

from src.diagnosis.error_classifier import (
    ErrorClassifier,
    Issue,
    IssueCategory,
    IssueType,
    Severity,
)
from src.diagnosis.models import AutomationRecord, ExecutionRecord, LogEntry, NodeRecord


class Diagnosis(BaseModel):
    """Result of diagnosing one execution; issues is never empty"""

    issues: List[Issue] = Field(default_factory=list)
    failed_node: Optional[NodeRecord] = None
    failed_log: Optional[LogEntry] = None
    execution: Optional[ExecutionRecord] = None

    @property
    def has_execution(self) -> bool:
        return self.execution is not None

    @property
    def issue_types(self) -> List[IssueType]:
        return [issue.type for issue in self.issues]


class ExecutionDiagnoser:
    """
    Rule-based diagnoser for Pulseflow executions

    Usage:
        diagnoser = ExecutionDiagnoser()
        diagnosis = diagnoser.diagnose_latest(automation)
    """

    def __init__(self, classifier: Optional[ErrorClassifier] = None):
        self.classifier = classifier or ErrorClassifier()

    def diagnose_latest(self, automation: AutomationRecord) -> Diagnosis:
        """Diagnose executions[0]; the API already returns them newest first"""
        return self.diagnose(automation.latest_execution, automation)

    def diagnose(self, execution: Optional[ExecutionRecord], automation: AutomationRecord) -> Diagnosis:
        if execution is None:
            return Diagnosis(
                issues=[
                    Issue(
                        type=IssueType.NO_EXECUTIONS,
                        category=IssueCategory.INFORMATIONAL,
                        message="No executions found for this automation",
                        fix="Run the automation at least once, then ask again",
                        retryable=False,
                        severity=Severity.LOW,
                    )
                ]
            )

        try:
            return self._diagnose_execution(execution, automation)
        except Exception as e:
            # Classification must not crash the bot or the API route
            logger.exception(f"[Diagnoser] Unexpected error diagnosing execution {execution.id}: {e}")
            return Diagnosis(
                issues=[ErrorClassifier.fallback_issue(execution.error)],
                execution=execution,
            )

    def _diagnose_execution(self, execution: ExecutionRecord, automation: AutomationRecord) -> Diagnosis:
        failed_log = self.find_failing_log(execution)

        if failed_log is None:
            return Diagnosis(issues=[self._execution_level_issue(execution)], execution=execution)

        failed_node = automation.find_node(failed_log.node_id)
        if failed_node is None:
            logger.debug(f"[Diagnoser] Node {failed_log.node_id} not in definition of {automation.id}")

        output = failed_log.output_fields
        issues = self.classifier.classify(failed_log.error, output)
        if not issues:
            issues = [ErrorClassifier.fallback_issue(failed_log.error, output)]

        logger.info(
            f"[Diagnoser] {automation.id or '?'}: {len(issues)} issue(s) "
            f"{[i.type.value for i in issues]} on node {failed_log.node_id}"
        )
        return Diagnosis(
            issues=issues,
            failed_node=failed_node,
            failed_log=failed_log,
            execution=execution,
        )

    @staticmethod
    def find_failing_log(execution: ExecutionRecord) -> Optional[LogEntry]:
        """First log entry (stored order) with a non-null error"""
        for entry in execution.logs:
            if entry.error is not None:
                return entry
        return None

    @staticmethod
    def _execution_level_issue(execution: ExecutionRecord) -> Issue:
        if execution.error:
            return Issue(
                type=IssueType.EXECUTION_ERROR,
                category=IssueCategory.EXECUTION,
                message=execution.error,
                fix="Check the failing node's configuration and run the automation again",
                retryable=False,
                severity=Severity.HIGH,
            )
        if execution.is_cancelled:
            return Issue(
                type=IssueType.CANCELLED,
                category=IssueCategory.INFORMATIONAL,
                message="Execution was cancelled by user",
                fix="Run the automation again when you are ready",
                retryable=False,
                severity=Severity.LOW,
            )
        return Issue(
            type=IssueType.UNKNOWN,
            category=IssueCategory.INFORMATIONAL,
            message="No clear failure point found",
            fix="Review the execution logs on Pulseflow",
            retryable=False,
            severity=Severity.LOW,
        )
