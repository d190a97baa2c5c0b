"""
Failure Analyzer for Pulseflow Debug Agent

Execution-history breakdowns and error-string parsing used by the
summary route and the LLM prompt builder.
"""

import re
from typing import Any, Dict, List, Optional, Tuple

from src.diagnosis.models import AutomationRecord, ExecutionRecord, ExecutionStatus

# "SwapTokens (node_abc123): execution reverted" → ("SwapTokens", "node_abc123")
FAILED_NODE_REF = re.compile(r"^([^(]+)\(([^)]+)\)")


class FailureAnalyzer:
    """
    Detailed failure analyzer that provides history-level insights
    on top of the single-execution diagnosis.
    """

    @staticmethod
    def extract_failed_node_ref(error: Optional[str]) -> Tuple[Optional[str], Optional[str]]:
        """
        Parse the "NodeType(nodeId)" prefix of a top-level execution error

        Args:
            error: Top-level execution error string

        Returns:
            (node_type, node_id), each None when the prefix is absent

        Examples:
            >>> FailureAnalyzer.extract_failed_node_ref("swapTokens (n42): execution reverted")
            ('swapTokens', 'n42')
            >>> FailureAnalyzer.extract_failed_node_ref("timeout")
            (None, None)
        """
        if not error:
            return None, None
        match = FAILED_NODE_REF.match(error)
        if not match:
            return None, None
        node_type = match.group(1).strip() or None
        node_id = match.group(2).strip() or None
        return node_type, node_id

    @staticmethod
    def analyze_history(executions: List[ExecutionRecord]) -> Dict[str, Any]:
        """
        Summarize an execution list (newest first)

        Args:
            executions: Executions as returned by the API

        Returns:
            Dict with:
                - latest_status: Status of executions[0] (None when empty)
                - latest_error: Error of executions[0]
                - total_runs: Number of executions
                - success_count / failure_count / cancelled_count
                - success_rate: Formatted percentage ("66.7%")

        Examples:
            >>> result = FailureAnalyzer.analyze_history([])
            >>> print(result["success_rate"])  # "0.0%"
        """
        latest = executions[0] if executions else None
        success_count = sum(1 for e in executions if e.status == ExecutionStatus.SUCCESS.value)
        failure_count = sum(1 for e in executions if e.status == ExecutionStatus.FAILED.value)
        cancelled_count = sum(1 for e in executions if e.status == ExecutionStatus.CANCELLED.value)
        total = len(executions)

        return {
            "latest_status": latest.status if latest else None,
            "latest_error": latest.error if latest else None,
            "total_runs": total,
            "success_count": success_count,
            "failure_count": failure_count,
            "cancelled_count": cancelled_count,
            "success_rate": f"{(success_count / (total or 1)) * 100:.1f}%",
        }

    @staticmethod
    def failed_node_context(automation: AutomationRecord, execution: Optional[ExecutionRecord]) -> Dict[str, Any]:
        """
        Best-effort failed node lookup from the top-level error string

        Used when the logs do not identify a failing node (LLM prompt context).
        """
        node_type, node_id = FailureAnalyzer.extract_failed_node_ref(execution.error if execution else None)
        node = automation.find_node(node_id)
        return {
            "node_type": node.type if node else (node_type or "Unknown"),
            "node_id": node_id or "Unknown",
            "config": node.config if node else {},
        }
