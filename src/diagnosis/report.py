"""
Debug report rendering

Renders a Diagnosis as the Markdown message sent by the bot and returned
by the /api/debug route.
"""

import json
from datetime import datetime, timezone
from typing import List, Optional

from src.diagnosis.diagnoser import Diagnosis
from src.diagnosis.error_classifier import ErrorClassifier, IssueType
from src.diagnosis.models import AutomationRecord, ExecutionRecord, ExecutionStatus

WALLET_NOTE = (
    "⚠️ *Note*: Since your wallet is connected to Pulseflow, I recommend reviewing "
    "the configuration yourself rather than making changes through this bot."
)

STATUS_ICONS = {
    ExecutionStatus.SUCCESS.value: "✅",
    ExecutionStatus.FAILED.value: "❌",
}


def format_timestamp(value: Optional[str]) -> str:
    """
    Render an ISO-8601 timestamp as "YYYY-MM-DD HH:MM:SS UTC"

    Unparseable values are returned verbatim; None renders as "Unknown".
    """
    if not value:
        return "Unknown"
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        parsed = parsed.astimezone(timezone.utc)
    except (ValueError, OverflowError):
        return value
    return parsed.strftime("%Y-%m-%d %H:%M:%S UTC")


def format_input_preview(value, limit: int = 500) -> str:
    """Pretty-printed JSON of a node's recorded input, cut to `limit` characters"""
    text = json.dumps(value, indent=2, default=str, ensure_ascii=False)
    return text[:limit]


def render_issues(diagnosis: Diagnosis) -> str:
    lines = []
    for idx, issue in enumerate(diagnosis.issues, start=1):
        label = ErrorClassifier.get_issue_display_name(issue.type)
        icon = ErrorClassifier.get_severity_icon(issue.severity)
        marker = " (retryable)" if issue.retryable else ""
        lines.append(f"{idx}. {icon} *{label}*{marker}")
        lines.append(f"   {issue.message}")
        if issue.fix:
            lines.append(f"   💡 Fix: {issue.fix}")
        lines.append("")
    return "\n".join(lines)


def render_history(executions: List[ExecutionRecord], limit: int = 5) -> str:
    lines = []
    for execution in executions[:limit]:
        icon = STATUS_ICONS.get(execution.status, "⏸️")
        lines.append(f"{icon} {format_timestamp(execution.started_at)} - {execution.status}")
    return "\n".join(lines)


def render_report(
    automation: AutomationRecord,
    diagnosis: Diagnosis,
    executions: Optional[List[ExecutionRecord]] = None,
    recent_limit: int = 5,
    preview_chars: int = 500,
) -> str:
    """
    Render the full debug report

    Args:
        automation: Automation the diagnosis belongs to
        diagnosis: Result of ExecutionDiagnoser.diagnose()
        executions: Execution list for the history section (defaults to automation.executions)
        recent_limit: Executions listed in the history section
        preview_chars: Max characters of the failing entry's input dump

    Returns:
        str: Telegram-flavoured Markdown
    """
    if executions is None:
        executions = automation.executions

    if not diagnosis.has_execution:
        issue = diagnosis.issues[0] if diagnosis.issues else None
        message = issue.message if issue else "No executions found for this automation"
        text = f"🔍 *Pulseflow Debug Report*\n\n📊 *Automation*: {automation.display_name}\n\n"
        text += f"ℹ️ {message}"
        if issue and issue.type == IssueType.NO_EXECUTIONS and issue.fix:
            text += f"\n💡 {issue.fix}"
        return text

    execution = diagnosis.execution
    parts = [
        "🔍 *Pulseflow Debug Report*\n",
        f"📊 *Automation*: {automation.display_name}",
        f"📅 *Last Run*: {format_timestamp(execution.started_at)}",
        f"📈 *Status*: {execution.status}\n",
    ]

    node = diagnosis.failed_node
    if node is not None:
        parts.append(f"❌ *Failed Node*: {node.type}")
        if node.notes:
            parts.append(f"📝 *Notes*: {node.notes}")

    parts.append("\n🔴 *Issues Found*:")
    parts.append(render_issues(diagnosis))

    failed_log = diagnosis.failed_log
    if failed_log is not None and failed_log.input is not None:
        parts.append("📋 *Node Configuration Used*:")
        parts.append(f"```\n{format_input_preview(failed_log.input, preview_chars)}\n```")

    history = render_history(executions, recent_limit)
    if history:
        parts.append("\n📜 *Recent Executions*:")
        parts.append(history)

    parts.append(f"\n{WALLET_NOTE}")
    return "\n".join(parts)


def render_issue_recap(diagnosis: Diagnosis) -> str:
    """Short issue/fix list used when the LLM is unavailable in chat"""
    lines = ["Here is what the last diagnosis found:"]
    for issue in diagnosis.issues:
        lines.append(f"• *{ErrorClassifier.get_issue_display_name(issue.type)}*: {issue.message}")
        if issue.fix:
            lines.append(f"  💡 {issue.fix}")
    return "\n".join(lines)
