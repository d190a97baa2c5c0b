"""
Pulseflow Debug Agent - LLM Analyzer
Created: 2026-01-14

OpenAI chat-completion layer on top of the rule-based diagnosis.

핵심 기능:
- explain(): short natural-language explanation of a Diagnosis
- answer(): follow-up questions in the chat session, same context

The rule-based Diagnosis is always passed in as context; every method
returns None when the LLM is disabled or fails, and callers fall back to
the rule-based text.
"""

import json
from typing import Dict, List, Optional

from loguru import logger
from openai import APIConnectionError, APITimeoutError, OpenAI, OpenAIError, RateLimitError

from src.config import Settings, get_settings
from src.diagnosis.diagnoser import Diagnosis
from src.diagnosis.error_classifier import ErrorClassifier
from src.diagnosis.failure_analyzer import FailureAnalyzer
from src.diagnosis.models import AutomationRecord
from src.exceptions import OpenAIAPIError
from src.utils.retry import retry_with_backoff

RETRYABLE_OPENAI_ERRORS = (RateLimitError, APITimeoutError, APIConnectionError)

SYSTEM_PROMPT = """You are a Pulseflow automation debugging expert.
A rule-based checker has already classified the failure; treat its findings as ground truth
and explain them, do not contradict them. Never ask for private keys and never suggest
changing the wallet through this chat. Be concise."""


def build_context(automation: AutomationRecord, diagnosis: Diagnosis) -> str:
    """Plain-text description of the automation, latest execution and rule findings"""
    execution = diagnosis.execution
    if diagnosis.failed_node is not None:
        node_type = diagnosis.failed_node.type
        config = diagnosis.failed_node.config
    else:
        node_context = FailureAnalyzer.failed_node_context(automation, execution)
        node_type = node_context["node_type"]
        config = node_context["config"]

    error = "No error"
    if diagnosis.failed_log is not None and diagnosis.failed_log.error:
        error = diagnosis.failed_log.error
    elif execution is not None and execution.error:
        error = execution.error

    lines = [
        f'Automation: "{automation.display_name}"',
        f"Status: {execution.status if execution else 'No executions'}",
        f"Error: {error}",
        f"Node: {node_type}",
        f"Config: {json.dumps(config, default=str)}",
        "Rule findings:",
    ]
    for issue in diagnosis.issues:
        retry = "retryable" if issue.retryable else "not retryable"
        lines.append(
            f"- {ErrorClassifier.get_issue_display_name(issue.type)} "
            f"({retry}, {issue.severity.value}): {issue.message} | Fix: {issue.fix or '-'}"
        )
    return "\n".join(lines)


class LLMAnalyzer:
    """
    Optional OpenAI-backed explanation layer

    Usage:
        analyzer = LLMAnalyzer()
        text = analyzer.explain(automation, diagnosis)  # None → use rule-based report only
    """

    def __init__(self, settings: Optional[Settings] = None, client: Optional[OpenAI] = None):
        self.settings = settings or get_settings()
        self._client = client
        self._guide: Optional[str] = None

    @property
    def enabled(self) -> bool:
        return self._client is not None or self.settings.llm_enabled

    @property
    def client(self) -> OpenAI:
        if self._client is None:
            self._client = OpenAI(api_key=self.settings.OPENAI_API_KEY)
        return self._client

    @property
    def guide(self) -> str:
        if self._guide is None:
            self._guide = self.settings.load_debugging_guide()
        return self._guide

    def _system_prompt(self) -> str:
        if self.guide:
            return f"{SYSTEM_PROMPT}\n\nUse this guide:\n\n{self.guide}"
        return SYSTEM_PROMPT

    def _complete(self, messages: List[Dict[str, str]]) -> Optional[str]:
        if not self.enabled:
            logger.debug("[LLM] Disabled (no OPENAI_API_KEY)")
            return None

        @retry_with_backoff(
            max_retries=self.settings.MAX_RETRIES,
            base_delay=self.settings.RETRY_DELAY,
            retryable_exceptions=RETRYABLE_OPENAI_ERRORS,
            log_prefix="LLM",
        )
        def create():
            return self.client.chat.completions.create(
                model=self.settings.LLM_MODEL,
                messages=messages,
                max_tokens=self.settings.LLM_MAX_TOKENS,
                temperature=self.settings.LLM_TEMPERATURE,
            )

        try:
            completion = create()
        except OpenAIError as e:
            error = OpenAIAPIError.from_openai_error(e)
            logger.warning(f"[LLM] Falling back to rule-based reply: {error.message}")
            return None

        if not completion.choices:
            return None
        content = completion.choices[0].message.content
        return content.strip() if content else None

    def explain(self, automation: AutomationRecord, diagnosis: Diagnosis) -> Optional[str]:
        """Short explanation and fix for the diagnosed execution"""
        prompt = f"{build_context(automation, diagnosis)}\n\nWhat's wrong? Fix it. Be concise."
        return self._complete(
            [
                {"role": "system", "content": self._system_prompt()},
                {"role": "user", "content": prompt},
            ]
        )

    def answer(
        self,
        automation: AutomationRecord,
        diagnosis: Diagnosis,
        question: str,
        history: Optional[List[Dict[str, str]]] = None,
    ) -> Optional[str]:
        """
        Answer a follow-up question about the diagnosed automation

        Args:
            automation: Automation being discussed
            diagnosis: Latest rule-based diagnosis
            question: User's message
            history: Prior turns as {"role": "user"|"assistant", "content": str}
        """
        messages = [
            {"role": "system", "content": self._system_prompt()},
            {"role": "system", "content": build_context(automation, diagnosis)},
        ]
        messages.extend(history or [])
        messages.append({"role": "user", "content": question})
        return self._complete(messages)
