"""
Error Classifier for Pulseflow Debug Agent

Classifies a failing node's error text against an ordered rule table.
Rules are independent and additive: every matching rule contributes one Issue.

Rule families:
1. Network (timeouts, gateway errors, rate limits)
2. Blockchain (insufficient funds, slippage, reverted) - nested under a family gate
3. Configuration (missing variable, missing input, For-Each misuse)
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Pattern

from loguru import logger
from pydantic import BaseModel


class IssueType(str, Enum):
    """Issue taxonomy surfaced to the user"""

    NO_EXECUTIONS = "no_executions"
    EXECUTION_ERROR = "execution_error"
    CANCELLED = "cancelled"
    NETWORK = "network"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    SLIPPAGE = "slippage"
    REVERTED = "reverted"
    MISSING_VARIABLE = "missing_variable"
    MISSING_INPUT = "missing_input"
    FOREACH = "foreach"
    UNKNOWN = "unknown"


class IssueCategory(str, Enum):
    """Rule family an issue belongs to"""

    NETWORK = "network"
    BLOCKCHAIN = "blockchain"
    CONFIGURATION = "configuration"
    EXECUTION = "execution"
    INFORMATIONAL = "informational"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Issue(BaseModel):
    """One classified problem found while diagnosing an execution"""

    type: IssueType
    category: IssueCategory
    message: str
    fix: Optional[str] = None
    retryable: bool = False
    severity: Severity = Severity.LOW


@dataclass(frozen=True)
class RuleFamily:
    """A gate that nested rules require; never emits an Issue itself"""

    name: IssueCategory
    gate: Pattern[str]


@dataclass(frozen=True)
class ClassificationRule:
    """
    One row of the rule table.

    message_field names the key in the log entry's output object that
    overrides default_message. When default_message is None the raw
    error text is used.
    """

    issue_type: IssueType
    category: IssueCategory
    pattern: Pattern[str]
    retryable: bool
    severity: Severity
    fix: str
    default_message: Optional[str] = None
    message_field: Optional[str] = None
    family: Optional[RuleFamily] = None

    def matches(self, error_text: str) -> bool:
        if self.family is not None and not self.family.gate.search(error_text):
            return False
        return bool(self.pattern.search(error_text))

    def build_issue(self, error_text: str, output: Dict[str, Any]) -> Issue:
        message = None
        if self.message_field:
            message = output.get(self.message_field) or None
        if message is None:
            message = self.default_message if self.default_message is not None else error_text
        return Issue(
            type=self.issue_type,
            category=self.category,
            message=str(message),
            fix=self.fix,
            retryable=self.retryable,
            severity=self.severity,
        )


def _rx(pattern: str) -> Pattern[str]:
    return re.compile(pattern, re.IGNORECASE)


# Gate is a superset of the nested patterns so a bare slippage error still classifies
BLOCKCHAIN_FAMILY = RuleFamily(
    name=IssueCategory.BLOCKCHAIN,
    gate=_rx(r"insufficient funds|execution reverted|CALL_EXCEPTION|INSUFFICIENT_OUTPUT_AMOUNT|slippage"),
)

# Order matters: issues are reported in table order
CLASSIFICATION_RULES: List[ClassificationRule] = [
    ClassificationRule(
        issue_type=IssueType.NETWORK,
        category=IssueCategory.NETWORK,
        pattern=_rx(r"504|502|503|ETIMEDOUT|ECONNREFUSED|rate limit|429"),
        retryable=True,
        severity=Severity.MEDIUM,
        fix="Wait a moment and retry the automation",
        default_message="Temporary network issue",
        message_field="userMessage",
    ),
    ClassificationRule(
        issue_type=IssueType.INSUFFICIENT_FUNDS,
        category=IssueCategory.BLOCKCHAIN,
        pattern=_rx(r"insufficient funds"),
        retryable=False,
        severity=Severity.HIGH,
        fix="Fund your wallet or reduce the transaction amount",
        default_message="Wallet has insufficient funds for this transaction",
        family=BLOCKCHAIN_FAMILY,
    ),
    ClassificationRule(
        issue_type=IssueType.SLIPPAGE,
        category=IssueCategory.BLOCKCHAIN,
        pattern=_rx(r"INSUFFICIENT_OUTPUT_AMOUNT|slippage"),
        retryable=True,
        severity=Severity.MEDIUM,
        fix="Increase slippage tolerance (try 2-3%) or reduce swap amount",
        default_message="Slippage issue - price moved during execution",
        message_field="revertReason",
        family=BLOCKCHAIN_FAMILY,
    ),
    ClassificationRule(
        issue_type=IssueType.REVERTED,
        category=IssueCategory.BLOCKCHAIN,
        pattern=_rx(r"execution reverted"),
        retryable=False,
        severity=Severity.HIGH,
        fix="Check your parameters and try again with different values",
        default_message="Transaction would revert",
        message_field="revertReason",
        family=BLOCKCHAIN_FAMILY,
    ),
    ClassificationRule(
        issue_type=IssueType.MISSING_VARIABLE,
        category=IssueCategory.CONFIGURATION,
        pattern=_rx(r"Variable.*not found"),
        retryable=False,
        severity=Severity.HIGH,
        fix="Add a Variable node before this node to set the variable",
    ),
    ClassificationRule(
        issue_type=IssueType.MISSING_INPUT,
        category=IssueCategory.CONFIGURATION,
        pattern=_rx(r"Previous node output|no previous node output"),
        retryable=False,
        severity=Severity.HIGH,
        fix="Use this only after a node that produces output (like checkBalance)",
    ),
    ClassificationRule(
        issue_type=IssueType.FOREACH,
        category=IssueCategory.CONFIGURATION,
        pattern=_rx(r"For-Each|forEach"),
        retryable=False,
        severity=Severity.HIGH,
        fix="Move the node inside the For-Each block or remove the sentinel",
    ),
]


class ErrorClassifier:
    """
    Table-driven classifier for node error strings.

    A custom rule list can be injected for extension or testing; the
    default is CLASSIFICATION_RULES.
    """

    def __init__(self, rules: Optional[List[ClassificationRule]] = None):
        self.rules = list(rules) if rules is not None else list(CLASSIFICATION_RULES)

    def classify(self, error_text: Optional[str], output: Optional[Dict[str, Any]] = None) -> List[Issue]:
        """
        Classify an error string into zero or more Issues

        Args:
            error_text: Raw error string from the failing log entry
            output: The log entry's output object (may carry userMessage, revertReason)

        Returns:
            List[Issue]: One Issue per matching rule, in table order.
            Empty when nothing matched.

        Examples:
            >>> issues = ErrorClassifier().classify("429 Too Many Requests; slippage exceeded")
            >>> [i.type.value for i in issues]
            ['network', 'slippage']
        """
        if not error_text:
            return []

        text = str(error_text)
        output = output if isinstance(output, dict) else {}

        issues = []
        for rule in self.rules:
            if rule.matches(text):
                issues.append(rule.build_issue(text, output))

        logger.debug(f"[Classifier] {len(issues)} rule(s) matched: {[i.type.value for i in issues]}")
        return issues

    @staticmethod
    def fallback_issue(error_text: Optional[str], output: Optional[Dict[str, Any]] = None) -> Issue:
        """Issue used when no rule matched; prefers output.userMessage over the raw error"""
        output = output if isinstance(output, dict) else {}
        message = output.get("userMessage") or error_text or "Unknown error occurred"
        return Issue(
            type=IssueType.UNKNOWN,
            category=IssueCategory.INFORMATIONAL,
            message=str(message),
            fix="Review your automation configuration and try again",
            retryable=False,
            severity=Severity.MEDIUM,
        )

    @staticmethod
    def get_issue_display_name(issue_type: IssueType) -> str:
        """
        Get user-friendly label for an issue type

        Examples:
            >>> ErrorClassifier.get_issue_display_name(IssueType.MISSING_VARIABLE)
            'MISSING VARIABLE'
        """
        # Telegram legacy Markdown breaks on "_" inside bold entities
        return issue_type.value.replace("_", " ").upper()

    @staticmethod
    def get_severity_icon(severity: Severity) -> str:
        """
        Get emoji icon for severity

        Examples:
            >>> ErrorClassifier.get_severity_icon(Severity.HIGH)
            '🔴'
        """
        icons = {
            Severity.HIGH: "🔴",
            Severity.MEDIUM: "🟠",
            Severity.LOW: "🟢",
        }
        return icons.get(severity, "⚪")
