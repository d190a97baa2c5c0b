"""
Pulseflow Debug Agent - Error Classifier Unit Tests
Created: 2026-01-13

Rule table: additive matching, blockchain family gate, message sources.
"""

import re

import pytest

from src.diagnosis.error_classifier import (
    CLASSIFICATION_RULES,
    ClassificationRule,
    ErrorClassifier,
    IssueCategory,
    IssueType,
    RuleFamily,
    Severity,
)


@pytest.fixture
def classifier():
    return ErrorClassifier()


def _types(issues):
    return [issue.type for issue in issues]


class TestRuleTable:
    """개별 규칙 매칭"""

    @pytest.mark.parametrize("error_text", [
        "Request failed with status code 504",
        "502 Bad Gateway",
        "Service Unavailable (503)",
        "connect ETIMEDOUT 10.0.0.1:443",
        "connect ECONNREFUSED 127.0.0.1:8545",
        "Rate limit exceeded for RPC",
        "HTTP 429 Too Many Requests",
    ])
    def test_network_patterns(self, classifier, error_text):
        issues = classifier.classify(error_text)

        assert _types(issues) == [IssueType.NETWORK]
        assert issues[0].retryable is True
        assert issues[0].severity == Severity.MEDIUM
        assert issues[0].category == IssueCategory.NETWORK

    def test_insufficient_funds_for_gas(self, classifier):
        """'insufficient funds for gas' → insufficient_funds, not retryable, high"""
        issues = classifier.classify("insufficient funds for gas * price + value")

        assert _types(issues) == [IssueType.INSUFFICIENT_FUNDS]
        assert issues[0].retryable is False
        assert issues[0].severity == Severity.HIGH
        assert issues[0].category == IssueCategory.BLOCKCHAIN
        assert issues[0].message == "Wallet has insufficient funds for this transaction"

    def test_execution_reverted(self, classifier):
        issues = classifier.classify("execution reverted", {"revertReason": "STF"})

        assert _types(issues) == [IssueType.REVERTED]
        assert issues[0].message == "STF"
        assert issues[0].retryable is False

    def test_reverted_default_message(self, classifier):
        issues = classifier.classify("Execution Reverted")

        assert issues[0].message == "Transaction would revert"

    def test_slippage_uses_revert_reason(self, classifier):
        issues = classifier.classify(
            "INSUFFICIENT_OUTPUT_AMOUNT",
            {"revertReason": "UniswapV2Router: INSUFFICIENT_OUTPUT_AMOUNT"},
        )

        assert _types(issues) == [IssueType.SLIPPAGE]
        assert issues[0].message == "UniswapV2Router: INSUFFICIENT_OUTPUT_AMOUNT"
        assert issues[0].retryable is True
        assert "2-3%" in issues[0].fix

    def test_missing_variable_keeps_raw_error(self, classifier):
        error = "Variable 'targetPrice' not found"
        issues = classifier.classify(error)

        assert _types(issues) == [IssueType.MISSING_VARIABLE]
        assert issues[0].message == error
        assert issues[0].category == IssueCategory.CONFIGURATION

    @pytest.mark.parametrize("error_text", [
        "Previous node output is empty",
        "No previous node output available",
    ])
    def test_missing_input(self, classifier, error_text):
        assert _types(classifier.classify(error_text)) == [IssueType.MISSING_INPUT]

    @pytest.mark.parametrize("error_text", [
        "Node must be placed inside a For-Each block",
        "forEach sentinel reached outside loop",
    ])
    def test_foreach(self, classifier, error_text):
        assert _types(classifier.classify(error_text)) == [IssueType.FOREACH]

    def test_case_insensitive(self, classifier):
        assert _types(classifier.classify("INSUFFICIENT FUNDS")) == [IssueType.INSUFFICIENT_FUNDS]
        assert _types(classifier.classify("variable x NOT FOUND")) == [IssueType.MISSING_VARIABLE]


class TestAdditiveMatching:
    """여러 규칙이 동시에 매칭되면 모두 Issue로 추가"""

    def test_network_and_slippage(self, classifier):
        """'429' + 'slippage' → network + slippage (둘 다 retryable)"""
        issues = classifier.classify("429: slippage tolerance exceeded")

        assert _types(issues) == [IssueType.NETWORK, IssueType.SLIPPAGE]
        assert all(issue.retryable for issue in issues)

    def test_reverted_with_output_amount(self, classifier):
        issues = classifier.classify("execution reverted: INSUFFICIENT_OUTPUT_AMOUNT")

        assert _types(issues) == [IssueType.SLIPPAGE, IssueType.REVERTED]

    def test_issues_follow_table_order(self, classifier):
        issues = classifier.classify("forEach: Variable x not found after 503")

        assert _types(issues) == [IssueType.NETWORK, IssueType.MISSING_VARIABLE, IssueType.FOREACH]

    def test_family_gate_alone_emits_nothing(self, classifier):
        """CALL_EXCEPTION은 blockchain family gate일 뿐, 단독으로는 Issue 없음"""
        assert classifier.classify("CALL_EXCEPTION") == []

    def test_default_gate_admits_bare_slippage(self, classifier):
        """Gate에 sub-rule 패턴이 포함되어 있어 slippage 단독 에러도 분류됨"""
        assert _types(classifier.classify("Slippage tolerance exceeded")) == [IssueType.SLIPPAGE]

    def test_nested_rule_requires_family_gate(self):
        family = RuleFamily(name=IssueCategory.BLOCKCHAIN, gate=re.compile("chain", re.IGNORECASE))
        rule = ClassificationRule(
            issue_type=IssueType.REVERTED,
            category=IssueCategory.BLOCKCHAIN,
            pattern=re.compile("boom", re.IGNORECASE),
            retryable=False,
            severity=Severity.HIGH,
            fix="fix it",
            family=family,
        )
        classifier = ErrorClassifier(rules=[rule])

        assert classifier.classify("boom") == []
        assert _types(classifier.classify("chain boom")) == [IssueType.REVERTED]


class TestFallback:
    def test_no_match_returns_empty(self, classifier):
        assert classifier.classify("something odd happened") == []

    @pytest.mark.parametrize("error_text", [None, ""])
    def test_empty_error(self, classifier, error_text):
        assert classifier.classify(error_text) == []

    def test_fallback_prefers_user_message(self):
        issue = ErrorClassifier.fallback_issue("raw error", {"userMessage": "Friendly text"})

        assert issue.type == IssueType.UNKNOWN
        assert issue.message == "Friendly text"
        assert issue.severity == Severity.MEDIUM

    def test_fallback_uses_raw_error(self):
        assert ErrorClassifier.fallback_issue("raw error").message == "raw error"

    def test_fallback_without_anything(self):
        assert ErrorClassifier.fallback_issue(None, None).message == "Unknown error occurred"

    def test_non_dict_output_is_ignored(self, classifier):
        issues = classifier.classify("503", output=["not", "a", "dict"])

        assert issues[0].message == "Temporary network issue"


class TestDisplayHelpers:
    def test_display_name_has_no_underscores(self):
        for rule in CLASSIFICATION_RULES:
            assert "_" not in ErrorClassifier.get_issue_display_name(rule.issue_type)

    def test_severity_icons(self):
        assert ErrorClassifier.get_severity_icon(Severity.HIGH) == "🔴"
        assert ErrorClassifier.get_severity_icon(Severity.LOW) == "🟢"
