"""
Retry Logic 테스트
"""

from unittest.mock import Mock, patch

import pytest

from src.exceptions import AutomationFetchError, is_retryable_error
from src.utils.retry import exponential_backoff, retry_with_backoff


@pytest.fixture(autouse=True)
def no_sleep():
    with patch("src.utils.retry.time.sleep") as sleep:
        yield sleep


def test_exponential_backoff():
    assert [exponential_backoff(i) for i in range(4)] == [1.0, 2.0, 4.0, 8.0]
    assert exponential_backoff(10, max_delay=32.0) == 32.0


def test_succeeds_after_transient_failures(no_sleep):
    func = Mock(side_effect=[ConnectionError("down"), TimeoutError("slow"), "ok"])
    func.__name__ = "fetch"

    assert retry_with_backoff(max_retries=3)(func)() == "ok"
    assert [c.args[0] for c in no_sleep.call_args_list] == [1.0, 2.0]


def test_raises_after_max_retries():
    func = Mock(side_effect=ConnectionError("down"))
    func.__name__ = "fetch"

    with pytest.raises(ConnectionError):
        retry_with_backoff(max_retries=3)(func)()
    assert func.call_count == 3


def test_non_retryable_type_not_retried():
    func = Mock(side_effect=ValueError("bad"))
    func.__name__ = "fetch"

    with pytest.raises(ValueError):
        retry_with_backoff(max_retries=3)(func)()
    assert func.call_count == 1


def test_should_retry_predicate_stops_early():
    func = Mock(side_effect=AutomationFetchError("HTTP 404", status_code=404))
    func.__name__ = "fetch"
    decorated = retry_with_backoff(
        max_retries=3,
        retryable_exceptions=(AutomationFetchError,),
        should_retry=is_retryable_error,
    )(func)

    with pytest.raises(AutomationFetchError):
        decorated()
    assert func.call_count == 1


@pytest.mark.parametrize("status_code, expected", [(429, True), (503, True), (404, False), (None, False)])
def test_is_retryable_error(status_code, expected):
    assert is_retryable_error(AutomationFetchError("x", status_code=status_code)) is expected
