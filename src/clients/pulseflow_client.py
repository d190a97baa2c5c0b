"""
Pulseflow API Client

Fetches automation documents (definition + embedded executions) from
GET {PULSEFLOW_API_URL}/{id}?password={secret}

Every failure (transport error, non-2xx, bad JSON, unusable payload) is
logged and normalized to None. Callers treat None as "automation not found".
"""

import re
from typing import Any, Dict, Optional

import requests
from loguru import logger

from src.config import get_settings
from src.diagnosis.models import AutomationRecord
from src.exceptions import AutomationFetchError, AutomationPayloadError, is_retryable_error
from src.utils.retry import retry_with_backoff

AUTOMATION_ID_PATTERN = re.compile(r"^[a-z0-9]{20,30}$")
AUTOMATION_URL_PATTERN = re.compile(r"pulseflow\.co/automations/([a-z0-9]+)")

TRANSIENT_EXCEPTIONS = (requests.ConnectionError, requests.Timeout, AutomationFetchError)


def extract_automation_id(text: Optional[str]) -> Optional[str]:
    """
    Pull an automation id out of a chat message

    Accepts a bare id (20-30 lowercase alphanumerics) or a
    pulseflow.co/automations/<id> URL.

    Examples:
        >>> extract_automation_id("cmkwhwr4j0001jp0412bdp8zw")
        'cmkwhwr4j0001jp0412bdp8zw'
        >>> extract_automation_id("https://pulseflow.co/automations/cmkwhwr4j0001jp0412bdp8zw/edit")
        'cmkwhwr4j0001jp0412bdp8zw'
        >>> extract_automation_id("hello") is None
        True
    """
    if not text:
        return None
    text = text.strip()
    if AUTOMATION_ID_PATTERN.match(text):
        return text
    match = AUTOMATION_URL_PATTERN.search(text)
    if match:
        return match.group(1)
    return None


def _should_retry(error: Exception) -> bool:
    if isinstance(error, AutomationFetchError):
        return is_retryable_error(error)
    return True


class PulseflowClient:
    """
    Thin requests-based client for the Pulseflow automations endpoint

    Usage:
        client = PulseflowClient()
        automation = client.fetch_automation("cmkwhwr4j0001jp0412bdp8zw")
        if automation is None:
            ...  # not found / unreachable
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        password: Optional[str] = None,
        timeout: Optional[int] = None,
        max_retries: Optional[int] = None,
        retry_delay: Optional[float] = None,
        history_limit: Optional[int] = None,
        session: Optional[requests.Session] = None,
    ):
        settings = get_settings()
        self.base_url = (base_url or settings.PULSEFLOW_API_URL).rstrip("/")
        self.password = password if password is not None else settings.PULSEFLOW_API_PASSWORD
        self.timeout = timeout or settings.REQUEST_TIMEOUT
        self.max_retries = max_retries or settings.MAX_RETRIES
        self.retry_delay = retry_delay if retry_delay is not None else settings.RETRY_DELAY
        self.history_limit = history_limit or settings.EXECUTION_HISTORY_LIMIT
        self.session = session or requests.Session()

    def _request(self, automation_id: str) -> Dict[str, Any]:
        response = self.session.get(
            f"{self.base_url}/{automation_id}",
            params={"password": self.password or ""},
            timeout=self.timeout,
        )

        if not response.ok:
            raise AutomationFetchError(
                f"HTTP {response.status_code}: {response.reason}",
                automation_id=automation_id,
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise AutomationPayloadError(
                "Response body is not valid JSON",
                automation_id=automation_id,
                details={"error": str(e)},
            )

        if not isinstance(payload, dict):
            raise AutomationPayloadError(
                f"Expected a JSON object, got {type(payload).__name__}",
                automation_id=automation_id,
            )
        return payload

    def fetch_automation_payload(self, automation_id: str) -> Optional[Dict[str, Any]]:
        """
        Fetch the raw automation document

        Returns:
            The JSON object, or None on any failure
        """
        request = retry_with_backoff(
            max_retries=self.max_retries,
            base_delay=self.retry_delay,
            retryable_exceptions=TRANSIENT_EXCEPTIONS,
            should_retry=_should_retry,
            log_prefix="Pulseflow",
        )(self._request)

        try:
            payload = request(automation_id)
        except (requests.RequestException, AutomationFetchError, AutomationPayloadError) as e:
            logger.error(f"[Pulseflow] Error fetching automation {automation_id}: {e}")
            return None

        executions = payload.get("executions")
        count = len(executions) if isinstance(executions, list) else 0
        logger.info(f"[Pulseflow] Fetched automation {automation_id} ({count} execution(s))")
        return payload

    def fetch_automation(self, automation_id: str) -> Optional[AutomationRecord]:
        """
        Fetch and parse an automation, keeping the newest `history_limit` executions

        Returns:
            AutomationRecord, or None when the automation could not be fetched or parsed
        """
        payload = self.fetch_automation_payload(automation_id)
        if payload is None:
            return None

        automation = AutomationRecord.from_payload(payload, automation_id=automation_id)
        if automation is None:
            return None

        automation.executions = automation.executions[: self.history_limit]
        return automation
