"""
Pulseflow Debug Agent Custom Exceptions
Specific error types for the fetch and LLM collaborators

Created: 2026-01-12
Purpose: Keep transport failures typed until they are normalized to "record absent"
"""

from typing import Optional, Dict, Any


# ============================================================================
# Base Exceptions
# ============================================================================

class PulseflowDebugError(Exception):
    """Base exception for all Pulseflow Debug Agent errors"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


# ============================================================================
# Pulseflow API Errors
# ============================================================================

class AutomationFetchError(PulseflowDebugError):
    """Fetching an automation from the Pulseflow API failed"""

    def __init__(
        self,
        message: str,
        automation_id: Optional[str] = None,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        self.automation_id = automation_id
        self.status_code = status_code
        super().__init__(message, details)


class AutomationPayloadError(PulseflowDebugError):
    """Pulseflow API returned a body that is not a usable automation document"""

    def __init__(
        self,
        message: str,
        automation_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        self.automation_id = automation_id
        super().__init__(message, details)


# ============================================================================
# LLM API Errors
# ============================================================================

class LLMAPIError(PulseflowDebugError):
    """Base exception for LLM API errors"""
    pass


class OpenAIAPIError(LLMAPIError):
    """OpenAI API specific errors"""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        self.status_code = status_code
        self.error_code = error_code
        super().__init__(message, details or {})

    @classmethod
    def from_openai_error(cls, error: Exception):
        """Create from OpenAI SDK error"""
        error_str = str(error)

        # SDK errors carry status_code; fall back to parsing the message
        status_code = getattr(error, "status_code", None)
        if status_code is None:
            if "401" in error_str:
                status_code = 401
            elif "429" in error_str:
                status_code = 429
            elif "500" in error_str:
                status_code = 500

        error_code = None
        if "invalid_api_key" in error_str:
            error_code = "invalid_api_key"
        elif "insufficient_quota" in error_str:
            error_code = "insufficient_quota"
        elif "rate_limit_exceeded" in error_str:
            error_code = "rate_limit_exceeded"

        return cls(
            message=f"OpenAI API Error: {error_str}",
            status_code=status_code,
            error_code=error_code,
            details={"original_error": error_str}
        )


# ============================================================================
# Configuration Errors
# ============================================================================

class ConfigurationError(PulseflowDebugError):
    """Base exception for configuration errors"""
    pass


class MissingAPIKeyError(ConfigurationError):
    """Required API key or token not found in environment"""

    def __init__(self, key_name: str, details: Optional[Dict[str, Any]] = None):
        self.key_name = key_name
        message = f"Missing required API key: {key_name}"
        super().__init__(message, details)


# ============================================================================
# Utility Functions
# ============================================================================

RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}


def is_retryable_error(error: Exception) -> bool:
    """
    Determine if an error is retryable (transient failure)

    Args:
        error: Exception to check

    Returns:
        bool: True if error should be retried
    """
    if isinstance(error, (AutomationFetchError, OpenAIAPIError)):
        return error.status_code in RETRYABLE_STATUS_CODES

    return False
