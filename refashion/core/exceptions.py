"""
Custom exception classes for the Refashion jobs service.
"""
from typing import Any, Dict, Optional


class RefashionBaseException(Exception):
    """Base exception for the jobs service."""

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)


class ConfigurationError(RefashionBaseException):
    """Raised when a required secret or key is not configured."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, "CONFIGURATION_ERROR", kwargs)


class WebhookVerificationError(RefashionBaseException):
    """Raised when an inbound webhook cannot be authenticated."""

    def __init__(self, message: str = "Webhook signature verification failed", **kwargs):
        super().__init__(message, "WEBHOOK_VERIFICATION_ERROR", kwargs)


class KeySetFetchError(RefashionBaseException):
    """Raised when the provider's public key set cannot be fetched."""

    def __init__(self, message: str = "Unable to fetch webhook key set", **kwargs):
        super().__init__(message, "KEY_SET_FETCH_ERROR", kwargs)


class RetryExhaustedError(RefashionBaseException):
    """Raised when a retried operation fails for good.

    Keeps the HTTP status and error code of the last underlying error so
    callers can still branch on them.
    """

    def __init__(self, context: str, attempts: int, last_error: Optional[BaseException] = None):
        last_message = str(last_error) if last_error is not None and str(last_error) else "Unknown error"
        message = f"{context} failed after {attempts} attempts. Last error: {last_message}"
        super().__init__(
            message,
            "RETRY_EXHAUSTED",
            {"context": context, "attempts": attempts}
        )
        self.context = context
        self.attempts = attempts
        self.last_error = last_error
        self.status = (
            getattr(last_error, "status", None)
            or getattr(last_error, "status_code", None)
            or getattr(getattr(last_error, "response", None), "status_code", None)
        )
        error_code = getattr(last_error, "code", None)
        self.error_code = error_code if isinstance(error_code, (str, int)) else None


class JobNotFoundError(RefashionBaseException):
    """Raised when a generation job is not found."""

    def __init__(self, job_id: str, **kwargs):
        message = f"Generation job not found: {job_id}"
        details = {"job_id": job_id}
        details.update(kwargs)
        super().__init__(message, "JOB_NOT_FOUND", details)


class ProviderError(RefashionBaseException):
    """Raised when the generation provider fails or answers with an unknown shape."""

    def __init__(self, provider: str, message: str, **kwargs):
        details = {"provider": provider}
        details.update(kwargs)
        super().__init__(message, "PROVIDER_ERROR", details)


class PollingTimeoutError(RefashionBaseException):
    """Raised when status polling runs out of attempts before a terminal state."""

    def __init__(self, attempts: int, **kwargs):
        details = {"attempts": attempts}
        details.update(kwargs)
        super().__init__(f"Polling timed out after {attempts} attempts", "POLLING_TIMEOUT", details)


class JobFailedError(RefashionBaseException):
    """Raised when a job is reported as failed by the status endpoint."""

    def __init__(self, payload: Dict[str, Any]):
        message = payload.get("error") or "Generation failed"
        super().__init__(message, "JOB_FAILED", {"payload": payload})
        self.payload = payload
