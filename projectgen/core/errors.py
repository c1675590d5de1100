"""
Error taxonomy for project-gen
"""

from typing import Optional


class ProviderError(Exception):
    """Error raised by an LLM provider adapter with provider and failure type"""

    AUTH_FAILED = "AUTH_FAILED"
    RATE_LIMIT = "RATE_LIMIT"
    CONNECTION_ERROR = "CONNECTION_ERROR"
    TIMEOUT = "TIMEOUT"
    EMPTY_RESPONSE = "EMPTY_RESPONSE"
    INVALID_RESPONSE = "INVALID_RESPONSE"
    CONFIG_ERROR = "CONFIG_ERROR"
    HTTP_ERROR = "HTTP_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"

    def __init__(self, provider: str, error_type: str, message: str, original_error: Exception = None):
        self.provider = provider
        self.error_type = error_type
        self.message = message
        self.original_error = original_error
        super().__init__(f"{provider} {error_type}: {message}")

    @property
    def is_auth_error(self) -> bool:
        return self.error_type in (self.AUTH_FAILED, self.CONFIG_ERROR)

    @property
    def is_rate_limit(self) -> bool:
        return self.error_type == self.RATE_LIMIT

    @property
    def is_transport_error(self) -> bool:
        return self.error_type in (self.CONNECTION_ERROR, self.TIMEOUT, self.HTTP_ERROR)


class RecoveryExhaustion(Exception):
    """No strategy could recover a JSON value from an LLM response"""

    def __init__(self, message: str, excerpt: str = ""):
        self.excerpt = excerpt
        super().__init__(message)


class StageFatalError(Exception):
    """Unrecoverable failure of a pipeline stage"""

    def __init__(self, stage: str, message: str, cause: Optional[Exception] = None):
        self.stage = stage
        self.message = message
        self.cause = cause
        super().__init__(f"[{stage}] {message}")


class ReconciliationError(Exception):
    """The on-disk project could not be turned into a structure snapshot"""


class InstallError(Exception):
    """Dependency installation failed"""

    def __init__(self, message: str, output: str = ""):
        self.output = output
        super().__init__(message)
