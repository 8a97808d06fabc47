"""Errors raised by the payment provider clients.

Services only catch ``IntegrationError``; ``retryable`` tells the
reconciler and the API whether trying again later makes sense.
"""

from typing import Optional


class IntegrationError(Exception):
    code = "ERROR"
    retryable = False
    default_message = "Provider error"

    def __init__(
        self, service: str, message: Optional[str] = None, status_code: Optional[int] = None
    ) -> None:
        self.service = service
        self.message = message or self.default_message
        # HTTP status returned by the provider, when there was a response
        self.status_code = status_code
        super().__init__(str(self))

    def __str__(self) -> str:
        return f"{self.service}:{self.code}:{self.message}"


class IntegrationTimeoutError(IntegrationError):
    code = "TIMEOUT"
    retryable = True
    default_message = "Upstream timeout"


class IntegrationUnavailableError(IntegrationError):
    code = "UNAVAILABLE"
    retryable = True
    default_message = "Upstream unavailable"


class IntegrationBadGatewayError(IntegrationError):
    code = "BAD_GATEWAY"
    default_message = "Unexpected upstream response"


class IntegrationConfigurationError(IntegrationError):
    code = "NOT_CONFIGURED"
    default_message = "Provider is not configured"
