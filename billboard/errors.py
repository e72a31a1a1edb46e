"""
Error taxonomy shared by the provider clients and the session orchestrator.

  ConfigurationError     — missing credential, operator must fix (not retryable)
  TransportError         — non-2xx response or network failure (retryable)
  ModerationRefusal      — provider declined on SAFETY / OTHER grounds (retryable)
  MalformedResponseError — unparsable or incomplete payload (retryable)
"""

from typing import Optional


class BillboardError(Exception):
    """Base class for every failure raised by the client layer."""

    kind = "error"
    retryable = True

    def __init__(self, message: str, provider: str = ""):
        super().__init__(message)
        self.message = message
        self.provider = provider


class ConfigurationError(BillboardError):
    kind = "configuration"
    retryable = False


class TransportError(BillboardError):
    kind = "transport"

    def __init__(
        self,
        message: str,
        provider: str = "",
        status_code: Optional[int] = None,
        body: str = "",
    ):
        super().__init__(message, provider)
        self.status_code = status_code
        self.body = body


class ModerationRefusal(BillboardError):
    kind = "moderation"

    def __init__(self, message: str, provider: str = "", finish_reason: str = ""):
        super().__init__(message, provider)
        self.finish_reason = finish_reason


class MalformedResponseError(BillboardError):
    kind = "malformed"


class TemplateNotFound(BillboardError):
    kind = "template_not_found"
    retryable = False
