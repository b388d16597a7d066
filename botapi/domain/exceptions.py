"""Error taxonomy for the bot API runtime.

Only throttle conditions are ever handled locally (inside the rate-limited
executor, and only when auto-wait is enabled). Everything else reaches the
caller as a typed outcome or one of the exceptions below.
"""

from typing import Any, Mapping, Optional


class BotApiError(Exception):
    """Base class for all errors raised by botapi."""


class ConfigurationError(BotApiError):
    """Raised when a client is built from malformed credentials or settings."""


class CallError(BotApiError):
    """Raised when an outbound call does not produce a success payload.

    Attributes:
        method: Name of the remote method that failed.
        outcome: The failure outcome returned by the executor.
    """

    def __init__(self, message: str, method: Optional[str] = None, outcome: Any = None):
        super().__init__(message)
        self.method = method
        self.outcome = outcome


class ThrottleError(CallError):
    """The remote service asked the caller to wait before retrying."""

    def __init__(self, retry_after: float, method: Optional[str] = None, outcome: Any = None):
        super().__init__(
            f"Throttled by remote service on {method or 'call'}; retry after {retry_after:g}s",
            method=method,
            outcome=outcome,
        )
        self.retry_after = retry_after


class RemoteError(CallError):
    """A method-specific failure reported by the remote service."""

    def __init__(
        self,
        error_code: int,
        description: str,
        method: Optional[str] = None,
        parameters: Optional[Mapping[str, Any]] = None,
        outcome: Any = None,
    ):
        super().__init__(f"[{error_code}] {description}", method=method, outcome=outcome)
        self.error_code = error_code
        self.description = description
        self.parameters = dict(parameters or {})


class TransportError(CallError):
    """Connectivity or response decoding failure. Never retried automatically."""


class DecodeError(BotApiError):
    """A payload could not be decoded into a typed object."""


class UpdateDecodeError(DecodeError):
    """An inbound update envelope could not be decoded.

    Attributes:
        raw: The offending payload, as received.
    """

    def __init__(self, message: str, raw: Any = None):
        super().__init__(message)
        self.raw = raw
