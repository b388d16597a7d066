"""Outcomes of an outbound call.

Every call resolves to exactly one of ``Success``, ``ThrottleFailure`` or
``OtherFailure``. Outcomes are never dropped: the executor returns them and
``raise_for_outcome`` turns failures into the matching exception.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Union

from botapi.domain.exceptions import RemoteError, ThrottleError, TransportError


@dataclass(frozen=True)
class Success:
    """The remote service accepted the call; ``result`` is the decoded payload."""
    result: Any = None
    ok = True


@dataclass(frozen=True)
class ThrottleFailure:
    """The remote service asked the caller to wait ``retry_after`` seconds."""
    retry_after: float
    description: str = "Too Many Requests"
    error_code: int = 429
    ok = False


@dataclass(frozen=True)
class OtherFailure:
    """Any non-throttle failure.

    ``error_code`` is the remote error code, or None when the failure happened
    below the API (connection refused, timeout, undecodable body), in which
    case ``transport_error`` is set.
    """
    error_code: Optional[int]
    description: str
    parameters: Dict[str, Any] = field(default_factory=dict)
    transport_error: bool = False
    ok = False


CallOutcome = Union[Success, ThrottleFailure, OtherFailure]


def raise_for_outcome(outcome: CallOutcome, method: Optional[str] = None) -> Any:
    """Returns the success payload or raises the exception for a failure.

    Raises:
        ThrottleError: For ``ThrottleFailure``.
        TransportError: For an ``OtherFailure`` flagged as a transport error.
        RemoteError: For any other ``OtherFailure``.
    """
    if isinstance(outcome, Success):
        return outcome.result
    if isinstance(outcome, ThrottleFailure):
        raise ThrottleError(outcome.retry_after, method=method, outcome=outcome)
    if outcome.transport_error or outcome.error_code is None:
        raise TransportError(
            f"Transport failure on {method or 'call'}: {outcome.description}",
            method=method,
            outcome=outcome,
        )
    raise RemoteError(
        outcome.error_code,
        outcome.description,
        method=method,
        parameters=outcome.parameters,
        outcome=outcome,
    )
