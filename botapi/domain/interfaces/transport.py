"""Interface for the HTTP transport.

Defines the contract for issuing a single outbound call to the remote
service and mapping its response to a ``CallOutcome``.
"""

import abc
from typing import Any, Mapping, Optional

from ..models.call import Attachment
from ..models.outcome import CallOutcome


class Transport(abc.ABC):
    """Abstract Base Class for a single-call transport."""

    @abc.abstractmethod
    async def send(
        self,
        method: str,
        params: Mapping[str, Any],
        attachment: Optional[Attachment] = None,
    ) -> CallOutcome:
        """Submits one call and returns its outcome.

        Implementations never raise for network or decoding problems; those
        come back as an ``OtherFailure`` with ``transport_error`` set.

        Args:
            method: Remote method name, e.g. 'getUpdates'.
            params: Encoded, JSON-ready parameters.
            attachment: Optional binary part sent as multipart form data.

        Returns:
            Success, ThrottleFailure or OtherFailure.
        """
        pass

    @abc.abstractmethod
    async def close(self) -> None:
        """Releases network resources held by the transport."""
        pass
