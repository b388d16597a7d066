"""Concrete implementation of the Transport interface using aiohttp.

Hides the specifics of the HTTP client library and translates the remote
JSON envelope into a ``CallOutcome``. Network and decoding failures become
transport-flagged ``OtherFailure`` values rather than exceptions.
"""

import asyncio
import logging
from typing import Any, Mapping, Optional

import aiohttp

from botapi.domain.exceptions import DecodeError
from botapi.domain.interfaces.transport import Transport
from botapi.domain.models.call import Attachment, to_form_fields
from botapi.domain.models.outcome import CallOutcome, OtherFailure, Success, ThrottleFailure
from botapi.domain.models.types import ResponseEnvelope

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.telegram.org"
DEFAULT_LOCAL_SERVER_URL = "http://localhost:8081"
DEFAULT_REQUEST_TIMEOUT_SECONDS = 10.0

HTTP_TOO_MANY_REQUESTS = 429


def outcome_from_envelope(payload: Any) -> CallOutcome:
    """Maps a decoded response body to a CallOutcome.

    Args:
        payload: The JSON body returned by the remote service.
    """
    try:
        envelope = ResponseEnvelope.from_dict(payload)
    except DecodeError as e:
        return OtherFailure(
            error_code=None,
            description=f"Malformed response envelope: {e}",
            transport_error=True,
        )

    if envelope.ok:
        return Success(envelope.result)

    parameters = dict(envelope.parameters or {})
    description = envelope.description or "Unknown error"
    retry_after = parameters.get("retry_after")
    if envelope.error_code == HTTP_TOO_MANY_REQUESTS and isinstance(retry_after, (int, float)):
        return ThrottleFailure(retry_after=float(retry_after), description=description)

    if envelope.error_code is None:
        return OtherFailure(
            error_code=None,
            description=f"Failure without error code: {description}",
            parameters=parameters,
            transport_error=True,
        )
    return OtherFailure(error_code=envelope.error_code, description=description, parameters=parameters)


class AiohttpTransport(Transport):
    """Transport posting calls to ``{base_url}/bot{token}/{method}``."""

    def __init__(
        self,
        token: str,
        base_url: str = DEFAULT_BASE_URL,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT_SECONDS,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        """Initializes the transport.

        Args:
            token: Bot credential; only ever used to build request URLs.
            base_url: Remote API root, or a local API server address.
            request_timeout: Seconds allowed per request on top of any
                long-poll wait requested through a 'timeout' parameter.
            session: Optional externally managed session (not closed by us).
        """
        self._token = token
        self.base_url = base_url.rstrip("/")
        self.request_timeout = request_timeout
        self._session = session
        self._owns_session = session is None
        logger.info(f"AiohttpTransport initialized for {self.base_url}")

    def _method_url(self, method: str) -> str:
        return f"{self.base_url}/bot{self._token}/{method}"

    def _get_session(self) -> aiohttp.ClientSession:
        # Created lazily so the session binds to the running event loop
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    def _timeout_for(self, params: Mapping[str, Any]) -> aiohttp.ClientTimeout:
        long_poll = params.get("timeout")
        extra = float(long_poll) if isinstance(long_poll, (int, float)) and not isinstance(long_poll, bool) else 0.0
        return aiohttp.ClientTimeout(total=self.request_timeout + max(0.0, extra))

    async def send(
        self,
        method: str,
        params: Mapping[str, Any],
        attachment: Optional[Attachment] = None,
    ) -> CallOutcome:
        """Posts one call and maps the response to an outcome."""
        session = self._get_session()
        timeout = self._timeout_for(params)
        request_kwargs: dict = {"timeout": timeout}
        if attachment is None:
            request_kwargs["json"] = dict(params)
        else:
            form = aiohttp.FormData()
            for name, value in to_form_fields(params).items():
                form.add_field(name, value)
            form.add_field(
                attachment.field_name,
                attachment.data,
                filename=attachment.filename,
                content_type=attachment.content_type,
            )
            request_kwargs["data"] = form

        logger.debug(f"POST {method} (attachment={attachment is not None})")
        try:
            async with session.post(self._method_url(method), **request_kwargs) as response:
                try:
                    payload = await response.json(content_type=None)
                except ValueError as e:
                    logger.warning(f"{method}: undecodable response body (HTTP {response.status}): {e}")
                    return OtherFailure(
                        error_code=None,
                        description=f"Undecodable response body (HTTP {response.status})",
                        transport_error=True,
                    )
        except asyncio.TimeoutError:
            logger.warning(f"{method}: request timed out after {timeout.total}s")
            return OtherFailure(error_code=None, description="Request timed out", transport_error=True)
        except aiohttp.ClientError as e:
            logger.warning(f"{method}: connection error: {type(e).__name__}: {e}")
            return OtherFailure(
                error_code=None,
                description=f"{type(e).__name__}: {e}",
                transport_error=True,
            )

        return outcome_from_envelope(payload)

    async def close(self) -> None:
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
            logger.debug("AiohttpTransport session closed")
        self._session = None
