"""The client handle: configuration, shared executor state and method bindings.

A ``Client`` is cheap to copy. Every clone points at the same shared state,
so all of them see the same configuration, the same transport and the same
rate-limit bookkeeping. There is no process-wide "current client"; pass the
handle to whatever needs it.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional, Union

from botapi.domain.events.api_events import DomainEvent, EventSink
from botapi.domain.exceptions import ConfigurationError, TransportError
from botapi.domain.interfaces.transport import Transport
from botapi.domain.models.call import ABSENT, CallBuilder, OutboundCall
from botapi.domain.models.common import THROTTLE_SCOPE_CALL, THROTTLE_SCOPES, RawUpdate
from botapi.domain.models.outcome import CallOutcome, raise_for_outcome
from botapi.domain.models.types import File, InlineKeyboardMarkup, Message, User, UserProfilePhotos, WebhookInfo
from botapi.infrastructure.resilience.api_retry import RateLimitedExecutor
from botapi.infrastructure.resilience.rate_limiter import RateLimitState
from botapi.infrastructure.transport.aiohttp_transport import (
    DEFAULT_BASE_URL,
    DEFAULT_LOCAL_SERVER_URL,
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
    AiohttpTransport,
)

logger = logging.getLogger(__name__)

TOKEN_PATTERN = re.compile(r"^\d+:[A-Za-z0-9_-]+$")


def mask_token(token: str) -> str:
    """Returns the bot id part of a token with the secret part hidden."""
    bot_id, _, _ = token.partition(":")
    return f"{bot_id}:***"


@dataclass(frozen=True)
class ClientConfig:
    """Immutable client settings.

    ``base_url`` overrides the API root. When it is not given, the public
    service is used, or the default local server address if
    ``local_server`` is set.
    """
    token: str = field(repr=False)
    base_url: Optional[str] = None
    local_server: bool = False
    auto_wait: bool = True
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT_SECONDS
    throttle_scope: str = THROTTLE_SCOPE_CALL

    def __post_init__(self):
        if not isinstance(self.token, str) or not TOKEN_PATTERN.match(self.token):
            raise ConfigurationError("Malformed bot token: expected '<digits>:<secret>'")
        if self.throttle_scope not in THROTTLE_SCOPES:
            raise ConfigurationError(
                f"Unknown throttle scope '{self.throttle_scope}'. Choose one of {sorted(THROTTLE_SCOPES)}."
            )
        if self.request_timeout <= 0:
            raise ConfigurationError(f"request_timeout must be positive, got {self.request_timeout}")

    @property
    def api_root(self) -> str:
        if self.base_url:
            return self.base_url.rstrip("/")
        return DEFAULT_LOCAL_SERVER_URL if self.local_server else DEFAULT_BASE_URL


@dataclass
class _SharedState:
    config: ClientConfig
    transport: Transport
    executor: RateLimitedExecutor
    closed: bool = False


class Client:
    """Handle for issuing calls against the bot API.

    Example:
        async with Client("123:abc") as client:
            me = await client.get_me()
            await client.send_message(chat_id, f"Hello from {me.first_name}")
    """

    def __init__(
        self,
        token: Optional[str] = None,
        config: Optional[ClientConfig] = None,
        transport: Optional[Transport] = None,
        event_sink: Optional[EventSink] = None,
    ):
        """Initializes the client and the state its clones will share.

        Args:
            token: Bot credential. Ignored when ``config`` is given.
            config: Full configuration; built from ``token`` if None.
            transport: Transport override (an aiohttp transport by default).
            event_sink: Receives executor and ingestion domain events.

        Raises:
            ConfigurationError: If the credential or settings are malformed.
        """
        if config is None:
            if token is None:
                raise ConfigurationError("A bot token or a ClientConfig is required")
            config = ClientConfig(token=token)

        if transport is None:
            transport = AiohttpTransport(config.token, config.api_root, config.request_timeout)
        executor = RateLimitedExecutor(
            transport,
            rate_limit_state=RateLimitState(config.throttle_scope),
            auto_wait=config.auto_wait,
            event_sink=event_sink,
        )
        self._state = _SharedState(config=config, transport=transport, executor=executor)
        logger.info(f"Client created for bot {mask_token(config.token)} at {config.api_root}")

    @classmethod
    def _from_state(cls, state: _SharedState) -> "Client":
        client = cls.__new__(cls)
        client._state = state
        return client

    def clone(self) -> "Client":
        """Returns another handle sharing this client's state."""
        return Client._from_state(self._state)

    __copy__ = clone

    @property
    def config(self) -> ClientConfig:
        return self._state.config

    @property
    def executor(self) -> RateLimitedExecutor:
        return self._state.executor

    @property
    def closed(self) -> bool:
        return self._state.closed

    def emit(self, event: DomainEvent) -> None:
        """Forwards an event to the sink shared by all clones."""
        self._state.executor.dispatch_event(event)

    # --- Core call API ---

    async def execute(self, call: OutboundCall) -> CallOutcome:
        """Submits a call and returns its outcome without raising."""
        return await self._state.executor.execute(call)

    async def call(self, call: OutboundCall) -> Any:
        """Submits a call and returns its payload.

        Raises:
            ThrottleError: Throttled while auto-wait is disabled.
            RemoteError: The remote service rejected the call.
            TransportError: The call never produced a decodable response.
        """
        outcome = await self.execute(call)
        return raise_for_outcome(outcome, method=call.method)

    async def call_method(self, method: str, **params: Any) -> Any:
        """Builds and submits a call from keyword parameters; ABSENT ones are omitted."""
        return await self.call(CallBuilder(method).params(**params).build())

    # --- Typed bindings ---

    async def get_me(self) -> User:
        return User.from_dict(await self.call_method("getMe"))

    async def get_updates(
        self,
        offset: Any = ABSENT,
        limit: Any = ABSENT,
        timeout: Any = ABSENT,
        allowed_updates: Optional[Iterable[str]] = None,
    ) -> List[RawUpdate]:
        """Fetches pending updates as raw envelopes.

        Decoding is left to the caller so one malformed envelope cannot
        spoil a whole batch.
        """
        result = await self.call_method(
            "getUpdates",
            offset=offset,
            limit=limit,
            timeout=timeout,
            allowed_updates=list(allowed_updates) if allowed_updates is not None else ABSENT,
        )
        if result is None:
            return []
        if not isinstance(result, list):
            raise TransportError(f"getUpdates returned non-array result: {type(result).__name__}", method="getUpdates")
        return [RawUpdate(item) for item in result]

    async def set_webhook(
        self,
        url: str,
        secret_token: Optional[str] = None,
        allowed_updates: Optional[Iterable[str]] = None,
        drop_pending_updates: bool = False,
        max_connections: Any = ABSENT,
    ) -> bool:
        return bool(await self.call_method(
            "setWebhook",
            url=url,
            secret_token=secret_token if secret_token is not None else ABSENT,
            allowed_updates=list(allowed_updates) if allowed_updates is not None else ABSENT,
            drop_pending_updates=drop_pending_updates or ABSENT,
            max_connections=max_connections,
        ))

    async def delete_webhook(self, drop_pending_updates: bool = False) -> bool:
        return bool(await self.call_method("deleteWebhook", drop_pending_updates=drop_pending_updates or ABSENT))

    async def get_webhook_info(self) -> WebhookInfo:
        return WebhookInfo.from_dict(await self.call_method("getWebhookInfo"))

    async def send_message(
        self,
        chat_id: Union[int, str],
        text: str,
        parse_mode: Any = ABSENT,
        reply_to_message_id: Any = ABSENT,
        reply_markup: Optional[InlineKeyboardMarkup] = None,
        disable_notification: Any = ABSENT,
    ) -> Message:
        result = await self.call_method(
            "sendMessage",
            chat_id=chat_id,
            text=text,
            parse_mode=parse_mode,
            reply_to_message_id=reply_to_message_id,
            reply_markup=reply_markup if reply_markup is not None else ABSENT,
            disable_notification=disable_notification,
        )
        return Message.from_dict(result)

    async def answer_callback_query(
        self,
        callback_query_id: str,
        text: Any = ABSENT,
        show_alert: Any = ABSENT,
        url: Any = ABSENT,
        cache_time: Any = ABSENT,
    ) -> bool:
        return bool(await self.call_method(
            "answerCallbackQuery",
            callback_query_id=callback_query_id,
            text=text,
            show_alert=show_alert,
            url=url,
            cache_time=cache_time,
        ))

    async def get_user_profile_photos(self, user_id: int, offset: Any = ABSENT, limit: Any = ABSENT) -> UserProfilePhotos:
        result = await self.call_method("getUserProfilePhotos", user_id=user_id, offset=offset, limit=limit)
        return UserProfilePhotos.from_dict(result)

    async def set_chat_photo(
        self,
        chat_id: Union[int, str],
        photo: bytes,
        filename: str = "photo.jpg",
        content_type: str = "image/jpeg",
    ) -> bool:
        """Uploads a new chat photo as a multipart attachment."""
        call = (
            CallBuilder("setChatPhoto")
            .param("chat_id", chat_id)
            .attach("photo", photo, filename=filename, content_type=content_type)
            .build()
        )
        return bool(await self.call(call))

    async def get_file(self, file_id: str) -> File:
        return File.from_dict(await self.call_method("getFile", file_id=file_id))

    def file_url(self, file: Union[File, str]) -> str:
        """Returns where a file's contents can be fetched.

        Against a local server the file path is already a local filesystem
        path and is returned as is.
        """
        file_path = file.file_path if isinstance(file, File) else file
        if not file_path:
            raise ValueError("File has no file_path; call get_file first")
        if self.config.local_server:
            return file_path
        return f"{self.config.api_root}/file/bot{self.config.token}/{file_path}"

    # --- Lifecycle ---

    async def close(self) -> None:
        """Releases the shared transport. Affects every clone."""
        if self._state.closed:
            return
        self._state.closed = True
        await self._state.transport.close()
        logger.info("Client closed")

    async def __aenter__(self) -> "Client":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def __repr__(self) -> str:
        return f"Client(bot={mask_token(self.config.token)}, api_root={self.config.api_root!r})"
