"""Update ingestion through an inbound HTTP endpoint.

The remote service POSTs each update to the registered URL. The handler
acknowledges right away and hands the decoded update to a bounded queue
that the source drains in arrival order.
"""

import asyncio
import logging
from typing import Iterable, Optional, Tuple

from aiohttp import web

from botapi.core.client import Client
from botapi.core.update_decoder import decode_update_body, read_update_id
from botapi.domain.events.api_events import UpdateDecodeFailed
from botapi.domain.exceptions import UpdateDecodeError
from botapi.domain.interfaces.update_source import UpdateSource
from botapi.domain.models.updates import DEFAULT_UPDATE_KINDS, UpdateExt

logger = logging.getLogger(__name__)

SECRET_TOKEN_HEADER = "X-Telegram-Bot-Api-Secret-Token"
DEFAULT_WEBHOOK_HOST = "0.0.0.0"
DEFAULT_WEBHOOK_PORT = 8443
DEFAULT_QUEUE_SIZE = 1000


def webhook_url(url: str, behind_tls_proxy: bool = True) -> str:
    """Adds a scheme to a bare host/path descriptor.

    A TLS front end is expected to terminate https in front of this plain
    HTTP listener, so bare descriptors get https:// unless told otherwise.
    """
    if "://" in url:
        return url
    scheme = "https" if behind_tls_proxy else "http"
    return f"{scheme}://{url.lstrip('/')}"


class WebhookSource(UpdateSource):
    """Update source fed by the webhook request handler."""

    def __init__(self, client: Client, queue_size: int = DEFAULT_QUEUE_SIZE, secret_token: Optional[str] = None):
        self._client = client
        self._queue: "asyncio.Queue[UpdateExt]" = asyncio.Queue(maxsize=queue_size)
        self._secret_token = secret_token
        self._closed_event = asyncio.Event()
        self._runner: Optional[web.AppRunner] = None

    @property
    def closed(self) -> bool:
        return self._closed_event.is_set()

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def attach_runner(self, runner: web.AppRunner) -> None:
        self._runner = runner

    async def handle_update(self, request: web.Request) -> web.Response:
        """Receives one update POSTed by the remote service."""
        if self._secret_token is not None and request.headers.get(SECRET_TOKEN_HEADER) != self._secret_token:
            logger.warning(f"Rejected webhook request from {request.remote}: bad secret token")
            return web.Response(status=401)

        if self.closed:
            return web.Response(status=503)

        body = await request.read()
        try:
            update = decode_update_body(body)
        except UpdateDecodeError as e:
            update_id = read_update_id(e.raw) if not isinstance(e.raw, (bytes, str)) else None
            logger.warning(f"Ignoring undecodable webhook update: {e}")
            self._client.emit(UpdateDecodeFailed(source="webhook", reason=str(e), update_id=update_id))
            # Acknowledged so the remote service does not redeliver it forever
            return web.Response(status=200)

        try:
            self._queue.put_nowait(update)
        except asyncio.QueueFull:
            logger.warning(f"Webhook queue full ({self._queue.maxsize}); asking for redelivery of {update.update_id}")
            return web.Response(status=503)
        return web.Response(status=200)

    async def next_update(self) -> UpdateExt:
        if self.closed:
            raise StopAsyncIteration
        getter = asyncio.ensure_future(self._queue.get())
        closer = asyncio.ensure_future(self._closed_event.wait())
        try:
            done, _ = await asyncio.wait({getter, closer}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            closer.cancel()
            if not getter.done():
                getter.cancel()
        if getter in done:
            return getter.result()
        raise StopAsyncIteration

    async def aclose(self) -> None:
        if self.closed:
            return
        self._closed_event.set()
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None
        logger.info(f"Webhook listener stopped ({self._queue.qsize()} updates left undelivered)")


def make_app(source: WebhookSource, path: str = "/") -> web.Application:
    """Builds the aiohttp application routing POSTs on ``path`` to ``source``."""
    app = web.Application()
    app.router.add_post(path, source.handle_update)
    return app


class WebhookListener:
    """Registers a webhook and serves the endpoint the updates arrive on.

    TLS is not terminated here; put a TLS front end in front of the listener
    or use a plain http URL.
    """

    def __init__(
        self,
        client: Client,
        url: Optional[str] = None,
        behind_tls_proxy: bool = True,
        host: str = DEFAULT_WEBHOOK_HOST,
        port: int = DEFAULT_WEBHOOK_PORT,
        path: str = "/",
        allowed_updates: Optional[Iterable[str]] = None,
        secret_token: Optional[str] = None,
        drop_pending_updates: bool = False,
        queue_size: int = DEFAULT_QUEUE_SIZE,
    ):
        """Initializes the listener.

        Args:
            client: Handle used to register the webhook.
            url: Public URL to register. None skips registration, for when
                the webhook is managed elsewhere.
            behind_tls_proxy: Scheme used for a URL given without one.
            host: Bind address of the local HTTP server.
            port: Bind port of the local HTTP server.
            path: Request path updates are POSTed to.
            allowed_updates: Update kinds to subscribe to (default subset if None).
            secret_token: Expected value of the secret token header.
            drop_pending_updates: Discard updates queued before registration.
            queue_size: Maximum updates buffered before asking for redelivery.
        """
        if queue_size < 1:
            raise ValueError(f"queue_size must be positive, got {queue_size}")
        self.client = client
        self.url = webhook_url(url, behind_tls_proxy) if url else None
        self.host = host
        self.port = port
        self.path = path if path.startswith("/") else f"/{path}"
        self.allowed_updates: Tuple[str, ...] = (
            tuple(allowed_updates) if allowed_updates is not None else DEFAULT_UPDATE_KINDS
        )
        self.secret_token = secret_token
        self.drop_pending_updates = drop_pending_updates
        self.queue_size = queue_size

    def build_source(self) -> WebhookSource:
        return WebhookSource(self.client, queue_size=self.queue_size, secret_token=self.secret_token)

    async def get_updates(self) -> WebhookSource:
        """Registers the webhook (if a URL is set) and starts serving.

        Raises:
            CallError: If registration fails.
            OSError: If the bind address is unavailable.
        """
        if self.url is not None:
            await self.client.set_webhook(
                self.url,
                secret_token=self.secret_token,
                allowed_updates=self.allowed_updates,
                drop_pending_updates=self.drop_pending_updates,
            )
            logger.info(f"Webhook registered at {self.url}")
        else:
            logger.info("Webhook registration skipped (no URL given)")

        source = self.build_source()
        runner = web.AppRunner(make_app(source, self.path))
        await runner.setup()
        try:
            site = web.TCPSite(runner, host=self.host, port=self.port)
            await site.start()
        except OSError:
            await runner.cleanup()
            raise
        source.attach_runner(runner)
        logger.info(f"Webhook listener serving on {self.host}:{self.port}{self.path}")
        return source
