"""Command Handler: Orchestrates CLI command execution.

Receives commands from the main entry point (main.py) and delegates the work
to the client and the update sources, rendering results through the
UserInterface.
"""

import logging
from typing import Callable, Optional, Sequence

from botapi.core.client import Client
from botapi.domain.exceptions import BotApiError
from botapi.domain.interfaces.update_source import UpdateSource
from botapi.domain.interfaces.user_interface import UserInterface
from botapi.domain.models.updates import ALL_UPDATE_KINDS
from botapi.infrastructure.ingestion.long_poller import LongPoller
from botapi.infrastructure.ingestion.webhook_listener import WebhookListener

logger = logging.getLogger(__name__)


class CommandHandler:
    """Handles incoming commands and delegates to the client and update sources."""

    def __init__(
        self,
        client: Client,
        ui: UserInterface,
        poller_factory: Callable[..., LongPoller] = LongPoller,
        listener_factory: Callable[..., WebhookListener] = WebhookListener,
    ):
        self.client = client
        self.ui = ui
        self.poller_factory = poller_factory
        self.listener_factory = listener_factory

    async def handle_whoami(self) -> None:
        """Handles the 'whoami' command."""
        logger.info("Handling 'whoami' command")
        try:
            me = await self.client.get_me()
        except BotApiError as e:
            logger.error(f"whoami failed: {e}", exc_info=True)
            self.ui.display_error(f"Could not fetch bot identity: {e}")
            return
        self.ui.display_bot(me)

    def _warn_unknown_kinds(self, allowed_updates: Optional[Sequence[str]]) -> None:
        unknown = sorted(set(allowed_updates or ()) - ALL_UPDATE_KINDS)
        if unknown:
            # Still sent as given
            self.ui.display_warning(f"Unknown update kinds: {', '.join(unknown)}")

    async def _consume(self, source: UpdateSource, max_updates: Optional[int]) -> int:
        received = 0
        async with source:
            async for update in source:
                self.ui.display_update(update)
                received += 1
                if max_updates is not None and received >= max_updates:
                    break
        return received

    async def handle_poll(
        self,
        allowed_updates: Optional[Sequence[str]] = None,
        timeout: int = 30,
        limit: int = 100,
        max_updates: Optional[int] = None,
    ) -> None:
        """Handles the 'poll' command: prints updates received by long polling."""
        logger.info(f"Handling 'poll' command (timeout={timeout}, limit={limit}, max_updates={max_updates})")
        try:
            poller = self.poller_factory(self.client, allowed_updates=allowed_updates, timeout=timeout, limit=limit)
        except ValueError as e:
            self.ui.display_error(f"Invalid polling options: {e}")
            return
        self._warn_unknown_kinds(poller.allowed_updates)

        self.ui.display_info("Long polling for updates. Press Ctrl+C to stop.")
        received = await self._consume(poller.get_updates(), max_updates)
        self.ui.display_info(f"Received {received} updates.")

    async def handle_webhook(
        self,
        url: Optional[str],
        host: str = "0.0.0.0",
        port: int = 8443,
        path: str = "/",
        secret_token: Optional[str] = None,
        allowed_updates: Optional[Sequence[str]] = None,
        drop_pending_updates: bool = False,
        behind_tls_proxy: bool = True,
        max_updates: Optional[int] = None,
    ) -> None:
        """Handles the 'webhook' command: serves the endpoint and prints updates."""
        logger.info(f"Handling 'webhook' command on {host}:{port}{path}")
        self._warn_unknown_kinds(allowed_updates)
        try:
            listener = self.listener_factory(
                self.client,
                url=url,
                behind_tls_proxy=behind_tls_proxy,
                host=host,
                port=port,
                path=path,
                allowed_updates=allowed_updates,
                secret_token=secret_token,
                drop_pending_updates=drop_pending_updates,
            )
            source = await listener.get_updates()
        except BotApiError as e:
            logger.error(f"Webhook registration failed: {e}", exc_info=True)
            self.ui.display_error(f"Webhook registration failed: {e}")
            return
        except OSError as e:
            logger.error(f"Could not start webhook listener: {e}", exc_info=True)
            self.ui.display_error(f"Could not listen on {host}:{port}: {e}")
            return

        self.ui.display_info(f"Listening for updates on {host}:{port}{path}. Press Ctrl+C to stop.")
        received = await self._consume(source, max_updates)
        self.ui.display_info(f"Received {received} updates.")

    async def handle_delete_webhook(self, drop_pending_updates: bool = False) -> None:
        """Handles the 'delete-webhook' command."""
        logger.info(f"Handling 'delete-webhook' command (drop_pending_updates={drop_pending_updates})")
        try:
            await self.client.delete_webhook(drop_pending_updates=drop_pending_updates)
        except BotApiError as e:
            logger.error(f"deleteWebhook failed: {e}", exc_info=True)
            self.ui.display_error(f"Could not delete webhook: {e}")
            return
        self.ui.display_info("Webhook removed. Long polling can be used again.")

    async def handle_webhook_info(self) -> None:
        """Handles the 'webhook-info' command."""
        logger.info("Handling 'webhook-info' command")
        try:
            info = await self.client.get_webhook_info()
        except BotApiError as e:
            logger.error(f"getWebhookInfo failed: {e}", exc_info=True)
            self.ui.display_error(f"Could not fetch webhook info: {e}")
            return
        self.ui.display_mapping("Webhook", {
            "url": info.url or "(none)",
            "pending updates": info.pending_update_count,
            "last error": info.last_error_message,
            "allowed updates": ", ".join(info.allowed_updates) if info.allowed_updates else None,
            "max connections": info.max_connections,
        })

    async def close(self) -> None:
        await self.client.close()
