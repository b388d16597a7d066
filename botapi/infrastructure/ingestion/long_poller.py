"""Update ingestion by long polling.

The source repeatedly asks the remote service for updates at or after its
cursor, decodes them and yields them one by one. The cursor is confirmed
(moved past the batch) only when the consumer asks for the update after the
last one of a batch, so updates that were fetched but never handed out are
fetched again next time.
"""

import asyncio
import collections
import logging
from typing import Any, Awaitable, Callable, Deque, Iterable, Optional, Tuple

from botapi.core.client import Client
from botapi.core.update_decoder import decode_update, read_update_id
from botapi.domain.events.api_events import CursorAdvanced, UpdateDecodeFailed
from botapi.domain.exceptions import BotApiError, ThrottleError, UpdateDecodeError
from botapi.domain.interfaces.update_source import UpdateSource
from botapi.domain.models.updates import DEFAULT_UPDATE_KINDS, UpdateExt

logger = logging.getLogger(__name__)

DEFAULT_POLL_TIMEOUT_SECONDS = 30
DEFAULT_POLL_LIMIT = 100
DEFAULT_RETRY_DELAY_SECONDS = 1.0

Sleep = Callable[[float], Awaitable[Any]]


class LongPollSource(UpdateSource):
    """Update source backed by repeated getUpdates calls."""

    def __init__(
        self,
        client: Client,
        allowed_updates: Tuple[str, ...],
        timeout: int,
        limit: int,
        retry_delay: float,
        offset: int = 0,
        sleep: Sleep = asyncio.sleep,
    ):
        self._client = client
        self._allowed_updates = allowed_updates
        self._timeout = timeout
        self._limit = limit
        self._retry_delay = retry_delay
        self._sleep = sleep
        self._offset = offset
        self._pending_offset: Optional[int] = None
        self._pending_batch_size = 0
        self._buffer: Deque[UpdateExt] = collections.deque()
        self._closed = False

    @property
    def offset(self) -> int:
        """The confirmed cursor: the lowest update id still to be fetched."""
        return self._offset

    @property
    def closed(self) -> bool:
        return self._closed

    async def next_update(self) -> UpdateExt:
        while True:
            if self._closed:
                raise StopAsyncIteration
            if self._buffer:
                return self._buffer.popleft()
            # Everything from the previous batch has been handed out
            self._commit_pending()
            await self._fetch_batch()

    def _commit_pending(self) -> None:
        if self._pending_offset is None:
            return
        new_offset = max(self._offset, self._pending_offset)
        if new_offset != self._offset:
            logger.debug(f"Cursor advanced {self._offset} -> {new_offset}")
            self._client.emit(
                CursorAdvanced(
                    previous_offset=self._offset,
                    new_offset=new_offset,
                    batch_size=self._pending_batch_size,
                )
            )
            self._offset = new_offset
        self._pending_offset = None
        self._pending_batch_size = 0

    async def _fetch_batch(self) -> None:
        try:
            batch = await self._client.get_updates(
                offset=self._offset,
                limit=self._limit,
                timeout=self._timeout,
                allowed_updates=self._allowed_updates,
            )
        except ThrottleError as e:
            logger.warning(f"Polling throttled; waiting {e.retry_after:.2f}s")
            await self._sleep(e.retry_after)
            return
        except BotApiError as e:
            logger.error(f"Polling failed: {e}. Retrying in {self._retry_delay:.2f}s")
            await self._sleep(self._retry_delay)
            return

        if self._closed:
            return

        highest_id: Optional[int] = None
        for raw in batch:
            update_id = read_update_id(raw)
            if update_id is not None and (highest_id is None or update_id > highest_id):
                highest_id = update_id
            try:
                self._buffer.append(decode_update(raw))
            except UpdateDecodeError as e:
                logger.warning(f"Skipping undecodable update (id={update_id}): {e}")
                self._client.emit(UpdateDecodeFailed(source="long_poll", reason=str(e), update_id=update_id))

        if highest_id is not None:
            self._pending_offset = highest_id + 1
            self._pending_batch_size = len(batch)
        elif batch:
            # Cursor cannot move past envelopes without an id
            logger.error(f"No readable update_id in a batch of {len(batch)}. Retrying in {self._retry_delay:.2f}s")
            await self._sleep(self._retry_delay)
            return
        if batch:
            logger.debug(f"Fetched {len(batch)} updates, {len(self._buffer)} decoded")

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._buffer.clear()
        logger.info(f"Long polling stopped at offset {self._offset}")


class LongPoller:
    """Builds long-polling update sources for a client.

    Example:
        poller = LongPoller(client, allowed_updates=["message"])
        async with poller.get_updates() as updates:
            async for update in updates:
                ...
    """

    def __init__(
        self,
        client: Client,
        allowed_updates: Optional[Iterable[str]] = None,
        timeout: int = DEFAULT_POLL_TIMEOUT_SECONDS,
        limit: int = DEFAULT_POLL_LIMIT,
        retry_delay: float = DEFAULT_RETRY_DELAY_SECONDS,
        initial_offset: int = 0,
        sleep: Sleep = asyncio.sleep,
    ):
        """Initializes the poller.

        Args:
            client: Handle used for getUpdates calls.
            allowed_updates: Update kinds to subscribe to (default subset if None).
            timeout: Seconds the remote service may hold each request open.
            limit: Maximum updates per batch (1-100).
            retry_delay: Minimum pause after a failed round.
            initial_offset: Cursor to start from.
            sleep: Coroutine used for pauses, injectable for tests.
        """
        if not 1 <= limit <= 100:
            raise ValueError(f"limit must be between 1 and 100, got {limit}")
        if timeout < 0:
            raise ValueError(f"timeout must not be negative, got {timeout}")
        self.client = client
        self.allowed_updates = tuple(allowed_updates) if allowed_updates is not None else DEFAULT_UPDATE_KINDS
        self.timeout = timeout
        self.limit = limit
        self.retry_delay = max(0.0, retry_delay)
        self.initial_offset = initial_offset
        self._sleep = sleep

    def get_updates(self) -> LongPollSource:
        """Returns a new source starting at the initial offset."""
        logger.info(
            f"Starting long polling: timeout={self.timeout}s, limit={self.limit}, "
            f"kinds={','.join(self.allowed_updates)}"
        )
        return LongPollSource(
            self.client,
            allowed_updates=self.allowed_updates,
            timeout=self.timeout,
            limit=self.limit,
            retry_delay=self.retry_delay,
            offset=self.initial_offset,
            sleep=self._sleep,
        )
