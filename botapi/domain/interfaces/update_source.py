"""Interface for sources of inbound updates.

Long polling and webhook delivery both implement ``UpdateSource`` so a bot
consumes either one the same way::

    async with source:
        async for update in source:
            ...
"""

import abc
from typing import AsyncIterator

from ..models.updates import UpdateExt


class UpdateSource(abc.ABC):
    """A lazy, ordered, effectively unbounded sequence of decoded updates.

    Sources are not restartable: once closed, iteration stops and a new
    source has to be built to resume.
    """

    @abc.abstractmethod
    async def next_update(self) -> UpdateExt:
        """Waits for and returns the next update.

        Raises:
            StopAsyncIteration: If the source has been closed.
        """
        pass

    @abc.abstractmethod
    async def aclose(self) -> None:
        """Stops the source and releases its resources. Idempotent."""
        pass

    @property
    @abc.abstractmethod
    def closed(self) -> bool:
        pass

    def __aiter__(self) -> AsyncIterator[UpdateExt]:
        return self

    async def __anext__(self) -> UpdateExt:
        return await self.next_update()

    async def __aenter__(self) -> "UpdateSource":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()
