"""Reactive rate-limit state.

Holds nothing but the retry-after deadlines announced by the remote service.
There is no proactive token bucket: state is only written when a throttle
signal arrives, and only read to honour a deadline that is still pending.
"""

import asyncio
import logging
import time
from typing import Any, Callable, Dict, Hashable, Optional

from botapi.domain.models.call import OutboundCall
from botapi.domain.models.common import (
    THROTTLE_SCOPE_CALL,
    THROTTLE_SCOPE_CHAT,
    THROTTLE_SCOPE_GLOBAL,
    THROTTLE_SCOPES,
)
from botapi.domain.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

_GLOBAL_KEY = "*"


class RateLimitState:
    """Retry-after deadlines shared by every clone of a client.

    ``scope`` decides which calls observe a deadline recorded by another call:
    'call' shares nothing, 'chat' shares per ``chat_id`` and 'global' shares
    across all calls.
    """

    def __init__(self, scope: str = THROTTLE_SCOPE_CALL, clock: Callable[[], float] = time.monotonic):
        """Initializes the rate-limit state.

        Args:
            scope: 'call', 'chat' or 'global'.
            clock: Monotonic clock, injectable for tests.
        """
        if scope not in THROTTLE_SCOPES:
            raise ConfigurationError(f"Unknown throttle scope '{scope}'. Choose one of {sorted(THROTTLE_SCOPES)}.")
        self.scope = scope
        self._clock = clock
        self._deadlines: Dict[Hashable, float] = {}
        self._lock = asyncio.Lock()
        logger.info(f"RateLimitState initialized: scope={scope}")

    def scope_key(self, call: OutboundCall) -> Optional[Hashable]:
        """Returns the key a call's throttle is shared under, or None if not shared."""
        if self.scope == THROTTLE_SCOPE_GLOBAL:
            return _GLOBAL_KEY
        if self.scope == THROTTLE_SCOPE_CHAT:
            chat_id: Any = call.chat_id
            if chat_id is None or not isinstance(chat_id, Hashable):
                return None
            return ("chat", chat_id)
        return None

    def _cleanup_deadlines(self) -> None:
        """Removes deadlines that have already passed."""
        now = self._clock()
        expired = [key for key, deadline in self._deadlines.items() if deadline <= now]
        for key in expired:
            del self._deadlines[key]

    async def record_throttle(self, call: OutboundCall, retry_after: float) -> None:
        """Records a retry-after signal received for ``call``."""
        key = self.scope_key(call)
        if key is None:
            return
        async with self._lock:
            self._cleanup_deadlines()
            deadline = self._clock() + max(0.0, retry_after)
            # Keep the later deadline when concurrent throttles overlap
            if deadline > self._deadlines.get(key, 0.0):
                self._deadlines[key] = deadline
            logger.debug(f"Recorded throttle for {key}: {retry_after:.2f}s")

    def remaining_delay(self, call: OutboundCall) -> float:
        """Seconds ``call`` still has to wait because of a recorded throttle."""
        key = self.scope_key(call)
        if key is None:
            return 0.0
        deadline = self._deadlines.get(key)
        if deadline is None:
            return 0.0
        return max(0.0, deadline - self._clock())

    @property
    def pending(self) -> Dict[Hashable, float]:
        """Snapshot of pending deadlines as remaining seconds per key."""
        now = self._clock()
        return {key: deadline - now for key, deadline in self._deadlines.items() if deadline > now}
