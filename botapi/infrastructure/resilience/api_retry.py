"""Service for executing outbound calls under the remote rate-limit policy.

Every call from every clone of a client passes through one executor. Only
explicit throttle signals trigger a retry: the call that received one sleeps
for the advertised delay and is resubmitted unchanged, without a retry cap.
Other failures, including network errors, are returned at once.
"""

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Optional

from botapi.domain.events.api_events import (
    ApiCallDeferred,
    ApiCallFailed,
    ApiCallInitiated,
    ApiCallSucceeded,
    ApiCallThrottled,
    DomainEvent,
    EventSink,
    RetryScheduled,
)
from botapi.domain.interfaces.transport import Transport
from botapi.domain.models.call import OutboundCall
from botapi.domain.models.outcome import CallOutcome, OtherFailure, Success
from botapi.infrastructure.resilience.rate_limiter import RateLimitState

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[Any]]


def log_event(event: DomainEvent) -> None:
    """Default event sink: writes the event to the debug log."""
    logger.debug(f"EVENT: {event}")


class RateLimitedExecutor:
    """Submits calls to the transport and honours throttle signals."""

    def __init__(
        self,
        transport: Transport,
        rate_limit_state: Optional[RateLimitState] = None,
        auto_wait: bool = True,
        event_sink: Optional[EventSink] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        """Initializes the RateLimitedExecutor.

        Args:
            transport: Transport used for every submission.
            rate_limit_state: Shared retry-after state (per-call scope if None).
            auto_wait: Sleep and resubmit on throttle signals. When False a
                throttle failure is returned to the caller immediately.
            event_sink: Receives domain events for each attempt.
            sleep: Coroutine used to suspend a throttled call.
        """
        self.transport = transport
        self.rate_limit_state = rate_limit_state or RateLimitState()
        self.auto_wait = auto_wait
        self.event_sink = event_sink or log_event
        self._sleep = sleep

        logger.info(
            f"RateLimitedExecutor initialized: auto_wait={auto_wait}, "
            f"throttle_scope={self.rate_limit_state.scope}"
        )

    def dispatch_event(self, event: DomainEvent) -> None:
        try:
            self.event_sink(event)
        except Exception as e:
            logger.error(f"Event sink failed for {type(event).__name__}: {e}", exc_info=True)

    async def _wait_for_shared_deadline(self, call: OutboundCall) -> None:
        """Waits out a retry-after another call recorded under the same scope."""
        delay = self.rate_limit_state.remaining_delay(call)
        if delay <= 0:
            return
        key = self.rate_limit_state.scope_key(call)
        logger.info(f"Deferring {call.method} for {delay:.2f}s: throttle pending for {key}")
        self.dispatch_event(ApiCallDeferred(method=call.method, wait_time_seconds=delay, scope_key=key))
        await self._sleep(delay)

    async def execute(self, call: OutboundCall) -> CallOutcome:
        """Executes a call, waiting out throttle signals when auto-wait is on.

        Cancelling the task running this coroutine cancels any pending
        throttle wait for this call only.

        Args:
            call: The call to submit.

        Returns:
            The first non-throttle outcome, or the throttle failure itself when
            auto-wait is disabled. Never raises for remote or network failures.
        """
        method = call.method
        if self.auto_wait:
            await self._wait_for_shared_deadline(call)

        params = call.encoded_params()
        attempt = 0
        while True:
            attempt += 1
            self.dispatch_event(ApiCallInitiated(method=method, attempt_number=attempt))
            start_time = time.perf_counter()
            outcome = await self.transport.send(method, params, call.attachment)
            latency_ms = (time.perf_counter() - start_time) * 1000

            if isinstance(outcome, Success):
                logger.debug(f"{method} succeeded on attempt {attempt} in {latency_ms:.2f}ms")
                self.dispatch_event(ApiCallSucceeded(method=method, latency_ms=latency_ms, attempt_number=attempt))
                return outcome

            if isinstance(outcome, OtherFailure):
                log = logger.warning if outcome.transport_error else logger.info
                log(f"{method} failed on attempt {attempt}: [{outcome.error_code}] {outcome.description}")
                self.dispatch_event(
                    ApiCallFailed(
                        method=method,
                        error_code=outcome.error_code,
                        error_message=outcome.description,
                        transport_error=outcome.transport_error,
                    )
                )
                return outcome

            # ThrottleFailure
            delay = outcome.retry_after
            self.dispatch_event(
                ApiCallThrottled(method=method, retry_after_seconds=delay, auto_wait=self.auto_wait)
            )
            if not self.auto_wait:
                logger.info(f"{method} throttled for {delay:.2f}s; auto-wait disabled, returning failure")
                return outcome

            await self.rate_limit_state.record_throttle(call, delay)
            logger.warning(f"{method} throttled on attempt {attempt}. Waiting {delay:.2f}s before retrying...")
            self.dispatch_event(RetryScheduled(method=method, attempt_number=attempt + 1, delay_seconds=delay))
            await self._sleep(delay)
