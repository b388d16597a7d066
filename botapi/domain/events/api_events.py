"""Domain Events related to API calls, throttling and update ingestion.

Examples include events for when calls are initiated, throttled, retried,
fail, or succeed, and for updates that could not be decoded.
"""

from dataclasses import dataclass, field
import time
from typing import Any, Callable, Optional


@dataclass
class DomainEvent:
    """Base class for domain events."""
    pass


# Receives every event the executor and the ingestion layer emit
EventSink = Callable[[DomainEvent], None]

# --- Outbound Call Events ---

@dataclass
class ApiCallInitiated(DomainEvent):
    """Event triggered when a call is about to be submitted to the transport."""
    method: str
    attempt_number: int = 1
    timestamp: float = field(default_factory=time.time)


@dataclass
class ApiCallSucceeded(DomainEvent):
    """Event triggered when a call succeeds."""
    method: str
    latency_ms: float
    attempt_number: int = 1
    timestamp: float = field(default_factory=time.time)


@dataclass
class ApiCallFailed(DomainEvent):
    """Event triggered when a call ends in a non-throttle failure."""
    method: str
    error_code: Optional[int]
    error_message: str
    transport_error: bool = False
    timestamp: float = field(default_factory=time.time)


@dataclass
class ApiCallThrottled(DomainEvent):
    """Event triggered when the remote service answers with a throttle signal."""
    method: str
    retry_after_seconds: float
    auto_wait: bool
    timestamp: float = field(default_factory=time.time)


@dataclass
class ApiCallDeferred(DomainEvent):
    """Event triggered when a call waits out a retry-after recorded by another call."""
    method: str
    wait_time_seconds: float
    scope_key: Any = None
    timestamp: float = field(default_factory=time.time)


@dataclass
class RetryScheduled(DomainEvent):
    """Event triggered when a throttled call is scheduled for resubmission."""
    method: str
    attempt_number: int
    delay_seconds: float
    timestamp: float = field(default_factory=time.time)

# --- Ingestion Events ---

@dataclass
class UpdateDecodeFailed(DomainEvent):
    """Event triggered when an inbound update envelope cannot be decoded."""
    source: str  # 'long_poll' or 'webhook'
    reason: str
    update_id: Optional[int] = None
    timestamp: float = field(default_factory=time.time)


@dataclass
class CursorAdvanced(DomainEvent):
    """Event triggered when a long poller moves its cursor past a delivered batch."""
    previous_offset: int
    new_offset: int
    batch_size: int
    timestamp: float = field(default_factory=time.time)
