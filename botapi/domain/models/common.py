"""Defines common Value Objects used across different domain contexts.

These objects represent simple values like method names, update kinds and
raw wire payloads, ensuring consistency and type safety.
"""

from typing import Any, Dict, FrozenSet, NewType

# === Outbound Calls ===
MethodName = NewType("MethodName", str)        # Remote method, e.g. "sendMessage"

# === Inbound Updates ===
UpdateKind = NewType("UpdateKind", str)        # Payload key, e.g. "message", "callback_query"
RawUpdate = NewType("RawUpdate", Dict[str, Any])  # Update envelope exactly as received

# === Rate Limiting ===
ThrottleScope = NewType("ThrottleScope", str)  # 'call', 'chat' or 'global'

THROTTLE_SCOPE_CALL = ThrottleScope("call")
THROTTLE_SCOPE_CHAT = ThrottleScope("chat")
THROTTLE_SCOPE_GLOBAL = ThrottleScope("global")
THROTTLE_SCOPES: FrozenSet[str] = frozenset(
    {THROTTLE_SCOPE_CALL, THROTTLE_SCOPE_CHAT, THROTTLE_SCOPE_GLOBAL}
)
