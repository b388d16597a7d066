"""botapi: client runtime for the Telegram Bot API.

Turns raw HTTP responses into typed domain objects, dispatches outbound calls
under the remote service's rate-limit policy, and exposes one ordered stream
of inbound updates whether they arrive by long polling or by webhook.
"""

__version__ = "0.3.0"
