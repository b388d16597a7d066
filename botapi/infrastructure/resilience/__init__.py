"""API Resilience Implementations.

Contains the reactive rate-limit state and the executor that honours the
remote service's throttle signals with automatic wait-and-retry.
Bounded Context: API Resilience
"""
