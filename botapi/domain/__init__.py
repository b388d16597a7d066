"""Domain Layer: value objects, typed API models, ports and errors.

Nothing in here performs I/O. Infrastructure adapters implement the ports
defined in ``domain.interfaces``.
"""
