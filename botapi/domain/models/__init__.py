"""Domain models: value objects, typed API objects, calls and outcomes."""
