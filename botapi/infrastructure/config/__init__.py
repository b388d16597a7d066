"""Configuration loading (.env, YAML, environment)."""
