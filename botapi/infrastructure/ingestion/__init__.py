"""Update ingestion: long polling and webhook delivery.

Both implementations produce the same ``UpdateSource`` so callers consume
either through one code path.
"""
