"""Core Application Layer: the Client handle, the update decoder and the
command handler used by the CLI.
"""
