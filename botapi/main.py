"""Main entry point for the botapi CLI.

Sets up the Typer CLI application, performs dependency injection (Composition Root),
defines CLI commands, and delegates execution to the CommandHandler.
"""

import asyncio
import logging
from typing import Annotated, Any, Coroutine, Dict, List, Optional

import typer

from botapi import __version__
from botapi.core.client import Client
from botapi.core.command_handler import CommandHandler
from botapi.domain.exceptions import ConfigurationError
from botapi.infrastructure.cli.display import ConsoleDisplay
from botapi.infrastructure.config.settings import (
    build_client_config,
    get_allowed_updates,
    get_config,
    get_polling_timeout,
    load_configuration,
)
from botapi.infrastructure.monitoring.logger_setup import DEFAULT_LOG_FORMAT, resolve_level, setup_logging
from botapi.infrastructure.transport.aiohttp_transport import AiohttpTransport

logger = logging.getLogger(__name__)


# --- Dependency Injection Container (Manual) ---

def create_dependencies(token: Optional[str] = None) -> Dict[str, Any]:
    """Creates and wires up all dependencies for one command.

    This acts as the Composition Root.

    Raises:
        ConfigurationError: If no usable bot token is configured.
    """
    load_configuration()
    setup_logging(
        log_level=resolve_level(get_config("logging.level", "WARNING")),
        log_format=get_config("logging.format", DEFAULT_LOG_FORMAT),
        log_file=get_config("logging.file"),
    )

    dependencies: Dict[str, Any] = {}
    dependencies["ui"] = ConsoleDisplay()

    config = build_client_config(token)
    dependencies["config"] = config
    dependencies["transport"] = AiohttpTransport(config.token, config.api_root, config.request_timeout)
    dependencies["client"] = Client(config=config, transport=dependencies["transport"])

    dependencies["command_handler"] = CommandHandler(client=dependencies["client"], ui=dependencies["ui"])
    logger.info("All dependencies initialized successfully.")
    return dependencies


# --- Typer App Definition ---
app = typer.Typer(
    name="botapi",
    help=f"botapi v{__version__}: bot API client with long polling and webhook ingestion.",
    add_completion=False,
)


# --- Helper for Running Async Commands ---

def run_async(handler: CommandHandler, coro: Coroutine[Any, Any, None]) -> None:
    """Runs a handler coroutine to completion and releases the client afterwards."""

    async def _run() -> None:
        try:
            await coro
        finally:
            await handler.close()

    try:
        asyncio.run(_run())
    except KeyboardInterrupt:
        logger.info("Interrupted by user.")
        handler.ui.display_info("Stopped.")


def _handler_or_exit(token: Optional[str]) -> CommandHandler:
    try:
        dependencies = create_dependencies(token)
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        ConsoleDisplay().display_error(f"Configuration error: {e}")
        raise typer.Exit(code=1)
    return dependencies["command_handler"]


def _split_kinds(kinds: Optional[List[str]]) -> Optional[List[str]]:
    """Accepts repeated options and comma separated values alike."""
    if not kinds:
        return get_allowed_updates()
    return [part.strip() for kind in kinds for part in kind.split(",") if part.strip()]


# --- CLI Commands ---

TokenOption = Annotated[
    Optional[str],
    typer.Option("--token", "-t", envvar="BOT_TOKEN", help="Bot token. Defaults to BOT_TOKEN / config file."),
]

AllowedOption = Annotated[
    Optional[List[str]],
    typer.Option("--allowed", "-a", help="Update kinds to receive (repeatable or comma separated)."),
]

MaxUpdatesOption = Annotated[
    Optional[int],
    typer.Option("--max-updates", "-n", min=1, help="Stop after this many updates."),
]


@app.command()
def whoami(token: TokenOption = None):
    """Show the identity of the bot behind the token."""
    handler = _handler_or_exit(token)
    run_async(handler, handler.handle_whoami())


@app.command()
def poll(
    token: TokenOption = None,
    allowed: AllowedOption = None,
    timeout: Annotated[Optional[int], typer.Option("--timeout", min=0, help="Long-poll wait in seconds.")] = None,
    limit: Annotated[int, typer.Option("--limit", min=1, max=100, help="Maximum updates per batch.")] = 100,
    max_updates: MaxUpdatesOption = None,
):
    """Receive updates by long polling and print them."""
    handler = _handler_or_exit(token)
    poll_timeout = timeout if timeout is not None else get_polling_timeout()
    run_async(handler, handler.handle_poll(_split_kinds(allowed), poll_timeout, limit, max_updates))


@app.command()
def webhook(
    url: Annotated[Optional[str], typer.Option("--url", "-u", help="Public URL to register (scheme optional).")] = None,
    register: Annotated[bool, typer.Option("--register/--no-register", help="Register the URL with the API.")] = True,
    host: Annotated[str, typer.Option("--host", help="Bind address.")] = "0.0.0.0",
    port: Annotated[int, typer.Option("--port", "-p", help="Bind port.")] = 8443,
    path: Annotated[str, typer.Option("--path", help="Request path updates arrive on.")] = "/",
    tls_proxy: Annotated[bool, typer.Option("--tls-proxy/--no-tls-proxy", help="Assume https in front of the listener.")] = True,
    secret: Annotated[Optional[str], typer.Option("--secret", help="Expected secret token header value.")] = None,
    drop_pending: Annotated[bool, typer.Option("--drop-pending", help="Discard updates queued before registration.")] = False,
    token: TokenOption = None,
    allowed: AllowedOption = None,
    max_updates: MaxUpdatesOption = None,
):
    """Serve a webhook endpoint and print the updates it receives."""
    if register and not url:
        ConsoleDisplay().display_error("--url is required unless --no-register is given.")
        raise typer.Exit(code=2)
    handler = _handler_or_exit(token)
    run_async(handler, handler.handle_webhook(
        url if register else None,
        host=host,
        port=port,
        path=path,
        secret_token=secret,
        allowed_updates=_split_kinds(allowed),
        drop_pending_updates=drop_pending,
        behind_tls_proxy=tls_proxy,
        max_updates=max_updates,
    ))


@app.command(name="delete-webhook")
def delete_webhook_command(
    drop_pending: Annotated[bool, typer.Option("--drop-pending", help="Discard pending updates too.")] = False,
    token: TokenOption = None,
):
    """Remove the registered webhook."""
    handler = _handler_or_exit(token)
    run_async(handler, handler.handle_delete_webhook(drop_pending))


@app.command(name="webhook-info")
def webhook_info_command(token: TokenOption = None):
    """Show the current webhook registration."""
    handler = _handler_or_exit(token)
    run_async(handler, handler.handle_webhook_info())


# --- Main Execution Guard ---

def cli_entry_point():
    """Function to be called by the script entry point in pyproject.toml."""
    app()


if __name__ == "__main__":
    cli_entry_point()
