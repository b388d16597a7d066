import logging
from datetime import datetime
from typing import Any, Optional

from rich.box import HEAVY, ROUNDED, SIMPLE
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from botapi.domain.interfaces.user_interface import UserInterface
from botapi.domain.models.types import Message, User
from botapi.domain.models.updates import InvalidUpdate, UpdateExt

logger = logging.getLogger(__name__)

# Panel border colour per update kind
KIND_STYLES = {
    "message": "green",
    "edited_message": "yellow",
    "channel_post": "magenta",
    "edited_channel_post": "magenta",
    "callback_query": "cyan",
    "inline_query": "cyan",
    "invalid": "red",
}


def _describe_sender(user: Optional[User]) -> str:
    if user is None:
        return "-"
    if user.username:
        return f"@{user.username}"
    return " ".join(part for part in (user.first_name, user.last_name) if part)


def summarize_update(update: UpdateExt) -> str:
    """Builds a one-line, human readable summary of an update."""
    if isinstance(update, InvalidUpdate):
        return f"unrecognised update ({update.reason or 'no payload'})"
    payload = update.payload
    if isinstance(payload, Message):
        sender = _describe_sender(payload.from_)
        chat = payload.chat.title or payload.chat.username or str(payload.chat.id)
        return f"{sender} in {chat}: {payload.content or '<no text>'}"
    data = getattr(payload, "data", None) or getattr(payload, "query", None)
    sender = _describe_sender(getattr(payload, "from_", None))
    if data:
        return f"{sender}: {data}"
    return f"{type(payload).__name__} from {sender}"


class ConsoleDisplay(UserInterface):
    """Concrete implementation of UserInterface using the rich library for console output."""

    def __init__(self, console: Optional[Console] = None):
        self._console = console or Console()
        self.update_count = 0

    @property
    def console(self) -> Console:
        """Get the Rich console instance for direct operations."""
        return self._console

    def display_error(self, error_message: str, **kwargs: Any) -> None:
        panel = Panel(
            Text(error_message, style="white"),
            title="[bold red]Error[/bold red]",
            border_style="red",
            box=HEAVY,
            padding=(0, 1),
        )
        self.console.print(panel)

    def display_info(self, info_message: str, **kwargs: Any) -> None:
        panel = Panel(
            Text(info_message, style="white"),
            title="[bold blue]Info[/bold blue]",
            border_style="blue",
            box=SIMPLE,
            padding=(0, 1),
        )
        self.console.print(panel)

    def display_warning(self, warning_message: str, **kwargs: Any) -> None:
        logger.warning(f"Display warning: {warning_message}")
        panel = Panel(
            Text(warning_message, style="white"),
            title="[bold yellow]Warning[/bold yellow]",
            border_style="yellow",
            box=HEAVY,
            padding=(0, 1),
        )
        self.console.print(panel)

    def display_bot(self, user: User) -> None:
        """Shows the bot identity returned by getMe."""
        table = Table(show_header=False, box=ROUNDED, border_style="cyan", padding=(0, 1))
        table.add_column("Field", style="bold cyan")
        table.add_column("Value")
        table.add_row("id", str(user.id))
        table.add_row("username", user.username or "")
        table.add_row("name", " ".join(part for part in (user.first_name, user.last_name) if part))
        table.add_row("inline queries", "yes" if user.supports_inline_queries else "no")
        self.console.print(table)

    def display_update(self, update: UpdateExt) -> None:
        """Renders one update as a panel titled with its id and kind."""
        self.update_count += 1
        timestamp = datetime.now().strftime("%H:%M:%S")
        style = KIND_STYLES.get(update.kind, "white")
        header = f"[bold {style}]#{update.update_id} {update.kind}[/bold {style}] [dim]{timestamp}[/dim]"
        logger.debug(f"Rendering update {update.update_id} ({update.kind})")
        panel = Panel(
            Text(summarize_update(update), style="white"),
            title=header,
            title_align="left",
            border_style=style,
            box=ROUNDED,
            padding=(0, 1),
        )
        self.console.print(panel)

    def display_mapping(self, title: str, values: dict) -> None:
        table = Table(title=title, show_header=False, box=SIMPLE, padding=(0, 1))
        table.add_column("Key", style="bold")
        table.add_column("Value")
        for key, value in values.items():
            table.add_row(str(key), "" if value is None else str(value))
        self.console.print(table)
