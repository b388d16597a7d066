"""Interface for presenting results to the user.

Defines the contract for displaying information, errors, warnings and
inbound updates, allowing different UI implementations (console, tests).
"""

import abc
from typing import Any

from ..models.types import User
from ..models.updates import UpdateExt


class UserInterface(abc.ABC):
    """Abstract Base Class for user-facing output."""

    @abc.abstractmethod
    def display_error(self, error_message: str, **kwargs: Any) -> None:
        """Displays an error message to the user.

        Args:
            error_message: The error message string.
            **kwargs: Additional arguments for formatting.
        """
        pass

    @abc.abstractmethod
    def display_warning(self, warning_message: str, **kwargs: Any) -> None:
        """Displays a warning message to the user."""
        pass

    @abc.abstractmethod
    def display_info(self, info_message: str, **kwargs: Any) -> None:
        """Displays an informational message to the user."""
        pass

    @abc.abstractmethod
    def display_bot(self, user: User) -> None:
        """Displays the identity of the bot behind the configured token."""
        pass

    @abc.abstractmethod
    def display_update(self, update: UpdateExt) -> None:
        """Displays one decoded inbound update."""
        pass

    @abc.abstractmethod
    def display_mapping(self, title: str, values: dict) -> None:
        """Displays a flat key/value table (e.g. webhook status)."""
        pass
