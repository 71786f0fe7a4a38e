"""Interaction - How the dashboard asks the user for input.

Prompts, confirmations and alerts go through an ``Interaction``. Tool calls get
a request-scoped ``ToolInteraction`` bound through a context variable, so the
long-lived dashboard session talks to whoever issued the current request.
"""

import logging
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Protocol


logger = logging.getLogger(__name__)


class Interaction(Protocol):
    """User-facing prompt/confirm/alert operations."""

    def prompt(self, message: str, default: str | None = None) -> str | None:
        """Ask for one line of text; None if the user cancelled."""

    def confirm(self, message: str) -> bool:
        """Ask a yes/no question before a destructive action."""

    def alert(self, message: str) -> None:
        """Tell the user something went wrong."""


@dataclass
class ToolInteraction:
    """Interaction answered up front by the arguments of a tool call.

    Attributes:
        answers: Replies returned by successive prompts
        confirmed: Reply to every confirmation
        alerts: Messages raised during the call
        asked: Prompts and confirmations that were shown
    """

    answers: list[str] = field(default_factory=list)
    confirmed: bool = False
    alerts: list[str] = field(default_factory=list)
    asked: list[str] = field(default_factory=list)

    def prompt(self, message: str, default: str | None = None) -> str | None:
        self.asked.append(message)
        if not self.answers:
            return None
        return self.answers.pop(0)

    def confirm(self, message: str) -> bool:
        self.asked.append(message)
        return self.confirmed

    def alert(self, message: str) -> None:
        self.alerts.append(message)


current_interaction: ContextVar[Interaction | None] = ContextVar("current_interaction", default=None)


class ContextInteraction:
    """Delegates to the interaction bound to the current context.

    Without a bound interaction, prompts are cancelled, confirmations are
    declined and alerts only reach the log.
    """

    def prompt(self, message: str, default: str | None = None) -> str | None:
        bound = current_interaction.get()
        return bound.prompt(message, default) if bound is not None else None

    def confirm(self, message: str) -> bool:
        bound = current_interaction.get()
        return bound.confirm(message) if bound is not None else False

    def alert(self, message: str) -> None:
        bound = current_interaction.get()
        if bound is None:
            logger.warning("Alert with no one to show it to: %s", message)
            return
        bound.alert(message)
