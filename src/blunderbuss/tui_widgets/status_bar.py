"""
Status bar widget for TUI.

One line of state at the bottom of the screen: agent counts, when tickets
were last loaded, and any warnings the user has not dismissed yet.
"""

import time
from typing import TYPE_CHECKING

from rich.text import Text
from textual.widgets import Static

from ..tui_helpers import format_ago

if TYPE_CHECKING:
    from ..orchestrator import Orchestrator


class StatusBar(Static):
    """Agent counts, ticket freshness and warnings."""

    def update_from(self, orchestrator: "Orchestrator") -> None:
        self.update(self._build(orchestrator))

    def _build(self, orchestrator: "Orchestrator") -> Text:
        t = Text()
        registry = orchestrator.registry
        running = len(registry.running_ids())
        t.append(" Agents: ", style="bold")
        t.append(f"{running} running", style="green" if running else "dim")
        t.append(f" / {len(registry)} total", style="dim")

        t.append("  │  ", style="dim")
        t.append("Tickets: ", style="bold")
        t.append(f"{orchestrator.tickets.count} ", style="")
        t.append(f"(updated {format_ago(orchestrator.last_ticket_update, time.time())})", style="dim")
        if orchestrator.refreshed_recently:
            t.append(" ↻", style="cyan")

        if orchestrator.warnings:
            t.append("  │  ", style="dim")
            t.append(f"⚠ {orchestrator.warnings[-1]}", style="bold yellow")
            if len(orchestrator.warnings) > 1:
                t.append(f" (+{len(orchestrator.warnings) - 1} more)", style="yellow")
            t.append("  w: dismiss", style="dim")
        return t
