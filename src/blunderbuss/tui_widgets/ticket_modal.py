"""
Ticket details modal for TUI.

Shows ``bd show`` output for the highlighted ticket. Any key closes it.
"""

from typing import TYPE_CHECKING

from rich import box
from rich.panel import Panel
from rich.text import Text
from textual.widgets import Static

if TYPE_CHECKING:
    from ..orchestrator import Orchestrator


class TicketInfoModal(Static):
    """Overlay with the full details of one ticket."""

    def update_from(self, orchestrator: "Orchestrator") -> None:
        self.set_class(orchestrator.modal_open, "visible")
        if not orchestrator.modal_open:
            return
        self.update(
            Panel(
                Text(orchestrator.modal_text),
                title=Text(f" {orchestrator.modal_ticket_id} ", style="bold bright_white"),
                subtitle=Text("enter/esc/i: close", style="dim"),
                border_style="cyan",
                box=box.DOUBLE,
            )
        )
