"""
Confirm and error views for TUI.

The confirm view summarises the selection and previews the command that
will be launched; the error view replaces the matrix on a fatal error.
"""

from typing import TYPE_CHECKING

from rich import box
from rich.panel import Panel
from rich.table import Table
from rich.text import Text
from textual.widgets import Static

from ..exceptions import RenderError
from ..render import build_template_context, render_template

if TYPE_CHECKING:
    from ..orchestrator import Orchestrator


def preview_command(orchestrator: "Orchestrator") -> Text:
    """The harness command as it would be rendered right now.

    Branch lookup is skipped; the launch itself resolves it.
    """
    selection = orchestrator.selection
    harness = selection.harness
    if harness is None:
        return Text("(no harness selected)", style="dim italic")
    context = build_template_context(selection, workspace_path=orchestrator.workspace_path)
    try:
        if harness.prompt_template:
            context["Prompt"] = render_template(harness.prompt_template, context, "prompt_template")
        return Text(render_template(harness.command_template, context, "command_template"))
    except RenderError as e:
        return Text(str(e), style="bold red")


class ConfirmView(Static):
    """Launch confirmation panel."""

    def update_from(self, orchestrator: "Orchestrator") -> None:
        self.update(self._build(orchestrator))

    def _build(self, orchestrator: "Orchestrator") -> Panel:
        selection = orchestrator.selection
        table = Table(show_header=False, box=None, padding=(0, 2))
        table.add_column("field", style="bold cyan", no_wrap=True)
        table.add_column("value")

        ticket = selection.ticket
        table.add_row("Ticket", f"{ticket.id}  {ticket.title}" if ticket else "-")
        table.add_row("Harness", selection.harness.name if selection.harness else "-")
        table.add_row("Model", selection.model or "-")
        table.add_row("Agent", selection.agent or "-")
        table.add_row("Workspace", orchestrator.workspace_path or "-")
        table.add_row("", "")
        table.add_row("Command", preview_command(orchestrator))

        return Panel(
            table,
            title=Text(" Launch? ", style="bold bright_white"),
            subtitle=Text("enter: launch  esc: back", style="dim"),
            border_style="green",
            box=box.ROUNDED,
        )


class ErrorView(Static):
    """Fatal error panel. Only quitting is possible from here."""

    def update_from(self, orchestrator: "Orchestrator") -> None:
        message = orchestrator.error or "Unknown error"
        self.update(
            Panel(
                Text(message, style="bold red"),
                title=Text(" Error ", style="bold bright_white"),
                subtitle=Text("q: quit", style="dim"),
                border_style="red",
                box=box.HEAVY,
            )
        )
