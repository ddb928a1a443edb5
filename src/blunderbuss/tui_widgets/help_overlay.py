"""
Help overlay widget for TUI.

Displays keyboard shortcuts and the agent status reference in a two-column
layout.
"""

from textual.widgets import Static
from rich.table import Table
from rich.text import Text
from rich.panel import Panel
from rich import box

from ..domain import AgentStatus
from ..tui_helpers import get_status_symbol


class HelpOverlay(Static):
    """Help overlay explaining keys and agent statuses"""

    def _build_keybindings(self) -> Text:
        t = Text()

        def section(title):
            t.append(f"  {title}\n", style="bold bright_white")
            t.append("  " + "─" * 50 + "\n", style="dim")

        def row(k, desc, k2=None, desc2=None):
            t.append(f"  {k:<8}", style="bold cyan")
            if k2:
                t.append(f"{desc:<22}", style="white")
                t.append(f"{k2:<8}", style="bold cyan")
                t.append(f"{desc2}\n", style="white")
            else:
                t.append(f"{desc}\n", style="white")

        section("SELECTION")
        row("j/↓", "Cursor down", "k/↑", "Cursor up")
        row("enter", "Choose / launch", "esc", "Back one step")
        row("h/←", "Previous column", "l/→", "Next column")
        row("tab", "Next column (wraps)")
        t.append("\n")

        section("TICKETS")
        row("r", "Reload tickets", "i", "Ticket details")
        t.append("\n")

        section("SIDEBAR")
        row("space", "Expand/collapse", "enter", "Use workspace / view agent")
        row("c", "Clear agent", "C", "Clear stopped agents")
        row("p", "Show/hide sidebar")
        t.append("\n")

        section("OTHER")
        row("w", "Dismiss warnings", "?", "Toggle help")
        row("q", "Quit (or leave agent view)")
        return t

    def _build_status_reference(self) -> Text:
        t = Text()
        t.append("AGENT STATUSES\n", style="bold bright_white")
        t.append("─" * 34 + "\n", style="dim")

        descriptions = {
            AgentStatus.RUNNING: "tmux window is alive",
            AgentStatus.COMPLETED: "window exited",
            AgentStatus.FAILED: "window lost or never reachable",
        }
        for status, desc in descriptions.items():
            symbol, color = get_status_symbol(status)
            t.append(f"{symbol}  ", style=color)
            t.append(f"{status.value.capitalize()}\n", style="bold white")
            t.append(f"   {desc}\n\n", style="dim")
        return t

    def render(self):
        layout = Table(
            show_header=False,
            show_edge=False,
            box=None,
            padding=(0, 2),
            expand=True,
        )
        layout.add_column("keys", ratio=3, no_wrap=True)
        layout.add_column("statuses", ratio=2)
        layout.add_row(self._build_keybindings(), self._build_status_reference())

        title = Text()
        title.append(" BLUNDERBUSS HELP ", style="bold bright_white")

        return Panel(
            layout,
            title=title,
            subtitle=Text("Press ? or esc to close", style="dim"),
            border_style="bright_blue",
            box=box.DOUBLE,
        )
