"""
Sidebar widget for TUI.

Draws the project -> workspace -> agent tree from the orchestrator's
flattened visible-node list.
"""

from typing import TYPE_CHECKING

from rich.text import Text
from textual.widgets import Static

from ..domain import AgentRef, FocusColumn, NodeKind, ViewState
from ..tui_helpers import COLUMN_TITLES, get_status_symbol, truncate_name

if TYPE_CHECKING:
    from ..orchestrator import Orchestrator


class SidebarPanel(Static):
    """Project tree with workspaces and their launched agents."""

    def update_from(self, orchestrator: "Orchestrator") -> None:
        self.update(self._build(orchestrator))

    def _build(self, orchestrator: "Orchestrator") -> Text:
        tree = orchestrator.tree
        focused = (
            orchestrator.focus == FocusColumn.SIDEBAR
            and orchestrator.view == ViewState.MATRIX
        )
        t = Text()
        title_style = f"bold {orchestrator.animation.color}" if focused else "bold"
        t.append(f" {COLUMN_TITLES[FocusColumn.SIDEBAR]}\n", style=title_style)

        visible = tree.visible
        if not visible:
            t.append(" (discovering workspaces...)\n", style="dim italic")
            return t

        for i, entry in enumerate(visible):
            node = entry.node
            is_cursor = focused and i == tree.cursor
            t.append(">" if is_cursor else " ", style="bold cyan")
            t.append("  " * entry.depth)

            if node.kind == NodeKind.AGENT:
                status = node.payload.status if isinstance(node.payload, AgentRef) else None
                symbol, color = get_status_symbol(status)
                t.append(f"{symbol} ", style=color)
            elif node.has_children:
                t.append("▾ " if node.expanded else "▸ ", style="dim")
            else:
                t.append("  ")

            name_style = "reverse" if is_cursor else ""
            if node.kind == NodeKind.WORKSPACE and node.path == orchestrator.active_workspace:
                name_style = f"{name_style} bold green".strip()
            elif node.kind == NodeKind.PROJECT:
                name_style = f"{name_style} bold".strip()
            t.append(truncate_name(node.name, 26), style=name_style)

            if node.kind == NodeKind.WORKSPACE and node.is_running:
                t.append(" ●", style="green")
            t.append("\n")
        return t
