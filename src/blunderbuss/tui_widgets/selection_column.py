"""
Selection column widget for TUI.

One instance per matrix column (tickets, harness, model, agent). The title
pulses while the column has focus and flashes when a choice is locked in.
"""

from typing import TYPE_CHECKING, Any

from rich.text import Text
from textual.widgets import Static

from ..animation import FLASH_COLOR
from ..domain import FocusColumn, Harness, Ticket, ViewState
from ..tui_helpers import COLUMN_TITLES, priority_style, truncate_name

if TYPE_CHECKING:
    from ..orchestrator import Orchestrator


class SelectionColumn(Static):
    """A list of choices for one step of the selection."""

    def __init__(self, column: FocusColumn, **kwargs):
        super().__init__(**kwargs)
        self.column = column

    def update_from(self, orchestrator: "Orchestrator") -> None:
        self.set_class(self.column in orchestrator.disabled_columns, "disabled")
        self.update(self._build(orchestrator))

    def _title_style(self, orchestrator: "Orchestrator", focused: bool, disabled: bool) -> str:
        if orchestrator.animation.shows_flash(self.column):
            return f"bold {FLASH_COLOR}"
        if focused:
            return f"bold {orchestrator.animation.color}"
        if disabled:
            return "dim"
        return "bold"

    def _chosen(self, orchestrator: "Orchestrator") -> str:
        selection = orchestrator.selection
        if self.column == FocusColumn.TICKETS:
            return selection.ticket.id if selection.ticket else ""
        if self.column == FocusColumn.HARNESS:
            return selection.harness.name if selection.harness else ""
        if self.column == FocusColumn.MODEL:
            return selection.model
        return selection.agent

    @staticmethod
    def _append_item(t: Text, item: Any, style: str) -> None:
        if isinstance(item, Ticket):
            t.append(f"{item.id} ", style=f"{style} bold".strip())
            t.append(f"P{item.priority} ", style=priority_style(item.priority))
            t.append(truncate_name(item.title, 40), style=style)
        elif isinstance(item, Harness):
            t.append(item.name, style=style)
        else:
            t.append(str(item), style=style)

    def _build(self, orchestrator: "Orchestrator") -> Text:
        focused = orchestrator.focus == self.column and orchestrator.view == ViewState.MATRIX
        disabled = self.column in orchestrator.disabled_columns
        t = Text()
        t.append(f" {COLUMN_TITLES[self.column]}", style=self._title_style(orchestrator, focused, disabled))
        if self.column == FocusColumn.TICKETS:
            if orchestrator.tickets_loading:
                t.append(" …", style="dim")
            elif orchestrator.refreshed_recently:
                t.append(" ↻", style="cyan")
        t.append("\n")

        if disabled:
            t.append(" (not used by this harness)\n", style="dim italic")
            return t
        if self.column == FocusColumn.TICKETS and not orchestrator.tickets_loaded:
            t.append(" Loading tickets...\n", style="dim italic")
            return t

        options = orchestrator.column_list(self.column)
        if options is None or options.is_empty:
            if options is not None:
                t.append(f" {options.empty_message}\n", style="dim italic")
            return t

        chosen = self._chosen(orchestrator)
        for i, item in enumerate(options.items):
            is_cursor = focused and i == options.cursor
            t.append(">" if is_cursor else " ", style="bold cyan")
            t.append("✓ " if chosen and options.label_of(item) == chosen else "  ", style="green")
            self._append_item(t, item, "reverse" if is_cursor else "")
            t.append("\n")
        return t
