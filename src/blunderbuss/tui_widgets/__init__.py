"""
TUI Widget components for Blunderbuss.

Each widget reads orchestrator state and draws it; none of them change it.
"""

from .agent_output_pane import AgentOutputPane
from .confirm_view import ConfirmView, ErrorView
from .help_overlay import HelpOverlay
from .selection_column import SelectionColumn
from .sidebar_panel import SidebarPanel
from .status_bar import StatusBar
from .ticket_modal import TicketInfoModal

__all__ = [
    "AgentOutputPane",
    "ConfirmView",
    "ErrorView",
    "HelpOverlay",
    "SelectionColumn",
    "SidebarPanel",
    "StatusBar",
    "TicketInfoModal",
]
