"""
Textual TUI for Blunderbuss.

The app owns no workflow state of its own. Every key press becomes an
orchestrator message; every background task runs off the event loop and
hands its completion message back through ``reconcile``. After each
message the widgets are redrawn from orchestrator state.
"""

from functools import partial
from typing import List

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal
from textual.css.query import NoMatches
from textual.widgets import Header, Static

from . import __version__
from .domain import SELECTION_COLUMNS, ViewState
from .logging_config import get_logger
from .messages import AnimationTicked, Msg
from .orchestrator import Orchestrator, Services
from .tasks import Task
from .tui_actions import AgentActionsMixin, NavigationActionsMixin, ViewActionsMixin
from .tui_widgets import (
    AgentOutputPane,
    ConfirmView,
    ErrorView,
    HelpOverlay,
    SelectionColumn,
    SidebarPanel,
    StatusBar,
    TicketInfoModal,
)

logger = get_logger("tui")

# Actions still allowed while the help overlay is up
HELP_ACTIONS = ("toggle_help", "request_quit", "cancel")


class BlunderbussApp(
    NavigationActionsMixin,
    AgentActionsMixin,
    ViewActionsMixin,
    App,
):
    """Blunderbuss ticket-to-agent launcher"""

    AUTO_FOCUS = None

    CSS_PATH = "tui.tcss"

    BINDINGS = [
        ("j", "cursor_down", "Down"),
        ("k", "cursor_up", "Up"),
        ("down", "cursor_down", "Down"),
        ("up", "cursor_up", "Up"),
        ("h", "focus_left", "Left"),
        ("l", "focus_right", "Right"),
        ("left", "focus_left", "Left"),
        ("right", "focus_right", "Right"),
        Binding("tab", "focus_tab", "Next column", priority=True),
        Binding("enter", "confirm", "Select", priority=True),
        Binding("escape", "cancel", "Back", priority=True),
        ("space", "toggle_expand", "Expand"),
        ("c", "clear_agent", "Clear agent"),
        ("C", "clear_stopped", "Clear stopped"),
        ("r", "refresh_tickets", "Reload"),
        ("i", "ticket_info", "Details"),
        ("p", "toggle_sidebar", "Sidebar"),
        ("w", "dismiss_warnings", "Dismiss warnings"),
        ("question_mark", "toggle_help", "Help"),
        ("q", "request_quit", "Quit"),
        Binding("ctrl+c", "request_quit", "Quit", priority=True),
    ]

    def __init__(self, services: Services, dry_run: bool = False):
        super().__init__()
        self.services = services
        self.dry_run = dry_run
        self.orchestrator = Orchestrator(services)

    def compose(self) -> ComposeResult:
        """Create child widgets"""
        yield Header(show_clock=True)
        with Horizontal(id="main"):
            yield SidebarPanel(id="sidebar")
            with Horizontal(id="matrix"):
                for column in SELECTION_COLUMNS:
                    yield SelectionColumn(column, id=f"column-{column.name.lower()}", classes="column")
            yield ConfirmView(id="confirm-view")
            yield ErrorView(id="error-view")
            yield AgentOutputPane(id="agent-output")
        yield StatusBar(id="status-bar")
        yield TicketInfoModal(id="ticket-modal")
        yield HelpOverlay(id="help-overlay")
        yield Static(
            "?:Help | q:Quit | j/k:Move | enter:Select | esc:Back | tab:Column | r:Reload | i:Info | p:Sidebar | c/C:Clear",
            id="help-text",
        )

    def on_mount(self) -> None:
        """Called when app starts"""
        self.title = f"Blunderbuss v{__version__}"
        if self.dry_run:
            self.sub_title = "DRY RUN"
        self.refresh_view()
        self._schedule(self.orchestrator.start())

    # -- message loop -----------------------------------------------------

    def reconcile(self, msg: Msg) -> None:
        """Hand ``msg`` to the orchestrator, start its follow-up tasks, redraw."""
        follow_up = self.orchestrator.dispatch(msg)
        self._schedule(follow_up)
        if self.orchestrator.quit_requested:
            logger.info("Quit requested")
            self.exit()
            return
        if isinstance(msg, AnimationTicked):
            self.refresh_animation()
        else:
            self.refresh_view()

    def _schedule(self, tasks: List[Task]) -> None:
        for task in tasks:
            if task.delay > 0:
                self.set_timer(task.delay, partial(self._start_task, task))
            else:
                self._start_task(task)

    def _start_task(self, task: Task) -> None:
        if not task.blocking:
            self.call_later(self.reconcile, task.run())
            return
        self.run_worker(
            partial(self._run_blocking, task),
            thread=True,
            group=task.kind,
            exit_on_error=False,
        )

    def _run_blocking(self, task: Task) -> None:
        """Worker-thread body: run the task, post its completion back."""
        msg = task.run()
        self.call_from_thread(self.reconcile, msg)

    # -- drawing ----------------------------------------------------------

    def refresh_view(self) -> None:
        orchestrator = self.orchestrator
        viewing = orchestrator.viewing_agent
        in_error = orchestrator.view == ViewState.ERROR
        try:
            sidebar = self.query_one("#sidebar", SidebarPanel)
            matrix = self.query_one("#matrix", Horizontal)
            confirm = self.query_one("#confirm-view", ConfirmView)
            error = self.query_one("#error-view", ErrorView)
            output = self.query_one("#agent-output", AgentOutputPane)
            status_bar = self.query_one("#status-bar", StatusBar)
            modal = self.query_one("#ticket-modal", TicketInfoModal)
        except NoMatches:
            return

        sidebar.display = orchestrator.sidebar_visible and not in_error
        matrix.display = orchestrator.view == ViewState.MATRIX and viewing is None
        confirm.display = orchestrator.view == ViewState.CONFIRM and viewing is None
        error.display = in_error
        output.display = viewing is not None and not in_error

        if sidebar.display:
            sidebar.update_from(orchestrator)
        if matrix.display:
            for column in self.query(SelectionColumn):
                column.update_from(orchestrator)
        if confirm.display:
            confirm.update_from(orchestrator)
        if error.display:
            error.update_from(orchestrator)
        if output.display:
            output.update_from_agent(viewing)
        status_bar.update_from(orchestrator)
        modal.update_from(orchestrator)

    def refresh_animation(self) -> None:
        """Redraw only the widgets whose titles pulse or flash."""
        orchestrator = self.orchestrator
        try:
            sidebar = self.query_one("#sidebar", SidebarPanel)
            matrix = self.query_one("#matrix", Horizontal)
        except NoMatches:
            return
        if matrix.display:
            for column in self.query(SelectionColumn):
                column.update_from(orchestrator)
        if sidebar.display and orchestrator.sidebar_focused:
            sidebar.update_from(orchestrator)

    def check_action(self, action: str, parameters: tuple) -> bool | None:
        """While help is visible, only help, back and quit go through."""
        try:
            help_overlay = self.query_one("#help-overlay", HelpOverlay)
        except NoMatches:
            return True
        if help_overlay.has_class("visible"):
            return action in HELP_ACTIONS
        return True


def run_tui(services: Services, dry_run: bool = False) -> None:
    """Run the launcher TUI"""
    import os
    import sys

    if not sys.stdout.isatty():
        print("Error: Must run in a TTY terminal", file=sys.stderr)
        sys.exit(1)

    os.environ.setdefault("TERM", "xterm-256color")

    app = BlunderbussApp(services, dry_run=dry_run)
    app.run()
