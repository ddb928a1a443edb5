"""
Session orchestrator: the one place shared state changes.

Key presses and background completions both arrive as messages. ``dispatch``
runs the single handler registered for the message type, which may mutate
state and returns the background tasks to start next. The TUI only reads
orchestrator state to draw itself.
"""

import logging
import time
from dataclasses import dataclass, field, replace
from typing import Callable, Dict, List, Optional, Set

from .agent_registry import AgentRegistry
from .animation import AnimationState
from .config import Defaults, Settings
from .discovery import dedupe, expand_models
from .domain import (
    AgentRef,
    FocusColumn,
    Harness,
    NodeKind,
    RunningAgent,
    Selection,
    TicketFilter,
    ViewState,
)
from .list_adapters import SelectableList, harness_list, option_list, ticket_list
from .messages import (
    AdvancePressed,
    AgentOutputRead,
    AgentStatusPolled,
    AnimationTicked,
    CancelPressed,
    CapturesStopped,
    ClearAgentPressed,
    ClearStoppedPressed,
    ConfirmPressed,
    CursorMoved,
    ExpandToggled,
    InfoPressed,
    INPUT_MESSAGES,
    LaunchCompleted,
    ModelsLoaded,
    Msg,
    QuitPressed,
    RefreshIndicatorExpired,
    RefreshPressed,
    RetreatPressed,
    SidebarToggled,
    TabPressed,
    TicketDetailsLoaded,
    TicketsFailed,
    TicketsLoaded,
    UpdateCheckCompleted,
    WarningRaised,
    WarningsDismissed,
    WorkspacesDiscovered,
)
from .navigation import first_selection_column, next_enabled, prev_enabled, tab_target
from .project_tree import ProjectTree
from .protocols import (
    CaptureFactory,
    Launcher,
    ModelSource,
    Renderer,
    StatusChecker,
    TicketStore,
    WorkspaceDiscoverer,
)
from . import tasks
from .tasks import Task

logger = logging.getLogger(__name__)

MODAL_CLOSE_MESSAGES = (CancelPressed, QuitPressed, ConfirmPressed, InfoPressed)


@dataclass
class Services:
    """Collaborators the orchestrator hands to its background tasks."""

    store: TicketStore
    harnesses: List[Harness]
    renderer: Renderer
    launcher: Launcher
    status_checker: StatusChecker
    capture_factory: Optional[CaptureFactory] = None
    models: Optional[ModelSource] = None
    discoverer: Optional[WorkspaceDiscoverer] = None
    settings: Settings = field(default_factory=Settings)
    defaults: Defaults = field(default_factory=Defaults)
    ticket_filter: TicketFilter = field(default_factory=TicketFilter)
    default_workspace: str = ""
    clock: Callable[[], float] = time.monotonic


class Orchestrator:
    """Owns the selection, the agent registry and the project tree."""

    def __init__(self, services: Services):
        self.services = services
        settings = services.settings

        self.view = ViewState.MATRIX
        self.focus = FocusColumn.TICKETS
        self.selection = Selection()
        self.error: Optional[str] = None
        self.warnings: List[str] = []
        self.quit_requested = False

        self.tickets: SelectableList = ticket_list([])
        self.tickets_loaded = False
        self.tickets_loading = False
        self.last_ticket_update: Optional[float] = None
        self.refreshed_recently = False
        self._last_modified_seen: Optional[float] = None

        self.harnesses: SelectableList = harness_list(services.harnesses)
        if services.defaults.harness:
            self.harnesses.highlight(services.defaults.harness)
        self.models: SelectableList = option_list([], "models")
        self.agents: SelectableList = option_list([], "agents")
        self.model_disabled = False
        self.agent_disabled = False

        self.sidebar_visible = True
        self.tree = ProjectTree()
        self.active_workspace: Optional[str] = None
        self.registry = AgentRegistry()
        self.viewing_agent_id: Optional[str] = None
        self._pending_launches: Set[str] = set()

        self.modal_open = False
        self.modal_ticket_id: Optional[str] = None
        self.modal_text = ""

        self.animation = AnimationState(
            started_at=services.clock(),
            period=settings.pulse_period_seconds,
            flash_duration=settings.lock_in_flash_seconds,
        )

        self._handlers: Dict[type, Callable[[Msg], List[Task]]] = {
            ConfirmPressed: self._on_confirm,
            CancelPressed: self._on_cancel,
            AdvancePressed: self._on_advance,
            RetreatPressed: self._on_retreat,
            TabPressed: self._on_tab,
            CursorMoved: self._on_cursor_moved,
            ExpandToggled: self._on_expand_toggled,
            ClearAgentPressed: self._on_clear_agent,
            ClearStoppedPressed: self._on_clear_stopped,
            RefreshPressed: self._on_refresh,
            SidebarToggled: self._on_sidebar_toggled,
            InfoPressed: self._on_info,
            WarningsDismissed: self._on_warnings_dismissed,
            QuitPressed: self._on_quit,
            TicketsLoaded: self._on_tickets_loaded,
            TicketsFailed: self._on_tickets_failed,
            ModelsLoaded: self._on_models_loaded,
            WarningRaised: self._on_warning,
            WorkspacesDiscovered: self._on_workspaces_discovered,
            LaunchCompleted: self._on_launch_completed,
            AgentStatusPolled: self._on_status_polled,
            AgentOutputRead: self._on_output_read,
            CapturesStopped: self._on_captures_stopped,
            UpdateCheckCompleted: self._on_update_check,
            RefreshIndicatorExpired: self._on_refresh_indicator_expired,
            TicketDetailsLoaded: self._on_ticket_details,
            AnimationTicked: self._on_animation_tick,
        }

    # -- entry points -----------------------------------------------------

    def start(self) -> List[Task]:
        """Tasks to run once at startup."""
        services = self.services
        self.tickets_loading = True
        startup = [tasks.load_tickets(services.store, self._ticket_filter())]
        if services.models is not None:
            startup.append(tasks.load_models(services.models))
        if services.discoverer is not None:
            startup.append(tasks.discover_workspaces(services.discoverer))
        startup.append(tasks.check_updates(services.store, delay=0))
        startup.append(tasks.animation_tick(services.settings.animation_interval, services.clock))
        return startup

    def dispatch(self, msg: Msg) -> List[Task]:
        """Run the handler for ``msg`` and return the tasks it asks for."""
        handler = self._handlers.get(type(msg))
        if handler is None:
            raise TypeError(f"no handler for {type(msg).__name__}")

        if type(msg) in INPUT_MESSAGES:
            if self.modal_open:
                if isinstance(msg, MODAL_CLOSE_MESSAGES):
                    self.modal_open = False
                    self.modal_ticket_id = None
                return []
            if self.view == ViewState.ERROR and not isinstance(msg, QuitPressed):
                return []

        return handler(msg) or []

    # -- derived state ----------------------------------------------------

    @property
    def disabled_columns(self) -> Set[FocusColumn]:
        disabled = set()
        if not self.sidebar_visible:
            disabled.add(FocusColumn.SIDEBAR)
        if self.model_disabled:
            disabled.add(FocusColumn.MODEL)
        if self.agent_disabled:
            disabled.add(FocusColumn.AGENT)
        return disabled

    @property
    def sidebar_focused(self) -> bool:
        return self.focus == FocusColumn.SIDEBAR

    @property
    def viewing_agent(self) -> Optional[RunningAgent]:
        if self.viewing_agent_id is None:
            return None
        return self.registry.get(self.viewing_agent_id)

    @property
    def workspace_path(self) -> str:
        return self.active_workspace or self.services.default_workspace

    def column_list(self, column: FocusColumn) -> Optional[SelectableList]:
        return {
            FocusColumn.TICKETS: self.tickets,
            FocusColumn.HARNESS: self.harnesses,
            FocusColumn.MODEL: self.models,
            FocusColumn.AGENT: self.agents,
        }.get(column)

    def _ticket_filter(self) -> TicketFilter:
        base = self.services.ticket_filter
        if base.limit:
            return base
        return replace(base, limit=self.services.settings.ticket_limit)

    def _needs_choice(self, column: FocusColumn) -> bool:
        if column in self.disabled_columns:
            return False
        options = self.column_list(column)
        return options is not None and options.count > 1

    # -- workflow ---------------------------------------------------------

    def _apply_harness(self, harness: Harness) -> List[Task]:
        """Recompute the model and agent columns for ``harness`` and move on."""
        defaults = self.services.defaults
        models = expand_models(harness.models, self.services.models)
        agents = dedupe(harness.agents)

        self.models = option_list(models, "models")
        self.agents = option_list(agents, "agents")
        if defaults.model:
            self.models.highlight(defaults.model)
        if defaults.agent:
            self.agents.highlight(defaults.agent)
        self.model_disabled = not models
        self.agent_disabled = not agents

        self.selection = replace(
            self.selection,
            harness=harness,
            model=models[0] if len(models) == 1 else "",
            agent=agents[0] if len(agents) == 1 else "",
        )
        logger.debug(
            "Harness %s: %d models, %d agents", harness.name, len(models), len(agents)
        )
        return self._advance_after(FocusColumn.HARNESS)

    def _advance_after(self, column: FocusColumn) -> List[Task]:
        """Focus the next column still needing a choice, else go to Confirm."""
        for later in (FocusColumn.MODEL, FocusColumn.AGENT):
            if later > column and self._needs_choice(later):
                self.focus = later
                return []
        self.view = ViewState.CONFIRM
        return []

    def _launch(self) -> List[Task]:
        selection = self.selection
        if selection.ticket is None or selection.harness is None:
            return []
        agent_id = self.registry.unique_id(selection.ticket.id, self._pending_launches)
        self._pending_launches.add(agent_id)
        services = self.services
        logger.info("Launching %s with harness %s", agent_id, selection.harness.name)
        return [
            tasks.render_and_launch(
                agent_id,
                selection,
                self.workspace_path,
                services.renderer,
                services.launcher,
                services.capture_factory,
            )
        ]

    def _forget_agents(self, removed: List[RunningAgent]) -> List[Task]:
        """Drop tree leaves and stop captures of agents already removed from the registry."""
        agent_ids = [a.id for a in removed]
        captures = [(a.id, a.capture) for a in removed if a.capture is not None]
        self.tree.detach_agents(agent_ids)
        if self.viewing_agent_id in agent_ids:
            self.viewing_agent_id = None
        if not captures:
            return []
        return [tasks.stop_captures(captures)]

    def _read_output_task(self, agent: RunningAgent) -> List[Task]:
        if agent.capture is None:
            return []
        return [
            tasks.read_output(agent.id, agent.capture, self.services.settings.output_tail_lines)
        ]

    # -- input handlers ---------------------------------------------------

    def _on_confirm(self, msg: ConfirmPressed) -> List[Task]:
        if self.viewing_agent_id is not None:
            self.viewing_agent_id = None
            return []
        if self.view == ViewState.CONFIRM:
            self.view = ViewState.MATRIX
            return self._launch()
        if self.view != ViewState.MATRIX:
            return []

        if self.focus == FocusColumn.SIDEBAR:
            return self._select_sidebar_node()

        options = self.column_list(self.focus)
        chosen = options.highlighted() if options is not None else None
        if chosen is None:
            return []
        self.animation.lock_in(self.focus, msg.at or self.services.clock())

        if self.focus == FocusColumn.TICKETS:
            self.selection = replace(self.selection, ticket=chosen)
            if self.harnesses.count == 1:
                return self._apply_harness(self.harnesses.items[0])
            self.focus = next_enabled(self.focus, self.disabled_columns)
            return []
        if self.focus == FocusColumn.HARNESS:
            return self._apply_harness(chosen)
        if self.focus == FocusColumn.MODEL:
            self.selection = replace(self.selection, model=chosen)
            return self._advance_after(FocusColumn.MODEL)
        self.selection = replace(self.selection, agent=chosen)
        self.view = ViewState.CONFIRM
        return []

    def _select_sidebar_node(self) -> List[Task]:
        node = self.tree.current()
        if node is None:
            return []
        if node.kind == NodeKind.WORKSPACE:
            self.active_workspace = node.path
            self.focus = first_selection_column(self.disabled_columns)
            return []
        if node.kind == NodeKind.PROJECT:
            self.tree.toggle(node)
            return []
        ref = node.payload
        agent = self.registry.get(ref.agent_id) if isinstance(ref, AgentRef) else None
        if agent is None:
            return []
        self.viewing_agent_id = agent.id
        return self._read_output_task(agent)

    def _on_cancel(self, msg: CancelPressed) -> List[Task]:
        if self.viewing_agent_id is not None:
            self.viewing_agent_id = None
        elif self.view == ViewState.CONFIRM:
            self.view = ViewState.MATRIX
        elif self.view == ViewState.MATRIX and self.focus != FocusColumn.SIDEBAR:
            self.focus = prev_enabled(self.focus, self.disabled_columns, floor=FocusColumn.TICKETS)
        return []

    def _on_advance(self, msg: AdvancePressed) -> List[Task]:
        if self.view == ViewState.MATRIX:
            self.focus = next_enabled(self.focus, self.disabled_columns)
        return []

    def _on_retreat(self, msg: RetreatPressed) -> List[Task]:
        if self.view == ViewState.MATRIX:
            self.focus = prev_enabled(self.focus, self.disabled_columns)
        return []

    def _on_tab(self, msg: TabPressed) -> List[Task]:
        if self.view == ViewState.MATRIX:
            self.focus = tab_target(self.focus, self.disabled_columns)
        return []

    def _on_cursor_moved(self, msg: CursorMoved) -> List[Task]:
        if self.view != ViewState.MATRIX:
            return []
        if self.focus == FocusColumn.SIDEBAR:
            self.tree.move(msg.delta)
        else:
            options = self.column_list(self.focus)
            if options is not None:
                options.move(msg.delta)
        return []

    def _on_expand_toggled(self, msg: ExpandToggled) -> List[Task]:
        if self.view == ViewState.MATRIX and self.focus == FocusColumn.SIDEBAR:
            self.tree.toggle()
        return []

    def _on_clear_agent(self, msg: ClearAgentPressed) -> List[Task]:
        if self.view != ViewState.MATRIX or self.focus != FocusColumn.SIDEBAR:
            return []
        node = self.tree.current()
        if node is None or node.kind != NodeKind.AGENT or not isinstance(node.payload, AgentRef):
            return []
        agent = self.registry.remove(node.payload.agent_id)
        if agent is None:
            self.tree.detach_agents([node.payload.agent_id])
            return []
        return self._forget_agents([agent])

    def _on_clear_stopped(self, msg: ClearStoppedPressed) -> List[Task]:
        if self.view != ViewState.MATRIX or self.focus != FocusColumn.SIDEBAR:
            return []
        stopped = self.registry.remove_stopped()
        if not stopped:
            return []
        return self._forget_agents(stopped)

    def _on_refresh(self, msg: RefreshPressed) -> List[Task]:
        if self.view != ViewState.MATRIX or self.focus != FocusColumn.TICKETS:
            return []
        self.tickets_loading = True
        return [tasks.load_tickets(self.services.store, self._ticket_filter())]

    def _on_sidebar_toggled(self, msg: SidebarToggled) -> List[Task]:
        self.sidebar_visible = not self.sidebar_visible
        if not self.sidebar_visible and self.focus == FocusColumn.SIDEBAR:
            self.focus = first_selection_column(self.disabled_columns)
        return []

    def _on_info(self, msg: InfoPressed) -> List[Task]:
        if self.view != ViewState.MATRIX or self.focus != FocusColumn.TICKETS:
            return []
        ticket = self.tickets.highlighted()
        if ticket is None:
            return []
        self.modal_open = True
        self.modal_ticket_id = ticket.id
        self.modal_text = f"Loading bd show {ticket.id}..."
        return [tasks.load_ticket_details(self.services.store, ticket.id)]

    def _on_warnings_dismissed(self, msg: WarningsDismissed) -> List[Task]:
        self.warnings.clear()
        return []

    def _on_quit(self, msg: QuitPressed) -> List[Task]:
        if self.viewing_agent_id is not None:
            self.viewing_agent_id = None
        else:
            self.quit_requested = True
        return []

    # -- completion handlers ----------------------------------------------

    def _on_tickets_loaded(self, msg: TicketsLoaded) -> List[Task]:
        previous = self.tickets.highlighted()
        self.tickets = ticket_list(msg.tickets)
        if previous is not None:
            self.tickets.highlight(previous.id)
        self.tickets_loaded = True
        self.tickets_loading = False
        self.last_ticket_update = msg.loaded_at
        logger.info("Loaded %d tickets%s", len(msg.tickets), " (auto)" if msg.auto else "")
        return []

    def _on_tickets_failed(self, msg: TicketsFailed) -> List[Task]:
        self.tickets_loading = False
        self.view = ViewState.ERROR
        self.error = f"Failed to load tickets: {msg.error}"
        return []

    def _on_models_loaded(self, msg: ModelsLoaded) -> List[Task]:
        logger.info("Model registry ready (%d providers)", msg.provider_count)
        return []

    def _on_warning(self, msg: WarningRaised) -> List[Task]:
        self.warnings.append(msg.text)
        return []

    def _on_workspaces_discovered(self, msg: WorkspacesDiscovered) -> List[Task]:
        if msg.error:
            self.warnings.append(f"Workspace discovery failed: {msg.error}")
            return []
        self.tree.set_roots(msg.roots)
        for agent in self.registry:
            self.tree.attach_agent(
                agent.workspace_path,
                AgentRef(agent.id, agent.ticket_id, agent.status),
                agent.name,
            )
        if self.active_workspace is None:
            workspaces = self.tree.workspaces()
            if workspaces:
                self.active_workspace = workspaces[0].path
                self.tree.select_path(self.active_workspace, NodeKind.WORKSPACE)
        return []

    def _on_launch_completed(self, msg: LaunchCompleted) -> List[Task]:
        self._pending_launches.discard(msg.agent_id)
        if msg.render_error is not None:
            if len(self.registry) == 0:
                self.view = ViewState.ERROR
                self.error = f"Failed to render launch for {msg.agent_id}: {msg.render_error}"
            else:
                self.warnings.append(f"Render failed for {msg.agent_id}: {msg.render_error}")
            return []

        result = msg.result
        if result is None or result.error:
            error = result.error if result is not None else "no result"
            self.warnings.append(f"Launch of {msg.agent_id} failed: {error}")
            return []

        ticket_id = msg.selection.ticket.id if msg.selection.ticket else msg.agent_id
        self.registry.register(
            msg.agent_id,
            name=msg.agent_id,
            ticket_id=ticket_id,
            workspace_path=msg.workspace_path,
            window_id=result.window_id,
            capture=msg.capture,
        )
        self.tree.attach_agent(msg.workspace_path, AgentRef(msg.agent_id, ticket_id), msg.agent_id)
        if msg.capture_error:
            self.warnings.append(f"No output capture for {msg.agent_id}: {msg.capture_error}")
        return [
            tasks.poll_status(
                msg.agent_id,
                result.window_id,
                self.services.status_checker,
                delay=self.services.settings.status_poll_interval,
            )
        ]

    def _on_status_polled(self, msg: AgentStatusPolled) -> List[Task]:
        agent = self.registry.observe(
            msg.agent_id, msg.status, self.services.settings.unknown_status_threshold
        )
        if agent is None:
            return []
        self.tree.update_agent_status(agent.id, agent.status)

        follow_up: List[Task] = []
        if agent.is_running:
            follow_up.append(
                tasks.poll_status(
                    agent.id,
                    agent.window_id,
                    self.services.status_checker,
                    delay=self.services.settings.status_poll_interval,
                )
            )
        if self.viewing_agent_id == agent.id:
            follow_up.extend(self._read_output_task(agent))
        return follow_up

    def _on_output_read(self, msg: AgentOutputRead) -> List[Task]:
        self.registry.ingest_output(msg.agent_id, msg.content)
        return []

    def _on_captures_stopped(self, msg: CapturesStopped) -> List[Task]:
        for error in msg.errors:
            self.warnings.append(f"Stopping output capture failed for {error}")
        return []

    def _on_update_check(self, msg: UpdateCheckCompleted) -> List[Task]:
        services = self.services
        follow_up = [tasks.check_updates(services.store, delay=services.settings.ticket_poll_interval)]
        seen = self._last_modified_seen
        if msg.last_modified is not None:
            self._last_modified_seen = msg.last_modified
        if seen is not None and msg.last_modified is not None and msg.last_modified > seen:
            logger.info("Ticket store changed, reloading")
            self.refreshed_recently = True
            self.tickets_loading = True
            follow_up.append(tasks.load_tickets(services.store, self._ticket_filter(), auto=True))
            follow_up.append(tasks.expire_refresh_indicator(services.settings.refresh_indicator_seconds))
        return follow_up

    def _on_refresh_indicator_expired(self, msg: RefreshIndicatorExpired) -> List[Task]:
        self.refreshed_recently = False
        return []

    def _on_ticket_details(self, msg: TicketDetailsLoaded) -> List[Task]:
        if self.modal_open and self.modal_ticket_id == msg.ticket_id:
            self.modal_text = msg.text
        return []

    def _on_animation_tick(self, msg: AnimationTicked) -> List[Task]:
        self.animation.advance(msg.now)
        return [tasks.animation_tick(self.services.settings.animation_interval, self.services.clock)]
