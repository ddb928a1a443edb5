"""
Unit tests for the session orchestrator.

Tasks are run inline: each test dispatches messages and, where it matters,
runs the returned tasks by hand and dispatches their completions.
"""

import sys
from dataclasses import dataclass
from pathlib import Path
from unittest.mock import MagicMock

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

from blunderbuss.config import Defaults, Settings
from blunderbuss.domain import (
    AgentStatus,
    FocusColumn,
    LaunchResult,
    NodeKind,
    Selection,
    ViewState,
    WindowStatus,
)
from blunderbuss.fakes import FakeLauncher, FakeTicketStore, FakeWorkspaceDiscoverer
from blunderbuss.workspace import build_workspace_tree
from blunderbuss.messages import (
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
    LaunchCompleted,
    Msg,
    QuitPressed,
    RefreshIndicatorExpired,
    RefreshPressed,
    RetreatPressed,
    SidebarToggled,
    TabPressed,
    TicketsFailed,
    TicketsLoaded,
    UpdateCheckCompleted,
    WarningRaised,
    WarningsDismissed,
    WorkspacesDiscovered,
)
from tests.fixtures import (
    dispatch_all,
    loaded_orchestrator,
    make_harness,
    make_orchestrator,
    make_ticket,
    run_task,
)


def launch_through(orchestrator, *msgs):
    """Dispatch ``msgs``, run the launch task they produce, return follow-ups."""
    tasks = dispatch_all(orchestrator, *msgs)
    launches = [t for t in tasks if t.kind == "launch"]
    assert len(launches) == 1
    return run_task(orchestrator, launches[0])


def full_selection(orchestrator):
    """Ticket, opencode harness, first model, first agent, then launch."""
    return launch_through(
        orchestrator,
        ConfirmPressed(),  # ticket
        ConfirmPressed(),  # harness
        ConfirmPressed(),  # model
        ConfirmPressed(),  # agent
        ConfirmPressed(),  # launch
    )


class TestStartup:
    """Test the startup task set"""

    def test_minimal_startup_tasks(self):
        """Without models or discovery only tickets, updates and animation start"""
        orchestrator = make_orchestrator()
        kinds = [t.kind for t in orchestrator.start()]
        assert kinds == ["load_tickets", "check_updates", "animation"]
        assert orchestrator.tickets_loading

    def test_full_startup_tasks(self):
        """Model registry and workspace discovery join the startup set"""
        orchestrator = make_orchestrator(discoverer=FakeWorkspaceDiscoverer())
        orchestrator.services.models = MagicMock()
        kinds = [t.kind for t in orchestrator.start()]
        assert kinds == [
            "load_tickets", "load_models", "discover_workspaces", "check_updates", "animation",
        ]

    def test_animation_task_does_not_block(self):
        """The animation tick runs on the event loop, not a worker"""
        orchestrator = make_orchestrator()
        animation = [t for t in orchestrator.start() if t.kind == "animation"][0]
        assert animation.blocking is False

    def test_initial_focus_is_tickets(self):
        orchestrator = make_orchestrator()
        assert orchestrator.focus == FocusColumn.TICKETS
        assert orchestrator.view == ViewState.MATRIX

    def test_unknown_message_raises(self):
        """Every message type must have a handler"""

        @dataclass(frozen=True)
        class Bogus(Msg):
            pass

        orchestrator = make_orchestrator()
        with pytest.raises(TypeError):
            orchestrator.dispatch(Bogus())


class TestSelectionFlow:
    """Test the ticket -> harness -> model -> agent -> confirm workflow"""

    def test_ticket_moves_to_harness(self):
        """Choosing a ticket with several harnesses focuses the harness column"""
        orchestrator = loaded_orchestrator()
        orchestrator.dispatch(ConfirmPressed(at=1.0))
        assert orchestrator.selection.ticket.id == "bb-001"
        assert orchestrator.focus == FocusColumn.HARNESS

    def test_full_path_through_every_column(self):
        orchestrator = loaded_orchestrator()
        dispatch_all(orchestrator, ConfirmPressed(), ConfirmPressed())
        assert orchestrator.focus == FocusColumn.MODEL
        orchestrator.dispatch(CursorMoved(1))
        orchestrator.dispatch(ConfirmPressed())
        assert orchestrator.selection.model == "m2"
        assert orchestrator.focus == FocusColumn.AGENT
        orchestrator.dispatch(ConfirmPressed())
        assert orchestrator.selection.agent == "build"
        assert orchestrator.view == ViewState.CONFIRM

    def test_single_model_and_no_agents_skip_to_confirm(self):
        """One model is auto-selected, an empty agent list is disabled"""
        orchestrator = loaded_orchestrator()
        orchestrator.dispatch(ConfirmPressed())
        orchestrator.dispatch(CursorMoved(1))  # claude harness
        orchestrator.dispatch(ConfirmPressed())
        assert orchestrator.view == ViewState.CONFIRM
        assert orchestrator.selection.model == "sonnet"
        assert orchestrator.selection.agent == ""
        assert FocusColumn.AGENT in orchestrator.disabled_columns
        assert FocusColumn.MODEL not in orchestrator.disabled_columns

    def test_solo_harness_is_chosen_automatically(self):
        """With one harness the ticket choice goes straight on"""
        solo = make_harness("solo", models=("x",), agents=("a",))
        orchestrator = loaded_orchestrator(harnesses=[solo])
        orchestrator.dispatch(ConfirmPressed())
        assert orchestrator.selection.harness == solo
        assert orchestrator.selection.model == "x"
        assert orchestrator.selection.agent == "a"
        assert orchestrator.view == ViewState.CONFIRM

    def test_bare_solo_harness_skips_every_column(self):
        """A single harness with no models or agents confirms straight from the ticket"""
        solo = make_harness("solo", models=(), agents=())
        orchestrator = loaded_orchestrator(harnesses=[solo])
        orchestrator.dispatch(ConfirmPressed())
        assert orchestrator.view == ViewState.CONFIRM
        assert orchestrator.selection.harness == solo
        assert orchestrator.selection.model == ""
        assert orchestrator.selection.agent == ""

    def test_second_harness_with_single_options_skips_to_confirm(self):
        """Picking a harness with one model and one agent fills both fields"""
        one = make_harness("one", models=("m",), agents=("a",))
        orchestrator = loaded_orchestrator(harnesses=[make_harness("opencode"), one])
        orchestrator.dispatch(ConfirmPressed())
        assert orchestrator.focus == FocusColumn.HARNESS
        orchestrator.dispatch(CursorMoved(1))
        orchestrator.dispatch(ConfirmPressed())
        assert orchestrator.view == ViewState.CONFIRM
        assert orchestrator.selection.harness == one
        assert orchestrator.selection.model == "m"
        assert orchestrator.selection.agent == "a"

    def test_zero_models_forces_empty_model(self):
        """A harness without models disables the column and clears the field"""
        harness = make_harness("nomodel", models=(), agents=("a", "b"))
        orchestrator = loaded_orchestrator(harnesses=[harness, make_harness("other")])
        orchestrator.selection = Selection(model="stale")
        dispatch_all(orchestrator, ConfirmPressed(), ConfirmPressed())
        assert orchestrator.selection.model == ""
        assert FocusColumn.MODEL in orchestrator.disabled_columns
        assert orchestrator.focus == FocusColumn.AGENT

    def test_defaults_prehighlight_columns(self):
        """Configured defaults put the cursor on the matching entries"""
        orchestrator = loaded_orchestrator(defaults=Defaults(harness="claude", model="m2", agent="plan"))
        assert orchestrator.harnesses.highlighted().name == "claude"
        orchestrator.dispatch(ConfirmPressed())
        orchestrator.dispatch(CursorMoved(-1))
        orchestrator.dispatch(ConfirmPressed())
        assert orchestrator.models.highlighted() == "m2"
        assert orchestrator.agents.highlighted() == "plan"

    def test_changing_harness_recomputes_columns(self):
        """Going back and picking another harness replaces model and agent lists"""
        orchestrator = loaded_orchestrator()
        dispatch_all(orchestrator, ConfirmPressed(), ConfirmPressed())
        assert orchestrator.models.items == ["m1", "m2"]
        orchestrator.dispatch(CancelPressed())
        assert orchestrator.focus == FocusColumn.HARNESS
        dispatch_all(orchestrator, CursorMoved(1), ConfirmPressed())
        assert orchestrator.models.items == ["sonnet"]
        assert orchestrator.selection.harness.name == "claude"

    def test_confirm_flashes_locked_column(self):
        orchestrator = loaded_orchestrator()
        orchestrator.dispatch(ConfirmPressed(at=50.0))
        assert orchestrator.animation.flash_column == FocusColumn.TICKETS
        assert orchestrator.animation.flash_started_at == 50.0

    def test_empty_ticket_list_confirm_does_nothing(self):
        orchestrator = loaded_orchestrator(tickets=[])
        assert orchestrator.tickets.is_empty
        assert orchestrator.dispatch(ConfirmPressed()) == []
        assert orchestrator.selection.ticket is None
        assert orchestrator.focus == FocusColumn.TICKETS


class TestNavigation:
    """Test column movement messages"""

    def test_cancel_skips_disabled_columns(self):
        harness = make_harness("nomodel", models=(), agents=("a", "b"))
        orchestrator = loaded_orchestrator(harnesses=[harness, make_harness("other")])
        dispatch_all(orchestrator, ConfirmPressed(), ConfirmPressed())
        assert orchestrator.focus == FocusColumn.AGENT
        orchestrator.dispatch(CancelPressed())
        assert orchestrator.focus == FocusColumn.HARNESS

    def test_cancel_at_tickets_is_noop(self):
        orchestrator = loaded_orchestrator()
        orchestrator.dispatch(CancelPressed())
        assert orchestrator.focus == FocusColumn.TICKETS

    def test_cancel_from_confirm_returns_to_matrix(self):
        solo = make_harness("solo", models=("x",), agents=("a",))
        orchestrator = loaded_orchestrator(harnesses=[solo])
        orchestrator.dispatch(ConfirmPressed())
        assert orchestrator.view == ViewState.CONFIRM
        orchestrator.dispatch(CancelPressed())
        assert orchestrator.view == ViewState.MATRIX

    def test_retreat_reaches_sidebar(self):
        orchestrator = loaded_orchestrator()
        orchestrator.dispatch(RetreatPressed())
        assert orchestrator.focus == FocusColumn.SIDEBAR

    def test_hidden_sidebar_is_skipped(self):
        orchestrator = loaded_orchestrator()
        orchestrator.dispatch(SidebarToggled())
        orchestrator.dispatch(RetreatPressed())
        assert orchestrator.focus == FocusColumn.TICKETS

    def test_hiding_focused_sidebar_moves_focus(self):
        orchestrator = loaded_orchestrator()
        orchestrator.dispatch(RetreatPressed())
        orchestrator.dispatch(SidebarToggled())
        assert orchestrator.focus == FocusColumn.TICKETS
        assert not orchestrator.sidebar_visible

    def test_tab_wraps_to_sidebar(self):
        orchestrator = loaded_orchestrator()
        for _ in range(4):
            orchestrator.dispatch(TabPressed())
        assert orchestrator.focus == FocusColumn.SIDEBAR
        orchestrator.dispatch(TabPressed())
        assert orchestrator.focus == FocusColumn.TICKETS

    def test_advance_stops_at_last_column(self):
        orchestrator = loaded_orchestrator()
        for _ in range(10):
            orchestrator.dispatch(AdvancePressed())
        assert orchestrator.focus == FocusColumn.AGENT

    def test_cursor_moves_focused_list(self):
        orchestrator = loaded_orchestrator()
        orchestrator.dispatch(CursorMoved(2))
        assert orchestrator.tickets.highlighted().id == "bb-003"
        orchestrator.dispatch(CursorMoved(-10))
        assert orchestrator.tickets.highlighted().id == "bb-001"

    def test_navigation_ignored_in_confirm_view(self):
        solo = make_harness("solo", models=("x",), agents=("a",))
        orchestrator = loaded_orchestrator(harnesses=[solo])
        orchestrator.dispatch(ConfirmPressed())
        orchestrator.dispatch(RetreatPressed())
        assert orchestrator.focus == FocusColumn.TICKETS
        assert orchestrator.view == ViewState.CONFIRM


class TestLaunch:
    """Test launching and the agent registry"""

    def test_successful_launch_registers_agent(self):
        launcher = FakeLauncher()
        orchestrator = loaded_orchestrator(launcher=launcher)
        follow_up = full_selection(orchestrator)
        assert orchestrator.view == ViewState.MATRIX
        agent = orchestrator.registry.get("bb-001")
        assert agent is not None
        assert agent.status == AgentStatus.RUNNING
        assert agent.window_id == "@1"
        assert launcher.launched[0].command == "run bb-001"
        assert [t.kind for t in follow_up] == ["poll_status"]
        assert follow_up[0].delay == orchestrator.services.settings.status_poll_interval

    def test_second_launch_gets_unique_id(self):
        orchestrator = loaded_orchestrator()
        full_selection(orchestrator)
        launch_through(orchestrator, ConfirmPressed(), ConfirmPressed())
        assert "bb-001" in orchestrator.registry
        assert "bb-001-2" in orchestrator.registry

    def test_launcher_error_becomes_warning(self):
        orchestrator = loaded_orchestrator(launcher=FakeLauncher(error="no tmux"))
        follow_up = full_selection(orchestrator)
        assert follow_up == []
        assert len(orchestrator.registry) == 0
        assert any("no tmux" in w for w in orchestrator.warnings)
        assert orchestrator.view == ViewState.MATRIX

    def test_render_error_is_fatal_with_no_agents(self):
        bad = make_harness("bad", command_template="run {{.Nope}}", models=("x",), agents=("a",))
        orchestrator = loaded_orchestrator(harnesses=[bad])
        launch_through(orchestrator, ConfirmPressed(), ConfirmPressed())
        assert orchestrator.view == ViewState.ERROR
        assert "Nope" in orchestrator.error

    def test_render_error_is_warning_with_agents(self):
        orchestrator = loaded_orchestrator()
        full_selection(orchestrator)
        orchestrator.dispatch(
            LaunchCompleted("bb-002", Selection(), "/tmp/demo", render_error="bad template")
        )
        assert orchestrator.view == ViewState.MATRIX
        assert any("bad template" in w for w in orchestrator.warnings)

    def test_capture_error_is_warning(self):
        orchestrator = loaded_orchestrator()
        orchestrator.dispatch(
            LaunchCompleted(
                "bb-001",
                Selection(ticket=make_ticket()),
                "/tmp/demo",
                result=LaunchResult(window_name="bb-001", window_id="@1"),
                capture_error="pipe-pane failed",
            )
        )
        assert "bb-001" in orchestrator.registry
        assert any("pipe-pane failed" in w for w in orchestrator.warnings)

    def test_error_view_ignores_input_but_quits(self):
        orchestrator = loaded_orchestrator()
        orchestrator.dispatch(TicketsFailed(error="bd not found"))
        assert orchestrator.view == ViewState.ERROR
        orchestrator.dispatch(CursorMoved(1))
        orchestrator.dispatch(ConfirmPressed())
        assert orchestrator.tickets.cursor == 0
        orchestrator.dispatch(QuitPressed())
        assert orchestrator.quit_requested


class TestStatusPolling:
    """Test agent status polls and their rescheduling"""

    def _launched(self, **kwargs):
        orchestrator = loaded_orchestrator(**kwargs)
        full_selection(orchestrator)
        return orchestrator

    def test_running_poll_reschedules(self):
        orchestrator = self._launched()
        follow_up = orchestrator.dispatch(AgentStatusPolled("bb-001", WindowStatus.RUNNING))
        assert [t.kind for t in follow_up] == ["poll_status"]

    def test_dead_window_completes_agent(self):
        orchestrator = self._launched()
        follow_up = orchestrator.dispatch(AgentStatusPolled("bb-001", WindowStatus.DEAD))
        assert follow_up == []
        assert orchestrator.registry.get("bb-001").status == AgentStatus.COMPLETED

    def test_repeated_unknown_fails_agent(self):
        orchestrator = self._launched(settings=Settings(unknown_status_threshold=2))
        orchestrator.dispatch(AgentStatusPolled("bb-001", WindowStatus.UNKNOWN))
        assert orchestrator.registry.get("bb-001").is_running
        orchestrator.dispatch(AgentStatusPolled("bb-001", WindowStatus.UNKNOWN))
        assert orchestrator.registry.get("bb-001").status == AgentStatus.FAILED

    def test_late_poll_after_clear_does_not_resurrect(self):
        orchestrator = self._launched()
        orchestrator.dispatch(AgentStatusPolled("bb-001", WindowStatus.DEAD))
        orchestrator.dispatch(RetreatPressed())
        for _ in range(4):
            orchestrator.dispatch(RetreatPressed())
        assert orchestrator.focus == FocusColumn.SIDEBAR
        orchestrator.dispatch(ClearStoppedPressed())
        assert "bb-001" not in orchestrator.registry

        follow_up = orchestrator.dispatch(AgentStatusPolled("bb-001", WindowStatus.RUNNING))
        assert follow_up == []
        assert "bb-001" not in orchestrator.registry

    def test_stopped_agent_stays_stopped(self):
        orchestrator = self._launched()
        orchestrator.dispatch(AgentStatusPolled("bb-001", WindowStatus.DEAD))
        follow_up = orchestrator.dispatch(AgentStatusPolled("bb-001", WindowStatus.RUNNING))
        assert follow_up == []
        assert orchestrator.registry.get("bb-001").status == AgentStatus.COMPLETED


class TestSidebar:
    """Test the project tree and agent clearing"""

    def _with_workspaces(self):
        return loaded_orchestrator(discoverer=FakeWorkspaceDiscoverer())

    def test_first_workspace_becomes_active(self):
        orchestrator = self._with_workspaces()
        assert orchestrator.active_workspace == "/tmp/demo"
        assert orchestrator.tree.current().kind == NodeKind.WORKSPACE

    def test_discovery_error_is_warning(self):
        orchestrator = loaded_orchestrator()
        orchestrator.dispatch(WorkspacesDiscovered(error="not a git repository"))
        assert orchestrator.warnings == ["Workspace discovery failed: not a git repository"]

    def test_launch_attaches_agent_under_workspace(self):
        orchestrator = self._with_workspaces()
        full_selection(orchestrator)
        main = orchestrator.tree.find_by_path("/tmp/demo", NodeKind.WORKSPACE)
        assert [c.name for c in main.children] == ["bb-001"]
        assert main.is_running

    def test_selecting_workspace_sets_active_and_moves_on(self):
        orchestrator = self._with_workspaces()
        orchestrator.dispatch(RetreatPressed())
        orchestrator.dispatch(CursorMoved(1))  # feature-x
        orchestrator.dispatch(ConfirmPressed())
        assert orchestrator.active_workspace == "/tmp/demo-feature-x"
        assert orchestrator.focus == FocusColumn.TICKETS

    def test_clear_one_agent_leaf(self):
        orchestrator = self._with_workspaces()
        full_selection(orchestrator)
        for _ in range(4):
            orchestrator.dispatch(RetreatPressed())
        assert orchestrator.focus == FocusColumn.SIDEBAR
        orchestrator.dispatch(CursorMoved(-10))
        orchestrator.dispatch(CursorMoved(2))  # project, main, agent
        assert orchestrator.tree.current().kind == NodeKind.AGENT

        follow_up = orchestrator.dispatch(ClearAgentPressed())
        assert [t.kind for t in follow_up] == ["stop_captures"]
        assert len(orchestrator.registry) == 0
        assert orchestrator.tree.find("agent-bb-001") is None

    def test_clear_stopped_keeps_running(self):
        orchestrator = self._with_workspaces()
        full_selection(orchestrator)
        launch_through(orchestrator, ConfirmPressed(), ConfirmPressed())
        orchestrator.dispatch(AgentStatusPolled("bb-001", WindowStatus.DEAD))
        for _ in range(4):
            orchestrator.dispatch(RetreatPressed())

        follow_up = orchestrator.dispatch(ClearStoppedPressed())
        stop = [t for t in follow_up if t.kind == "stop_captures"]
        assert len(stop) == 1
        assert isinstance(stop[0].run(), CapturesStopped)
        assert "bb-001" not in orchestrator.registry
        assert "bb-001-2" in orchestrator.registry
        assert orchestrator.tree.find("agent-bb-001-2") is not None

    def test_clear_stopped_needs_sidebar_focus(self):
        orchestrator = self._with_workspaces()
        full_selection(orchestrator)
        orchestrator.dispatch(AgentStatusPolled("bb-001", WindowStatus.DEAD))
        assert orchestrator.dispatch(ClearStoppedPressed()) == []
        assert "bb-001" in orchestrator.registry

    def test_expand_toggle_on_project(self):
        orchestrator = self._with_workspaces()
        orchestrator.dispatch(RetreatPressed())
        orchestrator.dispatch(CursorMoved(-10))
        assert orchestrator.tree.current().kind == NodeKind.PROJECT
        orchestrator.dispatch(ExpandToggled())
        assert len(orchestrator.tree.visible) == 1
        orchestrator.dispatch(ExpandToggled())
        assert len(orchestrator.tree.visible) == 3

    def test_rediscovery_keeps_agents(self):
        orchestrator = self._with_workspaces()
        full_selection(orchestrator)
        roots = build_workspace_tree(FakeWorkspaceDiscoverer().workspaces, "demo", "/tmp/demo")
        orchestrator.dispatch(WorkspacesDiscovered(roots=tuple(roots)))
        main = orchestrator.tree.find_by_path("/tmp/demo", NodeKind.WORKSPACE)
        assert [c.id for c in main.children] == ["agent-bb-001"]


class TestAgentView:
    """Test viewing one agent's output"""

    def _viewing(self):
        orchestrator = loaded_orchestrator(discoverer=FakeWorkspaceDiscoverer())
        full_selection(orchestrator)
        for _ in range(4):
            orchestrator.dispatch(RetreatPressed())
        orchestrator.dispatch(CursorMoved(-10))
        orchestrator.dispatch(CursorMoved(2))
        follow_up = orchestrator.dispatch(ConfirmPressed())
        return orchestrator, follow_up

    def test_confirm_on_agent_opens_view(self):
        orchestrator, follow_up = self._viewing()
        assert orchestrator.viewing_agent_id == "bb-001"
        assert [t.kind for t in follow_up] == ["read_output"]

    def test_output_is_ingested(self):
        orchestrator, follow_up = self._viewing()
        msg = follow_up[0].run()
        assert isinstance(msg, AgentOutputRead)
        orchestrator.dispatch(msg)
        assert "hello" in orchestrator.viewing_agent.output

    def test_poll_while_viewing_reads_output(self):
        orchestrator, _ = self._viewing()
        follow_up = orchestrator.dispatch(AgentStatusPolled("bb-001", WindowStatus.RUNNING))
        assert sorted(t.kind for t in follow_up) == ["poll_status", "read_output"]

    def test_cancel_and_quit_leave_view(self):
        orchestrator, _ = self._viewing()
        orchestrator.dispatch(CancelPressed())
        assert orchestrator.viewing_agent_id is None
        orchestrator.dispatch(ConfirmPressed())
        orchestrator.dispatch(QuitPressed())
        assert orchestrator.viewing_agent_id is None
        assert not orchestrator.quit_requested


class TestTicketUpdates:
    """Test manual refresh, auto refresh and the details modal"""

    def test_reload_keeps_cursor_on_same_ticket(self):
        orchestrator = loaded_orchestrator()
        orchestrator.dispatch(CursorMoved(2))
        tickets = tuple(reversed(orchestrator.tickets.items))
        orchestrator.dispatch(TicketsLoaded(tickets=tickets, loaded_at=5.0))
        assert orchestrator.tickets.highlighted().id == "bb-003"
        assert orchestrator.last_ticket_update == 5.0

    def test_refresh_reloads_on_tickets_column(self):
        orchestrator = loaded_orchestrator()
        follow_up = orchestrator.dispatch(RefreshPressed())
        assert [t.kind for t in follow_up] == ["load_tickets"]
        orchestrator.dispatch(AdvancePressed())
        assert orchestrator.dispatch(RefreshPressed()) == []

    def test_tickets_failed_is_fatal(self):
        orchestrator = loaded_orchestrator(store=FakeTicketStore(error="bd: command not found"))
        assert orchestrator.view == ViewState.ERROR
        assert "bd: command not found" in orchestrator.error

    def test_first_update_check_only_records(self):
        orchestrator = loaded_orchestrator()
        follow_up = orchestrator.dispatch(UpdateCheckCompleted(last_modified=1.0))
        assert [t.kind for t in follow_up] == ["check_updates"]
        assert not orchestrator.refreshed_recently

    def test_newer_store_triggers_auto_reload(self):
        orchestrator = loaded_orchestrator()
        orchestrator.dispatch(UpdateCheckCompleted(last_modified=1.0))
        follow_up = orchestrator.dispatch(UpdateCheckCompleted(last_modified=2.0))
        assert sorted(t.kind for t in follow_up) == ["check_updates", "load_tickets", "refresh_indicator"]
        assert orchestrator.refreshed_recently
        orchestrator.dispatch(RefreshIndicatorExpired())
        assert not orchestrator.refreshed_recently

    def test_unchanged_store_only_reschedules(self):
        orchestrator = loaded_orchestrator()
        orchestrator.dispatch(UpdateCheckCompleted(last_modified=1.0))
        follow_up = orchestrator.dispatch(UpdateCheckCompleted(last_modified=1.0))
        assert [t.kind for t in follow_up] == ["check_updates"]

    def test_info_modal_swallows_input(self):
        orchestrator = loaded_orchestrator()
        follow_up = orchestrator.dispatch(InfoPressed())
        assert orchestrator.modal_open
        assert orchestrator.modal_text.startswith("Loading")
        orchestrator.dispatch(CursorMoved(1))
        assert orchestrator.tickets.cursor == 0

        run_task(orchestrator, follow_up[0])
        assert "Bootstrap Python package" in orchestrator.modal_text

        orchestrator.dispatch(CancelPressed())
        assert not orchestrator.modal_open
        assert orchestrator.focus == FocusColumn.TICKETS

    def test_quit_closes_modal_first(self):
        orchestrator = loaded_orchestrator()
        orchestrator.dispatch(InfoPressed())
        orchestrator.dispatch(QuitPressed())
        assert not orchestrator.modal_open
        assert not orchestrator.quit_requested


class TestMisc:
    def test_warnings_dismissed(self):
        orchestrator = loaded_orchestrator()
        dispatch_all(orchestrator, WarningRaised("a"), WarningRaised("b"))
        assert orchestrator.warnings == ["a", "b"]
        orchestrator.dispatch(WarningsDismissed())
        assert orchestrator.warnings == []

    def test_animation_tick_reschedules(self):
        orchestrator = loaded_orchestrator()
        orchestrator.animation.lock_in(FocusColumn.TICKETS, 100.0)
        follow_up = orchestrator.dispatch(AnimationTicked(now=100.05))
        assert len(follow_up) == 1
        assert follow_up[0].kind == "animation"
        assert follow_up[0].delay == orchestrator.services.settings.animation_interval
        assert 0 < orchestrator.animation.flash_intensity < 1

    def test_quit_sets_flag(self):
        orchestrator = loaded_orchestrator()
        orchestrator.dispatch(QuitPressed())
        assert orchestrator.quit_requested
