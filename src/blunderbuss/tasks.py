"""
Background task catalogue.

Each factory captures an immutable snapshot of its inputs and returns a
Task whose ``run`` produces exactly one completion message. Tasks never
see orchestrator state; polls keep going only because the handler of
their completion schedules the next one.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional, Sequence, Tuple

from rich.text import Text

from .domain import LaunchResult, Selection, TicketFilter, WindowStatus
from .exceptions import BlunderbussError, CaptureError, DiscoveryError, RenderError, StoreError
from .messages import (
    AgentOutputRead,
    AgentStatusPolled,
    AnimationTicked,
    CapturesStopped,
    LaunchCompleted,
    ModelsLoaded,
    Msg,
    RefreshIndicatorExpired,
    TicketDetailsLoaded,
    TicketsFailed,
    TicketsLoaded,
    UpdateCheckCompleted,
    WarningRaised,
    WorkspacesDiscovered,
)
from .protocols import (
    CaptureFactory,
    Launcher,
    ModelSource,
    OutputCapture,
    Renderer,
    StatusChecker,
    TicketStore,
    WorkspaceDiscoverer,
)
from .workspace import build_workspace_tree

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Task:
    """One unit of background work.

    ``blocking`` tasks run on a worker thread; the rest run on the event
    loop. ``delay`` postpones the start.
    """

    kind: str
    run: Callable[[], Msg]
    delay: float = 0.0
    blocking: bool = True


def load_tickets(store: TicketStore, filter: TicketFilter, auto: bool = False,
                 clock: Callable[[], float] = time.time) -> Task:
    def run() -> Msg:
        try:
            tickets = store.list_tickets(filter)
        except StoreError as e:
            logger.error("Loading tickets failed: %s", e)
            return TicketsFailed(error=str(e))
        return TicketsLoaded(tickets=tuple(tickets), loaded_at=clock(), auto=auto)

    return Task("load_tickets", run)


def load_models(registry: ModelSource) -> Task:
    def run() -> Msg:
        try:
            registry.load()
        except DiscoveryError as e:
            logger.warning("Model registry unavailable: %s", e)
            return WarningRaised(f"Model registry unavailable: {e}")
        return ModelsLoaded(provider_count=registry.provider_count)

    return Task("load_models", run)


def discover_workspaces(discoverer: WorkspaceDiscoverer) -> Task:
    project_name = discoverer.project_name
    project_path = str(discoverer.repo_root)

    def run() -> Msg:
        try:
            workspaces = discoverer.discover()
        except DiscoveryError as e:
            logger.warning("Workspace discovery failed: %s", e)
            return WorkspacesDiscovered(error=str(e))
        roots = build_workspace_tree(workspaces, project_name, project_path)
        return WorkspacesDiscovered(roots=tuple(roots))

    return Task("discover_workspaces", run)


def render_and_launch(
    agent_id: str,
    selection: Selection,
    workspace_path: str,
    renderer: Renderer,
    launcher: Launcher,
    capture_factory: Optional[CaptureFactory],
) -> Task:
    """Render, launch, then start output capture on success.

    Always produces one LaunchCompleted, whatever fails along the way.
    """

    def run() -> Msg:
        try:
            spec = renderer.render(selection, workspace_path, agent_id)
        except RenderError as e:
            logger.error("Rendering %s failed: %s", agent_id, e)
            return LaunchCompleted(agent_id, selection, workspace_path, render_error=str(e))

        try:
            result = launcher.launch(spec)
        except Exception as e:
            logger.exception("Launcher raised for %s", agent_id)
            result = LaunchResult(window_name=spec.window_name, error=f"launcher error: {e}")
        if result.error or capture_factory is None:
            return LaunchCompleted(agent_id, selection, workspace_path, result=result)

        capture = capture_factory(result.window_id)
        try:
            capture.start()
        except (CaptureError, OSError) as e:
            logger.warning("Output capture for %s not started: %s", agent_id, e)
            return LaunchCompleted(
                agent_id, selection, workspace_path, result=result, capture_error=str(e)
            )
        return LaunchCompleted(agent_id, selection, workspace_path, result=result, capture=capture)

    return Task("launch", run)


def poll_status(agent_id: str, window_id: str, checker: StatusChecker, delay: float = 0.0) -> Task:
    def run() -> Msg:
        try:
            status = checker.check(window_id)
        except BlunderbussError as e:
            logger.debug("Status poll for %s failed: %s", agent_id, e)
            status = WindowStatus.UNKNOWN
        return AgentStatusPolled(agent_id=agent_id, status=status)

    return Task("poll_status", run, delay=delay)


def decode_output(raw: bytes, tail_lines: int = 0) -> str:
    """Captured bytes to plain text: newlines normalised, escape codes dropped."""
    text = raw.decode("utf-8", errors="replace")
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    lines = text.split("\n")
    if tail_lines > 0:
        lines = lines[-tail_lines:]
    return Text.from_ansi("\n".join(lines)).plain


def read_output(agent_id: str, capture: OutputCapture, tail_lines: int = 0) -> Task:
    def run() -> Msg:
        return AgentOutputRead(agent_id=agent_id, content=decode_output(capture.read(), tail_lines))

    return Task("read_output", run)


def stop_captures(captures: Sequence[Tuple[str, OutputCapture]]) -> Task:
    snapshot = tuple(captures)

    def run() -> Msg:
        errors = []
        for agent_id, capture in snapshot:
            try:
                capture.stop()
            except CaptureError as e:
                logger.warning("Stopping capture for %s failed: %s", agent_id, e)
                errors.append(f"{agent_id}: {e}")
        return CapturesStopped(errors=tuple(errors))

    return Task("stop_captures", run)


def check_updates(store: TicketStore, delay: float) -> Task:
    def run() -> Msg:
        return UpdateCheckCompleted(last_modified=store.last_modified())

    return Task("check_updates", run, delay=delay)


def expire_refresh_indicator(delay: float) -> Task:
    return Task("refresh_indicator", RefreshIndicatorExpired, delay=delay, blocking=False)


def load_ticket_details(store: TicketStore, ticket_id: str) -> Task:
    def run() -> Msg:
        try:
            text = store.show(ticket_id)
        except StoreError as e:
            text = f"Error loading {ticket_id}: {e}"
        return TicketDetailsLoaded(ticket_id=ticket_id, text=text)

    return Task("ticket_details", run)


def animation_tick(delay: float, clock: Callable[[], float] = time.monotonic) -> Task:
    def run() -> Msg:
        return AnimationTicked(now=clock())

    return Task("animation", run, delay=delay, blocking=False)
