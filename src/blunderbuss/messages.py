"""
Message catalogue for the orchestrator.

Every key press and every background completion is one of these frozen
dataclasses. ``Orchestrator.dispatch`` runs exactly one handler per message.
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple

from .domain import LaunchResult, Selection, SidebarNode, Ticket, WindowStatus


@dataclass(frozen=True)
class Msg:
    """Base class for orchestrator messages."""


# -- user input --------------------------------------------------------------


@dataclass(frozen=True)
class ConfirmPressed(Msg):
    at: float = 0.0


@dataclass(frozen=True)
class CancelPressed(Msg):
    pass


@dataclass(frozen=True)
class AdvancePressed(Msg):
    pass


@dataclass(frozen=True)
class RetreatPressed(Msg):
    pass


@dataclass(frozen=True)
class TabPressed(Msg):
    pass


@dataclass(frozen=True)
class CursorMoved(Msg):
    delta: int


@dataclass(frozen=True)
class ExpandToggled(Msg):
    pass


@dataclass(frozen=True)
class ClearAgentPressed(Msg):
    pass


@dataclass(frozen=True)
class ClearStoppedPressed(Msg):
    pass


@dataclass(frozen=True)
class RefreshPressed(Msg):
    pass


@dataclass(frozen=True)
class SidebarToggled(Msg):
    pass


@dataclass(frozen=True)
class InfoPressed(Msg):
    pass


@dataclass(frozen=True)
class WarningsDismissed(Msg):
    pass


@dataclass(frozen=True)
class QuitPressed(Msg):
    pass


# -- background completions --------------------------------------------------


@dataclass(frozen=True)
class TicketsLoaded(Msg):
    tickets: Tuple[Ticket, ...]
    loaded_at: float
    auto: bool = False


@dataclass(frozen=True)
class TicketsFailed(Msg):
    error: str


@dataclass(frozen=True)
class ModelsLoaded(Msg):
    provider_count: int


@dataclass(frozen=True)
class WarningRaised(Msg):
    text: str


@dataclass(frozen=True)
class WorkspacesDiscovered(Msg):
    roots: Tuple[SidebarNode, ...] = ()
    error: Optional[str] = None


@dataclass(frozen=True)
class LaunchCompleted(Msg):
    """Outcome of a render + launch task.

    ``render_error`` is set when no launch was attempted. Otherwise
    ``result`` carries the launcher's answer and, on success, the capture
    handle (or the reason it could not be started).
    """

    agent_id: str
    selection: Selection
    workspace_path: str
    result: Optional[LaunchResult] = None
    render_error: Optional[str] = None
    capture: Optional[object] = None
    capture_error: Optional[str] = None


@dataclass(frozen=True)
class AgentStatusPolled(Msg):
    agent_id: str
    status: WindowStatus


@dataclass(frozen=True)
class AgentOutputRead(Msg):
    agent_id: str
    content: str


@dataclass(frozen=True)
class CapturesStopped(Msg):
    errors: Tuple[str, ...] = ()


@dataclass(frozen=True)
class UpdateCheckCompleted(Msg):
    last_modified: Optional[float]


@dataclass(frozen=True)
class RefreshIndicatorExpired(Msg):
    pass


@dataclass(frozen=True)
class TicketDetailsLoaded(Msg):
    ticket_id: str
    text: str


@dataclass(frozen=True)
class AnimationTicked(Msg):
    now: float


INPUT_MESSAGES: List[type] = [
    ConfirmPressed,
    CancelPressed,
    AdvancePressed,
    RetreatPressed,
    TabPressed,
    CursorMoved,
    ExpandToggled,
    ClearAgentPressed,
    ClearStoppedPressed,
    RefreshPressed,
    SidebarToggled,
    InfoPressed,
    WarningsDismissed,
    QuitPressed,
]
