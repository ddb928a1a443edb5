"""
Core data types shared by the orchestrator, the collaborators and the TUI.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, IntEnum
from typing import Dict, List, Optional, Tuple, Union


@dataclass(frozen=True)
class Ticket:
    """A beads issue as shown in the tickets column."""

    id: str
    title: str
    description: str = ""
    status: str = "open"
    priority: int = 2
    issue_type: str = "task"
    assignee: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class Harness:
    """A named launch configuration.

    ``models`` may contain ``provider:<id>`` and ``discover:active`` tokens
    which are expanded through the model registry when the harness is
    selected.
    """

    name: str
    command_template: str
    prompt_template: str = ""
    models: Tuple[str, ...] = ()
    agents: Tuple[str, ...] = ()
    env: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class Selection:
    """The user's choice of ticket, harness, model and agent.

    Built step by step with ``dataclasses.replace``; the instance handed to
    the launch task is never modified afterwards.
    """

    ticket: Optional[Ticket] = None
    harness: Optional[Harness] = None
    model: str = ""
    agent: str = ""


@dataclass(frozen=True)
class LaunchSpec:
    """A fully rendered selection, ready for the launcher."""

    selection: Selection
    command: str
    prompt: str
    window_name: str
    work_dir: str = ""
    env: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class LaunchResult:
    """Outcome of one launch attempt. ``error`` is None on success."""

    window_name: str
    window_id: str = ""
    pane_id: str = ""
    error: Optional[str] = None


class AgentStatus(str, Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class WindowStatus(str, Enum):
    """What the status checker saw for a tmux window."""

    RUNNING = "running"
    DEAD = "dead"
    UNKNOWN = "unknown"


@dataclass
class RunningAgent:
    """A launched session tracked by the agent registry."""

    id: str
    name: str
    ticket_id: str
    workspace_path: str
    window_id: str
    started_at: datetime
    status: AgentStatus = AgentStatus.RUNNING
    capture: Optional[object] = None
    output: str = ""
    last_window_status: WindowStatus = WindowStatus.RUNNING
    unknown_polls: int = 0

    @property
    def is_running(self) -> bool:
        return self.status == AgentStatus.RUNNING


@dataclass(frozen=True)
class WorkspaceInfo:
    """A git worktree the user can launch against."""

    name: str
    path: str
    branch: str = ""
    commit: str = ""
    is_main: bool = False
    is_dirty: bool = False


@dataclass(frozen=True)
class AgentRef:
    """Identifying fields of a running agent, carried by its tree node."""

    agent_id: str
    ticket_id: str
    status: AgentStatus = AgentStatus.RUNNING


class NodeKind(str, Enum):
    PROJECT = "project"
    WORKSPACE = "workspace"
    AGENT = "agent"


@dataclass
class SidebarNode:
    """One node of the project tree.

    Only project and workspace nodes carry children; agent nodes are leaves.
    """

    kind: NodeKind
    id: str
    name: str
    path: str
    expanded: bool = False
    is_running: bool = False
    children: List["SidebarNode"] = field(default_factory=list)
    payload: Optional[Union[WorkspaceInfo, AgentRef]] = None

    @property
    def has_children(self) -> bool:
        return bool(self.children)

    def add_child(self, child: "SidebarNode") -> None:
        if self.kind == NodeKind.AGENT:
            raise ValueError(f"agent node {self.id} cannot have children")
        self.children.append(child)


class FocusColumn(IntEnum):
    """Which pane has keyboard focus, in left-to-right order."""

    SIDEBAR = 0
    TICKETS = 1
    HARNESS = 2
    MODEL = 3
    AGENT = 4


SELECTION_COLUMNS = (
    FocusColumn.TICKETS,
    FocusColumn.HARNESS,
    FocusColumn.MODEL,
    FocusColumn.AGENT,
)


class ViewState(str, Enum):
    MATRIX = "matrix"
    CONFIRM = "confirm"
    ERROR = "error"


@dataclass(frozen=True)
class TicketFilter:
    """Which tickets the store should return. Empty fields match anything."""

    status: str = ""
    issue_type: str = ""
    search: str = ""
    limit: int = 0
