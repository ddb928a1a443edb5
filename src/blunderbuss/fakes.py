"""
In-memory collaborators for --demo mode and tests.

Each fake satisfies the matching protocol in ``protocols`` without touching
tmux, git or the beads database.
"""

from datetime import datetime, timedelta
from typing import Dict, List, Optional

from .domain import Harness, LaunchResult, LaunchSpec, Ticket, TicketFilter, WindowStatus, WorkspaceInfo
from .exceptions import CaptureError, DiscoveryError, StoreError
from .store import matches_search


def sample_tickets(now: Optional[datetime] = None) -> List[Ticket]:
    now = now or datetime.now()
    return [
        Ticket("bb-001", "Bootstrap Python package", status="closed", priority=1,
               created_at=now - timedelta(hours=48), updated_at=now - timedelta(hours=24)),
        Ticket("bb-002", "Define core domain types", priority=1,
               created_at=now - timedelta(hours=24), updated_at=now),
        Ticket("bb-003", "Implement ticket store backend", priority=1,
               created_at=now - timedelta(hours=12), updated_at=now),
        Ticket("bb-004", "Build TUI skeleton", priority=1, issue_type="feature",
               created_at=now - timedelta(hours=6), updated_at=now),
        Ticket("bb-005", "Implement tmux launcher", priority=2,
               created_at=now - timedelta(hours=3), updated_at=now),
    ]


class FakeTicketStore:
    """Ticket store over a fixed list. Set ``error`` to make every query fail."""

    def __init__(self, tickets: Optional[List[Ticket]] = None, error: Optional[str] = None):
        self.tickets = list(sample_tickets() if tickets is None else tickets)
        self.error = error
        self.modified_at: Optional[float] = 0.0
        self.list_calls = 0

    def list_tickets(self, filter: TicketFilter) -> List[Ticket]:
        self.list_calls += 1
        if self.error:
            raise StoreError(self.error)
        results = []
        for ticket in self.tickets:
            if filter.status and ticket.status != filter.status:
                continue
            if filter.issue_type and ticket.issue_type != filter.issue_type:
                continue
            if not matches_search(ticket, filter.search):
                continue
            results.append(ticket)
            if filter.limit and len(results) >= filter.limit:
                break
        return results

    def last_modified(self) -> Optional[float]:
        return self.modified_at

    def show(self, ticket_id: str) -> str:
        for ticket in self.tickets:
            if ticket.id == ticket_id:
                return (
                    f"{ticket.id}: {ticket.title}\n"
                    f"Status: {ticket.status}  Priority: P{ticket.priority}  Type: {ticket.issue_type}\n\n"
                    f"{ticket.description}"
                )
        raise StoreError(f"no issue found: {ticket_id}")


class FakeLauncher:
    """Records launch specs and hands out window ids ``@1``, ``@2``..."""

    def __init__(self, error: Optional[str] = None):
        self.error = error
        self.launched: List[LaunchSpec] = []

    def launch(self, spec: LaunchSpec) -> LaunchResult:
        if self.error:
            return LaunchResult(window_name=spec.window_name, error=self.error)
        self.launched.append(spec)
        n = len(self.launched)
        return LaunchResult(window_name=spec.window_name, window_id=f"@{n}", pane_id=f"%{n}")


class FakeStatusChecker:
    """Returns a configurable status per window id (RUNNING by default)."""

    def __init__(self, statuses: Optional[Dict[str, WindowStatus]] = None):
        self.statuses: Dict[str, WindowStatus] = dict(statuses or {})
        self.checked: List[str] = []

    def check(self, window_id: str) -> WindowStatus:
        self.checked.append(window_id)
        return self.statuses.get(window_id, WindowStatus.RUNNING)


class FakeOutputCapture:
    def __init__(self, window_id: str, content: bytes = b"", fail_start: bool = False):
        self.window_id = window_id
        self.content = content
        self.fail_start = fail_start
        self.started = False
        self.stopped = False

    def start(self) -> None:
        if self.fail_start:
            raise CaptureError(f"cannot capture {self.window_id}")
        self.started = True

    def read(self) -> bytes:
        return self.content

    def stop(self) -> None:
        self.stopped = True


class FakeWorkspaceDiscoverer:
    def __init__(
        self,
        workspaces: Optional[List[WorkspaceInfo]] = None,
        error: Optional[str] = None,
        project_name: str = "demo",
        repo_root: str = "/tmp/demo",
    ):
        if workspaces is None:
            workspaces = [
                WorkspaceInfo(name="main", path=repo_root, branch="main", is_main=True),
                WorkspaceInfo(name="feature-x", path=f"{repo_root}-feature-x", branch="feature-x", is_dirty=True),
            ]
        self.workspaces = list(workspaces)
        self.error = error
        self.project_name = project_name
        self.repo_root = repo_root

    def discover(self) -> List[WorkspaceInfo]:
        if self.error:
            raise DiscoveryError(self.error)
        return list(self.workspaces)


def demo_harnesses() -> List[Harness]:
    """Harnesses used by --demo when no config file is available."""
    return [
        Harness(
            name="echo",
            command_template="echo '{{.Prompt}}'",
            prompt_template="Work on {{.TicketID}}: {{.TicketTitle}} using {{.Model}} ({{.Agent}})",
            models=("demo/small", "demo/large"),
            agents=("build", "plan"),
        ),
        Harness(
            name="shell",
            command_template="bash -c 'echo {{.TicketID}}; sleep 30'",
        ),
    ]
