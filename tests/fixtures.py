"""
Test fixtures and factories for blunderbuss unit tests.

Factory functions build domain objects and a fully wired Orchestrator
over the in-memory fakes, so tests only spell out what they care about.
"""

import sys
from pathlib import Path
from typing import List, Optional, Sequence

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from blunderbuss.config import Defaults, Settings
from blunderbuss.domain import Harness, Ticket
from blunderbuss.fakes import (
    FakeLauncher,
    FakeOutputCapture,
    FakeStatusChecker,
    FakeTicketStore,
    FakeWorkspaceDiscoverer,
)
from blunderbuss.messages import Msg
from blunderbuss.orchestrator import Orchestrator, Services
from blunderbuss.render import TemplateRenderer
from blunderbuss.tasks import Task


def make_ticket(id: str = "bb-001", title: str = "Test ticket", **kwargs) -> Ticket:
    return Ticket(id=id, title=title, **kwargs)


def make_harness(
    name: str = "opencode",
    command_template: str = "run {{.TicketID}}",
    models: Sequence[str] = ("m1", "m2"),
    agents: Sequence[str] = ("build", "plan"),
    **kwargs,
) -> Harness:
    return Harness(
        name=name,
        command_template=command_template,
        models=tuple(models),
        agents=tuple(agents),
        **kwargs,
    )


def make_services(
    harnesses: Optional[List[Harness]] = None,
    tickets: Optional[List[Ticket]] = None,
    store: Optional[FakeTicketStore] = None,
    launcher: Optional[FakeLauncher] = None,
    status_checker: Optional[FakeStatusChecker] = None,
    capture_content: bytes = b"hello\n",
    with_capture: bool = True,
    discoverer: Optional[FakeWorkspaceDiscoverer] = None,
    settings: Optional[Settings] = None,
    defaults: Optional[Defaults] = None,
    renderer=None,
) -> Services:
    """Services over fakes. Two harnesses with two models/agents by default."""
    if harnesses is None:
        harnesses = [make_harness("opencode"), make_harness("claude", models=("sonnet",), agents=())]

    def capture_factory(window_id: str) -> FakeOutputCapture:
        return FakeOutputCapture(window_id, content=capture_content)

    return Services(
        store=store or FakeTicketStore(tickets),
        harnesses=harnesses,
        renderer=renderer or TemplateRenderer(),
        launcher=launcher or FakeLauncher(),
        status_checker=status_checker or FakeStatusChecker(),
        capture_factory=capture_factory if with_capture else None,
        discoverer=discoverer,
        settings=settings or Settings(),
        defaults=defaults or Defaults(),
        default_workspace="/tmp/demo",
        clock=lambda: 100.0,
    )


def make_orchestrator(**kwargs) -> Orchestrator:
    return Orchestrator(make_services(**kwargs))


def run_task(orchestrator: Orchestrator, task: Task) -> List[Task]:
    """Run one task inline and dispatch its completion."""
    return orchestrator.dispatch(task.run())


def run_until_idle(orchestrator: Orchestrator, tasks: List[Task], kinds: Sequence[str] = ()) -> List[Task]:
    """Run tasks (and the tasks they spawn) inline.

    Only tasks whose kind is in ``kinds`` are run, or every task without a
    delay when ``kinds`` is empty. The rest are returned unrun.
    """
    pending = list(tasks)
    skipped: List[Task] = []
    while pending:
        task = pending.pop(0)
        wanted = task.kind in kinds if kinds else task.delay == 0 and task.blocking
        if not wanted:
            skipped.append(task)
            continue
        pending.extend(orchestrator.dispatch(task.run()))
    return skipped


def loaded_orchestrator(**kwargs) -> Orchestrator:
    """An orchestrator whose ticket list has been loaded."""
    orchestrator = make_orchestrator(**kwargs)
    run_until_idle(orchestrator, orchestrator.start(), kinds=("load_tickets", "discover_workspaces"))
    return orchestrator


def dispatch_all(orchestrator: Orchestrator, *msgs: Msg) -> List[Task]:
    tasks: List[Task] = []
    for msg in msgs:
        tasks.extend(orchestrator.dispatch(msg))
    return tasks
