"""
Protocol definitions for external collaborators.

The orchestrator and its background tasks only ever talk to these
interfaces, so tests and --demo mode can swap tmux, git and the ticket
store for in-memory fakes.
"""

from pathlib import Path
from typing import Callable, List, Optional, Protocol, Union, runtime_checkable

from .domain import (
    LaunchResult,
    LaunchSpec,
    Selection,
    Ticket,
    TicketFilter,
    WindowStatus,
    WorkspaceInfo,
)


@runtime_checkable
class TicketStore(Protocol):
    """Source of tickets."""

    def list_tickets(self, filter: TicketFilter) -> List[Ticket]:
        """Return tickets matching ``filter``.

        Raises:
            StoreError: if the backend cannot be queried
        """
        ...

    def last_modified(self) -> Optional[float]:
        """Cheap freshness signal (a timestamp), or None if unknown."""
        ...

    def show(self, ticket_id: str) -> str:
        """Human-readable details for one ticket."""
        ...


@runtime_checkable
class ModelResolver(Protocol):
    """Expands provider wildcards into concrete model ids."""

    def models_for_provider(self, provider_id: str) -> List[str]:
        ...

    def active_models(self) -> List[str]:
        """Models of every provider whose credentials are present."""
        ...


@runtime_checkable
class ModelSource(ModelResolver, Protocol):
    """A model catalogue loaded once in the background."""

    @property
    def provider_count(self) -> int:
        ...

    def load(self) -> None:
        """Raises DiscoveryError if no catalogue can be obtained."""
        ...


@runtime_checkable
class Renderer(Protocol):
    def render(self, selection: Selection, workspace_path: str, window_name: str) -> LaunchSpec:
        """Render prompt, then command (which may use the prompt).

        Raises:
            RenderError: if a template cannot be rendered
        """
        ...


@runtime_checkable
class Launcher(Protocol):
    def launch(self, spec: LaunchSpec) -> LaunchResult:
        """Start the window. Failures come back in ``LaunchResult.error``."""
        ...


@runtime_checkable
class StatusChecker(Protocol):
    def check(self, window_id: str) -> WindowStatus:
        """RUNNING, DEAD, or UNKNOWN when tmux could not be asked."""
        ...


@runtime_checkable
class OutputCapture(Protocol):
    """Streams a window's output somewhere it can be read back."""

    def start(self) -> None:
        """Raises CaptureError if capture cannot be set up."""
        ...

    def read(self) -> bytes:
        ...

    def stop(self) -> None:
        ...


CaptureFactory = Callable[[str], OutputCapture]


@runtime_checkable
class WorkspaceDiscoverer(Protocol):
    @property
    def project_name(self) -> str:
        ...

    @property
    def repo_root(self) -> Union[str, Path]:
        ...

    def discover(self) -> List[WorkspaceInfo]:
        """Raises DiscoveryError if the workspaces cannot be listed."""
        ...
