"""
Project -> workspace -> agent tree shown in the sidebar.

The tree keeps a flattened, depth-annotated list of the visible nodes. That
list is rebuilt after every structural change and is never edited in place;
the cursor indexes into it.
"""

from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional, Sequence

from .domain import AgentRef, AgentStatus, NodeKind, SidebarNode


@dataclass(frozen=True)
class VisibleNode:
    node: SidebarNode
    depth: int


def agent_node_id(agent_id: str) -> str:
    return f"agent-{agent_id}"


class ProjectTree:
    """Sidebar tree with a cursor over its visible nodes."""

    def __init__(self, roots: Sequence[SidebarNode] = ()):
        self._roots: List[SidebarNode] = list(roots)
        self._visible: List[VisibleNode] = []
        self.cursor = 0
        self._rebuild()

    # -- structure -------------------------------------------------------

    @property
    def roots(self) -> List[SidebarNode]:
        return list(self._roots)

    @property
    def visible(self) -> List[VisibleNode]:
        """The flattened render list (a copy)."""
        return list(self._visible)

    def set_roots(self, roots: Sequence[SidebarNode]) -> None:
        """Replace the whole tree, keeping the cursor on the same node if it survives."""
        current = self.current()
        self._roots = list(roots)
        self._rebuild(keep=current.id if current else None)

    def walk(self) -> Iterator[SidebarNode]:
        """Depth-first iteration over every node, visible or not."""
        stack = list(reversed(self._roots))
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def find(self, node_id: str) -> Optional[SidebarNode]:
        for node in self.walk():
            if node.id == node_id:
                return node
        return None

    def find_by_path(self, path: str, kind: Optional[NodeKind] = None) -> Optional[SidebarNode]:
        for node in self.walk():
            if node.path == path and (kind is None or node.kind == kind):
                return node
        return None

    def workspaces(self) -> List[SidebarNode]:
        return [n for n in self.walk() if n.kind == NodeKind.WORKSPACE]

    def _rebuild(self, keep: Optional[str] = None) -> None:
        visible: List[VisibleNode] = []

        def visit(node: SidebarNode, depth: int) -> None:
            visible.append(VisibleNode(node, depth))
            if node.expanded:
                for child in node.children:
                    visit(child, depth + 1)

        for root in self._roots:
            visit(root, 0)
        self._visible = visible

        if keep is not None:
            for i, entry in enumerate(self._visible):
                if entry.node.id == keep:
                    self.cursor = i
                    return
        self._clamp()

    def _clamp(self) -> None:
        if not self._visible:
            self.cursor = 0
        else:
            self.cursor = max(0, min(self.cursor, len(self._visible) - 1))

    # -- cursor ----------------------------------------------------------

    def current(self) -> Optional[SidebarNode]:
        if not self._visible:
            return None
        return self._visible[self.cursor].node

    def move(self, delta: int) -> None:
        """Move the cursor over the visible nodes; no wraparound."""
        self.cursor += delta
        self._clamp()

    def select_path(self, path: str, kind: Optional[NodeKind] = None) -> bool:
        """Put the cursor on the visible node with this path (and kind)."""
        for i, entry in enumerate(self._visible):
            if entry.node.path == path and (kind is None or entry.node.kind == kind):
                self.cursor = i
                return True
        return False

    # -- expansion -------------------------------------------------------

    def toggle(self, node: Optional[SidebarNode] = None) -> bool:
        """Flip expansion of ``node`` (default: the cursor node).

        Leaves are left alone. Returns True if anything changed.
        """
        node = node or self.current()
        if node is None or not node.has_children:
            return False
        current = self.current()
        node.expanded = not node.expanded
        self._rebuild(keep=current.id if current else None)
        return True

    # -- agents ----------------------------------------------------------

    def attach_agent(self, workspace_path: str, ref: AgentRef, name: str) -> bool:
        """Hang an agent leaf under the workspace with this path.

        Returns False, leaving the tree untouched, when no such workspace
        exists.
        """
        workspace = self.find_by_path(workspace_path, NodeKind.WORKSPACE)
        if workspace is None:
            return False
        if self.find(agent_node_id(ref.agent_id)) is not None:
            return True
        current = self.current()
        workspace.add_child(
            SidebarNode(
                kind=NodeKind.AGENT,
                id=agent_node_id(ref.agent_id),
                name=name,
                path=f"agent:{ref.agent_id}",
                is_running=ref.status == AgentStatus.RUNNING,
                payload=ref,
            )
        )
        workspace.expanded = True
        self._refresh_running(workspace)
        self._rebuild(keep=current.id if current else None)
        return True

    def detach_agents(self, agent_ids: Iterable[str]) -> int:
        """Remove the leaves for these agents with a single rebuild."""
        doomed = {agent_node_id(a) for a in agent_ids}
        if not doomed:
            return 0
        current = self.current()
        removed = 0
        for node in list(self.walk()):
            if node.kind == NodeKind.AGENT:
                continue
            kept = [c for c in node.children if c.id not in doomed]
            removed += len(node.children) - len(kept)
            if len(kept) != len(node.children):
                node.children = kept
                if node.kind == NodeKind.WORKSPACE:
                    self._refresh_running(node)
        if removed:
            keep = current.id if current and current.id not in doomed else None
            self._rebuild(keep=keep)
        return removed

    def update_agent_status(self, agent_id: str, status: AgentStatus) -> bool:
        node_id = agent_node_id(agent_id)
        for parent in self.walk():
            for child in parent.children:
                if child.id != node_id:
                    continue
                ref = child.payload
                if isinstance(ref, AgentRef):
                    child.payload = AgentRef(ref.agent_id, ref.ticket_id, status)
                child.is_running = status == AgentStatus.RUNNING
                self._refresh_running(parent)
                return True
        return False

    @staticmethod
    def _refresh_running(workspace: SidebarNode) -> None:
        if workspace.kind == NodeKind.WORKSPACE:
            workspace.is_running = any(
                c.kind == NodeKind.AGENT and c.is_running for c in workspace.children
            )
