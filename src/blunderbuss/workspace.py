"""
Git worktree discovery and the sidebar tree built from it.
"""

import logging
import subprocess
from pathlib import Path
from typing import List, Optional, Tuple

from .domain import NodeKind, SidebarNode, WorkspaceInfo
from .exceptions import DiscoveryError

logger = logging.getLogger(__name__)

MAIN_BRANCH_CANDIDATES = ("main", "master", "develop")


def find_repo_root(start: Path) -> Optional[Path]:
    """Walk up from ``start`` to the first directory containing ``.git``."""
    path = Path(start).resolve()
    for candidate in (path, *path.parents):
        if (candidate / ".git").exists():
            return candidate
    return None


def _git(args: List[str], cwd: str, timeout: int = 10) -> subprocess.CompletedProcess:
    return subprocess.run(
        ["git", "-C", cwd, *args],
        capture_output=True,
        text=True,
        timeout=timeout,
    )


def parse_worktree_porcelain(output: str) -> List[Tuple[str, str, str]]:
    """Parse ``git worktree list --porcelain`` into (path, commit, branch) tuples."""
    entries: List[Tuple[str, str, str]] = []
    path = commit = branch = None
    for line in output.splitlines():
        if line.startswith("worktree "):
            if path is not None:
                entries.append((path, commit or "", branch or ""))
            path, commit, branch = line[len("worktree "):], "", ""
        elif path is None:
            continue
        elif line.startswith("HEAD "):
            commit = line[len("HEAD "):]
        elif line.startswith("branch "):
            ref = line[len("branch "):]
            branch = ref[len("refs/heads/"):] if ref.startswith("refs/heads/") else ref
    if path is not None:
        entries.append((path, commit or "", branch or ""))
    return entries


class GitWorkspaceDiscoverer:
    """Lists the worktrees of one repository."""

    def __init__(self, repo_root: Path):
        self.repo_root = Path(repo_root)

    @property
    def project_name(self) -> str:
        return self.repo_root.name

    def discover(self) -> List[WorkspaceInfo]:
        try:
            result = _git(["worktree", "list", "--porcelain"], str(self.repo_root))
        except (subprocess.SubprocessError, OSError) as e:
            raise DiscoveryError(f"failed to list worktrees: {e}") from e
        if result.returncode == 128:
            raise DiscoveryError(f"not a git repository: {self.repo_root}")
        if result.returncode != 0:
            raise DiscoveryError(f"failed to list worktrees: {result.stderr.strip()}")

        main_branch = self._detect_main_branch()
        workspaces = []
        for path, commit, branch in parse_worktree_porcelain(result.stdout):
            is_main = branch in (main_branch, "main", "master") and bool(branch)
            workspaces.append(
                WorkspaceInfo(
                    name="main" if is_main else Path(path).name,
                    path=path,
                    branch=branch,
                    commit=commit,
                    is_main=is_main,
                    is_dirty=self._is_dirty(path),
                )
            )
        logger.debug("Discovered %d worktrees under %s", len(workspaces), self.repo_root)
        return workspaces

    def _detect_main_branch(self) -> str:
        for candidate in MAIN_BRANCH_CANDIDATES:
            try:
                result = _git(
                    ["rev-parse", "--verify", f"refs/heads/{candidate}"], str(self.repo_root)
                )
            except (subprocess.SubprocessError, OSError):
                return ""
            if result.returncode == 0:
                return candidate
        return ""

    def _is_dirty(self, path: str) -> bool:
        try:
            result = _git(["status", "--porcelain"], path)
        except (subprocess.SubprocessError, OSError):
            return False
        return result.returncode == 0 and bool(result.stdout.strip())


def build_workspace_tree(
    workspaces: List[WorkspaceInfo], project_name: str, project_path: str
) -> List[SidebarNode]:
    """One expanded project node with a child per workspace."""
    if not workspaces:
        return []
    project = SidebarNode(
        kind=NodeKind.PROJECT,
        id="project",
        name=project_name,
        path=project_path,
        expanded=True,
    )
    for i, info in enumerate(workspaces):
        project.add_child(
            SidebarNode(
                kind=NodeKind.WORKSPACE,
                id=f"workspace-{i}",
                name=info.name,
                path=info.path,
                payload=info,
            )
        )
    return [project]
