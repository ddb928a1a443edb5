"""
Registry of launched agents.

Entries start RUNNING and move to COMPLETED or FAILED. Clearing removes an
entry outright; anything arriving later for a removed id is dropped.
"""

import logging
from datetime import datetime
from typing import Dict, Iterable, Iterator, List, Optional

from .domain import AgentStatus, RunningAgent, WindowStatus

logger = logging.getLogger(__name__)


class AgentRegistry:
    """Keyed collection of RunningAgent entries in launch order."""

    def __init__(self) -> None:
        self._agents: Dict[str, RunningAgent] = {}

    def __len__(self) -> int:
        return len(self._agents)

    def __contains__(self, agent_id: str) -> bool:
        return agent_id in self._agents

    def __iter__(self) -> Iterator[RunningAgent]:
        return iter(list(self._agents.values()))

    def get(self, agent_id: str) -> Optional[RunningAgent]:
        return self._agents.get(agent_id)

    def register(
        self,
        agent_id: str,
        name: str,
        ticket_id: str,
        workspace_path: str,
        window_id: str,
        capture: Optional[object] = None,
        started_at: Optional[datetime] = None,
    ) -> RunningAgent:
        if agent_id in self._agents:
            raise ValueError(f"agent {agent_id} is already registered")
        agent = RunningAgent(
            id=agent_id,
            name=name,
            ticket_id=ticket_id,
            workspace_path=workspace_path,
            window_id=window_id,
            started_at=started_at or datetime.now(),
            capture=capture,
        )
        self._agents[agent_id] = agent
        logger.info("Registered agent %s (window %s)", agent_id, window_id)
        return agent

    def set_status(self, agent_id: str, status: AgentStatus) -> bool:
        """Move an entry to ``status``. Missing entries are ignored."""
        agent = self._agents.get(agent_id)
        if agent is None:
            return False
        if agent.status != status:
            logger.info("Agent %s: %s -> %s", agent_id, agent.status.value, status.value)
        agent.status = status
        return True

    def observe(self, agent_id: str, window: WindowStatus, unknown_threshold: int = 3) -> Optional[RunningAgent]:
        """Apply one status poll result.

        A dead window completes the agent; ``unknown_threshold`` unknown
        results in a row fail it. Entries that already stopped keep their
        status. Returns None when the agent is no longer registered.
        """
        agent = self._agents.get(agent_id)
        if agent is None:
            return None
        agent.last_window_status = window
        if not agent.is_running:
            return agent

        if window == WindowStatus.DEAD:
            self.set_status(agent_id, AgentStatus.COMPLETED)
        elif window == WindowStatus.UNKNOWN:
            agent.unknown_polls += 1
            if unknown_threshold > 0 and agent.unknown_polls >= unknown_threshold:
                self.set_status(agent_id, AgentStatus.FAILED)
        else:
            agent.unknown_polls = 0
        return agent

    def ingest_output(self, agent_id: str, output: str) -> bool:
        agent = self._agents.get(agent_id)
        if agent is None:
            return False
        agent.output = output
        return True

    def remove(self, agent_id: str) -> Optional[RunningAgent]:
        agent = self._agents.pop(agent_id, None)
        if agent is not None:
            logger.info("Cleared agent %s", agent_id)
        return agent

    def remove_stopped(self) -> List[RunningAgent]:
        """Remove every entry that is no longer running."""
        stopped = [a for a in self._agents.values() if not a.is_running]
        for agent in stopped:
            del self._agents[agent.id]
        if stopped:
            logger.info("Cleared %d stopped agents", len(stopped))
        return stopped

    def running_ids(self) -> List[str]:
        return [a.id for a in self._agents.values() if a.is_running]

    def unique_id(self, base: str, reserved: Iterable[str] = ()) -> str:
        """``base``, or ``base-2``, ``base-3``... whichever is free.

        ``reserved`` holds ids of launches that have not completed yet.
        """
        taken = set(self._agents) | set(reserved)
        if base not in taken:
            return base
        n = 2
        while f"{base}-{n}" in taken:
            n += 1
        return f"{base}-{n}"
