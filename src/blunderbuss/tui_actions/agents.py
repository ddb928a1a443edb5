"""
Sidebar and agent action methods for TUI.
"""

from ..messages import ClearAgentPressed, ClearStoppedPressed, ExpandToggled


class AgentActionsMixin:
    """Mixin providing sidebar tree and agent actions for BlunderbussApp."""

    def action_toggle_expand(self) -> None:
        self.reconcile(ExpandToggled())

    def action_clear_agent(self) -> None:
        """Remove the agent under the sidebar cursor."""
        self.reconcile(ClearAgentPressed())

    def action_clear_stopped(self) -> None:
        """Remove every agent that is no longer running."""
        self.reconcile(ClearStoppedPressed())
