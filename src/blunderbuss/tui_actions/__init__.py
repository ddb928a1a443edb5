"""
TUI Action Mixins for Blunderbuss.

Each action turns a key press into an orchestrator message. These are mixed
into BlunderbussApp via multiple inheritance.
"""

from .navigation import NavigationActionsMixin
from .agents import AgentActionsMixin
from .view import ViewActionsMixin

__all__ = [
    "NavigationActionsMixin",
    "AgentActionsMixin",
    "ViewActionsMixin",
]
