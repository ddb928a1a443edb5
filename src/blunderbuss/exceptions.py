"""
Exception hierarchy for Blunderbuss.

Collaborators raise these; background tasks turn them into completion
messages so nothing escapes into the TUI event loop.
"""


class BlunderbussError(Exception):
    """Base class for all Blunderbuss errors."""


class ConfigError(BlunderbussError):
    """Configuration file is missing, unreadable or invalid."""


class StoreError(BlunderbussError):
    """Ticket store could not be queried."""


class RenderError(BlunderbussError):
    """A command or prompt template could not be rendered."""


class LaunchError(BlunderbussError):
    """tmux refused to create the window."""


class CaptureError(BlunderbussError):
    """Output capture could not be started or stopped."""


class DiscoveryError(BlunderbussError):
    """Model registry or workspace discovery failed."""


class TmuxNotFoundError(BlunderbussError):
    """Not running inside a tmux session."""
