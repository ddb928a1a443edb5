"""
TUI helper functions for status display and formatting.

Pure functions only, so they can be tested without a running app.
"""

from datetime import datetime
from typing import Optional, Tuple

from .domain import AgentStatus, FocusColumn

STATUS_SYMBOLS = {
    AgentStatus.RUNNING: ("●", "green"),
    AgentStatus.COMPLETED: ("✓", "cyan"),
    AgentStatus.FAILED: ("✗", "red"),
}

COLUMN_TITLES = {
    FocusColumn.SIDEBAR: "Projects",
    FocusColumn.TICKETS: "Tickets",
    FocusColumn.HARNESS: "Harness",
    FocusColumn.MODEL: "Model",
    FocusColumn.AGENT: "Agent",
}


def format_duration(seconds: float) -> str:
    """Format duration in seconds to human readable (s/m/h/d).

    Shows one decimal place for all units except seconds.
    Examples: 45s, 6.3m, 2.5h, 1.2d
    """
    if seconds < 60:
        return f"{int(seconds)}s"
    elif seconds < 3600:
        return f"{seconds / 60:.1f}m"
    elif seconds < 86400:
        return f"{seconds / 3600:.1f}h"
    else:
        return f"{seconds / 86400:.1f}d"


def format_ago(then: Optional[float], now: float) -> str:
    """Format a wall-clock timestamp as "30s ago", or "never"."""
    if then is None:
        return "never"
    return f"{format_duration(max(0.0, now - then))} ago"


def format_uptime(started_at: datetime, now: Optional[datetime] = None) -> str:
    if now is None:
        now = datetime.now()
    return format_duration(max(0.0, (now - started_at).total_seconds()))


def get_status_symbol(status: AgentStatus) -> Tuple[str, str]:
    """Get (symbol, color) tuple for an agent status."""
    return STATUS_SYMBOLS.get(status, ("?", "dim"))


def truncate_name(name: str, max_len: int = 24) -> str:
    """Truncate ``name`` to ``max_len`` characters, marking the cut with an ellipsis."""
    if len(name) <= max_len:
        return name
    if max_len <= 1:
        return name[:max_len]
    return name[: max_len - 1] + "…"


def priority_style(priority: int) -> str:
    if priority <= 0:
        return "bold red"
    if priority == 1:
        return "yellow"
    if priority >= 3:
        return "dim"
    return ""
