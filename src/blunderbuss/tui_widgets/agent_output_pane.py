"""
Agent output pane for TUI.

Shows the captured output of the agent being viewed. Uses
ScrollableContainer for native mouse wheel / trackpad scrolling.
"""

from typing import List

from rich.text import Text
from textual.containers import ScrollableContainer
from textual.css.query import NoMatches
from textual.widgets import Static

from ..domain import RunningAgent
from ..tui_helpers import format_uptime, get_status_symbol


class AgentOutputPane(ScrollableContainer):
    """Captured output of one agent.

    Wraps a child Static whose height grows to fit all content lines.
    Auto-scrolls to bottom unless the user has scrolled up to review.
    """

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.content_lines: List[str] = []
        self.agent_name: str = ""
        self.agent_status = None
        self.uptime: str = ""
        self._auto_scroll = True
        self._user_scrolled = False

    def compose(self):
        yield Static(id="agent-output-content")

    def _build_content(self) -> Text:
        content = Text()
        pane_width = self.size.width if self.size.width > 0 else 80

        header = f"─── {self.agent_name} " if self.agent_name else "─── Agent "
        content.append(header, style="bold cyan")
        if self.agent_status is not None:
            symbol, color = get_status_symbol(self.agent_status)
            status_text = f"{symbol} {self.agent_status.value} {self.uptime} "
            content.append(status_text, style=color)
            header += status_text
        content.append("─" * max(0, pane_width - len(header)), style="dim")
        content.append("\n")

        if not self.content_lines:
            content.append("(no output captured)", style="dim italic")
        else:
            for line in self.content_lines:
                content.append(line)
                content.append("\n")
        content.append("\nenter/esc/q: back to selection", style="dim")
        return content

    def update_from_agent(self, agent: RunningAgent) -> None:
        self.agent_name = agent.name
        self.agent_status = agent.status
        self.uptime = format_uptime(agent.started_at)
        self.content_lines = agent.output.split("\n") if agent.output else []

        saved_scroll = self.scroll_offset.y
        was_auto = self._auto_scroll

        try:
            content_widget = self.query_one("#agent-output-content", Static)
        except NoMatches:
            return
        content_widget.update(self._build_content())

        if was_auto:
            self.call_after_refresh(lambda: self.scroll_end(animate=False))
        else:
            self.call_after_refresh(lambda: self.scroll_to(y=saved_scroll, animate=False))

    def on_mouse_scroll_up(self, event) -> None:
        """User scrolled up with mouse wheel: stop following the tail."""
        self._auto_scroll = False
        self._user_scrolled = True

    def on_mouse_scroll_down(self, event) -> None:
        self._user_scrolled = True
        self.call_after_refresh(self._check_at_bottom)

    def _check_at_bottom(self) -> None:
        """Re-enable auto-scroll if user has scrolled back to bottom."""
        if self.max_scroll_y <= 0 or self.scroll_offset.y >= self.max_scroll_y - 1:
            self._auto_scroll = True
            self._user_scrolled = False
