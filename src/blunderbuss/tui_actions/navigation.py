"""
Navigation action methods for TUI.

Handles cursor movement, moving between columns and confirming choices.
"""

import time

from ..messages import (
    AdvancePressed,
    CancelPressed,
    ConfirmPressed,
    CursorMoved,
    RetreatPressed,
    TabPressed,
)


class NavigationActionsMixin:
    """Mixin providing navigation actions for BlunderbussApp."""

    def action_cursor_down(self) -> None:
        self.reconcile(CursorMoved(1))

    def action_cursor_up(self) -> None:
        self.reconcile(CursorMoved(-1))

    def action_confirm(self) -> None:
        """Choose the highlighted item, or launch from the confirm view."""
        self.reconcile(ConfirmPressed(at=time.monotonic()))

    def action_cancel(self) -> None:
        """Close help if it is open, otherwise step back."""
        if self._close_help():
            return
        self.reconcile(CancelPressed())

    def action_focus_left(self) -> None:
        self.reconcile(RetreatPressed())

    def action_focus_right(self) -> None:
        self.reconcile(AdvancePressed())

    def action_focus_tab(self) -> None:
        self.reconcile(TabPressed())
