"""
View action methods for TUI.

Handles overlays, the sidebar toggle, ticket reloads and quitting.
"""

from textual.css.query import NoMatches

from ..messages import (
    InfoPressed,
    QuitPressed,
    RefreshPressed,
    SidebarToggled,
    WarningsDismissed,
)


class ViewActionsMixin:
    """Mixin providing view/display actions for BlunderbussApp."""

    def action_toggle_help(self) -> None:
        """Toggle help overlay visibility."""
        from ..tui_widgets import HelpOverlay
        try:
            help_overlay = self.query_one("#help-overlay", HelpOverlay)
        except NoMatches:
            return
        if help_overlay.has_class("visible"):
            help_overlay.remove_class("visible")
        else:
            help_overlay.add_class("visible")

    def _close_help(self) -> bool:
        from ..tui_widgets import HelpOverlay
        try:
            help_overlay = self.query_one("#help-overlay", HelpOverlay)
        except NoMatches:
            return False
        if not help_overlay.has_class("visible"):
            return False
        help_overlay.remove_class("visible")
        return True

    def action_toggle_sidebar(self) -> None:
        self.reconcile(SidebarToggled())

    def action_refresh_tickets(self) -> None:
        self.reconcile(RefreshPressed())

    def action_ticket_info(self) -> None:
        self.reconcile(InfoPressed())

    def action_dismiss_warnings(self) -> None:
        self.reconcile(WarningsDismissed())

    def action_request_quit(self) -> None:
        """Leave the agent view, or quit the app."""
        self.reconcile(QuitPressed())
