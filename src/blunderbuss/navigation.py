"""
Pure focus-movement rules for the selection matrix.

All functions are pure - they take the current column and the set of
disabled columns and return the new column. A disabled column is never
returned; when no enabled column exists in the requested direction the
current column comes back unchanged.
"""

from typing import AbstractSet

from .domain import SELECTION_COLUMNS, FocusColumn

FIRST_COLUMN = FocusColumn.SIDEBAR
LAST_COLUMN = FocusColumn.AGENT


def next_enabled(current: FocusColumn, disabled: AbstractSet[FocusColumn]) -> FocusColumn:
    """The nearest enabled column to the right, or ``current``."""
    for value in range(current + 1, LAST_COLUMN + 1):
        column = FocusColumn(value)
        if column not in disabled:
            return column
    return current


def prev_enabled(
    current: FocusColumn,
    disabled: AbstractSet[FocusColumn],
    floor: FocusColumn = FIRST_COLUMN,
) -> FocusColumn:
    """The nearest enabled column to the left (not past ``floor``), or ``current``."""
    for value in range(current - 1, floor - 1, -1):
        column = FocusColumn(value)
        if column not in disabled:
            return column
    return current


def first_selection_column(disabled: AbstractSet[FocusColumn]) -> FocusColumn:
    for column in SELECTION_COLUMNS:
        if column not in disabled:
            return column
    return FocusColumn.TICKETS


def tab_target(current: FocusColumn, disabled: AbstractSet[FocusColumn]) -> FocusColumn:
    """Cycle forward; past the last enabled column wrap to the sidebar.

    A disabled (hidden) sidebar is skipped on wrap, landing on the first
    enabled selection column instead.
    """
    target = next_enabled(current, disabled)
    if target != current:
        return target
    if FocusColumn.SIDEBAR not in disabled:
        return FocusColumn.SIDEBAR
    return first_selection_column(disabled)

