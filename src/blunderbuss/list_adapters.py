"""
Selectable list views over tickets, harnesses, models and agents.

Adapters are read-only snapshots: the orchestrator builds a fresh adapter
whenever the underlying data changes and only moves the cursor in place.
"""

from typing import Callable, Generic, List, Optional, Sequence, TypeVar

from .domain import Harness, Ticket

T = TypeVar("T")


class SelectableList(Generic[T]):
    """A list with a clamped cursor and a "currently highlighted" item."""

    def __init__(
        self,
        items: Sequence[T] = (),
        label: Callable[[T], str] = str,
        empty_message: str = "(nothing to select)",
    ):
        self._items: List[T] = list(items)
        self._label = label
        self.empty_message = empty_message
        self.cursor = 0

    @property
    def items(self) -> List[T]:
        return list(self._items)

    @property
    def count(self) -> int:
        return len(self._items)

    @property
    def is_empty(self) -> bool:
        return not self._items

    def highlighted(self) -> Optional[T]:
        if not self._items:
            return None
        return self._items[self.cursor]

    def move(self, delta: int) -> None:
        """Move the cursor, clamping at both ends."""
        if not self._items:
            self.cursor = 0
            return
        self.cursor = max(0, min(len(self._items) - 1, self.cursor + delta))

    def highlight(self, label: str) -> bool:
        """Put the cursor on the first item with this label, if any."""
        for i, item in enumerate(self._items):
            if self._label(item) == label:
                self.cursor = i
                return True
        return False

    def label_of(self, item: T) -> str:
        return self._label(item)


def ticket_list(tickets: Sequence[Ticket]) -> SelectableList[Ticket]:
    return SelectableList(
        tickets,
        label=lambda t: t.id,
        empty_message="No tickets found. Press r to refresh.",
    )


def harness_list(harnesses: Sequence[Harness]) -> SelectableList[Harness]:
    return SelectableList(
        harnesses,
        label=lambda h: h.name,
        empty_message="No harnesses configured.",
    )


def option_list(options: Sequence[str], kind: str) -> SelectableList[str]:
    """A plain string list, used for the model and agent columns."""
    return SelectableList(options, empty_message=f"(no {kind} for this harness)")
