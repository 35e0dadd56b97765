"""
Pagination Cursor Set - one resume slot per strategy of the current session.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from clinisearch.storage.base import QueryPage
from clinisearch.storage.cursor import Cursor


@dataclass
class CursorSlot:
    cursor: Optional[Cursor] = None
    exhausted: bool = False

    @property
    def fresh(self) -> bool:
        return self.cursor is None and not self.exhausted

    @property
    def live(self) -> bool:
        return self.cursor is not None


class PaginationCursorSet:
    """
    Tracks where each strategy of a search session should resume.

    A slot starts fresh, holds a cursor while its strategy has more pages, and
    is marked exhausted once the strategy reports no more data. Exhausted
    slots are never handed out again: querying them with no cursor would
    restart the strategy from its first page.
    """

    def __init__(self) -> None:
        self._slots: Dict[str, CursorSlot] = {}

    def reset(self, strategy_names: Iterable[str]) -> None:
        self._slots = {name: CursorSlot() for name in strategy_names}

    def clear(self) -> None:
        self._slots = {}

    def record(self, strategy_name: str, page: QueryPage) -> None:
        slot = self._slots[strategy_name]
        if page.has_more and page.next_cursor is not None:
            slot.cursor = page.next_cursor
            slot.exhausted = False
        else:
            slot.cursor = None
            slot.exhausted = True

    def cursor(self, strategy_name: str) -> Optional[Cursor]:
        return self._slots[strategy_name].cursor

    def live(self) -> List[str]:
        """Strategies holding a resume cursor, in slot order."""
        return [name for name, slot in self._slots.items() if slot.live]

    def is_exhausted(self, strategy_name: str) -> bool:
        return self._slots[strategy_name].exhausted

    @property
    def names(self) -> List[str]:
        return list(self._slots)

    @property
    def has_more(self) -> bool:
        return any(slot.live for slot in self._slots.values())
