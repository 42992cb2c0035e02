"""
Bulk Selection Controller
Tracks which queue rows / pending articles the editor has ticked

In-memory and per-panel. The controller never prunes itself; the panel
calls retain() after every successful refresh so the selection only ever
references rows that are still visible.
"""
from typing import Iterable, List, Set

from newsdesk.core.logging_config import get_logger

logger = get_logger(__name__)


class SelectionController:
    def __init__(self):
        self._selected: Set[str] = set()

    def toggle(self, item_id: str) -> bool:
        """Flip one id; returns True if it is now selected"""
        item_id = str(item_id)
        if item_id in self._selected:
            self._selected.discard(item_id)
            return False
        self._selected.add(item_id)
        return True

    def select_all(self, item_ids: Iterable[str]) -> None:
        self._selected.update(str(i) for i in item_ids)

    def toggle_all(self, item_ids: Iterable[str]) -> bool:
        """
        Select-all checkbox: clear when every visible id is already
        selected, otherwise select them all. Returns True if selected.
        """
        ids = {str(i) for i in item_ids}
        if ids and ids.issubset(self._selected):
            self.clear()
            return False
        self._selected.update(ids)
        return bool(ids)

    def clear(self) -> None:
        self._selected.clear()

    def is_selected(self, item_id: str) -> bool:
        return str(item_id) in self._selected

    def selected(self) -> List[str]:
        return sorted(self._selected)

    @property
    def count(self) -> int:
        return len(self._selected)

    def retain(self, visible_ids: Iterable[str]) -> List[str]:
        """Intersect with the currently visible ids; returns the dropped ids"""
        visible = {str(i) for i in visible_ids}
        dropped = self._selected - visible
        if dropped:
            self._selected &= visible
            logger.debug(f"Pruned {len(dropped)} vanished ids from selection")
        return sorted(dropped)
