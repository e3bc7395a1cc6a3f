"""Linear undo/redo over immutable scene snapshots"""

from collections import deque
from typing import Deque, List, Optional

from .models import Snapshot


class HistoryManager:
    """
    Two stacks of full scene snapshots.

    ``past`` grows at the end, ``future`` at the front. Snapshots are tuples of
    frozen elements, so pushing one never aliases live editor state.
    """

    def __init__(self):
        self._past: List[Snapshot] = []
        self._future: Deque[Snapshot] = deque()

    @property
    def can_undo(self) -> bool:
        return bool(self._past)

    @property
    def can_redo(self) -> bool:
        return bool(self._future)

    def snapshot(self, current: Snapshot):
        """Record the pre-mutation graph; a new branch drops the redo stack."""
        self._past.append(tuple(current))
        self._future.clear()

    def undo(self, current: Snapshot) -> Optional[Snapshot]:
        """Return the graph to restore, or None when there is nothing to undo."""
        if not self._past:
            return None
        previous = self._past.pop()
        self._future.appendleft(tuple(current))
        return previous

    def redo(self, current: Snapshot) -> Optional[Snapshot]:
        if not self._future:
            return None
        following = self._future.popleft()
        self._past.append(tuple(current))
        return following

    def clear(self):
        self._past.clear()
        self._future.clear()

    def __len__(self) -> int:
        return len(self._past)
