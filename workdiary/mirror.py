"""
Local Mirror: in-memory projection of the diary entries the active view shows.

The mirror does no validation of its own. The Synchronizer and the Debounced
Writer are its only writers; anything else only reads ``snapshot()`` or
subscribes to change notifications.
"""
import logging
from dataclasses import dataclass
from datetime import date
from typing import Callable, List, Optional, Sequence, Tuple

from workdiary.models import DiaryEntry

logger = logging.getLogger(__name__)

Listener = Callable[["LocalMirror"], None]


@dataclass(frozen=True)
class FeedView:
    """Which entries the mirror projects: one author's ("my entries") or the team feed."""

    user_id: Optional[str] = None
    day: Optional[date] = None

    def matches(self, entry: DiaryEntry) -> bool:
        if self.user_id is not None and entry.user.id != self.user_id:
            return False
        if self.day is not None and entry.date != self.day:
            return False
        return True


class LocalMirror:
    def __init__(self, view: Optional[FeedView] = None):
        self.view = view or FeedView()
        self.current_page = 1
        self.total_pages = 1
        self.loading = False
        self._entries: List[DiaryEntry] = []
        self._listeners: List[Listener] = []

    def snapshot(self) -> Tuple[DiaryEntry, ...]:
        return tuple(self._entries)

    def get(self, entry_id: str) -> Optional[DiaryEntry]:
        for entry in self._entries:
            if entry.id == entry_id:
                return entry
        return None

    def __len__(self) -> int:
        return len(self._entries)

    def replace(self, entry: DiaryEntry) -> bool:
        """Swap in a new copy of an entry already held. Returns False if it is not held."""
        for index, current in enumerate(self._entries):
            if current.id == entry.id:
                self._entries[index] = entry
                self._notify()
                return True
        return False

    def upsert(self, entry: DiaryEntry):
        """Replace the entry, or put it at the front when it is new."""
        if not self.replace(entry):
            self._entries.insert(0, entry)
            self._notify()

    def replace_all(self, entries: Sequence[DiaryEntry], total_pages: int = 1, current_page: int = 1):
        self._entries = list(entries)
        self.total_pages = total_pages
        self.current_page = current_page
        self._notify()

    def clear(self):
        """Drop everything, e.g. when the user navigates away from the view."""
        self._entries = []
        self.current_page = 1
        self.total_pages = 1
        self._notify()

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener; returns a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self):
        for listener in list(self._listeners):
            listener(self)
