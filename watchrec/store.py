import logging
import threading
from contextlib import contextmanager
from types import MappingProxyType
from typing import Dict, FrozenSet, Iterator, Mapping, Tuple

from .errors import StoreBusyError
from .models import WatchStats

logger = logging.getLogger(__name__)

HistoryView = Mapping[str, FrozenSet[str]]
PopularityView = Mapping[str, int]


class WatchStore:
    """Process-wide watch history and popularity table.

    Both maps sit behind a single lock. Every mutation and every read used
    for scoring runs while holding it, so a recommendation scan never sees
    a watch-set updated without its popularity count (or the reverse).
    """

    def __init__(self, lock_timeout: float = -1):
        # watch-sets are frozen and replaced on insert, so views handed out
        # by snapshot() cannot be mutated
        self._history: Dict[str, FrozenSet[str]] = {}
        self._popularity: Dict[str, int] = {}
        self._events = 0
        self._lock = threading.Lock()
        self._lock_timeout = lock_timeout if lock_timeout >= 0 else -1

    @contextmanager
    def _locked(self) -> Iterator[None]:
        if not self._lock.acquire(timeout=self._lock_timeout):
            raise StoreBusyError(f"watch store lock not acquired within {self._lock_timeout}s")
        try:
            yield
        finally:
            self._lock.release()

    def record_watch(self, user_id: str, video_id: str) -> None:
        """Add ``video_id`` to the user's watch-set and count one view.

        The set insert is idempotent; the view count is not, so watching the
        same video twice counts twice toward its popularity.
        """
        with self._locked():
            watched = self._history.get(user_id, frozenset())
            if video_id not in watched:
                self._history[user_id] = watched | {video_id}
            self._popularity[video_id] = self._popularity.get(video_id, 0) + 1
            self._events += 1
        logger.debug("Updated watch history for user: %s, video: %s", user_id, video_id)

    @contextmanager
    def snapshot(self) -> Iterator[Tuple[HistoryView, PopularityView]]:
        """Hold the store lock and yield read-only views of both maps.

        Watch-sets in the history view are frozensets. The views are only valid
        inside the ``with`` block.
        """
        with self._locked():
            yield MappingProxyType(self._history), MappingProxyType(self._popularity)

    def popularity(self, video_id: str) -> int:
        with self._locked():
            return self._popularity.get(video_id, 0)

    def history(self, user_id: str) -> FrozenSet[str]:
        with self._locked():
            return self._history.get(user_id, frozenset())

    def stats(self) -> WatchStats:
        with self._locked():
            return WatchStats(
                users=len(self._history),
                videos=len(self._popularity),
                watch_events=self._events,
            )
