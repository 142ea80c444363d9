# -------------------- REQUEST RELEVANCE TRACKING --------------------
import itertools
import threading
from typing import Dict, Optional


class RequestTracker:
    """
    Hands out a ticket per outstanding request, keyed by what the request
    loads ("entries", "entry:42", ...). A completion is applied only if its
    ticket is still the newest for that key and the tracker is still open;
    anything else is a stale result and must be discarded.
    """

    def __init__(self):
        self._counter = itertools.count(1)
        self._latest: Dict[str, int] = {}
        self._closed = False
        self._lock = threading.Lock()

    def begin(self, key: str) -> int:
        with self._lock:
            ticket = next(self._counter)
            self._latest[key] = ticket
            return ticket

    def is_current(self, key: str, ticket: Optional[int]) -> bool:
        with self._lock:
            return not self._closed and ticket is not None and self._latest.get(key) == ticket

    def close(self) -> None:
        with self._lock:
            self._closed = True
            self._latest.clear()

    @property
    def closed(self) -> bool:
        return self._closed
