# history.py
# Lookup history store - Serial Scout

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HistoryEntry:
    serial_number: str
    timestamp: datetime


class HistoryStore:
    """
    In-process list of analysed serial numbers, oldest first.
    Observers register with subscribe() and get the newest-first list after each change.
    """

    def __init__(self, entries=None):
        self._lock = threading.Lock()
        self._items = list(entries or [])
        self._subscribers = []

    def __len__(self):
        with self._lock:
            return len(self._items)

    @property
    def items(self):
        with self._lock:
            return list(self._items)

    def newest_first(self):
        with self._lock:
            return list(reversed(self._items))

    def add(self, serial_number, timestamp=None):
        entry = HistoryEntry(serial_number, timestamp or datetime.now(timezone.utc))
        with self._lock:
            self._items.append(entry)
        self._notify()
        return entry

    def delete_all(self, serial_number):
        """Remove every entry for the serial; returns the number removed."""
        with self._lock:
            kept = [e for e in self._items if e.serial_number != serial_number]
            removed = len(self._items) - len(kept)
            self._items = kept
        if removed:
            self._notify()
        return removed

    def subscribe(self, callback):
        """Register a change callback. Returns a function that unsubscribes it."""
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe():
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def _notify(self):
        with self._lock:
            snapshot = list(reversed(self._items))
            subscribers = list(self._subscribers)
        for callback in subscribers:
            try:
                callback(snapshot)
            except Exception as ex:
                logger.warning({"event": "history_subscriber_error", "err": str(ex)})
