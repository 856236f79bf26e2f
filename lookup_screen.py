# lookup_screen.py
# Lookup screen model: manual entry + history, as typed rows - Serial Scout

from dataclasses import dataclass, field
from typing import List, Optional, Union

from decoder import AnalysisRecord, DecodeError, decode, is_valid, normalize_serial
from history import HistoryEntry
from serial_format import DEFAULT_FORMAT

MANUAL_ENTRY_TITLE = "Manual Entry"
HISTORY_TITLE = "History"
EMPTY_HISTORY_FOOTER = "No previous analyses."
ANALYZE_TITLE = "Analyze"


@dataclass(frozen=True)
class Alert:
    title: str
    message: str


@dataclass(frozen=True)
class ManualEntryRow:
    text: str = ""
    kind: str = "manual_entry"


@dataclass(frozen=True)
class ActionRow:
    title: str
    enabled: bool = True
    kind: str = "action"


@dataclass(frozen=True)
class HistoryRow:
    entry: HistoryEntry
    index: int
    kind: str = "history"

    @property
    def serial_number(self):
        return self.entry.serial_number


Row = Union[ManualEntryRow, ActionRow, HistoryRow]


@dataclass(frozen=True)
class Section:
    title: str
    rows: List[Row] = field(default_factory=list)
    footer: Optional[str] = None


def alert_for(error, serial_format=DEFAULT_FORMAT):
    """Translate a DecodeError into user-facing alert text."""
    if error is DecodeError.INVALID_FORMAT:
        return Alert(
            "Enter a Serial Number",
            f"Please enter a valid {serial_format.length}-digit serial number in order to start analysis.",
        )
    if error is DecodeError.UNKNOWN_FACILITY:
        return Alert("Unknown Factory", "This serial number was issued by a factory that is not recognized.")
    if error is DecodeError.UNKNOWN_DATE_CODE:
        return Alert("Unknown Date", "The manufacture date in this serial number could not be read.")
    if error is DecodeError.UNKNOWN_FORMAT_VERSION:
        return Alert("Unsupported Format", f"The '{serial_format.name}' serial format table is not supported.")
    return Alert("Analysis Failed", "This serial number could not be analyzed.")


class LookupScreen:
    """Manual entry section plus a history section fed by a HistoryStore subscription."""

    def __init__(self, history_store, serial_format=DEFAULT_FORMAT):
        self.store = history_store
        self.serial_format = serial_format
        self.history = history_store.newest_first()
        self._unsubscribe = history_store.subscribe(self.reload_history)

    def reload_history(self, _entries=None):
        # snapshots can arrive out of order; the store is the source of truth
        self.history = self.store.newest_first()

    def close(self):
        self._unsubscribe()

    # -------------------------------
    # Sections / rows
    # -------------------------------
    def sections(self, entry_text=""):
        entry_text = entry_text or ""
        candidate = normalize_serial(entry_text, self.serial_format)
        manual = Section(
            MANUAL_ENTRY_TITLE,
            [
                ManualEntryRow(entry_text),
                ActionRow(ANALYZE_TITLE, enabled=is_valid(candidate, self.serial_format)),
            ],
        )
        rows = [HistoryRow(entry, i) for i, entry in enumerate(self.history)]
        history = Section(HISTORY_TITLE, rows, None if rows else EMPTY_HISTORY_FOOTER)
        return [manual, history]

    # -------------------------------
    # Actions
    # -------------------------------
    def analyze(self, serial_number):
        """Decode a serial, recording it in history on success."""
        result = decode(serial_number, self.serial_format)
        if isinstance(result, DecodeError):
            return alert_for(result, self.serial_format)
        self.store.add(result.serial_number)
        return result

    def analyze_manual_entry(self, text) -> Union[AnalysisRecord, Alert]:
        candidate = normalize_serial(text, self.serial_format)
        if not is_valid(candidate, self.serial_format):
            return alert_for(DecodeError.INVALID_FORMAT, self.serial_format)
        return self.analyze(candidate)

    def _history_entry(self, index):
        if not 0 <= index < len(self.history):
            raise IndexError(f"No history row at {index}")
        return self.history[index]

    def select_history_row(self, index) -> Union[AnalysisRecord, Alert]:
        result = decode(self._history_entry(index).serial_number, self.serial_format)
        if isinstance(result, DecodeError):
            return alert_for(result, self.serial_format)
        return result

    def preview_history_row(self, index) -> Optional[AnalysisRecord]:
        result = decode(self._history_entry(index).serial_number, self.serial_format)
        return None if isinstance(result, DecodeError) else result

    def delete_history_row(self, index):
        return self.store.delete_all(self._history_entry(index).serial_number)

    def find_history_row(self, serial_number) -> Optional[int]:
        for i, entry in enumerate(self.history):
            if entry.serial_number == serial_number:
                return i
        return None
