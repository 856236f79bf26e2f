import pytest

from decoder import AnalysisRecord, DecodeError
from lookup_screen import (
    EMPTY_HISTORY_FOOTER,
    ActionRow,
    Alert,
    HistoryRow,
    LookupScreen,
    ManualEntryRow,
    alert_for,
)

from conftest import KNOWN_SERIAL


@pytest.fixture
def screen(history, serial_format):
    return LookupScreen(history, serial_format)


class TestSections:
    def test_empty_screen(self, screen):
        manual, history = screen.sections()
        assert manual.title == "Manual Entry"
        assert manual.rows == [ManualEntryRow(""), ActionRow("Analyze", enabled=False)]
        assert history.title == "History"
        assert history.rows == []
        assert history.footer == EMPTY_HISTORY_FOOTER

    def test_action_enabled_for_valid_entry(self, screen):
        manual, _ = screen.sections(" c02n412adhjq ")
        assert manual.rows[0].text == " c02n412adhjq "
        assert manual.rows[1].enabled is True

    def test_history_rows_newest_first(self, screen, history):
        history.add("AAA")
        history.add("BBB")
        _, section = screen.sections()
        assert all(isinstance(row, HistoryRow) for row in section.rows)
        assert [row.serial_number for row in section.rows] == ["BBB", "AAA"]
        assert [row.index for row in section.rows] == [0, 1]
        assert section.footer is None


class TestManualEntry:
    def test_invalid_entry_alert(self, screen, history):
        result = screen.analyze_manual_entry("12345")
        assert result == Alert(
            "Enter a Serial Number",
            "Please enter a valid 12-digit serial number in order to start analysis.",
        )
        assert len(history) == 0

    def test_valid_entry_is_recorded(self, screen, history):
        result = screen.analyze_manual_entry("c02n412adhjq")
        assert isinstance(result, AnalysisRecord)
        assert result.serial_number == KNOWN_SERIAL
        assert [e.serial_number for e in history.items] == [KNOWN_SERIAL]
        assert screen.history[0].serial_number == KNOWN_SERIAL

    def test_unknown_facility_alert_not_recorded(self, screen, history):
        result = screen.analyze_manual_entry("123456789012")
        assert result == alert_for(DecodeError.UNKNOWN_FACILITY)
        assert len(history) == 0


class TestHistoryRows:
    def test_select_does_not_record_again(self, screen, history):
        history.add(KNOWN_SERIAL)
        record = screen.select_history_row(0)
        assert isinstance(record, AnalysisRecord)
        assert len(history) == 1

    def test_select_undecodable_row(self, screen, history):
        history.add("123456789012")
        assert isinstance(screen.select_history_row(0), Alert)

    def test_preview(self, screen, history):
        history.add("123456789012")
        history.add(KNOWN_SERIAL)
        assert screen.preview_history_row(0).serial_number == KNOWN_SERIAL
        assert screen.preview_history_row(1) is None

    def test_delete_row_removes_every_copy(self, screen, history):
        history.add(KNOWN_SERIAL)
        history.add("C02C1000AAAA")
        history.add(KNOWN_SERIAL)
        assert screen.delete_history_row(0) == 2
        assert [e.serial_number for e in screen.history] == ["C02C1000AAAA"]

    def test_bad_index(self, screen):
        with pytest.raises(IndexError):
            screen.select_history_row(0)

    def test_find_row(self, screen, history):
        history.add(KNOWN_SERIAL)
        assert screen.find_history_row(KNOWN_SERIAL) == 0
        assert screen.find_history_row("C02C1000AAAA") is None

    def test_refresh_survives_nested_add(self, history, serial_format):
        fired = []

        def add_once(_entries):
            if not fired:
                fired.append(True)
                history.add("BBB")

        history.subscribe(add_once)
        screen = LookupScreen(history, serial_format)
        history.add("AAA")
        assert [e.serial_number for e in history.newest_first()] == ["BBB", "AAA"]
        assert [e.serial_number for e in screen.history] == ["BBB", "AAA"]

    def test_close_stops_refresh(self, screen, history):
        screen.close()
        history.add(KNOWN_SERIAL)
        assert screen.history == []


def test_every_error_has_an_alert():
    for error in DecodeError:
        alert = alert_for(error)
        assert alert.title and alert.message
