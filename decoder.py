# decoder.py
# Serial Number Decoder - Serial Scout

from dataclasses import asdict, dataclass
from datetime import date, timedelta
from enum import Enum
from typing import Optional, Union

from serial_format import DEFAULT_FORMAT, SUPPORTED_FORMAT_VERSIONS


class DecodeError(Enum):
    INVALID_FORMAT = "invalid_format"
    UNKNOWN_FACILITY = "unknown_facility"
    UNKNOWN_DATE_CODE = "unknown_date_code"
    UNKNOWN_FORMAT_VERSION = "unknown_format_version"


@dataclass(frozen=True)
class AnalysisRecord:
    serial_number: str
    facility_code: str
    facility: str
    country: str
    line: str
    year: int
    half: int
    week: int
    sequence_code: str
    sequence: int
    model_code: str
    model: Optional[str] = None

    @property
    def week_start(self) -> date:
        """First day of the manufacture week, counting weeks from January 1."""
        return date(self.year, 1, 1) + timedelta(weeks=self.week - 1)

    def age(self, today=None) -> int:
        today = today or date.today()
        start = self.week_start
        years = today.year - start.year
        if (today.month, today.day) < (start.month, start.day):
            years -= 1
        return max(years, 0)

    def to_dict(self):
        data = asdict(self)
        data["week_start"] = self.week_start.isoformat()
        return data


def normalize_serial(text, serial_format=DEFAULT_FORMAT):
    """Clean up typed or scanned text before validation."""
    if not isinstance(text, str):
        return ""
    cleaned = "".join(ch for ch in text.strip().upper() if ch not in " -")
    # label barcodes carry an "S" prefix in front of the serial
    if len(cleaned) == serial_format.length + 1 and cleaned.startswith("S"):
        cleaned = cleaned[1:]
    return cleaned


def is_valid(candidate, serial_format=DEFAULT_FORMAT) -> bool:
    """True when the candidate has the format's length and only alphabet characters."""
    if not isinstance(candidate, str):
        return False
    if len(candidate) != serial_format.length:
        return False
    return all(ch in serial_format.alphabet for ch in candidate)


def decode(candidate, serial_format=DEFAULT_FORMAT) -> Union[AnalysisRecord, DecodeError]:
    """Decode a serial number into an AnalysisRecord, or return the DecodeError explaining why not."""
    if serial_format.version not in SUPPORTED_FORMAT_VERSIONS:
        return DecodeError.UNKNOWN_FORMAT_VERSION

    if not is_valid(candidate, serial_format):
        return DecodeError.INVALID_FORMAT

    facility_code = serial_format.part(candidate, "facility")
    facility = serial_format.facilities.get(facility_code)
    if facility is None:
        return DecodeError.UNKNOWN_FACILITY

    year_half = serial_format.year_for_code(serial_format.part(candidate, "year"))
    if year_half is None:
        return DecodeError.UNKNOWN_DATE_CODE
    year, half = year_half

    week = serial_format.week_for_code(serial_format.part(candidate, "week"), half)
    if week is None:
        return DecodeError.UNKNOWN_DATE_CODE

    sequence_code = serial_format.part(candidate, "sequence")
    model_code = serial_format.part(candidate, "model")

    return AnalysisRecord(
        serial_number=candidate,
        facility_code=facility_code,
        facility=facility["name"],
        country=facility["country"],
        line=serial_format.part(candidate, "line"),
        year=year,
        half=half,
        week=week,
        sequence_code=sequence_code,
        sequence=serial_format.ordinal(sequence_code),
        model_code=model_code,
        model=serial_format.models.get(model_code),
    )


def compose(serial_format, facility_code, year, week, sequence, line="0", model_code=None):
    """Build a serial number from its components (inverse of decode)."""
    if facility_code not in serial_format.facilities:
        raise ValueError(f"Unknown facility code: {facility_code}")

    week_code, half = serial_format.code_for_week(week)
    parts = {
        "facility": facility_code,
        "line": line,
        "year": serial_format.code_for_year(year, half),
        "week": week_code,
        "sequence": serial_format.encode_ordinal(sequence),
        "model": model_code or serial_format.alphabet[0] * serial_format.width("model"),
    }

    chars = [serial_format.alphabet[0]] * serial_format.length
    for name, value in parts.items():
        if len(value) != serial_format.width(name):
            raise ValueError(f"Field '{name}' must be {serial_format.width(name)} characters, got '{value}'")
        start, end = serial_format.fields[name]
        chars[start:end] = list(value)

    serial = "".join(chars)
    if not is_valid(serial, serial_format):
        raise ValueError(f"Composed serial {serial} is outside the {serial_format.name} alphabet.")
    return serial
