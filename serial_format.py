# serial_format.py
# Serial number encoding tables - Serial Scout

import json
import logging
import os
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

logger = logging.getLogger(__name__)

SUPPORTED_FORMAT_VERSIONS = {1}

FIELD_NAMES = ("facility", "line", "year", "week", "sequence", "model")


class SerialFormatError(ValueError):
    """Raised when an encoding table is malformed."""


# -------------------------------
# Bundled default: 12-character manufacturer scheme
# -------------------------------
DEFAULT_FORMAT_DATA = {
    "name": "apple-12",
    "version": 1,
    "length": 12,
    "alphabet": "0123456789ABCDEFGHJKLMNPQRSTUVWXYZ",
    "fields": {
        "facility": [0, 2],
        "line": [2, 3],
        "year": [3, 4],
        "week": [4, 5],
        "sequence": [5, 8],
        "model": [8, 12],
    },
    "first_year": 2010,
    # two codes per year: first half, second half
    "year_codes": "CDFGHJKLMNPQRSTVWXYZ",
    "week_codes": "123456789CDFGHJKLMNPQRTVWXY",
    "facilities": {
        "1C": {"name": "Contract manufacturer", "country": "China"},
        "4H": {"name": "Contract manufacturer", "country": "China"},
        "7J": {"name": "Hon Hai", "country": "South Korea"},
        "C0": {"name": "Quanta Computer", "country": "China"},
        "C3": {"name": "Foxconn Shenzhen", "country": "China"},
        "C7": {"name": "Pegatron Shanghai", "country": "China"},
        "CK": {"name": "Cork", "country": "Ireland"},
        "CY": {"name": "Contract manufacturer", "country": "South Korea"},
        "DL": {"name": "Foxconn", "country": "China"},
        "DM": {"name": "Foxconn", "country": "China"},
        "DN": {"name": "Foxconn Chengdu", "country": "China"},
        "EE": {"name": "Contract manufacturer", "country": "Taiwan"},
        "F1": {"name": "Foxconn Zhengzhou", "country": "China"},
        "F2": {"name": "Foxconn Zhengzhou", "country": "China"},
        "F7": {"name": "Contract manufacturer", "country": "China"},
        "FC": {"name": "Fountain, Colorado", "country": "USA"},
        "FK": {"name": "Foxconn Zhengzhou", "country": "China"},
        "G8": {"name": "Contract manufacturer", "country": "USA"},
        "MB": {"name": "Contract manufacturer", "country": "Malaysia"},
        "PT": {"name": "Contract manufacturer", "country": "South Korea"},
        "QP": {"name": "Contract manufacturer", "country": "USA"},
        "QT": {"name": "Quanta Computer", "country": "Taiwan"},
        "RM": {"name": "Refurbished / remanufactured", "country": ""},
        "RN": {"name": "Contract manufacturer", "country": "Mexico"},
        "SG": {"name": "Contract manufacturer", "country": "Singapore"},
        "UV": {"name": "Contract manufacturer", "country": "Taiwan"},
        "VM": {"name": "Foxconn Pardubice", "country": "Czech Republic"},
        "W8": {"name": "Contract manufacturer, Shanghai", "country": "China"},
        "XA": {"name": "Contract manufacturer", "country": "USA"},
        "XB": {"name": "Contract manufacturer", "country": "USA"},
        "YM": {"name": "Hon Hai", "country": "China"},
    },
    "models": {},
}


@dataclass(frozen=True)
class SerialFormat:
    name: str
    version: int
    length: int
    alphabet: str
    fields: Dict[str, Tuple[int, int]]
    first_year: int
    year_codes: str
    week_codes: str
    facilities: Dict[str, Dict[str, str]] = field(default_factory=dict)
    models: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data):
        """Build a format from a JSON-style mapping, checking it is self-consistent."""
        if not isinstance(data, dict):
            raise SerialFormatError("Format table must be a mapping.")

        missing = [k for k in ("name", "version", "length", "alphabet", "fields",
                               "first_year", "year_codes", "week_codes") if k not in data]
        if missing:
            raise SerialFormatError(f"Format table missing keys: {', '.join(missing)}")

        try:
            length = int(data["length"])
            version = int(data["version"])
            first_year = int(data["first_year"])
        except (TypeError, ValueError) as e:
            raise SerialFormatError(f"Bad numeric value in format table: {e}") from e

        alphabet = str(data["alphabet"])
        if len(set(alphabet)) != len(alphabet):
            raise SerialFormatError("Alphabet contains duplicate characters.")

        if not isinstance(data["fields"], dict):
            raise SerialFormatError("'fields' must map field names to [start, end] spans.")

        fields = {}
        for name in FIELD_NAMES:
            span = data["fields"].get(name)
            if not isinstance(span, (list, tuple)) or len(span) != 2:
                raise SerialFormatError(f"Field '{name}' needs a [start, end] span.")
            try:
                start, end = int(span[0]), int(span[1])
            except (TypeError, ValueError) as e:
                raise SerialFormatError(f"Field '{name}' span is not numeric: {e}") from e
            if not 0 <= start < end <= length:
                raise SerialFormatError(f"Field '{name}' span {start}:{end} is outside the serial.")
            fields[name] = (start, end)

        for name in ("year", "week"):
            start, end = fields[name]
            if end - start != 1:
                raise SerialFormatError(f"Field '{name}' must be a single character.")

        year_codes = str(data["year_codes"])
        week_codes = str(data["week_codes"])
        for label, codes in (("year_codes", year_codes), ("week_codes", week_codes)):
            stray = [c for c in codes if c not in alphabet]
            if stray:
                raise SerialFormatError(f"{label} uses characters outside the alphabet: {''.join(stray)}")
            if len(set(codes)) != len(codes):
                raise SerialFormatError(f"{label} contains duplicate codes.")
        if len(year_codes) % 2:
            raise SerialFormatError("year_codes must hold two codes per year.")

        facility_width = fields["facility"][1] - fields["facility"][0]
        facilities = {}
        raw_facilities = data.get("facilities") or {}
        if not isinstance(raw_facilities, dict):
            raise SerialFormatError("'facilities' must map codes to names.")
        for code, info in raw_facilities.items():
            if len(code) != facility_width:
                raise SerialFormatError(f"Facility code '{code}' is not {facility_width} characters.")
            if isinstance(info, str):
                info = {"name": info, "country": ""}
            if not isinstance(info, dict):
                raise SerialFormatError(f"Facility '{code}' must be a name or a {{name, country}} mapping.")
            facilities[code] = {"name": info.get("name", ""), "country": info.get("country", "")}

        try:
            models = dict(data.get("models") or {})
        except (TypeError, ValueError) as e:
            raise SerialFormatError(f"'models' must map model codes to names: {e}") from e

        return cls(
            name=str(data["name"]),
            version=version,
            length=length,
            alphabet=alphabet,
            fields=fields,
            first_year=first_year,
            year_codes=year_codes,
            week_codes=week_codes,
            facilities=facilities,
            models=models,
        )

    # -------------------------------
    # Field access
    # -------------------------------
    def part(self, serial, name):
        start, end = self.fields[name]
        return serial[start:end]

    def width(self, name):
        start, end = self.fields[name]
        return end - start

    # -------------------------------
    # Year / week tables
    # -------------------------------
    def year_for_code(self, code) -> Optional[Tuple[int, int]]:
        """Return (year, half) for a year code, or None."""
        index = self.year_codes.find(code) if code else -1
        if index < 0:
            return None
        return self.first_year + index // 2, index % 2 + 1

    def code_for_year(self, year, half):
        index = (year - self.first_year) * 2 + (half - 1)
        if half not in (1, 2) or not 0 <= index < len(self.year_codes):
            raise ValueError(f"Year {year} half {half} is outside the {self.name} year table.")
        return self.year_codes[index]

    def week_for_code(self, code, half) -> Optional[int]:
        """
        Week of the year for a week code; second-half codes are offset by 26.
        The 27th first-half code and the 1st second-half code both mean week 27;
        code_for_week always encodes week 27 with the second-half form.
        """
        index = self.week_codes.find(code) if code else -1
        if index < 0:
            return None
        return index + 1 + (26 if half == 2 else 0)

    def code_for_week(self, week):
        """Return (code, half) for a week of the year."""
        half = 2 if week > 26 else 1
        index = week - (26 if half == 2 else 0)
        if week < 1 or index > len(self.week_codes):
            raise ValueError(f"Week {week} cannot be encoded by the {self.name} week table.")
        return self.week_codes[index - 1], half

    # -------------------------------
    # Unit sequence
    # -------------------------------
    def ordinal(self, code):
        """Read a sequence code as a base-N number over the alphabet."""
        base = len(self.alphabet)
        value = 0
        for ch in code:
            value = value * base + self.alphabet.index(ch)
        return value

    def encode_ordinal(self, value):
        base = len(self.alphabet)
        width = self.width("sequence")
        if value < 0 or value >= base ** width:
            raise ValueError(f"Sequence {value} does not fit in {width} characters.")
        digits = []
        for _ in range(width):
            value, rem = divmod(value, base)
            digits.append(self.alphabet[rem])
        return "".join(reversed(digits))


DEFAULT_FORMAT = SerialFormat.from_dict(DEFAULT_FORMAT_DATA)


def load_serial_format(path=None):
    """Load an encoding table from JSON; falls back to the bundled default."""
    path = path or os.getenv("SERIAL_FORMAT_PATH")
    if not path:
        return DEFAULT_FORMAT
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise SerialFormatError(f"Could not read format table {path}: {e}") from e
    fmt = SerialFormat.from_dict(data)
    logger.info({"event": "serial_format_loaded", "name": fmt.name, "version": fmt.version, "path": path})
    return fmt
