# backend/lib/smart_elec_core/io.py
import csv
from collections import defaultdict
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from io import StringIO
from typing import Dict, List

from .errors import InvalidReadingError
from .models import ElectricityReading


def parse_timestamp(text: str) -> datetime:
    """
    ISO8601 timestamp, e.g. 2025-11-01T00:00:00Z. Naive timestamps are taken as UTC.
    """
    try:
        # Convert timestamp with Z to +00:00 for fromisoformat
        timestamp = datetime.fromisoformat(text.strip().replace("Z", "+00:00"))
    except ValueError as e:
        raise InvalidReadingError(f"Invalid timestamp: {text!r}") from e
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    return timestamp


def parse_reading_value(value) -> Decimal:
    try:
        # str() first so floats from JSON keep their printed digits
        reading = Decimal(str(value).strip())
    except InvalidOperation as e:
        raise InvalidReadingError(f"Invalid reading: {value!r}") from e
    if not reading.is_finite() or reading < 0:
        raise InvalidReadingError("reading must be a finite value >= 0")
    return reading


def parse_csv_string(csv_text: str) -> Dict[str, List[ElectricityReading]]:
    """
    Parse CSV text with header: smart_meter_id,time,reading
    Returns the readings grouped by smart meter id, in file order.
    """
    f = StringIO(csv_text.strip())
    reader = csv.DictReader(f)
    readings = defaultdict(list)
    for row in reader:
        # Basic validation
        if not row.get('smart_meter_id') or not row.get('time') or not row.get('reading'):
            raise InvalidReadingError(f"Missing field in row: {row}")
        readings[row['smart_meter_id'].strip()].append(
            ElectricityReading(time=parse_timestamp(row['time']), reading=parse_reading_value(row['reading']))
        )
    return dict(readings)


def readings_from_json(payload) -> tuple:
    """
    Parse a store request body:
        {"smartMeterId": "smart-meter-0",
         "electricityReadings": [{"time": "2025-11-01T00:00:00Z", "reading": "0.34"}, ...]}
    Returns (smart_meter_id, readings).
    """
    if not isinstance(payload, dict):
        raise InvalidReadingError("Request body must be a JSON object")
    smart_meter_id = payload.get("smartMeterId")
    entries = payload.get("electricityReadings")
    if not smart_meter_id or not isinstance(entries, list) or not entries:
        raise InvalidReadingError("smartMeterId and a non-empty electricityReadings list are required")

    readings = []
    for entry in entries:
        if not isinstance(entry, dict) or entry.get("time") is None or entry.get("reading") is None:
            raise InvalidReadingError(f"Missing field in reading: {entry}")
        readings.append(ElectricityReading(time=parse_timestamp(str(entry["time"])),
                                           reading=parse_reading_value(entry["reading"])))
    return smart_meter_id, readings


def readings_to_json(readings: List[ElectricityReading]) -> List[dict]:
    return [{"time": r.time.isoformat(), "reading": str(r.reading)} for r in readings]
