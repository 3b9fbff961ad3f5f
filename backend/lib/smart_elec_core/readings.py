# backend/lib/smart_elec_core/readings.py
import logging
from typing import Dict, Iterable, List, Optional

from .models import ElectricityReading

logger = logging.getLogger(__name__)


class MeterReadingService:
    """
    In-memory reading store keyed by smart meter id.

    A meter that was never stored reads back as None; a meter stored with an
    empty list reads back as an empty list.
    """

    def __init__(self, meter_readings: Optional[Dict[str, List[ElectricityReading]]] = None):
        self._meter_readings: Dict[str, List[ElectricityReading]] = meter_readings if meter_readings is not None else {}

    def get_readings(self, smart_meter_id: str) -> Optional[List[ElectricityReading]]:
        readings = self._meter_readings.get(smart_meter_id)
        if readings is None:
            return None
        return list(readings)

    def store_readings(self, smart_meter_id: str, readings: Iterable[ElectricityReading]) -> None:
        stored = self._meter_readings.setdefault(smart_meter_id, [])
        new_readings = list(readings)
        stored.extend(new_readings)
        logger.debug("Stored %d readings for %s (%d total)", len(new_readings), smart_meter_id, len(stored))

    def smart_meter_ids(self) -> List[str]:
        return sorted(self._meter_readings)
