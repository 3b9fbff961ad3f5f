# backend/lib/smart_elec_core/models.py
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional


@dataclass(frozen=True)
class ElectricityReading:
    time: datetime
    reading: Decimal  # instantaneous draw in kW


@dataclass(frozen=True)
class PricePlan:
    plan_name: str
    unit_rate: Decimal  # currency units per kWh
    energy_supplier: Optional[str] = None
