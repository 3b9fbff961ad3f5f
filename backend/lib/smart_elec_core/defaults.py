# backend/lib/smart_elec_core/defaults.py
"""
Reference price plans and meter accounts the application starts with.
"""
from decimal import Decimal
from typing import Dict, List

from .models import PricePlan

DR_EVILS_DARK_ENERGY = "price-plan-0"
THE_GREEN_ECO = "price-plan-1"
POWER_FOR_EVERYONE = "price-plan-2"


def default_price_plans() -> List[PricePlan]:
    return [
        PricePlan(DR_EVILS_DARK_ENERGY, Decimal("10"), "Dr Evil's Dark Energy"),
        PricePlan(THE_GREEN_ECO, Decimal("2"), "The Green Eco"),
        PricePlan(POWER_FOR_EVERYONE, Decimal("1"), "Power for Everyone"),
    ]


def default_smart_meter_accounts() -> Dict[str, str]:
    return {
        "smart-meter-0": DR_EVILS_DARK_ENERGY,
        "smart-meter-1": THE_GREEN_ECO,
        "smart-meter-2": DR_EVILS_DARK_ENERGY,
        "smart-meter-3": POWER_FOR_EVERYONE,
        "smart-meter-4": THE_GREEN_ECO,
    }
