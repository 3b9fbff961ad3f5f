# backend/lib/smart_elec_core/accounts.py
from typing import Dict, Iterable, List, Optional

from .models import PricePlan


class PlanDirectory:
    """
    Resolves which price plan a smart meter is on, and what that plan costs.
    """

    def __init__(self, price_plans: Iterable[PricePlan], smart_meter_to_plan: Dict[str, str]):
        self._price_plans = list(price_plans)
        self._smart_meter_to_plan = dict(smart_meter_to_plan)

    @property
    def price_plans(self) -> List[PricePlan]:
        return list(self._price_plans)

    def get_plan_id_for_meter(self, smart_meter_id: str) -> Optional[str]:
        return self._smart_meter_to_plan.get(smart_meter_id)

    def find_plan(self, plan_id: str) -> Optional[PricePlan]:
        # first match wins, plan names are expected to be unique
        return next((p for p in self._price_plans if p.plan_name == plan_id), None)
