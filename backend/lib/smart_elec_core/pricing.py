# backend/lib/smart_elec_core/pricing.py
"""
Cost of a smart meter's consumption under the available price plans.

Readings are instantaneous draws in kW. Consumption over a span of readings is
derived from their average draw and the hours they cover; all arithmetic is
done in Decimal with ROUND_HALF_UP.
"""
import logging
from datetime import datetime, timedelta, timezone
from decimal import Context, Decimal, ROUND_DOWN, ROUND_HALF_UP, localcontext
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from .errors import DivisionByZeroError, NoPlanAssignedError, UnknownPlanError
from .models import ElectricityReading, PricePlan

logger = logging.getLogger(__name__)

LAST_WEEK = timedelta(days=7)
SECONDS_PER_HOUR = 3600
TEN_PLACES = Decimal("1E-10")
CENTS = Decimal("0.01")

# Intermediate results are truncated far below any quantize step, so the
# final ROUND_HALF_UP is the only rounding that shows.
PRICING_CONTEXT = Context(prec=200, rounding=ROUND_DOWN)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def divide_keeping_scale(dividend: Decimal, divisor: Decimal) -> Decimal:
    """
    Divide and round the quotient to as many fractional digits as the dividend has.
    """
    return divide_to_places(dividend, divisor, Decimal(1).scaleb(dividend.as_tuple().exponent))


def divide_to_places(dividend, divisor, places: Decimal) -> Decimal:
    with localcontext(PRICING_CONTEXT):
        return (Decimal(dividend) / Decimal(divisor)).quantize(places, rounding=ROUND_HALF_UP)


def whole_seconds_between(start: datetime, end: datetime) -> int:
    return (end - start) // timedelta(seconds=1)


class PricePlanService:
    """
    Calculates consumption costs for smart meters.

    Args:
        plan_directory: resolves meter -> plan id and plan id -> PricePlan
            (see accounts.PlanDirectory).
        reading_store: anything with get_readings(smart_meter_id) returning a
            list of ElectricityReading or None.
        clock: returns the current aware datetime; the trailing week is
            measured back from it.
    """

    def __init__(self, plan_directory, reading_store, clock: Callable[[], datetime] = utc_now):
        self.plan_directory = plan_directory
        self.reading_store = reading_store
        self.clock = clock

    def calculate_cost_for_all_plans(self, smart_meter_id: str) -> Optional[Dict[str, Decimal]]:
        """
        Cost of all the meter's stored readings under every known plan,
        keyed by plan name. None when the meter has no readings.
        """
        readings = self.reading_store.get_readings(smart_meter_id)
        if not readings:
            logger.warning("No readings stored for smart meter %s", smart_meter_id)
            return None

        return {
            plan.plan_name: self.calculate_cost(readings, plan)
            for plan in self.plan_directory.price_plans
        }

    def recommend_cheapest_price_plans(self, smart_meter_id: str,
                                       limit: Optional[int] = None) -> Optional[List[Tuple[str, Decimal]]]:
        if limit is not None and limit < 0:
            raise ValueError("limit must be >= 0")
        costs = self.calculate_cost_for_all_plans(smart_meter_id)
        if costs is None:
            return None
        ranked = sorted(costs.items(), key=lambda item: item[1])
        if limit is not None:
            ranked = ranked[:limit]
        return ranked

    def calculate_last_week_cost(self, smart_meter_id: str) -> Decimal:
        """
        Cost of the meter's last seven days under the plan it is assigned to.

        Fewer than two readings in the window, or a window spanning no time,
        costs nothing. Raises NoPlanAssignedError / UnknownPlanError when the
        meter's plan cannot be resolved.
        """
        readings = self.reading_store.get_readings(smart_meter_id)
        if not readings or len(readings) < 2:
            return Decimal(0)

        one_week_ago = self.clock() - LAST_WEEK
        last_week = sorted((r for r in readings if r.time > one_week_ago), key=lambda r: r.time)
        if len(last_week) < 2:
            logger.debug("Fewer than two readings in the last week for %s", smart_meter_id)
            return Decimal(0)

        with localcontext(PRICING_CONTEXT):
            total = sum((r.reading for r in last_week), Decimal(0))
        average = divide_to_places(total, len(last_week), TEN_PLACES)

        seconds = whole_seconds_between(last_week[0].time, last_week[-1].time)
        hours = divide_to_places(seconds, SECONDS_PER_HOUR, TEN_PLACES)
        if hours == 0:
            return Decimal(0)

        with localcontext(PRICING_CONTEXT):
            energy_consumed = average * hours

        plan_id = self.plan_directory.get_plan_id_for_meter(smart_meter_id)
        if plan_id is None:
            raise NoPlanAssignedError(smart_meter_id)
        plan = self.plan_directory.find_plan(plan_id)
        if plan is None:
            raise UnknownPlanError(plan_id)

        with localcontext(PRICING_CONTEXT):
            cost = (energy_consumed * plan.unit_rate).quantize(CENTS, rounding=ROUND_HALF_UP)
        logger.debug("Last week cost for %s on %s: %s kWh -> %s", smart_meter_id, plan_id, energy_consumed, cost)
        return cost

    def calculate_last_week_cost_of_readings(self, readings: Optional[Iterable[ElectricityReading]]) -> Decimal:
        """
        Average draw of the given readings over the last week.

        Only readings inside the week are summed but the sum is divided by the
        number of readings given, inside the week or not.
        """
        if readings is None:
            return Decimal(0)
        readings = list(readings)
        if not readings:
            return Decimal(0)

        one_week_ago = self.clock() - LAST_WEEK
        with localcontext(PRICING_CONTEXT):
            total = sum((r.reading for r in readings if r.time > one_week_ago), Decimal(0))
        return divide_keeping_scale(total, Decimal(len(readings)))

    @staticmethod
    def calculate_cost(readings: List[ElectricityReading], price_plan: PricePlan) -> Decimal:
        average = calculate_average_reading(readings)
        usage_hours = calculate_usage_time_in_hours(readings)
        if usage_hours == 0:
            raise DivisionByZeroError("readings span zero hours")
        energy_consumed = divide_keeping_scale(average, usage_hours)
        with localcontext(PRICING_CONTEXT):
            return energy_consumed * price_plan.unit_rate


def calculate_average_reading(readings: List[ElectricityReading]) -> Decimal:
    with localcontext(PRICING_CONTEXT):
        total = sum((r.reading for r in readings), Decimal(0))
    return divide_keeping_scale(total, Decimal(len(readings)))


def calculate_usage_time_in_hours(readings: List[ElectricityReading]) -> Decimal:
    first = min(readings, key=lambda r: r.time)
    last = max(readings, key=lambda r: r.time)
    hours = whole_seconds_between(first.time, last.time) / 3600.0
    return Decimal(repr(hours))
