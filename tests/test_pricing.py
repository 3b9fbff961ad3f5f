# tests/test_pricing.py
from backend.lib.smart_elec_core.accounts import PlanDirectory
from backend.lib.smart_elec_core.defaults import default_price_plans, default_smart_meter_accounts
from backend.lib.smart_elec_core.errors import DivisionByZeroError, NoPlanAssignedError, UnknownPlanError
from backend.lib.smart_elec_core.models import ElectricityReading, PricePlan
from backend.lib.smart_elec_core.pricing import (
    PricePlanService,
    calculate_usage_time_in_hours,
    divide_keeping_scale,
)
from backend.lib.smart_elec_core.readings import MeterReadingService
from datetime import datetime, timedelta, timezone
from decimal import Decimal
import pytest

NOW = datetime(2025, 11, 8, 12, 0, tzinfo=timezone.utc)

def reading(days_ago, value, hours_ago=0):
    return ElectricityReading(NOW - timedelta(days=days_ago, hours=hours_ago), Decimal(value))

def make_service(readings_by_meter=None, plans=None, accounts=None):
    store = MeterReadingService()
    for smart_meter_id, readings in (readings_by_meter or {}).items():
        store.store_readings(smart_meter_id, readings)
    directory = PlanDirectory(
        plans if plans is not None else [PricePlan("cheap", Decimal("0.15"))],
        accounts if accounts is not None else {"meter": "cheap"},
    )
    return PricePlanService(directory, store, clock=lambda: NOW)

# calculate_last_week_cost(smart_meter_id)

def test_last_week_cost_two_readings_a_day_apart():
    # average 15.00 kW over 24 hours = 360 kWh at 0.15
    service = make_service({"meter": [reading(2, "10.00"), reading(1, "20.00")]})
    assert service.calculate_last_week_cost("meter") == Decimal("54.00")

def test_last_week_cost_sorts_readings_by_time():
    service = make_service(
        {"meter": [reading(1, "30"), reading(3, "10"), reading(2, "20")]},
        plans=[PricePlan("flat", Decimal("1"))],
        accounts={"meter": "flat"},
    )
    # average 20 kW over 48 hours
    assert service.calculate_last_week_cost("meter") == Decimal("960.00")

def test_last_week_cost_excludes_reading_exactly_a_week_old():
    service = make_service({"meter": [reading(7, "100.00"), reading(2, "10.00"), reading(1, "20.00")]})
    assert service.calculate_last_week_cost("meter") == Decimal("54.00")

def test_last_week_cost_rounds_half_up():
    # 2.5 kW for one hour at 0.01 = 0.025
    service = make_service(
        {"meter": [reading(1, "2", hours_ago=1), reading(1, "3")]},
        plans=[PricePlan("penny", Decimal("0.01"))],
        accounts={"meter": "penny"},
    )
    assert service.calculate_last_week_cost("meter") == Decimal("0.03")

def test_last_week_cost_unknown_meter_is_zero():
    assert make_service().calculate_last_week_cost("nobody") == Decimal(0)

def test_last_week_cost_single_reading_is_zero():
    service = make_service({"meter": [reading(1, "10.00")]})
    assert service.calculate_last_week_cost("meter") == Decimal(0)

def test_last_week_cost_one_reading_in_window_is_zero_even_without_plan():
    service = make_service({"orphan": [reading(8, "10.00"), reading(1, "20.00")]}, accounts={})
    assert service.calculate_last_week_cost("orphan") == Decimal(0)

def test_last_week_cost_zero_span_is_zero():
    service = make_service({"meter": [reading(1, "10.00"), reading(1, "20.00")]})
    assert service.calculate_last_week_cost("meter") == Decimal(0)

def test_last_week_cost_no_plan_assigned():
    service = make_service({"orphan": [reading(2, "10.00"), reading(1, "20.00")]})
    with pytest.raises(NoPlanAssignedError):
        service.calculate_last_week_cost("orphan")

def test_last_week_cost_unknown_plan():
    service = make_service({"meter": [reading(2, "10.00"), reading(1, "20.00")]},
                           accounts={"meter": "retired-plan"})
    with pytest.raises(UnknownPlanError) as excinfo:
        service.calculate_last_week_cost("meter")
    assert excinfo.value.plan_id == "retired-plan"

# calculate_last_week_cost_of_readings(readings)

def test_last_week_cost_of_no_readings_is_zero():
    service = make_service()
    assert service.calculate_last_week_cost_of_readings(None) == Decimal(0)
    assert service.calculate_last_week_cost_of_readings([]) == Decimal(0)

def test_last_week_cost_of_readings_divides_by_all_readings():
    service = make_service()
    readings = [reading(1, "10.00"), reading(2, "10.01"), reading(8, "30.00")]
    # (10.00 + 10.01) / 3, the old reading only counts towards the divisor
    assert str(service.calculate_last_week_cost_of_readings(readings)) == "6.67"

def test_last_week_cost_of_a_week_of_daily_readings():
    service = make_service()
    readings = [reading(1, "10.00")] + [reading(days, "20.00") for days in range(2, 8)]
    # the reading exactly seven days old falls outside the window: 110.00 / 7
    assert service.calculate_last_week_cost_of_readings(readings) == Decimal("15.71")

def test_last_week_cost_of_only_old_readings_is_zero():
    service = make_service()
    assert service.calculate_last_week_cost_of_readings([reading(9, "5.0"), reading(10, "5.0")]) == Decimal(0)

# calculate_cost_for_all_plans / recommend_cheapest_price_plans

def make_default_service(readings_by_meter):
    service = make_service(readings_by_meter, plans=default_price_plans(), accounts=default_smart_meter_accounts())
    return service

def test_cost_for_all_plans_unknown_meter():
    assert make_default_service({}).calculate_cost_for_all_plans("smart-meter-0") is None

def test_cost_for_all_plans_empty_readings():
    assert make_default_service({"smart-meter-0": []}).calculate_cost_for_all_plans("smart-meter-0") is None

def test_cost_for_all_plans_divides_average_by_hours():
    # 15.00 / 24.0 = 0.625 -> 0.63 at the average's two decimal places
    service = make_default_service({"smart-meter-0": [reading(2, "10.00"), reading(1, "20.00")]})
    assert service.calculate_cost_for_all_plans("smart-meter-0") == {
        "price-plan-0": Decimal("6.30"),
        "price-plan-1": Decimal("1.26"),
        "price-plan-2": Decimal("0.63"),
    }

def test_cost_for_all_plans_ignores_the_week_window():
    service = make_default_service({"smart-meter-0": [reading(61, "10.00"), reading(60, "20.00")]})
    assert service.calculate_cost_for_all_plans("smart-meter-0")["price-plan-2"] == Decimal("0.63")

def test_cost_for_all_plans_single_reading():
    service = make_default_service({"smart-meter-0": [reading(1, "10.00")]})
    with pytest.raises(DivisionByZeroError):
        service.calculate_cost_for_all_plans("smart-meter-0")

def test_recommend_cheapest_price_plans():
    service = make_default_service({"smart-meter-0": [reading(2, "10.00"), reading(1, "20.00")]})
    assert service.recommend_cheapest_price_plans("smart-meter-0") == [
        ("price-plan-2", Decimal("0.63")),
        ("price-plan-1", Decimal("1.26")),
        ("price-plan-0", Decimal("6.30")),
    ]
    assert [name for name, _ in service.recommend_cheapest_price_plans("smart-meter-0", limit=2)] == [
        "price-plan-2", "price-plan-1"]
    assert service.recommend_cheapest_price_plans("smart-meter-9") is None

# helpers

def test_divide_keeping_scale():
    assert str(divide_keeping_scale(Decimal("20.01"), Decimal(3))) == "6.67"
    assert str(divide_keeping_scale(Decimal("5"), Decimal(2))) == "3"
    assert str(divide_keeping_scale(Decimal("0.005"), Decimal(2))) == "0.003"

def test_usage_time_in_hours():
    readings = [reading(0, "1", hours_ago=1.5), reading(0, "1")]
    assert calculate_usage_time_in_hours(readings) == Decimal("1.5")

def test_recommend_rejects_negative_limit():
    service = make_default_service({"smart-meter-0": [reading(2, "10.00"), reading(1, "20.00")]})
    with pytest.raises(ValueError):
        service.recommend_cheapest_price_plans("smart-meter-0", limit=-1)

def test_last_week_cost_of_very_large_readings():
    # 20 integer digits plus 10 places exceed the default 28 digit context
    big = "12345678901234567890.5"
    service = make_service({"meter": [reading(2, big), reading(1, big)]},
                           plans=[PricePlan("flat", Decimal("1"))], accounts={"meter": "flat"})
    assert service.calculate_last_week_cost("meter") == Decimal("296296293629629629372.00")
