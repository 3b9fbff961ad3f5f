# backend/run_local.py
import logging
import sys
from pathlib import Path

from backend.lib.smart_elec_core.accounts import PlanDirectory
from backend.lib.smart_elec_core.defaults import default_price_plans, default_smart_meter_accounts
from backend.lib.smart_elec_core.errors import PricePlanError
from backend.lib.smart_elec_core.io import parse_csv_string
from backend.lib.smart_elec_core.pricing import PricePlanService
from backend.lib.smart_elec_core.readings import MeterReadingService


def main(csv_path):
    text = Path(csv_path).read_text()
    readings_by_meter = parse_csv_string(text)

    store = MeterReadingService()
    for smart_meter_id, readings in readings_by_meter.items():
        store.store_readings(smart_meter_id, readings)
    service = PricePlanService(PlanDirectory(default_price_plans(), default_smart_meter_accounts()), store)

    for smart_meter_id in store.smart_meter_ids():
        print(f"{smart_meter_id}: {len(store.get_readings(smart_meter_id))} readings")
        try:
            print(f" - last week cost: {service.calculate_last_week_cost(smart_meter_id)}")
            for plan_name, cost in service.calculate_cost_for_all_plans(smart_meter_id).items():
                print(f" - {plan_name}: {cost}")
        except PricePlanError as e:
            print(f" - {e}")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    csv = sys.argv[1] if len(sys.argv) > 1 else "tests/sample.csv"
    main(csv)
