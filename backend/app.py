"""
=============================================================================
SMART METER PRICE PLANS - MAIN FLASK APPLICATION
=============================================================================

REST API over the price plan calculations:
- Storing smart meter readings (JSON body or CSV upload)
- Reading back what a meter has stored
- Comparing the cost of a meter's readings across every price plan
- Recommending the cheapest price plans
- Costing the last week of a meter's readings under its own plan

How to run:
    python -m backend.app

Then visit: http://127.0.0.1:5000/price-plans/compare-all/smart-meter-0
=============================================================================
"""

import logging
import os

from flask import Flask, request, jsonify

# dotenv - Load environment variables from .env file
from dotenv import load_dotenv

# Load environment variables from .env file
# This must be called before accessing any environment variables
load_dotenv()

from backend.lib.smart_elec_core.accounts import PlanDirectory
from backend.lib.smart_elec_core.defaults import default_price_plans, default_smart_meter_accounts
from backend.lib.smart_elec_core.errors import (
    DivisionByZeroError,
    InvalidReadingError,
    NoPlanAssignedError,
    UnknownPlanError,
)
from backend.lib.smart_elec_core.io import parse_csv_string, readings_from_json, readings_to_json
from backend.lib.smart_elec_core.pricing import PricePlanService
from backend.lib.smart_elec_core.readings import MeterReadingService

logging.basicConfig(
    level=os.getenv('LOG_LEVEL', 'INFO').upper(),
    format='%(asctime)s %(levelname)s %(name)s: %(message)s'
)
logger = logging.getLogger(__name__)


# =============================================================================
# READING STORE SELECTION
# =============================================================================
# DynamoDB keeps readings across restarts; otherwise they live in memory
# for the lifetime of the process.

def build_reading_store():
    use_dynamodb = os.getenv('USE_DYNAMODB', 'false').lower() == 'true'
    if use_dynamodb:
        # Imported lazily so boto3 is only touched when DynamoDB is enabled
        from botocore.exceptions import BotoCoreError
        from backend.lib.dynamodb_service import DynamoDBReadingStore
        try:
            store = DynamoDBReadingStore()
        except BotoCoreError as e:
            logger.warning("DynamoDB initialization failed: %s. Using in-memory readings.", e)
            return MeterReadingService()
        if store.create_table_if_not_exists():
            logger.info("DynamoDB reading store enabled")
            return store
        logger.warning("DynamoDB table unavailable. Using in-memory readings.")
    return MeterReadingService()


# =============================================================================
# FLASK APPLICATION
# =============================================================================

def create_app(reading_store=None, plan_directory=None, clock=None) -> Flask:
    """
    Build the Flask application.

    Args:
        reading_store: store with get_readings/store_readings; picked from
            the environment when omitted.
        plan_directory: PlanDirectory; the default plans and accounts when omitted.
        clock: optional callable returning the current aware datetime.
    """
    app = Flask(__name__)

    reading_store = reading_store if reading_store is not None else build_reading_store()
    plan_directory = plan_directory if plan_directory is not None else PlanDirectory(
        default_price_plans(), default_smart_meter_accounts())
    service_kwargs = {'clock': clock} if clock is not None else {}
    price_plan_service = PricePlanService(plan_directory, reading_store, **service_kwargs)

    app.config['READING_STORE'] = reading_store
    app.config['PRICE_PLAN_SERVICE'] = price_plan_service

    # -------------------------------------------------------------------------
    # ERROR HANDLERS
    # -------------------------------------------------------------------------

    @app.errorhandler(InvalidReadingError)
    def invalid_reading(error):
        return jsonify({"error": str(error)}), 400

    @app.errorhandler(NoPlanAssignedError)
    @app.errorhandler(UnknownPlanError)
    def plan_not_found(error):
        return jsonify({"error": str(error)}), 404

    @app.errorhandler(DivisionByZeroError)
    def zero_usage_time(error):
        return jsonify({"error": "Readings do not span any time, cost cannot be calculated"}), 422

    # -------------------------------------------------------------------------
    # READINGS
    # -------------------------------------------------------------------------

    @app.route("/readings/store", methods=["POST"])
    def store_readings():
        """
        Store readings for one meter.

        Request Body (JSON):
            {
                "smartMeterId": "smart-meter-0",
                "electricityReadings": [
                    {"time": "2025-11-01T00:00:00Z", "reading": "0.34"}
                ]
            }
        """
        smart_meter_id, readings = readings_from_json(request.get_json(silent=True))
        reading_store.store_readings(smart_meter_id, readings)
        return jsonify({"smartMeterId": smart_meter_id, "stored": len(readings)})

    @app.route("/readings/upload", methods=["POST"])
    def upload_readings():
        """
        Store readings from a CSV file upload.

        Expected CSV format:
            smart_meter_id,time,reading
            smart-meter-0,2025-11-01T00:00:00Z,0.34
        """
        if "file" not in request.files:
            return jsonify({"error": "No file uploaded"}), 400

        file = request.files["file"]
        try:
            content = file.read().decode("utf-8")
        except UnicodeDecodeError as e:
            raise InvalidReadingError("Uploaded file is not UTF-8 text") from e
        readings_by_meter = parse_csv_string(content)

        for smart_meter_id, readings in readings_by_meter.items():
            reading_store.store_readings(smart_meter_id, readings)

        return jsonify({
            "upload_id": file.filename,
            "processed_count": sum(len(r) for r in readings_by_meter.values()),
            "smart_meter_ids": sorted(readings_by_meter)
        }), 202

    @app.route("/readings/read/<smart_meter_id>", methods=["GET"])
    def read_readings(smart_meter_id):
        readings = reading_store.get_readings(smart_meter_id)
        if readings is None:
            return jsonify({"error": f"No readings for {smart_meter_id}"}), 404
        return jsonify(readings_to_json(readings))

    # -------------------------------------------------------------------------
    # PRICE PLANS
    # -------------------------------------------------------------------------

    @app.route("/price-plans/compare-all/<smart_meter_id>", methods=["GET"])
    def compare_all(smart_meter_id):
        costs = price_plan_service.calculate_cost_for_all_plans(smart_meter_id)
        if costs is None:
            return jsonify({"error": f"No readings for {smart_meter_id}"}), 404
        return jsonify({
            "pricePlanId": plan_directory.get_plan_id_for_meter(smart_meter_id),
            "pricePlanComparisons": {name: str(cost) for name, cost in costs.items()}
        })

    @app.route("/price-plans/recommend/<smart_meter_id>", methods=["GET"])
    def recommend(smart_meter_id):
        limit = request.args.get("limit", type=int)
        if limit is not None and limit < 0:
            return jsonify({"error": "limit must be >= 0"}), 400
        ranked = price_plan_service.recommend_cheapest_price_plans(smart_meter_id, limit)
        if ranked is None:
            return jsonify({"error": f"No readings for {smart_meter_id}"}), 404
        return jsonify([{name: str(cost)} for name, cost in ranked])

    @app.route("/price-plans/last-week-cost/<smart_meter_id>", methods=["GET"])
    def last_week_cost(smart_meter_id):
        cost = price_plan_service.calculate_last_week_cost(smart_meter_id)
        return jsonify({"smartMeterId": smart_meter_id, "lastWeekCost": str(cost)})

    return app


app = create_app()


# =============================================================================
# RUN THE SERVER
# =============================================================================

if __name__ == "__main__":
    # debug=True: auto-reload and interactive debugger. Never in production.
    app.run(debug=True)
