# backend/lambda_handlers/last_week_cost.py
"""
Lambda function to cost the last week of a smart meter's readings
Triggered by API Gateway
"""
import json
import logging

from botocore.exceptions import ClientError

from backend.lib.dynamodb_service import DynamoDBReadingStore
from backend.lib.smart_elec_core.accounts import PlanDirectory
from backend.lib.smart_elec_core.defaults import default_price_plans, default_smart_meter_accounts
from backend.lib.smart_elec_core.errors import NoPlanAssignedError, UnknownPlanError
from backend.lib.smart_elec_core.pricing import PricePlanService

logger = logging.getLogger()
logger.setLevel(logging.INFO)

# Created on first invocation and reused while the container stays warm
_service = None


def get_service() -> PricePlanService:
    global _service
    if _service is None:
        plan_directory = PlanDirectory(default_price_plans(), default_smart_meter_accounts())
        _service = PricePlanService(plan_directory, DynamoDBReadingStore())
    return _service


def lambda_handler(event, context):
    """
    Cost the last seven days of readings under the meter's price plan.

    Query parameters:
    - smart_meter_id: Required, the smart meter ID
    """
    logger.info("Received event: %s", json.dumps(event))

    params = event.get('queryStringParameters') or {}
    smart_meter_id = params.get('smart_meter_id')
    if not smart_meter_id:
        return response(400, {'error': 'smart_meter_id is required'})

    try:
        cost = get_service().calculate_last_week_cost(smart_meter_id)
    except (NoPlanAssignedError, UnknownPlanError) as e:
        return response(404, {'error': str(e)})
    except ClientError as e:
        logger.error("DynamoDB error: %s", e)
        return response(500, {'error': 'Failed to read meter readings'})
    except Exception:
        logger.exception("Failed to cost last week for %s", smart_meter_id)
        return response(500, {'error': 'Internal error'})

    return response(200, {
        'smart_meter_id': smart_meter_id,
        'last_week_cost': str(cost)
    })


def response(status_code: int, body: dict) -> dict:
    """Create API Gateway response."""
    return {
        'statusCode': status_code,
        'headers': {
            'Content-Type': 'application/json',
            'Access-Control-Allow-Origin': '*',
            'Access-Control-Allow-Methods': 'GET,OPTIONS',
            'Access-Control-Allow-Headers': 'Content-Type'
        },
        'body': json.dumps(body)
    }
