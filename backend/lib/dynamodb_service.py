"""
=============================================================================
DYNAMODB READING STORE - Amazon DynamoDB backed smart meter readings
=============================================================================

Drop-in replacement for the in-memory MeterReadingService: the price plan
service only needs get_readings(smart_meter_id), so either store can be
handed to it.

Our Table Schema:
-----------------
Table: ElectricityReadings
- smart_meter_id (String) - Partition Key - Groups readings by meter
- time (String) - Sort Key - ISO timestamp in UTC, orders readings chronologically
- reading (Number) - Instantaneous draw in kW
- created_at (String) - When the record was inserted

Example Item:
{
    "smart_meter_id": "smart-meter-0",
    "time": "2025-11-01T00:00:00+00:00",
    "reading": Decimal("0.34"),
    "created_at": "2025-11-28T10:30:00+00:00"
}

Two readings for the same meter at the same instant share a primary key, so
the later write replaces the earlier one.
=============================================================================
"""

import logging
import os
from datetime import datetime, timezone
from decimal import Decimal
from typing import Iterable, List, Optional

# boto3 - AWS SDK for Python
import boto3
from boto3.dynamodb.conditions import Key

# ClientError - Exception class for AWS API errors
from botocore.exceptions import BotoCoreError, ClientError

from backend.lib.smart_elec_core.io import parse_timestamp
from backend.lib.smart_elec_core.models import ElectricityReading

logger = logging.getLogger(__name__)


class DynamoDBReadingStore:
    """
    Reading store kept in a DynamoDB table.

    Usage:
        store = DynamoDBReadingStore()
        store.create_table_if_not_exists()
        store.store_readings("smart-meter-0", readings)
        store.get_readings("smart-meter-0")
    """

    def __init__(self, table_name: str = None, table=None):
        """
        Args:
            table_name: Optional custom table name. If not provided,
                       uses DYNAMODB_TABLE_NAME from environment or default.
            table: An existing boto3 Table (or stand-in). When given, no AWS
                   resource or client is created.
        """
        self.table_name = table_name or os.getenv('DYNAMODB_TABLE_NAME', 'ElectricityReadings')
        self.region = os.getenv('AWS_REGION', 'us-east-1')
        self.table = table
        self.dynamodb = None
        self.client = None

        if table is None:
            # Session token is only set for temporary (lab / STS) credentials
            session_token = os.getenv('AWS_SESSION_TOKEN')
            credentials = dict(
                region_name=self.region,
                aws_access_key_id=os.getenv('AWS_ACCESS_KEY_ID'),
                aws_secret_access_key=os.getenv('AWS_SECRET_ACCESS_KEY'),
                aws_session_token=session_token if session_token else None
            )
            # Resource for Table objects, client for describe_table
            self.dynamodb = boto3.resource('dynamodb', **credentials)
            self.client = boto3.client('dynamodb', **credentials)

    def _get_table(self):
        if self.table is None:
            self.table = self.dynamodb.Table(self.table_name)
        return self.table

    def create_table_if_not_exists(self) -> bool:
        """
        Create the readings table if it doesn't exist.

        Uses on-demand (PAY_PER_REQUEST) billing.

        Returns:
            bool: True if table exists or was created successfully
        """
        try:
            self.client.describe_table(TableName=self.table_name)
            self.table = self.dynamodb.Table(self.table_name)
            logger.info("DynamoDB table '%s' exists", self.table_name)
            return True

        except BotoCoreError as e:
            # No credentials, unreachable endpoint and the like
            logger.error("Cannot reach DynamoDB: %s", e)
            return False
        except ClientError as e:
            if e.response['Error']['Code'] != 'ResourceNotFoundException':
                logger.error("Error checking table: %s", e)
                return False

        try:
            table = self.dynamodb.create_table(
                TableName=self.table_name,
                KeySchema=[
                    {'AttributeName': 'smart_meter_id', 'KeyType': 'HASH'},  # Partition key
                    {'AttributeName': 'time', 'KeyType': 'RANGE'}  # Sort key
                ],
                AttributeDefinitions=[
                    {'AttributeName': 'smart_meter_id', 'AttributeType': 'S'},
                    {'AttributeName': 'time', 'AttributeType': 'S'}
                ],
                BillingMode='PAY_PER_REQUEST'
            )
            # Wait for table to be fully created
            table.wait_until_exists()
            self.table = table
            logger.info("Created DynamoDB table '%s'", self.table_name)
            return True

        except (BotoCoreError, ClientError) as create_error:
            logger.error("Failed to create table: %s", create_error)
            return False

    def store_readings(self, smart_meter_id: str, readings: Iterable[ElectricityReading]) -> None:
        """
        Write readings with the table's batch writer, which groups puts into
        batch_write_item requests of up to 25 items.

        Raises:
            ClientError: if DynamoDB rejects the write.
        """
        table = self._get_table()
        created_at = datetime.now(timezone.utc).isoformat()
        count = 0
        try:
            with table.batch_writer() as writer:
                for reading in readings:
                    writer.put_item(Item={
                        'smart_meter_id': smart_meter_id,
                        'time': reading.time.astimezone(timezone.utc).isoformat(),
                        # DynamoDB numbers must be Decimal, never float
                        'reading': reading.reading,
                        'created_at': created_at
                    })
                    count += 1
        except ClientError as e:
            logger.error("Batch write for %s failed: %s", smart_meter_id, e)
            raise
        logger.debug("Stored %d readings for %s", count, smart_meter_id)

    def get_readings(self, smart_meter_id: str) -> Optional[List[ElectricityReading]]:
        """
        All readings for a meter, oldest first (the sort key order).
        None when the table holds nothing for the meter.

        Raises:
            ClientError: if the query fails.
        """
        table = self._get_table()
        condition = Key('smart_meter_id').eq(smart_meter_id)

        try:
            response = table.query(KeyConditionExpression=condition)
            items = list(response.get('Items', []))

            # DynamoDB returns max 1MB of data per query
            while 'LastEvaluatedKey' in response:
                response = table.query(
                    KeyConditionExpression=condition,
                    ExclusiveStartKey=response['LastEvaluatedKey']
                )
                items.extend(response.get('Items', []))

        except ClientError as e:
            logger.error("Failed to get readings for %s: %s", smart_meter_id, e)
            raise

        if not items:
            return None
        return [
            ElectricityReading(time=parse_timestamp(item['time']), reading=Decimal(str(item['reading'])))
            for item in items
        ]
