import logging
from decimal import Decimal
from typing import Any, Dict, List

import boto3
from boto3.dynamodb.conditions import Key
from botocore.exceptions import BotoCoreError, ClientError

from app.core.config import settings

logger = logging.getLogger(__name__)

# Initialize DynamoDB resource
dynamodb = boto3.resource("dynamodb", region_name=settings.DYNAMO_REGION)

# Get table references
vehicles_table = dynamodb.Table(settings.DYNAMO_VEHICLES_TABLE)
fuel_table = dynamodb.Table(settings.DYNAMO_FUEL_TABLE)
expenses_table = dynamodb.Table(settings.DYNAMO_EXPENSES_TABLE)
income_table = dynamodb.Table(settings.DYNAMO_INCOME_TABLE)


class RecordFetchError(Exception):
    """Raised when a record collection cannot be read from DynamoDB."""

    def __init__(self, collection: str, message: str):
        super().__init__(f"Failed to load {collection}: {message}")
        self.collection = collection


def _query_all(table, user_id: str, collection: str) -> List[Dict[str, Any]]:
    """
    Query every item for a user, following LastEvaluatedKey across pages.
    """
    items: List[Dict[str, Any]] = []
    kwargs = {"KeyConditionExpression": Key("user_id").eq(user_id)}
    try:
        while True:
            response = table.query(**kwargs)
            items.extend(response.get("Items", []))
            last_key = response.get("LastEvaluatedKey")
            if not last_key:
                break
            kwargs["ExclusiveStartKey"] = last_key
    except ClientError as e:
        message = e.response.get("Error", {}).get("Message", str(e))
        logger.error(f"Query on {collection} failed for user {user_id}: {message}")
        raise RecordFetchError(collection, message) from e
    except BotoCoreError as e:
        logger.error(f"Query on {collection} failed for user {user_id}: {str(e)}")
        raise RecordFetchError(collection, str(e)) from e

    logger.info(f"Loaded {len(items)} {collection} for user {user_id}")
    return [_from_dynamo(item) for item in items]


def get_vehicles(user_id: str) -> List[Dict[str, Any]]:
    return _query_all(vehicles_table, user_id, "vehicles")


def get_fuel_entries(user_id: str) -> List[Dict[str, Any]]:
    return _query_all(fuel_table, user_id, "fuel entries")


def get_expense_entries(user_id: str) -> List[Dict[str, Any]]:
    return _query_all(expenses_table, user_id, "expense entries")


def get_income_entries(user_id: str) -> List[Dict[str, Any]]:
    return _query_all(income_table, user_id, "income entries")


def _from_dynamo(obj: Any):
    """
    Recursively convert Decimal instances back to native Python numeric types.
    """
    if isinstance(obj, list):
        return [_from_dynamo(item) for item in obj]
    if isinstance(obj, dict):
        return {k: _from_dynamo(v) for k, v in obj.items()}
    if isinstance(obj, Decimal):
        if obj % 1 == 0:
            return int(obj)
        return float(obj)
    return obj
