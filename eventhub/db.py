"""
DynamoDB access: resource construction, paginated scan/query helpers and
table bootstrap for the users, events and registrations tables.
"""
import logging
from typing import Dict, List, Optional

import boto3

from . import config

logger = logging.getLogger(__name__)

EMAIL_INDEX = "EmailIndex"
CONFIRMATION_TOKEN_INDEX = "ConfirmationTokenIndex"
EVENT_NAME_INDEX = "EventNameIndex"
PARTICIPANT_EVENT_INDEX = "ParticipantEventIndex"


def build_dynamodb_resource(region: Optional[str] = None):
    return boto3.resource("dynamodb", region_name=region or config.AWS_REGION)


def scan_all(table, **kwargs) -> List[dict]:
    """Full table scan, following LastEvaluatedKey until exhausted."""
    items = []
    while True:
        response = table.scan(**kwargs)
        items.extend(response.get("Items", []))
        last_key = response.get("LastEvaluatedKey")
        if not last_key:
            return items
        kwargs["ExclusiveStartKey"] = last_key


def query_all(table, **kwargs) -> List[dict]:
    """Query every page for a key condition."""
    items = []
    while True:
        response = table.query(**kwargs)
        items.extend(response.get("Items", []))
        last_key = response.get("LastEvaluatedKey")
        if not last_key:
            return items
        kwargs["ExclusiveStartKey"] = last_key


def _string_attr(name: str) -> dict:
    return {"AttributeName": name, "AttributeType": "S"}


def _index(name: str, hash_key: str, range_key: Optional[str] = None) -> dict:
    key_schema = [{"AttributeName": hash_key, "KeyType": "HASH"}]
    if range_key:
        key_schema.append({"AttributeName": range_key, "KeyType": "RANGE"})
    return {
        "IndexName": name,
        "KeySchema": key_schema,
        "Projection": {"ProjectionType": "ALL"},
    }


def table_definitions() -> Dict[str, dict]:
    """CreateTable arguments keyed by logical table name."""
    return {
        "users": {
            "TableName": config.USERS_TABLE_NAME,
            "KeySchema": [{"AttributeName": "id", "KeyType": "HASH"}],
            "AttributeDefinitions": [
                _string_attr("id"),
                _string_attr("email"),
                _string_attr("email_confirmation_token"),
            ],
            "GlobalSecondaryIndexes": [
                _index(EMAIL_INDEX, "email"),
                _index(CONFIRMATION_TOKEN_INDEX, "email_confirmation_token"),
            ],
        },
        "events": {
            "TableName": config.EVENTS_TABLE_NAME,
            "KeySchema": [{"AttributeName": "id", "KeyType": "HASH"}],
            "AttributeDefinitions": [_string_attr("id"), _string_attr("name")],
            "GlobalSecondaryIndexes": [_index(EVENT_NAME_INDEX, "name")],
        },
        "registrations": {
            "TableName": config.REGISTRATIONS_TABLE_NAME,
            "KeySchema": [{"AttributeName": "id", "KeyType": "HASH"}],
            "AttributeDefinitions": [
                _string_attr("id"),
                _string_attr("participant_id"),
                _string_attr("event_id"),
            ],
            "GlobalSecondaryIndexes": [
                _index(PARTICIPANT_EVENT_INDEX, "participant_id", "event_id"),
            ],
        },
    }


def create_tables(dynamodb) -> Dict[str, object]:
    """
    Create any missing table (on-demand billing) and return Table handles
    keyed by "users", "events" and "registrations".
    """
    tables = {}
    for key, definition in table_definitions().items():
        name = definition["TableName"]
        try:
            table = dynamodb.create_table(BillingMode="PAY_PER_REQUEST", **definition)
            logger.info("Creating %s table...", name)
            table.wait_until_exists()
            logger.info("%s table created", name)
        except dynamodb.meta.client.exceptions.ResourceInUseException:
            logger.info("%s table already exists", name)
            table = dynamodb.Table(name)
        tables[key] = table
    return tables


def get_tables(dynamodb) -> Dict[str, object]:
    """Table handles for already-provisioned tables."""
    return {
        "users": dynamodb.Table(config.USERS_TABLE_NAME),
        "events": dynamodb.Table(config.EVENTS_TABLE_NAME),
        "registrations": dynamodb.Table(config.REGISTRATIONS_TABLE_NAME),
    }
