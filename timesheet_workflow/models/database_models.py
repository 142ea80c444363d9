# -------------------- DYNAMODB TABLES --------------------
from decimal import Decimal

import boto3

from timesheet_workflow import config

_dynamodb = None
_tables = {}


def get_table(table_key: str):
    """Resolve a configured DynamoDB table; the resource is created on first use"""
    global _dynamodb
    if table_key not in _tables:
        if _dynamodb is None:
            _dynamodb = boto3.resource("dynamodb")
        _tables[table_key] = _dynamodb.Table(config.TABLE_CONFIG[table_key])
    return _tables[table_key]


def from_dynamo(value):
    """DynamoDB hands numbers back as Decimal; turn them into int/float recursively"""
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, dict):
        return {k: from_dynamo(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [from_dynamo(v) for v in value]
    return value
