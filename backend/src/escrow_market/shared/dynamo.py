"""
DynamoDB access for the marketplace core.

Reads go through the boto3 resource layer (native Python types, Decimal numbers).
Every mutation that touches more than one item is a single TransactWriteItems
call so balance changes and status transitions land together or not at all.
"""
import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError
from boto3.dynamodb.types import TypeSerializer
from typing import List, Dict, Any, Optional, Sequence

from .config import config
from .errors import ConcurrentModification, MarketplaceError, StorageUnavailable
from .logging import logger

serializer = TypeSerializer()

# Cancellation reasons that mean another writer got there first
RACE_CODES = {'ConditionalCheckFailed', 'TransactionConflict'}


def serialize(item: Dict[str, Any]) -> Dict[str, Any]:
    """Convert a native item to the low-level attribute-value format."""
    return {key: serializer.serialize(value) for key, value in item.items()}


def put_op(
    table_name: str,
    item: Dict[str, Any],
    condition: Optional[str] = None,
    names: Optional[Dict[str, str]] = None,
    values: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Build a Put entry for transact_write_items."""
    put = {
        'TableName': table_name,
        'Item': serialize(item),
    }
    if condition:
        put['ConditionExpression'] = condition
    if names:
        put['ExpressionAttributeNames'] = names
    if values:
        put['ExpressionAttributeValues'] = serialize(values)
    return {'Put': put}


def versioned_put_op(table_name: str, item: Dict[str, Any], expected_version: int,
                     extra_condition: Optional[str] = None,
                     extra_values: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Put that only succeeds if the stored item still has `expected_version`.
    The caller is responsible for bumping item['version'].
    """
    condition = '#version = :expected_version'
    values = {':expected_version': expected_version}
    if extra_condition:
        condition = f'{condition} AND {extra_condition}'
        values.update(extra_values or {})
    return put_op(
        table_name,
        item,
        condition=condition,
        names={'#version': 'version'},
        values=values,
    )


def cancellation_codes(error: ClientError) -> List[str]:
    """Per-item reason codes of a cancelled transaction, in TransactItems order."""
    reasons = error.response.get('CancellationReasons') or []
    return [reason.get('Code', 'None') for reason in reasons]


def _connection_params() -> Dict[str, Any]:
    params = {
        'region_name': config.AWS_REGION,
        'config': BotoConfig(retries={'max_attempts': config.BOTO_MAX_ATTEMPTS, 'mode': 'standard'}),
    }
    if config.DYNAMODB_ENDPOINT_URL:
        params['endpoint_url'] = config.DYNAMODB_ENDPOINT_URL
    return params


class Store:
    """
    Thin wrapper over the DynamoDB resource and a low-level client.

    Transaction entries are already in attribute-value form, so `client` must be
    a plain low-level client and never resource.meta.client.
    """

    def __init__(self, resource=None, client=None):
        if resource is None:
            resource = boto3.resource('dynamodb', **_connection_params())
        if client is None:
            client = boto3.client('dynamodb', **_connection_params())
        self.dynamodb = resource
        self.client = client

    def table(self, table_name: str):
        return self.dynamodb.Table(table_name)

    def get_item(self, table_name: str, key: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Get a single item, strongly consistent."""
        try:
            response = self.table(table_name).get_item(Key=key, ConsistentRead=True)
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Error getting item from {table_name}: {e}")
            raise StorageUnavailable(f"Could not read from {table_name}") from e
        return response.get('Item')

    def scan(self, table_name: str, filter_expression: Optional[Any] = None) -> List[Dict[str, Any]]:
        """
        Scan a table, following LastEvaluatedKey until exhausted.

        Args:
            table_name: Name of the DynamoDB table
            filter_expression: Optional boto3 condition built from Attr

        Returns:
            All matching items
        """
        table = self.table(table_name)
        params = {'ConsistentRead': True}
        if filter_expression is not None:
            params['FilterExpression'] = filter_expression

        items = []
        try:
            while True:
                response = table.scan(**params)
                items.extend(response.get('Items', []))
                last_key = response.get('LastEvaluatedKey')
                if not last_key:
                    break
                params['ExclusiveStartKey'] = last_key
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Error scanning {table_name}: {e}")
            raise StorageUnavailable(f"Could not scan {table_name}") from e
        return items

    def transact(
        self,
        items: List[Dict[str, Any]],
        failures: Sequence[Optional[MarketplaceError]],
    ) -> None:
        """
        Run transact_write_items atomically.

        `failures` lines up with `items`: when an item's condition check is what
        cancelled the transaction, the matching error is raised. Items without an
        error (None) raise ConcurrentModification; cancellations with no
        conflict behind them raise StorageUnavailable.
        """
        try:
            self.client.transact_write_items(TransactItems=items)
        except ClientError as e:
            error_code = e.response['Error']['Code']
            if error_code != 'TransactionCanceledException':
                logger.error(f"Transaction error: {e}")
                raise StorageUnavailable('Transaction could not be committed') from e

            codes = cancellation_codes(e)
            logger.warning(f"Transaction cancelled: {codes}")
            for index, code in enumerate(codes):
                if code == 'ConditionalCheckFailed' and index < len(failures) and failures[index] is not None:
                    raise failures[index] from e
            if not RACE_CODES.intersection(codes):
                reasons = e.response.get('CancellationReasons') or []
                logger.error(f"Transaction rejected: {reasons}")
                raise StorageUnavailable('Transaction could not be committed') from e
            raise ConcurrentModification('Item was modified concurrently, retry the request') from e
        except BotoCoreError as e:
            logger.error(f"Transaction error: {e}")
            raise StorageUnavailable('Transaction could not be committed') from e
