"""
Ledger: account wallets and the balance movements applied to them.

Debits and credits are expressed as TransactWriteItems entries so that callers
can commit them in the same transaction as the job or submission change that
triggers them. Standalone `credit`/`debit` wrap a single movement plus its
audit row.
"""
import uuid
from decimal import Decimal
from typing import Any, Dict, List, Optional

from boto3.dynamodb.conditions import Attr

from .config import config
from .dynamo import Store, put_op, serialize
from .errors import (
    AlreadyProcessed,
    InsufficientFunds,
    InvalidInput,
    NotFound,
    Unauthorized,
)
from .logging import logger
from .models import Role, TransactionType, current_timestamp, require_id, string_list, to_money


def _amount(value: Any, field: str = 'amount') -> Decimal:
    try:
        amount = to_money(value)
    except (ValueError, ArithmeticError):
        raise InvalidInput(f'Invalid {field} format', {field: str(value)})
    if amount <= 0:
        raise InvalidInput(f'{field} must be positive', {field: str(amount)})
    return amount


def debit_op(account_id: str, amount: Decimal, timestamp: int) -> Dict[str, Any]:
    """Deduct from a wallet, refusing to take the balance below zero."""
    return {
        'Update': {
            'TableName': config.WALLETS_TABLE,
            'Key': serialize({'walletId': account_id}),
            'UpdateExpression': 'SET balance = balance - :amount, updatedAt = :ts',
            'ConditionExpression': 'balance >= :amount',
            'ExpressionAttributeValues': serialize({
                ':amount': amount,
                ':ts': timestamp,
            }),
        }
    }


def credit_op(account_id: str, amount: Decimal, timestamp: int) -> Dict[str, Any]:
    """Add to an existing wallet."""
    return {
        'Update': {
            'TableName': config.WALLETS_TABLE,
            'Key': serialize({'walletId': account_id}),
            'UpdateExpression': 'SET balance = balance + :amount, updatedAt = :ts',
            'ConditionExpression': 'attribute_exists(walletId)',
            'ExpressionAttributeValues': serialize({
                ':amount': amount,
                ':ts': timestamp,
            }),
        }
    }


def record_op(
    txn_type: str,
    amount: Decimal,
    timestamp: int,
    from_id: Optional[str] = None,
    to_id: Optional[str] = None,
    job_id: Optional[str] = None,
    reference_id: Optional[str] = None,
) -> Dict[str, Any]:
    """Audit row for a balance movement."""
    item = {
        'transactionId': str(uuid.uuid4()),
        'type': txn_type,
        'amount': amount,
        'createdAt': timestamp,
    }
    if from_id:
        item['from'] = from_id
    if to_id:
        item['to'] = to_id
    if job_id:
        item['jobId'] = job_id
    if reference_id:
        item['referenceId'] = reference_id
    return put_op(config.TRANSACTIONS_TABLE, item)


def get_account(account_id: str, store: Optional[Store] = None) -> Dict[str, Any]:
    store = store or Store()
    require_id(account_id, 'accountId')
    account = store.get_item(config.WALLETS_TABLE, {'walletId': account_id})
    if not account:
        raise NotFound(f'Account {account_id} not found', {'accountId': account_id})
    return account


def require_role(account: Dict[str, Any], role: Role) -> None:
    if account.get('role') != role.value:
        raise Unauthorized(
            f"Account {account['walletId']} is not a {role.value}",
            {'accountId': account['walletId'], 'role': account.get('role')},
        )


def balance_of(account_id: str, store: Optional[Store] = None) -> Decimal:
    """Current spendable balance. May be stale relative to in-flight transactions."""
    account = get_account(account_id, store)
    return Decimal(account.get('balance', 0))


def list_verifiers(actor_id: str, store: Optional[Store] = None) -> List[Dict[str, Any]]:
    """
    Verifier accounts a provider can assign to a job, by name.
    Balances are not exposed.
    """
    store = store or Store()
    require_role(get_account(actor_id, store), Role.PROVIDER)
    verifiers = store.scan(config.WALLETS_TABLE, Attr('role').eq(Role.VERIFIER.value))
    return sorted(
        (
            {
                'walletId': verifier['walletId'],
                'name': verifier.get('name', ''),
                'skills': verifier.get('skills', []),
            }
            for verifier in verifiers
        ),
        key=lambda verifier: (verifier['name'], verifier['walletId']),
    )


def open_account(
    account_id: str,
    role: str,
    name: str = '',
    skills: Optional[List[str]] = None,
    store: Optional[Store] = None,
    now: Optional[int] = None,
) -> Dict[str, Any]:
    """
    Create a wallet for a new marketplace account.

    Providers start with INITIAL_PROVIDER_BALANCE so they can fund their first
    jobs; freelancers and verifiers start empty.
    """
    store = store or Store()
    require_id(account_id, 'accountId')
    try:
        account_role = Role(role)
    except ValueError:
        raise InvalidInput(f'Unknown role {role!r}', {'role': role})
    if not isinstance(name or '', str):
        raise InvalidInput('name must be a string')
    skills = sorted(set(string_list(skills, 'skills')))

    timestamp = current_timestamp(now)
    balance = config.INITIAL_PROVIDER_BALANCE if account_role == Role.PROVIDER else Decimal('0')
    item = {
        'walletId': account_id,
        'role': account_role.value,
        'name': name or '',
        'skills': skills,
        'balance': balance,
        'createdAt': timestamp,
        'updatedAt': timestamp,
    }

    items = [put_op(config.WALLETS_TABLE, item, condition='attribute_not_exists(walletId)')]
    failures = [AlreadyProcessed(f'Account {account_id} already exists', {'accountId': account_id})]
    if balance > 0:
        items.append(record_op(TransactionType.DEPOSIT, balance, timestamp, to_id=account_id))
        failures.append(None)

    store.transact(items, failures)
    logger.info(f"Opened {account_role.value} account {account_id} with balance {balance}")
    return item


def credit(
    account_id: str,
    amount: Any,
    store: Optional[Store] = None,
    txn_type: str = TransactionType.DEPOSIT,
    now: Optional[int] = None,
) -> Decimal:
    """Increase a wallet balance. Returns the amount credited."""
    store = store or Store()
    require_id(account_id, 'accountId')
    amount = _amount(amount)
    timestamp = current_timestamp(now)
    store.transact(
        [
            credit_op(account_id, amount, timestamp),
            record_op(txn_type, amount, timestamp, to_id=account_id),
        ],
        [NotFound(f'Account {account_id} not found', {'accountId': account_id}), None],
    )
    logger.info(f"Credited {amount} to {account_id}")
    return amount


def debit(
    account_id: str,
    amount: Any,
    store: Optional[Store] = None,
    txn_type: str = TransactionType.ESCROW_DEBIT,
    now: Optional[int] = None,
) -> Decimal:
    """Decrease a wallet balance, all or nothing. Returns the amount debited."""
    store = store or Store()
    amount = _amount(amount)
    balance = balance_of(account_id, store)
    if balance < amount:
        raise InsufficientFunds(
            f'Balance {balance} does not cover {amount}',
            {'accountId': account_id, 'balance': str(balance), 'required': str(amount)},
        )
    timestamp = current_timestamp(now)
    store.transact(
        [
            debit_op(account_id, amount, timestamp),
            record_op(txn_type, amount, timestamp, from_id=account_id),
        ],
        [InsufficientFunds(f'Balance does not cover {amount}', {'accountId': account_id}), None],
    )
    logger.info(f"Debited {amount} from {account_id}")
    return amount


def deposit(account_id: str, amount: Any, store: Optional[Store] = None,
            now: Optional[int] = None) -> Decimal:
    """
    Mock funding seam: adds external money to a wallet.
    In production this would sit behind a payment provider.
    """
    amount = _amount(amount)
    if amount > config.MAX_DEPOSIT:
        raise InvalidInput(f'Maximum deposit is ${config.MAX_DEPOSIT}', {'amount': str(amount)})
    return credit(account_id, amount, store=store, txn_type=TransactionType.DEPOSIT, now=now)
