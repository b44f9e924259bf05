"""
Shared fixtures: a moto-backed DynamoDB with the marketplace tables, and a few
ready-made accounts and jobs.
"""
import os
import sys

import boto3
import pytest
from moto import mock_aws

# Add src to path for import
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from escrow_market.shared.config import config  # noqa: E402
from escrow_market.shared.dynamo import Store  # noqa: E402

NOW = 1_800_000_000
HOUR = 3600

PROVIDER = 'provider-1'
FREELANCER = 'freelancer-1'
OTHER_FREELANCER = 'freelancer-2'
VERIFIERS = ['verifier-1', 'verifier-2']

TABLE_KEYS = {
    config.JOBS_TABLE: 'jobId',
    config.SUBMISSIONS_TABLE: 'submissionId',
    config.WALLETS_TABLE: 'walletId',
    config.TRANSACTIONS_TABLE: 'transactionId',
}


@pytest.fixture(autouse=True)
def aws_credentials(monkeypatch):
    """Fake credentials so nothing can reach a real AWS account."""
    monkeypatch.setenv('AWS_ACCESS_KEY_ID', 'testing')
    monkeypatch.setenv('AWS_SECRET_ACCESS_KEY', 'testing')
    monkeypatch.setenv('AWS_SECURITY_TOKEN', 'testing')
    monkeypatch.setenv('AWS_SESSION_TOKEN', 'testing')
    monkeypatch.setenv('AWS_DEFAULT_REGION', config.AWS_REGION)


@pytest.fixture
def store():
    with mock_aws():
        resource = boto3.resource('dynamodb', region_name=config.AWS_REGION)
        for table_name, key in TABLE_KEYS.items():
            resource.create_table(
                TableName=table_name,
                KeySchema=[{'AttributeName': key, 'KeyType': 'HASH'}],
                AttributeDefinitions=[{'AttributeName': key, 'AttributeType': 'S'}],
                BillingMode='PAY_PER_REQUEST',
            )
        yield Store(resource)


@pytest.fixture
def accounts(store):
    from escrow_market.shared.ledger import open_account

    open_account(PROVIDER, 'provider', name='Acme', store=store, now=NOW)
    open_account(FREELANCER, 'freelancer', name='Fran', skills=['python'], store=store, now=NOW)
    open_account(OTHER_FREELANCER, 'freelancer', name='Otto', store=store, now=NOW)
    for verifier_id in VERIFIERS:
        open_account(verifier_id, 'verifier', store=store, now=NOW)
    return store


@pytest.fixture
def open_job(accounts):
    """An open job with one application from FREELANCER at 500."""
    from escrow_market.shared.jobs import apply_to_job, create_job

    job = create_job(
        PROVIDER, 'Logo design', 'Design a logo', 800, ['design'],
        deadline=NOW + HOUR, store=accounts, now=NOW,
    )
    apply_to_job(job['jobId'], FREELANCER, 500, 'I can do it', store=accounts, now=NOW)
    return job['jobId']


@pytest.fixture
def assigned_job(open_job, accounts):
    """OPEN_JOB assigned to FREELANCER with both VERIFIERS."""
    from escrow_market.shared.jobs import select_freelancer

    select_freelancer(open_job, PROVIDER, FREELANCER, list(VERIFIERS), store=accounts, now=NOW)
    return open_job


def api_event(user_id=None, body=None, path=None, query=None):
    """Minimal API Gateway proxy event with Cognito claims."""
    import json

    event = {
        'body': json.dumps(body) if body is not None else None,
        'pathParameters': path,
        'queryStringParameters': query,
        'requestContext': {},
    }
    if user_id:
        event['requestContext'] = {'authorizer': {'claims': {'sub': user_id}}}
    return event
