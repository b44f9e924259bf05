"""
Configuration module for Lambda handlers.
Loads all environment variables needed by the marketplace.
"""
import os
from decimal import Decimal


class Config:
    """Centralized configuration from environment variables."""

    # AWS Region
    AWS_REGION = os.environ.get('AWS_REGION', 'us-east-1')

    # Logging
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')

    # Local DynamoDB (e.g. dynamodb-local); empty means the real service
    DYNAMODB_ENDPOINT_URL = os.environ.get('DYNAMODB_ENDPOINT_URL', '')

    # botocore retry budget for throttling and transient errors
    BOTO_MAX_ATTEMPTS = int(os.environ.get('BOTO_MAX_ATTEMPTS', '5'))

    # DynamoDB Tables
    JOBS_TABLE = os.environ.get('JOBS_TABLE', 'Jobs')
    SUBMISSIONS_TABLE = os.environ.get('SUBMISSIONS_TABLE', 'Submissions')
    WALLETS_TABLE = os.environ.get('WALLETS_TABLE', 'Wallets')
    TRANSACTIONS_TABLE = os.environ.get('TRANSACTIONS_TABLE', 'Transactions')

    # Escrow configuration
    VERIFIER_FEE_RATE = Decimal(os.environ.get('VERIFIER_FEE_RATE', '0.10'))  # Per verifier, of the job price
    INITIAL_PROVIDER_BALANCE = Decimal(os.environ.get('INITIAL_PROVIDER_BALANCE', '1000'))
    MAX_DEPOSIT = Decimal(os.environ.get('MAX_DEPOSIT', '10000'))

    # EventBridge schedule for the deadline sweeper
    SWEEP_SCHEDULE = os.environ.get('SWEEP_SCHEDULE', 'rate(1 hour)')


config = Config()
