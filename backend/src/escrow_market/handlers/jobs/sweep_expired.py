"""
Sweep Expired Jobs Handler.
Triggered by EventBridge on SWEEP_SCHEDULE (hourly by default) to refund and
expire jobs whose deadline passed before completion.
"""
from escrow_market.shared.config import config
from escrow_market.shared.logging import logger
from escrow_market.shared.sweeper import sweep_expired


def handler(event, context):
    """
    Scheduled handler.

    When a job expires:
    1. Job status -> 'expired', refundProcessed -> true
    2. Provider wallet is credited paymentDetails.amountDeducted
    3. An ESCROW_REFUND transaction row is written
    """
    logger.info(f"Running job deadline check (schedule: {config.SWEEP_SCHEDULE})...")

    result = sweep_expired()

    logger.info(f"Deadline check done: {result['expired']} of {result['checked']} overdue jobs expired")
    return result
