"""
Deadline sweeper: finds assigned or in-progress jobs past their deadline that
were never refunded, and force-expires each one.
"""
from typing import Dict, Optional

from boto3.dynamodb.conditions import Attr

from .config import config
from .dynamo import Store
from .errors import AlreadyProcessed, ConcurrentModification, InvalidStateTransition
from .jobs import ACTIVE_STATUSES, force_expire
from .logging import logger
from .models import current_timestamp


def find_overdue_jobs(now: int, store: Store):
    # In production, use a GSI on status + deadline instead of a scan
    return store.scan(
        config.JOBS_TABLE,
        Attr('deadline').lt(now)
        & Attr('status').is_in(list(ACTIVE_STATUSES))
        & Attr('refundProcessed').eq(False),
    )


def sweep_expired(store: Optional[Store] = None, now: Optional[int] = None) -> Dict[str, int]:
    """
    Expire and refund every overdue job.

    A job another caller expired first (or moved on) between the scan and the
    write is skipped; refundProcessed plus the version condition guarantee a
    single refund per job.
    """
    store = store or Store()
    timestamp = current_timestamp(now)

    overdue = find_overdue_jobs(timestamp, store)
    logger.info(f"Found {len(overdue)} overdue jobs")

    expired_count = 0
    for job in overdue:
        job_id = job['jobId']
        try:
            force_expire(job_id, store=store, now=timestamp)
            expired_count += 1
        except (AlreadyProcessed, ConcurrentModification, InvalidStateTransition) as e:
            logger.warning(f"Skipped job {job_id}: {e.message}")

    return {
        'checked': len(overdue),
        'expired': expired_count,
    }
