"""
Submission and verification engine.

A submission carries one verification entry per verifier assigned to the job at
the time it was created. When the last entry flips to approved, the submission,
the job and the freelancer's wallet are updated in one transaction; that is the
only path by which escrowed funds reach the freelancer.
"""
import uuid
from decimal import Decimal
from typing import Any, Dict, List, Optional

from boto3.dynamodb.conditions import Attr

from .config import config
from .dynamo import Store, put_op, versioned_put_op
from .errors import (
    AlreadyProcessed,
    InvalidInput,
    InvalidStateTransition,
    NotFound,
    Unauthorized,
)
from .jobs import get_job
from .ledger import credit_op, get_account, record_op, require_role
from .logging import logger
from .models import (
    JobStatus,
    Role,
    SubmissionStatus,
    TransactionType,
    current_timestamp,
    find_applicant,
    find_verification,
    is_unanimous,
    job_status,
    new_submission_item,
    require_id,
    string_list,
    submission_status,
    transition_job,
    transition_submission,
)


def get_submission(submission_id: str, store: Optional[Store] = None) -> Dict[str, Any]:
    store = store or Store()
    require_id(submission_id, 'submissionId')
    submission = store.get_item(config.SUBMISSIONS_TABLE, {'submissionId': submission_id})
    if not submission:
        raise NotFound(f'Submission {submission_id} not found', {'submissionId': submission_id})
    return submission


def submit_work(
    job_id: str,
    freelancer_id: str,
    text: str,
    images: Optional[List[str]] = None,
    store: Optional[Store] = None,
    now: Optional[int] = None,
) -> Dict[str, Any]:
    """
    Create a pending submission for an assigned job and mark the job in progress.
    """
    store = store or Store()
    timestamp = current_timestamp(now)

    if not isinstance(text, str) or not text.strip():
        raise InvalidInput('Missing submission text')
    images = string_list(images, 'images')

    job = get_job(job_id, store)
    if job.get('selectedFreelancer') != freelancer_id:
        raise Unauthorized('Not authorized', {'jobId': job_id})
    if job_status(job) not in (JobStatus.ASSIGNED, JobStatus.IN_PROGRESS):
        raise InvalidStateTransition(
            f"Cannot submit work for a job in status {job['status']}",
            {'jobId': job_id, 'status': job['status']},
        )

    submission = new_submission_item(str(uuid.uuid4()), job, freelancer_id, text, images, timestamp)

    job = transition_job(job, JobStatus.IN_PROGRESS)
    previous = int(job['version'])
    job['version'] = previous + 1
    job['updatedAt'] = timestamp

    store.transact(
        [
            put_op(config.SUBMISSIONS_TABLE, submission, condition='attribute_not_exists(submissionId)'),
            versioned_put_op(config.JOBS_TABLE, job, previous),
        ],
        [None, None],
    )

    logger.info(
        f"Submission {submission['submissionId']} created for job {job_id} "
        f"with {len(submission['verifications'])} verifications"
    )
    return submission


def verify_submission(
    submission_id: str,
    verifier_id: str,
    approved: bool,
    comments: Optional[str] = None,
    store: Optional[Store] = None,
    now: Optional[int] = None,
) -> Dict[str, Any]:
    """
    Record a verifier's decision on a submission.

    Flow:
    1. Update the verifier's own entry (last write wins)
    2. If every entry is approved: submission → approved, job → completed,
       and the freelancer is credited the price they applied with
    3. Otherwise only the submission is written

    Replays after approval raise AlreadyProcessed and never pay twice.
    """
    store = store or Store()
    timestamp = current_timestamp(now)

    if not isinstance(approved, bool):
        raise InvalidInput('approved must be true or false')

    verifier = get_account(verifier_id, store)
    require_role(verifier, Role.VERIFIER)

    submission = get_submission(submission_id, store)
    index = find_verification(submission, verifier_id)
    if index is None:
        raise InvalidStateTransition(
            'Not authorized to verify this submission',
            {'submissionId': submission_id, 'verifierId': verifier_id},
        )

    job = get_job(submission['jobId'], store)
    if submission_status(submission) != SubmissionStatus.PENDING or job_status(job) == JobStatus.COMPLETED:
        raise AlreadyProcessed(
            'Payout already released for this job',
            {'submissionId': submission_id, 'jobId': job['jobId']},
        )
    if job_status(job) != JobStatus.IN_PROGRESS:
        raise InvalidStateTransition(
            f"Cannot verify work for a job in status {job['status']}",
            {'jobId': job['jobId'], 'status': job['status']},
        )

    verifications = [dict(entry) for entry in submission['verifications']]
    verifications[index].update({
        'approved': approved,
        'comments': comments,
        'updatedAt': timestamp,
    })
    submission = dict(submission, verifications=verifications, updatedAt=timestamp)
    submission_previous = int(submission['version'])
    submission['version'] = submission_previous + 1

    if not is_unanimous(submission):
        store.transact(
            [versioned_put_op(config.SUBMISSIONS_TABLE, submission, submission_previous)],
            [None],
        )
        logger.info(f"Verifier {verifier_id} set approved={approved} on submission {submission_id}")
        return submission

    freelancer_id = submission['freelancerId']
    application = find_applicant(job, freelancer_id)
    if not application:
        raise NotFound(
            f'No application from {freelancer_id} on job {job["jobId"]}',
            {'jobId': job['jobId'], 'freelancerId': freelancer_id},
        )
    payout = Decimal(application['price'])

    submission = transition_submission(submission, SubmissionStatus.APPROVED)
    job = transition_job(job, JobStatus.COMPLETED)
    job_previous = int(job['version'])
    job['version'] = job_previous + 1
    job['updatedAt'] = timestamp

    store.transact(
        [
            versioned_put_op(config.SUBMISSIONS_TABLE, submission, submission_previous),
            versioned_put_op(config.JOBS_TABLE, job, job_previous),
            credit_op(freelancer_id, payout, timestamp),
            record_op(TransactionType.JOB_PAYOUT, payout, timestamp, from_id=job['providerId'],
                      to_id=freelancer_id, job_id=job['jobId'], reference_id=submission_id),
        ],
        [None, None, NotFound(f'Account {freelancer_id} not found', {'accountId': freelancer_id}), None],
    )

    logger.info(f"Submission {submission_id} approved by all verifiers; paid {payout} to {freelancer_id}")
    return submission


def list_job_submissions(job_id: str, actor_id: str, store: Optional[Store] = None) -> List[Dict[str, Any]]:
    """Submissions for a job, visible to its provider, selected freelancer and verifiers."""
    store = store or Store()
    job = get_job(job_id, store)
    is_party = (
        job['providerId'] == actor_id
        or job.get('selectedFreelancer') == actor_id
        or actor_id in job.get('verifiers', [])
    )
    if not is_party:
        raise Unauthorized('Not authorized', {'jobId': job_id})
    submissions = store.scan(config.SUBMISSIONS_TABLE, Attr('jobId').eq(job_id))
    return sorted(submissions, key=lambda submission: submission['createdAt'])


def list_user_submissions(actor_id: str, store: Optional[Store] = None) -> List[Dict[str, Any]]:
    """
    Submissions across every job the actor takes part in, newest first.

    Each submission carries a short `job` summary so a dashboard can render it
    without a second lookup.
    """
    store = store or Store()
    require_id(actor_id, 'actorId')
    jobs = store.scan(
        config.JOBS_TABLE,
        Attr('providerId').eq(actor_id)
        | Attr('selectedFreelancer').eq(actor_id)
        | Attr('verifiers').contains(actor_id),
    )
    jobs_by_id = {job['jobId']: job for job in jobs}
    job_ids = list(jobs_by_id)

    submissions = []
    # IN accepts at most 100 operands
    for start in range(0, len(job_ids), 100):
        chunk = job_ids[start:start + 100]
        submissions.extend(store.scan(config.SUBMISSIONS_TABLE, Attr('jobId').is_in(chunk)))

    for submission in submissions:
        job = jobs_by_id[submission['jobId']]
        submission['job'] = {
            'jobId': job['jobId'],
            'title': job['title'],
            'status': job['status'],
        }
    return sorted(submissions, key=lambda submission: submission['createdAt'], reverse=True)
