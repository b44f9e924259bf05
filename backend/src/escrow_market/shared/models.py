"""
Data models and status constants for the escrow marketplace.
Based on the job lifecycle: Open → Assigned → InProgress → Completed, or Expired on a missed deadline.
"""
import enum
import time
from decimal import Decimal
from typing import Any, Dict, List, Optional

from .errors import InvalidInput, InvalidStateTransition

CENT = Decimal('0.01')


class Role(str, enum.Enum):
    """Account roles."""
    PROVIDER = 'provider'
    FREELANCER = 'freelancer'
    VERIFIER = 'verifier'


class JobStatus(str, enum.Enum):
    """Job lifecycle statuses."""
    OPEN = 'open'
    ASSIGNED = 'assigned'
    IN_PROGRESS = 'in_progress'
    COMPLETED = 'completed'
    EXPIRED = 'expired'


class SubmissionStatus(str, enum.Enum):
    """Submission review statuses."""
    PENDING = 'pending'
    APPROVED = 'approved'
    REJECTED = 'rejected'  # Never set by the core; reserved for administrative action


class TransactionType:
    """Audit row types written alongside balance movements."""
    DEPOSIT = 'DEPOSIT'
    ESCROW_DEBIT = 'ESCROW_DEBIT'
    JOB_PAYOUT = 'JOB_PAYOUT'
    ESCROW_REFUND = 'ESCROW_REFUND'


JOB_TRANSITIONS = {
    JobStatus.OPEN: {JobStatus.ASSIGNED},
    JobStatus.ASSIGNED: {JobStatus.IN_PROGRESS, JobStatus.EXPIRED},
    JobStatus.IN_PROGRESS: {JobStatus.IN_PROGRESS, JobStatus.COMPLETED, JobStatus.EXPIRED},
    JobStatus.COMPLETED: set(),
    JobStatus.EXPIRED: set(),
}

SUBMISSION_TRANSITIONS = {
    SubmissionStatus.PENDING: {SubmissionStatus.PENDING, SubmissionStatus.APPROVED},
    SubmissionStatus.APPROVED: set(),
    SubmissionStatus.REJECTED: set(),
}


def job_status(job: Dict[str, Any]) -> JobStatus:
    return JobStatus(job['status'])


def submission_status(submission: Dict[str, Any]) -> SubmissionStatus:
    return SubmissionStatus(submission['status'])


def transition_job(job: Dict[str, Any], target: JobStatus) -> Dict[str, Any]:
    """
    Return a copy of the job moved to `target`.

    Raises:
        InvalidStateTransition: if the job's current status cannot reach `target`
    """
    current = job_status(job)
    if target not in JOB_TRANSITIONS[current]:
        raise InvalidStateTransition(
            f"Job {job['jobId']} cannot move from {current.value} to {target.value}",
            {'jobId': job['jobId'], 'status': current.value},
        )
    updated = dict(job)
    updated['status'] = target.value
    return updated


def transition_submission(submission: Dict[str, Any], target: SubmissionStatus) -> Dict[str, Any]:
    """Return a copy of the submission moved to `target`."""
    current = submission_status(submission)
    if target not in SUBMISSION_TRANSITIONS[current]:
        raise InvalidStateTransition(
            f"Submission {submission['submissionId']} cannot move from {current.value} to {target.value}",
            {'submissionId': submission['submissionId'], 'status': current.value},
        )
    updated = dict(submission)
    updated['status'] = target.value
    return updated


def current_timestamp(now: Optional[int] = None) -> int:
    """Epoch seconds; `now` overrides the clock."""
    if now is not None:
        return int(now)
    return int(time.time())


def to_money(value: Any) -> Decimal:
    """Convert an incoming amount to a cent-quantized Decimal. Raises ValueError on garbage."""
    if isinstance(value, bool):
        raise ValueError('boolean is not an amount')
    amount = Decimal(str(value))
    if not amount.is_finite():
        raise ValueError('amount must be finite')
    return amount.quantize(CENT)


def require_id(value: Any, field: str) -> str:
    """Ids are non-empty strings; anything else is rejected before it reaches a key."""
    if not isinstance(value, str) or not value.strip():
        raise InvalidInput(f'{field} must be a non-empty string', {field: str(value)})
    return value


def string_list(value: Any, field: str) -> List[str]:
    """Strip a list of strings, dropping blanks. None is an empty list."""
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(entry, str) for entry in value):
        raise InvalidInput(f'{field} must be a list of strings')
    return [entry.strip() for entry in value if entry.strip()]


def new_job_item(
    job_id: str,
    provider_id: str,
    title: str,
    description: str,
    budget: Decimal,
    required_skills: List[str],
    deadline: Optional[int],
    now: int,
) -> Dict[str, Any]:
    job = {
        'jobId': job_id,
        'providerId': provider_id,
        'title': title,
        'description': description,
        'budget': budget,
        'requiredSkills': required_skills,
        'selectedFreelancer': None,
        'verifiers': [],
        'verifierFees': [],
        'totalVerifierFees': Decimal('0'),
        'status': JobStatus.OPEN.value,
        'refundProcessed': False,
        'applicants': [],
        'paymentDetails': {
            'amountDeducted': Decimal('0'),
            'deductedAt': None,
            'refundedAt': None,
        },
        'createdAt': now,
        'updatedAt': now,
        'version': 0,
    }
    if deadline is not None:
        # Left out rather than NULL so deadline filters never match undated jobs
        job['deadline'] = deadline
    return job


def new_submission_item(
    submission_id: str,
    job: Dict[str, Any],
    freelancer_id: str,
    text: str,
    images: List[str],
    now: int,
) -> Dict[str, Any]:
    # Entries are frozen to the verifiers assigned at creation time
    verifications = [
        {
            'verifierId': verifier_id,
            'approved': False,
            'comments': None,
            'updatedAt': now,
        }
        for verifier_id in job['verifiers']
    ]
    return {
        'submissionId': submission_id,
        'jobId': job['jobId'],
        'freelancerId': freelancer_id,
        'text': text,
        'images': images,
        'verifications': verifications,
        'status': SubmissionStatus.PENDING.value,
        'createdAt': now,
        'updatedAt': now,
        'version': 0,
    }


def find_applicant(job: Dict[str, Any], freelancer_id: str) -> Optional[Dict[str, Any]]:
    for applicant in job.get('applicants', []):
        if applicant['freelancerId'] == freelancer_id:
            return applicant
    return None


def find_verification(submission: Dict[str, Any], verifier_id: str) -> Optional[int]:
    """Index of the verifier's entry on the submission, or None."""
    matches = [
        i for i, entry in enumerate(submission.get('verifications', []))
        if entry['verifierId'] == verifier_id
    ]
    if len(matches) != 1:
        return None
    return matches[0]


def is_unanimous(submission: Dict[str, Any]) -> bool:
    verifications = submission.get('verifications', [])
    return bool(verifications) and all(entry['approved'] for entry in verifications)


def escrow_held(job: Dict[str, Any]) -> Decimal:
    """
    Funds debited from the provider that are still held against the job.

    Assigned and in-progress jobs hold the full deduction. A completed job has
    released the freelancer price, so only the unpaid verifier fees remain.
    """
    status = job_status(job)
    deducted = Decimal(job['paymentDetails']['amountDeducted'])
    if status in (JobStatus.ASSIGNED, JobStatus.IN_PROGRESS):
        return deducted
    if status == JobStatus.COMPLETED:
        return sum(
            (Decimal(fee['fee']) for fee in job.get('verifierFees', []) if not fee['paid']),
            Decimal('0'),
        )
    return Decimal('0')
