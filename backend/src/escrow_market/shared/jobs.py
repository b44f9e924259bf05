"""
Job lifecycle: posting, applications, freelancer selection with escrow, and
forced expiry with refund.

Every write is conditioned on the job's `version` so concurrent mutations of the
same job are serialized; selection and expiry commit their balance movement in
the same DynamoDB transaction as the status change.
"""
import uuid
from datetime import datetime
from decimal import Decimal, ROUND_DOWN
from typing import Any, Dict, List, Optional, Tuple

from boto3.dynamodb.conditions import Attr

from .config import config
from .dynamo import Store, put_op, versioned_put_op
from .errors import (
    AlreadyProcessed,
    InsufficientFunds,
    InvalidInput,
    InvalidStateTransition,
    NotFound,
    Unauthorized,
)
from .ledger import balance_of, credit_op, debit_op, get_account, record_op, require_role
from .logging import logger
from .models import (
    CENT,
    JobStatus,
    Role,
    TransactionType,
    current_timestamp,
    find_applicant,
    job_status,
    new_job_item,
    require_id,
    string_list,
    to_money,
    transition_job,
)

ACTIVE_STATUSES = (JobStatus.ASSIGNED.value, JobStatus.IN_PROGRESS.value)


def calculate_verifier_fees(price: Decimal, verifier_count: int,
                            rate: Optional[Decimal] = None) -> Tuple[Decimal, Decimal, Decimal]:
    """
    Calculate what selecting a freelancer costs the provider.

    Args:
        price: The chosen applicant's proposed price
        verifier_count: Number of verifiers assigned to the job
        rate: Fee rate per verifier, defaults to VERIFIER_FEE_RATE

    Returns:
        tuple: (fee_per_verifier, verifier_fee_total, total_deduction)
    """
    rate = config.VERIFIER_FEE_RATE if rate is None else rate
    fee_per_verifier = (price * rate).quantize(CENT, rounding=ROUND_DOWN)
    verifier_fee_total = fee_per_verifier * verifier_count
    total_deduction = price + verifier_fee_total
    return fee_per_verifier, verifier_fee_total, total_deduction


def _positive_amount(value: Any, field: str) -> Decimal:
    try:
        amount = to_money(value)
    except (ValueError, ArithmeticError):
        raise InvalidInput(f'Invalid {field} format', {field: str(value)})
    if amount <= 0:
        raise InvalidInput(f'{field} must be greater than zero', {field: str(amount)})
    return amount


def _deadline(value: Any, now: int) -> Optional[int]:
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        deadline = int(value.timestamp())
    else:
        try:
            deadline = int(Decimal(str(value)))
        except (ValueError, ArithmeticError):
            raise InvalidInput('Invalid deadline format', {'deadline': str(value)})
    if deadline <= now:
        raise InvalidInput('Deadline must be in the future', {'deadline': deadline, 'now': now})
    return deadline


def _require_text(value: Any, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InvalidInput(f'Missing {field}')
    return value.strip()


def _save(store: Store, job: Dict[str, Any], previous_version: int) -> None:
    store.transact([versioned_put_op(config.JOBS_TABLE, job, previous_version)], [None])


def _bump(job: Dict[str, Any], timestamp: int) -> int:
    """Advance version and updatedAt in place, returning the version to condition on."""
    previous = int(job['version'])
    job['version'] = previous + 1
    job['updatedAt'] = timestamp
    return previous


def get_job(job_id: str, store: Optional[Store] = None) -> Dict[str, Any]:
    store = store or Store()
    require_id(job_id, 'jobId')
    job = store.get_item(config.JOBS_TABLE, {'jobId': job_id})
    if not job:
        raise NotFound(f'Job {job_id} not found', {'jobId': job_id})
    return job


def create_job(
    provider_id: str,
    title: str,
    description: str,
    budget: Any,
    required_skills: Optional[List[str]] = None,
    deadline: Any = None,
    store: Optional[Store] = None,
    now: Optional[int] = None,
) -> Dict[str, Any]:
    """Post a new job in `open` status."""
    store = store or Store()
    timestamp = current_timestamp(now)

    title = _require_text(title, 'title')
    description = _require_text(description, 'description')
    budget = _positive_amount(budget, 'budget')
    deadline = _deadline(deadline, timestamp)
    skills = sorted(set(string_list(required_skills, 'requiredSkills')))

    provider = get_account(provider_id, store)
    require_role(provider, Role.PROVIDER)

    job = new_job_item(str(uuid.uuid4()), provider_id, title, description, budget, skills, deadline, timestamp)
    store.transact(
        [put_op(config.JOBS_TABLE, job, condition='attribute_not_exists(jobId)')],
        [None],
    )
    logger.info(f"Created job {job['jobId']} for provider {provider_id} (budget {budget})")
    return job


def apply_to_job(
    job_id: str,
    freelancer_id: str,
    price: Any,
    proposal: str = '',
    store: Optional[Store] = None,
    now: Optional[int] = None,
) -> Dict[str, Any]:
    """Append a freelancer's proposal to an open job. One application per freelancer."""
    store = store or Store()
    timestamp = current_timestamp(now)
    price = _positive_amount(price, 'price')

    freelancer = get_account(freelancer_id, store)
    require_role(freelancer, Role.FREELANCER)

    job = get_job(job_id, store)
    if job_status(job) != JobStatus.OPEN:
        raise InvalidStateTransition(
            'This job is no longer accepting applications',
            {'jobId': job_id, 'status': job['status']},
        )
    if find_applicant(job, freelancer_id):
        raise AlreadyProcessed(
            'You have already applied for this job',
            {'jobId': job_id, 'freelancerId': freelancer_id},
        )

    job['applicants'] = list(job['applicants']) + [{
        'freelancerId': freelancer_id,
        'price': price,
        'proposal': proposal or '',
        'appliedAt': timestamp,
    }]
    previous = _bump(job, timestamp)
    _save(store, job, previous)

    logger.info(f"Freelancer {freelancer_id} applied to job {job_id} at {price}")
    return job


def select_freelancer(
    job_id: str,
    provider_id: str,
    freelancer_id: str,
    verifier_ids: List[str],
    store: Optional[Store] = None,
    now: Optional[int] = None,
) -> Dict[str, Any]:
    """
    Assign an applicant and fund escrow.

    Flow:
    1. Validate ownership, status, applicant and verifiers
    2. Compute verifier fees and the total deduction
    3. Check the provider balance before touching anything
    4. Atomically debit the provider, write the assigned job and its audit row
    """
    store = store or Store()
    timestamp = current_timestamp(now)
    require_id(freelancer_id, 'freelancerId')

    job = get_job(job_id, store)
    if job['providerId'] != provider_id:
        raise Unauthorized('Not authorized', {'jobId': job_id})
    if job_status(job) != JobStatus.OPEN:
        raise InvalidStateTransition(
            'This job already has a selected freelancer',
            {'jobId': job_id, 'status': job['status']},
        )

    if not isinstance(verifier_ids, list) or not verifier_ids:
        raise InvalidInput('At least one verifier is required', {'jobId': job_id})
    if not all(isinstance(verifier_id, str) and verifier_id for verifier_id in verifier_ids):
        raise InvalidInput('verifierIds must be a list of account ids', {'jobId': job_id})
    if len(set(verifier_ids)) != len(verifier_ids):
        raise InvalidInput('Verifier list contains duplicates', {'verifierIds': verifier_ids})
    if freelancer_id in verifier_ids or provider_id in verifier_ids:
        raise InvalidInput('Job parties cannot verify their own job', {'verifierIds': verifier_ids})

    application = find_applicant(job, freelancer_id)
    if not application:
        raise InvalidInput(
            'This freelancer has not applied for the job',
            {'jobId': job_id, 'freelancerId': freelancer_id},
        )

    for verifier_id in verifier_ids:
        verifier = get_account(verifier_id, store)
        if verifier.get('role') != Role.VERIFIER.value:
            raise InvalidInput(f'Account {verifier_id} is not a verifier', {'verifierId': verifier_id})

    price = Decimal(application['price'])
    fee, fee_total, total_deduction = calculate_verifier_fees(price, len(verifier_ids))

    balance = balance_of(provider_id, store)
    if balance < total_deduction:
        raise InsufficientFunds(
            'Insufficient balance',
            {'balance': str(balance), 'required': str(total_deduction)},
        )

    job = transition_job(job, JobStatus.ASSIGNED)
    job['selectedFreelancer'] = freelancer_id
    job['verifiers'] = list(verifier_ids)
    job['verifierFees'] = [
        {'verifierId': verifier_id, 'fee': fee, 'paid': False}
        for verifier_id in verifier_ids
    ]
    job['totalVerifierFees'] = fee_total
    job['paymentDetails'] = {
        'amountDeducted': total_deduction,
        'deductedAt': timestamp,
        'refundedAt': None,
    }
    previous = _bump(job, timestamp)

    store.transact(
        [
            debit_op(provider_id, total_deduction, timestamp),
            versioned_put_op(config.JOBS_TABLE, job, previous),
            record_op(TransactionType.ESCROW_DEBIT, total_deduction, timestamp,
                      from_id=provider_id, job_id=job_id, reference_id=freelancer_id),
        ],
        [InsufficientFunds('Insufficient balance', {'required': str(total_deduction)}), None, None],
    )

    logger.info(
        f"Job {job_id} assigned to {freelancer_id}: price {price}, "
        f"{len(verifier_ids)} verifiers at {fee}, deducted {total_deduction} from {provider_id}"
    )
    return job


def force_expire(job_id: str, store: Optional[Store] = None, now: Optional[int] = None) -> Dict[str, Any]:
    """
    Expire an overdue job and refund the provider exactly what was deducted.

    The write is conditioned on both the version read and refundProcessed being
    false, so of any number of racing callers at most one refund commits.
    """
    store = store or Store()
    timestamp = current_timestamp(now)

    job = get_job(job_id, store)
    if job.get('refundProcessed'):
        raise AlreadyProcessed('Refund already processed', {'jobId': job_id})
    if job['status'] not in ACTIVE_STATUSES:
        raise InvalidStateTransition(
            f"Job in status {job['status']} cannot expire",
            {'jobId': job_id, 'status': job['status']},
        )
    deadline = job.get('deadline')
    if deadline is None or int(deadline) >= timestamp:
        raise InvalidStateTransition('Deadline has not passed', {'jobId': job_id, 'deadline': deadline})

    refund = Decimal(job['paymentDetails']['amountDeducted'])
    provider_id = job['providerId']

    job = transition_job(job, JobStatus.EXPIRED)
    job['refundProcessed'] = True
    job['paymentDetails'] = dict(job['paymentDetails'], refundedAt=timestamp)
    previous = _bump(job, timestamp)

    items = [
        versioned_put_op(
            config.JOBS_TABLE, job, previous,
            extra_condition='refundProcessed = :not_refunded',
            extra_values={':not_refunded': False},
        ),
    ]
    failures = [None]
    if refund > 0:
        items.append(credit_op(provider_id, refund, timestamp))
        items.append(record_op(TransactionType.ESCROW_REFUND, refund, timestamp,
                               to_id=provider_id, job_id=job_id))
        failures.extend([NotFound(f'Account {provider_id} not found', {'accountId': provider_id}), None])
    store.transact(items, failures)

    logger.info(f"Refunded {refund} to {provider_id} for expired job {job_id}")
    return job


def list_open_jobs(store: Optional[Store] = None) -> List[Dict[str, Any]]:
    store = store or Store()
    return store.scan(config.JOBS_TABLE, Attr('status').eq(JobStatus.OPEN.value))


def list_provider_jobs(provider_id: str, store: Optional[Store] = None) -> List[Dict[str, Any]]:
    """Jobs posted by a provider, newest first."""
    store = store or Store()
    jobs = store.scan(config.JOBS_TABLE, Attr('providerId').eq(provider_id))
    return sorted(jobs, key=lambda job: job['createdAt'], reverse=True)


def list_freelancer_jobs(freelancer_id: str, store: Optional[Store] = None) -> List[Dict[str, Any]]:
    """Active jobs the freelancer was selected for."""
    store = store or Store()
    return store.scan(
        config.JOBS_TABLE,
        Attr('selectedFreelancer').eq(freelancer_id) & Attr('status').is_in(list(ACTIVE_STATUSES)),
    )


def list_verifier_jobs(verifier_id: str, store: Optional[Store] = None) -> List[Dict[str, Any]]:
    """Active jobs the verifier is assigned to."""
    store = store or Store()
    return store.scan(
        config.JOBS_TABLE,
        Attr('verifiers').contains(verifier_id) & Attr('status').is_in(list(ACTIVE_STATUSES)),
    )
