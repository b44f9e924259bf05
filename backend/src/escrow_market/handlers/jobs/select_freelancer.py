"""
Select Freelancer Handler.
PUT /jobs/{jobId}/select-freelancer
Body: { "freelancerId": "...", "verifierIds": ["...", "..."] }

Debits the provider for the applicant's price plus verifier fees in the same
transaction that assigns the job.
"""
from escrow_market.shared.auth import require_user_sub
from escrow_market.shared.errors import InvalidInput, MarketplaceError
from escrow_market.shared.jobs import select_freelancer
from escrow_market.shared.logging import logger, log_event
from escrow_market.shared.utils import error_response, format_response, get_path_param, parse_body


def handler(event, context):
    log_event(event)

    try:
        provider_id = require_user_sub(event)
        job_id = get_path_param(event, 'jobId')
        if not job_id:
            raise InvalidInput('Missing jobId')

        body = parse_body(event)
        freelancer_id = body.get('freelancerId')
        if not freelancer_id:
            raise InvalidInput('Missing freelancerId')

        job = select_freelancer(
            job_id,
            provider_id,
            freelancer_id,
            body.get('verifierIds') or [],
        )

        return format_response(200, job)

    except MarketplaceError as e:
        return error_response(e)
    except Exception:
        logger.exception("Error selecting freelancer")
        return format_response(500, {'message': 'Internal Server Error'})
