"""
Apply To Job Handler.
POST /jobs/{jobId}/apply
Body: { "price": 500, "proposal": "..." }
"""
from escrow_market.shared.auth import require_user_sub
from escrow_market.shared.errors import InvalidInput, MarketplaceError
from escrow_market.shared.jobs import apply_to_job
from escrow_market.shared.logging import logger, log_event
from escrow_market.shared.utils import error_response, format_response, get_path_param, parse_body


def handler(event, context):
    log_event(event)

    try:
        freelancer_id = require_user_sub(event)
        job_id = get_path_param(event, 'jobId')
        if not job_id:
            raise InvalidInput('Missing jobId')

        body = parse_body(event)
        job = apply_to_job(
            job_id,
            freelancer_id,
            price=body.get('price'),
            proposal=body.get('proposal', ''),
        )

        return format_response(200, job)

    except MarketplaceError as e:
        return error_response(e)
    except Exception:
        logger.exception("Error applying to job")
        return format_response(500, {'message': 'Internal Server Error'})
