"""
List Submissions Handler.
GET /jobs/{jobId}/submissions
Only the job's provider, selected freelancer and verifiers may read them.
"""
from escrow_market.shared.auth import require_user_sub
from escrow_market.shared.errors import InvalidInput, MarketplaceError
from escrow_market.shared.logging import logger, log_event
from escrow_market.shared.submissions import list_job_submissions
from escrow_market.shared.utils import error_response, format_response, get_path_param


def handler(event, context):
    log_event(event)

    try:
        user_id = require_user_sub(event)
        job_id = get_path_param(event, 'jobId')
        if not job_id:
            raise InvalidInput('Missing jobId')

        submissions = list_job_submissions(job_id, user_id)
        return format_response(200, {'submissions': submissions})

    except MarketplaceError as e:
        return error_response(e)
    except Exception:
        logger.exception("Error listing submissions")
        return format_response(500, {"message": "Internal Server Error"})
