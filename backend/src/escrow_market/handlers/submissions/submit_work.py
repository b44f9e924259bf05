from escrow_market.shared.auth import require_user_sub
from escrow_market.shared.errors import InvalidInput, MarketplaceError
from escrow_market.shared.logging import logger, log_event
from escrow_market.shared.submissions import submit_work
from escrow_market.shared.utils import error_response, format_response, parse_body


def handler(event, context):
    """
    Handler for submitting work for a job.
    POST /submissions
    Body: { "jobId": "...", "text": "...", "images": ["s3-key", ...] }
    """
    log_event(event)

    try:
        freelancer_id = require_user_sub(event)
        body = parse_body(event)

        job_id = body.get('jobId')
        if not job_id:
            raise InvalidInput('Missing jobId')

        submission = submit_work(
            job_id,
            freelancer_id,
            text=body.get('text'),
            images=body.get('images'),
        )

        return format_response(201, submission)

    except MarketplaceError as e:
        return error_response(e)
    except Exception:
        logger.exception("Error submitting work")
        return format_response(500, {"message": "Internal Server Error"})
