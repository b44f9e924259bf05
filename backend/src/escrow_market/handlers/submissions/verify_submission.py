"""
Verify Submission Handler.
PUT /submissions/{submissionId}/verify
Body: { "approved": true, "comments": "..." }

Once every assigned verifier has approved, the freelancer is paid and the job
completes in the same transaction.
"""
from escrow_market.shared.auth import require_user_sub
from escrow_market.shared.errors import InvalidInput, MarketplaceError
from escrow_market.shared.logging import logger, log_event
from escrow_market.shared.submissions import verify_submission
from escrow_market.shared.utils import error_response, format_response, get_path_param, parse_body


def handler(event, context):
    log_event(event)

    try:
        verifier_id = require_user_sub(event)
        submission_id = get_path_param(event, 'submissionId')
        if not submission_id:
            raise InvalidInput('Missing submissionId')

        body = parse_body(event)
        if 'approved' not in body:
            raise InvalidInput('Missing approved')

        submission = verify_submission(
            submission_id,
            verifier_id,
            approved=body['approved'],
            comments=body.get('comments'),
        )

        return format_response(200, submission)

    except MarketplaceError as e:
        return error_response(e)
    except Exception:
        logger.exception("Error verifying submission")
        return format_response(500, {"message": "Internal Server Error"})
