"""
List My Submissions Handler.
GET /submissions
Every submission on jobs the caller posted, works on or verifies.
"""
from escrow_market.shared.auth import require_user_sub
from escrow_market.shared.errors import MarketplaceError
from escrow_market.shared.logging import logger, log_event
from escrow_market.shared.submissions import list_user_submissions
from escrow_market.shared.utils import error_response, format_response


def handler(event, context):
    log_event(event)

    try:
        user_id = require_user_sub(event)
        submissions = list_user_submissions(user_id)
        return format_response(200, {'submissions': submissions})

    except MarketplaceError as e:
        return error_response(e)
    except Exception:
        logger.exception("Error listing user submissions")
        return format_response(500, {"message": "Internal Server Error"})
