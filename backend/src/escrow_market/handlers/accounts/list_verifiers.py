"""
List Verifiers Handler.
GET /accounts/verifiers
Providers pick verifierIds for freelancer selection from this list.
"""
from escrow_market.shared.auth import require_user_sub
from escrow_market.shared.errors import MarketplaceError
from escrow_market.shared.ledger import list_verifiers
from escrow_market.shared.logging import logger, log_event
from escrow_market.shared.utils import error_response, format_response


def handler(event, context):
    log_event(event)

    try:
        user_id = require_user_sub(event)
        verifiers = list_verifiers(user_id)
        return format_response(200, {'verifiers': verifiers})

    except MarketplaceError as e:
        return error_response(e)
    except Exception:
        logger.exception("Error listing verifiers")
        return format_response(500, {"message": "Internal Server Error"})
