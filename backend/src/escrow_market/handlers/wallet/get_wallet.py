from escrow_market.shared.auth import require_user_sub
from escrow_market.shared.errors import MarketplaceError
from escrow_market.shared.ledger import balance_of
from escrow_market.shared.logging import logger, log_event
from escrow_market.shared.utils import error_response, format_response


def handler(event, context):
    """
    Handler to get current user's wallet balance.
    GET /wallet
    """
    log_event(event)

    try:
        user_id = require_user_sub(event)
        balance = balance_of(user_id)

        return format_response(200, {
            "walletId": user_id,
            "balance": balance,
            "currency": "USD"
        })

    except MarketplaceError as e:
        return error_response(e)
    except Exception:
        logger.exception("Error getting wallet")
        return format_response(500, {"message": "Internal Server Error"})
