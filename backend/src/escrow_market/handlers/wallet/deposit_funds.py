"""
Deposit Funds Handler - Mock payment deposit.
POST /wallet/deposit
"""
from escrow_market.shared.auth import require_user_sub
from escrow_market.shared.errors import InvalidInput, MarketplaceError
from escrow_market.shared.ledger import balance_of, deposit
from escrow_market.shared.logging import logger, log_event
from escrow_market.shared.utils import error_response, format_response, parse_body


def handler(event, context):
    """
    POST /wallet/deposit
    Body: { "amount": 100.00 }

    Mock deposit - in production this would integrate with Stripe/PayPal.
    """
    log_event(event)

    try:
        user_id = require_user_sub(event)
        body = parse_body(event)

        amount = body.get('amount')
        if amount is None:
            raise InvalidInput('Missing amount')

        deposited = deposit(user_id, amount)
        new_balance = balance_of(user_id)

        return format_response(200, {
            'message': 'Deposit successful',
            'depositedAmount': deposited,
            'newBalance': new_balance
        })

    except MarketplaceError as e:
        return error_response(e)
    except Exception:
        logger.exception("Error depositing funds")
        return format_response(500, {'message': 'Internal Server Error'})
