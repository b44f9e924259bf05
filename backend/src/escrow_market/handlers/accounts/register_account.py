"""
Register Account Handler.
POST /accounts
Body: { "role": "provider" | "freelancer" | "verifier", "name": "...", "skills": [...] }
"""
from escrow_market.shared.auth import require_user_sub
from escrow_market.shared.errors import MarketplaceError
from escrow_market.shared.ledger import open_account
from escrow_market.shared.logging import logger, log_event
from escrow_market.shared.utils import error_response, format_response, parse_body


def handler(event, context):
    """
    Open a wallet for the authenticated Cognito user.
    Providers receive the configured starting balance.
    """
    log_event(event)

    try:
        user_id = require_user_sub(event)
        body = parse_body(event)

        account = open_account(
            user_id,
            role=body.get('role', ''),
            name=body.get('name', ''),
            skills=body.get('skills') or [],
        )

        return format_response(201, {
            'message': 'Account created',
            'account': account
        })

    except MarketplaceError as e:
        return error_response(e)
    except Exception:
        logger.exception("Error registering account")
        return format_response(500, {'message': 'Internal Server Error'})
