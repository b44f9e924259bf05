"""
Create Job Handler.
POST /jobs
Body: { "title": "...", "description": "...", "budget": 500, "requiredSkills": [...], "deadline": 1767225600 }
"""
from escrow_market.shared.auth import require_user_sub
from escrow_market.shared.errors import MarketplaceError
from escrow_market.shared.jobs import create_job
from escrow_market.shared.logging import logger, log_event
from escrow_market.shared.utils import error_response, format_response, parse_body


def handler(event, context):
    log_event(event)

    try:
        provider_id = require_user_sub(event)
        body = parse_body(event)

        job = create_job(
            provider_id,
            title=body.get('title'),
            description=body.get('description'),
            budget=body.get('budget'),
            required_skills=body.get('requiredSkills'),
            deadline=body.get('deadline'),
        )

        return format_response(201, job)

    except MarketplaceError as e:
        return error_response(e)
    except Exception:
        logger.exception("Error creating job")
        return format_response(500, {'message': 'Internal Server Error'})
