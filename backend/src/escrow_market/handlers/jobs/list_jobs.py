"""
List Jobs Handler.
GET /jobs?view=open|provider|freelancer|verifier
GET /jobs/{jobId}
"""
from escrow_market.shared.auth import get_user_sub, require_user_sub
from escrow_market.shared.errors import InvalidInput, MarketplaceError
from escrow_market.shared.jobs import (
    get_job,
    list_freelancer_jobs,
    list_open_jobs,
    list_provider_jobs,
    list_verifier_jobs,
)
from escrow_market.shared.logging import logger, log_event
from escrow_market.shared.utils import error_response, format_response, get_path_param, get_query_param

VIEWS = {
    'provider': list_provider_jobs,
    'freelancer': list_freelancer_jobs,
    'verifier': list_verifier_jobs,
}


def handler(event, context):
    log_event(event)

    try:
        job_id = get_path_param(event, 'jobId')
        if job_id:
            return format_response(200, get_job(job_id))

        view = get_query_param(event, 'view', 'open')
        if view == 'open':
            jobs = list_open_jobs()
        elif view in VIEWS:
            jobs = VIEWS[view](require_user_sub(event))
        else:
            raise InvalidInput(f'Unknown view {view!r}', {'views': ['open'] + sorted(VIEWS)})

        logger.info(f"Listed {len(jobs)} jobs (view={view}, user={get_user_sub(event)})")
        return format_response(200, {'jobs': jobs})

    except MarketplaceError as e:
        return error_response(e)
    except Exception:
        logger.exception("Error listing jobs")
        return format_response(500, {'message': 'Internal Server Error'})
